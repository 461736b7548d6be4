# main.py

import argparse
import sys
import time
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from voter_roster.config import IMPORT_POLICIES, get_config
from voter_roster.exceptions import NotFound, PermissionDenied, RosterError
from voter_roster.logger import get_logger, log_timing
from voter_roster.models import CallerScope
from voter_roster.persistence import create_store
from voter_roster.services import (
    GroupBy,
    RosterContext,
    RosterEngine,
    export_turnout_csv,
    generate_sample_roster,
    require_admin,
)
from voter_roster.utils.tabular import read_tabular_rows

console = Console()
logger = get_logger("voter_roster.cli")


def get_progress():
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )


def build_engine() -> RosterEngine:
    config = get_config()
    if config.store.backend == "memory":
        logger.warning("ROSTER_STORE=memory: changes are lost when the command exits")
    store = create_store(config)
    return RosterEngine(RosterContext(config=config, store=store))


def resolve_caller(engine: RosterEngine, args) -> CallerScope:
    """Caller scope from --as/--password, or a staff scope from --staff-area."""
    if getattr(args, "staff_area", None):
        return CallerScope.staff(args.staff_area)

    username = getattr(args, "as_user", None) or "admin"
    password = getattr(args, "password", None)
    if password is not None:
        user = engine.users.authenticate(username, password)
        if user is None:
            raise PermissionDenied(f"Invalid credentials for {username}", action="login")
    else:
        user = engine.users.find_by_username(username)
        if user is None:
            raise NotFound(f"No user named {username}")
    return CallerScope.for_user(user)


def voter_table(voters, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Họ và Tên")
    table.add_column("Số CCCD")
    table.add_column("Khu vực")
    table.add_column("Tổ")
    table.add_column("Trạng thái")
    for voter in voters:
        status = f"[green]{voter.status_label}[/]" if voter.has_voted else voter.status_label
        table.add_row(voter.full_name, voter.id_card, voter.voting_area, voter.voting_group, status)
    return table


def cmd_import(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    rows = read_tabular_rows(Path(args.file))
    logger.info(f"📥 Read {len(rows)} rows from {args.file}")

    if args.dry_run:
        result = engine.preview_import(rows, caller, policy=args.policy)
    else:
        with get_progress() as progress:
            task = progress.add_task("Importing voters", total=len(rows))
            result = engine.import_rows(rows, caller, policy=args.policy)
            progress.update(task, completed=len(rows))

    summary = result.summary()
    console.print(
        f"[bold]{'Preview' if args.dry_run else 'Import'}:[/] "
        f"{summary['accepted']} accepted, {summary['rejected']} rejected, {summary['replaced']} replaced"
    )
    if result.rejected:
        table = Table(title="Rejected rows")
        table.add_column("Row", justify="right")
        table.add_column("Reason")
        table.add_column("Message")
        for rejection in result.rejected:
            table.add_row(str(rejection.row_number), rejection.reason, rejection.message)
        console.print(table)
    return 0


def cmd_checkin(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    result = engine.check_in(args.id_card, caller)
    voter = result.voter
    if result.transitioned:
        console.print(f"[green]✅ {voter.full_name} ({voter.id_card}) checked in[/]")
    else:
        console.print(f"[yellow]{voter.full_name} ({voter.id_card}) had already voted at {voter.voted_at:%H:%M:%S}[/]")
    return 0


def cmd_search(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    result = engine.search(args.term, caller)
    if result.auto_resolved is not None:
        console.print(voter_table([result.auto_resolved], "Voter"))
    elif result.matches:
        console.print(voter_table(result.matches, f"{len(result)} matches"))
    else:
        console.print("[yellow]No matching voters[/]")
    return 0


def cmd_stats(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    total = engine.summary(caller)
    console.print(
        f"[bold]Turnout:[/] {total.voted}/{total.total} ({total.percentage}%), {total.not_voted} not voted"
    )

    rows = engine.aggregate(caller, GroupBy.parse(args.by))
    table = Table(title=f"By {args.by}")
    for column in ("Group", "Total", "Voted", "Not voted", "%"):
        table.add_column(column, justify="left" if column == "Group" else "right")
    for row in rows:
        table.add_row(row.key or "-", str(row.total), str(row.voted), str(row.not_voted), str(row.percentage))
    console.print(table)

    if args.output:
        path = export_turnout_csv(rows, Path(args.output))
        console.print(f"[green]Turnout table written to {path}[/]")
    return 0


def cmd_export(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    path = Path(args.path) if args.path else engine.config.exports_dir / f"roster_{datetime.now():%Y%m%d_%H%M%S}.csv"
    path = engine.export(caller, path, status=args.status, area=args.area, group=args.group)
    console.print(f"[green]Report written to {path}[/]")
    return 0


def cmd_seed_sample(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    require_admin(caller, "seed_sample")
    if engine.store.count() and not args.force:
        console.print("[red]Roster is not empty; pass --force to add sample voters anyway[/]")
        return 1

    voters = generate_sample_roster(count=args.count, seed=args.seed)
    with get_progress() as progress:
        task = progress.add_task("Seeding sample roster", total=len(voters))
        # Sample voters carry their own check-in state, so they bypass add_voter
        stored, collisions = engine.store.put_many(voters)
        progress.update(task, completed=len(voters))
    if collisions:
        logger.warning(f"{len(collisions)} sample voters skipped: identity card already on the roster")
    logger.info(f"🌱 Seeded {len(stored)} sample voters as {caller.describe()}")
    return 0


def cmd_clear(engine: RosterEngine, args) -> int:
    caller = resolve_caller(engine, args)
    if not args.yes:
        console.print("[red]Refusing to clear the roster without --yes (this cannot be undone)[/]")
        return 1
    removed = engine.clear_roster(caller)
    console.print(f"[bold red]Removed {removed} voters[/]")
    return 0


def add_caller_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--as", dest="as_user", metavar="USERNAME", help="Act as this user (default: admin)")
    parser.add_argument("--password", help="Authenticate the --as user with this password")
    parser.add_argument("--staff-area", metavar="AREA", help="Act as staff assigned to AREA")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Voter roster and check-in")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import", help="Import voters from a CSV or Excel file")
    p.add_argument("file")
    p.add_argument("--policy", choices=IMPORT_POLICIES, help="Duplicate identity card policy")
    p.add_argument("--dry-run", action="store_true", help="Show the outcome without writing")
    add_caller_args(p)
    p.set_defaults(handler=cmd_import)

    p = sub.add_parser("checkin", help="Record that a voter has voted")
    p.add_argument("id_card")
    add_caller_args(p)
    p.set_defaults(handler=cmd_checkin)

    p = sub.add_parser("search", help="Search voters by name, card, address or area")
    p.add_argument("term")
    add_caller_args(p)
    p.set_defaults(handler=cmd_search)

    p = sub.add_parser("stats", help="Turnout statistics")
    p.add_argument("--by", default="area", choices=["area", "group", "neighborhood", "constituency"])
    p.add_argument("--output", metavar="PATH", help="Also write the table as CSV")
    add_caller_args(p)
    p.set_defaults(handler=cmd_stats)

    p = sub.add_parser("export", help="Export the voter list as CSV")
    p.add_argument("path", nargs="?", help="Output file (default: a timestamped file in EXPORT_DIR)")
    p.add_argument("--status", default="all", choices=["all", "voted", "not_voted"])
    p.add_argument("--area")
    p.add_argument("--group")
    add_caller_args(p)
    p.set_defaults(handler=cmd_export)

    p = sub.add_parser("seed-sample", help="Fill an empty roster with sample voters")
    p.add_argument("--count", type=int, default=100)
    p.add_argument("--seed", type=int)
    p.add_argument("--force", action="store_true")
    add_caller_args(p)
    p.set_defaults(handler=cmd_seed_sample)

    p = sub.add_parser("clear", help="Delete every voter")
    p.add_argument("--yes", action="store_true")
    add_caller_args(p)
    p.set_defaults(handler=cmd_clear)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    start_time = time.perf_counter()

    try:
        engine = build_engine()
        return args.handler(engine, args)
    except RosterError as e:
        logger.debug(f"{e.kind}: {e.details}")
        console.print(f"[bold red]{e.kind}:[/] {e.message}")
        return 2
    finally:
        log_timing(logger, args.command, time.perf_counter() - start_time)


if __name__ == "__main__":
    sys.exit(main())
