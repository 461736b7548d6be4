"""
Roster facade.

Single entry point for callers: every operation takes the caller's scope,
reads go through the scope resolver, and administrative mutations are
gated on the admin role. Built from an explicit RosterContext so tests can
hand it an in-memory store and production a database-backed one.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from ..exceptions import DataPersistenceError, ValidationError
from ..models import CallerScope, CheckInResult, ImportResult, Page, SearchResult, TurnoutRow, Voter
from .aggregation import GroupBy, aggregate, summarize
from .base import BaseService, RosterContext
from .checkin import CheckInService
from .export import export_voters_csv
from .importer import ImportPolicy, ImportService
from .scope import require_admin, scope_voters
from .search import StatusFilter, available_groups, filter_voters, paginate, search_voters


class RosterEngine(BaseService):
    """Scoped, role-checked operations over the shared voter store."""

    name = "roster"

    def __init__(self, context: RosterContext, clock: Optional[Callable[[], datetime]] = None):
        super().__init__(context)
        self.users = context.users
        self.areas = context.areas
        self.checkins = CheckInService(context, clock=clock)
        self.importer = ImportService(context)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def visible_voters(self, scope: CallerScope) -> List[Voter]:
        """Snapshot of the roster restricted to the caller's scope."""
        return scope_voters(scope, self.store.all())

    def list_voters(
        self,
        scope: CallerScope,
        status: StatusFilter | str = StatusFilter.ALL,
        area: Optional[str] = None,
        group: Optional[str] = None,
        term: Optional[str] = None,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> Page[Voter]:
        voters = filter_voters(self.visible_voters(scope), status=status, area=area, group=group, term=term)
        return paginate(voters, page=page, per_page=per_page or self.config.search.page_size)

    def available_groups(self, scope: CallerScope, area: Optional[str] = None) -> List[str]:
        return available_groups(self.visible_voters(scope), area=area)

    def search(self, term: str, scope: CallerScope) -> SearchResult:
        return search_voters(term, self.visible_voters(scope),
                             auto_resolve_min_length=self.config.search.auto_resolve_min_length)

    def aggregate(self, scope: CallerScope, group_by: GroupBy | str) -> List[TurnoutRow]:
        return aggregate(self.visible_voters(scope), group_by)

    def summary(self, scope: CallerScope) -> TurnoutRow:
        return summarize(self.visible_voters(scope))

    # ------------------------------------------------------------------
    # Check-in
    # ------------------------------------------------------------------

    def lookup(self, id_card: str, scope: CallerScope) -> Voter:
        return self.checkins.lookup(id_card, scope)

    def check_in(self, id_card: str, scope: CallerScope) -> CheckInResult:
        return self.checkins.check_in(id_card, scope)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def preview_import(self, rows: Sequence[Mapping[str, Any]], scope: CallerScope,
                       policy: Optional[ImportPolicy | str] = None) -> ImportResult:
        require_admin(scope, "import_voters")
        return self.importer.preview(rows, policy=policy)

    def import_rows(self, rows: Sequence[Mapping[str, Any]], scope: CallerScope,
                    policy: Optional[ImportPolicy | str] = None) -> ImportResult:
        require_admin(scope, "import_voters")
        return self.importer.import_rows(rows, policy=policy)

    def add_voter(self, voter: Voter, scope: CallerScope) -> Voter:
        """Direct administrative entry of one voter; always starts NotVoted."""
        require_admin(scope, "add_voter")
        if self.store.get_by_id(voter.id) is not None:
            raise ValidationError(f"Voter id {voter.id} already exists", field_name="id", field_value=voter.id)
        stored = self.store.put(voter.copy(has_voted=False, voted_at=None))
        self.log_info("Voter added", voter_id=stored.id)
        return stored

    def update_voter(self, voter_id: str, patch: Mapping[str, Any], scope: CallerScope) -> Voter:
        require_admin(scope, "edit_voter")
        updated = self.store.update_fields(voter_id, dict(patch))
        self.log_info("Voter edited", voter_id=voter_id, fields=",".join(sorted(patch)))
        return updated

    def delete_voter(self, voter_id: str, scope: CallerScope) -> Voter:
        """Permanently delete one voter. Cannot be undone."""
        require_admin(scope, "delete_voter")
        deleted = self.store.delete(voter_id)
        self.log_warning("Voter deleted permanently", voter_id=voter_id)
        return deleted

    def clear_roster(self, scope: CallerScope) -> int:
        """Permanently delete every voter. Cannot be undone."""
        require_admin(scope, "clear_roster")
        removed = self.store.clear()
        self.log_warning("Roster cleared permanently", removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def export(
        self,
        scope: CallerScope,
        path: Path,
        status: StatusFilter | str = StatusFilter.ALL,
        area: Optional[str] = None,
        group: Optional[str] = None,
        term: Optional[str] = None,
    ) -> Path:
        """Write the filtered, scoped voter list as a CSV report."""
        voters = filter_voters(self.visible_voters(scope), status=status, area=area, group=group, term=term)
        try:
            written = export_voters_csv(voters, path)
        except DataPersistenceError as e:
            self.log_error("Report export failed", e)
            raise
        self.log_info("Report exported", path=written, rows=len(voters))
        return written
