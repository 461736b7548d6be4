"""
Roster services.

Each service receives a RosterContext (config, store, catalogs) and does
one job: scoping, check-in, import, search, aggregation or export. The
RosterEngine facade ties them together for callers.
"""

from .base import BaseService, RosterContext
from .scope import can_see, resolve_scope, scope_voters, require_admin
from .checkin import CheckInService
from .importer import ImportService, ImportPolicy, ColumnMap, COLUMN_ALIASES
from .search import search_voters, filter_voters, available_groups, paginate, StatusFilter
from .aggregation import aggregate, summarize, turnout_percentage, GroupBy
from .export import build_export_frame, build_turnout_frame, export_voters_csv, export_turnout_csv, EXPORT_COLUMNS
from .catalog import UserCatalog, AreaCatalog
from .roster import RosterEngine
from .sample import generate_sample_roster

__all__ = [
    # Context
    "BaseService",
    "RosterContext",
    "RosterEngine",

    # Scope
    "can_see",
    "resolve_scope",
    "scope_voters",
    "require_admin",

    # Check-in
    "CheckInService",

    # Import
    "ImportService",
    "ImportPolicy",
    "ColumnMap",
    "COLUMN_ALIASES",

    # Search
    "search_voters",
    "filter_voters",
    "available_groups",
    "paginate",
    "StatusFilter",

    # Aggregation
    "aggregate",
    "summarize",
    "turnout_percentage",
    "GroupBy",

    # Export
    "build_export_frame",
    "build_turnout_frame",
    "export_voters_csv",
    "export_turnout_csv",
    "EXPORT_COLUMNS",

    # Catalogs
    "UserCatalog",
    "AreaCatalog",

    # Demo data
    "generate_sample_roster",
]
