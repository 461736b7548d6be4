"""
Data models for the voter roster engine.

These models represent the core data structures and are designed
to be easily serializable to JSON and mappable to SQL database tables.
"""

from .voter import Voter, EDITABLE_FIELDS, STATUS_FIELDS, new_voter_id, utc_now
from .user import User, Role, VotingArea, CallerScope, BUILTIN_ADMIN_USERNAME
from .results import CheckInResult, ImportResult, RejectedRow, SearchResult, TurnoutRow, Page

__all__ = [
    # Voter models
    "Voter",
    "EDITABLE_FIELDS",
    "STATUS_FIELDS",
    "new_voter_id",
    "utc_now",

    # Accounts and areas
    "User",
    "Role",
    "VotingArea",
    "CallerScope",
    "BUILTIN_ADMIN_USERNAME",

    # Operation results
    "CheckInResult",
    "ImportResult",
    "RejectedRow",
    "SearchResult",
    "TurnoutRow",
    "Page",
]
