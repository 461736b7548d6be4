"""
Result types returned by roster operations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, List, Any, Generic, TypeVar

from .voter import Voter

T = TypeVar("T")


@dataclass
class CheckInResult:
    """
    Outcome of a check-in.

    ``transitioned`` is True only for the call that moved the voter from
    NotVoted to Voted; repeat or losing concurrent calls get False with the
    same stored voter.
    """
    voter: Voter
    transitioned: bool = False


@dataclass
class RejectedRow:
    """An import row that was not written to the roster."""
    row_number: int  # 1-based position in the input
    row: dict[str, Any]
    reason: str  # error kind, e.g. "MissingIdentity"
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "reason": self.reason,
            "message": self.message,
            "row": self.row,
        }


@dataclass
class ImportResult:
    """
    Accepted and rejected partitions of an import batch.

    ``replaced`` lists existing roster records whose descriptive fields were
    overwritten (keep-latest policy); they also appear in ``accepted``.
    """
    accepted: List[Voter] = field(default_factory=list)
    rejected: List[RejectedRow] = field(default_factory=list)
    replaced: List[Voter] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.accepted) + len(self.rejected)

    def summary(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for rejection in self.rejected:
            counts[rejection.reason] = counts.get(rejection.reason, 0) + 1
        return {
            "accepted": len(self.accepted),
            "rejected": len(self.rejected),
            "replaced": len(self.replaced),
            **{f"rejected_{k}": v for k, v in sorted(counts.items())},
        }


@dataclass
class SearchResult:
    """Matches for a search term plus the optional single auto-resolved voter."""
    matches: List[Voter] = field(default_factory=list)
    auto_resolved: Optional[Voter] = None

    def __len__(self) -> int:
        return len(self.matches)


@dataclass
class TurnoutRow:
    """Turnout statistics for one bucket of a grouping."""
    key: str
    total: int = 0
    voted: int = 0
    not_voted: int = 0
    percentage: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "total": self.total,
            "voted": self.voted,
            "not_voted": self.not_voted,
            "percentage": self.percentage,
        }


@dataclass
class Page(Generic[T]):
    """One page of a listing."""
    items: List[T]
    page: int
    per_page: int
    total_items: int

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return -(-self.total_items // self.per_page)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1
