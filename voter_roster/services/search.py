"""
Search and listing over a scoped view of the roster.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional, Sequence, TypeVar

from ..models import Page, SearchResult, Voter

T = TypeVar("T")

SEARCH_FIELDS = (
    "full_name",
    "id_card",
    "address",
    "neighborhood",
    "voting_area",
    "voting_group",
)


class StatusFilter(Enum):
    ALL = "all"
    VOTED = "voted"
    NOT_VOTED = "not_voted"


def matches_term(voter: Voter, needle: str) -> bool:
    """Case-insensitive substring match on any searchable field. ``needle`` must be casefolded."""
    return any(needle in getattr(voter, name).casefold() for name in SEARCH_FIELDS)


def search_voters(term: str, voters: Iterable[Voter], auto_resolve_min_length: int = 5) -> SearchResult:
    """
    Multi-field substring search.

    An empty term returns nothing: search is not "browse all". When exactly
    one voter matches and the term is either longer than
    ``auto_resolve_min_length`` or equal to that voter's identity card, the
    voter is also reported as ``auto_resolved`` for direct display. Several
    matches are always returned as a list.
    """
    term = (term or "").strip()
    if not term:
        return SearchResult()

    needle = term.casefold()
    matches = [voter for voter in voters if matches_term(voter, needle)]

    auto_resolved = None
    if len(matches) == 1:
        only = matches[0]
        if len(term) > auto_resolve_min_length or term == only.id_card:
            auto_resolved = only

    return SearchResult(matches=matches, auto_resolved=auto_resolved)


def filter_voters(
    voters: Iterable[Voter],
    status: StatusFilter | str = StatusFilter.ALL,
    area: Optional[str] = None,
    group: Optional[str] = None,
    term: Optional[str] = None,
) -> List[Voter]:
    """
    List-screen filtering; all given criteria must hold.

    ``term`` matches the name (case-insensitive) or the identity card; an
    empty term does not filter.
    """
    status = StatusFilter(status)
    needle = (term or "").strip().casefold()

    result = []
    for voter in voters:
        if area and voter.voting_area != area:
            continue
        if group and voter.voting_group != group:
            continue
        if status is StatusFilter.VOTED and not voter.has_voted:
            continue
        if status is StatusFilter.NOT_VOTED and voter.has_voted:
            continue
        if needle and needle not in voter.full_name.casefold() and needle not in voter.id_card.casefold():
            continue
        result.append(voter)
    return result


def available_groups(voters: Iterable[Voter], area: Optional[str] = None) -> List[str]:
    """Sorted distinct voting groups, optionally within one area."""
    return sorted({v.voting_group for v in voters if not area or v.voting_area == area})


def paginate(items: Sequence[T], page: int = 1, per_page: int = 10) -> Page[T]:
    """Slice one 1-based page; out-of-range pages are clamped."""
    per_page = max(1, per_page)
    total_pages = max(1, -(-len(items) // per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return Page(items=list(items[start:start + per_page]), page=page, per_page=per_page, total_items=len(items))
