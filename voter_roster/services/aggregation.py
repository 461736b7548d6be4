"""
Turnout aggregation.

Groups a scoped list of voters along one dimension and reports total,
voted, not-voted and an integer percentage per bucket.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List

from ..exceptions import ValidationError
from ..models import TurnoutRow, Voter


class GroupBy(Enum):
    NEIGHBORHOOD = "neighborhood"
    GROUP = "voting_group"
    AREA = "voting_area"
    CONSTITUENCY = "constituency"

    @classmethod
    def parse(cls, value: "GroupBy | str") -> "GroupBy":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        raise ValidationError(f"Cannot group by {value!r}", field_name="group_by", field_value=value,
                              expected=", ".join(member.name.lower() for member in cls))


def turnout_percentage(voted: int, total: int) -> int:
    """round(100 * voted / total) with halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    # Integer arithmetic avoids float error and banker's rounding
    return (200 * voted + total) // (2 * total)


def _bucket_key(value: str) -> str:
    # Unset or blank values share one "" bucket
    return value if value and value.strip() else ""


def aggregate(voters: Iterable[Voter], group_by: GroupBy | str) -> List[TurnoutRow]:
    """
    Turnout per distinct value of one field, in order of first appearance.

    Keys compare by exact string equality. Cross-tabulation over two fields
    is done by calling this once per dimension.
    """
    attribute = GroupBy.parse(group_by).value

    rows: dict[str, TurnoutRow] = {}
    for voter in voters:
        key = _bucket_key(getattr(voter, attribute))
        row = rows.get(key)
        if row is None:
            row = rows[key] = TurnoutRow(key=key)
        row.total += 1
        if voter.has_voted:
            row.voted += 1

    for row in rows.values():
        row.not_voted = row.total - row.voted
        row.percentage = turnout_percentage(row.voted, row.total)

    return list(rows.values())


def summarize(voters: Iterable[Voter], key: str = "total") -> TurnoutRow:
    """Overall turnout for the whole scoped list."""
    row = TurnoutRow(key=key)
    for voter in voters:
        row.total += 1
        if voter.has_voted:
            row.voted += 1
    row.not_voted = row.total - row.voted
    row.percentage = turnout_percentage(row.voted, row.total)
    return row
