import pytest

from conftest import FIXED_NOW, make_voter
from voter_roster.exceptions import ValidationError
from voter_roster.models import CallerScope
from voter_roster.services import GroupBy, aggregate, summarize, turnout_percentage


@pytest.mark.parametrize("voted,total,expected", [
    (0, 0, 0),
    (3, 4, 75),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (4, 4, 100),
])
def test_turnout_percentage(voted, total, expected):
    assert turnout_percentage(voted, total) == expected


def test_aggregate_by_area(voters):
    rows = aggregate(voters, GroupBy.AREA)

    assert [r.key for r in rows] == ["Khu vực 1", "Khu vực 2"]
    area2 = rows[1]
    assert (area2.total, area2.voted, area2.not_voted, area2.percentage) == (2, 1, 1, 50)


def test_aggregate_accepts_names(voters):
    assert [r.key for r in aggregate(voters, "group")] == ["Tổ 1", "Tổ 2", "Tổ 3"]
    assert [r.key for r in aggregate(voters, "neighborhood")] == ["Khu phố 1"]
    with pytest.raises(ValidationError):
        aggregate(voters, "shoe_size")


def test_blank_values_form_their_own_bucket():
    voters = [
        make_voter("1", voting_group=""),
        make_voter("2", voting_group="  "),
        make_voter("3", voting_group="Tổ 1", has_voted=True, voted_at=FIXED_NOW),
    ]

    rows = {r.key: r for r in aggregate(voters, GroupBy.GROUP)}

    assert rows[""].total == 2
    assert rows["Tổ 1"].percentage == 100


def test_summarize(voters):
    total = summarize(voters)

    assert (total.total, total.voted, total.not_voted, total.percentage) == (4, 1, 3, 25)
    assert summarize([]).percentage == 0


def test_staff_aggregate_only_covers_own_area(engine):
    rows = engine.aggregate(CallerScope.staff("Khu vực 2"), GroupBy.AREA)

    assert [r.key for r in rows] == ["Khu vực 2"]
    assert engine.aggregate(CallerScope.staff(None), GroupBy.AREA) == []
