from datetime import datetime, timezone

import pytest

from voter_roster.exceptions import ValidationError
from voter_roster.models import CallerScope, Page, Role, User, Voter
from voter_roster.models.voter import parse_timestamp


def test_voter_trims_fields_and_assigns_id():
    voter = Voter(id_card="  123  ", full_name=" An ", voting_area=None)

    assert voter.id
    assert voter.id_card == "123"
    assert voter.full_name == "An"
    assert voter.voting_area == ""


def test_voted_requires_timestamp():
    with pytest.raises(ValidationError):
        Voter(id_card="1", has_voted=True)

    with pytest.raises(ValidationError):
        Voter(id_card="1", voted_at=datetime.now(timezone.utc))


def test_checked_in_returns_new_record():
    voter = Voter(id_card="1")
    stamp = datetime(2026, 5, 22, 7, 0, tzinfo=timezone.utc)

    voted = voter.checked_in(stamp)

    assert voted.has_voted and voted.voted_at == stamp
    assert not voter.has_voted
    assert voted.status_label == "Đã bầu"
    assert voter.status_label == "Chưa bầu"


def test_from_dict_accepts_legacy_keys():
    voter = Voter.from_dict({
        "id": "1718000000000",
        "fullName": "Nguyễn Văn An",
        "idCard": "079123456789",
        "votingArea": "Khu vực 1",
        "votingGroup": "Tổ 1",
        "hasVoted": True,
        "votedAt": "2026-05-22T01:30:00.000Z",
        "unknown": "ignored",
    })

    assert voter.id == "1718000000000"
    assert voter.id_card == "079123456789"
    assert voter.voting_group == "Tổ 1"
    assert voter.voted_at == datetime(2026, 5, 22, 1, 30, tzinfo=timezone.utc)


def test_to_dict_serializes_timestamp():
    stamp = datetime(2026, 5, 22, 1, 30, tzinfo=timezone.utc)
    data = Voter(id="a", id_card="1", has_voted=True, voted_at=stamp).to_dict()

    assert data["voted_at"] == "2026-05-22T01:30:00+00:00"
    assert Voter.from_dict(data).voted_at == stamp


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_timestamp("yesterday")


def test_naive_timestamp_is_treated_as_utc():
    assert parse_timestamp("2026-05-22T08:00:00").tzinfo is timezone.utc


def test_role_parse():
    assert Role.parse("ADMIN") is Role.ADMIN
    assert Role.parse(" staff ") is Role.STAFF
    with pytest.raises(ValidationError) as exc:
        Role.parse("voter")
    assert exc.value.details["field_name"] == "role"


def test_caller_scope_from_user():
    user = User(username="nv1", role="staff", voting_area=" Khu vực 2 ")
    scope = CallerScope.for_user(user)

    assert scope.role is Role.STAFF
    assert scope.assigned_area == "Khu vực 2"
    assert scope.describe() == "staff[Khu vực 2]"
    assert CallerScope.staff(None).describe() == "staff[unassigned]"


def test_user_to_dict_hides_password_hash():
    user = User(username="nv1", password_hash="secret-hash")

    assert "password_hash" not in user.to_dict()
    assert user.to_dict(include_password=True)["password_hash"] == "secret-hash"
    assert user.to_dict()["role"] == "staff"


def test_page_properties():
    page = Page(items=[1, 2], page=2, per_page=2, total_items=5)

    assert page.total_pages == 3
    assert page.has_next
    assert page.has_previous
