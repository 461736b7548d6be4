import pytest

from conftest import make_voter
from voter_roster.exceptions import NotFound, PermissionDenied, ValidationError
from voter_roster.models import CallerScope
from voter_roster.services import GroupBy


def test_staff_cannot_mutate(engine, staff_area1):
    with pytest.raises(PermissionDenied) as exc:
        engine.delete_voter("v-001", staff_area1)
    assert exc.value.details["action"] == "delete_voter"

    with pytest.raises(PermissionDenied):
        engine.update_voter("v-001", {"full_name": "X"}, staff_area1)
    with pytest.raises(PermissionDenied):
        engine.add_voter(make_voter("500"), staff_area1)
    with pytest.raises(PermissionDenied):
        engine.clear_roster(staff_area1)

    assert engine.store.count() == 4


def test_admin_add_voter_starts_not_voted(engine, admin):
    voter = engine.add_voter(make_voter("500", has_voted=True, voted_at="2026-05-22T01:00:00Z"), admin)

    assert not voter.has_voted
    assert engine.lookup("500", admin).id == voter.id


def test_add_voter_with_existing_id_is_rejected(engine, admin):
    with pytest.raises(ValidationError):
        engine.add_voter(make_voter("001", id="v-002"), admin)


def test_admin_update_and_delete(engine, admin):
    engine.update_voter("v-001", {"voting_area": "Khu vực 2"}, admin)
    assert engine.lookup("001", admin).voting_area == "Khu vực 2"

    engine.delete_voter("v-001", admin)
    with pytest.raises(NotFound):
        engine.lookup("001", admin)


def test_clear_roster(engine, admin):
    assert engine.clear_roster(admin) == 4
    assert engine.summary(admin).total == 0


def test_staff_reads_are_scoped(engine):
    scope = CallerScope.staff("Khu vực 2")

    assert {v.voting_area for v in engine.visible_voters(scope)} == {"Khu vực 2"}
    assert engine.list_voters(scope).total_items == 2
    assert engine.available_groups(scope) == ["Tổ 3"]
    assert engine.summary(scope).voted == 1


def test_check_in_through_engine_updates_turnout(engine, staff_area1):
    result = engine.check_in("001", staff_area1)

    assert result.transitioned
    rows = engine.aggregate(staff_area1, GroupBy.AREA)
    assert (rows[0].voted, rows[0].percentage) == (1, 50)


def test_import_then_check_in(engine, admin):
    engine.import_rows([{"Họ tên": "Mới", "CCCD": "777", "Khu vực": "Khu vực 1"}], admin)

    assert engine.check_in("777", CallerScope.staff("Khu vực 1")).transitioned
