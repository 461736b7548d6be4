from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from itertools import count

import pytest

from conftest import FIXED_NOW
from voter_roster.exceptions import NotFound, OutOfScope
from voter_roster.models import CallerScope
from voter_roster.services import CheckInService, RosterContext


@pytest.fixture
def service(roster_config, store):
    ticks = count()
    return CheckInService(
        RosterContext(config=roster_config, store=store),
        clock=lambda: FIXED_NOW + timedelta(seconds=next(ticks)),
    )


def test_check_in_transitions_once(service, admin, store):
    first = service.check_in("001", admin)
    second = service.check_in("001", admin)

    assert first.transitioned and not second.transitioned
    assert first.voter.voted_at == second.voter.voted_at == FIXED_NOW
    assert store.get("001").has_voted


def test_already_voted_is_not_an_error(service, admin):
    result = service.check_in("004", admin)

    assert not result.transitioned
    assert result.voter.voted_at == FIXED_NOW


def test_unknown_card(service, admin):
    with pytest.raises(NotFound):
        service.check_in("999", admin)
    with pytest.raises(NotFound):
        service.lookup("  ", admin)


def test_out_of_scope_is_distinct_and_leaks_nothing(service, staff_area1, store):
    with pytest.raises(OutOfScope) as exc:
        service.check_in("003", staff_area1)

    assert exc.value.kind == "OutOfScope"
    assert "Lê Văn Cường" not in str(exc.value)
    assert not store.get("003").has_voted


def test_unassigned_staff_cannot_check_in(service):
    with pytest.raises(OutOfScope):
        service.check_in("001", CallerScope.staff(None))


def test_concurrent_check_ins_share_one_timestamp(service, staff_area1):
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: service.check_in("002", staff_area1), range(20)))

    assert sum(1 for r in results if r.transitioned) == 1
    stamps = {r.voter.voted_at for r in results}
    assert len(stamps) == 1


def test_deleted_between_lookup_and_check_in(service, admin, store, monkeypatch):
    original_lookup = service.lookup

    def lookup_then_delete(id_card, scope):
        voter = original_lookup(id_card, scope)
        store.delete(voter.id)
        return voter

    monkeypatch.setattr(service, "lookup", lookup_then_delete)

    with pytest.raises(NotFound):
        service.check_in("001", admin)
