import os
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from conftest import FIXED_NOW, make_voter
from voter_roster.config import DBConfig
from voter_roster.exceptions import DuplicateIdentity, ValidationError

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(not os.getenv("DB_HOST"), reason="DB_HOST not set"),
]


@pytest.fixture
def pg_store():
    from voter_roster.persistence.postgres import PostgresVoterStore

    store = PostgresVoterStore(DBConfig(), max_retries=3, retry_delay_sec=0.05)
    store.init_db()
    store.clear()
    yield store
    store.clear()
    store.close()


def test_put_get_and_order(pg_store, voters):
    for voter in voters:
        pg_store.put(voter)

    assert pg_store.count() == 4
    assert [v.id_card for v in pg_store.all()] == ["001", "002", "003", "004"]
    assert pg_store.get("004").voted_at == FIXED_NOW


def test_duplicate_id_card(pg_store):
    pg_store.put(make_voter("001"))

    with pytest.raises(DuplicateIdentity):
        pg_store.put(make_voter("001", id="other"))


def test_update_fields_rejects_status(pg_store):
    pg_store.put(make_voter("001"))

    with pytest.raises(ValidationError):
        pg_store.update_fields("v-001", {"has_voted": True})


def test_concurrent_mark_voted_single_winner(pg_store):
    pg_store.put(make_voter("001"))

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(lambda _: pg_store.mark_voted("v-001", FIXED_NOW), range(8)))

    assert sum(1 for _, transitioned in results if transitioned) == 1
    assert pg_store.get("001").has_voted


def test_put_keeps_check_in_time(pg_store, voters):
    for voter in voters:
        pg_store.put(voter)

    pg_store.put(pg_store.get("004").copy(voted_at=FIXED_NOW + timedelta(hours=3)))

    assert pg_store.get("004").voted_at == FIXED_NOW


def test_put_many_batches_and_reports_collisions(pg_store, voters):
    pg_store.put(make_voter("001"))

    stored, collisions = pg_store.put_many(voters[1:] + [make_voter("001", id="other")])

    assert sorted(v.id_card for v in stored) == ["002", "003", "004"]
    assert [v.id for v in collisions] == ["other"]
    assert pg_store.count() == 4
