import psycopg2
import pytest
from psycopg2.extensions import TransactionRollbackError

from voter_roster.config import DBConfig
from voter_roster.exceptions import ConcurrentConflict, DataPersistenceError
from voter_roster.persistence.postgres import PostgresVoterStore


class FakeCursor:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class FakeConnection:
    closed = 0

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def cursor(self, cursor_factory=None):
        return FakeCursor()

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class FakePool:
    def __init__(self):
        self.conn = FakeConnection()
        self.returned = 0

    def getconn(self):
        return self.conn

    def putconn(self, conn, close=False):
        self.returned += 1


@pytest.fixture
def offline_store():
    store = PostgresVoterStore(DBConfig(), max_retries=3, retry_delay_sec=0)
    store._pool = FakePool()
    return store


def failing(error, times):
    calls = []

    def work(cur):
        calls.append(cur)
        if len(calls) <= times:
            raise error
        return "done"

    return work, calls


def test_serialization_failures_end_in_concurrent_conflict(offline_store):
    work, calls = failing(TransactionRollbackError("could not serialize access"), times=3)

    with pytest.raises(ConcurrentConflict) as exc:
        offline_store._run("mark_voted", work, record_id="v-001")

    assert len(calls) == 3
    assert exc.value.details == {"attempts": 3, "record_id": "v-001"}
    assert offline_store._pool.conn.rollbacks == 3
    assert offline_store._pool.returned == 3


def test_operational_failures_end_in_persistence_error(offline_store):
    work, calls = failing(psycopg2.OperationalError("server closed the connection"), times=3)

    with pytest.raises(DataPersistenceError) as exc:
        offline_store._run("put", work)

    assert len(calls) == 3
    assert exc.value.details["operation"] == "put"


def test_transient_failure_is_retried(offline_store):
    work, calls = failing(TransactionRollbackError("deadlock detected"), times=1)

    assert offline_store._run("put", work) == "done"
    assert len(calls) == 2
    assert offline_store._pool.conn.commits == 1


def test_other_errors_are_not_retried(offline_store):
    work, calls = failing(psycopg2.IntegrityError("duplicate key"), times=5)

    with pytest.raises(psycopg2.IntegrityError):
        offline_store._run("put", work)

    assert len(calls) == 1
