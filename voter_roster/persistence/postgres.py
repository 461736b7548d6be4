"""
PostgreSQL repository implementation.
"""
from __future__ import annotations

import time
from datetime import datetime
from typing import Optional, List, Any, Callable, Iterable, Tuple, TypeVar

import psycopg2
from psycopg2 import errorcodes, sql
from psycopg2.extensions import TransactionRollbackError
from psycopg2.extras import RealDictCursor, execute_values
from psycopg2.pool import ThreadedConnectionPool

from ..config import DBConfig
from ..exceptions import (
    ConcurrentConflict,
    DataPersistenceError,
    DuplicateIdentity,
    MissingIdentity,
    NotFound,
    ValidationError,
)
from ..logger import get_logger
from ..models import Voter, EDITABLE_FIELDS
from .repository import VoterRepository, validate_patch

logger = get_logger(__name__)

T = TypeVar("T")

_COLUMNS = ("id",) + EDITABLE_FIELDS + ("has_voted", "voted_at")


class PostgresVoterStore(VoterRepository):
    """
    PostgreSQL-backed voter store shared by several processes.

    Handles:
    - Connection pooling (one connection per concurrent caller)
    - Schema initialization
    - Row-level atomic check-in (single conditional UPDATE)
    - Retry of transient failures
    """

    def __init__(
        self,
        config: DBConfig,
        max_retries: int = 3,
        retry_delay_sec: float = 0.2,
        max_connections: int = 10,
    ):
        """
        Initialize repository.

        Args:
            config: Database configuration
            max_retries: Attempts for transient failures before giving up
            retry_delay_sec: Base delay between attempts (doubles each time)
            max_connections: Connection pool size
        """
        self.config = config
        self.max_retries = max(1, max_retries)
        self.retry_delay_sec = retry_delay_sec
        self.max_connections = max_connections
        self._pool: Optional[ThreadedConnectionPool] = None
        self._table = sql.Identifier(config.schema, "voters")

    def _get_pool(self) -> ThreadedConnectionPool:
        """Get or create the connection pool."""
        if self._pool is None:
            try:
                self._pool = ThreadedConnectionPool(
                    1,
                    self.max_connections,
                    host=self.config.host,
                    port=self.config.port,
                    dbname=self.config.name,
                    user=self.config.user,
                    password=self.config.password,
                    sslmode=self.config.ssl_mode,
                )
            except psycopg2.Error as e:
                logger.error(f"Failed to connect to PostgreSQL: {e}")
                raise DataPersistenceError(f"Failed to connect to PostgreSQL: {e}", operation="connect") from e
        return self._pool

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None

    def _run(self, operation: str, work: Callable[[Any], T], record_id: Optional[str] = None) -> T:
        """
        Run ``work(cursor)`` in its own transaction, retrying transient failures.

        Serialization failures and deadlocks end in ConcurrentConflict once
        retries are exhausted; lost connections end in DataPersistenceError.
        """
        pool = self._get_pool()
        delay = self.retry_delay_sec
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            conn = pool.getconn()
            broken = False
            try:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    result = work(cur)
                conn.commit()
                return result
            except (TransactionRollbackError, psycopg2.OperationalError) as e:
                broken = bool(conn.closed)
                if not broken:
                    conn.rollback()
                last_error = e
                logger.warning(f"{operation} attempt {attempt}/{self.max_retries} failed: {e}")
            except Exception:
                if not conn.closed:
                    conn.rollback()
                raise
            finally:
                pool.putconn(conn, close=broken)

            if attempt < self.max_retries:
                time.sleep(delay)
                delay *= 2

        if isinstance(last_error, TransactionRollbackError):
            raise ConcurrentConflict(
                f"{operation} kept conflicting with concurrent writers",
                record_id=record_id,
                attempts=self.max_retries,
            ) from last_error
        raise DataPersistenceError(f"{operation} failed: {last_error}", operation=operation) from last_error

    def init_db(self) -> None:
        """Initialize database schema."""
        def work(cur):
            cur.execute(sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(self.config.schema)))
            cur.execute(sql.SQL("""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    id_card TEXT NOT NULL UNIQUE,
                    full_name TEXT NOT NULL DEFAULT '',
                    address TEXT NOT NULL DEFAULT '',
                    neighborhood TEXT NOT NULL DEFAULT '',
                    constituency TEXT NOT NULL DEFAULT '',
                    voting_group TEXT NOT NULL DEFAULT '',
                    voting_area TEXT NOT NULL DEFAULT '',
                    has_voted BOOLEAN NOT NULL DEFAULT FALSE,
                    voted_at TIMESTAMP WITH TIME ZONE,
                    seq BIGSERIAL,
                    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT voted_at_matches_status CHECK (has_voted = (voted_at IS NOT NULL))
                );
            """).format(table=self._table))
            cur.execute(sql.SQL("CREATE INDEX IF NOT EXISTS idx_voters_voting_area ON {} (voting_area);")
                        .format(self._table))

        self._run("init_db", work)
        logger.info("Database schema initialized")

    @staticmethod
    def _to_voter(row: Optional[dict[str, Any]]) -> Optional[Voter]:
        if row is None:
            return None
        return Voter.from_dict({k: row[k] for k in _COLUMNS})

    def _select(self, where: sql.Composable) -> sql.Composed:
        return sql.SQL("SELECT {cols} FROM {table} WHERE {where}").format(
            cols=sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)),
            table=self._table,
            where=where,
        )

    def _returning(self) -> sql.Composed:
        return sql.SQL(" RETURNING {}").format(sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)))

    @staticmethod
    def _is_unique_violation(error: psycopg2.IntegrityError) -> bool:
        return error.pgcode == errorcodes.UNIQUE_VIOLATION

    def _upsert(self, values: sql.Composable) -> sql.Composed:
        """INSERT ... ON CONFLICT (id) DO UPDATE; an existing Voted row keeps its status and time."""
        return sql.SQL("""
            INSERT INTO {table} ({cols}) VALUES {values}
            ON CONFLICT (id) DO UPDATE SET
                id_card = EXCLUDED.id_card,
                full_name = EXCLUDED.full_name,
                address = EXCLUDED.address,
                neighborhood = EXCLUDED.neighborhood,
                constituency = EXCLUDED.constituency,
                voting_group = EXCLUDED.voting_group,
                voting_area = EXCLUDED.voting_area,
                has_voted = {table}.has_voted OR EXCLUDED.has_voted,
                voted_at = COALESCE({table}.voted_at, EXCLUDED.voted_at),
                updated_at = CURRENT_TIMESTAMP
        """).format(
            table=self._table,
            cols=sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)),
            values=values,
        ) + self._returning()

    def put(self, voter: Voter) -> Voter:
        if not voter.id_card:
            raise MissingIdentity(f"Voter {voter.id} has no identity card number")

        def work(cur):
            row_values = sql.SQL("({})").format(sql.SQL(", ").join(sql.Placeholder() * len(_COLUMNS)))
            cur.execute(self._upsert(row_values), [getattr(voter, c) for c in _COLUMNS])
            return self._to_voter(cur.fetchone())

        try:
            return self._run("put", work, record_id=voter.id)
        except psycopg2.IntegrityError as e:
            if self._is_unique_violation(e):
                raise DuplicateIdentity(
                    f"Identity card {voter.id_card} is already registered",
                    id_card=voter.id_card,
                ) from e
            raise ValidationError(f"Voter {voter.id} violates a table constraint: {e}") from e

    def put_many(self, voters: Iterable[Voter]) -> Tuple[List[Voter], List[Voter]]:
        """
        Upsert a batch with one card lookup and one ``execute_values`` insert.

        A constraint hit inside the batch (for example a voter moving to a
        card another batch row frees) falls back to row-by-row puts.
        """
        voters = list(voters)
        for voter in voters:
            if not voter.id_card:
                raise MissingIdentity(f"Voter {voter.id} has no identity card number")
        if not voters:
            return [], []

        def work(cur):
            cur.execute(
                sql.SQL("SELECT id, id_card FROM {} WHERE id_card = ANY(%s)").format(self._table),
                ([voter.id_card for voter in voters],),
            )
            owners = {row["id_card"]: row["id"] for row in cur.fetchall()}

            batch: dict[str, Voter] = {}
            collisions: List[Voter] = []
            for voter in voters:
                owner = owners.get(voter.id_card)
                if owner is not None and owner != voter.id:
                    collisions.append(voter)
                    continue
                owners[voter.id_card] = voter.id
                # A repeated id replaces its earlier batch entry
                batch[voter.id] = voter

            stored: List[Voter] = []
            if batch:
                rows = execute_values(
                    cur,
                    self._upsert(sql.SQL("%s")).as_string(cur),
                    [tuple(getattr(voter, c) for c in _COLUMNS) for voter in batch.values()],
                    fetch=True,
                )
                stored = [self._to_voter(row) for row in rows]
            return stored, collisions

        try:
            return self._run("put_many", work)
        except psycopg2.IntegrityError as e:
            logger.warning(f"Batch upsert of {len(voters)} voters hit a constraint, retrying row by row: {e}")
            return super().put_many(voters)

    def get(self, id_card: str) -> Optional[Voter]:
        def work(cur):
            cur.execute(self._select(sql.SQL("id_card = %s")), (id_card.strip(),))
            return self._to_voter(cur.fetchone())

        return self._run("get", work)

    def get_by_id(self, voter_id: str) -> Optional[Voter]:
        def work(cur):
            cur.execute(self._select(sql.SQL("id = %s")), (voter_id,))
            return self._to_voter(cur.fetchone())

        return self._run("get_by_id", work, record_id=voter_id)

    def all(self) -> List[Voter]:
        def work(cur):
            cur.execute(self._select(sql.SQL("TRUE")) + sql.SQL(" ORDER BY seq"))
            return [self._to_voter(row) for row in cur.fetchall()]

        return self._run("all", work)

    def delete(self, voter_id: str) -> Voter:
        def work(cur):
            cur.execute(sql.SQL("DELETE FROM {} WHERE id = %s").format(self._table) + self._returning(),
                        (voter_id,))
            return self._to_voter(cur.fetchone())

        deleted = self._run("delete", work, record_id=voter_id)
        if deleted is None:
            raise NotFound(f"No voter with id {voter_id}", record_id=voter_id)
        return deleted

    def update_fields(self, voter_id: str, patch: dict[str, Any]) -> Voter:
        changes = validate_patch(patch)
        if "id_card" in changes and not changes["id_card"]:
            raise MissingIdentity(f"Voter {voter_id} cannot have a blank identity card number")
        if not changes:
            current = self.get_by_id(voter_id)
            if current is None:
                raise NotFound(f"No voter with id {voter_id}", record_id=voter_id)
            return current

        def work(cur):
            assignments = sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(key)) for key in changes
            )
            query = sql.SQL("UPDATE {table} SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = %s").format(
                table=self._table, assignments=assignments,
            ) + self._returning()
            cur.execute(query, list(changes.values()) + [voter_id])
            return self._to_voter(cur.fetchone())

        try:
            updated = self._run("update_fields", work, record_id=voter_id)
        except psycopg2.IntegrityError as e:
            if self._is_unique_violation(e):
                raise DuplicateIdentity(
                    f"Identity card {changes.get('id_card')} is already registered",
                    id_card=changes.get("id_card"),
                ) from e
            raise
        if updated is None:
            raise NotFound(f"No voter with id {voter_id}", record_id=voter_id)
        return updated

    def mark_voted(self, voter_id: str, voted_at: datetime) -> Tuple[Voter, bool]:
        def work(cur):
            # The WHERE clause is the compare-and-set: only one writer can match it
            cur.execute(
                sql.SQL("""
                    UPDATE {} SET has_voted = TRUE, voted_at = %s, updated_at = CURRENT_TIMESTAMP
                    WHERE id = %s AND has_voted = FALSE
                """).format(self._table) + self._returning(),
                (voted_at, voter_id),
            )
            row = cur.fetchone()
            if row is not None:
                return self._to_voter(row), True

            cur.execute(self._select(sql.SQL("id = %s")), (voter_id,))
            return self._to_voter(cur.fetchone()), False

        voter, transitioned = self._run("mark_voted", work, record_id=voter_id)
        if voter is None:
            raise NotFound(f"No voter with id {voter_id}", record_id=voter_id)
        return voter, transitioned

    def clear(self) -> int:
        def work(cur):
            cur.execute(sql.SQL("DELETE FROM {}").format(self._table))
            return cur.rowcount

        return self._run("clear", work)

    def count(self) -> int:
        def work(cur):
            cur.execute(sql.SQL("SELECT count(*) AS n FROM {}").format(self._table))
            return cur.fetchone()["n"]

        return self._run("count", work)
