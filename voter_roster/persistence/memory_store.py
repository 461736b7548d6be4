"""
In-process voter store.

All state lives in two dictionaries guarded by one re-entrant lock, which
serializes every mutation and gives reads a consistent snapshot.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Optional, List, Any, Iterable, Iterator, Tuple

from ..exceptions import DuplicateIdentity, MissingIdentity, NotFound
from ..models import Voter
from .repository import VoterRepository, validate_patch


class InMemoryVoterStore(VoterRepository):
    """
    Dictionary-backed store.

    Stored Voter objects are never mutated in place; every change swaps in
    a new instance, and callers only ever receive copies.
    """

    def __init__(self, voters: Optional[Iterable[Voter]] = None):
        self._lock = threading.RLock()
        self._by_id: dict[str, Voter] = {}
        self._id_by_card: dict[str, str] = {}

        for voter in voters or []:
            self.put(voter)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Hold the lock for one mutation. Subclasses add durability here."""
        with self._lock:
            yield

    def _require(self, voter_id: str) -> Voter:
        current = self._by_id.get(voter_id)
        if current is None:
            raise NotFound(f"No voter with id {voter_id}", record_id=voter_id)
        return current

    def _check_card_free(self, id_card: str, voter_id: str) -> None:
        owner = self._id_by_card.get(id_card)
        if owner is not None and owner != voter_id:
            raise DuplicateIdentity(
                f"Identity card {id_card} is already registered",
                id_card=id_card,
                existing_id=owner,
            )

    def _store(self, voter: Voter) -> None:
        previous = self._by_id.get(voter.id)
        if previous is not None and previous.id_card != voter.id_card:
            self._id_by_card.pop(previous.id_card, None)
        self._by_id[voter.id] = voter
        self._id_by_card[voter.id_card] = voter.id

    def _put_locked(self, voter: Voter) -> Voter:
        self._check_card_free(voter.id_card, voter.id)

        previous = self._by_id.get(voter.id)
        if previous is not None and previous.has_voted:
            # A check-in is final: its status and timestamp survive any replace
            stored = voter.copy(has_voted=True, voted_at=previous.voted_at)
        else:
            stored = voter.copy()
        self._store(stored)
        return stored

    def put(self, voter: Voter) -> Voter:
        if not voter.id_card:
            raise MissingIdentity(f"Voter {voter.id} has no identity card number")

        with self._transaction():
            stored = self._put_locked(voter)

        return stored.copy()

    def put_many(self, voters: Iterable[Voter]) -> Tuple[List[Voter], List[Voter]]:
        voters = list(voters)
        for voter in voters:
            if not voter.id_card:
                raise MissingIdentity(f"Voter {voter.id} has no identity card number")

        stored: List[Voter] = []
        collisions: List[Voter] = []
        with self._transaction():
            for voter in voters:
                try:
                    stored.append(self._put_locked(voter))
                except DuplicateIdentity:
                    collisions.append(voter)

        return [voter.copy() for voter in stored], collisions

    def get(self, id_card: str) -> Optional[Voter]:
        with self._lock:
            voter_id = self._id_by_card.get(id_card.strip())
            if voter_id is None:
                return None
            return self._by_id[voter_id].copy()

    def get_by_id(self, voter_id: str) -> Optional[Voter]:
        with self._lock:
            current = self._by_id.get(voter_id)
            return current.copy() if current else None

    def all(self) -> List[Voter]:
        with self._lock:
            return [voter.copy() for voter in self._by_id.values()]

    def delete(self, voter_id: str) -> Voter:
        with self._transaction():
            current = self._require(voter_id)
            del self._by_id[voter_id]
            self._id_by_card.pop(current.id_card, None)
        return current.copy()

    def update_fields(self, voter_id: str, patch: dict[str, Any]) -> Voter:
        changes = validate_patch(patch)
        if "id_card" in changes and not changes["id_card"]:
            raise MissingIdentity(f"Voter {voter_id} cannot have a blank identity card number")

        with self._transaction():
            current = self._require(voter_id)
            updated = current.copy(**changes)
            self._check_card_free(updated.id_card, voter_id)
            self._store(updated)

        return updated.copy()

    def mark_voted(self, voter_id: str, voted_at: datetime) -> Tuple[Voter, bool]:
        with self._lock:
            current = self._require(voter_id)
            if current.has_voted:
                return current.copy(), False

            with self._transaction():
                updated = current.checked_in(voted_at)
                self._by_id[voter_id] = updated

        return updated.copy(), True

    def clear(self) -> int:
        with self._transaction():
            removed = len(self._by_id)
            self._by_id.clear()
            self._id_by_card.clear()
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)
