"""
Repository pattern for voter persistence.

Defines the abstract store interface shared by the in-memory, JSON file
and PostgreSQL backends so that services receive a store handle and never
care which backend sits behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Any, Iterable, Tuple

from ..config import Config
from ..exceptions import ConfigurationError, DuplicateIdentity, ValidationError
from ..models import Voter, EDITABLE_FIELDS, STATUS_FIELDS


class VoterRepository(ABC):
    """
    Abstract voter record store.

    Keeps a primary index by ``id`` and a uniqueness index by ``id_card``.
    Every mutation is atomic with respect to every other mutation, and reads
    hand out detached copies so a caller never sees a half-written record.
    """

    @abstractmethod
    def put(self, voter: Voter) -> Voter:
        """
        Insert a voter, or replace the record with the same id.

        Replacing a Voted record keeps its stored has_voted and voted_at,
        whatever the incoming voter carries.

        Raises:
            DuplicateIdentity: id_card is held by a record with another id
            MissingIdentity: id_card is blank

        Returns:
            The stored voter
        """
        pass

    def put_many(self, voters: Iterable[Voter]) -> Tuple[List[Voter], List[Voter]]:
        """
        Put a batch of voters as one unit of work.

        Voters whose id_card is held by another record (in the store or
        earlier in the batch) are skipped instead of failing the batch.
        Backends override this to commit the batch in one write.

        Raises:
            MissingIdentity: a voter in the batch has a blank id_card

        Returns:
            (stored voters, skipped voters), each in input order
        """
        stored: List[Voter] = []
        collisions: List[Voter] = []
        for voter in voters:
            try:
                stored.append(self.put(voter))
            except DuplicateIdentity:
                collisions.append(voter)
        return stored, collisions

    @abstractmethod
    def get(self, id_card: str) -> Optional[Voter]:
        """Look up a voter by identity card number."""
        pass

    @abstractmethod
    def get_by_id(self, voter_id: str) -> Optional[Voter]:
        """Look up a voter by id."""
        pass

    @abstractmethod
    def all(self) -> List[Voter]:
        """Snapshot of every voter, in insertion order."""
        pass

    @abstractmethod
    def delete(self, voter_id: str) -> Voter:
        """
        Permanently delete a voter. There is no undo.

        Raises:
            NotFound: no record has this id

        Returns:
            The deleted voter
        """
        pass

    @abstractmethod
    def update_fields(self, voter_id: str, patch: dict[str, Any]) -> Voter:
        """
        Edit descriptive fields of a voter.

        Raises:
            NotFound: no record has this id
            ValidationError: patch touches id/status fields or unknown fields
            DuplicateIdentity: new id_card belongs to another record

        Returns:
            The updated voter
        """
        pass

    @abstractmethod
    def mark_voted(self, voter_id: str, voted_at: datetime) -> Tuple[Voter, bool]:
        """
        Compare-and-set the check-in status.

        Sets has_voted/voted_at only if the stored has_voted is still False.

        Raises:
            NotFound: no record has this id

        Returns:
            (stored voter, True if this call made the transition)
        """
        pass

    @abstractmethod
    def clear(self) -> int:
        """Delete every voter. Returns the number removed."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of voters in the store."""
        pass

    def __len__(self) -> int:
        return self.count()


def validate_patch(patch: dict[str, Any]) -> dict[str, Any]:
    """
    Check an edit patch against the editable field list.

    Returns:
        The patch with string values trimmed
    """
    cleaned: dict[str, Any] = {}
    for key, value in patch.items():
        if key == "id" or key in STATUS_FIELDS:
            raise ValidationError(
                f"Field '{key}' cannot be edited directly",
                field_name=key,
                expected="one of " + ", ".join(EDITABLE_FIELDS),
            )
        if key not in EDITABLE_FIELDS:
            raise ValidationError(
                f"Unknown voter field '{key}'",
                field_name=key,
                expected="one of " + ", ".join(EDITABLE_FIELDS),
            )
        cleaned[key] = "" if value is None else str(value).strip()
    return cleaned


def create_store(config: Config) -> VoterRepository:
    """
    Build the store selected by ``config.store.backend``.

    Args:
        config: Application configuration

    Returns:
        Store instance
    """
    backend = config.store.backend
    if backend == "json":
        from .json_store import JSONVoterStore
        return JSONVoterStore(config.json_store_path)
    if backend == "postgres":
        if not config.db.is_configured:
            raise ConfigurationError("PostgreSQL store needs DB_HOST, DB_NAME and DB_USER", config_key="DB_HOST")
        from .postgres import PostgresVoterStore
        store = PostgresVoterStore(config.db, max_retries=config.store.max_retries,
                                   retry_delay_sec=config.store.retry_delay_sec)
        store.init_db()
        return store

    from .memory_store import InMemoryVoterStore
    return InMemoryVoterStore()
