"""
JSON file-based storage implementation.

Keeps the roster in memory and rewrites one JSON file after every
mutation. Suitable for a single-process deployment; switch to the
PostgreSQL store when several processes share the roster.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Any

from ..exceptions import DataPersistenceError, RosterError
from ..logger import get_logger
from ..models import Voter
from ..utils.file_utils import atomic_write_text
from .memory_store import InMemoryVoterStore

logger = get_logger(__name__)

FORMAT_VERSION = 1


class JSONVoterStore(InMemoryVoterStore):
    """
    JSON file-backed voter store.

    File layout:
        {
          "format_version": 1,
          "saved_at": "<ISO timestamp>",
          "voters": [<voter dict>, ...]
        }

    A bare list of voter dicts (camelCase keys, as exported by the legacy
    browser app) is also accepted on load.
    """

    def __init__(self, path: Path):
        """
        Initialize JSON store.

        Args:
            path: Roster file (created on first write)
        """
        self.path = Path(path)
        self._loading = True
        super().__init__()
        self._load()
        self._loading = False

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug(f"No roster file at {self.path}, starting empty")
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise DataPersistenceError(
                f"Could not read roster file: {e}",
                file_path=str(self.path),
                operation="load",
            ) from e

        records: List[dict[str, Any]] = data if isinstance(data, list) else data.get("voters", [])

        skipped = 0
        for record in records:
            try:
                self.put(Voter.from_dict(record))
            except RosterError as e:
                # Older rosters were append-only and may hold repeated ID cards
                skipped += 1
                logger.warning(f"Skipping stored record {record.get('id', '?')}: {e.message}")

        logger.info(f"Loaded {self.count()} voters from {self.path}" + (f" ({skipped} skipped)" if skipped else ""))

    def _save(self) -> None:
        payload = {
            "format_version": FORMAT_VERSION,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "voters": [voter.to_dict() for voter in self._by_id.values()],
        }
        try:
            atomic_write_text(self.path, json.dumps(payload, ensure_ascii=False, indent=2))
        except OSError as e:
            raise DataPersistenceError(
                f"Could not write roster file: {e}",
                file_path=str(self.path),
                operation="save",
            ) from e

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Apply a mutation, persist it, and roll memory back if the write fails."""
        with self._lock:
            if self._loading:
                yield
                return

            by_id = dict(self._by_id)
            id_by_card = dict(self._id_by_card)
            try:
                yield
                self._save()
            except BaseException:
                self._by_id = by_id
                self._id_by_card = id_by_card
                raise
