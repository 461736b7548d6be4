"""
Bulk import of voter rows.

Rows arrive as loosely typed dicts (one per spreadsheet line). Headers are
mapped through an alias table to canonical Voter fields, rows without an
identity card are rejected, and identity-card collisions are resolved by the
configured policy. A bad row never aborts the batch.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import DuplicateIdentity, MissingIdentity, ValidationError
from ..models import EDITABLE_FIELDS, ImportResult, RejectedRow, Voter
from ..utils.timing import Timer, timed_operation
from .base import BaseService


class ImportPolicy(Enum):
    """Which record survives when two share an identity card."""
    KEEP_FIRST = "keep_first"
    KEEP_LATEST = "keep_latest"


# Canonical field -> accepted header names, in priority order
COLUMN_ALIASES: dict[str, Tuple[str, ...]] = {
    "full_name": ("Họ tên", "Họ và tên", "Name", "Full name", "full_name", "fullName"),
    "id_card": ("CCCD", "Số CCCD", "ID", "idCard", "id_card"),
    "address": ("Địa chỉ", "Địa chỉ nhà", "Address"),
    "neighborhood": ("Khu phố", "Thôn", "Phường", "Neighborhood"),
    "constituency": ("Đơn vị bầu cử", "Đơn vị", "Constituency"),
    "voting_group": ("Tổ bầu cử", "Tổ", "Group", "votingGroup", "voting_group"),
    "voting_area": ("Khu vực bỏ phiếu", "Khu vực", "Area", "votingArea", "voting_area"),
}


def normalize_header(header: Any) -> str:
    return str(header).strip().casefold()


def cell_text(value: Any) -> str:
    """
    Render a parsed cell as trimmed text.

    Spreadsheet parsers hand back numbers for numeric columns; integral
    floats lose their ".0" so 1.0e11 reads as "100000000000".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


class ColumnMap:
    """
    Header resolution for one import, built once from the headers present.

    Headers outside the alias table are ignored.
    """

    def __init__(self, headers: Iterable[Any]):
        present: dict[str, List[Any]] = {}
        for header in headers:
            present.setdefault(normalize_header(header), []).append(header)

        self.sources: dict[str, List[Any]] = {}
        for field_name, aliases in COLUMN_ALIASES.items():
            keys: List[Any] = []
            for alias in aliases:
                for header in present.get(normalize_header(alias), []):
                    if header not in keys:
                        keys.append(header)
            self.sources[field_name] = keys

    @classmethod
    def from_rows(cls, rows: Sequence[Mapping[str, Any]]) -> "ColumnMap":
        headers: dict[Any, None] = {}
        for row in rows:
            for key in row.keys():
                headers.setdefault(key, None)
        return cls(headers)

    @property
    def unmapped_fields(self) -> List[str]:
        return [name for name, keys in self.sources.items() if not keys]

    def value(self, row: Mapping[str, Any], field_name: str) -> str:
        """First non-blank value among the field's aliases."""
        for key in self.sources[field_name]:
            text = cell_text(row.get(key))
            if text:
                return text
        return ""


class ImportService(BaseService):
    """Normalizes rows into voters and merges them into the store."""

    name = "importer"

    def _policy(self, policy: Optional[ImportPolicy | str]) -> ImportPolicy:
        if policy is None:
            policy = self.config.importer.policy
        if isinstance(policy, ImportPolicy):
            return policy
        try:
            return ImportPolicy(str(policy).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown import policy: {policy!r}",
                field_name="policy",
                field_value=policy,
                expected=" or ".join(p.value for p in ImportPolicy),
            ) from None

    def normalize(
        self, rows: Sequence[Mapping[str, Any]]
    ) -> Tuple[List[Tuple[int, dict[str, Any], Voter]], List[RejectedRow]]:
        """
        Map rows to fresh NotVoted voters.

        Returns:
            (candidates as (row_number, row, voter), rows rejected for MissingIdentity)
        """
        columns = ColumnMap.from_rows(rows)
        if columns.unmapped_fields:
            self.log_debug("Columns not found in input", fields=",".join(columns.unmapped_fields))

        placeholder = self.config.importer.placeholder
        unknown_name = self.config.importer.unknown_name

        candidates: List[Tuple[int, dict[str, Any], Voter]] = []
        rejected: List[RejectedRow] = []

        for row_number, row in enumerate(rows, start=1):
            row = dict(row)
            id_card = columns.value(row, "id_card")
            if not id_card:
                error = MissingIdentity(row_number=row_number)
                rejected.append(RejectedRow(row_number, row, error.kind, error.message))
                continue

            values = {name: columns.value(row, name) or placeholder for name in EDITABLE_FIELDS}
            values["id_card"] = id_card
            if values["full_name"] == placeholder:
                values["full_name"] = unknown_name

            candidates.append((row_number, row, Voter(**values)))

        return candidates, rejected

    @staticmethod
    def _dedup_batch(
        candidates: List[Tuple[int, dict[str, Any], Voter]],
        policy: ImportPolicy,
    ) -> Tuple[List[Tuple[int, dict[str, Any], Voter]], List[RejectedRow]]:
        winners: dict[str, Tuple[int, dict[str, Any], Voter]] = {}
        rejected: List[RejectedRow] = []

        for candidate in candidates:
            row_number, row, voter = candidate
            previous = winners.get(voter.id_card)
            if previous is None:
                winners[voter.id_card] = candidate
            elif policy is ImportPolicy.KEEP_FIRST:
                rejected.append(RejectedRow(
                    row_number, row, DuplicateIdentity.kind,
                    f"Identity card {voter.id_card} repeats row {previous[0]}",
                ))
            else:
                rejected.append(RejectedRow(
                    previous[0], previous[1], DuplicateIdentity.kind,
                    f"Identity card {voter.id_card} superseded by row {row_number}",
                ))
                winners[voter.id_card] = candidate

        kept = sorted(winners.values(), key=lambda c: c[0])
        return kept, rejected

    def preview(self, rows: Sequence[Mapping[str, Any]], policy: Optional[ImportPolicy | str] = None) -> ImportResult:
        """
        Dry run: what ``import_rows`` would do, without writing.

        Collisions with the current roster are reported as they stand now;
        the actual import re-checks them.
        """
        policy = self._policy(policy)
        candidates, rejected = self.normalize(rows)
        kept, duplicates = self._dedup_batch(candidates, policy)
        rejected.extend(duplicates)

        result = ImportResult()
        for row_number, row, voter in kept:
            existing = self.store.get(voter.id_card)
            if existing is None:
                result.accepted.append(voter)
            elif policy is ImportPolicy.KEEP_LATEST:
                replacement = existing.copy(**_descriptive(voter))
                result.accepted.append(replacement)
                result.replaced.append(replacement)
            else:
                rejected.append(_store_collision(row_number, row, voter))

        result.rejected = sorted(rejected, key=lambda r: r.row_number)
        return result

    def import_rows(self, rows: Sequence[Mapping[str, Any]], policy: Optional[ImportPolicy | str] = None) -> ImportResult:
        """
        Normalize rows and merge them into the roster.

        Every accepted voter gets a fresh id and starts NotVoted, except that
        under KEEP_LATEST an existing record keeps its id and check-in status
        and only has its descriptive fields overwritten. The batch reaches
        the store in a single ``put_many`` call.

        Returns:
            ImportResult with accepted, rejected and replaced partitions
        """
        policy = self._policy(policy)
        rows = list(rows)
        result = ImportResult()
        timer = Timer()

        with timed_operation("import_rows", self.logger):
            with timer.section("normalize"):
                candidates, rejected = self.normalize(rows)
                kept, duplicates = self._dedup_batch(candidates, policy)
                rejected.extend(duplicates)

            with timer.section("merge"):
                batch, replaced_ids = self._merge_batch(kept, policy)

            with timer.section("commit"):
                stored, collisions = self.store.put_many(batch)

            by_card = {voter.id_card: (row_number, row) for row_number, row, voter in kept}
            for voter in stored:
                result.accepted.append(voter)
                if voter.id in replaced_ids:
                    result.replaced.append(voter)

            for voter in collisions:
                row_number, row = by_card[voter.id_card]
                if policy is ImportPolicy.KEEP_LATEST:
                    # The card changed hands after the roster snapshot
                    try:
                        stored_voter, replaced = self._upsert(voter)
                    except DuplicateIdentity:
                        rejected.append(_store_collision(row_number, row, voter))
                        continue
                    result.accepted.append(stored_voter)
                    if replaced:
                        result.replaced.append(stored_voter)
                else:
                    rejected.append(_store_collision(row_number, row, voter))

        result.rejected = sorted(rejected, key=lambda r: r.row_number)
        self.log_info("Import finished", rows=len(rows), policy=policy.value, **result.summary())
        self.log_debug(timer.summary())
        return result

    def _merge_batch(
        self,
        kept: List[Tuple[int, dict[str, Any], Voter]],
        policy: ImportPolicy,
    ) -> Tuple[List[Voter], set[str]]:
        """
        Voters to put, and the ids of existing records they overwrite.

        Under KEEP_LATEST a card already on the roster becomes a copy of the
        stored record carrying the row's descriptive fields.
        """
        if policy is ImportPolicy.KEEP_FIRST:
            return [voter for _, _, voter in kept], set()

        on_roster = {voter.id_card: voter for voter in self.store.all()}
        batch: List[Voter] = []
        replaced_ids: set[str] = set()
        for _, _, voter in kept:
            existing = on_roster.get(voter.id_card)
            if existing is None:
                batch.append(voter)
            else:
                batch.append(existing.copy(**_descriptive(voter)))
                replaced_ids.add(existing.id)
        return batch, replaced_ids

    def _upsert(self, voter: Voter) -> Tuple[Voter, bool]:
        """Insert, or overwrite descriptive fields of the record already holding the card."""
        existing = self.store.get(voter.id_card)
        if existing is None:
            try:
                return self.store.put(voter), False
            except DuplicateIdentity:
                # Inserted concurrently since the lookup
                existing = self.store.get(voter.id_card)
                if existing is None:
                    raise
        return self.store.update_fields(existing.id, _descriptive(voter)), True


def _descriptive(voter: Voter) -> dict[str, str]:
    return {name: getattr(voter, name) for name in EDITABLE_FIELDS if name != "id_card"}


def _store_collision(row_number: int, row: dict[str, Any], voter: Voter) -> RejectedRow:
    return RejectedRow(
        row_number, row, DuplicateIdentity.kind,
        f"Identity card {voter.id_card} is already on the roster",
    )
