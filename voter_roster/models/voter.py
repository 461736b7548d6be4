"""
Voter data models.

Represents individual roster entries and their check-in status.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, asdict, replace
from datetime import datetime, timezone
from typing import Optional, Any

from ..exceptions import ValidationError


# Descriptive fields an administrator may edit. Status fields are owned by check-in.
EDITABLE_FIELDS = (
    "full_name",
    "id_card",
    "address",
    "neighborhood",
    "constituency",
    "voting_group",
    "voting_area",
)

STATUS_FIELDS = ("has_voted", "voted_at")

# Legacy camelCase keys accepted by from_dict
_LEGACY_KEYS = {
    "fullName": "full_name",
    "idCard": "id_card",
    "votingGroup": "voting_group",
    "votingArea": "voting_area",
    "hasVoted": "has_voted",
    "votedAt": "voted_at",
}


def new_voter_id() -> str:
    """Generate an opaque, stable voter id."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        # fromisoformat on older interpreters rejects the "Z" suffix
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError("Invalid timestamp", field_name="voted_at", field_value=value,
                                  expected="ISO-8601")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Voter:
    """
    A registered voter on the roster.

    ``id`` is assigned at creation and never changes. ``id_card`` is the
    natural key used for check-in and de-duplication. ``voted_at`` is set
    exactly when ``has_voted`` is true.
    """

    # Identity
    id: str = field(default_factory=new_voter_id)
    id_card: str = ""

    # Personal information
    full_name: str = ""
    address: str = ""

    # Administrative hierarchy
    neighborhood: str = ""
    constituency: str = ""
    voting_group: str = ""
    voting_area: str = ""

    # Check-in status
    has_voted: bool = False
    voted_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate and clean data after initialization."""
        self.id = str(self.id).strip() or new_voter_id()
        for name in EDITABLE_FIELDS:
            value = getattr(self, name)
            setattr(self, name, "" if value is None else str(value).strip())

        self.has_voted = bool(self.has_voted)
        self.voted_at = parse_timestamp(self.voted_at)

        if self.has_voted and self.voted_at is None:
            raise ValidationError("A voter marked as voted needs a check-in time",
                                  field_name="voted_at", expected="timestamp when has_voted")
        if not self.has_voted and self.voted_at is not None:
            raise ValidationError("A voter not yet voted cannot have a check-in time",
                                  field_name="voted_at", field_value=self.voted_at)

    @property
    def status_label(self) -> str:
        return "Đã bầu" if self.has_voted else "Chưa bầu"

    def copy(self, **changes: Any) -> "Voter":
        """Return a detached copy, optionally with changed fields."""
        return replace(self, **changes)

    def checked_in(self, voted_at: datetime) -> "Voter":
        """Return the Voted copy of this record."""
        return replace(self, has_voted=True, voted_at=voted_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["voted_at"] = self.voted_at.isoformat() if self.voted_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Voter":
        """Create Voter from dictionary (snake_case or legacy camelCase keys)."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            key = _LEGACY_KEYS.get(key, key)
            if key in known:
                kwargs[key] = value
        return cls(**kwargs)
