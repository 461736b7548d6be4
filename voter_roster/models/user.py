"""
Staff accounts, voting areas and the derived caller scope.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Any

from ..exceptions import ValidationError

# Username of the built-in administrator account
BUILTIN_ADMIN_USERNAME = "admin"


class Role(Enum):
    ADMIN = "admin"
    STAFF = "staff"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Accept enum members, values or names in any case."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for role in cls:
            if text in (role.value, role.name.lower()):
                return role
        raise ValidationError(f"Unknown role: {value!r}", field_name="role", field_value=value,
                              expected=" or ".join(role.value for role in cls))


@dataclass
class User:
    """A person who operates the system (administrator or field staff)."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    full_name: str = ""
    position: str = ""
    email: str = ""
    phone: str = ""
    username: str = ""
    password_hash: str = ""
    role: Role = Role.STAFF

    # Assigned voting area name (staff only)
    voting_area: Optional[str] = None

    def __post_init__(self):
        self.role = Role.parse(self.role)
        self.username = self.username.strip()
        if self.voting_area is not None:
            self.voting_area = self.voting_area.strip() or None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_builtin_admin(self) -> bool:
        """The built-in administrator can be neither deleted nor demoted."""
        return self.username == BUILTIN_ADMIN_USERNAME

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        data = asdict(self)
        data["role"] = self.role.value
        if not include_password:
            data.pop("password_hash", None)
        return data


@dataclass
class VotingArea:
    """A named polling area in the flat area catalog."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""

    def __post_init__(self):
        self.name = self.name.strip()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CallerScope:
    """
    The (role, assigned area) pair of the current caller.

    Derived from the authenticated user on every request; never persisted.
    """

    role: Role
    assigned_area: Optional[str] = None

    @classmethod
    def for_user(cls, user: User) -> "CallerScope":
        return cls(role=user.role, assigned_area=user.voting_area)

    @classmethod
    def admin(cls) -> "CallerScope":
        return cls(role=Role.ADMIN)

    @classmethod
    def staff(cls, area: Optional[str]) -> "CallerScope":
        return cls(role=Role.STAFF, assigned_area=area)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def describe(self) -> str:
        if self.is_admin:
            return "admin"
        return f"staff[{self.assigned_area or 'unassigned'}]"
