"""
User and voting-area catalogs.

Both catalogs are small and read-mostly. Each write bumps ``version`` so a
caller holding a cached copy can tell it is stale.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Iterable, List, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from ..exceptions import NotFound, PermissionDenied, ValidationError
from ..logger import get_logger
from ..models import BUILTIN_ADMIN_USERNAME, CallerScope, Role, User, VotingArea
from .scope import require_admin

logger = get_logger(__name__)

_hasher = PasswordHasher(time_cost=2, memory_cost=19456, parallelism=1)

USER_EDITABLE_FIELDS = ("full_name", "position", "email", "phone", "username", "role", "voting_area")


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


class UserCatalog:
    """
    Staff and administrator accounts.

    The built-in ``admin`` account is created on first use and can be
    neither deleted nor demoted.
    """

    def __init__(self, users: Optional[Iterable[User]] = None, admin_password: str = "admin"):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self.version = 0

        for user in users or []:
            self._users[user.id] = user

        if self.find_by_username(BUILTIN_ADMIN_USERNAME) is None:
            admin = User(
                id="1",
                full_name="Quản trị viên",
                position="Hệ thống",
                email="admin@election.gov.vn",
                username=BUILTIN_ADMIN_USERNAME,
                password_hash=hash_password(admin_password),
                role=Role.ADMIN,
            )
            self._users[admin.id] = admin

    def _bump(self) -> None:
        self.version += 1

    def list(self) -> List[User]:
        with self._lock:
            return [replace(u) for u in self._users.values()]

    def get(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFound(f"No user with id {user_id}", record_id=user_id)
            return replace(user)

    def find_by_username(self, username: str) -> Optional[User]:
        username = username.strip()
        with self._lock:
            for user in self._users.values():
                if user.username == username:
                    return replace(user)
        return None

    def search(self, term: str) -> List[User]:
        """Case-insensitive match on full name or username; empty term lists all."""
        needle = term.strip().casefold()
        return [
            u for u in self.list()
            if not needle or needle in u.full_name.casefold() or needle in u.username.casefold()
        ]

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user when the credentials match, else None."""
        user = self.find_by_username(username)
        if user is None or not verify_password(user.password_hash, password):
            return None
        return user

    def add(self, user: User, password: str, caller: CallerScope) -> User:
        """
        Create an account.

        Raises:
            PermissionDenied: caller is not an administrator
            ValidationError: username missing or already taken
        """
        require_admin(caller, "manage_users")
        if not user.username:
            raise ValidationError("Username is required", field_name="username")
        if not password:
            raise ValidationError("Password is required", field_name="password")

        with self._lock:
            if self.find_by_username(user.username) is not None:
                raise ValidationError(f"Username '{user.username}' is already taken",
                                      field_name="username", field_value=user.username)
            stored = replace(user, password_hash=hash_password(password))
            self._users[stored.id] = stored
            self._bump()

        logger.info(f"User added: {stored.username} ({stored.role.value})")
        return replace(stored)

    def update(self, user_id: str, changes: dict[str, Any], caller: CallerScope,
               password: Optional[str] = None) -> User:
        """
        Edit an account. ``password`` replaces the stored hash when given.

        Raises:
            PermissionDenied: caller is not an administrator, or the change
                would demote or rename the built-in administrator
            ValidationError: unknown field or duplicate username
        """
        require_admin(caller, "manage_users")
        unknown = set(changes) - set(USER_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown user field(s): {', '.join(sorted(unknown))}",
                                  expected="one of " + ", ".join(USER_EDITABLE_FIELDS))

        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise NotFound(f"No user with id {user_id}", record_id=user_id)

            updated = replace(current, **changes)
            if current.is_builtin_admin and (not updated.is_builtin_admin or not updated.is_admin):
                raise PermissionDenied("The built-in administrator cannot be renamed or demoted",
                                       action="manage_users", role=caller.role.value)

            clash = self.find_by_username(updated.username)
            if clash is not None and clash.id != user_id:
                raise ValidationError(f"Username '{updated.username}' is already taken",
                                      field_name="username", field_value=updated.username)

            if password:
                updated = replace(updated, password_hash=hash_password(password))
            self._users[user_id] = updated
            self._bump()

        return replace(updated)

    def delete(self, user_id: str, caller: CallerScope) -> User:
        """
        Remove an account permanently.

        Raises:
            PermissionDenied: caller is not an administrator, or the target is
                the built-in administrator
        """
        require_admin(caller, "manage_users")
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise NotFound(f"No user with id {user_id}", record_id=user_id)
            if current.is_builtin_admin:
                raise PermissionDenied("The built-in administrator cannot be deleted",
                                       action="delete_user", role=caller.role.value)
            del self._users[user_id]
            self._bump()

        logger.info(f"User deleted: {current.username}")
        return current

    def reassign_area(self, old_name: str, new_name: str) -> int:
        """Point every account assigned to ``old_name`` at ``new_name``."""
        with self._lock:
            moved = 0
            for user_id, user in list(self._users.items()):
                if user.voting_area == old_name:
                    self._users[user_id] = replace(user, voting_area=new_name)
                    moved += 1
            if moved:
                self._bump()
        return moved


class AreaCatalog:
    """
    Flat list of voting areas.

    Voters and users refer to areas by name, so ``rename`` can cascade the
    new name into both.
    """

    def __init__(self, names: Iterable[str] = (), users: Optional[UserCatalog] = None, store: Any = None):
        self._lock = threading.RLock()
        self._areas: dict[str, VotingArea] = {}
        self.version = 0
        self.users = users
        self.store = store

        for index, name in enumerate(names, start=1):
            area = VotingArea(id=str(index), name=name)
            if area.name and self.find(area.name) is None:
                self._areas[area.id] = area

    def list(self) -> List[VotingArea]:
        with self._lock:
            return [replace(a) for a in self._areas.values()]

    def names(self) -> List[str]:
        return [a.name for a in self.list()]

    def find(self, name: str) -> Optional[VotingArea]:
        with self._lock:
            for area in self._areas.values():
                if area.name == name:
                    return replace(area)
        return None

    def add(self, name: str, caller: CallerScope) -> VotingArea:
        require_admin(caller, "manage_areas")
        area = VotingArea(name=name)
        if not area.name:
            raise ValidationError("Area name is required", field_name="name")

        with self._lock:
            if self.find(area.name) is not None:
                raise ValidationError(f"Area '{area.name}' already exists", field_name="name",
                                      field_value=area.name)
            self._areas[area.id] = area
            self.version += 1

        logger.info(f"Voting area added: {area.name}")
        return replace(area)

    def rename(self, area_id: str, new_name: str, caller: CallerScope, cascade: bool = True) -> VotingArea:
        """
        Rename an area.

        With ``cascade`` the voters and users that referenced the old name
        are rewritten to the new one; without it they keep the old name and
        fall out of the catalog.
        """
        require_admin(caller, "manage_areas")
        new_name = new_name.strip()
        if not new_name:
            raise ValidationError("Area name is required", field_name="name")

        with self._lock:
            current = self._areas.get(area_id)
            if current is None:
                raise NotFound(f"No voting area with id {area_id}", record_id=area_id)
            clash = self.find(new_name)
            if clash is not None and clash.id != area_id:
                raise ValidationError(f"Area '{new_name}' already exists", field_name="name",
                                      field_value=new_name)

            renamed = replace(current, name=new_name)
            self._areas[area_id] = renamed
            self.version += 1

        if cascade and current.name != new_name:
            moved_users = self.users.reassign_area(current.name, new_name) if self.users else 0
            moved_voters = 0
            if self.store is not None:
                for voter in self.store.all():
                    if voter.voting_area == current.name:
                        self.store.update_fields(voter.id, {"voting_area": new_name})
                        moved_voters += 1
            logger.info(f"Voting area renamed: {current.name} -> {new_name} "
                        f"(voters={moved_voters}, users={moved_users})")

        return replace(renamed)

    def delete(self, area_id: str, caller: CallerScope) -> VotingArea:
        """
        Remove an area permanently.

        Voters and users that still name it are left untouched; staff
        assigned to it keep an assignment that matches no catalog entry.
        """
        require_admin(caller, "manage_areas")
        with self._lock:
            current = self._areas.pop(area_id, None)
            if current is None:
                raise NotFound(f"No voting area with id {area_id}", record_id=area_id)
            self.version += 1

        logger.warning(f"Voting area deleted: {current.name}")
        return current
