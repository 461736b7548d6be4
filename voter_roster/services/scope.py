"""
Access scope resolution.

Every read of the roster goes through ``scope_voters``: administrators see
everything, staff see only their assigned voting area, and staff without an
assignment see nothing.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from ..exceptions import PermissionDenied
from ..models import CallerScope, Role, Voter


def can_see(scope: CallerScope, voter: Voter) -> bool:
    """Whether a single voter is visible to the caller."""
    if scope.role is Role.ADMIN:
        return True
    area = (scope.assigned_area or "").strip()
    if not area:
        return False
    # Exact, case-sensitive match on the area name
    return voter.voting_area == area


def scope_voters(scope: CallerScope, voters: Iterable[Voter]) -> List[Voter]:
    """
    Filter voters down to the caller's visible subset.

    Pure function; nothing is cached because both the roster and the
    caller's assignment can change between calls.
    """
    if scope.role is Role.ADMIN:
        return list(voters)
    return [voter for voter in voters if can_see(scope, voter)]


def resolve_scope(role: Role, assigned_area: Optional[str], voters: Iterable[Voter]) -> List[Voter]:
    """Same as ``scope_voters`` for callers holding a bare (role, area) pair."""
    return scope_voters(CallerScope(role=Role.parse(role), assigned_area=assigned_area), voters)


def require_admin(scope: CallerScope, action: str) -> None:
    """
    Raise PermissionDenied unless the caller is an administrator.

    Args:
        scope: Caller scope
        action: Short action name for the error details (e.g. "delete_voter")
    """
    if scope.role is not Role.ADMIN:
        raise PermissionDenied(
            f"Only administrators may {action.replace('_', ' ')}",
            action=action,
            role=scope.role.value,
        )
