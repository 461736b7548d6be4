"""
Custom exceptions for the voter roster engine.

All application-specific exceptions inherit from RosterError. Each class
carries a stable ``kind`` string so callers (and import rejections) can
report the error category without depending on class names.
"""

from __future__ import annotations

from typing import Optional, Any


class RosterError(Exception):
    """
    Base exception for all application errors.

    Keyword arguments become ``details``; ``None`` values are dropped so
    only what the raiser actually knew is reported.

    Attributes:
        kind: Stable error category
        message: Human-readable error message
        details: Context for logs and rejection reports
        retryable: Whether repeating the same call may succeed
    """

    kind: str = "RosterError"
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = {key: value for key, value in details.items() if value is not None}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"


class ConfigurationError(RosterError):
    """
    Invalid or missing configuration.

    Examples:
        - Unknown store backend
        - Invalid import policy
    """

    kind = "ConfigurationError"

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, config_key=config_key)


class DuplicateIdentity(RosterError):
    """An identity card number is already held by another voter record."""

    kind = "DuplicateIdentity"

    def __init__(self, message: str, id_card: Optional[str] = None, existing_id: Optional[str] = None):
        super().__init__(message, id_card=id_card or None, existing_id=existing_id or None)


class NotFound(RosterError):
    """No record matches the given identity card or id."""

    kind = "NotFound"

    def __init__(self, message: str, id_card: Optional[str] = None, record_id: Optional[str] = None):
        super().__init__(message, id_card=id_card or None, record_id=record_id or None)


class OutOfScope(RosterError):
    """
    The record exists but belongs to a voting area outside the caller's scope.

    Details only echo what the caller already supplied; the voter's own
    fields are never included.
    """

    kind = "OutOfScope"

    def __init__(self, message: str, id_card: Optional[str] = None, caller_area: Optional[str] = None):
        super().__init__(message, id_card=id_card or None, caller_area=caller_area or None)


class MissingIdentity(RosterError):
    """An imported row has no identity card number."""

    kind = "MissingIdentity"

    def __init__(self, message: str = "Row has no identity card number", row_number: Optional[int] = None):
        super().__init__(message, row_number=row_number)


class PermissionDenied(RosterError):
    """
    The caller's role lacks rights for the attempted action.

    Examples:
        - Staff deleting a voter
        - Staff importing rows
        - Deleting the built-in administrator account
    """

    kind = "PermissionDenied"

    def __init__(self, message: str, action: Optional[str] = None, role: Optional[str] = None):
        super().__init__(message, action=action or None, role=role or None)


class ConcurrentConflict(RosterError):
    """
    A mutation could not be applied after exhausting retries.

    Only raised by stores that retry optimistically (networked backends).
    """

    kind = "ConcurrentConflict"
    retryable = True

    def __init__(self, message: str, record_id: Optional[str] = None, attempts: int = 0):
        super().__init__(message, attempts=attempts, record_id=record_id or None)


class DataPersistenceError(RosterError):
    """
    Failed to save or load data.

    ``operation`` is one of load, save or connect, or the store method name.
    """

    kind = "DataPersistenceError"

    def __init__(self, message: str, file_path: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message, file_path=file_path or None, operation=operation or None)


class ValidationError(RosterError):
    """
    Data validation failed.

    Examples:
        - voted_at set without has_voted
        - Patch touching a status field
        - Unknown field name
    """

    kind = "ValidationError"

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        expected: Optional[str] = None
    ):
        # Values are truncated to 100 characters
        shown = None if field_value is None else str(field_value)[:100]
        super().__init__(message, field_name=field_name or None, field_value=shown, expected=expected or None)
