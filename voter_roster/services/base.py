"""
Shared roster context and the service base class.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..config import Config, get_config
from ..exceptions import RosterError
from ..logger import get_logger
from ..persistence import VoterRepository, InMemoryVoterStore
from .catalog import UserCatalog, AreaCatalog


@dataclass
class RosterContext:
    """
    Explicit handles every service is built from.

    The store is the only shared mutable roster state; the catalogs hold
    accounts and voting areas. Nothing here is a module-level singleton, so
    tests pass an in-memory store and deployments a database-backed one.
    """

    config: Config = field(default_factory=get_config)
    store: VoterRepository = field(default_factory=InMemoryVoterStore)
    users: Optional[UserCatalog] = None
    areas: Optional[AreaCatalog] = None

    def __post_init__(self):
        if self.users is None:
            self.users = UserCatalog(admin_password=self.config.admin_password)
        if self.areas is None:
            self.areas = AreaCatalog(self.config.default_areas, users=self.users, store=self.store)


def _with_fields(message: str, fields: dict[str, Any]) -> str:
    if not fields:
        return message
    return message + " " + " ".join(f"{key}={value}" for key, value in fields.items())


class BaseService:
    """
    Base class for roster services.

    Subclasses set ``name``; their logger is ``voter_roster.<name>`` and
    log helpers append keyword arguments as ``key=value`` pairs.
    """

    name: str = "service"

    def __init__(self, context: RosterContext):
        self.context = context
        self.config = context.config
        self.store = context.store
        self.logger = get_logger(f"voter_roster.{self.name}")

    @property
    def debug_mode(self) -> bool:
        return self.config.debug

    def log_debug(self, message: str, **fields: Any) -> None:
        # Skips building the message outside debug mode
        if self.debug_mode:
            self.logger.debug(_with_fields(message, fields))

    def log_info(self, message: str, **fields: Any) -> None:
        self.logger.info(_with_fields(message, fields))

    def log_warning(self, message: str, **fields: Any) -> None:
        self.logger.warning(_with_fields(message, fields))

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        """Log a failure; roster errors contribute their kind and details."""
        if isinstance(error, RosterError):
            self.logger.error(_with_fields(f"{message}: {error.kind}: {error.message}", error.details))
        elif error is not None:
            self.logger.error(f"{message}: {error}", exc_info=self.debug_mode)
        else:
            self.logger.log(logging.ERROR, message)
