"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file at the project root (never overrides 1)
3. Default values

Usage:
    from voter_roster.config import get_config
    config = get_config()
    print(config.store.backend)  # "memory" unless ROSTER_STORE is set
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from .exceptions import ConfigurationError

N = TypeVar("N", int, float)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def load_env_file(path: Path = PROJECT_ROOT / ".env") -> int:
    """
    Copy KEY=VALUE lines of a .env file into os.environ.

    Blank lines, comments and malformed lines are skipped; quotes around
    values are dropped. Variables that already have a value win.

    Returns:
        Number of variables set
    """
    if not path.is_file():
        return 0

    loaded = 0
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.strip().partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        if not os.environ.get(key):
            os.environ[key] = value.strip().strip("\"'")
            loaded += 1
    return loaded


load_env_file()


def _env_str(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_bool(key: str, default: bool = False) -> bool:
    value = _env_str(key).lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def _env_number(key: str, default: N, cast: Callable[[str], N]) -> N:
    """Numeric variable; a value that does not parse is a configuration error."""
    value = _env_str(key)
    if not value:
        return default
    try:
        return cast(value)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got '{value}'", config_key=key)


def _env_list(key: str, default: List[str]) -> List[str]:
    """Comma-separated list; empty items are dropped."""
    value = _env_str(key)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]

STORE_BACKENDS = ("memory", "json", "postgres")
IMPORT_POLICIES = ("keep_first", "keep_latest")

DEFAULT_AREAS = ["Khu vực 1", "Khu vực 2", "Khu vực 3", "Khu vực 4"]


@dataclass
class StoreConfig:
    """Voter record store selection and retry settings."""
    backend: str = field(default_factory=lambda: _env_str("ROSTER_STORE", "memory").lower())
    json_path: str = field(default_factory=lambda: _env_str("ROSTER_JSON_PATH", "data/roster.json"))

    # Retry configuration (networked stores only)
    max_retries: int = field(default_factory=lambda: _env_number("STORE_MAX_RETRIES", 3, int))
    retry_delay_sec: float = field(default_factory=lambda: _env_number("STORE_RETRY_DELAY_SEC", 0.2, float))

    def __post_init__(self):
        if self.backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"Unknown store backend '{self.backend}' (expected one of {', '.join(STORE_BACKENDS)})",
                config_key="ROSTER_STORE",
            )


@dataclass
class DBConfig:
    """Database configuration (PostgreSQL)."""
    host: str = field(default_factory=lambda: _env_str("DB_HOST", ""))
    port: int = field(default_factory=lambda: _env_number("DB_PORT", 5432, int))
    name: str = field(default_factory=lambda: _env_str("DB_NAME", ""))
    user: str = field(default_factory=lambda: _env_str("DB_USER", ""))
    password: str = field(default_factory=lambda: os.environ.get("DB_PASSWORD", ""))
    schema: str = field(default_factory=lambda: _env_str("DB_SCHEMA", "public"))
    ssl_mode: str = field(default_factory=lambda: _env_str("DB_SSL_MODE", "prefer"))

    @property
    def is_configured(self) -> bool:
        """Check if minimal DB config is present."""
        return bool(self.host and self.name and self.user)


@dataclass
class ImportConfig:
    """Bulk import settings."""
    policy: str = field(default_factory=lambda: _env_str("IMPORT_POLICY", "keep_first").lower())
    placeholder: str = field(default_factory=lambda: _env_str("IMPORT_PLACEHOLDER", "-"))
    unknown_name: str = field(default_factory=lambda: _env_str("IMPORT_UNKNOWN_NAME", "Không rõ"))

    def __post_init__(self):
        if self.policy not in IMPORT_POLICIES:
            raise ConfigurationError(
                f"Unknown import policy '{self.policy}' (expected one of {', '.join(IMPORT_POLICIES)})",
                config_key="IMPORT_POLICY",
            )


@dataclass
class SearchConfig:
    """Search and listing settings."""
    # Single matches auto-resolve only when the term is longer than this
    auto_resolve_min_length: int = field(
        default_factory=lambda: _env_number("SEARCH_AUTO_RESOLVE_MIN_LENGTH", 5, int)
    )
    page_size: int = field(default_factory=lambda: _env_number("PAGE_SIZE", 10, int))


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug mode.
    """

    # Base directory (project root)
    base_dir: Path = PROJECT_ROOT

    # Directory paths
    logs_dir: Path = field(default=None)
    exports_dir: Path = field(default=None)

    # Debug mode (enables verbose console logging)
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _env_bool("LOG_TO_FILE", True))

    # Voting areas seeded into an empty area catalog
    default_areas: List[str] = field(default_factory=lambda: _env_list("DEFAULT_AREAS", DEFAULT_AREAS))

    # Initial password of the built-in administrator account
    admin_password: str = field(default_factory=lambda: os.environ.get("ADMIN_PASSWORD", "admin"))

    # Sub-configurations
    store: StoreConfig = field(default_factory=StoreConfig)
    db: DBConfig = field(default_factory=DBConfig)
    importer: ImportConfig = field(default_factory=ImportConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / _env_str("LOG_DIR", "logs")
        if self.exports_dir is None:
            self.exports_dir = self.base_dir / _env_str("EXPORT_DIR", "exports")

    @property
    def json_store_path(self) -> Path:
        """Absolute path of the JSON roster file."""
        path = Path(self.store.json_path)
        if not path.is_absolute():
            path = self.base_dir / path
        return path


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
