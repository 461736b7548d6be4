"""
Data persistence layer.

Provides the abstract voter store and its in-memory, JSON file and
PostgreSQL implementations.
"""

from .repository import VoterRepository, create_store, validate_patch
from .memory_store import InMemoryVoterStore
from .json_store import JSONVoterStore

__all__ = [
    "VoterRepository",
    "InMemoryVoterStore",
    "JSONVoterStore",
    "create_store",
    "validate_patch",
]
