"""
Utility functions for the voter roster engine.
"""

from .file_utils import (
    atomic_write_text,
    ensure_dir,
)

from .timing import (
    timed_operation,
    Timer,
    format_duration,
)

__all__ = [
    # File utilities
    "atomic_write_text",
    "ensure_dir",

    # Timing utilities
    "timed_operation",
    "Timer",
    "format_duration",
]
