"""
Timing helpers for service instrumentation.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional


def format_duration(seconds: float) -> str:
    """Human-readable duration: 850µs, 12.3ms, 4.56s, 2m 5.0s, 1h 2m 5s."""
    if seconds < 0.001:
        return f"{seconds * 1_000_000:.0f}µs"
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{int(minutes)}m {secs:.1f}s"
    hours, minutes = divmod(int(minutes), 60)
    return f"{hours}h {minutes}m {secs:.0f}s"


@dataclass
class TimingResult:
    """Outcome of one ``timed_operation`` block, filled in on exit."""
    name: str
    duration_sec: float = 0.0
    success: bool = True
    error: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.name}: {format_duration(self.duration_sec)}"
        if not self.success:
            text += f" (failed: {self.error})"
        return text


@contextmanager
def timed_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    log_level: int = logging.DEBUG,
) -> Iterator[TimingResult]:
    """
    Time a block and optionally log the result.

    Exceptions propagate; the result records the failure first.

        with timed_operation("import_rows", logger) as timing:
            ...
    """
    result = TimingResult(name=name)
    start = time.perf_counter()
    try:
        yield result
    except Exception as e:
        result.success = False
        result.error = str(e)
        raise
    finally:
        result.duration_sec = time.perf_counter() - start
        if logger is not None:
            logger.log(log_level, str(result))


@dataclass
class Timer:
    """
    Accumulates time per named section across repeated calls.

        timer = Timer()
        with timer.section("commit"):
            ...
        logger.debug(timer.summary())
    """
    totals: dict[str, float] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)
    created: float = field(default_factory=time.perf_counter)

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.totals[name] = self.totals.get(name, 0.0) + time.perf_counter() - start
            self.counts[name] = self.counts.get(name, 0) + 1

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.created

    def summary(self) -> str:
        parts = []
        for name in sorted(self.totals):
            part = f"{name}={format_duration(self.totals[name])}"
            if self.counts[name] > 1:
                part += f"x{self.counts[name]}"
            parts.append(part)
        parts.append(f"elapsed={format_duration(self.elapsed)}")
        return "Timing " + " ".join(parts)
