"""
Logging setup.

Handlers live on the package logger ``voter_roster`` only; every module
logger (``voter_roster.persistence.json_store``, ``voter_roster.checkin``,
...) is a child that propagates to it. One run therefore writes one log file
however many modules log.

- Console: rich, INFO (DEBUG when DEBUG=1)
- File: DEBUG, ``<logs_dir>/roster_<timestamp>.log`` unless LOG_TO_FILE=0

Usage:
    from voter_roster.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Import started")
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from .config import get_config
from .utils.timing import format_duration

ROOT_LOGGER = "voter_roster"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"

_setup_lock = threading.Lock()


def setup_logger(
    log_dir: Optional[Path] = None,
    debug: Optional[bool] = None,
    log_to_file: Optional[bool] = None,
) -> logging.Logger:
    """
    Attach handlers to the package logger. Later calls are no-ops.

    Args:
        log_dir: Directory for the run's log file (default from config)
        debug: Console at DEBUG instead of INFO (default from config)
        log_to_file: Write the DEBUG log file (default from config)

    Returns:
        The package logger
    """
    root = logging.getLogger(ROOT_LOGGER)

    with _setup_lock:
        if root.handlers:
            return root

        config = get_config()
        debug = config.debug if debug is None else debug
        log_dir = config.logs_dir if log_dir is None else Path(log_dir)
        log_to_file = config.log_to_file if log_to_file is None else log_to_file

        root.setLevel(logging.DEBUG)
        root.propagate = False

        console = RichHandler(rich_tracebacks=True, show_path=False)
        console.setLevel(logging.DEBUG if debug else logging.INFO)
        root.addHandler(console)

        if log_to_file:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"roster_{datetime.now():%Y%m%d_%H%M%S}.log"
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            root.addHandler(file_handler)
            root.debug(f"Log file: {log_file}")

    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Logger for a module, under the package logger.

    Names outside the package (``__main__``, tests) are nested under it so
    they share its handlers.
    """
    setup_logger()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def log_timing(logger: logging.Logger, operation: str, duration_sec: float) -> None:
    """Short operations at DEBUG, anything from a second up at INFO."""
    level = logging.DEBUG if duration_sec < 1 else logging.INFO
    logger.log(level, f"{operation} took {format_duration(duration_sec)}")
