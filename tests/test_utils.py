import logging

import pytest

from voter_roster.utils import Timer, atomic_write_text, format_duration, timed_operation


def test_format_duration():
    assert format_duration(0.0005) == "500µs"
    assert format_duration(0.25) == "250.0ms"
    assert format_duration(12.5) == "12.50s"
    assert format_duration(125) == "2m 5.0s"
    assert format_duration(3725) == "1h 2m 5s"


def test_timer_accumulates():
    timer = Timer()
    for _ in range(3):
        with timer.section("commit"):
            pass

    assert timer.counts["commit"] == 3
    assert timer.totals["commit"] >= 0
    assert "commit=" in timer.summary()
    assert "x3" in timer.summary()


def test_timed_operation_records_failure(caplog):
    logger = logging.getLogger("test.timing")

    with caplog.at_level(logging.DEBUG, logger="test.timing"):
        with pytest.raises(ValueError):
            with timed_operation("import", logger) as timing:
                raise ValueError("bad row")

    assert not timing.success
    assert timing.error == "bad row"
    assert "failed: bad row" in caplog.text


def test_atomic_write_text_replaces_content(tmp_path):
    path = tmp_path / "nested" / "roster.json"

    atomic_write_text(path, "first")
    atomic_write_text(path, "second")

    assert path.read_text(encoding="utf-8") == "second"
    assert [p.name for p in path.parent.iterdir()] == ["roster.json"]


def test_module_loggers_share_package_handlers():
    from voter_roster.logger import ROOT_LOGGER, get_logger

    logger = get_logger("some.module")

    assert logger.name == f"{ROOT_LOGGER}.some.module"
    assert logging.getLogger(ROOT_LOGGER).handlers
    assert not logger.handlers
