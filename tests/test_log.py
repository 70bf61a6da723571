"""Tests for logging configuration."""

import json
import logging
import sys

import pytest
from rich.logging import RichHandler

from edgecd.utils.log import JSONFormatter, configure_logging


@pytest.fixture
def edgecd_logger():
    log = logging.getLogger("edgecd")
    saved = (list(log.handlers), log.level, log.propagate)
    yield log
    log.handlers[:] = saved[0]
    log.setLevel(saved[1])
    log.propagate = saved[2]


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("edgecd.sync.reconciler", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    line = JSONFormatter().format(_record("Synced commit %s successfully", "abc123"))
    entry = json.loads(line)

    assert entry["level"] == "info"
    assert entry["logger"] == "edgecd.sync.reconciler"
    assert entry["message"] == "Synced commit abc123 successfully"
    assert "time" in entry


def test_json_formatter_includes_extra_fields():
    entry = json.loads(JSONFormatter().format(_record("Restarting", service="nginx")))
    assert entry["service"] == "nginx"


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "edgecd", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )
    entry = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in entry["exception"]


def test_configure_console(edgecd_logger):
    log = configure_logging("console", "DEBUG")

    assert log is edgecd_logger
    assert len(log.handlers) == 1
    assert isinstance(log.handlers[0], RichHandler)
    assert log.level == logging.DEBUG
    assert log.propagate is False


def test_configure_json_replaces_previous_handler(edgecd_logger):
    configure_logging("console")
    log = configure_logging("json", logging.WARNING)

    assert len(log.handlers) == 1
    assert isinstance(log.handlers[0].formatter, JSONFormatter)
    assert log.level == logging.WARNING


def test_configure_unknown_format(edgecd_logger):
    with pytest.raises(ValueError, match="Unknown log format"):
        configure_logging("xml")
