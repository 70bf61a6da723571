"""Logging setup for the edge-cd agent.

Two output formats are supported:

- ``console``: human-readable, rendered by rich
- ``json``: one JSON object per line, for log shippers

Only the ``edgecd`` logger tree is configured; the root logger is untouched.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler

LOG_FORMATS = ("console", "json")

# Attributes present on every LogRecord; anything else came in through ``extra``.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Formats records as ``{"time", "level", "logger", "message", ...extra}``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(fmt: str = "console", level: str | int = "INFO") -> logging.Logger:
    """Install a handler for ``fmt`` on the ``edgecd`` logger and return it.

    Calling it again replaces the previous handler.

    Raises:
        ValueError: If ``fmt`` is not a known format.
    """
    if fmt not in LOG_FORMATS:
        raise ValueError(f"Unknown log format '{fmt}'. Must be one of: {', '.join(LOG_FORMATS)}")

    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)

    log = logging.getLogger("edgecd")
    for existing in list(log.handlers):
        log.removeHandler(existing)
    log.addHandler(handler)
    log.setLevel(level if isinstance(level, int) else level.upper())
    log.propagate = False
    return log
