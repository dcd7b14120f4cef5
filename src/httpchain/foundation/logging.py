"""Logging setup for httpchain.

Library modules log through stdlib loggers under the ``httpchain`` namespace
(``httpchain.loaders``, ``httpchain.transport``, ``httpchain.cache``,
``httpchain.connection``). Applications that want output call
``configure_logging`` once at startup; it installs a single handler rendering
either human-readable text or JSON lines.

Example:
    >>> from httpchain.foundation.logging import configure_logging
    >>> configure_logging()  # uses HTTPCHAIN_LOG_* settings
    >>> configure_logging(level="DEBUG", format="json")
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO

import orjson

from httpchain.foundation.config import get_settings

if TYPE_CHECKING:
    from httpchain.foundation.config import LoggingSettings

ROOT_LOGGER = "httpchain"

# Attributes every LogRecord has; anything else was passed via `extra=`
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class TextFormatter(logging.Formatter):
    """Format: HH:MM:SS.mmm [level] logger: message key=value"""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=UTC).strftime("%H:%M:%S.%f")[:-3]
        extras = " ".join(f"{k}={v}" for k, v in sorted(_extras(record).items()))
        line = f"{ts} [{record.levelname.lower()}] {record.name}: {record.getMessage()}"
        if extras:
            line = f"{line} {extras}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonFormatter(logging.Formatter):
    """JSON Lines output for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(data, default=str).decode()


def _extras(record: logging.LogRecord) -> dict[str, object]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    level: str | None = None,
    format: str | None = None,  # noqa: A002 - matches the settings field
    output: TextIO | None = None,
) -> logging.Logger:
    """Install one handler on the ``httpchain`` logger.

    Explicit arguments override the settings. Calling again replaces the
    handler installed by a previous call instead of stacking another one.
    """
    settings = settings or get_settings().logging
    level = (level or settings.level).upper()
    fmt = format or settings.format

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        if getattr(handler, "_httpchain", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(output or sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())
    handler._httpchain = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
    return logger
