"""Logging setup shared by the library service layer and the HTTP server."""

from __future__ import annotations

import logging
import sys

from sheet2tree.config import SHEET2TREE_LOG_LEVEL

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes present on every LogRecord; anything else came in through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}

_configured = False


class ExtraFieldsFormatter(logging.Formatter):
    """Formatter that appends ``extra=`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not extras:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{base} | {rendered}"


def configure_logging(level: str | int | None = None) -> None:
    """Install a single stream handler on the ``sheet2tree`` and ``server`` loggers.

    Calling it more than once only updates the level.
    """
    global _configured
    resolved = level if level is not None else SHEET2TREE_LOG_LEVEL
    for name in ("sheet2tree", "server"):
        logger = logging.getLogger(name)
        logger.setLevel(resolved)
        if not _configured:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(ExtraFieldsFormatter(_LOG_FORMAT))
            logger.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger, configuring the package handlers on first use."""
    if not _configured:
        configure_logging()
    return logging.getLogger(name)
