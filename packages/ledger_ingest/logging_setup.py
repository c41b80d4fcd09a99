"""Logging for the ``ledger_ingest`` package.

Library modules only ever call ``get_logger("ledger_ingest.<module>")``; they
never attach handlers. The package root logger stays silent (``NullHandler``)
until an entrypoint calls :func:`configure_logging` once, which installs a
single ``StreamHandler``.

Environment:

- ``LEDGER_INGEST_LOG_LEVEL``: level name or number, used when no explicit
  level is passed (default ``INFO``).
- ``LEDGER_INGEST_LOG_FORMAT``: format string, used when no explicit format
  is passed.

Row-level parse failures are logged at DEBUG, undetected files and
inconclusive decodes at WARNING, and configuration mismatches at ERROR, so
``LEDGER_INGEST_LOG_LEVEL=DEBUG`` is the switch for diagnosing an export that
yields fewer transactions than expected.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "ledger_ingest"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.strip():
        name = level.strip().upper()
        if name.isdigit():
            return int(name)
        numeric = logging.getLevelNamesMapping().get(name)
        if numeric is not None:
            return numeric
    env_val = os.getenv("LEDGER_INGEST_LOG_LEVEL")
    if env_val and env_val != level:
        return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Attach the package's single stream handler; later calls are no-ops.

    Parameters
    ----------
    level:
        ``int`` or level name. Unknown names and ``None`` fall back to
        ``LEDGER_INGEST_LOG_LEVEL``, then ``INFO``.
    fmt:
        Format string; falls back to ``LEDGER_INGEST_LOG_FORMAT``, then
        :data:`DEFAULT_FORMAT`.
    stream:
        Destination of the handler.
    """

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        return logger

    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or os.getenv("LEDGER_INGEST_LOG_FORMAT") or DEFAULT_FORMAT)
    )
    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _handler = handler
    return logger


def reset_logging() -> None:
    """Undo :func:`configure_logging` (for embedding hosts and tests)."""

    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["PACKAGE_LOGGER", "configure_logging", "reset_logging", "get_logger"]
