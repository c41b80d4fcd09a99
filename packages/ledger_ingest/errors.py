"""Exceptions raised by ``ledger_ingest``.

Only two conditions escape to callers: malformed configuration at load time
(:class:`ConfigError`) and a batch that produced nothing at all
(:class:`BatchEmptyError`). Per-row and per-file problems are absorbed and
reported through :class:`~ledger_ingest.models.FileReport` instead.
"""

from __future__ import annotations


class LedgerIngestError(Exception):
    """Base exception for the package."""


class ConfigError(LedgerIngestError, ValueError):
    """A column/category mapping document is malformed or unreadable."""


class BatchEmptyError(LedgerIngestError):
    """An upload batch yielded zero transactions across all files."""

    def __init__(self, file_names: list[str] | None = None) -> None:
        self.file_names = list(file_names or [])
        super().__init__("no valid transactions found")


__all__ = ["LedgerIngestError", "ConfigError", "BatchEmptyError"]
