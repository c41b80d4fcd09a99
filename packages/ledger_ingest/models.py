"""Data models for ``ledger_ingest``.

``Transaction`` is the normalized output record. Values are kept close to
their exported form: ``date`` and ``time`` are ISO strings so the record is
JSON-friendly for reporting collaborators, while ``amount`` is a ``Decimal``
that is always non-negative (the sign lives in ``type``).
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import Any, Literal

# Sources without a time-of-day column all share this value.
DEFAULT_TIME = "12:00:00"


class TransactionType(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


# ---------------------------------------------------------------------------
# Core record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single normalized transaction.

    Attributes
    ----------
    id:
        Unique within a working set (see :class:`ledger_ingest.parser.IdGenerator`).
    date:
        Calendar date as ``YYYY-MM-DD``.
    time:
        Time of day as ``HH:MM:SS``; :data:`DEFAULT_TIME` when the export has
        no time column.
    amount:
        Non-negative amount in the export's currency.
    description:
        Original description text from the export.
    category:
        Category id assigned by the classifier.
    shop_name:
        Short merchant label derived from ``description``.
    type:
        ``income`` or ``expense``.
    source:
        Institution display label.
    original_data:
        Provenance bag (raw row, row number, file name, source id, encoding and,
        after a merge, ``duplicate_count`` / ``merged_from``).
    """

    id: str
    date: str
    time: str
    amount: Decimal
    description: str
    category: str
    shop_name: str
    type: TransactionType
    source: str
    original_data: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase view consumed by reporting/export code."""

        data = dict(self.original_data)
        original: dict[str, Any] = {
            "rawRow": list(data.pop("raw_row", []) or []),
        }
        for key, out_key in (
            ("row_number", "rowNumber"),
            ("file_name", "fileName"),
            ("file_type", "fileType"),
            ("encoding", "encoding"),
            ("duplicate_count", "duplicateCount"),
            ("merged_from", "mergedFrom"),
        ):
            if key in data:
                original[out_key] = data.pop(key)
        original.update(data)

        return {
            "id": self.id,
            "date": self.date,
            "time": self.time,
            "amount": float(self.amount),
            "description": self.description,
            "category": self.category,
            "shopName": self.shop_name,
            "type": str(self.type),
            "source": self.source,
            "originalData": original,
        }


@dataclass(frozen=True, slots=True)
class MonthlyTotals:
    """Income/expense sums over a date range plus the transactions counted."""

    income: Decimal
    expenses: Decimal
    transactions: list[Transaction]


# ---------------------------------------------------------------------------
# Batch input/output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceFile:
    """One uploaded export: a file name plus its raw bytes (or a path to them)."""

    name: str
    content: bytes | None = None
    path: Path | None = None

    def __post_init__(self) -> None:
        if self.content is None and self.path is None:
            raise ValueError("SourceFile requires either content or path")

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> SourceFile:
        p = Path(path)
        return cls(name=p.name, path=p)

    async def read_bytes(self) -> bytes:
        """Return the full file content. Paths are read off the event loop."""

        if self.content is not None:
            return self.content
        assert self.path is not None
        return await asyncio.to_thread(self.path.read_bytes)


type FileStatus = Literal["parsed", "undetected", "config_missing", "failed"]


@dataclass(frozen=True, slots=True)
class FileReport:
    """Per-file outcome of a batch, surfaced to the caller for visibility."""

    file_name: str
    status: FileStatus
    source_id: str | None = None
    encoding: str | None = None
    transaction_count: int = 0
    error: str | None = None


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Deduplicated transactions plus one report per input file."""

    transactions: list[Transaction]
    files: list[FileReport]

    @property
    def undetected_files(self) -> list[str]:
        return [f.file_name for f in self.files if f.status == "undetected"]


type ProgressCallback = Callable[[int, int], None]
"""Called as ``on_progress(current, total)`` after each file completes."""


__all__ = [
    "DEFAULT_TIME",
    "TransactionType",
    "Transaction",
    "MonthlyTotals",
    "SourceFile",
    "FileStatus",
    "FileReport",
    "BatchResult",
    "ProgressCallback",
]
