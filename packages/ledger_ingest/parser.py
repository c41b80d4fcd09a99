"""Row parser: decoded CSV rows → :class:`~ledger_ingest.models.Transaction`.

Parsing is driven entirely by a :class:`~ledger_ingest.config.SourceDescriptor`
(column indices, skip rows, amount layout, type hint). Each row is handled
independently; a row that cannot be parsed is skipped, never fatal to the
file.

Row rules
---------
- empty or unparseable date → skip;
- description falls back to ``columns.description_fallback`` when empty;
- single ``amount`` column: type from the descriptor hint, else a leading
  minus in the raw cell, else the sign of the parsed value; ``abs`` stored;
- ``withdrawal``/``deposit`` columns: withdrawal > 0 is an expense, else
  deposit > 0 is income, else skip;
- zero amounts are dropped;
- internal transfers (transfer keyword without a fee keyword) are dropped.
"""

from __future__ import annotations

import csv
import io
import itertools
import random
import re
import time
from collections.abc import Callable, Sequence
from decimal import Decimal
from pathlib import PurePath
from typing import Any

from .categorize import CategoryClassifier
from .config import IngestConfig, SourceDescriptor
from .logging_setup import get_logger
from .models import DEFAULT_TIME, Transaction, TransactionType
from .normalizers import (
    contains_any,
    extract_shop_name,
    has_leading_minus,
    parse_amount,
    parse_date_time,
)

_logger = get_logger("ledger_ingest.parser")


class IdGenerator:
    """Produce ``<prefix>_<epoch-ms>_<counter>_<rand>`` transaction ids.

    The counter is monotonic for the generator's lifetime, so ids never
    collide across files parsed within the same millisecond.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._counter = itertools.count(1)
        self._clock = clock
        self._rng = rng or random.Random()

    def __call__(self, prefix: str) -> str:
        n = next(self._counter)
        return f"{prefix}_{int(self._clock() * 1000)}_{n}_{self._rng.randrange(1000)}"


_shared_ids = IdGenerator()


def read_csv_rows(text: str) -> list[list[str]]:
    """Split decoded CSV text into rows, dropping blank lines.

    Quoted fields with embedded commas/newlines follow RFC 4180 via :mod:`csv`.
    """

    with io.StringIO(text, newline="") as f:
        return [row for row in csv.reader(f) if row and any(c.strip() for c in row)]


def _cell(row: Sequence[Any], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    value = row[index]
    return "" if value is None else str(value)


def _account_number(file_name: str | None) -> str | None:
    # "4614196_20250810131859.csv" -> "4614196"
    if not file_name:
        return None
    token = PurePath(file_name.replace("\\", "/")).name.split("_")[0]
    token = token.removesuffix(".csv")
    return token if re.fullmatch(r"\d+", token) else None


class RowParser:
    """Parse rows of one file according to one source descriptor."""

    def __init__(
        self,
        descriptor: SourceDescriptor,
        *,
        source_id: str,
        classifier: CategoryClassifier,
        internal_transfer_patterns: Sequence[str] = (),
        fee_patterns: Sequence[str] = (),
        ids: IdGenerator | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.source_id = source_id
        self.classifier = classifier
        self.internal_transfer_patterns = tuple(internal_transfer_patterns)
        self.fee_patterns = tuple(fee_patterns)
        self.ids = ids or _shared_ids

    def source_label(self, file_name: str | None) -> str:
        name = self.descriptor.name or self.source_id
        if self.descriptor.account_number_extraction:
            account = _account_number(file_name)
            if account:
                return f"{name} ({account})"
        return name

    def is_internal_transfer(self, description: str) -> bool:
        return contains_any(description, self.internal_transfer_patterns) and not contains_any(
            description, self.fee_patterns
        )

    def _resolve_amount(self, row: Sequence[Any]) -> tuple[Decimal, TransactionType] | None:
        cols = self.descriptor.columns
        if cols.has_split_amount:
            withdrawal = abs(parse_amount(_cell(row, cols.withdrawal)) or 0)
            deposit = abs(parse_amount(_cell(row, cols.deposit)) or 0)
            if withdrawal > 0:
                return withdrawal, TransactionType.EXPENSE
            if deposit > 0:
                return deposit, TransactionType.INCOME
            return None

        raw = _cell(row, cols.amount)
        value = parse_amount(raw)
        if value is None:
            return None
        if cols.type_hint in ("income", "expense"):
            tx_type = TransactionType(cols.type_hint)
        elif has_leading_minus(raw):
            tx_type = TransactionType.EXPENSE
        else:
            tx_type = TransactionType.EXPENSE if value < 0 else TransactionType.INCOME
        return abs(value), tx_type

    def parse_row(
        self,
        row: Sequence[Any],
        row_number: int,
        *,
        file_name: str | None = None,
        encoding: str | None = None,
    ) -> Transaction | None:
        cols = self.descriptor.columns

        date_raw = _cell(row, cols.date)
        if not date_raw.strip():
            return None
        parsed = parse_date_time(date_raw)
        if parsed is None:
            return None
        tx_date, tx_time = parsed

        description = _cell(row, cols.description).strip()
        if not description and cols.description_fallback is not None:
            description = _cell(row, cols.description_fallback).strip()

        resolved = self._resolve_amount(row)
        if resolved is None:
            return None
        amount, tx_type = resolved
        if amount == 0:
            return None

        if self.is_internal_transfer(description):
            return None

        source = self.source_label(file_name)
        return Transaction(
            id=self.ids(self.source_id),
            date=tx_date.isoformat(),
            time=tx_time.isoformat() if tx_time is not None else DEFAULT_TIME,
            amount=amount,
            description=description or f"{source} Transaction",
            category=self.classifier.classify(description, tx_type),
            shop_name=extract_shop_name(description),
            type=tx_type,
            source=source,
            original_data={
                "raw_row": list(row),
                "row_number": row_number,
                "file_name": file_name,
                "file_type": self.source_id,
                "encoding": encoding,
            },
        )

    def parse(
        self,
        rows: Sequence[Sequence[Any]],
        *,
        file_name: str | None = None,
        encoding: str | None = None,
    ) -> list[Transaction]:
        transactions: list[Transaction] = []
        for row_number in range(self.descriptor.skip_rows, len(rows)):
            row = rows[row_number]
            if not row:
                continue
            try:
                tx = self.parse_row(row, row_number, file_name=file_name, encoding=encoding)
            except Exception:  # noqa: BLE001
                _logger.debug(
                    "skipping row %d of %s", row_number, file_name, exc_info=True
                )
                continue
            if tx is not None:
                transactions.append(tx)

        if not transactions:
            _logger.warning(
                "no valid transactions in %s (%s); first rows: %r",
                file_name,
                self.source_id,
                [list(r) for r in rows[:5]],
            )
        return transactions


def parse_rows(
    rows: Sequence[Sequence[Any]],
    source_id: str,
    config: IngestConfig,
    *,
    file_name: str | None = None,
    encoding: str | None = None,
    ids: IdGenerator | None = None,
    classifier: CategoryClassifier | None = None,
) -> list[Transaction]:
    """Parse ``rows`` as ``source_id``; an unknown id yields an empty list."""

    descriptor = config.columns.get_source(source_id)
    if descriptor is None:
        _logger.error("configuration not found for source type %r (%s)", source_id, file_name)
        return []

    parser = RowParser(
        descriptor,
        source_id=source_id,
        classifier=classifier or CategoryClassifier(config.categories),
        internal_transfer_patterns=config.columns.internal_transfer_patterns,
        fee_patterns=config.columns.fee_patterns,
        ids=ids,
    )
    return parser.parse(rows, file_name=file_name, encoding=encoding)


__all__ = ["IdGenerator", "read_csv_rows", "RowParser", "parse_rows"]
