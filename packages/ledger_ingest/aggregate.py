"""Monthly income/expense totals and chronological ordering."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from .logging_setup import get_logger
from .models import MonthlyTotals, Transaction, TransactionType

_logger = get_logger("ledger_ingest.aggregate")


def _tx_date(tx: Transaction) -> date | None:
    try:
        return date.fromisoformat(tx.date)
    except (TypeError, ValueError):
        return None


def calculate_monthly_totals(
    transactions: Iterable[Transaction], start: date, end: date
) -> MonthlyTotals:
    """Sum income and expenses for transactions dated within ``[start, end]``.

    Transactions whose date cannot be parsed are excluded and logged.
    """

    selected: list[Transaction] = []
    for tx in transactions:
        d = _tx_date(tx)
        if d is None:
            _logger.warning("invalid date for transaction %s: %r", tx.id, tx.date)
            continue
        if start <= d <= end:
            selected.append(tx)

    income = sum((t.amount for t in selected if t.type == TransactionType.INCOME), Decimal(0))
    expenses = sum(
        (t.amount for t in selected if t.type == TransactionType.EXPENSE), Decimal(0)
    )
    return MonthlyTotals(income=income, expenses=expenses, transactions=selected)


def get_monthly_totals(
    transactions: Iterable[Transaction], year: int, month: int
) -> MonthlyTotals:
    """Totals for calendar month ``month`` (1-12) of ``year``."""

    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return calculate_monthly_totals(transactions, date(year, month, 1), date(year, month, last_day))


def _sort_key(tx: Transaction) -> datetime:
    try:
        return datetime.fromisoformat(f"{tx.date}T{tx.time}")
    except (TypeError, ValueError):
        return datetime.min


def sort_transactions(
    transactions: Iterable[Transaction], *, descending: bool = True
) -> list[Transaction]:
    """Order by date+time, newest first unless ``descending`` is false.

    Undated records sort as the oldest. The sort is stable.
    """

    return sorted(transactions, key=_sort_key, reverse=descending)


__all__ = ["calculate_monthly_totals", "get_monthly_totals", "sort_transactions"]
