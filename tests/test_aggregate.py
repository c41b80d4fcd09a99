from datetime import date
from decimal import Decimal

import pytest

from ledger_ingest.aggregate import calculate_monthly_totals, get_monthly_totals, sort_transactions
from ledger_ingest.models import Transaction, TransactionType


def _tx(tx_id, day, amount, tx_type, time="12:00:00"):
    return Transaction(
        id=tx_id,
        date=day,
        time=time,
        amount=Decimal(amount),
        description=tx_id,
        category="others",
        shop_name=tx_id,
        type=tx_type,
        source="test",
    )


INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE


def test_monthly_totals_for_may():
    txs = [
        _tx("salary", "2024-05-01", "738747", INCOME),
        _tx("rent", "2024-05-15", "670430", EXPENSE),
        _tx("bonus", "2024-05-20", "100000", INCOME),
    ]
    totals = get_monthly_totals(txs, 2024, 5)
    assert totals.income == Decimal("838747")
    assert totals.expenses == Decimal("670430")
    assert [t.id for t in totals.transactions] == ["salary", "rent", "bonus"]


def test_month_boundaries_are_inclusive():
    txs = [
        _tx("apr30", "2024-04-30", "1", INCOME),
        _tx("may01", "2024-05-01", "10", INCOME),
        _tx("may31", "2024-05-31", "100", EXPENSE, time="23:59:59"),
        _tx("jun01", "2024-06-01", "1000", EXPENSE, time="00:00:00"),
    ]
    totals = get_monthly_totals(txs, 2024, 5)
    assert [t.id for t in totals.transactions] == ["may01", "may31"]
    assert totals.income == Decimal("10")
    assert totals.expenses == Decimal("100")


def test_leap_day_and_empty_month():
    txs = [_tx("leap", "2024-02-29", "5", EXPENSE)]
    assert get_monthly_totals(txs, 2024, 2).expenses == Decimal("5")
    empty = get_monthly_totals(txs, 2024, 3)
    assert empty.income == empty.expenses == Decimal("0")
    assert empty.transactions == []


def test_invalid_dates_are_excluded():
    txs = [_tx("bad", "2024/05/01", "5", INCOME), _tx("ok", "2024-05-02", "7", INCOME)]
    totals = calculate_monthly_totals(txs, date(2024, 5, 1), date(2024, 5, 31))
    assert totals.income == Decimal("7")
    assert [t.id for t in totals.transactions] == ["ok"]


def test_month_out_of_range():
    with pytest.raises(ValueError):
        get_monthly_totals([], 2024, 13)


def test_sort_transactions_by_date_and_time():
    txs = [
        _tx("b", "2024-05-01", "1", EXPENSE, time="09:00:00"),
        _tx("c", "2024-05-02", "1", EXPENSE),
        _tx("a", "2024-05-01", "1", EXPENSE, time="08:00:00"),
        _tx("x", "garbage", "1", EXPENSE),
    ]
    assert [t.id for t in sort_transactions(txs)] == ["c", "b", "a", "x"]
    assert [t.id for t in sort_transactions(txs, descending=False)] == ["x", "a", "b", "c"]


def test_string_typed_transactions_are_summed():
    txs = [
        _tx("pay", "2024-05-01", "100", "income"),
        _tx("shop", "2024-05-02", "40", "expense"),
    ]
    totals = get_monthly_totals(txs, 2024, 5)
    assert totals.income == Decimal("100")
    assert totals.expenses == Decimal("40")
