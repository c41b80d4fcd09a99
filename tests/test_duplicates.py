from decimal import Decimal

import pytest

from ledger_ingest.duplicates import (
    description_similarity,
    detect_and_merge_duplicates,
    is_duplicate,
    merge_group,
    partition_duplicates,
)
from ledger_ingest.models import Transaction, TransactionType


def _tx(tx_id, description, *, amount="10000", date="2024-05-01", time="10:00:00", shop=None):
    return Transaction(
        id=tx_id,
        date=date,
        time=time,
        amount=Decimal(amount),
        description=description,
        category="others",
        shop_name=shop if shop is not None else description.strip(),
        type=TransactionType.EXPENSE,
        source="test",
        original_data={"file_name": f"{tx_id}.csv"},
    )


def test_same_purchase_in_two_files_is_merged():
    a = _tx("a", "ABC Store", time="10:00:00")
    b = _tx("b", "ABC Store ", time="10:05:00")

    (merged,) = detect_and_merge_duplicates([a, b])

    assert merged.id == "a"
    assert merged.original_data["duplicate_count"] == 2
    assert merged.original_data["merged_from"] == ["a", "b"]
    assert merged.original_data["file_name"] == "a.csv"
    # The longest description wins.
    assert merged.description == "ABC Store "


@pytest.mark.parametrize(
    ("other", "expected"),
    [
        (_tx("b", "ABC Store", amount="10000.01"), True),
        (_tx("b", "ABC Store", amount="10000.02"), False),
        (_tx("b", "ABC Store", time="10:06:00"), False),
        (_tx("b", "ABC Store", date="2024-05-02"), False),
        (_tx("b", "XYZ Mart"), False),
        (_tx("b", "abc store"), True),
        (_tx("b", "ABC Store", date="not-a-date"), False),
        (_tx("b", "ABC Store", time="??"), False),
    ],
)
def test_is_duplicate(other, expected):
    assert is_duplicate(_tx("a", "ABC Store"), other) is expected


def test_window_does_not_cross_midnight():
    late = _tx("a", "ABC Store", date="2024-05-01", time="23:58:00")
    early = _tx("b", "ABC Store", date="2024-05-02", time="00:01:00")
    assert not is_duplicate(late, early)


def test_description_similarity():
    assert description_similarity("", "") == 1.0
    assert description_similarity("ABC", "abc") == 1.0
    assert description_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)
    assert description_similarity("abc", "") == 0.0


def test_partition_groups_by_first_seen_member():
    txs = [
        _tx("a", "ABC Store"),
        _tx("x", "XYZ Mart"),
        _tx("b", "ABC Store", time="10:03:00"),
        _tx("y", "XYZ Mart", time="09:58:00"),
        _tx("z", "Unrelated", amount="5"),
    ]
    assert partition_duplicates(txs) == [[0, 2], [1, 3], [4]]


def test_merge_group_accumulates_previous_merges():
    first = merge_group([_tx("a", "ABC"), _tx("b", "ABC Store")])
    again = merge_group([first, _tx("c", "ABC", shop="ABC Store Shibuya")])

    assert again.original_data["duplicate_count"] == 3
    assert again.original_data["merged_from"] == ["a", "b", "c"]
    assert again.description == "ABC Store"
    assert again.shop_name == "ABC Store Shibuya"
    # Singletons are returned unchanged.
    single = _tx("s", "Solo")
    assert merge_group([single]) is single
    with pytest.raises(ValueError):
        merge_group([])


def test_dedupe_is_idempotent():
    txs = [
        _tx("a", "ABC Store"),
        _tx("b", "ABC Store ", time="10:05:00"),
        _tx("c", "ABC Stor", time="10:02:00"),
        _tx("x", "XYZ Mart", amount="500"),
        _tx("y", "XYZ Mart", amount="500", time="10:01:00"),
        _tx("z", "Coffee", amount="450"),
    ]
    once = detect_and_merge_duplicates(txs)
    twice = detect_and_merge_duplicates(once)

    assert twice == once
    assert [t.id for t in once] == ["a", "x", "z"]
    assert once[0].original_data["duplicate_count"] == 3


def test_no_duplicates_returns_input_order():
    txs = [_tx("a", "One", amount="1"), _tx("b", "Two", amount="2")]
    assert detect_and_merge_duplicates(txs) == txs
