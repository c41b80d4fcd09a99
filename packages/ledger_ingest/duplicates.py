"""Cross-file duplicate detection and merging.

The same purchase often shows up twice in one upload batch, e.g. once in the
card statement and once in the e-wallet history that funded it. Two
transactions are duplicates when their amounts agree to within one
hundredth, they fall on the same calendar day no more than five minutes
apart, and their descriptions are at least 70% similar.

Public surface:
- ``description_similarity``: normalized Levenshtein similarity in ``[0, 1]``.
- ``is_duplicate``: the pairwise predicate.
- ``partition_duplicates``: group indices of a batch (first-seen star groups).
- ``merge_group``: collapse one group into a single transaction.
- ``detect_and_merge_duplicates``: partition + merge until nothing changes.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal

from rapidfuzz.distance import Levenshtein

from .logging_setup import get_logger
from .models import Transaction

_logger = get_logger("ledger_ingest.duplicates")

AMOUNT_TOLERANCE = Decimal("0.01")
TIME_WINDOW = timedelta(minutes=5)
SIMILARITY_THRESHOLD = 0.7


def description_similarity(a: str, b: str) -> float:
    """Return ``1 - levenshtein(a, b) / max(len(a), len(b))``, case-insensitive."""

    a, b = (a or "").lower(), (b or "").lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def _timestamp(tx: Transaction) -> datetime | None:
    try:
        return datetime.fromisoformat(f"{tx.date}T{tx.time}")
    except (TypeError, ValueError):
        return None


def is_duplicate(a: Transaction, b: Transaction) -> bool:
    if abs(a.amount - b.amount) > AMOUNT_TOLERANCE:
        return False

    ta, tb = _timestamp(a), _timestamp(b)
    if ta is None or tb is None:
        return False
    if ta.date() != tb.date():
        return False
    if abs(ta - tb) > TIME_WINDOW:
        return False

    return description_similarity(a.description, b.description) >= SIMILARITY_THRESHOLD


def partition_duplicates(transactions: Sequence[Transaction]) -> list[list[int]]:
    """Partition ``transactions`` into groups of indices, in first-seen order.

    Each transaction not yet grouped starts a group and collects every other
    ungrouped transaction that is a duplicate of it. Similarity is not
    transitive, so membership is decided against the group's first member
    only.
    """

    consumed = [False] * len(transactions)
    groups: list[list[int]] = []
    for i, head in enumerate(transactions):
        if consumed[i]:
            continue
        consumed[i] = True
        group = [i]
        for j, other in enumerate(transactions):
            if consumed[j]:
                continue
            if is_duplicate(head, other):
                consumed[j] = True
                group.append(j)
        groups.append(group)
    return groups


def _members(tx: Transaction) -> tuple[int, list[str]]:
    data = tx.original_data
    merged = data.get("merged_from")
    return int(data.get("duplicate_count", 1)), list(merged) if merged else [tx.id]


def merge_group(group: Sequence[Transaction]) -> Transaction:
    """Collapse ``group`` into its first member.

    The longest description and shop name win (earliest on ties). Provenance
    counts and ids are accumulated so merging already-merged records keeps the
    totals right.
    """

    if not group:
        raise ValueError("cannot merge an empty group")
    primary = group[0]
    if len(group) == 1:
        return primary

    description = max(group, key=lambda t: len(t.description)).description
    shop_name = max(group, key=lambda t: len(t.shop_name)).shop_name

    count = 0
    merged_from: list[str] = []
    for tx in group:
        n, ids = _members(tx)
        count += n
        merged_from.extend(ids)

    original = dict(primary.original_data)
    original["duplicate_count"] = count
    original["merged_from"] = merged_from
    return dataclasses.replace(
        primary,
        description=description,
        shop_name=shop_name,
        original_data=original,
    )


def detect_and_merge_duplicates(transactions: Sequence[Transaction]) -> list[Transaction]:
    """Merge duplicates until a pass changes nothing.

    The output is a fixed point, so running it again returns an equal list.
    """

    current = list(transactions)
    while True:
        groups = partition_duplicates(current)
        if all(len(g) == 1 for g in groups):
            return current
        merged_count = sum(len(g) - 1 for g in groups)
        _logger.debug("merged %d duplicate transaction(s)", merged_count)
        current = [merge_group([current[i] for i in g]) for g in groups]


__all__ = [
    "description_similarity",
    "is_duplicate",
    "partition_duplicates",
    "merge_group",
    "detect_and_merge_duplicates",
]
