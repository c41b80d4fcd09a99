"""Description → category classification.

Public API:
- ``classify_category(description, tx_type, mapping)``: pure, deterministic
  classification (see resolution order below).
- ``CategoryClassifier``: the same policy with mapping keys pre-normalized,
  used by the row parser for a whole file.
- ``category_display_name`` / ``category_color`` / ``category_type``: metadata
  lookups for reporting collaborators.
- ``build_mapping_template``: bootstrap a mapping document from parsed
  transactions.

Resolution order (first hit wins, mapping insertion order, no longest-match
preference):

1. exact match of the full description against a mapping key;
2. whitespace-normalized description starts with a normalized key
   (branch-qualified institution names, e.g. ``"三菱UFJ銀行 三島支店"``);
3. case-insensitive substring match of a key within the description;
4. income only: ``income_fallbacks`` keyword sets, in configured order;
5. the configured default category for the transaction type;
6. :data:`LAST_RESORT_CATEGORY`.

A matched category that is an alias in ``subcategories`` is resolved one level.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import CategoryMapping
from .models import Transaction, TransactionType
from .normalizers import contains_any, normalize_whitespace

LAST_RESORT_CATEGORY = "others"
DEFAULT_CATEGORY_COLOR = "#94a3b8"


class CategoryClassifier:
    """Classifier bound to one :class:`CategoryMapping`.

    Holds no state beyond derived lookup tables, so ``classify`` returns the
    same answer for the same ``(description, tx_type)`` on every call.
    """

    def __init__(self, mapping: CategoryMapping) -> None:
        self.mapping = mapping
        # (original key, whitespace-normalized key, lowercased key, category)
        self._keys: list[tuple[str, str, str, str]] = [
            (key, normalize_whitespace(key), key.lower(), category)
            for key, category in mapping.mappings.items()
            if key.strip()
        ]

    def _resolve(self, category: str) -> str:
        return self.mapping.subcategories.get(category, category)

    def classify(self, description: str, tx_type: TransactionType | str) -> str:
        tx_type = TransactionType(tx_type)
        desc = description or ""

        if desc.strip():
            exact = self.mapping.mappings.get(desc)
            if exact is not None:
                return self._resolve(exact)

            normalized = normalize_whitespace(desc)
            for _key, norm_key, _lower, category in self._keys:
                if norm_key and normalized.startswith(norm_key):
                    return self._resolve(category)

            lowered = desc.lower()
            for _key, _norm, lower_key, category in self._keys:
                if lower_key in lowered:
                    return self._resolve(category)

            if tx_type is TransactionType.INCOME:
                for fallback in self.mapping.income_fallbacks:
                    if contains_any(desc, fallback.keywords):
                        return self._resolve(fallback.category)

        default = (
            self.mapping.default_category.income
            if tx_type is TransactionType.INCOME
            else self.mapping.default_category.expense
        )
        if default:
            return self._resolve(default)
        return LAST_RESORT_CATEGORY


def classify_category(
    description: str, tx_type: TransactionType | str, mapping: CategoryMapping
) -> str:
    """Classify ``description`` for ``tx_type`` using ``mapping``."""

    return CategoryClassifier(mapping).classify(description, tx_type)


# ---------------------------------------------------------------------------
# Category metadata
# ---------------------------------------------------------------------------


def category_display_name(category: str, mapping: CategoryMapping) -> str:
    info = mapping.categories.get(category)
    if info is not None:
        return info.name
    # company_refund -> "Company Refund"
    return " ".join(word[:1].upper() + word[1:] for word in category.split("_"))


def category_color(category: str, mapping: CategoryMapping) -> str:
    info = mapping.categories.get(category)
    return info.color if info is not None else DEFAULT_CATEGORY_COLOR


def category_type(category: str, mapping: CategoryMapping) -> str:
    info = mapping.categories.get(category)
    return info.type if info is not None else "expense"


# ---------------------------------------------------------------------------
# Mapping bootstrap
# ---------------------------------------------------------------------------


def build_mapping_template(
    transactions: Iterable[Transaction], mapping: CategoryMapping
) -> CategoryMapping:
    """Return ``mapping`` with an exact entry for every distinct description.

    Each new entry carries the category the current mapping assigns (using the
    first-seen transaction's type). Entries are sorted by description and the
    existing keyword entries follow them so keyword coverage is kept for
    descriptions not seen yet.
    """

    classifier = CategoryClassifier(mapping)
    suggested: dict[str, str] = {}
    for tx in transactions:
        desc = tx.description
        if not desc or not desc.strip() or desc in suggested:
            continue
        suggested[desc] = classifier.classify(desc, tx.type)

    mappings = {desc: suggested[desc] for desc in sorted(suggested)}
    for key, category in mapping.mappings.items():
        mappings.setdefault(key, category)
    return mapping.model_copy(update={"mappings": mappings})


__all__ = [
    "LAST_RESORT_CATEGORY",
    "CategoryClassifier",
    "classify_category",
    "category_display_name",
    "category_color",
    "category_type",
    "build_mapping_template",
]
