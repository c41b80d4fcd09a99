"""Configuration tables: source descriptors, detection rules and category mapping.

All tables are pydantic models validated once at load time, so the parser
and classifiers can rely on their shape without probing at use-time. JSON keys
follow the camelCase layout of the mapping files (``skipRows``,
``detectionRules``, ``defaultCategory`` ...); snake_case field names are
accepted too.

Bundled defaults live next to this module in ``seeds/``. Nothing here reads
global state: callers load a config explicitly and pass it to
:class:`ledger_ingest.pipeline.LedgerIngestor`.
"""

from __future__ import annotations

import json
import re
from os import PathLike
from pathlib import Path
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import ConfigError
from .logging_setup import get_logger

_logger = get_logger("ledger_ingest.config")

SEEDS_DIR = Path(__file__).with_name("seeds")
DEFAULT_COLUMN_MAPPING_PATH = SEEDS_DIR / "column_mapping.v1.json"
DEFAULT_CATEGORY_MAPPING_PATH = SEEDS_DIR / "category_mapping.v1.json"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------


class ColumnMap(_ConfigModel):
    """Zero-based column indices for one export layout.

    Exactly one amount layout must be present: a single signed ``amount``
    column, or a ``withdrawal`` + ``deposit`` pair.
    """

    date: int = Field(ge=0)
    description: int = Field(ge=0)
    description_fallback: int | None = Field(default=None, ge=0, alias="descriptionFallback")
    amount: int | None = Field(default=None, ge=0)
    withdrawal: int | None = Field(default=None, ge=0)
    deposit: int | None = Field(default=None, ge=0)
    balance: int | None = Field(default=None, ge=0)
    type_hint: Literal["income", "expense", "auto"] = Field(
        default="auto", validation_alias=AliasChoices("typeHint", "type", "type_hint")
    )

    @model_validator(mode="after")
    def _one_amount_layout(self) -> ColumnMap:
        split = self.withdrawal is not None or self.deposit is not None
        if self.amount is not None and split:
            raise ValueError("columns: use either 'amount' or 'withdrawal'+'deposit', not both")
        if self.amount is None:
            if self.withdrawal is None or self.deposit is None:
                raise ValueError("columns: 'amount' or both 'withdrawal' and 'deposit' are required")
        return self

    @property
    def has_split_amount(self) -> bool:
        return self.amount is None


class SourceDescriptor(_ConfigModel):
    """Declarative description of how to parse one institution's export."""

    name: str = Field(min_length=1)
    filename_patterns: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("filenamePatterns", "filename", "filename_patterns"),
    )
    columns: ColumnMap
    skip_rows: int = Field(default=0, ge=0, alias="skipRows")
    encoding: str = "utf-8"
    date_format: str | None = Field(default=None, alias="dateFormat")
    account_number_extraction: bool = Field(default=False, alias="accountNumberExtraction")


class DetectionRule(_ConfigModel):
    """Post-decode detection: all header substrings present, or filename regex."""

    header_patterns: tuple[str, ...] = Field(default=(), alias="headerPatterns")
    file_name_pattern: str | None = Field(default=None, alias="fileNamePattern")

    @field_validator("file_name_pattern")
    @classmethod
    def _compiles(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"invalid fileNamePattern {v!r}: {exc}") from exc
        return v

    def matches_filename(self, file_name: str) -> bool:
        if not self.file_name_pattern:
            return False
        return re.search(self.file_name_pattern, file_name, re.IGNORECASE) is not None

    def matches_header(self, header: list[str]) -> bool:
        if not self.header_patterns:
            return False
        return all(any(p in (cell or "") for cell in header) for p in self.header_patterns)


class ColumnMapping(_ConfigModel):
    """Source descriptor table plus detection rules and row-filter keywords.

    ``sources`` keeps declaration order; the first matching descriptor wins.
    """

    sources: dict[str, SourceDescriptor]
    custom_mappings: dict[str, SourceDescriptor] = Field(default_factory=dict, alias="customMappings")
    detection_rules: dict[str, DetectionRule] = Field(default_factory=dict, alias="detectionRules")
    internal_transfer_patterns: tuple[str, ...] = Field(default=(), alias="internalTransferPatterns")
    fee_patterns: tuple[str, ...] = Field(default=(), alias="feePatterns")

    def get_source(self, source_id: str) -> SourceDescriptor | None:
        return self.sources.get(source_id) or self.custom_mappings.get(source_id)

    def all_sources(self) -> dict[str, SourceDescriptor]:
        """Built-in sources first, then user-defined custom mappings."""

        merged = dict(self.sources)
        for key, value in self.custom_mappings.items():
            merged.setdefault(key, value)
        return merged


# ---------------------------------------------------------------------------
# Category mapping
# ---------------------------------------------------------------------------


class CategoryInfo(_ConfigModel):
    name: str
    color: str = "#94a3b8"
    type: Literal["income", "expense", "transfer"] = "expense"


class IncomeFallback(_ConfigModel):
    """One keyword set of the income heuristics; checked in list order."""

    category: str
    keywords: tuple[str, ...]


class DefaultCategory(_ConfigModel):
    income: str | None = None
    expense: str | None = None


class CategoryMapping(_ConfigModel):
    """Ordered description → category table and category metadata.

    ``mappings`` iteration order is significant: classification is first-match
    in insertion order.
    """

    mappings: dict[str, str] = Field(default_factory=dict)
    subcategories: dict[str, str] = Field(default_factory=dict)
    default_category: DefaultCategory = Field(default_factory=DefaultCategory, alias="defaultCategory")
    categories: dict[str, CategoryInfo] = Field(default_factory=dict)
    income_fallbacks: tuple[IncomeFallback, ...] = Field(default=(), alias="incomeFallbacks")

    @field_validator("default_category", mode="before")
    @classmethod
    def _single_default(cls, v: Any) -> Any:
        # Older mapping files carry one default for both types.
        if isinstance(v, str):
            return {"income": v, "expense": v}
        return v


class IngestConfig(_ConfigModel):
    columns: ColumnMapping
    categories: CategoryMapping


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


def _load_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {path}: {exc}") from exc


def _validate[M: BaseModel](model: type[M], data: Any, origin: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid {model.__name__} in {origin}:\n{exc}") from exc


def load_column_mapping(path: str | PathLike[str]) -> ColumnMapping:
    p = Path(path)
    mapping = _validate(ColumnMapping, _load_json(p), str(p))
    _logger.debug("loaded %d source descriptors from %s", len(mapping.sources), p)
    return mapping


def load_category_mapping(path: str | PathLike[str]) -> CategoryMapping:
    p = Path(path)
    mapping = _validate(CategoryMapping, _load_json(p), str(p))
    _logger.debug("loaded %d category mappings from %s", len(mapping.mappings), p)
    return mapping


def load_config(
    column_mapping_path: str | PathLike[str] | None = None,
    category_mapping_path: str | PathLike[str] | None = None,
) -> IngestConfig:
    """Load both tables; either path falls back to the bundled seed file."""

    columns = load_column_mapping(column_mapping_path or DEFAULT_COLUMN_MAPPING_PATH)
    categories = load_category_mapping(category_mapping_path or DEFAULT_CATEGORY_MAPPING_PATH)
    return IngestConfig(columns=columns, categories=categories)


def default_config() -> IngestConfig:
    return load_config()


__all__ = [
    "ColumnMap",
    "SourceDescriptor",
    "DetectionRule",
    "ColumnMapping",
    "CategoryInfo",
    "IncomeFallback",
    "DefaultCategory",
    "CategoryMapping",
    "IngestConfig",
    "load_column_mapping",
    "load_category_mapping",
    "load_config",
    "default_config",
]
