"""Public interface for the ``ledger_ingest`` package.

This module exposes the package's entry points and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .aggregate import calculate_monthly_totals, get_monthly_totals, sort_transactions
from .categorize import CategoryClassifier, build_mapping_template, classify_category
from .config import (
    CategoryMapping,
    ColumnMapping,
    IngestConfig,
    SourceDescriptor,
    default_config,
    load_config,
)
from .duplicates import detect_and_merge_duplicates, is_duplicate, partition_duplicates
from .encoding import DecodedText, detect_and_decode
from .errors import BatchEmptyError, ConfigError, LedgerIngestError
from .models import (
    BatchResult,
    FileReport,
    MonthlyTotals,
    SourceFile,
    Transaction,
    TransactionType,
)
from .parser import IdGenerator, parse_rows, read_csv_rows
from .pipeline import LedgerIngestor, ingest_sync
from .sources import classify_source

__all__ = [
    # Pipeline
    "LedgerIngestor",
    "ingest_sync",
    # Stages
    "detect_and_decode",
    "classify_source",
    "read_csv_rows",
    "parse_rows",
    "IdGenerator",
    "CategoryClassifier",
    "classify_category",
    "build_mapping_template",
    "is_duplicate",
    "partition_duplicates",
    "detect_and_merge_duplicates",
    "calculate_monthly_totals",
    "get_monthly_totals",
    "sort_transactions",
    # Configuration
    "IngestConfig",
    "ColumnMapping",
    "SourceDescriptor",
    "CategoryMapping",
    "load_config",
    "default_config",
    # Models / types
    "Transaction",
    "TransactionType",
    "MonthlyTotals",
    "SourceFile",
    "FileReport",
    "BatchResult",
    "DecodedText",
    # Errors
    "LedgerIngestError",
    "ConfigError",
    "BatchEmptyError",
]
