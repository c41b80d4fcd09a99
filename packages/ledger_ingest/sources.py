"""Source classification: which descriptor applies to an export file.

Two phases, both order-sensitive (first match in table declaration order):

1. Pre-decode, :func:`match_filename` matches the file name against each
   descriptor's glob patterns. The winner only decides which encoding to try
   first.
2. Post-decode, :func:`detect_source` tests each detection rule against the
   file name (regex) and the header row (all substrings present). Header rows
   are searched within the first few rows so exports with a title/legend
   preamble above the real header are still recognized.

:func:`classify_source` combines both: a detection rule wins, the filename
match is the fallback, and ``None`` means the file is undetectable.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import PurePath
from typing import Literal

from .config import ColumnMapping, DetectionRule, SourceDescriptor
from .logging_setup import get_logger

_logger = get_logger("ledger_ingest.sources")

# Rows searched for a header line when applying detection rules.
HEADER_SCAN_ROWS: int = 12


@dataclass(frozen=True, slots=True)
class SourceMatch:
    source_id: str
    matched_by: Literal["rule", "filename"]


def _base_name(file_name: str) -> str:
    return PurePath(file_name.replace("\\", "/")).name


def match_filename(file_name: str, sources: Mapping[str, SourceDescriptor]) -> str | None:
    """Return the first source id whose glob patterns match ``file_name``."""

    name = _base_name(file_name).lower()
    for source_id, descriptor in sources.items():
        for pattern in descriptor.filename_patterns:
            if fnmatch.fnmatchcase(name, pattern.lower()):
                return source_id
    return None


def detect_source(
    rows: Sequence[Sequence[str]],
    file_name: str,
    rules: Mapping[str, DetectionRule],
    *,
    header_scan_rows: int = HEADER_SCAN_ROWS,
) -> str | None:
    """Return the first rule id satisfied by the file name or a header row."""

    name = _base_name(file_name)
    headers = [list(r) for r in rows[:header_scan_rows]]
    for source_id, rule in rules.items():
        if rule.matches_filename(name):
            return source_id
        if any(rule.matches_header(h) for h in headers):
            return source_id
    return None


def classify_source(
    file_name: str,
    rows: Sequence[Sequence[str]],
    columns: ColumnMapping,
    *,
    header_scan_rows: int = HEADER_SCAN_ROWS,
) -> SourceMatch | None:
    detected = detect_source(
        rows, file_name, columns.detection_rules, header_scan_rows=header_scan_rows
    )
    if detected is not None:
        return SourceMatch(detected, "rule")

    by_name = match_filename(file_name, columns.all_sources())
    if by_name is not None:
        return SourceMatch(by_name, "filename")

    _logger.debug("no source matched %s (first row: %r)", file_name, list(rows[:1]))
    return None


__all__ = [
    "HEADER_SCAN_ROWS",
    "SourceMatch",
    "match_filename",
    "detect_source",
    "classify_source",
]
