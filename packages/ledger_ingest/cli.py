# ruff: noqa: I001
"""CLI for the ``ledger_ingest`` package.

This module exposes callable command handlers (``cmd_ingest``,
``cmd_monthly``, ``cmd_suggest_mapping``) and a Typer-based console
interface. Environment variables are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic, so mapping file paths
can be configured once per working directory:

- ``LEDGER_INGEST_COLUMN_MAPPING``: column mapping JSON path
- ``LEDGER_INGEST_CATEGORY_MAPPING``: category mapping JSON path
- ``LEDGER_INGEST_LOG_LEVEL``: log level for the package logger

Business logic lives in :mod:`ledger_ingest.pipeline` and related modules.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Annotated
from collections.abc import Sequence

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo, OptionInfo

from .aggregate import get_monthly_totals, sort_transactions
from .categorize import build_mapping_template
from .config import IngestConfig, load_config
from .errors import LedgerIngestError
from .logging_setup import configure_logging
from .models import BatchResult, SourceFile
from .pipeline import ingest_sync


# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_config(
    column_mapping: Path | None, category_mapping: Path | None
) -> IngestConfig:
    """Load configuration from options, then env vars, then bundled seeds."""

    column_path = column_mapping or os.getenv("LEDGER_INGEST_COLUMN_MAPPING") or None
    category_path = category_mapping or os.getenv("LEDGER_INGEST_CATEGORY_MAPPING") or None
    return load_config(column_path, category_path)


def _run_batch(
    files: Sequence[Path],
    column_mapping: Path | None,
    category_mapping: Path | None,
) -> BatchResult:
    config = _resolve_config(column_mapping, category_mapping)
    sources = [SourceFile.from_path(p) for p in files]
    result = ingest_sync(sources, config)
    for report in result.files:
        if report.status != "parsed":
            detail = f": {report.error}" if report.error else ""
            print(f"Warning: {report.file_name}: {report.status}{detail}", file=sys.stderr)
    return result


# ---- Command handlers --------------------------------------------------------


def cmd_ingest(
    files: Sequence[Path],
    *,
    column_mapping: Path | None = None,
    category_mapping: Path | None = None,
    as_json: bool = False,
) -> int:
    """Parse ``files`` and print one line per transaction, newest first."""

    try:
        result = _run_batch(files, column_mapping, category_mapping)
    except LedgerIngestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    transactions = sort_transactions(result.transactions)
    if as_json:
        print(json.dumps([t.to_dict() for t in transactions], ensure_ascii=False, indent=2))
        return 0

    # "<date>\t<type>\t<amount>\t<category>\t<description>"
    for tx in transactions:
        print(f"{tx.date}\t{tx.type}\t{tx.amount}\t{tx.category}\t{tx.description}")
    return 0


def cmd_monthly(
    year: int,
    month: int,
    files: Sequence[Path],
    *,
    column_mapping: Path | None = None,
    category_mapping: Path | None = None,
) -> int:
    """Print income, expenses and transaction count for one calendar month."""

    try:
        result = _run_batch(files, column_mapping, category_mapping)
        totals = get_monthly_totals(result.transactions, year, month)
    except (LedgerIngestError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"income\t{totals.income}")
    print(f"expenses\t{totals.expenses}")
    print(f"count\t{len(totals.transactions)}")
    return 0


def cmd_suggest_mapping(
    files: Sequence[Path],
    *,
    output: Path | None = None,
    column_mapping: Path | None = None,
    category_mapping: Path | None = None,
) -> int:
    """Write a category mapping with one exact entry per seen description."""

    try:
        config = _resolve_config(column_mapping, category_mapping)
        result = ingest_sync([SourceFile.from_path(p) for p in files], config)
    except LedgerIngestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    template = build_mapping_template(result.transactions, config.categories)
    text = json.dumps(
        template.model_dump(mode="json", by_alias=True), ensure_ascii=False, indent=2
    )
    if output is None:
        print(text)
        return 0

    try:
        output.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        print(f"Error: cannot write {output}: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {len(template.mappings)} mapping(s) to {output}", file=sys.stderr)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse Japanese bank, credit card and e-wallet CSV exports into "
        "categorized, deduplicated transactions."
    ),
)

# Module-level argument/option objects to satisfy ruff B008 (no calls in
# parameter defaults).
FILES_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="CSV export files to ingest",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the pipeline reports unreadable files per file
)
COLUMN_MAPPING_OPTION: OptionInfo = typer.Option(
    None,
    "--column-mapping",
    help="Column mapping JSON (falls back to LEDGER_INGEST_COLUMN_MAPPING, then the bundled seed).",
    dir_okay=False,
)
CATEGORY_MAPPING_OPTION: OptionInfo = typer.Option(
    None,
    "--category-mapping",
    help="Category mapping JSON (falls back to LEDGER_INGEST_CATEGORY_MAPPING, then the bundled seed).",
    dir_okay=False,
)


@app.command("ingest")
def ingest_cmd(
    files: Annotated[list[Path], FILES_ARGUMENT],
    column_mapping: Path | None = COLUMN_MAPPING_OPTION,
    category_mapping: Path | None = CATEGORY_MAPPING_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Emit a JSON array instead of TSV lines."),
) -> None:
    """Parse exports and print the deduplicated transactions."""

    code = cmd_ingest(
        files,
        column_mapping=column_mapping,
        category_mapping=category_mapping,
        as_json=as_json,
    )
    if code:
        raise typer.Exit(code)


@app.command("monthly")
def monthly_cmd(
    year: int,
    month: int,
    files: Annotated[list[Path], FILES_ARGUMENT],
    column_mapping: Path | None = COLUMN_MAPPING_OPTION,
    category_mapping: Path | None = CATEGORY_MAPPING_OPTION,
) -> None:
    """Print monthly income and expense totals."""

    code = cmd_monthly(
        year,
        month,
        files,
        column_mapping=column_mapping,
        category_mapping=category_mapping,
    )
    if code:
        raise typer.Exit(code)


@app.command("suggest-mapping")
def suggest_mapping_cmd(
    files: Annotated[list[Path], FILES_ARGUMENT],
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the mapping here instead of stdout."
    ),
    column_mapping: Path | None = COLUMN_MAPPING_OPTION,
    category_mapping: Path | None = CATEGORY_MAPPING_OPTION,
) -> None:
    """Bootstrap a category mapping file from parsed descriptions."""

    code = cmd_suggest_mapping(
        files,
        output=output,
        column_mapping=column_mapping,
        category_mapping=category_mapping,
    )
    if code:
        raise typer.Exit(code)


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level (falls back to LEDGER_INGEST_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
