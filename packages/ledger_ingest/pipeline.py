"""Batch orchestration: uploaded files → deduplicated transactions.

For each file, in input order:

1. read the bytes (paths are read in a worker thread);
2. pick the decode hint from the filename-matched descriptor and decode;
3. split into CSV rows and classify the source (detection rule, then
   filename);
4. parse rows with the resolved descriptor.

Failures are contained to the file that caused them and recorded in a
:class:`~ledger_ingest.models.FileReport`. Duplicate detection runs once
over the whole batch. The only error raised is
:class:`~ledger_ingest.errors.BatchEmptyError`, when nothing at all was
parsed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from .categorize import CategoryClassifier
from .config import IngestConfig
from .duplicates import detect_and_merge_duplicates
from .encoding import detect_and_decode
from .errors import BatchEmptyError
from .logging_setup import get_logger
from .models import BatchResult, FileReport, ProgressCallback, SourceFile, Transaction
from .parser import IdGenerator, RowParser, read_csv_rows
from .sources import HEADER_SCAN_ROWS, classify_source, match_filename

_logger = get_logger("ledger_ingest.pipeline")


class LedgerIngestor:
    """Parse a batch of bank/card/e-wallet exports with one configuration.

    The ingestor owns the id generator, so ids stay unique across every batch
    it processes.
    """

    def __init__(
        self,
        config: IngestConfig,
        *,
        ids: IdGenerator | None = None,
        header_scan_rows: int = HEADER_SCAN_ROWS,
    ) -> None:
        self.config = config
        self.ids = ids or IdGenerator()
        self.header_scan_rows = header_scan_rows
        self.classifier = CategoryClassifier(config.categories)

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------

    def parse_bytes(self, file_name: str, data: bytes) -> tuple[list[Transaction], FileReport]:
        """Decode, classify and parse one file's content."""

        columns = self.config.columns
        preliminary = match_filename(file_name, columns.all_sources())
        hint = None
        if preliminary is not None:
            descriptor = columns.get_source(preliminary)
            hint = descriptor.encoding if descriptor is not None else None

        decoded = detect_and_decode(data, hint)
        rows = read_csv_rows(decoded.text)

        match = classify_source(
            file_name, rows, columns, header_scan_rows=self.header_scan_rows
        )
        if match is None:
            _logger.warning("could not detect source type for %s", file_name)
            return [], FileReport(file_name, "undetected", encoding=decoded.encoding)

        descriptor = columns.get_source(match.source_id)
        if descriptor is None:
            _logger.error(
                "configuration not found for source type %r (%s)", match.source_id, file_name
            )
            return [], FileReport(
                file_name, "config_missing", source_id=match.source_id, encoding=decoded.encoding
            )

        parser = RowParser(
            descriptor,
            source_id=match.source_id,
            classifier=self.classifier,
            internal_transfer_patterns=columns.internal_transfer_patterns,
            fee_patterns=columns.fee_patterns,
            ids=self.ids,
        )
        transactions = parser.parse(rows, file_name=file_name, encoding=decoded.encoding)
        _logger.info(
            "parsed %d transaction(s) from %s as %s (%s, by %s)",
            len(transactions),
            file_name,
            match.source_id,
            decoded.encoding,
            match.matched_by,
        )
        return transactions, FileReport(
            file_name,
            "parsed",
            source_id=match.source_id,
            encoding=decoded.encoding,
            transaction_count=len(transactions),
        )

    async def ingest_file(self, source: SourceFile) -> tuple[list[Transaction], FileReport]:
        try:
            data = await source.read_bytes()
            return self.parse_bytes(source.name, data)
        except Exception as exc:  # noqa: BLE001
            _logger.error("failed to process %s: %s", source.name, exc, exc_info=True)
            return [], FileReport(source.name, "failed", error=str(exc))

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    async def ingest(
        self,
        files: Sequence[SourceFile],
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Process ``files`` sequentially and merge duplicates across them.

        Raises
        ------
        BatchEmptyError
            When no file produced a single transaction.
        """

        collected: list[Transaction] = []
        reports: list[FileReport] = []
        total = len(files)
        for index, source in enumerate(files, start=1):
            transactions, report = await self.ingest_file(source)
            collected.extend(transactions)
            reports.append(report)
            if on_progress is not None:
                on_progress(index, total)

        if not collected:
            raise BatchEmptyError([f.name for f in files])

        merged = detect_and_merge_duplicates(collected)
        if len(merged) != len(collected):
            _logger.info(
                "merged %d duplicate(s); %d transaction(s) remain",
                len(collected) - len(merged),
                len(merged),
            )
        return BatchResult(transactions=merged, files=reports)


def ingest_sync(
    files: Sequence[SourceFile],
    config: IngestConfig,
    on_progress: ProgressCallback | None = None,
) -> BatchResult:
    """Blocking wrapper around :meth:`LedgerIngestor.ingest`."""

    return asyncio.run(LedgerIngestor(config).ingest(files, on_progress))


__all__ = ["LedgerIngestor", "ingest_sync"]
