"""Pytest configuration shared by the test modules.

The CLI resolves mapping file paths from ``LEDGER_INGEST_*`` environment
variables (possibly loaded from a ``.env`` in the working directory). To keep
tests hermetic, an autouse fixture clears those variables and moves each test
into its own temporary working directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ledger_ingest.config import IngestConfig, default_config
from ledger_ingest.logging_setup import reset_logging


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LEDGER_INGEST_COLUMN_MAPPING",
        "LEDGER_INGEST_CATEGORY_MAPPING",
        "LEDGER_INGEST_LOG_LEVEL",
        "LEDGER_INGEST_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Each test starts with the package logger unconfigured."""

    reset_logging()
    yield
    reset_logging()


@pytest.fixture(scope="session")
def config() -> IngestConfig:
    """Bundled seed configuration (immutable, safe to share)."""

    return default_config()
