import io
import logging

from ledger_ingest.logging_setup import configure_logging, get_logger


def test_unconfigured_package_is_silent():
    get_logger("ledger_ingest.test")
    handlers = logging.getLogger("ledger_ingest").handlers
    assert handlers
    assert all(isinstance(h, logging.NullHandler) for h in handlers)


def test_configure_logging_installs_one_handler():
    stream = io.StringIO()
    logger = configure_logging("debug", fmt="%(levelname)s %(message)s", stream=stream)
    configure_logging("error", stream=io.StringIO())

    get_logger("ledger_ingest.parser").debug("skipping row %d", 3)

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert stream.getvalue() == "DEBUG skipping row 3\n"


def test_level_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("LEDGER_INGEST_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LEDGER_INGEST_LOG_FORMAT", "[%(name)s] %(message)s")
    stream = io.StringIO()
    configure_logging(stream=stream)

    log = get_logger("ledger_ingest.sources")
    log.info("hidden")
    log.warning("shown")

    assert stream.getvalue() == "[ledger_ingest.sources] shown\n"


def test_unknown_level_name_defaults_to_info():
    logger = configure_logging("chatty", stream=io.StringIO())
    assert logger.level == logging.INFO
