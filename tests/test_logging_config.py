import logging
from logging.handlers import RotatingFileHandler

import pytest

from pgstats.config import Settings
from pgstats.logging_config import configure_logging


@pytest.fixture(autouse=True)
def reset_pgstats_logger():
    yield
    logger = logging.getLogger("pgstats")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def test_configures_requested_level():
    logger = configure_logging(Settings(log_level="debug"))
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_log_file_uses_rotating_handler(tmp_path):
    path = tmp_path / "pgstats.log"
    logger = configure_logging(Settings(log_file=str(path), log_max_bytes=1024, log_backup_count=2))

    handler = logger.handlers[0]
    assert isinstance(handler, RotatingFileHandler)
    assert handler.maxBytes == 1024
    assert handler.backupCount == 2


def test_unknown_level_falls_back_to_defaults(caplog):
    logger = configure_logging(Settings(log_level="chatty"))

    assert logger.level == logging.INFO
    assert "Caught a problem with log settings" in caplog.text
    assert "Setting log settings to defaults" in caplog.text


def test_unwritable_log_file_falls_back_to_stderr(tmp_path, caplog):
    missing = tmp_path / "missing" / "pgstats.log"
    logger = configure_logging(Settings(log_file=str(missing)))

    assert not isinstance(logger.handlers[0], RotatingFileHandler)
    assert "Caught a problem with log settings" in caplog.text


def test_reconfiguring_replaces_handler():
    configure_logging(Settings())
    logger = configure_logging(Settings())
    assert len(logger.handlers) == 1
