"""
Unit tests for logging setup.
"""

import logging

import pytest

from nftledger.core.config import LedgerConfig
from nftledger.utils.logger import LedgerLogger, get_logger, setup_logging


def handlers():
    return logging.getLogger("nftledger").handlers


class TestLogging:
    """Tests for LedgerLogger."""

    def test_console_only_by_default(self):
        setup_logging(level=logging.DEBUG)

        assert len(handlers()) == 1
        assert not isinstance(handlers()[0], logging.FileHandler)
        assert logging.getLogger("nftledger").level == logging.DEBUG

    def test_file_handler_writes_to_configured_path(self, tmp_path):
        log_file = tmp_path / "nested" / "ledger.log"
        setup_logging(level=logging.INFO, log_file=log_file)

        get_logger("test").info("minted token 1")
        for handler in handlers():
            handler.flush()

        assert "minted token 1" in log_file.read_text()

    def test_setup_is_idempotent(self):
        setup_logging()
        LedgerLogger.setup(level=logging.DEBUG)

        assert len(handlers()) == 1

    def test_reset_drops_handlers(self):
        setup_logging()
        LedgerLogger.reset()

        assert handlers() == []

    def test_child_logger_names(self):
        assert get_logger("storage.sqlite").name == "nftledger.storage.sqlite"


class TestLogFileConfig:
    """The log file location comes from LedgerConfig."""

    def test_disabled(self, tmp_path):
        assert LedgerConfig(log_dir=tmp_path).log_file is None

    def test_enabled(self, tmp_path):
        config = LedgerConfig(log_dir=tmp_path, log_to_file=True)
        assert config.log_file == tmp_path / "nftledger.log"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
