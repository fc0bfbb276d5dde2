"""
Centralized logging configuration for the NFT ledger.

Every module asks for ``get_logger("<subsystem>")`` at import time and gets a
child of the ``nftledger`` logger. Handlers live only on that parent:
colored console output on stderr, plus a plain file when the config asks
for one (see LedgerConfig.log_file).
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import colorlog

ROOT_LOGGER = "nftledger"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


class LedgerLogger:
    """Owns the handlers of the nftledger logger tree"""

    _initialized = False

    @classmethod
    def setup(cls, level: int = logging.INFO, log_file: Optional[Union[str, Path]] = None):
        """
        Attach handlers once. Later calls are no-ops until reset().

        Args:
            level: Logging level for every handler
            log_file: Also write plain-text records here when given
        """
        if cls._initialized:
            return

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT.replace(" %(message)s", "%(reset)s %(message)s"),
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
        ))
        root_logger.addHandler(console_handler)

        if log_file is not None:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(file_handler)

        cls._initialized = True

    @classmethod
    def reset(cls):
        """Close and drop handlers so setup() can run again."""
        root_logger = logging.getLogger(ROOT_LOGGER)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        cls._initialized = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Logger for one subsystem (e.g. 'ledger', 'storage.sqlite', 'cli')."""
        if not cls._initialized:
            cls.setup()

        return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_logger(name: str) -> logging.Logger:
    return LedgerLogger.get_logger(name)


def setup_logging(level: int = logging.INFO, log_file: Optional[Union[str, Path]] = None):
    """Replace any existing handlers with a fresh configuration"""
    LedgerLogger.reset()
    LedgerLogger.setup(level=level, log_file=log_file)
