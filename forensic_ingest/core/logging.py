"""Logging System.

This module provides logging configuration for forensic-ingest.

Features:
- Daily rotating log files with TimedRotatingFileHandler
- Console output alongside the file
- Level and format from the logging section of Config
- Verbose override forcing DEBUG for a single run

Log files are stored in the configured log directory with the format:
    forensic-ingest-YYYY-MM-DD.log

Example usage:
    from forensic_ingest.core.logging import setup_logging, get_logger

    logger = setup_logging(config, verbose=True)
    logger.info("Starting import")

    # Named loggers below forensic_ingest share the handlers
    get_logger("forensic_ingest.ingest.router").debug("Upload /etc/passwd")
"""

from __future__ import annotations

import logging
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from forensic_ingest.core.config import Config, LogLevel, get_default_config


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_LOGGER_NAME = "forensic_ingest"

LOG_FILE_PREFIX = "forensic-ingest"

LOG_FILE_EXTENSION = ".log"

# Days of rotated files to keep
DEFAULT_BACKUP_COUNT = 30


# =============================================================================
# MODULE-LEVEL FUNCTIONS
# =============================================================================


def setup_logging(
    config: Optional[Config] = None,
    verbose: bool = False,
    name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Set up logging for an import or listing run.

    Convenience wrapper around LogManager.

    Args:
        config: Configuration; defaults are used when omitted.
        verbose: Force DEBUG level regardless of config.
        name: Logger name (default: forensic_ingest).

    Returns:
        Configured logger instance.
    """
    return LogManager(config, verbose=verbose).setup(name)


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Get a logger instance (may not be configured yet)."""
    return logging.getLogger(name)


# =============================================================================
# LOG MANAGER CLASS
# =============================================================================


class LogManager:
    """Manages logging handlers for forensic-ingest.

    Attributes:
        config: Configuration providing level, format and log directory.
        logs_path: Directory holding the rotating log files.
        verbose: Whether DEBUG is forced.
    """

    def __init__(self, config: Optional[Config] = None, verbose: bool = False):
        self.config = config if config is not None else get_default_config()
        self.logs_path = Path(self.config.logging.directory)
        self.verbose = verbose

    @property
    def level(self) -> int:
        """Effective numeric log level."""
        if self.verbose:
            return logging.DEBUG
        return getattr(logging, LogLevel(self.config.logging.level).value, logging.INFO)

    def setup(self, name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
        """Set up logging with file and console handlers.

        Creates the log directory if needed. Handlers are added only once per
        logger; later calls just adjust the level.

        Args:
            name: Logger name (default: forensic_ingest).

        Returns:
            Configured logger instance.
        """
        self.logs_path.mkdir(parents=True, exist_ok=True)

        logger = logging.getLogger(name)
        level = self.level
        logger.setLevel(level)

        if not logger.handlers:
            formatter = logging.Formatter(self.config.logging.format)

            file_handler = TimedRotatingFileHandler(
                filename=self.get_log_file_path(),
                when="midnight",
                interval=1,
                backupCount=DEFAULT_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.suffix = "%Y-%m-%d"
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        for handler in logger.handlers:
            handler.setLevel(level)

        return logger

    def get_log_file_path(self) -> Path:
        """Get today's log file path (logs/forensic-ingest-YYYY-MM-DD.log)."""
        today = datetime.now().strftime("%Y-%m-%d")
        return self.logs_path / f"{LOG_FILE_PREFIX}-{today}{LOG_FILE_EXTENSION}"
