"""Core Module.

Configuration loading (forensic-ingest.yaml) and logging setup.

Example usage:
    from forensic_ingest.core import load_config, setup_logging

    config = load_config()
    logger = setup_logging(config)
    workers = config.ingestion.workers
"""

from forensic_ingest.core.config import (
    # Configuration models
    Config,
    RowStoreConfig,
    BlobStoreConfig,
    IngestionConfig,
    LoggingConfig,
    # Enums
    LogLevel,
    RowStoreBackend,
    BlobStoreBackend,
    # Loading functions
    load_config,
    get_default_config,
    validate_config,
    # Exceptions
    ConfigurationError,
    # Constants
    CONFIG_FILENAME,
    DEFAULT_BASE_PATH,
    DEFAULT_INLINE_THRESHOLD,
)

from forensic_ingest.core.logging import (
    setup_logging,
    get_logger,
    LogManager,
)

__all__ = [
    "Config",
    "RowStoreConfig",
    "BlobStoreConfig",
    "IngestionConfig",
    "LoggingConfig",
    "LogLevel",
    "RowStoreBackend",
    "BlobStoreBackend",
    "load_config",
    "get_default_config",
    "validate_config",
    "ConfigurationError",
    "CONFIG_FILENAME",
    "DEFAULT_BASE_PATH",
    "DEFAULT_INLINE_THRESHOLD",
    "setup_logging",
    "get_logger",
    "LogManager",
]
