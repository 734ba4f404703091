"""Configuration System.

This module provides the configuration system for forensic-ingest, including:
- Pydantic models for the row-store, blob-store, ingestion and logging sections
- YAML file loading with default fallbacks
- Partial config merging
- Per-backend override files (the -x / -y CLI options)
- Environment variable support for blob-store credentials

Configuration is loaded from forensic-ingest.yaml files. If no file exists,
defaults are used. Partial configurations are merged with defaults.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


# =============================================================================
# CONSTANTS
# =============================================================================

CONFIG_FILENAME = "forensic-ingest.yaml"

# Largest cell value accepted by the row-store (10 MiB).
MAX_CELL_SIZE = 10_485_760

# Default inline threshold, 100 bytes below MAX_CELL_SIZE for key overhead.
DEFAULT_INLINE_THRESHOLD = 10_485_660

DEFAULT_BASE_PATH = "/data/"

S3_ACCESS_KEY_ENV_VAR = "FORENSIC_S3_ACCESS_KEY_ID"
S3_SECRET_KEY_ENV_VAR = "FORENSIC_S3_SECRET_ACCESS_KEY"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


# =============================================================================
# ENUMS
# =============================================================================


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RowStoreBackend(str, Enum):
    """Available row-store implementations."""

    SQLITE = "sqlite"


class BlobStoreBackend(str, Enum):
    """Available blob-store implementations."""

    LOCAL = "local"
    S3 = "s3"


# =============================================================================
# CONFIGURATION MODELS
# =============================================================================


class RowStoreConfig(BaseModel):
    """Row-store connection settings."""

    backend: RowStoreBackend = Field(
        RowStoreBackend.SQLITE, description="Row-store implementation"
    )
    path: str = Field(
        "forensic-store.db", description="Database file for the sqlite backend"
    )


class BlobStoreConfig(BaseModel):
    """Blob-store connection settings.

    The local backend stores blobs below ``root``. The s3 backend needs a
    bucket; credentials can also come from environment variables.
    """

    backend: BlobStoreBackend = Field(
        BlobStoreBackend.LOCAL, description="Blob-store implementation"
    )
    root: str = Field(
        "forensic-blobs", description="Root directory for the local backend"
    )
    bucket: str | None = Field(None, description="Bucket name for the s3 backend")
    endpoint_url: str | None = Field(
        None, description="Custom endpoint for S3-compatible services"
    )
    access_key_id: str | None = Field(
        None, description=f"Access key (can also be set via {S3_ACCESS_KEY_ENV_VAR})"
    )
    secret_access_key: str | None = Field(
        None, description=f"Secret key (can also be set via {S3_SECRET_KEY_ENV_VAR})"
    )

    @model_validator(mode="after")
    def resolve_env_vars(self) -> "BlobStoreConfig":
        """Resolve credentials from the environment and check s3 settings."""
        if self.access_key_id is None:
            self.access_key_id = os.environ.get(S3_ACCESS_KEY_ENV_VAR)
        if self.secret_access_key is None:
            self.secret_access_key = os.environ.get(S3_SECRET_KEY_ENV_VAR)
        if self.backend == BlobStoreBackend.S3 and not self.bucket:
            raise ValueError("blob_store.bucket is required for the s3 backend")
        return self


class IngestionConfig(BaseModel):
    """Ingestion run settings."""

    base_path: str = Field(
        DEFAULT_BASE_PATH,
        description="Blob-store base directory for large file content",
    )
    inline_threshold: int = Field(
        DEFAULT_INLINE_THRESHOLD,
        ge=0,
        description="Largest file size (bytes) stored inline in the row-store",
    )
    workers: int = Field(10, ge=1, description="Upload worker pool size")
    max_pending: int | None = Field(
        None,
        ge=1,
        description="Maximum in-flight uploads (default: 4 x workers)",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Logging level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    directory: str = Field("logs", description="Directory for rotating log files")


class Config(BaseModel):
    """Complete configuration.

    Loaded from forensic-ingest.yaml with defaults for missing values.
    """

    version: str = Field("1.0", description="Configuration version")
    row_store: RowStoreConfig = Field(
        default_factory=RowStoreConfig, description="Row-store settings"
    )
    blob_store: BlobStoreConfig = Field(
        default_factory=BlobStoreConfig, description="Blob-store settings"
    )
    ingestion: IngestionConfig = Field(
        default_factory=IngestionConfig, description="Ingestion run settings"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    class Config:
        """Pydantic configuration."""

        use_enum_values = True


# =============================================================================
# DEFAULT CONFIGURATION
# =============================================================================


def get_default_config() -> Config:
    """Return the default configuration."""
    return Config()


# =============================================================================
# CONFIG LOADING
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Values from override take precedence. Nested dicts are merged recursively.
    Lists are replaced entirely (not merged).
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, returning an empty dict for empty files.

    Raises:
        ConfigurationError: If the file is unreadable or not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error reading {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}")
    return data


def load_config(
    path: Path | str | None = None,
    row_store_path: Path | str | None = None,
    blob_store_path: Path | str | None = None,
) -> Config:
    """Load configuration from YAML files.

    If no path is provided, looks for forensic-ingest.yaml in the current
    directory; a missing default file yields the defaults. The optional
    backend files hold a single section (the fields of RowStoreConfig or
    BlobStoreConfig) and override that section of the main file.

    Args:
        path: Main configuration file.
        row_store_path: File holding only the row_store section.
        blob_store_path: File holding only the blob_store section.

    Returns:
        Loaded and validated Config.

    Raises:
        ConfigurationError: If a file is missing or invalid, or values fail validation.
    """
    if path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
        user_config = _read_yaml(config_path) if config_path.exists() else {}
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        user_config = _read_yaml(config_path)

    for section, section_path in (
        ("row_store", row_store_path),
        ("blob_store", blob_store_path),
    ):
        if section_path is None:
            continue
        section_file = Path(section_path)
        if not section_file.exists():
            raise ConfigurationError(f"Configuration file not found: {section_file}")
        user_config = _deep_merge(user_config, {section: _read_yaml(section_file)})

    merged = _deep_merge(get_default_config().model_dump(), user_config)

    try:
        return Config(**merged)
    except Exception as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


# =============================================================================
# CONFIG VALIDATION
# =============================================================================


def validate_config(config: Config) -> list[str]:
    """Check a configuration for settings that are valid but likely wrong.

    Args:
        config: Configuration to check

    Returns:
        List of warning messages. Empty list if nothing looks off.
    """
    warnings: list[str] = []

    if config.ingestion.inline_threshold > MAX_CELL_SIZE:
        warnings.append(
            f"ingestion.inline_threshold={config.ingestion.inline_threshold} exceeds "
            f"the {MAX_CELL_SIZE} byte cell limit. Large inline writes will be rejected."
        )

    if config.ingestion.inline_threshold == 0:
        warnings.append(
            "ingestion.inline_threshold=0 sends every non-empty file to the blob-store."
        )

    if config.ingestion.workers > 64:
        warnings.append(
            f"ingestion.workers={config.ingestion.workers} is high. "
            "Backends rarely benefit from more than a few dozen concurrent uploads."
        )

    if (
        config.ingestion.max_pending is not None
        and config.ingestion.max_pending < config.ingestion.workers
    ):
        warnings.append(
            f"ingestion.max_pending={config.ingestion.max_pending} is below "
            f"ingestion.workers={config.ingestion.workers}; some workers will idle."
        )

    if config.blob_store.backend == BlobStoreBackend.S3.value and (
        config.blob_store.access_key_id is None
        or config.blob_store.secret_access_key is None
    ):
        warnings.append(
            "blob_store credentials not set; boto3 will fall back to its default "
            "credential chain."
        )

    return warnings
