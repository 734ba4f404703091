"""Pytest configuration and fixtures."""

import logging
import os
import tempfile
from pathlib import Path

import pytest

from forensic_ingest.blob.store import LocalBlobStore
from forensic_ingest.core.config import (
    BlobStoreConfig,
    Config,
    LoggingConfig,
    RowStoreConfig,
)
from forensic_ingest.core.logging import DEFAULT_LOGGER_NAME
from forensic_ingest.db.row_store import SqliteRowStore
from forensic_ingest.ingest.case_registry import CaseRegistry
from forensic_ingest.schemas import Exhibit


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def row_store(temp_dir):
    """SQLite row-store in a temporary file."""
    store = SqliteRowStore(temp_dir / "store.db")
    yield store
    store.close()


@pytest.fixture
def schema_row_store(row_store):
    """Row-store with the case, exhibit and data tables created."""
    CaseRegistry(row_store).create_schema()
    return row_store


@pytest.fixture
def blob_store(temp_dir):
    """Local blob-store in a temporary directory."""
    return LocalBlobStore(temp_dir / "blobs")


@pytest.fixture
def exhibit():
    """First exhibit of the first case."""
    return Exhibit(
        exhibit_id="0_0",
        case_id="0",
        name="Test exhibit",
        import_date="2025-01-01T00:00:00+00:00",
        base_path="/data/0_0",
    )


@pytest.fixture
def evidence_dir(temp_dir):
    """Sample evidence tree.

    evidence/
        docs/readme.txt       "hello evidence"
        docs/empty.bin        0 bytes
        bin/tool              64 bytes
        readme-link -> docs/readme.txt
        dangling -> missing-target
        docs-link -> docs
    """
    root = temp_dir / "evidence"
    (root / "docs").mkdir(parents=True)
    (root / "bin").mkdir()
    (root / "docs" / "readme.txt").write_text("hello evidence")
    (root / "docs" / "empty.bin").write_bytes(b"")
    (root / "bin" / "tool").write_bytes(bytes(range(64)))
    os.symlink("docs/readme.txt", root / "readme-link")
    os.symlink("missing-target", root / "dangling")
    os.symlink("docs", root / "docs-link")
    return root


@pytest.fixture
def test_config(temp_dir):
    """Config with all backends and logs below the temporary directory."""
    return Config(
        row_store=RowStoreConfig(path=str(temp_dir / "store.db")),
        blob_store=BlobStoreConfig(root=str(temp_dir / "blobs")),
        logging=LoggingConfig(directory=str(temp_dir / "logs")),
    )


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up loggers after each test to avoid handler accumulation."""
    yield
    for name in [DEFAULT_LOGGER_NAME, "test_logger"]:
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)
