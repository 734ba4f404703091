"""Tests for the tiered upload router."""

from unittest.mock import MagicMock

import pytest

from forensic_ingest.blob.store import BlobStoreError
from forensic_ingest.core.config import DEFAULT_INLINE_THRESHOLD
from forensic_ingest.db.row_store import RowStoreError
from forensic_ingest.ingest.case_registry import (
    FAMILY_CONTENT,
    FAMILY_METADATA,
    TABLE_FORENSIC_DATA,
)
from forensic_ingest.ingest.metadata import normalize
from forensic_ingest.ingest.router import (
    COL_BLOB_PATH,
    COL_FILE_CONTENT,
    METADATA_COLUMNS,
    TieredUploadRouter,
)
from forensic_ingest.schemas import ContentPlacement, FileKind, FileRecord, FileTimestamps


def sparse_file(path, size):
    with open(path, "wb") as f:
        f.truncate(size)
    return path


def data_row(row_store, row_key):
    rows = list(row_store.scan(TABLE_FORENSIC_DATA, row_prefix=row_key))
    assert len(rows) == 1
    return rows[0]


@pytest.fixture
def router(schema_row_store, blob_store, exhibit, evidence_dir):
    return TieredUploadRouter(schema_row_store, blob_store, exhibit, evidence_dir)


class TestMetadata:
    """Tests for the metadata columns."""

    def test_every_entry_gets_all_metadata_columns(self, router, evidence_dir):
        record = normalize(evidence_dir / "docs" / "readme.txt", evidence_dir)

        result = router.upload(record)

        row = data_row(router.row_store, result.row_key)
        assert set(row.family(FAMILY_METADATA)) == {column for column, _ in METADATA_COLUMNS}
        assert row.text(FAMILY_METADATA, "filePath") == "/docs/readme.txt"
        assert row.text(FAMILY_METADATA, "fileType") == "DATA_FILE"
        assert row.text(FAMILY_METADATA, "fileSize") == "14"

    def test_missing_values_written_empty(self, router, evidence_dir):
        record = normalize(evidence_dir / "docs", evidence_dir)

        result = router.upload(record)

        row = data_row(router.row_store, result.row_key)
        assert row.text(FAMILY_METADATA, "fileSize") == ""
        assert row.text(FAMILY_METADATA, "linkTarget") == ""

    def test_row_keys_follow_sequence(self, router, evidence_dir):
        record = normalize(evidence_dir / "docs", evidence_dir)

        keys = [router.upload(record).row_key for _ in range(3)]

        assert keys == ["00_0_0_0", "01_0_0_1", "02_0_0_2"]


class TestTiering:
    """Tests for inline versus external placement."""

    def test_small_file_inline(self, router, evidence_dir):
        record = normalize(evidence_dir / "bin" / "tool", evidence_dir)

        result = router.upload(record)

        assert result.success
        assert result.placement == ContentPlacement.INLINE
        row = data_row(router.row_store, result.row_key)
        assert row.value(FAMILY_CONTENT, COL_FILE_CONTENT) == bytes(range(64))
        assert row.value(FAMILY_CONTENT, COL_BLOB_PATH) is None

    def test_empty_file_inline(self, router, evidence_dir):
        result = router.upload(normalize(evidence_dir / "docs" / "empty.bin", evidence_dir))

        row = data_row(router.row_store, result.row_key)
        assert row.value(FAMILY_CONTENT, COL_FILE_CONTENT) == b""

    def test_file_at_threshold_is_inline(self, schema_row_store, exhibit, temp_dir):
        """Test that a file of exactly the threshold size stays in the row-store."""
        root = temp_dir / "big"
        root.mkdir()
        path = sparse_file(root / "at-threshold.bin", DEFAULT_INLINE_THRESHOLD)
        blob_store = MagicMock()
        router = TieredUploadRouter(schema_row_store, blob_store, exhibit, root)

        result = router.upload(normalize(path, root), path)

        assert result.placement == ContentPlacement.INLINE
        blob_store.copy_local_file_to.assert_not_called()
        row = data_row(schema_row_store, result.row_key)
        assert len(row.value(FAMILY_CONTENT, COL_FILE_CONTENT)) == DEFAULT_INLINE_THRESHOLD

    def test_file_above_threshold_is_external(self, schema_row_store, exhibit, temp_dir):
        """Test that one byte more goes to the blob-store with a pointer."""
        root = temp_dir / "big"
        root.mkdir()
        path = sparse_file(root / "above.bin", DEFAULT_INLINE_THRESHOLD + 1)
        blob_store = MagicMock()
        router = TieredUploadRouter(schema_row_store, blob_store, exhibit, root)

        result = router.upload(normalize(path, root), path)

        assert result.success
        assert result.placement == ContentPlacement.EXTERNAL
        blob_store.copy_local_file_to.assert_called_once_with(path, "/data/0_0/00_0_0_0")
        row = data_row(schema_row_store, result.row_key)
        assert row.text(FAMILY_CONTENT, COL_BLOB_PATH) == "/data/0_0/00_0_0_0"
        assert row.value(FAMILY_CONTENT, COL_FILE_CONTENT) is None

    def test_external_copy_lands_in_blob_store(
        self, schema_row_store, blob_store, exhibit, evidence_dir
    ):
        router = TieredUploadRouter(
            schema_row_store, blob_store, exhibit, evidence_dir, inline_threshold=10
        )

        result = router.upload(normalize(evidence_dir / "bin" / "tool", evidence_dir))

        assert result.placement == ContentPlacement.EXTERNAL
        copied = blob_store.resolve(router.blob_path(result.row_key))
        assert copied.read_bytes() == bytes(range(64))
        assert router.stats.external_bytes == 64

    @pytest.mark.parametrize("name", ["docs", "readme-link", "dangling"])
    def test_non_regular_entries_have_no_content(self, router, evidence_dir, name):
        result = router.upload(normalize(evidence_dir / name, evidence_dir))

        assert result.success
        assert result.placement == ContentPlacement.NONE
        assert list(router.row_store.scan(TABLE_FORENSIC_DATA, family=FAMILY_CONTENT)) == []

    def test_non_regular_with_size_has_no_content(self, router):
        """Test that a reported size never makes a directory carry content."""
        record = FileRecord(
            relative_path="/docs",
            kind=FileKind.DIRECTORY,
            size=4096,
            owner="root",
            group="root",
            permissions="rwxr-xr-x",
            timestamps=FileTimestamps(
                modified="2025-01-01T00:00:00Z",
                accessed="2025-01-01T00:00:00Z",
                created="2025-01-01T00:00:00Z",
            ),
        )

        result = router.upload(record)

        assert result.placement == ContentPlacement.NONE
        assert list(router.row_store.scan(TABLE_FORENSIC_DATA, family=FAMILY_CONTENT)) == []


class TestFailures:
    """Tests for per-file failure handling."""

    def test_blob_copy_failure_reports_row_key(self, schema_row_store, exhibit, evidence_dir):
        blob_store = MagicMock()
        blob_store.copy_local_file_to.side_effect = BlobStoreError("bucket gone")
        router = TieredUploadRouter(
            schema_row_store, blob_store, exhibit, evidence_dir, inline_threshold=0
        )

        result = router.upload(normalize(evidence_dir / "bin" / "tool", evidence_dir))

        assert not result.success
        assert result.metadata_written
        assert result.row_key == "00_0_0_0"
        assert "bucket gone" in result.error
        assert router.stats.failures == 1
        assert router.stats.external_files == 0

    def test_vanished_file_leaves_metadata_only_row(self, router, evidence_dir):
        path = evidence_dir / "docs" / "readme.txt"
        record = normalize(path, evidence_dir)
        path.unlink()

        result = router.upload(record)

        assert not result.success
        row = data_row(router.row_store, result.row_key)
        assert row.family(FAMILY_CONTENT) == {}
        assert row.text(FAMILY_METADATA, "filePath") == "/docs/readme.txt"

    def test_encoding_failure_is_counted(self, exhibit, evidence_dir):
        """Test that an encoding error is returned and counted like any other failure."""
        row_store = MagicMock()
        row_store.put_many.side_effect = UnicodeEncodeError(
            "utf-8", "\udce9", 0, 1, "surrogates not allowed"
        )
        router = TieredUploadRouter(row_store, MagicMock(), exhibit, evidence_dir)

        result = router.upload(normalize(evidence_dir / "docs", evidence_dir))

        assert not result.success
        assert result.row_key == "00_0_0_0"
        assert "surrogates" in result.error
        assert router.stats.failures == 1

    def test_metadata_write_failure(self, exhibit, evidence_dir):
        row_store = MagicMock()
        row_store.put_many.side_effect = RowStoreError("region offline")
        router = TieredUploadRouter(row_store, MagicMock(), exhibit, evidence_dir)

        result = router.upload(normalize(evidence_dir / "docs", evidence_dir))

        assert not result.success
        assert not result.metadata_written
        assert router.stats.rows_written == 0
        assert router.stats.failures == 1


class TestStats:
    """Tests for router statistics."""

    def test_counts_and_bytes(self, router, evidence_dir):
        for name in ("docs/readme.txt", "bin/tool", "docs"):
            router.upload(normalize(evidence_dir / name, evidence_dir))

        stats = router.stats
        assert stats.rows_written == 3
        assert stats.inline_files == 2
        assert stats.inline_bytes == 14 + 64
        assert stats.external_files == 0
        assert stats.failures == 0

    def test_stats_reads_do_not_change_values(self, router, evidence_dir):
        router.upload(normalize(evidence_dir / "docs", evidence_dir))

        assert router.stats.rows_written == 1
        assert router.stats.rows_written == 1
