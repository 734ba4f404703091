"""Tiered upload router.

Stores one filesystem entry as one row of the data table:

- every entry gets its metadata columns (fixed mapping, see METADATA_COLUMNS)
- regular files up to the inline threshold get their bytes in
  ``content:fileContent``
- larger regular files are copied to the blob-store; the row gets the blob
  path in ``content:blobPath``
- directories, symbolic links and other entries get metadata only

Metadata and content are written with separate calls. If the content write
fails after the metadata write the row stays metadata-only; if the blob copy
fails the row points at a missing blob. Either way the failed UploadResult
carries the row key so a repair pass can find it.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from forensic_ingest.blob.store import BlobStore, BlobStoreError
from forensic_ingest.core.config import DEFAULT_INLINE_THRESHOLD
from forensic_ingest.db.row_store import Mutation, RowStore, RowStoreError
from forensic_ingest.ingest.case_registry import (
    FAMILY_CONTENT,
    FAMILY_METADATA,
    TABLE_FORENSIC_DATA,
)
from forensic_ingest.ingest.counters import AtomicCounter, ByteTally
from forensic_ingest.ingest.row_keys import allocate_row_key
from forensic_ingest.schemas import ContentPlacement, Exhibit, FileRecord

logger = logging.getLogger(__name__)


COL_FILE_CONTENT = "fileContent"
COL_BLOB_PATH = "blobPath"

# column -> accessor; missing optional values are written as ""
METADATA_COLUMNS: tuple[tuple[str, Callable[[FileRecord], Any]], ...] = (
    ("filePath", lambda r: r.relative_path),
    ("fileType", lambda r: r.kind.value),
    ("fileSize", lambda r: r.size),
    ("owner", lambda r: r.owner),
    ("group", lambda r: r.group),
    ("permissions", lambda r: r.permissions),
    ("lastModified", lambda r: r.timestamps.modified),
    ("lastAccessed", lambda r: r.timestamps.accessed),
    ("lastChanged", lambda r: r.timestamps.changed),
    ("created", lambda r: r.timestamps.created),
    ("linkTarget", lambda r: r.link_target),
)


def metadata_mutations(record: FileRecord, row_key: str) -> list[Mutation]:
    """One metadata cell per column of METADATA_COLUMNS."""
    mutations = []
    for column, accessor in METADATA_COLUMNS:
        value = accessor(record)
        mutations.append(
            Mutation(row_key, FAMILY_METADATA, column, "" if value is None else str(value))
        )
    return mutations


@dataclass
class UploadResult:
    """Outcome of uploading one entry."""

    relative_path: str
    row_key: Optional[str] = None
    success: bool = False
    placement: ContentPlacement = ContentPlacement.NONE
    metadata_written: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "row_key": self.row_key,
            "success": self.success,
            "placement": self.placement.value,
            "metadata_written": self.metadata_written,
            "error": self.error,
        }


@dataclass(frozen=True)
class UploadStats:
    """Snapshot of the router statistics."""

    rows_written: int = 0
    inline_files: int = 0
    inline_bytes: int = 0
    external_files: int = 0
    external_bytes: int = 0
    failures: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "rows_written": self.rows_written,
            "inline_files": self.inline_files,
            "inline_bytes": self.inline_bytes,
            "external_files": self.external_files,
            "external_bytes": self.external_bytes,
            "failures": self.failures,
        }


class TieredUploadRouter:
    """Uploads entries of one exhibit into the row-store and blob-store.

    ``upload`` is called concurrently by the pipeline workers. Row sequence
    numbers and statistics use lock-free counters.
    """

    def __init__(
        self,
        row_store: RowStore,
        blob_store: BlobStore,
        exhibit: Exhibit,
        input_directory: Path | str,
        inline_threshold: int = DEFAULT_INLINE_THRESHOLD,
        start_sequence: int = 0,
    ):
        """
        Args:
            row_store: Row-store holding the data table.
            blob_store: Blob-store for large content.
            exhibit: Exhibit the entries belong to; its id is the key namespace.
            input_directory: Import root that relative paths are resolved against.
            inline_threshold: Largest size (bytes) stored inline.
            start_sequence: First row sequence number of this exhibit.
        """
        self.row_store = row_store
        self.blob_store = blob_store
        self.exhibit = exhibit
        self.input_directory = Path(input_directory)
        self.inline_threshold = inline_threshold

        self._sequence = itertools.count(start_sequence)
        self._rows_written = AtomicCounter()
        self._inline_files = AtomicCounter()
        self._external_files = AtomicCounter()
        self._failures = AtomicCounter()
        self._inline_bytes = ByteTally()
        self._external_bytes = ByteTally()

    def next_row_key(self) -> str:
        return allocate_row_key(self.exhibit.exhibit_id, next(self._sequence))

    def is_inline(self, record: FileRecord) -> bool:
        return record.size is not None and record.size <= self.inline_threshold

    def blob_path(self, row_key: str) -> str:
        return f"{self.exhibit.base_path.rstrip('/')}/{row_key}"

    def local_path(self, record: FileRecord) -> Path:
        return self.input_directory / record.relative_path.lstrip("/")

    def upload(self, record: FileRecord, absolute_local_path: Path | str | None = None) -> UploadResult:
        """Write the row for one entry, plus its content where applicable.

        Args:
            record: Metadata of the entry.
            absolute_local_path: Where to read content from; derived from the
                import root and the relative path when omitted.

        Returns:
            UploadResult; I/O, encoding and backend errors are logged and reported as a
            failed result instead of being raised.
        """
        local_path = Path(absolute_local_path) if absolute_local_path else self.local_path(record)
        row_key = self.next_row_key()
        result = UploadResult(relative_path=record.relative_path, row_key=row_key)

        logger.debug("Upload %s as row %s", local_path, row_key)
        try:
            self.row_store.put_many(TABLE_FORENSIC_DATA, metadata_mutations(record, row_key))
            result.metadata_written = True
            self._rows_written.increment()

            if record.is_regular:
                if self.is_inline(record):
                    self._store_inline(local_path, row_key)
                    result.placement = ContentPlacement.INLINE
                else:
                    self._store_external(local_path, row_key, record.size or 0)
                    result.placement = ContentPlacement.EXTERNAL
        except (OSError, ValueError, RowStoreError, BlobStoreError) as e:
            self._failures.increment()
            result.error = str(e)
            if result.metadata_written:
                logger.error(
                    "Content upload of %s failed, row %s is incomplete: %s",
                    local_path,
                    row_key,
                    e,
                )
            else:
                logger.error("Upload of %s (row %s) failed: %s", local_path, row_key, e)
            return result

        result.success = True
        return result

    def _store_inline(self, local_path: Path, row_key: str) -> None:
        content = local_path.read_bytes()
        self.row_store.put(TABLE_FORENSIC_DATA, row_key, FAMILY_CONTENT, COL_FILE_CONTENT, content)
        self._inline_files.increment()
        self._inline_bytes.add(len(content))

    def _store_external(self, local_path: Path, row_key: str, size: int) -> None:
        blob_path = self.blob_path(row_key)
        self.row_store.put(TABLE_FORENSIC_DATA, row_key, FAMILY_CONTENT, COL_BLOB_PATH, blob_path)
        logger.debug("Copy %s to blob-store %s", local_path, blob_path)
        self.blob_store.copy_local_file_to(local_path, blob_path)
        self._external_files.increment()
        self._external_bytes.add(size)

    @property
    def stats(self) -> UploadStats:
        return UploadStats(
            rows_written=self._rows_written.value,
            inline_files=self._inline_files.value,
            inline_bytes=self._inline_bytes.total,
            external_files=self._external_files.value,
            external_bytes=self._external_bytes.total,
            failures=self._failures.value,
        )

    def log_status(self) -> None:
        stats = self.stats
        logger.info(
            "Uploaded %d rows for exhibit %s (inline files = %d, %d bytes; "
            "blob-store files = %d, %d bytes; failed = %d)",
            stats.rows_written,
            self.exhibit.exhibit_id,
            stats.inline_files,
            stats.inline_bytes,
            stats.external_files,
            stats.external_bytes,
            stats.failures,
        )
