"""Blob-store layer for large file content."""

from forensic_ingest.blob.store import (
    BlobStore,
    BlobStoreError,
    LocalBlobStore,
    S3BlobStore,
    open_blob_store,
)

__all__ = [
    "BlobStore",
    "BlobStoreError",
    "LocalBlobStore",
    "S3BlobStore",
    "open_blob_store",
]
