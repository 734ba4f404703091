"""Blob-store capability and its implementations.

Large file content is copied into a blob namespace addressed by POSIX-style
paths (``/data/0_0/05_0_0_5``). Two implementations are provided:

- LocalBlobStore: paths map below a root directory on the local filesystem
- S3BlobStore: paths map to object keys in one bucket (boto3)
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from forensic_ingest.core.config import BlobStoreBackend, BlobStoreConfig

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    """Raised when a blob-store operation fails."""

    pass


class BlobStore(Protocol):
    """Capabilities the ingestion engine needs from a blob-store."""

    def copy_local_file_to(self, local_path: Path | str, remote_path: str) -> None:
        ...

    def ensure_directory(self, remote_path: str) -> None:
        ...

    def exists(self, remote_path: str) -> bool:
        ...

    def close(self) -> None:
        ...


def _relative_parts(remote_path: str) -> tuple[str, ...]:
    """Split a blob path into its components, rejecting parent references."""
    parts = tuple(p for p in PurePosixPath(remote_path).parts if p != "/")
    if ".." in parts:
        raise BlobStoreError(f"Blob path must not contain '..': {remote_path}")
    return parts


# =============================================================================
# LOCAL FILESYSTEM
# =============================================================================


class LocalBlobStore:
    """Blob-store rooted at a local directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BlobStoreError(f"Cannot create blob-store root {self.root}: {e}") from e

    def resolve(self, remote_path: str) -> Path:
        """Local path backing a blob path."""
        return self.root.joinpath(*_relative_parts(remote_path))

    def copy_local_file_to(self, local_path: Path | str, remote_path: str) -> None:
        target = self.resolve(remote_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, target)
        except OSError as e:
            raise BlobStoreError(f"Cannot copy {local_path} to {remote_path}: {e}") from e

    def ensure_directory(self, remote_path: str) -> None:
        try:
            self.resolve(remote_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BlobStoreError(f"Cannot create directory {remote_path}: {e}") from e

    def exists(self, remote_path: str) -> bool:
        return self.resolve(remote_path).exists()

    def close(self) -> None:
        pass

    def __enter__(self) -> "LocalBlobStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# =============================================================================
# S3
# =============================================================================


class S3BlobStore:
    """Blob-store backed by an S3 (or S3-compatible) bucket.

    Directories are represented by zero-byte ``<prefix>/`` marker objects.
    """

    def __init__(self, bucket: str, client: Any):
        self.bucket = bucket
        self._client = client

    @classmethod
    def connect(cls, config: BlobStoreConfig) -> "S3BlobStore":
        """Create a client from config and check that the bucket is reachable.

        Raises:
            BlobStoreError: If the bucket cannot be reached.
        """
        client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
        )
        try:
            client.head_bucket(Bucket=config.bucket)
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Cannot reach bucket {config.bucket}: {e}") from e
        return cls(config.bucket, client)

    @staticmethod
    def key_for(remote_path: str) -> str:
        return "/".join(_relative_parts(remote_path))

    def copy_local_file_to(self, local_path: Path | str, remote_path: str) -> None:
        key = self.key_for(remote_path)
        try:
            self._client.upload_file(str(local_path), self.bucket, key)
        except (ClientError, BotoCoreError, OSError) as e:
            raise BlobStoreError(
                f"Cannot upload {local_path} to s3://{self.bucket}/{key}: {e}"
            ) from e

    def ensure_directory(self, remote_path: str) -> None:
        if self.exists(remote_path):
            return
        key = self.key_for(remote_path) + "/"
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=b"")
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Cannot create s3://{self.bucket}/{key}: {e}") from e

    def exists(self, remote_path: str) -> bool:
        key = self.key_for(remote_path)
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in ("404", "NoSuchKey", "NotFound"):
                raise BlobStoreError(f"Cannot stat s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise BlobStoreError(f"Cannot stat s3://{self.bucket}/{key}: {e}") from e

        # No object with that exact key; it may still be a directory prefix
        try:
            response = self._client.list_objects_v2(
                Bucket=self.bucket, Prefix=key + "/", MaxKeys=1
            )
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"Cannot list s3://{self.bucket}/{key}/: {e}") from e
        return response.get("KeyCount", 0) > 0

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "S3BlobStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_blob_store(config: BlobStoreConfig) -> LocalBlobStore | S3BlobStore:
    """Connect to the blob-store described by ``config``.

    Raises:
        BlobStoreError: If the store cannot be reached.
    """
    backend = BlobStoreBackend(config.backend)
    if backend == BlobStoreBackend.S3:
        logger.info("Connect to blob-store (s3) bucket %s", config.bucket)
        return S3BlobStore.connect(config)
    logger.info("Connect to blob-store (local) at %s", config.root)
    return LocalBlobStore(config.root)
