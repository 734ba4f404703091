"""Schemas for file metadata and case management."""

from forensic_ingest.schemas.case import Case, Exhibit
from forensic_ingest.schemas.common import ContentPlacement, FileKind
from forensic_ingest.schemas.metadata import FileRecord, FileTimestamps

__all__ = [
    "Case",
    "Exhibit",
    "ContentPlacement",
    "FileKind",
    "FileRecord",
    "FileTimestamps",
]
