"""File metadata schema produced by the metadata normalizer."""

from typing import Optional

from pydantic import BaseModel, Field

from forensic_ingest.schemas.common import FileKind


class FileTimestamps(BaseModel):
    """UTC timestamps of a filesystem entry, as ISO-8601 strings.

    ``changed`` is the inode change time where the filesystem tracks one.
    ``created`` falls back to the modification time on filesystems without
    a birth time (e.g. ext4 through os.stat).
    """

    modified: str
    accessed: str
    created: str
    changed: Optional[str] = None

    class Config:
        frozen = True


class FileRecord(BaseModel):
    """Attributes of one filesystem entry inside an import root."""

    relative_path: str = Field(..., description="Path below the import root, '/'-prefixed")
    kind: FileKind
    size: Optional[int] = Field(None, ge=0, description="Size in bytes, regular files only")
    owner: str
    group: str
    permissions: str = Field(..., description="Permission string, e.g. rwxr-x---")
    timestamps: FileTimestamps
    link_target: Optional[str] = Field(None, description="Target of a symbolic link")

    class Config:
        frozen = True

    @property
    def is_regular(self) -> bool:
        return self.kind == FileKind.REGULAR
