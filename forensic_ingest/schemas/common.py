"""Common types and enums shared across schemas."""

from enum import Enum


class FileKind(str, Enum):
    """Kind of filesystem entry.

    Values are the strings persisted in the ``metadata:fileType`` column.
    """

    REGULAR = "DATA_FILE"
    DIRECTORY = "DIRECTORY"
    SYMLINK = "SYMBOLIC_LINK"
    OTHER = "OTHER"


class ContentPlacement(str, Enum):
    """Where the content of an uploaded entry ended up."""

    INLINE = "inline"  # raw bytes in the row-store
    EXTERNAL = "external"  # blob-store copy plus pointer column
    NONE = "none"  # directories, symlinks, other
