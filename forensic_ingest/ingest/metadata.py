"""Metadata normalizer.

Turns filesystem entries below an import root into FileRecords. Entries are
stat-ed with ``os.lstat``: symbolic links are recorded as links and never
followed, since an evidence image mounted read-only often contains links to
runtime-only targets (devices, /proc entries) or to files outside the image.

Timestamps are rendered as UTC ISO-8601 strings (``2024-01-31T12:00:00Z``).
"""

from __future__ import annotations

import logging
import os
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from forensic_ingest.schemas import FileKind, FileRecord, FileTimestamps

try:
    import grp
    import pwd
except ImportError:  # pragma: no cover - non-POSIX platforms
    grp = None
    pwd = None

logger = logging.getLogger(__name__)


def posix_supported() -> bool:
    """Whether this platform can supply owner/group/permission attributes."""
    return pwd is not None and grp is not None


def _utc(timestamp: float) -> str:
    return (
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
        .isoformat()
        .replace("+00:00", "Z")
    )


def _owner_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def classify(mode: int) -> FileKind:
    """Map an ``st_mode`` to a FileKind (symlinks checked first)."""
    if stat.S_ISLNK(mode):
        return FileKind.SYMLINK
    if stat.S_ISREG(mode):
        return FileKind.REGULAR
    if stat.S_ISDIR(mode):
        return FileKind.DIRECTORY
    return FileKind.OTHER


def relative_path(path: Path, root: Path) -> str:
    """Path of an entry below the import root, with a leading '/'."""
    rel = os.path.relpath(path, root)
    if rel == os.curdir:
        return "/"
    return "/" + Path(rel).as_posix()


def normalize(path: Path | str, root: Path | str) -> Optional[FileRecord]:
    """Produce the FileRecord of one entry.

    Args:
        path: Entry to describe.
        root: Import root the relative path is computed against.

    Returns:
        FileRecord, or None when the entry cannot be described (no POSIX
        attributes on this platform, entry vanished, permission denied).
    """
    if not posix_supported():
        logger.debug("No POSIX attributes available, skip %s", path)
        return None

    path = Path(path)
    try:
        st = os.lstat(path)
    except OSError as e:
        logger.debug("Cannot stat %s: %s", path, e)
        return None

    kind = classify(st.st_mode)

    link_target = None
    if kind == FileKind.SYMLINK:
        try:
            link_target = os.readlink(path)
        except OSError as e:
            logger.debug("Cannot read link target of %s: %s", path, e)

    timestamps = FileTimestamps(
        modified=_utc(st.st_mtime),
        accessed=_utc(st.st_atime),
        changed=_utc(st.st_ctime),
        created=_utc(getattr(st, "st_birthtime", st.st_mtime)),
    )

    return FileRecord(
        relative_path=relative_path(path, Path(root)),
        kind=kind,
        size=st.st_size if kind == FileKind.REGULAR else None,
        owner=_owner_name(st.st_uid),
        group=_group_name(st.st_gid),
        permissions=stat.filemode(st.st_mode)[1:],
        timestamps=timestamps,
        link_target=link_target,
    )


def walk_entries(root: Path | str) -> Iterator[Path]:
    """Yield the root and every entry below it.

    Directories reached through symbolic links are yielded as links but not
    descended into. Unreadable directories are logged and skipped.
    """
    root = Path(root)
    yield root

    def on_error(error: OSError) -> None:
        logger.warning("Cannot list directory %s: %s", error.filename, error.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=False):
        base = Path(dirpath)
        for name in dirnames:
            yield base / name
        for name in filenames:
            yield base / name
