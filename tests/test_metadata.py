"""Tests for the metadata normalizer."""

import os
import stat
from pathlib import Path
from unittest.mock import patch

from forensic_ingest.ingest.metadata import (
    classify,
    normalize,
    relative_path,
    walk_entries,
)
from forensic_ingest.schemas import FileKind


class TestClassify:
    """Tests for mapping st_mode to FileKind."""

    def test_kinds(self):
        assert classify(stat.S_IFREG | 0o644) == FileKind.REGULAR
        assert classify(stat.S_IFDIR | 0o755) == FileKind.DIRECTORY
        assert classify(stat.S_IFLNK | 0o777) == FileKind.SYMLINK
        assert classify(stat.S_IFIFO | 0o600) == FileKind.OTHER

    def test_persisted_values(self):
        assert FileKind.REGULAR.value == "DATA_FILE"
        assert FileKind.SYMLINK.value == "SYMBOLIC_LINK"


class TestRelativePath:
    """Tests for relative path rendering."""

    def test_root_is_slash(self, evidence_dir):
        assert relative_path(evidence_dir, evidence_dir) == "/"

    def test_nested_path(self, evidence_dir):
        path = evidence_dir / "docs" / "readme.txt"

        assert relative_path(path, evidence_dir) == "/docs/readme.txt"


class TestNormalize:
    """Tests for normalize."""

    def test_regular_file(self, evidence_dir):
        record = normalize(evidence_dir / "docs" / "readme.txt", evidence_dir)

        assert record.kind == FileKind.REGULAR
        assert record.relative_path == "/docs/readme.txt"
        assert record.size == len("hello evidence")
        assert record.link_target is None
        assert record.owner
        assert record.group
        assert len(record.permissions) == 9

    def test_permissions_string(self, evidence_dir):
        path = evidence_dir / "bin" / "tool"
        os.chmod(path, 0o750)

        assert normalize(path, evidence_dir).permissions == "rwxr-x---"

    def test_empty_file_has_zero_size(self, evidence_dir):
        record = normalize(evidence_dir / "docs" / "empty.bin", evidence_dir)

        assert record.size == 0
        assert record.is_regular

    def test_directory_has_no_size(self, evidence_dir):
        record = normalize(evidence_dir / "docs", evidence_dir)

        assert record.kind == FileKind.DIRECTORY
        assert record.size is None

    def test_root_entry(self, evidence_dir):
        record = normalize(evidence_dir, evidence_dir)

        assert record.relative_path == "/"
        assert record.kind == FileKind.DIRECTORY

    def test_symlink_is_not_followed(self, evidence_dir):
        record = normalize(evidence_dir / "readme-link", evidence_dir)

        assert record.kind == FileKind.SYMLINK
        assert record.link_target == "docs/readme.txt"
        assert record.size is None

    def test_dangling_symlink(self, evidence_dir):
        record = normalize(evidence_dir / "dangling", evidence_dir)

        assert record.kind == FileKind.SYMLINK
        assert record.link_target == "missing-target"

    def test_missing_entry_returns_none(self, evidence_dir):
        assert normalize(evidence_dir / "vanished", evidence_dir) is None

    def test_timestamps_are_utc_iso(self, evidence_dir):
        path = evidence_dir / "docs" / "readme.txt"
        os.utime(path, (1_000_000_000, 1_700_000_000))

        timestamps = normalize(path, evidence_dir).timestamps

        assert timestamps.accessed == "2001-09-09T01:46:40Z"
        assert timestamps.modified == "2023-11-14T22:13:20Z"
        assert timestamps.changed.endswith("Z")
        assert timestamps.created.endswith("Z")

    def test_without_posix_support_returns_none(self, evidence_dir):
        with patch("forensic_ingest.ingest.metadata.pwd", None):
            assert normalize(evidence_dir / "docs" / "readme.txt", evidence_dir) is None

    def test_unknown_owner_falls_back_to_uid(self, evidence_dir):
        with patch("forensic_ingest.ingest.metadata.pwd.getpwuid", side_effect=KeyError):
            record = normalize(evidence_dir / "docs" / "readme.txt", evidence_dir)

        assert record.owner == str(os.getuid())


class TestWalkEntries:
    """Tests for walk_entries."""

    def test_yields_root_and_every_entry(self, evidence_dir):
        entries = {relative_path(p, evidence_dir) for p in walk_entries(evidence_dir)}

        assert entries == {
            "/",
            "/docs",
            "/bin",
            "/docs/readme.txt",
            "/docs/empty.bin",
            "/bin/tool",
            "/readme-link",
            "/dangling",
            "/docs-link",
        }

    def test_symlinked_directory_not_descended(self, evidence_dir):
        entries = [Path(p) for p in walk_entries(evidence_dir)]

        assert evidence_dir / "docs-link" in entries
        assert evidence_dir / "docs-link" / "readme.txt" not in entries
