"""Tests for import orchestration."""

from unittest.mock import patch

import pytest

from forensic_ingest.blob.store import BlobStoreError
from forensic_ingest.db.row_store import SqliteRowStore
from forensic_ingest.ingest.case_registry import TABLE_FORENSIC_CASE, TABLE_FORENSIC_DATA
from forensic_ingest.ingest.importer import (
    ImportRequest,
    ImportSetupError,
    drop_schema,
    run_import,
    show_cases,
)


class TestRunImport:
    """Tests for run_import."""

    def test_imports_evidence(self, test_config, evidence_dir, temp_dir):
        request = ImportRequest(
            input_directory=evidence_dir,
            case_number="CASE-1",
            case_name="Burglary",
            examiner="J. Doe",
            exhibit_name="Laptop",
        )

        report = run_import(test_config, request)

        assert report.case_id == "0"
        assert report.case_number == "CASE-1"
        assert report.exhibit.exhibit_id == "0_0"
        assert report.exhibit.base_path == "/data/0_0"
        assert report.summary.processed == 9
        assert (temp_dir / "blobs" / "data" / "0_0").is_dir()

        with SqliteRowStore(test_config.row_store.path) as store:
            assert store.count_rows(TABLE_FORENSIC_DATA, row_prefix="00_0_0_") == 1
            assert store.count_rows(TABLE_FORENSIC_DATA) == 9

    def test_second_import_adds_exhibit_to_case(self, test_config, evidence_dir):
        request = ImportRequest(input_directory=evidence_dir, case_number="CASE-1")

        run_import(test_config, request)
        report = run_import(test_config, request)

        assert report.case_id == "0"
        assert report.exhibit.exhibit_id == "0_1"
        with SqliteRowStore(test_config.row_store.path) as store:
            assert store.count_rows(TABLE_FORENSIC_CASE) == 1
            assert store.count_rows(TABLE_FORENSIC_DATA) == 18

    def test_generates_case_number(self, test_config, evidence_dir):
        report = run_import(test_config, ImportRequest(input_directory=evidence_dir))

        assert len(report.case_number) == 36

    def test_base_path_override(self, test_config, evidence_dir):
        request = ImportRequest(input_directory=evidence_dir, base_path="/cases")

        report = run_import(test_config, request)

        assert report.exhibit.base_path == "/cases/0_0"

    def test_missing_input_directory(self, test_config, temp_dir):
        request = ImportRequest(input_directory=temp_dir / "missing")

        with pytest.raises(ImportSetupError, match="does not exist"):
            run_import(test_config, request)

    def test_unreachable_blob_store(self, test_config, evidence_dir):
        """Test that a blob-store connection failure aborts before any row is written."""
        with patch(
            "forensic_ingest.ingest.importer.open_blob_store",
            side_effect=BlobStoreError("unreachable"),
        ):
            with pytest.raises(ImportSetupError, match="unreachable"):
                run_import(test_config, ImportRequest(input_directory=evidence_dir))

        assert show_cases(test_config) == []

    def test_report_to_dict(self, test_config, evidence_dir):
        report = run_import(test_config, ImportRequest(input_directory=evidence_dir))

        data = report.to_dict()

        assert data["exhibit"]["exhibit_id"] == "0_0"
        assert data["summary"]["dispatched"] == 9


class TestShowAndDrop:
    """Tests for show_cases and drop_schema."""

    def test_show_without_imports(self, test_config):
        assert show_cases(test_config) == []

    def test_show_after_import(self, test_config, evidence_dir):
        run_import(
            test_config,
            ImportRequest(input_directory=evidence_dir, case_number="CASE-1", exhibit_name="A"),
        )

        listing = show_cases(test_config)

        assert len(listing) == 1
        case, exhibits = listing[0]
        assert case.case_number == "CASE-1"
        assert [e.name for e in exhibits] == ["A"]

    def test_drop_schema(self, test_config, evidence_dir):
        run_import(test_config, ImportRequest(input_directory=evidence_dir))

        drop_schema(test_config)

        assert show_cases(test_config) == []
