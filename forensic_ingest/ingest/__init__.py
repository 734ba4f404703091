"""Ingestion of evidence directories.

Row key allocation, metadata normalization, case registration, tiered
upload routing and the concurrent pipeline that ties them together.
"""

from forensic_ingest.ingest.case_registry import (
    TABLE_FORENSIC_CASE,
    TABLE_FORENSIC_DATA,
    TABLE_FORENSIC_EXHIBIT,
    CaseRegistry,
    exhibit_base_path,
)
from forensic_ingest.ingest.importer import (
    ImportReport,
    ImportRequest,
    ImportSetupError,
    drop_schema,
    run_import,
    show_cases,
)
from forensic_ingest.ingest.metadata import normalize, walk_entries
from forensic_ingest.ingest.pipeline import IngestionPipeline, IngestSummary
from forensic_ingest.ingest.router import TieredUploadRouter, UploadResult, UploadStats
from forensic_ingest.ingest.row_keys import NUM_REGIONS, allocate_row_key, region_split_keys

__all__ = [
    "TABLE_FORENSIC_CASE",
    "TABLE_FORENSIC_DATA",
    "TABLE_FORENSIC_EXHIBIT",
    "CaseRegistry",
    "exhibit_base_path",
    "ImportReport",
    "ImportRequest",
    "ImportSetupError",
    "drop_schema",
    "run_import",
    "show_cases",
    "normalize",
    "walk_entries",
    "IngestionPipeline",
    "IngestSummary",
    "TieredUploadRouter",
    "UploadResult",
    "UploadStats",
    "NUM_REGIONS",
    "allocate_row_key",
    "region_split_keys",
]
