"""Import orchestration.

One import run:

1. check the input directory
2. connect to the row-store and blob-store (closed again on every path)
3. create missing tables, register case and exhibit
4. create the exhibit directory in the blob-store
5. run the ingestion pipeline and report

Everything up to step 4 is setup: failures there raise ImportSetupError and
no file is touched. Failures of single files during step 5 only show up in
the summary and the log.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from forensic_ingest.blob.store import BlobStoreError, open_blob_store
from forensic_ingest.core.config import DEFAULT_BASE_PATH, Config
from forensic_ingest.db.row_store import RowStoreError, open_row_store
from forensic_ingest.ingest.case_registry import CaseRegistry
from forensic_ingest.ingest.pipeline import IngestionPipeline, IngestSummary
from forensic_ingest.ingest.router import TieredUploadRouter
from forensic_ingest.schemas import Case, Exhibit

logger = logging.getLogger(__name__)


class ImportSetupError(Exception):
    """Raised when an import cannot start (bad input, unreachable backend)."""

    pass


class ImportRequest(BaseModel):
    """Parameters of one import run."""

    input_directory: Path = Field(..., description="Local directory to import")
    base_path: Optional[str] = Field(
        None, description="Blob-store base directory (default from config)"
    )
    case_number: Optional[str] = Field(
        None, description="Case the exhibit belongs to (generated when omitted)"
    )
    case_name: Optional[str] = Field(None, description="Descriptive case name")
    examiner: Optional[str] = Field(None, description="Name of the examiner")
    exhibit_name: Optional[str] = Field(
        None, description="Name of the exhibit, e.g. 'Windows system image'"
    )


@dataclass
class ImportReport:
    """Result of an import run."""

    case_id: str
    case_number: str
    exhibit: Exhibit
    summary: IngestSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "case_id": self.case_id,
            "case_number": self.case_number,
            "exhibit": self.exhibit.model_dump(),
            "summary": self.summary.to_dict(),
        }


def run_import(config: Config, request: ImportRequest) -> ImportReport:
    """Import ``request.input_directory`` as a new exhibit.

    Raises:
        ImportSetupError: If the run cannot be set up.
    """
    input_directory = Path(request.input_directory)
    if not input_directory.is_dir():
        raise ImportSetupError(f"Input directory does not exist: {input_directory}")

    case_number = request.case_number or str(uuid.uuid4())
    base_path = request.base_path or config.ingestion.base_path or DEFAULT_BASE_PATH

    logger.info("Starting forensic data import of %s", input_directory)
    with ExitStack() as stack:
        try:
            row_store = stack.enter_context(open_row_store(config.row_store))
            blob_store = stack.enter_context(open_blob_store(config.blob_store))

            registry = CaseRegistry(row_store)
            registry.create_schema()
            case_id = registry.register_case(case_number, request.case_name, request.examiner)
            exhibit = registry.register_exhibit(
                case_id, base_path=base_path, exhibit_name=request.exhibit_name
            )

            if blob_store.exists(exhibit.base_path):
                logger.warning(
                    "Exhibit directory %s already exists and will be used for the upload",
                    exhibit.base_path,
                )
            else:
                logger.info("Create exhibit directory %s", exhibit.base_path)
                blob_store.ensure_directory(exhibit.base_path)
        except (RowStoreError, BlobStoreError) as e:
            raise ImportSetupError(str(e)) from e

        logger.info(
            "Upload files into row-store and blob-store. Use case number %s (case %s, exhibit %s)",
            case_number,
            case_id,
            exhibit.exhibit_id,
        )
        router = TieredUploadRouter(
            row_store,
            blob_store,
            exhibit,
            input_directory,
            inline_threshold=config.ingestion.inline_threshold,
        )
        pipeline = IngestionPipeline(
            router,
            workers=config.ingestion.workers,
            max_pending=config.ingestion.max_pending,
        )
        summary = pipeline.run(input_directory)
        router.log_status()

    logger.info("Forensic data import finished")
    return ImportReport(
        case_id=case_id, case_number=case_number, exhibit=exhibit, summary=summary
    )


def show_cases(config: Config) -> list[tuple[Case, list[Exhibit]]]:
    """List all registered cases and their exhibits.

    Raises:
        ImportSetupError: If the row-store cannot be reached.
    """
    try:
        with open_row_store(config.row_store) as row_store:
            return CaseRegistry(row_store).list_cases_and_exhibits()
    except RowStoreError as e:
        raise ImportSetupError(str(e)) from e


def drop_schema(config: Config) -> None:
    """Delete the case, exhibit and data tables.

    Blob-store content is left in place.
    """
    try:
        with open_row_store(config.row_store) as row_store:
            CaseRegistry(row_store).drop_schema()
    except RowStoreError as e:
        raise ImportSetupError(str(e)) from e
