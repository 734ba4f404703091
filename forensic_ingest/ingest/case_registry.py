"""Case registry.

Writes metadata about forensic cases (case number, name, examiner) into the
``forensicCase`` table and creates one ``forensicExhibit`` row per import run
(name, import date, blob-store directory). The exhibit id is used as the row
key namespace for all files of that import.

Case and exhibit ids are sequence numbers taken from a count of the existing
rows at registration time. Existence check, count and write are separate
row-store calls: two processes registering at the same time can compute the
same id. Registration is serialized within one process; only one import may
run against a row-store at a time.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional

from forensic_ingest.db.row_store import Mutation, RowStore
from forensic_ingest.ingest.row_keys import region_split_keys
from forensic_ingest.schemas import Case, Exhibit

logger = logging.getLogger(__name__)


# =============================================================================
# TABLE LAYOUT
# =============================================================================

TABLE_FORENSIC_CASE = "forensicCase"
TABLE_FORENSIC_EXHIBIT = "forensicExhibit"
TABLE_FORENSIC_DATA = "forensicData"

FAMILY_COMMON = "common"
FAMILY_METADATA = "metadata"
FAMILY_CONTENT = "content"

COL_CASE_NUMBER = "caseNumber"
COL_CASE_NAME = "caseName"
COL_EXAMINER = "examiner"

COL_EXHIBIT_NAME = "exhibitName"
COL_IMPORT_DATE = "importDate"
COL_BASE_PATH = "basePath"

# table name -> (column families, pre-split keys)
TABLE_LAYOUT: dict[str, tuple[tuple[str, ...], Optional[list[str]]]] = {
    TABLE_FORENSIC_CASE: ((FAMILY_COMMON,), None),
    TABLE_FORENSIC_EXHIBIT: ((FAMILY_COMMON,), None),
    TABLE_FORENSIC_DATA: ((FAMILY_METADATA, FAMILY_CONTENT), region_split_keys()),
}


def exhibit_base_path(base_path: str, exhibit_id: str) -> str:
    """Blob-store directory of an exhibit: ``{base_path}/{exhibit_id}``."""
    return str(PurePosixPath(base_path) / exhibit_id)


def _common_mutations(row_key: str, values: dict[str, Optional[str]]) -> list[Mutation]:
    return [
        Mutation(row_key, FAMILY_COMMON, column, value)
        for column, value in values.items()
        if value is not None
    ]


class CaseRegistry:
    """Registers cases and exhibits in the row-store."""

    def __init__(self, row_store: RowStore):
        self.row_store = row_store
        self._lock = threading.Lock()

    # ==================== Schema ====================

    def create_schema(self) -> None:
        """Create the case, exhibit and data tables; existing tables are reused."""
        for name, (families, split_keys) in TABLE_LAYOUT.items():
            if self.row_store.table_exists(name):
                logger.debug("Reuse already created table %s", name)
                continue
            logger.debug("Creating table %s", name)
            self.row_store.create_table(name, families, split_keys)

    def drop_schema(self) -> None:
        """Delete all tables, including every imported row. Missing tables are ignored."""
        for name in TABLE_LAYOUT:
            if not self.row_store.table_exists(name):
                logger.debug("Table %s doesn't exist", name)
                continue
            logger.debug("Delete table %s", name)
            self.row_store.delete_table(name)

    # ==================== Registration ====================

    def find_case_id(self, case_number: str) -> Optional[str]:
        """Row key of the case with the given case number, if registered."""
        for row in self.row_store.scan(TABLE_FORENSIC_CASE, FAMILY_COMMON, COL_CASE_NUMBER):
            if row.text(FAMILY_COMMON, COL_CASE_NUMBER) == case_number:
                return row.key
        return None

    def register_case(
        self,
        case_number: str,
        display_name: Optional[str] = None,
        examiner: Optional[str] = None,
    ) -> str:
        """Return the case id for ``case_number``, creating the case if needed.

        An existing case is joined as-is; name and examiner of a later call
        are not applied to it.
        """
        with self._lock:
            case_id = self.find_case_id(case_number)
            if case_id is not None:
                logger.info(
                    "A forensic case with the case number = %s already exists! "
                    "Add the evidence to this case.",
                    case_number,
                )
                return case_id

            case_id = str(self.row_store.count_rows(TABLE_FORENSIC_CASE))
            logger.info("Create forensic case %s with case number = %s", case_id, case_number)
            self.row_store.put_many(
                TABLE_FORENSIC_CASE,
                _common_mutations(
                    case_id,
                    {
                        COL_CASE_NUMBER: case_number,
                        COL_CASE_NAME: display_name,
                        COL_EXAMINER: examiner,
                    },
                ),
            )
            return case_id

    def register_exhibit(
        self,
        case_id: str,
        base_path: str,
        exhibit_name: Optional[str] = None,
        import_date: Optional[str] = None,
    ) -> Exhibit:
        """Create a new exhibit below ``case_id``.

        The exhibit id is ``{case_id}_{n}`` with n the number of exhibits the
        case already has; the blob-store directory becomes
        ``{base_path}/{exhibit_id}``.
        """
        if import_date is None:
            import_date = datetime.now(timezone.utc).isoformat()

        with self._lock:
            sequence = self.row_store.count_rows(
                TABLE_FORENSIC_EXHIBIT, row_prefix=f"{case_id}_"
            )
            exhibit = Exhibit(
                exhibit_id=f"{case_id}_{sequence}",
                case_id=case_id,
                name=exhibit_name,
                import_date=import_date,
                base_path=exhibit_base_path(base_path, f"{case_id}_{sequence}"),
            )
            logger.info("Create forensic exhibit %s", exhibit.exhibit_id)
            self.row_store.put_many(
                TABLE_FORENSIC_EXHIBIT,
                _common_mutations(
                    exhibit.exhibit_id,
                    {
                        COL_EXHIBIT_NAME: exhibit.name,
                        COL_IMPORT_DATE: exhibit.import_date,
                        COL_BASE_PATH: exhibit.base_path,
                    },
                ),
            )
            return exhibit

    # ==================== Listing ====================

    def list_cases_and_exhibits(self) -> list[tuple[Case, list[Exhibit]]]:
        """All cases with their exhibits, in row key order.

        Reads both tables completely; meant for small administrative listings.
        Returns an empty list before the schema has been created.
        """
        if not self.row_store.table_exists(TABLE_FORENSIC_CASE):
            return []

        exhibits = [] if not self.row_store.table_exists(TABLE_FORENSIC_EXHIBIT) else [
            Exhibit(
                exhibit_id=row.key,
                case_id=row.key.rsplit("_", 1)[0],
                name=row.text(FAMILY_COMMON, COL_EXHIBIT_NAME),
                import_date=row.text(FAMILY_COMMON, COL_IMPORT_DATE),
                base_path=row.text(FAMILY_COMMON, COL_BASE_PATH) or "",
            )
            for row in self.row_store.scan(TABLE_FORENSIC_EXHIBIT)
        ]

        listing = []
        for row in self.row_store.scan(TABLE_FORENSIC_CASE):
            case = Case(
                case_id=row.key,
                case_number=row.text(FAMILY_COMMON, COL_CASE_NUMBER) or "",
                name=row.text(FAMILY_COMMON, COL_CASE_NAME),
                examiner=row.text(FAMILY_COMMON, COL_EXAMINER),
            )
            prefix = f"{case.case_id}_"
            listing.append((case, [e for e in exhibits if e.exhibit_id.startswith(prefix)]))
        return listing
