"""Row-store layer for forensic-ingest."""

from forensic_ingest.db.connection import (
    DatabaseConnection,
    get_schema_version,
    init_database,
)
from forensic_ingest.db.row_store import (
    Mutation,
    Row,
    RowStore,
    RowStoreError,
    SqliteRowStore,
    open_row_store,
)

__all__ = [
    "DatabaseConnection",
    "init_database",
    "get_schema_version",
    "Mutation",
    "Row",
    "RowStore",
    "RowStoreError",
    "SqliteRowStore",
    "open_row_store",
]
