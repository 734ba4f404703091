"""Row-store capability and its embedded SQLite implementation.

The ingestion engine only talks to the row-store through the ``RowStore``
protocol: single and batched cell puts, column/prefix scans, row counts and
table DDL. ``SqliteRowStore`` emulates a wide-column store on top of one
SQLite file so a complete import can run on a single workstation.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple, Optional, Protocol, Sequence, Union

from forensic_ingest.core.config import RowStoreBackend, RowStoreConfig
from forensic_ingest.db.connection import DatabaseConnection, get_schema_version, init_database

logger = logging.getLogger(__name__)

CellValue = Union[bytes, str]


class RowStoreError(Exception):
    """Raised when a row-store operation fails."""

    pass


class Mutation(NamedTuple):
    """One cell write."""

    row_key: str
    family: str
    column: str
    value: CellValue


@dataclass
class Row:
    """A row returned by a scan: key plus the cells that matched."""

    key: str
    cells: dict[tuple[str, str], bytes] = field(default_factory=dict)

    def value(self, family: str, column: str) -> Optional[bytes]:
        """Raw cell value, or None if the row has no such cell."""
        return self.cells.get((family, column))

    def text(self, family: str, column: str) -> Optional[str]:
        """Cell value decoded as UTF-8, or None if absent.

        Bytes that are not valid UTF-8 come back surrogate-escaped, the same
        way os.fsdecode renders undecodable filenames.
        """
        raw = self.value(family, column)
        return raw.decode("utf-8", "surrogateescape") if raw is not None else None

    def family(self, family: str) -> dict[str, bytes]:
        """All cells of one column family, keyed by column."""
        return {col: val for (fam, col), val in self.cells.items() if fam == family}


class RowStore(Protocol):
    """Capabilities the ingestion engine needs from a row-store."""

    def put(self, table: str, row_key: str, family: str, column: str, value: CellValue) -> None:
        ...

    def put_many(self, table: str, mutations: Iterable[Mutation]) -> None:
        ...

    def scan(
        self,
        table: str,
        family: Optional[str] = None,
        column: Optional[str] = None,
        row_prefix: Optional[str] = None,
    ) -> Iterator[Row]:
        ...

    def count_rows(self, table: str, row_prefix: Optional[str] = None) -> int:
        ...

    def create_table(
        self, name: str, families: Sequence[str], split_keys: Optional[Sequence[str]] = None
    ) -> None:
        ...

    def delete_table(self, name: str) -> None:
        ...

    def table_exists(self, name: str) -> bool:
        ...

    def close(self) -> None:
        ...


def _encode(value: CellValue) -> bytes:
    # surrogateescape keeps undecodable filename bytes from os.walk as they were
    if isinstance(value, str):
        return value.encode("utf-8", "surrogateescape")
    return bytes(value)


class SqliteRowStore:
    """Wide-column row-store emulated in a single SQLite database.

    Safe for concurrent use by the upload workers: the underlying
    DatabaseConnection serializes statements on one connection.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        try:
            self._db: DatabaseConnection = init_database(db_path)
        except (sqlite3.Error, OSError) as e:
            raise RowStoreError(f"Cannot open row-store at {db_path}: {e}") from e
        self._families: dict[str, frozenset[str]] = {}
        self._load_families()

    def _load_families(self) -> None:
        with self._db.cursor() as cursor:
            rows = cursor.execute("SELECT table_name, family FROM row_families").fetchall()
        families: dict[str, set[str]] = {}
        for row in rows:
            families.setdefault(row["table_name"], set()).add(row["family"])
        self._families = {name: frozenset(fams) for name, fams in families.items()}

    @property
    def schema_version(self) -> int:
        return get_schema_version(self._db)

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    def __enter__(self) -> "SqliteRowStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ==================== DDL ====================

    def table_exists(self, name: str) -> bool:
        return name in self._families

    def create_table(
        self, name: str, families: Sequence[str], split_keys: Optional[Sequence[str]] = None
    ) -> None:
        """Create a table with the given column families.

        Raises:
            RowStoreError: If the table already exists or no family is given.
        """
        if not families:
            raise RowStoreError(f"Table {name} needs at least one column family")
        if self.table_exists(name):
            raise RowStoreError(f"Table {name} already exists")

        try:
            with self._db.transaction() as cursor:
                cursor.execute(
                    "INSERT INTO row_tables (name, created_at) VALUES (?, datetime('now'))",
                    (name,),
                )
                cursor.executemany(
                    "INSERT INTO row_families (table_name, family) VALUES (?, ?)",
                    [(name, family) for family in families],
                )
                cursor.executemany(
                    "INSERT INTO row_splits (table_name, split_key) VALUES (?, ?)",
                    [(name, key) for key in split_keys or ()],
                )
        except sqlite3.Error as e:
            raise RowStoreError(f"Cannot create table {name}: {e}") from e

        self._families = {**self._families, name: frozenset(families)}

    def delete_table(self, name: str) -> None:
        """Delete a table and all of its cells.

        Raises:
            RowStoreError: If the table does not exist.
        """
        if not self.table_exists(name):
            raise RowStoreError(f"Table {name} does not exist")

        try:
            with self._db.transaction() as cursor:
                cursor.execute("DELETE FROM cells WHERE table_name = ?", (name,))
                cursor.execute("DELETE FROM row_tables WHERE name = ?", (name,))
        except sqlite3.Error as e:
            raise RowStoreError(f"Cannot delete table {name}: {e}") from e

        self._families = {k: v for k, v in self._families.items() if k != name}

    def split_keys(self, name: str) -> list[str]:
        """Region boundaries recorded for a table."""
        with self._db.cursor() as cursor:
            rows = cursor.execute(
                "SELECT split_key FROM row_splits WHERE table_name = ? ORDER BY split_key",
                (name,),
            ).fetchall()
        return [row["split_key"] for row in rows]

    # ==================== Writes ====================

    def _check_family(self, table: str, family: str) -> None:
        families = self._families.get(table)
        if families is None:
            raise RowStoreError(f"Table {table} does not exist")
        if family not in families:
            raise RowStoreError(f"Table {table} has no column family {family}")

    def put(self, table: str, row_key: str, family: str, column: str, value: CellValue) -> None:
        """Write a single cell."""
        self.put_many(table, [Mutation(row_key, family, column, value)])

    def put_many(self, table: str, mutations: Iterable[Mutation]) -> None:
        """Write a batch of cells in one transaction."""
        params = []
        for mutation in mutations:
            self._check_family(table, mutation.family)
            params.append(
                (table, mutation.row_key, mutation.family, mutation.column, _encode(mutation.value))
            )
        if not params:
            return

        try:
            with self._db.transaction() as cursor:
                cursor.executemany(
                    """
                    INSERT OR REPLACE INTO cells (table_name, row_key, family, qualifier, value)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    params,
                )
        except sqlite3.Error as e:
            raise RowStoreError(f"Write to {table} failed: {e}") from e

    # ==================== Reads ====================

    def scan(
        self,
        table: str,
        family: Optional[str] = None,
        column: Optional[str] = None,
        row_prefix: Optional[str] = None,
    ) -> Iterator[Row]:
        """Scan a table in row key order.

        With ``family`` (and ``column``) only matching cells are returned and
        rows without such a cell are left out, like a column-restricted scan.

        Raises:
            RowStoreError: If the table or family does not exist.
        """
        if family is not None:
            self._check_family(table, family)
        elif not self.table_exists(table):
            raise RowStoreError(f"Table {table} does not exist")

        sql = "SELECT row_key, family, qualifier, value FROM cells WHERE table_name = ?"
        params: list = [table]
        if family is not None:
            sql += " AND family = ?"
            params.append(family)
            if column is not None:
                sql += " AND qualifier = ?"
                params.append(column)
        if row_prefix:
            sql += " AND substr(row_key, 1, ?) = ?"
            params.extend([len(row_prefix), row_prefix])
        sql += " ORDER BY row_key, family, qualifier"

        try:
            with self._db.cursor() as cursor:
                records = cursor.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise RowStoreError(f"Scan of {table} failed: {e}") from e

        current: Optional[Row] = None
        for record in records:
            if current is None or current.key != record["row_key"]:
                if current is not None:
                    yield current
                current = Row(key=record["row_key"])
            current.cells[(record["family"], record["qualifier"])] = bytes(record["value"])
        if current is not None:
            yield current

    def count_rows(self, table: str, row_prefix: Optional[str] = None) -> int:
        """Count distinct row keys, optionally below a key prefix."""
        if not self.table_exists(table):
            raise RowStoreError(f"Table {table} does not exist")

        sql = "SELECT COUNT(DISTINCT row_key) FROM cells WHERE table_name = ?"
        params: list = [table]
        if row_prefix:
            sql += " AND substr(row_key, 1, ?) = ?"
            params.extend([len(row_prefix), row_prefix])

        try:
            with self._db.cursor() as cursor:
                result = cursor.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise RowStoreError(f"Count of {table} failed: {e}") from e
        return result[0] if result else 0


def open_row_store(config: RowStoreConfig) -> SqliteRowStore:
    """Connect to the row-store described by ``config``.

    Raises:
        RowStoreError: If the backend is unknown or unreachable.
    """
    backend = RowStoreBackend(config.backend)
    if backend == RowStoreBackend.SQLITE:
        logger.info("Connect to row-store (sqlite) at %s", config.path)
        store = SqliteRowStore(config.path)
        logger.debug("Row-store schema version %d", store.schema_version)
        return store
    raise RowStoreError(f"Unsupported row-store backend: {config.backend}")
