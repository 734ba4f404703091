"""Database connection management for the embedded row-store."""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

# Get the schema SQL file path
SCHEMA_PATH = Path(__file__).parent / "schema.sql"

IN_MEMORY = ":memory:"


class DatabaseConnection:
    """Manages one SQLite connection shared by all upload workers.

    The connection is opened with ``check_same_thread=False``; every access
    goes through ``transaction()`` or ``cursor()``, which hold a re-entrant
    lock for their duration.
    """

    def __init__(self, db_path: Path | str):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path if db_path == IN_MEMORY else Path(db_path)
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                str(self.db_path), check_same_thread=False
            )
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.row_factory = sqlite3.Row
        return self._connection

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database transactions.

        Automatically commits on success, rolls back on error.

        Example:
            with db.transaction() as cursor:
                cursor.execute("INSERT INTO ...")
        """
        with self._lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    @contextmanager
    def cursor(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for read-only cursor (no auto-commit)."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
            finally:
                cursor.close()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> "DatabaseConnection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def init_database(db_path: Path | str, schema_path: Path | None = None) -> DatabaseConnection:
    """Open a database and apply the schema.

    The schema only uses ``IF NOT EXISTS`` statements, so applying it to an
    existing database is a no-op.

    Args:
        db_path: Path for the database file, or ":memory:"
        schema_path: Path to schema SQL file (default: built-in schema)

    Returns:
        DatabaseConnection instance
    """
    schema_path = schema_path or SCHEMA_PATH

    if db_path != IN_MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db = DatabaseConnection(db_path)

    with open(schema_path) as f:
        schema_sql = f.read()

    with db.transaction() as cursor:
        cursor.executescript(schema_sql)

    return db


def get_schema_version(db: DatabaseConnection) -> int:
    """Get the current schema version.

    Args:
        db: Database connection

    Returns:
        Current schema version number
    """
    try:
        with db.cursor() as cursor:
            result = cursor.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return result[0] if result and result[0] else 0
    except sqlite3.OperationalError:
        return 0
