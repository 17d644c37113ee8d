"""
DuckDB access for imgvault.

A ``DatabaseManager`` owns one root connection per database file. Each query
runs on a short-lived cursor taken from that connection, which is how DuckDB
lets several threads share one database. Statements run in autocommit mode,
so a failed statement leaves nothing behind.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import duckdb

from ..logging_config import get_logger
from .schema import REQUIRED_COLUMNS, get_schema_statements, validate_schema_compatibility

logger = get_logger(__name__)

IN_MEMORY = ":memory:"

_DUPLICATE_KEY_MARKERS = ("duplicate key", "primary key", "unique constraint")


def is_duplicate_key_error(error: duckdb.Error) -> bool:
    """
    Whether ``error`` reports a primary key or unique violation.

    DuckDB raises a ``ConstraintException`` when the duplicate is visible at
    insert time, and a ``TransactionException`` when a concurrent writer
    committed the same key first. Foreign key failures share the constraint
    exception type and are told apart by their message.
    """
    message = str(error).lower()
    if "foreign key" in message:
        return False
    return any(marker in message for marker in _DUPLICATE_KEY_MARKERS)


class DatabaseManager:
    """Thread-safe handle on one DuckDB database."""

    def __init__(self, db_path: str):
        """
        Args:
            db_path: Database file path, or ``:memory:``
        """
        self.db_path = db_path
        self._connection: duckdb.DuckDBPyConnection | None = None
        self._lock = threading.Lock()

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Open the root connection on first use and return it."""
        with self._lock:
            if self._connection is None:
                self._connection = duckdb.connect(self.db_path)
                logger.info("database_connected", db_path=self.db_path)
            return self._connection

    @contextmanager
    def cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Yield a cursor for one unit of work and close it afterwards."""
        root = self.connect()
        with self._lock:
            cursor = root.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def execute_query(self, query: str, parameters: tuple | list | None = None) -> list[tuple]:
        """
        Run one statement and fetch every row it returns.

        Raises:
            duckdb.Error: Whatever DuckDB raised; callers translate it
        """
        with self.cursor() as cursor:
            if parameters:
                cursor.execute(query, parameters)
            else:
                cursor.execute(query)
            return cursor.fetchall()

    def close(self) -> None:
        with self._lock:
            connection, self._connection = self._connection, None
        if connection is not None:
            connection.close()
            logger.info("database_closed", db_path=self.db_path)

    def initialize_schema(self) -> None:
        """
        Create the tables and indexes that are missing. Safe to run repeatedly.

        Raises:
            RuntimeError: If the models read columns the DDL does not declare
            duckdb.Error: If a statement fails
        """
        if not validate_schema_compatibility():
            raise RuntimeError("Schema is not compatible with the image and user models")

        for statement in get_schema_statements():
            try:
                self.execute_query(statement)
            except duckdb.Error as e:
                logger.error("schema_statement_failed", db_path=self.db_path, statement=statement.strip(), error=str(e))
                raise

        logger.info("database_schema_initialized", db_path=self.db_path)

    def verify_schema(self) -> bool:
        """Whether every table holds every column the models read."""
        try:
            rows = self.execute_query(
                "SELECT table_name, column_name FROM information_schema.columns WHERE table_schema = 'main'"
            )
        except duckdb.Error as e:
            logger.warning("schema_verification_failed", db_path=self.db_path, error=str(e))
            return False

        present: dict[str, set[str]] = {}
        for table, column in rows:
            present.setdefault(table, set()).add(column)

        for table, required in REQUIRED_COLUMNS.items():
            missing = required - present.get(table, set())
            if missing:
                logger.warning("schema_columns_missing", table=table, missing_columns=sorted(missing))
                return False
        return True

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def create_database(db_path: str) -> DatabaseManager:
    """
    Create a database (and its parent directory) with the full schema.

    Raises:
        RuntimeError: If the schema cannot be created or verified
    """
    if db_path != IN_MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db_manager = DatabaseManager(db_path)
    try:
        db_manager.initialize_schema()
        if not db_manager.verify_schema():
            raise RuntimeError("Schema verification failed after creation")
    except (duckdb.Error, RuntimeError) as e:
        db_manager.close()
        logger.error("database_creation_failed", db_path=db_path, error=str(e))
        raise RuntimeError(f"Database creation failed: {e}") from e

    logger.info("database_created", db_path=db_path)
    return db_manager


def get_database_manager(db_path: str, create_if_missing: bool = True) -> DatabaseManager:
    """
    Open ``db_path``, creating it when allowed and repairing a missing schema.

    Raises:
        FileNotFoundError: If the file is missing and ``create_if_missing`` is False
        RuntimeError: If a new database cannot be initialized
    """
    if db_path == IN_MEMORY or not Path(db_path).exists():
        if not create_if_missing:
            raise FileNotFoundError(f"Database file not found: {db_path}")
        return create_database(db_path)

    db_manager = DatabaseManager(db_path)
    if not db_manager.verify_schema():
        logger.warning("schema_reinitializing", db_path=db_path)
        db_manager.initialize_schema()
    return db_manager
