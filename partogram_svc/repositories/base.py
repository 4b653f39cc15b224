"""
Base database connection, transactions and schema initialization.

Optimized for SQLite concurrency with WAL mode and busy_timeout.

Transactions:
    - transaction(): BEGIN IMMEDIATE write transaction. Takes the write lock up
      front, so concurrent writers queue on busy_timeout instead of failing
      half-way. Commits on success, rolls back on any exception.
    - snapshot(): read transaction. Every SELECT inside it sees the same
      committed state (WAL readers never block writers).

Repository methods accept an optional ``conn`` so a service can run several
of them inside one transaction; without it each call opens its own.

IMPORTANT: Database instantiation should be done through the DI layer.
Use core.dependencies.get_database() instead of instantiating directly.
"""
import sqlite3
import logging
from contextlib import contextmanager
from typing import Iterator, Optional
from pathlib import Path

from core.config import DATABASE_PATH, DATABASE_BUSY_TIMEOUT
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

# Nullable TEXT columns added to patients after the first release
_LATE_PATIENT_COLUMNS = ("membrane_rupture", "active_phase_start")


class Database:
    """
    SQLite database connection manager with concurrency optimizations.

    Features:
    - WAL mode for concurrent reads during writes
    - Busy timeout to handle lock contention gracefully
    - Foreign key constraints enabled (measurements cascade with their patient)
    - Explicit transaction control (connections run in autocommit mode and
      BEGIN/COMMIT are issued by transaction() and snapshot())

    Usage:
        # Via dependency injection (recommended):
        from core.dependencies import get_database
        db = get_database()

        # Direct instantiation (for testing):
        db = Database(db_path="/tmp/test.db")
    """

    def __init__(self, db_path: Optional[str] = None, busy_timeout: Optional[int] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Defaults to config DATABASE_PATH.
            busy_timeout: SQLite busy timeout in milliseconds. Defaults to config value.
        """
        self.db_path = db_path or DATABASE_PATH
        self.busy_timeout = busy_timeout if busy_timeout is not None else DATABASE_BUSY_TIMEOUT

        # Ensure database directory exists
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        """Apply per-connection pragmas."""
        # Wait for locks instead of failing immediately
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout}")
        # Per-connection setting; required for ON DELETE CASCADE
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row

    def _init_db(self) -> None:
        """Initialize database schema and enable WAL mode if not already enabled."""
        conn = self.get_connection()
        try:
            result = conn.execute("PRAGMA journal_mode = WAL").fetchone()
            if result and result[0].lower() == 'wal':
                logger.info(f"SQLite WAL mode enabled for {self.db_path}")
            else:
                logger.warning(f"Failed to enable WAL mode, current mode: {result[0] if result else None}")

            conn.executescript("""
                CREATE TABLE IF NOT EXISTS patients (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    full_name TEXT NOT NULL,
                    admission_date TEXT NOT NULL,
                    history_number TEXT,
                    age INTEGER,
                    parity INTEGER,
                    gestational_age INTEGER,
                    risk_factors TEXT,
                    notes TEXT,
                    membrane_rupture TEXT,
                    active_phase_start TEXT,
                    status TEXT NOT NULL DEFAULT 'not_started'
                        CHECK (status IN ('not_started', 'in_progress', 'completed')),
                    labor_start TEXT,
                    created_at TEXT NOT NULL,
                    CHECK ((status = 'not_started') = (labor_start IS NULL))
                );

                CREATE TABLE IF NOT EXISTS measurements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    patient_id INTEGER NOT NULL
                        REFERENCES patients(id) ON DELETE CASCADE,
                    time TEXT NOT NULL,
                    cervical_dilation INTEGER
                        CHECK (cervical_dilation IS NULL OR cervical_dilation BETWEEN 0 AND 10),
                    payload TEXT NOT NULL DEFAULT '{}',
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_measurements_patient_time
                    ON measurements (patient_id, time, id);
            """)
            self._add_missing_columns(conn)
        finally:
            conn.close()

        logger.info(
            f"Database initialized: {self.db_path} "
            f"(busy_timeout={self.busy_timeout}ms)"
        )

    def _add_missing_columns(self, conn: sqlite3.Connection) -> None:
        """Add patient columns introduced after a database file was created."""
        existing = {row["name"] for row in conn.execute("PRAGMA table_info(patients)")}
        for column in _LATE_PATIENT_COLUMNS:
            if column not in existing:
                conn.execute(f"ALTER TABLE patients ADD COLUMN {column} TEXT")
                logger.info(f"Added column patients.{column}")

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a new autocommit connection with concurrency settings.

        Returns:
            sqlite3.Connection: Connection with foreign keys enabled,
                busy timeout set and sqlite3.Row as row factory.
        """
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        self._configure_connection(conn)
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside a BEGIN IMMEDIATE write transaction.

        Commits when the block exits normally. Any exception rolls back and
        propagates; sqlite3 errors are wrapped in DatabaseError.
        """
        conn = self.get_connection()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.error("Write transaction failed", extra={"error": str(e), "db_path": self.db_path})
            raise DatabaseError(operation="write transaction") from e
        finally:
            conn.close()

    @contextmanager
    def snapshot(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside a read transaction.

        All reads see one consistent committed state, even if a writer
        commits in between.
        """
        conn = self.get_connection()
        try:
            conn.execute("BEGIN")
            try:
                yield conn
            finally:
                if conn.in_transaction:
                    conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.error("Read transaction failed", extra={"error": str(e), "db_path": self.db_path})
            raise DatabaseError(operation="read") from e
        finally:
            conn.close()

    @contextmanager
    def connect(self, conn: Optional[sqlite3.Connection] = None, write: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Reuse the caller's connection, or open a transaction of our own.

        Args:
            conn: Connection of an enclosing transaction, if any.
            write: Open a write transaction when no connection is given.
        """
        if conn is not None:
            yield conn
            return
        with (self.transaction() if write else self.snapshot()) as own:
            yield own
