"""
Noticeboard Database Connection Manager

SQLite database with WAL mode for concurrent reads.
"""

import sqlite3
import logging
import threading
import time
from pathlib import Path
from contextlib import contextmanager
from typing import Optional, Generator

logger = logging.getLogger(__name__)


class Database:
    """
    SQLite database manager for Noticeboard.

    One connection is shared by every request thread; a re-entrant lock
    serializes statements so a transaction is never interleaved with
    another thread's writes.
    """

    def __init__(self, path: str):
        """
        Initialize database connection.

        Args:
            path: Path to SQLite database file (":memory:" for tests)
        """
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def initialize(self):
        """Initialize database connection and schema."""
        # Ensure directory exists
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            str(self.path),
            check_same_thread=False,
            isolation_level=None  # Autocommit mode
        )

        # Enable WAL mode for concurrent reads
        self._conn.execute("PRAGMA journal_mode=WAL")

        # Enable foreign keys
        self._conn.execute("PRAGMA foreign_keys=ON")

        # Use Row factory for dict-like access
        self._conn.row_factory = sqlite3.Row

        self._run_migrations()

        logger.info(f"Database initialized: {self.path}")

    def _run_migrations(self):
        """Run database migrations."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY,
                name TEXT UNIQUE NOT NULL,
                applied_at INTEGER NOT NULL
            )
        """)

        applied = {
            row[0] for row in
            self._conn.execute("SELECT name FROM _migrations").fetchall()
        }

        migrations = [
            ("001_initial", self._migration_001_initial),
        ]

        for name, func in migrations:
            if name not in applied:
                logger.info(f"Running migration: {name}")
                func()
                self._conn.execute(
                    "INSERT INTO _migrations (name, applied_at) VALUES (?, ?)",
                    (name, int(time.time() * 1_000_000))
                )

    def _migration_001_initial(self):
        """Initial database schema."""
        self._conn.executescript("""
            -- Users table
            CREATE TABLE IF NOT EXISTS users (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                username        TEXT UNIQUE NOT NULL,
                email           TEXT UNIQUE NOT NULL,
                password_hash   TEXT NOT NULL,
                role            TEXT NOT NULL DEFAULT 'user'
                                CHECK (role IN ('user', 'admin')),
                is_active       INTEGER NOT NULL DEFAULT 1,
                last_login_us   INTEGER,
                preferences     TEXT NOT NULL DEFAULT '{}',
                created_at_us   INTEGER NOT NULL,
                updated_at_us   INTEGER NOT NULL
            );

            -- Broadcasts table
            CREATE TABLE IF NOT EXISTS broadcasts (
                id              INTEGER PRIMARY KEY AUTOINCREMENT,
                title           TEXT NOT NULL,
                message         TEXT NOT NULL,
                urgency         TEXT NOT NULL DEFAULT 'medium'
                                CHECK (urgency IN ('low', 'medium', 'high')),
                type            TEXT NOT NULL DEFAULT 'announcement'
                                CHECK (type IN ('announcement', 'alert', 'maintenance',
                                                'update', 'news', 'meeting')),
                created_by      INTEGER NOT NULL REFERENCES users(id),
                expiry_date_us  INTEGER,
                status          TEXT NOT NULL DEFAULT 'active'
                                CHECK (status IN ('active', 'expired', 'archived')),
                views           INTEGER NOT NULL DEFAULT 0 CHECK (views >= 0),
                priority        INTEGER NOT NULL DEFAULT 0,
                created_at_us   INTEGER NOT NULL,
                updated_at_us   INTEGER NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_broadcasts_status_expiry
                ON broadcasts(status, expiry_date_us);
            CREATE INDEX IF NOT EXISTS idx_broadcasts_owner_created
                ON broadcasts(created_by, created_at_us DESC);
            CREATE INDEX IF NOT EXISTS idx_broadcasts_urgency_created
                ON broadcasts(urgency, created_at_us DESC);

            -- Ordered broadcast tags
            CREATE TABLE IF NOT EXISTS broadcast_tags (
                broadcast_id    INTEGER NOT NULL REFERENCES broadcasts(id) ON DELETE CASCADE,
                position        INTEGER NOT NULL,
                tag             TEXT NOT NULL,
                PRIMARY KEY (broadcast_id, position)
            );
            CREATE INDEX IF NOT EXISTS idx_broadcast_tags_tag ON broadcast_tags(tag);
        """)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database transactions.

        Nested use joins the enclosing transaction; only the outermost
        block commits or rolls back.
        """
        with self._lock:
            if self._conn.in_transaction:
                # Lock is held, so the open transaction is this thread's
                yield self._conn
                return

            self._conn.execute("BEGIN")
            try:
                yield self._conn
                self._conn.execute("COMMIT")
            except Exception:
                self._conn.execute("ROLLBACK")
                raise

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL query."""
        with self._lock:
            return self._conn.execute(sql, params)

    def executemany(self, sql: str, params_list: list) -> sqlite3.Cursor:
        """Execute SQL query with multiple parameter sets."""
        with self._lock:
            return self._conn.executemany(sql, params_list)

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        """Execute query and fetch one result."""
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Execute query and fetch all results."""
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def close(self):
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database connection closed")

    # === Utility Methods ===

    def count_broadcasts(self) -> int:
        """Count total broadcasts."""
        row = self.fetchone("SELECT COUNT(*) FROM broadcasts")
        return row[0] if row else 0
