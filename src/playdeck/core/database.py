"""
Database Management Module

Provides SQLite database operation encapsulation for the library and playlists.
"""

import sqlite3
import re
import os
import sys
import time
from typing import Optional, List, Dict, Any
from pathlib import Path
import threading
from contextlib import contextmanager
import logging

from playdeck.core.schema import get_all_schema_statements

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DatabaseManager:
    """
    Database Manager

    Provides thread-safe SQLite operation encapsulation. Each thread gets its
    own connection, except for in-memory databases which share one.

    Example:
        db = DatabaseManager("playdeck.db")

        # Execute query
        items = db.fetch_all("SELECT * FROM library_items WHERE media_type = ?", ("audio",))

        # Use transaction
        with db.transaction():
            db.execute("INSERT INTO playlists ...")
    """

    @staticmethod
    def get_default_db_path() -> str:
        """Get the default database path in the user data directory"""
        if sys.platform == "win32":
            base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        elif sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
        else:
            base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

        db_dir = base / "playdeck"
        db_dir.mkdir(parents=True, exist_ok=True)
        return str(db_dir / "playdeck.db")

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path or self.get_default_db_path()
        self._local = threading.local()
        self._write_lock = threading.RLock()
        self._shared_conn: Optional[sqlite3.Connection] = None
        self._init_schema()

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def _conn(self) -> sqlite3.Connection:
        """Get thread-local connection"""
        if self._db_path == MEMORY_DB:
            # Every connect() would open a different in-memory database
            if self._shared_conn is None:
                self._shared_conn = sqlite3.connect(MEMORY_DB, check_same_thread=False)
                self._shared_conn.row_factory = sqlite3.Row
                self._shared_conn.execute("PRAGMA foreign_keys = ON")
            return self._shared_conn

        if getattr(self._local, 'connection', None) is None:
            # Set timeout to 30 seconds to handle concurrent access better
            self._local.connection = sqlite3.connect(self._db_path, timeout=30.0)
            self._local.connection.row_factory = sqlite3.Row

            # Enable WAL mode for better concurrency
            with self._write_lock:
                self._local.connection.execute("PRAGMA journal_mode=WAL")
                self._local.connection.execute("PRAGMA synchronous=NORMAL")

            self._local.connection.execute("PRAGMA foreign_keys = ON")
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Transaction context manager

        Write operations within this context are not automatically committed,
        but are committed or rolled back collectively when the context ends.
        """
        with self._write_lock:
            conn = self._conn
            self._local.in_transaction = True
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                self._local.in_transaction = False

    @staticmethod
    def _is_write_sql(sql: str) -> bool:
        match = re.match(r"\s*([A-Za-z]+)", sql)
        first_keyword = match.group(1).upper() if match else ""
        return first_keyword in ("INSERT", "UPDATE", "DELETE", "REPLACE", "CREATE", "DROP", "ALTER")

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL statement

        Write operations outside a transaction() context are committed
        immediately to release database locks.
        """
        max_retries = 5
        retry_delay = 0.1

        is_write = self._is_write_sql(sql)
        in_transaction = getattr(self._local, 'in_transaction', False)

        for i in range(max_retries):
            try:
                if is_write:
                    with self._write_lock:
                        cursor = self._conn.execute(sql, params)
                        if not in_transaction:
                            self._conn.commit()
                else:
                    cursor = self._conn.execute(sql, params)
                return cursor
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and i < max_retries - 1:
                    time.sleep(retry_delay * (i + 1))
                    continue
                raise

    def execute_many(self, sql: str, params_list: List[tuple]) -> None:
        """Bulk execute SQL statements"""
        in_transaction = getattr(self._local, "in_transaction", False)

        with self._write_lock:
            self._conn.executemany(sql, params_list)
            if not in_transaction:
                self._conn.commit()

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """Fetch single record"""
        cursor = self.execute(sql, params)
        row = cursor.fetchone()
        return dict(row) if row else None

    def fetch_all(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """Fetch all records"""
        cursor = self.execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def delete(self, table: str, where: str, where_params: tuple) -> int:
        """
        Delete record

        Args:
            table: Table name
            where: WHERE condition
            where_params: WHERE parameters

        Returns:
            int: Number of affected rows
        """
        sql = f"DELETE FROM {table} WHERE {where}"
        cursor = self.execute(sql, where_params)
        return cursor.rowcount

    def _init_schema(self) -> None:
        """Initialize database Schema"""
        for statement in get_all_schema_statements():
            self.execute(statement.strip())
        self._conn.commit()

    def close(self) -> None:
        """Close current thread's connection"""
        if getattr(self._local, 'connection', None) is not None:
            self._local.connection.close()
            self._local.connection = None
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None
