import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from nftledger.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Key-Value store partitioned into buckets (one per namespace).
    2. Append-only event log, ordered by insertion sequence.

    Keys and values are opaque text; encoding is the caller's concern.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL lets readers proceed while a batch commits
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            # 1. KV Store
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    bucket TEXT NOT NULL DEFAULT 'default'
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_kv_bucket ON kv_store(bucket);")

            # 2. Event Log
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    bucket TEXT NOT NULL,
                    name TEXT NOT NULL,
                    payload TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_bucket ON events(bucket, seq);")

    # =========================================================================
    # Key-Value Operations
    # =========================================================================

    def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    def get_bucket(self, bucket: str) -> List[Tuple[str, str]]:
        """Get all (key, value) pairs of a bucket."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT key, value FROM kv_store WHERE bucket = ? ORDER BY key", (bucket,)
        )
        return [(row['key'], row['value']) for row in cursor]

    # =========================================================================
    # Event Log Operations
    # =========================================================================

    def get_events(self, bucket: str) -> List[Tuple[str, str]]:
        """Get all (name, payload) of a bucket in insertion order."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT name, payload FROM events WHERE bucket = ? ORDER BY seq ASC", (bucket,)
        )
        return [(row['name'], row['payload']) for row in cursor]

    # =========================================================================
    # Transactions
    # =========================================================================

    def begin(self):
        """
        Open a write transaction on this thread's connection.

        BEGIN IMMEDIATE takes the database write lock up front, so every
        read until commit() or rollback() sees the latest committed state
        and no other connection can commit in between. Waits up to the
        connection timeout for a competing writer.
        """
        self._get_conn().execute("BEGIN IMMEDIATE")

    def commit(self):
        conn = self._get_conn()
        try:
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise

    def rollback(self):
        self._get_conn().rollback()

    # =========================================================================
    # Batches
    # =========================================================================

    def apply_batch(
        self,
        bucket: str,
        puts: List[Tuple[str, str]],
        deletes: List[str],
        events: List[Tuple[str, str]],
    ):
        """
        Atomically apply one ledger call.

        Inside a transaction opened by begin() the statements join it and
        become durable on commit(); otherwise the batch commits on its own.

        Args:
            bucket: Namespace the keys and events belong to
            puts: List of (key, value) to upsert
            deletes: Keys to remove
            events: List of (name, payload) to append in order
        """
        conn = self._get_conn()
        if conn.in_transaction:
            self._write_batch(conn, bucket, puts, deletes, events)
        else:
            with conn:
                self._write_batch(conn, bucket, puts, deletes, events)

    @staticmethod
    def _write_batch(conn, bucket, puts, deletes, events):
        for key in deletes:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

        for key, value in puts:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, bucket) VALUES (?, ?, ?)",
                (key, value, bucket)
            )

        for name, payload in events:
            conn.execute(
                "INSERT INTO events (bucket, name, payload) VALUES (?, ?, ?)",
                (bucket, name, payload)
            )

    def close(self):
        """Close the current thread's connection."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn
