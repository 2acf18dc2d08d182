import sqlite3
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

from src.core.errors import StoreConflict
from src.core.ids import to_iso
from src.core.logging import get_plain_logger

logger = get_plain_logger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "database" / "schema.sql"

# Public columns per table (seq is internal)
TABLES = {
    "conversations": ("id", "started_at", "ended_at", "title"),
    "messages": ("id", "conversation_id", "role", "content", "created_at", "help_request_id"),
    "help_requests": (
        "id", "conversation_id", "question", "status", "created_at",
        "updated_at", "timeout_at", "supervisor_id", "answer",
    ),
    "knowledge_base": (
        "id", "question", "answer", "created_at", "updated_at", "last_help_request_id",
    ),
}


def _encode(value):
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _columns(table: str) -> tuple:
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f"Unknown table: {table}") from None


class StoreSession:
    """
    Operations bound to one open transaction

    Only handed out by Store.transaction(), which holds the write lock
    for the whole lifetime of the session.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def append(self, table: str, record: dict) -> dict:
        cols = [c for c in _columns(table) if c in record]
        placeholders = ", ".join("?" for _ in cols)
        self.conn.execute(
            f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})",
            [_encode(record[c]) for c in cols],
        )
        return self.find_by_id(table, record["id"])

    def find_by_id(self, table: str, record_id: str) -> Optional[dict]:
        cols = _columns(table)
        row = self.conn.execute(
            f"SELECT {', '.join(cols)} FROM {table} WHERE id = ?", (record_id,)
        ).fetchone()
        return dict(row) if row else None

    def update(self, table: str, record_id: str, patch: dict) -> Optional[dict]:
        cols = [c for c in _columns(table) if c in patch and c != "id"]
        if cols:
            assignments = ", ".join(f"{c} = ?" for c in cols)
            cursor = self.conn.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                [_encode(patch[c]) for c in cols] + [record_id],
            )
            if cursor.rowcount == 0:
                return None
        return self.find_by_id(table, record_id)

    def list_table(self, table: str) -> List[dict]:
        """All rows in insertion order"""
        cols = _columns(table)
        rows = self.conn.execute(
            f"SELECT {', '.join(cols)} FROM {table} ORDER BY seq"
        ).fetchall()
        return [dict(r) for r in rows]

    def list_by_conversation(
        self,
        conversation_id: str,
        since: Optional[datetime] = None,
    ) -> List[dict]:
        """Messages for a conversation, oldest first, ties by insertion order"""
        cols = ", ".join(_columns("messages"))
        if since is not None:
            rows = self.conn.execute(
                f"""
                SELECT {cols} FROM messages
                WHERE conversation_id = ? AND created_at > ?
                ORDER BY created_at ASC, seq ASC
                """,
                (conversation_id, to_iso(since)),
            ).fetchall()
        else:
            rows = self.conn.execute(
                f"""
                SELECT {cols} FROM messages
                WHERE conversation_id = ?
                ORDER BY created_at ASC, seq ASC
                """,
                (conversation_id,),
            ).fetchall()
        return [dict(r) for r in rows]

    def clear(self, table: str) -> None:
        _columns(table)
        self.conn.execute(f"DELETE FROM {table}")


class Store:
    """
    Shared record store backed by SQLite

    Every read-modify-write runs under one process-wide lock and inside a
    BEGIN IMMEDIATE transaction, so the database write lock is taken up
    front and writers from other processes are serialized too. Failing to
    get that lock is retried a bounded number of times, then surfaced as
    StoreConflict.
    """

    def __init__(
        self,
        db_path: str = "helpdesk_data.db",
        max_retries: int = 3,
        retry_backoff: float = 0.05,
        busy_timeout: float = 2.0,
    ):
        self.db_path = str(db_path)
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.busy_timeout = busy_timeout
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        try:
            conn.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Store initialized at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are managed explicitly
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _begin(self) -> sqlite3.Connection:
        attempts = max(1, self.max_retries)
        for attempt in range(1, attempts + 1):
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                return conn
            except sqlite3.OperationalError as e:
                conn.close()
                logger.warning(f"Store busy (attempt {attempt}/{attempts}): {e}")
                if attempt < attempts:
                    time.sleep(self.retry_backoff * attempt)
        raise StoreConflict(f"Could not acquire write lock on {self.db_path}")

    @contextmanager
    def transaction(self) -> Iterator[StoreSession]:
        """Run a read-modify-write sequence atomically. Never await inside."""
        with self._lock:
            conn = self._begin()
            try:
                yield StoreSession(conn)
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()

    # Single-statement conveniences, each its own transaction

    def append(self, table: str, record: dict) -> dict:
        with self.transaction() as tx:
            return tx.append(table, record)

    def find_by_id(self, table: str, record_id: str) -> Optional[dict]:
        with self.transaction() as tx:
            return tx.find_by_id(table, record_id)

    def update(self, table: str, record_id: str, patch: dict) -> Optional[dict]:
        with self.transaction() as tx:
            return tx.update(table, record_id, patch)

    def list_table(self, table: str) -> List[dict]:
        with self.transaction() as tx:
            return tx.list_table(table)

    def list_by_conversation(
        self,
        conversation_id: str,
        since: Optional[datetime] = None,
    ) -> List[dict]:
        with self.transaction() as tx:
            return tx.list_by_conversation(conversation_id, since)

    def reset(self) -> None:
        """Administrative wipe of every table"""
        with self.transaction() as tx:
            for table in TABLES:
                tx.clear(table)
        logger.warning("Store reset: all tables cleared")
