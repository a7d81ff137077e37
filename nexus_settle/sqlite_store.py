"""
Replay ledger persistence in SQLite.

SqliteReplayStore implements the ReplayStore contract on a single table:

    payment_id  TEXT PRIMARY KEY
    tx_hash     TEXT NOT NULL UNIQUE
    created_at  TEXT NOT NULL

The two uniqueness constraints are the bijection. register() runs the
lookup and the insert inside one BEGIN IMMEDIATE transaction, which takes
the database write lock up front, so two processes sharing the file cannot
both win the same paymentId or txHash.

Invariants:
    - Rows are immutable once stored.
    - Rows are never deleted here (retention is the operator's concern).
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from nexus_settle.replay import check_conflict

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS x402_replay (
    payment_id TEXT PRIMARY KEY,
    tx_hash TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);
"""


def _default_now() -> str:
    """RFC3339 UTC timestamp."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S+00:00")


class SqliteReplayStore:
    """Durable replay store.

    Args:
        db_path: Path to SQLite database file, or ":memory:" for in-memory.
        now_fn: Callable returning RFC3339 timestamps for created_at.
            Inject for tests.

    Example:
        store = SqliteReplayStore("replay.db")
        result = await verify_settlement(challenge, header, client, store)
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        now_fn: Callable[[], str] | None = None,
    ) -> None:
        self._db_path = str(db_path)
        self._is_memory = self._db_path == ":memory:"
        self._now_fn = now_fn or _default_now
        self._lock = threading.Lock()

        if self._is_memory:
            self._persistent_conn: sqlite3.Connection | None = sqlite3.connect(
                ":memory:", check_same_thread=False, isolation_level=None
            )
        else:
            self._persistent_conn = None

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a database connection with proper settings."""
        if self._persistent_conn is not None:
            return self._persistent_conn

        # isolation_level=None: transactions are opened explicitly below.
        conn = sqlite3.connect(self._db_path, isolation_level=None, timeout=30.0)
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Write transaction holding the database lock from the start."""
        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            finally:
                if self._persistent_conn is None:
                    conn.close()

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._get_conn()
            try:
                yield conn
            finally:
                if self._persistent_conn is None:
                    conn.close()

    def _init_schema(self) -> None:
        """Create tables if they don't exist."""
        with self._transaction() as conn:
            conn.execute(_SCHEMA)

    # -----------------------------------------------------------------
    # ReplayStore protocol
    # -----------------------------------------------------------------

    def lookup_tx_hash(self, payment_id: str) -> str | None:
        with self._read() as conn:
            row = conn.execute(
                "SELECT tx_hash FROM x402_replay WHERE payment_id = ?",
                (payment_id,),
            ).fetchone()
        return row[0] if row else None

    def lookup_payment_id(self, tx_hash: str) -> str | None:
        with self._read() as conn:
            row = conn.execute(
                "SELECT payment_id FROM x402_replay WHERE tx_hash = ?",
                (tx_hash,),
            ).fetchone()
        return row[0] if row else None

    def register(self, payment_id: str, tx_hash: str) -> bool:
        """Bind payment_id <-> tx_hash.

        Returns True on insert, False if the identical pair already exists.
        Raises replay_detected on a conflicting binding.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT tx_hash FROM x402_replay WHERE payment_id = ?",
                (payment_id,),
            ).fetchone()
            existing_tx_hash = row[0] if row else None

            row = conn.execute(
                "SELECT payment_id FROM x402_replay WHERE tx_hash = ?",
                (tx_hash,),
            ).fetchone()
            existing_payment_id = row[0] if row else None

            check_conflict(payment_id, tx_hash, existing_tx_hash, existing_payment_id)
            if existing_tx_hash is not None:
                return False

            conn.execute(
                "INSERT INTO x402_replay (payment_id, tx_hash, created_at) VALUES (?, ?, ?)",
                (payment_id, tx_hash, self._now_fn()),
            )
            return True

    # -----------------------------------------------------------------
    # Utility
    # -----------------------------------------------------------------

    def count(self) -> int:
        """Return total number of registered pairs."""
        with self._read() as conn:
            row = conn.execute("SELECT COUNT(*) FROM x402_replay").fetchone()
        return row[0] if row else 0

    def created_at(self, payment_id: str) -> str | None:
        """When payment_id was registered, or None."""
        with self._read() as conn:
            row = conn.execute(
                "SELECT created_at FROM x402_replay WHERE payment_id = ?",
                (payment_id,),
            ).fetchone()
        return row[0] if row else None
