"""
SQLite-backed KV store
======================

One table, kv(k BLOB PRIMARY KEY, v BLOB NOT NULL), with memcmp key order.
Writes go through `SQLiteBatch`, which wraps `BEGIN IMMEDIATE ... COMMIT`, so
a pool operation's writes land together or not at all. Pool state is
append-only: there is no delete.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from typing import Iterator, Optional, Tuple

from .kv import KV, Batch

log = logging.getLogger(__name__)

# Pool state is small; durability over speed.
PRAGMAS = (
    ("journal_mode", "WAL"),
    ("synchronous", "FULL"),
    ("temp_store", "MEMORY"),
)

_UPSERT = "INSERT INTO kv(k, v) VALUES(?, ?) ON CONFLICT(k) DO UPDATE SET v=excluded.v"


def _prefix_hi(prefix: bytes) -> Optional[bytes]:
    """
    Exclusive upper bound of the keys starting with `prefix`, or None when
    the prefix is empty or all 0xFF.

    Example: b"ab\\x01" -> b"ab\\x02"; b"\\xff\\xff" -> None
    """
    p = bytearray(prefix)
    while p:
        if p[-1] != 0xFF:
            p[-1] += 1
            return bytes(p)
        p.pop()
    return None


class SQLiteBatch(Batch):
    __slots__ = ("_conn", "_open")

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._open = False

    def __enter__(self) -> "SQLiteBatch":
        if self._open:
            raise RuntimeError("batch already open (nested batches not supported)")
        self._conn.execute("BEGIN IMMEDIATE")
        self._open = True
        return self

    def put(self, key: bytes, value: bytes) -> None:
        if not self._open:
            raise RuntimeError("batch not open")
        self._conn.execute(_UPSERT, (memoryview(key), memoryview(value)))

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        if not self._open:
            return None
        self._open = False
        if exc_type is None:
            self._conn.execute("COMMIT")
        else:
            log.debug("rolling back batch after %s", exc_type.__name__)
            self._conn.execute("ROLLBACK")
        return None


class SQLiteKV(KV):
    """SQLite-backed KV. Writers are expected to be serialised by the caller."""

    __slots__ = ("_conn",)

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, key: bytes) -> Optional[bytes]:
        row = self._conn.execute("SELECT v FROM kv WHERE k = ?", (memoryview(key),)).fetchone()
        return bytes(row[0]) if row is not None else None

    def has(self, key: bytes) -> bool:
        row = self._conn.execute("SELECT 1 FROM kv WHERE k = ? LIMIT 1", (memoryview(key),)).fetchone()
        return row is not None

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        hi = _prefix_hi(prefix)
        if hi is None:
            rows = self._conn.execute(
                "SELECT k, v FROM kv WHERE k >= ? ORDER BY k", (memoryview(prefix),)
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT k, v FROM kv WHERE k >= ? AND k < ? ORDER BY k",
                (memoryview(prefix), memoryview(hi)),
            ).fetchall()
        # Rows are materialised so callers may write while iterating.
        for k, v in rows:
            yield bytes(k), bytes(v)

    def put(self, key: bytes, value: bytes) -> None:
        self._conn.execute(_UPSERT, (memoryview(key), memoryview(value)))

    def batch(self) -> Batch:
        return SQLiteBatch(self._conn)

    def close(self) -> None:
        self._conn.close()


def open_sqlite_kv(path: str, *, create: bool = True) -> SQLiteKV:
    """Open (or create) a SQLite KV at `path`. `create=False` raises if the file is missing."""
    if path != ":memory:" and not create and not os.path.exists(path):
        raise FileNotFoundError(f"SQLite KV not found at {path}")
    # Autocommit; batches BEGIN explicitly.
    conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
    for name, value in PRAGMAS:
        conn.execute(f"PRAGMA {name}={value}")
    conn.execute("CREATE TABLE IF NOT EXISTS kv (k BLOB PRIMARY KEY, v BLOB NOT NULL)")
    return SQLiteKV(conn)


__all__ = ["SQLiteKV", "SQLiteBatch", "open_sqlite_kv"]
