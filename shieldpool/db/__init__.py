"""
shieldpool.db
=============

Thin facade over the KV backends the pool persists into.

URIs
----
- "sqlite:///path/to/pool.db"   -> SQLite file
- "sqlite:///:memory:"          -> in-memory SQLite (tests)
- "memory://"                   -> alias of "sqlite:///:memory:"
- bare path ending in ".db"     -> SQLite file

Example
-------
>>> from shieldpool.db import open_kv
>>> kv = open_kv("memory://")
>>> with kv.batch() as b:
...     b.put(b"p:key", b"hello")
>>> kv.get(b"p:key")
b'hello'
"""

from __future__ import annotations

from typing import Tuple

from . import sqlite as _sqlite_backend
from .kv import KV, POOL, Batch, Prefix, ReadOnlyKV
from .staged import StagedKV


def _parse_uri(uri: str) -> Tuple[str, str]:
    u = uri.strip()
    if u.startswith("sqlite:///"):
        return ("sqlite", u[len("sqlite:///") :])
    if u.startswith("memory://"):
        return ("memory", "")
    if u.endswith(".db"):
        return ("sqlite", u)
    raise ValueError(f"Unsupported DB URI: {uri!r}")


def open_kv(uri: str, create: bool = True) -> KV:
    """
    Open a KV database by URI. See module docstring for supported forms.

    Raises ValueError for unsupported URIs and FileNotFoundError when
    `create=False` and the database file does not exist.
    """
    backend, spec = _parse_uri(uri)
    if backend == "memory":
        return _sqlite_backend.open_sqlite_kv(":memory:", create=True)
    return _sqlite_backend.open_sqlite_kv(spec or ":memory:", create=create)


__all__ = [
    "KV",
    "ReadOnlyKV",
    "Batch",
    "Prefix",
    "POOL",
    "StagedKV",
    "open_kv",
]
