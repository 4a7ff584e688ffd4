"""
KV interface & the pool's key namespace
=======================================

Backend-agnostic Key-Value interface the pool persists through. The host
ledger's storage is modelled as a flat byte-keyed map with atomic write
batches; the SQLite backend in `shieldpool.db.sqlite` implements it.

All pool items live under one namespace:

- POOL (b"p:")  : contract info, denomination, accumulator state,
                  verifying key, spent nullifiers

Key building
------------
>>> from shieldpool.db.kv import POOL
>>> POOL.key("nullifier", "7")
b'p:nullifier/7'

Batching
--------
`KV.batch()` returns a context manager. Writes inside it land atomically when
the block exits cleanly and are rolled back if an exception escapes:

>>> with kv.batch() as b:
...     b.put(POOL.key("pool_denomination"), blob)
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, Tuple, Union, runtime_checkable

# ---------------------------------------------------------------------------
# Prefix helpers
# ---------------------------------------------------------------------------

NS_SEP = b":"
PART_SEP = b"/"


class Prefix:
    """
    A logical namespace prefix (e.g. b"p:").

    .raw gives the raw prefix bytes.
    .key(*parts) joins the parts with "/" under the prefix. Parts must not
    contain the separator themselves.
    """

    __slots__ = ("_raw",)

    def __init__(self, ns: Union[bytes, str]) -> None:
        ns_b = ns.encode("ascii") if isinstance(ns, str) else bytes(ns)
        if len(ns_b) == 0:
            raise ValueError("namespace must be non-empty")
        self._raw = ns_b.rstrip(NS_SEP) + NS_SEP

    @property
    def raw(self) -> bytes:
        return self._raw

    def key(self, *parts: Union[bytes, str]) -> bytes:
        if not parts:
            raise ValueError("at least one key part is required")
        encoded = [_part_to_bytes(p) for p in parts]
        return self._raw + PART_SEP.join(encoded)

    def sub(self, *parts: Union[bytes, str]) -> bytes:
        """Prefix for iterating every key below `parts` (trailing separator included)."""
        return self.key(*parts) + PART_SEP


def _part_to_bytes(p: Union[bytes, str]) -> bytes:
    if isinstance(p, str):
        pb = p.encode("utf-8")
    elif isinstance(p, (bytes, bytearray, memoryview)):
        pb = bytes(p)
    else:
        raise TypeError(f"unsupported key part type: {type(p)!r}")
    if not pb or PART_SEP in pb:
        raise ValueError(f"invalid key part {pb!r}")
    return pb


POOL = Prefix(b"p")


# ---------------------------------------------------------------------------
# KV protocols & Batch
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    """Minimal read-only KV surface."""

    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def has(self, key: bytes) -> bool:
        ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs whose key begins with `prefix`, in byte order."""
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Batch(Protocol):
    """
    A write-batch context manager. Exiting without exception commits
    atomically; an escaping exception rolls everything back.
    """

    def put(self, key: bytes, value: bytes) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    """Full RW KV surface."""

    def put(self, key: bytes, value: bytes) -> None:
        ...

    def batch(self) -> Batch:
        ...


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "Prefix",
    "POOL",
]
