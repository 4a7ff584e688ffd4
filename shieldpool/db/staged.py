"""
shieldpool.db.staged: write overlay over a KV, committed in one batch.

Reads consult the overlay first and then the base store; writes only touch
the overlay. `commit()` applies every pending write
inside a single `base.batch()`, `discard()` drops them. A pool operation runs
entirely against a stage, so any error raised before the commit leaves the
base store exactly as it was.

    stage = StagedKV(kv)
    stage.put(b"p:nullifier/7", b"\\x01")
    ...                      # more checks that may raise
    stage.commit()           # all-or-nothing
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Tuple

from .kv import KV

log = logging.getLogger(__name__)


class StagedKV:
    __slots__ = ("_base", "_pending", "_closed")

    def __init__(self, base: KV) -> None:
        self._base = base
        self._pending: Dict[bytes, bytes] = {}
        self._closed = False

    @property
    def base(self) -> KV:
        return self._base

    @property
    def dirty(self) -> bool:
        return bool(self._pending)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("stage already committed or discarded")

    # --- reads ---

    def get(self, key: bytes) -> Optional[bytes]:
        if key in self._pending:
            return self._pending[key]
        return self._base.get(key)

    def has(self, key: bytes) -> bool:
        if key in self._pending:
            return True
        return self._base.has(key)

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        merged: Dict[bytes, bytes] = dict(self._base.iter_prefix(prefix))
        for k, v in self._pending.items():
            if k.startswith(prefix):
                merged[k] = v
        for k in sorted(merged):
            yield k, merged[k]

    # --- writes ---

    def put(self, key: bytes, value: bytes) -> None:
        self._check_open()
        self._pending[bytes(key)] = bytes(value)

    # --- lifecycle ---

    def commit(self) -> int:
        """Apply every pending write in one atomic batch. Returns the number of keys written."""
        self._check_open()
        n = len(self._pending)
        if n:
            with self._base.batch() as b:
                for k, v in self._pending.items():
                    b.put(k, v)
        self._pending.clear()
        self._closed = True
        log.debug("stage committed %d key(s)", n)
        return n

    def discard(self) -> None:
        if self._pending:
            log.debug("stage discarded %d pending key(s)", len(self._pending))
        self._pending.clear()
        self._closed = True


__all__ = ["StagedKV"]
