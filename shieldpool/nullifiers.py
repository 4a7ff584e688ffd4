"""
Spent-nullifier registry
========================

Insert-only set of spent nullifier hashes, persisted in the pool's KV
namespace. A nullifier hash is a field element; its registry key is the
canonical decimal string, so `"007"` and `"7"` name the same nullifier.

    contains(nullifier) -> bool
    mark_spent(nullifier) -> None     # DuplicateNullifier if already present
    iter_spent() -> Iterator[Fr]
    count() -> int

There is no removal. The registry never overwrites: marking an already-spent
nullifier raises instead.

Notes
-----
- No crypto here; nullifier hashes arrive already computed by the prover.
- The registry writes through whatever KV it is given. The pool hands it a
  `StagedKV`, so marks become durable only when the withdrawal commits.
"""

from __future__ import annotations

import logging
from typing import Iterator, Union

from shieldpool.db.kv import POOL
from shieldpool.errors import DuplicateNullifier
from shieldpool.field import Fr

log = logging.getLogger(__name__)

_SPENT = b"\x01"
_NS = "nullifier"


def _key(nullifier: Fr) -> bytes:
    return POOL.key(_NS, nullifier.to_decimal())


class NullifierRegistry:
    """Spent nullifier hashes over a KV store (`get`/`has`/`put`/`iter_prefix`)."""

    __slots__ = ("_kv",)

    def __init__(self, kv) -> None:
        self._kv = kv

    def contains(self, nullifier: Union[Fr, int, str]) -> bool:
        return self._kv.has(_key(Fr.parse(nullifier)))

    def __contains__(self, nullifier: object) -> bool:
        try:
            return self.contains(nullifier)  # type: ignore[arg-type]
        except ValueError:
            return False

    def mark_spent(self, nullifier: Union[Fr, int, str]) -> None:
        n = Fr.parse(nullifier)
        k = _key(n)
        if self._kv.has(k):
            raise DuplicateNullifier(
                "Nullifier is already used", data={"nullifier_hash": n.to_decimal()}
            )
        self._kv.put(k, _SPENT)
        log.debug("nullifier %s marked spent", n)

    def iter_spent(self) -> Iterator[Fr]:
        """Spent nullifiers in key order (lexicographic on the decimal form)."""
        prefix = POOL.sub(_NS)
        for k, _ in self._kv.iter_prefix(prefix):
            yield Fr.parse(k[len(prefix):].decode("ascii"))

    def count(self) -> int:
        return sum(1 for _ in self._kv.iter_prefix(POOL.sub(_NS)))

    def __len__(self) -> int:
        return self.count()


__all__ = ["NullifierRegistry"]
