"""
Hash compression capability used by the Merkle accumulator.

The accumulator treats its node hash as an opaque two-to-one compression
function over F_r. Anything implementing `HashCompression` can be plugged in;
the production backend is circom-compatible Poseidon (`PoseidonCompression`),
and tests pass deterministic stand-ins.

>>> from shieldpool.hashing import default_hasher
>>> h = default_hasher()
>>> h.compress(Fr(1), Fr(2))  # doctest: +SKIP
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from shieldpool.field import Fr


@runtime_checkable
class HashCompression(Protocol):
    """Deterministic two-to-one compression `H(left, right) -> Fr`."""

    def compress(self, left: Fr, right: Fr) -> Fr: ...


def default_hasher() -> HashCompression:
    """Return the Poseidon (t=3, BN254) compression used by the pool."""
    from .poseidon import PoseidonCompression

    return PoseidonCompression()


__all__ = ["HashCompression", "default_hasher"]
