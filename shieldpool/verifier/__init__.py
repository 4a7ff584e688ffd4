"""
Proof verification capability.

The pool only needs a yes/no answer for a proof against the public signal
vector `[root, nullifier_hash, recipient, relayer, fee]`. Anything
implementing `ProofVerifier` can be plugged in; the production backend is
Groth16 over BN254 (`shieldpool.verifier.groth16.Groth16Verifier`).
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class ProofVerifier(Protocol):
    """Pure predicate: True iff `proof` is valid for `public_inputs`."""

    def verify(self, proof: Mapping[str, Any], public_inputs: Sequence[int]) -> bool: ...


__all__ = ["ProofVerifier"]
