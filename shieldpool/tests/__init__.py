"""
shieldpool.tests helpers

Shared stand-ins and helpers for the pool's tests. Importable without the
heavy pairing backend.

Exports:
- Sha256Compression       deterministic HashCompression stand-in
- StubVerifier            ProofVerifier stand-in with a switchable verdict
- account(n, hrp="juno")  -> a valid bech32 account with payload bytes([n]) * 20
- env_flag(name, default=False) -> bool
- configure_test_logging() -> None

Environment toggles:
- SHIELDPOOL_TEST_LOG=1   -> enable DEBUG logging for shieldpool.*
"""

from __future__ import annotations

import hashlib
import logging
import os
from typing import Any, List, Mapping, Sequence, Tuple

from shieldpool.address import encode_address
from shieldpool.field import Fr


class Sha256Compression:
    """H(l, r) = sha256(le(l) || le(r)) mod r. Fast, deterministic, not Poseidon."""

    def __init__(self) -> None:
        self.calls = 0

    def compress(self, left: Fr, right: Fr) -> Fr:
        self.calls += 1
        digest = hashlib.sha256(left.to_bytes_le() + right.to_bytes_le()).digest()
        return Fr.reduce(int.from_bytes(digest, "big"))


class StubVerifier:
    """Accepts (or rejects) every proof and records what it was asked."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.calls: List[Tuple[Mapping[str, Any], List[int]]] = []

    def verify(self, proof: Mapping[str, Any], public_inputs: Sequence[int]) -> bool:
        self.calls.append((proof, list(public_inputs)))
        return self.accept


def account(n: int, hrp: str = "juno") -> str:
    return encode_address(bytes([n]) * 20, hrp=hrp)


def env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def configure_test_logging(level: int = logging.DEBUG) -> None:
    if env_flag("SHIELDPOOL_TEST_LOG", False):
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        logging.getLogger("shieldpool").setLevel(level)


configure_test_logging()

__all__ = [
    "Sha256Compression",
    "StubVerifier",
    "account",
    "env_flag",
    "configure_test_logging",
]
