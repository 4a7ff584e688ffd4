"""
shieldpool.state

Persisted pool items and their canonical CBOR codec.

Items (all under the `p:` namespace of the host KV):

  contract_info        {"name", "version"}
  pool_denomination    {"denom", "amount"}                       set once
  accumulator_state    MerkleAccumulator.to_state()
  verifier_parameters  {"vk": <snarkjs verifying key JSON text>}  set once
  nullifier/<decimal>  b"\\x01"                                  see nullifiers.py

Values are canonical CBOR (RFC 8949 section 4.2.1, via cbor2) with field
elements stored as decimal strings, so the same state always encodes to the
same bytes.

`PoolStore.transaction()` stages every write of one operation on a `StagedKV`
and commits them in a single batch when the block exits cleanly.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

import cbor2

from shieldpool.db.kv import POOL
from shieldpool.db.staged import StagedKV
from shieldpool.errors import ConstructionError, PoolStateError
from shieldpool.hashing import HashCompression
from shieldpool.merkle import MerkleAccumulator
from shieldpool.nullifiers import NullifierRegistry

log = logging.getLogger(__name__)

KEY_CONTRACT_INFO = POOL.key("contract_info")
KEY_DENOMINATION = POOL.key("pool_denomination")
KEY_ACCUMULATOR = POOL.key("accumulator_state")
KEY_VERIFIER = POOL.key("verifier_parameters")


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def dumps_canonical(obj: Any) -> bytes:
    """Canonical CBOR: deterministic map ordering, minimal integer encodings."""
    return cbor2.dumps(obj, canonical=True)


def loads(data: bytes) -> Any:
    return cbor2.loads(data)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractInfo:
    name: str
    version: str


@dataclass(frozen=True)
class Denomination:
    """The single coin (denom + exact amount) every deposit must attach."""

    denom: str
    amount: int

    def __post_init__(self) -> None:
        if not self.denom:
            raise ValueError("denom must be non-empty")
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount <= 0:
            raise ValueError("denomination amount must be a positive integer")

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class PoolStore:
    """Typed access to the pool's persisted items over a KV (or a stage)."""

    __slots__ = ("kv",)

    def __init__(self, kv) -> None:
        self.kv = kv

    # --- raw helpers ---

    def _load(self, key: bytes) -> Optional[Any]:
        raw = self.kv.get(key)
        if raw is None:
            return None
        try:
            return loads(raw)
        except (cbor2.CBORDecodeError, ValueError) as e:
            raise PoolStateError(f"stored item {key!r} is not valid CBOR") from e

    def _require(self, key: bytes) -> Any:
        v = self._load(key)
        if v is None:
            raise PoolStateError("pool is not initialised", data={"missing": key.decode()})
        return v

    def _save(self, key: bytes, value: Any) -> None:
        self.kv.put(key, dumps_canonical(value))

    # --- status ---

    def is_initialised(self) -> bool:
        return self.kv.has(KEY_CONTRACT_INFO)

    # --- contract info ---

    def load_contract_info(self) -> ContractInfo:
        d = self._require(KEY_CONTRACT_INFO)
        try:
            return ContractInfo(name=str(d["name"]), version=str(d["version"]))
        except (KeyError, TypeError) as e:
            raise PoolStateError("contract_info is corrupt") from e

    def save_contract_info(self, info: ContractInfo) -> None:
        self._save(KEY_CONTRACT_INFO, asdict(info))

    # --- denomination ---

    def load_denomination(self) -> Denomination:
        d = self._require(KEY_DENOMINATION)
        try:
            return Denomination(denom=d["denom"], amount=d["amount"])
        except (KeyError, TypeError, ValueError) as e:
            raise PoolStateError("pool_denomination is corrupt") from e

    def save_denomination(self, denomination: Denomination) -> None:
        self._save(KEY_DENOMINATION, asdict(denomination))

    # --- accumulator ---

    def load_accumulator(self, hasher: HashCompression) -> MerkleAccumulator:
        d = self._require(KEY_ACCUMULATOR)
        try:
            return MerkleAccumulator.from_state(d, hasher)
        except (KeyError, TypeError, ValueError, ConstructionError) as e:
            raise PoolStateError("accumulator_state is corrupt") from e

    def save_accumulator(self, tree: MerkleAccumulator) -> None:
        self._save(KEY_ACCUMULATOR, tree.to_state())

    # --- verifier parameters ---

    def load_verifier_params(self) -> Dict[str, Any]:
        d = self._require(KEY_VERIFIER)
        try:
            return json.loads(d["vk"])
        except (KeyError, TypeError, ValueError) as e:
            raise PoolStateError("verifier_parameters is corrupt") from e

    def save_verifier_params(self, vk: Mapping[str, Any]) -> None:
        self._save(KEY_VERIFIER, {"vk": json.dumps(vk, sort_keys=True, separators=(",", ":"))})

    # --- nullifiers ---

    @property
    def nullifiers(self) -> NullifierRegistry:
        return NullifierRegistry(self.kv)

    # --- transactions ---

    @contextmanager
    def transaction(self) -> Iterator["PoolStore"]:
        """
        Yield a store over a fresh stage; commit it on clean exit.

        Any exception discards the stage and propagates, so the underlying KV
        sees either every write of the block or none of them.
        """
        stage = StagedKV(self.kv)
        try:
            yield PoolStore(stage)
        except BaseException:
            stage.discard()
            raise
        n = stage.commit()
        log.debug("transaction committed %d keys", n)


__all__ = [
    "dumps_canonical",
    "loads",
    "ContractInfo",
    "Denomination",
    "PoolStore",
    "KEY_CONTRACT_INFO",
    "KEY_DENOMINATION",
    "KEY_ACCUMULATOR",
    "KEY_VERIFIER",
]
