"""
Shielded pool: deposits and zero-knowledge withdrawals
------------------------------------------------------

Users deposit exactly one denomination together with a commitment, which is
appended to the Merkle accumulator. Later anyone holding an opening of some
inserted commitment can withdraw one denomination to an arbitrary recipient
by proving membership against a recent root, without revealing which leaf.

Withdrawal gates, in order (each one aborts the whole operation):

  1. recipient / relayer are well-formed addresses
  2. public signals encode (root, nullifier hash, fee)
  3. the accumulator has at least one leaf
  4. the nullifier hash is not yet spent
  5. the root is one of the last K roots
  6. the proof verifies against the public signals
  7. the nullifier hash is marked spent
  8. denomination - fee >= 0
  9. a non-zero fee has a relayer to go to; transfers are emitted

Every operation runs inside `PoolStore.transaction()`: its writes are staged
and reach the KV store in one batch only after the last gate passed.

Integration points
  - The host executes the returned `Transfer`s (or reverts if it cannot).
  - The host serialises calls; the pool holds no locks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from shieldpool.address import NoRelayer, Relayer, parse_address, parse_relayer
from shieldpool.errors import (
    ConstructionError,
    DuplicateNullifier,
    FeeExceedsPrincipal,
    InvalidAddress,
    InvalidProof,
    MalformedSignal,
    PoolError,
    PoolStateError,
    UnknownRoot,
    WrongAmount,
)
from shieldpool.field import FieldError, Fr
from shieldpool.hashing import HashCompression, default_hasher
from shieldpool.logging import op_scope
from shieldpool.merkle import DEFAULT_HISTORY_SIZE, MerkleAccumulator
from shieldpool.signals import encode_public_signals
from shieldpool.state import ContractInfo, Denomination, PoolStore
from shieldpool.verifier import ProofVerifier
from shieldpool.version import CONTRACT_NAME, __version__

log = logging.getLogger(__name__)

DEFAULT_DEPTH = 20
DEFAULT_HRP = "juno"


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True)
class DepositMsg:
    commitment: str


@dataclass(frozen=True)
class WithdrawMsg:
    proof: Mapping[str, Any]
    root: str
    nullifier_hash: str
    recipient: str
    relayer: str = "0"
    fee: Union[int, str] = 0


@dataclass(frozen=True)
class Transfer:
    recipient: str
    amount: int
    denom: str

    def to_dict(self) -> Dict[str, Any]:
        return {"recipient": self.recipient, "amount": self.amount, "denom": self.denom}


@dataclass
class Response:
    transfers: List[Transfer] = field(default_factory=list)
    attributes: List[Tuple[str, str]] = field(default_factory=list)

    def attr(self, key: str) -> Optional[str]:
        for k, v in self.attributes:
            if k == key:
                return v
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transfers": [t.to_dict() for t in self.transfers],
            "attributes": dict(self.attributes),
        }


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------


def _must_pay(funds: Sequence[Coin], denomination: Denomination) -> None:
    """Exactly one coin of the pool denom, for exactly the denomination amount."""
    if len(funds) != 1:
        raise WrongAmount(
            f"expected exactly one coin of {denomination.denom}",
            data={"funds": [str(c) for c in funds]},
        )
    coin = funds[0]
    if coin.denom != denomination.denom or coin.amount != denomination.amount:
        raise WrongAmount(
            f"amount sent ({coin}) does not match the pool denomination ({denomination})",
            data={"sent": str(coin), "expected": str(denomination)},
        )


class ShieldedPool:
    """
    A fixed-denomination shielded pool over a host KV store.

    Use `ShieldedPool.instantiate(...)` once to initialise a store and
    `ShieldedPool(kv)` to open an initialised one. `hasher` and `verifier`
    default to Poseidon and the Groth16 verifier built from the stored
    verifying key.
    """

    def __init__(
        self,
        kv,
        *,
        hasher: Optional[HashCompression] = None,
        verifier: Optional[ProofVerifier] = None,
        address_hrp: str = DEFAULT_HRP,
    ) -> None:
        self.store = PoolStore(kv)
        if not self.store.is_initialised():
            raise PoolStateError("pool is not initialised; run instantiate first")
        self.hasher = hasher or default_hasher()
        self.address_hrp = address_hrp
        self._verifier = verifier

    @classmethod
    def instantiate(
        cls,
        kv,
        denomination: Union[Coin, Denomination],
        verifier_params: Mapping[str, Any],
        *,
        depth: int = DEFAULT_DEPTH,
        history_size: int = DEFAULT_HISTORY_SIZE,
        hasher: Optional[HashCompression] = None,
        verifier: Optional[ProofVerifier] = None,
        address_hrp: str = DEFAULT_HRP,
    ) -> "ShieldedPool":
        """Write contract info, denomination, verifying key and an empty tree."""
        store = PoolStore(kv)
        if store.is_initialised():
            raise PoolStateError("pool is already initialised")

        try:
            denom = Denomination(denom=denomination.denom, amount=denomination.amount)
        except ValueError as e:
            raise ConstructionError(str(e)) from e
        if verifier is None:
            # Fail now rather than on the first withdrawal.
            from shieldpool.verifier.groth16 import Groth16Verifier

            try:
                verifier = Groth16Verifier(verifier_params)
            except ValueError as e:
                raise ConstructionError(f"invalid verifying key: {e}") from e

        hasher = hasher or default_hasher()
        tree = MerkleAccumulator(depth, hasher, history_size=history_size)

        with store.transaction() as tx:
            tx.save_contract_info(ContractInfo(name=CONTRACT_NAME, version=__version__))
            tx.save_denomination(denom)
            tx.save_verifier_params(verifier_params)
            tx.save_accumulator(tree)

        log.info(
            "pool instantiated",
            extra={"denomination": str(denom), "depth": depth, "history_size": history_size},
        )
        return cls(kv, hasher=hasher, verifier=verifier, address_hrp=address_hrp)

    @property
    def verifier(self) -> ProofVerifier:
        if self._verifier is None:
            from shieldpool.verifier.groth16 import Groth16Verifier

            try:
                self._verifier = Groth16Verifier(self.store.load_verifier_params())
            except ValueError as e:
                raise PoolStateError(f"stored verifying key is invalid: {e}") from e
        return self._verifier

    # --- execute ---

    def deposit(self, msg: DepositMsg, funds: Sequence[Coin], sender: Optional[str] = None) -> Response:
        with op_scope(action="deposit"):
            try:
                with self.store.transaction() as tx:
                    _must_pay(funds, tx.load_denomination())
                    try:
                        commitment = Fr.parse(msg.commitment)
                    except FieldError as e:
                        raise MalformedSignal(f"commitment: {e}", data={"commitment": msg.commitment}) from e
                    tree = tx.load_accumulator(self.hasher)
                    index = tree.insert(commitment)
                    tx.save_accumulator(tree)
            except PoolError as e:
                log.info("deposit rejected: %s", e, extra={"code": e.code})
                raise

            log.info("deposit accepted", extra={"leaf_index": index, "sender": sender})
            attributes = [("action", "deposit")]
            if sender is not None:
                attributes.append(("from", sender))
            attributes.append(("leaf_index", str(index)))
            return Response(transfers=[], attributes=attributes)

    def withdraw(self, msg: WithdrawMsg) -> Response:
        with op_scope(action="withdraw"):
            try:
                return self._withdraw(msg)
            except DuplicateNullifier as e:
                log.warning("replayed nullifier rejected: %s", e, extra={"code": e.code})
                raise
            except PoolError as e:
                log.info("withdrawal rejected: %s", e, extra={"code": e.code})
                raise

    def _withdraw(self, msg: WithdrawMsg) -> Response:
        recipient = parse_address(msg.recipient, hrp=self.address_hrp)
        relayer = parse_relayer(msg.relayer, hrp=self.address_hrp)

        signals = encode_public_signals(msg.root, msg.nullifier_hash, recipient, relayer, msg.fee)

        with self.store.transaction() as tx:
            tree = tx.load_accumulator(self.hasher)
            if tree.next_index == 0:
                raise PoolStateError("no deposits have been made")

            registry = tx.nullifiers
            if registry.contains(signals.nullifier_hash):
                raise DuplicateNullifier(
                    "Nullifier is already used",
                    data={"nullifier_hash": signals.nullifier_hash.to_decimal()},
                )

            if not tree.is_known_root(signals.root):
                raise UnknownRoot("Cannot find your merkle root", data={"root": signals.root.to_decimal()})

            if not self.verifier.verify(msg.proof, signals.as_inputs()):
                raise InvalidProof("Invalid withdraw proof")

            registry.mark_spent(signals.nullifier_hash)

            denomination = tx.load_denomination()
            fee = int(signals.fee)
            amount_to_recipient = denomination.amount - fee
            if amount_to_recipient < 0:
                raise FeeExceedsPrincipal(
                    "fee exceeds the pool denomination",
                    data={"fee": fee, "denomination": denomination.amount},
                )
            if fee > 0 and isinstance(relayer, NoRelayer):
                raise InvalidAddress("a non-zero fee needs a relayer to pay it to", data={"fee": fee})

        transfers = [Transfer(recipient.text, amount_to_recipient, denomination.denom)]
        if fee > 0 and isinstance(relayer, Relayer):
            transfers.append(Transfer(relayer.address.text, fee, denomination.denom))

        log.info(
            "withdrawal accepted",
            extra={"recipient": recipient.text, "relayer": str(relayer), "fee": fee},
        )
        return Response(transfers=transfers, attributes=[("action", "withdraw")])

    # --- queries ---

    def is_known_root(self, root: str) -> bool:
        try:
            root_fr = Fr.parse(root)
        except FieldError as e:
            raise MalformedSignal(f"root: {e}", data={"root": root}) from e
        return self.store.load_accumulator(self.hasher).is_known_root(root_fr)

    def last_root(self) -> str:
        return self.store.load_accumulator(self.hasher).get_last_root().to_decimal()

    def is_spent(self, nullifier_hash: str) -> bool:
        try:
            return self.store.nullifiers.contains(nullifier_hash)
        except FieldError as e:
            raise MalformedSignal(f"nullifier_hash: {e}", data={"nullifier_hash": nullifier_hash}) from e

    def info(self) -> Dict[str, Any]:
        contract = self.store.load_contract_info()
        denomination = self.store.load_denomination()
        tree = self.store.load_accumulator(self.hasher)
        return {
            "contract": contract.name,
            "version": contract.version,
            "denomination": {"denom": denomination.denom, "amount": denomination.amount},
            "depth": tree.depth,
            "capacity": tree.capacity,
            "next_index": tree.next_index,
            "root_history_size": tree.history_size,
            "last_root": tree.get_last_root().to_decimal(),
            "spent_nullifiers": self.store.nullifiers.count(),
        }


__all__ = [
    "Coin",
    "DepositMsg",
    "WithdrawMsg",
    "Transfer",
    "Response",
    "ShieldedPool",
    "DEFAULT_DEPTH",
]
