"""
Public signal encoding for the withdrawal proof.

The withdrawal circuit exposes five public inputs, in this fixed order:

    [root, nullifier_hash, recipient, relayer, fee]

This module turns the user-supplied withdrawal parameters into those field
elements. It performs no hashing and no semantic checks (freshness of the
root, spentness of the nullifier); those belong to the pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

from shieldpool.address import Address, NoRelayer, Relayer, RelayerChoice
from shieldpool.errors import MalformedSignal
from shieldpool.field import FieldError, Fr


def address_to_field(address: Address) -> Fr:
    """
    Map an account to F_r: payload bytes read big-endian, reduced modulo r.

    20-byte payloads always fit; 32-byte payloads may exceed r and are reduced.
    The circuit side applies the same reduction.
    """
    return Fr.reduce(int.from_bytes(address.payload, "big"))


def relayer_to_field(relayer: RelayerChoice) -> Fr:
    if isinstance(relayer, NoRelayer):
        return Fr.zero()
    return address_to_field(relayer.address)


def _parse_fee(fee: Union[int, str]) -> Fr:
    if isinstance(fee, bool):
        raise MalformedSignal("fee must be an integer", data={"fee": fee})
    try:
        return Fr.parse(fee)
    except FieldError as e:
        raise MalformedSignal(f"fee is not a non-negative integer below r: {e}", data={"fee": str(fee)}) from e


@dataclass(frozen=True)
class PublicSignals:
    root: Fr
    nullifier_hash: Fr
    recipient: Fr
    relayer: Fr
    fee: Fr

    def as_inputs(self) -> List[int]:
        """The verifier's public-input vector."""
        return [
            int(self.root),
            int(self.nullifier_hash),
            int(self.recipient),
            int(self.relayer),
            int(self.fee),
        ]

    def __len__(self) -> int:
        return 5


def encode_public_signals(
    root: str,
    nullifier_hash: str,
    recipient: Address,
    relayer: RelayerChoice,
    fee: Union[int, str],
) -> PublicSignals:
    """
    Build the public inputs of a withdrawal.

    Raises MalformedSignal if the root or nullifier hash is not a canonical
    decimal field element, or the fee is negative or at least r.
    """
    try:
        root_fr = Fr.parse(root)
    except FieldError as e:
        raise MalformedSignal(f"root: {e}", data={"root": root}) from e
    try:
        nullifier_fr = Fr.parse(nullifier_hash)
    except FieldError as e:
        raise MalformedSignal(f"nullifier_hash: {e}", data={"nullifier_hash": nullifier_hash}) from e

    if not isinstance(relayer, (NoRelayer, Relayer)):
        raise MalformedSignal("relayer must be NO_RELAYER or Relayer(address)")

    return PublicSignals(
        root=root_fr,
        nullifier_hash=nullifier_fr,
        recipient=address_to_field(recipient),
        relayer=relayer_to_field(relayer),
        fee=_parse_fee(fee),
    )


__all__ = [
    "PublicSignals",
    "encode_public_signals",
    "address_to_field",
    "relayer_to_field",
]
