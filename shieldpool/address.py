"""
Bech32 addresses for withdrawal recipients and relayers
=======================================================

Host-chain accounts are Bech32 strings (`<hrp>1<data><checksum>`, BIP-0173)
carrying a 20- or 32-byte payload. This module implements the Bech32/Bech32m
primitives plus the two address shapes the pool cares about:

- `Address`   validated, canonical (lowercase) account with its raw payload
- relayer     either `NO_RELAYER` or `Relayer(address)`; the wire sentinels
              `""` and `"0"` both mean "no relayer"

Usage
-----
    addr = parse_address("juno1...", hrp="juno")          # Address
    relayer = parse_relayer("0", hrp="juno")               # NO_RELAYER
    s = encode_address(b"\\x00" * 20, hrp="juno")         # "juno1qqq..."

References
----------
BIP-0173: https://github.com/bitcoin/bips/blob/master/bip-0173.mediawiki
BIP-0350: https://github.com/bitcoin/bips/blob/master/bip-0350.mediawiki
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

from shieldpool.errors import InvalidAddress

# 32-character alphabet per BIP-0173.
CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
CHARSET_REV = {c: i for i, c in enumerate(CHARSET)}

_BECH32_CONST = 1
_BECH32M_CONST = 0x2BC830A3

# BIP-0173 overall length limit.
MAX_BECH32_LEN = 90

DEFAULT_HRP = "juno"
PAYLOAD_LENGTHS = (20, 32)

# Wire values meaning "withdraw without a relayer".
NO_RELAYER_SENTINELS = ("", "0")


class Bech32Error(ValueError):
    pass


# ---------------------------------------------------------------------------
# Core Bech32/Bech32m primitives
# ---------------------------------------------------------------------------


def _polymod(values: Sequence[int]) -> int:
    GENERATORS = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
    chk = 1
    for v in values:
        if v < 0 or v > 31:
            raise Bech32Error("polymod values must be 5-bit")
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ v
        for i in range(5):
            if (top >> i) & 1:
                chk ^= GENERATORS[i]
    return chk


def _hrp_expand(hrp: str) -> List[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _create_checksum(hrp: str, data: Sequence[int], bech32m: bool) -> List[int]:
    const = _BECH32M_CONST if bech32m else _BECH32_CONST
    polymod = _polymod(_hrp_expand(hrp) + list(data) + [0, 0, 0, 0, 0, 0]) ^ const
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def _verify_checksum(hrp: str, data: Sequence[int]) -> Tuple[bool, str]:
    pm = _polymod(_hrp_expand(hrp) + list(data))
    if pm == _BECH32_CONST:
        return True, "bech32"
    if pm == _BECH32M_CONST:
        return True, "bech32m"
    return False, ""


def bech32_encode(hrp: str, data: Sequence[int], spec: str = "bech32") -> str:
    """Encode HRP + 5-bit words. `spec` is "bech32" or "bech32m"."""
    if not hrp or any((ord(c) < 33 or ord(c) > 126) for c in hrp):
        raise Bech32Error("invalid HRP characters")
    if any(d < 0 or d > 31 for d in data):
        raise Bech32Error("data values must be 5-bit (0..31)")
    if spec not in ("bech32", "bech32m"):
        raise Bech32Error("spec must be 'bech32' or 'bech32m'")
    hrp = hrp.lower()
    checksum = _create_checksum(hrp, data, spec == "bech32m")
    return hrp + "1" + "".join(CHARSET[d] for d in list(data) + checksum)


def bech32_decode(bech: str) -> Tuple[str, List[int], str]:
    """Decode into (hrp, data words without checksum, spec). Raises Bech32Error."""
    if not bech or len(bech) < 8:
        raise Bech32Error("string too short for bech32")
    if len(bech) > MAX_BECH32_LEN:
        raise Bech32Error("string too long for bech32")
    if any(c.isupper() for c in bech) and any(c.islower() for c in bech):
        raise Bech32Error("mixed-case bech32 is invalid")
    bech = bech.lower()

    pos = bech.rfind("1")
    if pos < 1 or pos + 7 > len(bech):
        raise Bech32Error("invalid position of separator '1'")

    hrp = bech[:pos]
    if any((ord(c) < 33 or ord(c) > 126) for c in hrp):
        raise Bech32Error("invalid HRP characters")
    try:
        data = [CHARSET_REV[c] for c in bech[pos + 1:]]
    except KeyError:
        raise Bech32Error("invalid data character in bech32 string")

    ok, spec = _verify_checksum(hrp, data)
    if not ok:
        raise Bech32Error("checksum mismatch")
    return hrp, data[:-6], spec


def convertbits(data: Iterable[int], from_bits: int, to_bits: int, pad: bool = True) -> List[int]:
    """BIP-0173 power-of-2 base conversion. With pad=False leftover bits must be zero."""
    acc = 0
    bits = 0
    ret: List[int] = []
    maxv = (1 << to_bits) - 1
    max_acc = (1 << (from_bits + to_bits - 1)) - 1

    for value in data:
        if value < 0 or (value >> from_bits):
            raise Bech32Error("invalid value for convertbits")
        acc = ((acc << from_bits) | value) & max_acc
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (to_bits - bits)) & maxv)
    else:
        if bits >= from_bits:
            raise Bech32Error("illegal zero-padding")
        if ((acc << (to_bits - bits)) & maxv) != 0:
            raise Bech32Error("non-zero padding")
    return ret


def encode_address(payload: bytes, hrp: str = DEFAULT_HRP) -> str:
    """Encode raw payload bytes as a Bech32 (BIP-0173) account string."""
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise Bech32Error("payload must be bytes-like")
    return bech32_encode(hrp, convertbits(bytes(payload), 8, 5, pad=True), spec="bech32")


# ---------------------------------------------------------------------------
# Validated address & relayer variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Address:
    """Canonical lowercase Bech32 account and its decoded payload."""

    text: str
    hrp: str
    payload: bytes

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class NoRelayer:
    """Withdrawal submitted directly by the recipient; no fee can be paid."""

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return "0"


NO_RELAYER = NoRelayer()


@dataclass(frozen=True)
class Relayer:
    """Third party that submitted the withdrawal and is owed the fee."""

    address: Address

    def __str__(self) -> str:
        return self.address.text


RelayerChoice = Union[NoRelayer, Relayer]


def parse_address(
    text: str,
    *,
    hrp: str = DEFAULT_HRP,
    payload_lengths: Sequence[int] = PAYLOAD_LENGTHS,
) -> Address:
    """
    Validate a host-chain account string.

    Requires the canonical lowercase form, a valid Bech32 (not Bech32m)
    checksum, the expected HRP and a payload of an accepted length.
    """
    if not isinstance(text, str) or not text:
        raise InvalidAddress("address must be a non-empty string")
    if text != text.strip() or text != text.lower():
        raise InvalidAddress("address must be in canonical lowercase form", data={"address": text})
    try:
        got_hrp, data5, spec = bech32_decode(text)
        payload = bytes(convertbits(data5, 5, 8, pad=False))
    except Bech32Error as e:
        raise InvalidAddress(str(e), data={"address": text}) from e
    if spec != "bech32":
        raise InvalidAddress("account addresses use bech32, not bech32m", data={"address": text})
    if got_hrp != hrp:
        raise InvalidAddress(f"unexpected prefix {got_hrp!r} (expected {hrp!r})", data={"address": text})
    if len(payload) not in payload_lengths:
        raise InvalidAddress(
            f"unexpected payload length {len(payload)}", data={"address": text}
        )
    return Address(text=text, hrp=got_hrp, payload=payload)


def parse_relayer(text: str, *, hrp: str = DEFAULT_HRP) -> RelayerChoice:
    """`""` or `"0"` is NO_RELAYER; anything else must be a valid address."""
    if text in NO_RELAYER_SENTINELS:
        return NO_RELAYER
    return Relayer(parse_address(text, hrp=hrp))


__all__ = [
    "Bech32Error",
    "bech32_encode",
    "bech32_decode",
    "convertbits",
    "encode_address",
    "Address",
    "NoRelayer",
    "NO_RELAYER",
    "Relayer",
    "RelayerChoice",
    "parse_address",
    "parse_relayer",
    "DEFAULT_HRP",
    "NO_RELAYER_SENTINELS",
]
