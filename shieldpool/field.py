"""
BN254 scalar field (Fr), the field the withdrawal circuit and Poseidon work in.

`Fr` is a tiny immutable wrapper around a canonical integer in [0, R). It is
deliberately not an arithmetic type: hashing works on plain ints, and the
accumulator only needs equality, a zero check, and stable encodings.

Encodings
---------
- decimal string (the wire form of roots, commitments and nullifier hashes)
- 32-byte little-endian (the hash-compression input form)

Parsing is strict: non-numeric strings, negatives and values >= R raise
`FieldError`. Callers that want modular reduction must say so explicitly
(`Fr.reduce`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

# BN254 / alt_bn128 group order r (the scalar field of the proof system).
R: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617
FR_BYTE_LEN = 32


class FieldError(ValueError):
    """Value is not a canonical field element."""


@dataclass(frozen=True)
class Fr:
    """Canonical element of F_r."""

    n: int

    def __post_init__(self) -> None:
        if not isinstance(self.n, int) or isinstance(self.n, bool):
            raise FieldError(f"Fr expects an int, got {type(self.n).__name__}")
        if not 0 <= self.n < R:
            raise FieldError("value outside the field range [0, r)")

    # --- Constructors -----------------------------------------------------

    @staticmethod
    def parse(value: Union[int, str, "Fr"]) -> "Fr":
        """
        Strictly parse an int or a decimal string.

        Surrounding whitespace is tolerated; signs, hex and anything >= R are not.
        """
        if isinstance(value, Fr):
            return value
        if isinstance(value, bool):
            raise FieldError("booleans are not field elements")
        if isinstance(value, int):
            return Fr(value)
        if not isinstance(value, str):
            raise FieldError(f"cannot parse {type(value).__name__} as a field element")
        s = value.strip()
        if not s or not s.isdigit() or not s.isascii():
            raise FieldError(f"not a decimal field element: {value!r}")
        return Fr(int(s))

    @staticmethod
    def reduce(value: int) -> "Fr":
        """Reduce an arbitrary non-negative integer modulo R."""
        if value < 0:
            raise FieldError("cannot reduce a negative integer")
        return Fr(value % R)

    @staticmethod
    def from_bytes_le(b: bytes) -> "Fr":
        if len(b) != FR_BYTE_LEN:
            raise FieldError(f"expected {FR_BYTE_LEN} bytes, got {len(b)}")
        return Fr(int.from_bytes(b, "little"))

    @staticmethod
    def zero() -> "Fr":
        return Fr(0)

    # --- Encodings --------------------------------------------------------

    def to_bytes_le(self) -> bytes:
        return self.n.to_bytes(FR_BYTE_LEN, "little")

    def to_decimal(self) -> str:
        return str(self.n)

    # --- Number protocol --------------------------------------------------

    def is_zero(self) -> bool:
        return self.n == 0

    def __int__(self) -> int:
        return self.n

    def __bool__(self) -> bool:
        return self.n != 0

    def __str__(self) -> str:
        return self.to_decimal()

    def __repr__(self) -> str:
        return f"Fr({self.n})"


FR_ZERO = Fr(0)


__all__ = ["R", "FR_BYTE_LEN", "Fr", "FR_ZERO", "FieldError"]
