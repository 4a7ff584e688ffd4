"""
shieldpool.verifier.pairing
===========================

Thin BN254 (alt_bn128) Ate pairing wrapper over `py_ecc.optimized_bn128`.

Public API
----------
- pair(P, Q) -> FQ12                               e(P, Q), P in G1, Q in G2
- check_pairing_product(pairs) -> bool             prod e(P_i, Q_i) == 1
- is_on_curve_g1(P), is_on_curve_g2(Q)
- normalize_g1(P) / normalize_g2(Q)                to affine integers
- g1_generator(), g2_generator(), curve_order()

Notes
-----
- py_ecc's pairing takes (Q, P); this wrapper takes the conventional (P, Q).
- Points are opaque projective tuples as py_ecc represents them; a zero
  third coordinate is the point at infinity and pairs to the identity.
- The product check runs one Miller loop per pair and a single final
  exponentiation.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple

from py_ecc.optimized_bn128 import (
    FQ12,
    G1,
    G2,
    b,
    b2,
    curve_order as _Q,
    field_modulus as _P,
    final_exponentiate,
    is_on_curve,
    normalize,
    pairing,
)

G1Point = Any
G2Point = Any
GTElement = FQ12

BACKEND_NAME = "py_ecc.optimized_bn128"


def curve_order() -> int:
    """BN254 subgroup order (equal to the scalar field modulus r)."""
    return int(_Q)


def field_modulus() -> int:
    return int(_P)


def g1_generator() -> G1Point:
    return G1


def g2_generator() -> G2Point:
    return G2


def is_inf(P: Any) -> bool:
    return P is None or P[2] == P[2].zero()


def is_on_curve_g1(P: G1Point) -> bool:
    return is_inf(P) or bool(is_on_curve(P, b))


def is_on_curve_g2(Q: G2Point) -> bool:
    return is_inf(Q) or bool(is_on_curve(Q, b2))


def normalize_g1(P: G1Point) -> Optional[Tuple[int, int]]:
    """Affine (x, y) integers, or None for infinity."""
    if is_inf(P):
        return None
    ax, ay = normalize(P)
    return int(ax.n), int(ay.n)


def normalize_g2(Q: G2Point) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
    """Affine ((x_c0, x_c1), (y_c0, y_c1)) integers, or None for infinity."""
    if is_inf(Q):
        return None
    ax, ay = normalize(Q)
    return (int(ax.coeffs[0]), int(ax.coeffs[1])), (int(ay.coeffs[0]), int(ay.coeffs[1]))


def pair(P: G1Point, Q: G2Point) -> GTElement:
    """e(P, Q). Raises ValueError for points off the curve."""
    if not is_on_curve_g1(P):
        raise ValueError("G1 point is not on curve")
    if not is_on_curve_g2(Q):
        raise ValueError("G2 point is not on curve")
    if is_inf(P) or is_inf(Q):
        return FQ12.one()
    return pairing(Q, P)


def check_pairing_product(pairs: Iterable[Tuple[G1Point, G2Point]]) -> bool:
    """True iff prod e(P_i, Q_i) == 1 in GT."""
    acc = FQ12.one()
    for P, Q in pairs:
        if not is_on_curve_g1(P):
            raise ValueError("G1 point is not on curve")
        if not is_on_curve_g2(Q):
            raise ValueError("G2 point is not on curve")
        if is_inf(P) or is_inf(Q):
            continue
        acc = acc * pairing(Q, P, final_exponentiate=False)
    return final_exponentiate(acc) == FQ12.one()


__all__ = [
    "pair",
    "check_pairing_product",
    "is_inf",
    "is_on_curve_g1",
    "is_on_curve_g2",
    "normalize_g1",
    "normalize_g2",
    "g1_generator",
    "g2_generator",
    "curve_order",
    "field_modulus",
    "BACKEND_NAME",
]
