"""
shieldpool.verifier.groth16
===========================

Groth16 verifier for BN254 (alt_bn128), compatible with the `snarkjs` JSON
layout.

Verification equation
---------------------
    e(A, B) == e(alpha1, beta2) * e(VK_x, gamma2) * e(C, delta2)

checked as a product in GT:

    e(A, B) * e(-alpha1, beta2) * e(-VK_x, gamma2) * e(-C, delta2) == 1

with VK_x = IC[0] + sum_i input_i * IC[i+1].

JSON (snarkjs)
--------------
Verifying key:
  {
    "vk_alpha_1": [ax, ay, "1"],
    "vk_beta_2":  [[bx0, bx1], [by0, by1], ["1", "0"]],
    "vk_gamma_2": [...], "vk_delta_2": [...],
    "IC": [[ic0x, ic0y, "1"], ...]          # length = 1 + #public inputs
  }
Proof:
  {"pi_a": [ax, ay, "1"], "pi_b": [[..], [..], ["1", "0"]], "pi_c": [cx, cy, "1"]}

Coordinates are decimal strings (or ints). The third projective coordinate is
optional and must be 1 (or 0 for the point at infinity). Fq2 elements are
encoded `[c0, c1]` meaning `c0 + c1 * i`.

A malformed verifying key raises ValueError when the verifier is built; a
malformed proof or public-input vector simply fails verification.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Union

from py_ecc.optimized_bn128 import FQ, FQ2, add, multiply, neg

from .pairing import (
    check_pairing_product,
    curve_order,
    is_on_curve_g1,
    is_on_curve_g2,
    normalize_g1,
    normalize_g2,
)

log = logging.getLogger(__name__)

G1Point = Any
G2Point = Any

_FR = curve_order()

Coord = Union[int, str]


# ---------------------------
# Utilities
# ---------------------------


def _to_int(z: Coord) -> int:
    if isinstance(z, bool):
        raise ValueError("booleans are not coordinates")
    if isinstance(z, int):
        return z
    s = str(z).strip().lower()
    if s.startswith("0x"):
        return int(s, 16)
    return int(s)


def _g1(coords: Sequence[Coord]) -> G1Point:
    if len(coords) not in (2, 3):
        raise ValueError("G1 point needs 2 or 3 coordinates")
    x, y = _to_int(coords[0]), _to_int(coords[1])
    z = _to_int(coords[2]) if len(coords) == 3 else 1
    if z == 0 or (x == 0 and y == 0):
        return (FQ(1), FQ(1), FQ(0))
    if z != 1:
        raise ValueError("G1 point must be affine (z == 1)")
    P = (FQ(x), FQ(y), FQ(1))
    if not is_on_curve_g1(P):
        raise ValueError("G1 point is not on curve")
    return P


def _g2(coords: Sequence[Sequence[Coord]]) -> G2Point:
    if len(coords) not in (2, 3):
        raise ValueError("G2 point needs 2 or 3 coordinates")
    x0, x1 = (_to_int(v) for v in coords[0])
    y0, y1 = (_to_int(v) for v in coords[1])
    z0, z1 = (_to_int(v) for v in coords[2]) if len(coords) == 3 else (1, 0)
    if (z0, z1) == (0, 0) or (x0, x1, y0, y1) == (0, 0, 0, 0):
        return (FQ2([1, 0]), FQ2([1, 0]), FQ2([0, 0]))
    if (z0, z1) != (1, 0):
        raise ValueError("G2 point must be affine (z == 1)")
    Q = (FQ2([x0, x1]), FQ2([y0, y1]), FQ2([1, 0]))
    if not is_on_curve_g2(Q):
        raise ValueError("G2 point is not on curve")
    return Q


def g1_to_json(P: G1Point) -> List[str]:
    aff = normalize_g1(P)
    if aff is None:
        return ["0", "1", "0"]
    return [str(aff[0]), str(aff[1]), "1"]


def g2_to_json(Q: G2Point) -> List[List[str]]:
    aff = normalize_g2(Q)
    if aff is None:
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    (x0, x1), (y0, y1) = aff
    return [[str(x0), str(x1)], [str(y0), str(y1)], ["1", "0"]]


# ---------------------------
# Data classes
# ---------------------------


@dataclass(frozen=True)
class VerifyingKey:
    alpha1: G1Point
    beta2: G2Point
    gamma2: G2Point
    delta2: G2Point
    IC: List[G1Point]  # [IC0, IC1, ..., ICn]

    @property
    def n_public(self) -> int:
        return len(self.IC) - 1


@dataclass(frozen=True)
class Proof:
    A: G1Point
    B: G2Point
    C: G1Point


# ---------------------------
# Loaders (snarkjs JSON)
# ---------------------------


def load_vk(vk_json: Union[Mapping[str, Any], str, bytes]) -> VerifyingKey:
    """Parse a snarkjs verifying key (dict or JSON text). Raises ValueError."""
    if isinstance(vk_json, (str, bytes)):
        vk_json = json.loads(vk_json)
    if not isinstance(vk_json, Mapping):
        raise ValueError("verifying key must be a JSON object")
    try:
        alpha1 = _g1(vk_json["vk_alpha_1"])
        beta2 = _g2(vk_json["vk_beta_2"])
        gamma2 = _g2(vk_json["vk_gamma_2"])
        delta2 = _g2(vk_json["vk_delta_2"])
        ic_pts = [_g1(p) for p in vk_json["IC"]]
    except (KeyError, TypeError, IndexError) as e:
        raise ValueError(f"malformed verifying key: {e!r}") from e
    if not ic_pts:
        raise ValueError("verifying key has an empty IC vector")
    return VerifyingKey(alpha1=alpha1, beta2=beta2, gamma2=gamma2, delta2=delta2, IC=ic_pts)


def load_proof(proof_json: Mapping[str, Any]) -> Proof:
    """Parse a snarkjs proof object. Raises ValueError."""
    try:
        return Proof(
            A=_g1(proof_json["pi_a"]),
            B=_g2(proof_json["pi_b"]),
            C=_g1(proof_json["pi_c"]),
        )
    except (KeyError, TypeError, IndexError) as e:
        raise ValueError(f"malformed proof: {e!r}") from e


# ---------------------------
# Core verification
# ---------------------------


def _vk_x(IC: Sequence[G1Point], inputs: Sequence[int]) -> G1Point:
    """VK_x = IC[0] + sum_i inputs[i] * IC[i+1] in G1."""
    if len(IC) != len(inputs) + 1:
        raise ValueError(f"IC length {len(IC)} != 1 + len(inputs) {len(inputs)}")
    acc = IC[0]
    for i, s in enumerate(inputs):
        if not 0 <= s < _FR:
            raise ValueError("public input is not a canonical field element")
        if s != 0:
            acc = add(acc, multiply(IC[i + 1], s))
    return acc


class Groth16Verifier:
    """
    `ProofVerifier` backed by a fixed Groth16 verifying key.

    >>> v = Groth16Verifier(vk_json)
    >>> v.verify(proof_json, [root, nullifier_hash, recipient, relayer, fee])
    """

    __slots__ = ("vk",)

    def __init__(self, vk: Union[VerifyingKey, Mapping[str, Any], str, bytes]) -> None:
        self.vk = vk if isinstance(vk, VerifyingKey) else load_vk(vk)

    def verify(self, proof: Mapping[str, Any], public_inputs: Sequence[int]) -> bool:
        try:
            pf = load_proof(proof)
            vkx = _vk_x(self.vk.IC, [int(v) for v in public_inputs])
            return check_pairing_product(
                [
                    (pf.A, pf.B),
                    (neg(self.vk.alpha1), self.vk.beta2),
                    (neg(vkx), self.vk.gamma2),
                    (neg(pf.C), self.vk.delta2),
                ]
            )
        except (ValueError, TypeError) as e:
            log.info("groth16 proof rejected: %s", e)
            return False

    def __repr__(self) -> str:
        return f"Groth16Verifier(n_public={self.vk.n_public})"


def verify_groth16(
    vk_json: Mapping[str, Any],
    proof_json: Mapping[str, Any],
    public_inputs: Sequence[int],
) -> bool:
    """One-shot helper. Returns False for any malformed input."""
    try:
        verifier = Groth16Verifier(vk_json)
    except ValueError as e:
        log.info("groth16 verifying key rejected: %s", e)
        return False
    return verifier.verify(proof_json, public_inputs)


__all__ = [
    "VerifyingKey",
    "Proof",
    "load_vk",
    "load_proof",
    "Groth16Verifier",
    "verify_groth16",
    "g1_to_json",
    "g2_to_json",
]
