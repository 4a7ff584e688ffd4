"""
shieldpool.hashing.poseidon
===========================

Poseidon hash over the BN254 scalar field, compatible with circomlib's
`Poseidon(nInputs)` template.

Layout (circom convention)
--------------------------
- width `t = nInputs + 1`, state `[0, in_1, ..., in_n]`
- `R_F = 8` full rounds split 4/4 around `R_P` partial rounds
- S-box `x^5`; MDS mix `state'[i] = sum_j M[i][j] * state[j]`
- a single permutation; the output is `state[0]`

Parameters
----------
Round constants and the MDS matrix are *generated*, not shipped: we run the
Grain LFSR parameter procedure from the Poseidon reference implementation
(field=GF(p), sbox=x^alpha, n=254 bits). The same procedure produced the
constants circomlib ships, so the resulting hash matches circuits compiled
against circomlib.

Other parameter sets can still be registered by hand or loaded from JSON:

{
  "t": 3, "R_F": 8, "R_P": 57, "alpha": 5,
  "mds": [[...t ints...], ...],
  "rc":  [[...t ints...], ... R_F+R_P rows ...]
}

Public API
----------
- PoseidonParams(t, R_F, R_P, alpha, mds, rc)
- grain_params(t) -> PoseidonParams          # circom-compatible generation
- register_params(name, params) / get_params(name="bn254_t3")
- load_params_json(path, name=None)
- poseidon_permute(state, params)
- poseidon_hash(inputs, *, params_name="bn254_t3") -> int
- PoseidonCompression                          # HashCompression backend
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Iterator, List, Optional, Sequence, Union

from shieldpool.field import R, Fr

log = logging.getLogger(__name__)

_MOD = R

# Partial round counts used by circomlib, indexed by width t (2..17).
CIRCOM_PARTIAL_ROUNDS: Dict[int, int] = {
    2: 56, 3: 57, 4: 56, 5: 60, 6: 60, 7: 63, 8: 64, 9: 63,
    10: 60, 11: 66, 12: 60, 13: 65, 14: 70, 15: 60, 16: 64, 17: 68,
}
CIRCOM_FULL_ROUNDS = 8
FIELD_BITS = 254


# ---------------------------
# Field arithmetic (mod Fr)
# ---------------------------


def _fadd(a: int, b: int) -> int:
    return (a + b) % _MOD


def _fmul(a: int, b: int) -> int:
    return (a * b) % _MOD


def _fpow_alpha(x: int, alpha: int) -> int:
    if alpha == 5:
        x2 = _fmul(x, x)
        x4 = _fmul(x2, x2)
        return _fmul(x, x4)
    return pow(x, alpha, _MOD)


# ---------------------------
# Parameters & registry
# ---------------------------


@dataclass(frozen=True)
class PoseidonParams:
    t: int  # state width
    R_F: int  # number of full rounds
    R_P: int  # number of partial rounds
    alpha: int  # S-box exponent
    mds: List[List[int]]  # t x t
    rc: List[List[int]]  # (R_F + R_P) x t

    def validate(self) -> None:
        if self.t < 2:
            raise ValueError("t must be >= 2")
        if self.R_F % 2 != 0:
            raise ValueError("R_F must be even (split half-before/after partial rounds)")
        if self.alpha < 3 or self.alpha % 2 == 0:
            raise ValueError("alpha must be an odd integer >= 3")
        if len(self.mds) != self.t or any(len(row) != self.t for row in self.mds):
            raise ValueError("mds must be t x t")
        expected_rounds = self.R_F + self.R_P
        if len(self.rc) != expected_rounds or any(len(row) != self.t for row in self.rc):
            raise ValueError(f"rc must be (R_F+R_P) x t = {expected_rounds} x {self.t}")


_PARAMS_REGISTRY: Dict[str, PoseidonParams] = {}


def register_params(name: str, params: PoseidonParams) -> None:
    """Register a Poseidon parameter set under `name` (overwrites)."""
    if not name or not isinstance(name, str):
        raise ValueError("name must be a non-empty string")
    params.validate()
    _PARAMS_REGISTRY[name] = params


def get_params(name: str = "bn254_t3") -> PoseidonParams:
    """
    Look up a registered parameter set.

    Names of the form `bn254_t<k>` that were never registered are generated
    on first use with `grain_params(k)`.
    """
    params = _PARAMS_REGISTRY.get(name)
    if params is not None:
        return params
    if name.startswith("bn254_t") and name[len("bn254_t"):].isdigit():
        params = grain_params(int(name[len("bn254_t"):]))
        _PARAMS_REGISTRY[name] = params
        return params
    raise KeyError(
        f"Poseidon params '{name}' are not registered. "
        "Load them with load_params_json(...) or register_params(...)."
    )


def _to_int(x: Union[int, str]) -> int:
    if isinstance(x, int):
        return x % _MOD
    s = str(x).strip().lower()
    if s.startswith("0x"):
        return int(s, 16) % _MOD
    return int(s) % _MOD


def load_params_json(path: str, name: Optional[str] = None) -> PoseidonParams:
    """
    Load a Poseidon params JSON file and register it.

    If `name` is None, the file stem is used.
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    params = PoseidonParams(
        t=int(raw["t"]),
        R_F=int(raw["R_F"]),
        R_P=int(raw["R_P"]),
        alpha=int(raw.get("alpha", 5)),
        mds=[[_to_int(v) for v in row] for row in raw["mds"]],
        rc=[[_to_int(v) for v in row] for row in raw["rc"]],
    )
    register_params(name or os.path.splitext(os.path.basename(path))[0], params)
    return params


# ---------------------------
# Grain LFSR parameter generation
# ---------------------------


def _bit_list(value: int, width: int) -> List[int]:
    return [int(c) for c in bin(value)[2:].zfill(width)]


def _grain_stream(t: int, R_F: int, R_P: int, *, n: int = FIELD_BITS) -> Iterator[int]:
    """
    Self-shrinking Grain LFSR keyed by the instance description.

    Seed layout (80 bits): field(2)=1 | sbox(4)=0 | n(12) | t(12) | R_F(10) | R_P(10) | 1*30.
    """
    buf = (
        _bit_list(1, 2)
        + _bit_list(0, 4)
        + _bit_list(n, 12)
        + _bit_list(t, 12)
        + _bit_list(R_F, 10)
        + _bit_list(R_P, 10)
        + [1] * 30
    )
    head = 0

    def step() -> int:
        nonlocal head
        bit = (
            buf[(head + 62) % 80]
            ^ buf[(head + 51) % 80]
            ^ buf[(head + 38) % 80]
            ^ buf[(head + 23) % 80]
            ^ buf[(head + 13) % 80]
            ^ buf[head]
        )
        buf[head] = bit
        head = (head + 1) % 80
        return bit

    for _ in range(160):
        step()

    while True:
        bit = step()
        while bit == 0:
            step()
            bit = step()
        yield step()


def _take_bits(stream: Iterator[int], n: int) -> int:
    acc = 0
    for _ in range(n):
        acc = (acc << 1) | next(stream)
    return acc


@lru_cache(maxsize=None)
def grain_params(t: int, alpha: int = 5) -> PoseidonParams:
    """
    Generate the circom-compatible parameter set for width `t`.

    Round constants use rejection sampling below the modulus; the MDS matrix
    is the Cauchy matrix `1 / (x_i + y_j)` over the next 2t sampled elements.
    """
    if t not in CIRCOM_PARTIAL_ROUNDS:
        raise ValueError(f"no circom round schedule for t={t}")
    R_F = CIRCOM_FULL_ROUNDS
    R_P = CIRCOM_PARTIAL_ROUNDS[t]
    stream = _grain_stream(t, R_F, R_P)

    flat: List[int] = []
    for _ in range((R_F + R_P) * t):
        v = _take_bits(stream, FIELD_BITS)
        while v >= _MOD:
            v = _take_bits(stream, FIELD_BITS)
        flat.append(v)
    rc = [flat[r * t:(r + 1) * t] for r in range(R_F + R_P)]

    while True:
        sample = [_take_bits(stream, FIELD_BITS) % _MOD for _ in range(2 * t)]
        while len(set(sample)) != len(sample):
            sample = [_take_bits(stream, FIELD_BITS) % _MOD for _ in range(2 * t)]
        xs, ys = sample[:t], sample[t:]
        if any((x + y) % _MOD == 0 for x in xs for y in ys):
            continue
        mds = [[pow((x + y) % _MOD, -1, _MOD) for y in ys] for x in xs]
        break

    params = PoseidonParams(t=t, R_F=R_F, R_P=R_P, alpha=alpha, mds=mds, rc=rc)
    params.validate()
    log.debug("generated poseidon params t=%d R_F=%d R_P=%d", t, R_F, R_P)
    return params


# ---------------------------
# Permutation
# ---------------------------


def _apply_mds(state: List[int], mds: List[List[int]]) -> List[int]:
    t = len(state)
    out = [0] * t
    for i in range(t):
        acc = 0
        row = mds[i]
        for j in range(t):
            acc += row[j] * state[j]
        out[i] = acc % _MOD
    return out


def poseidon_permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    """
    Poseidon permutation.

    Round schedule:
      - first R_F/2 full rounds (S-box on all t elements)
      - R_P partial rounds (S-box on the first element only)
      - last R_F/2 full rounds
    """
    t = params.t
    if len(state) != t:
        raise ValueError(f"state length {len(state)} != t={t}")

    x = [int(v) % _MOD for v in state]
    half = params.R_F // 2
    for r, constants in enumerate(params.rc):
        for i in range(t):
            x[i] = _fadd(x[i], constants[i])
        if r < half or r >= half + params.R_P:
            for i in range(t):
                x[i] = _fpow_alpha(x[i], params.alpha)
        else:
            x[0] = _fpow_alpha(x[0], params.alpha)
        x = _apply_mds(x, params.mds)
    return x


# ---------------------------
# Hash interface
# ---------------------------


def poseidon_hash(inputs: Sequence[int], *, params_name: Optional[str] = None) -> int:
    """
    circomlib `Poseidon(len(inputs))`: permute `[0, *inputs]`, return state[0].

    The parameter set defaults to `bn254_t<len(inputs)+1>`.
    """
    if not inputs:
        raise ValueError("poseidon_hash needs at least one input")
    params = get_params(params_name or f"bn254_t{len(inputs) + 1}")
    if params.t != len(inputs) + 1:
        raise ValueError(f"params have t={params.t}, expected t={len(inputs) + 1}")
    state = [0] + [int(v) % _MOD for v in inputs]
    return int(poseidon_permute(state, params)[0])


def poseidon_hash_bytes_le(inputs: Sequence[bytes], *, params_name: Optional[str] = None) -> int:
    """Hash 32-byte little-endian encoded field elements."""
    return poseidon_hash(
        [int(Fr.from_bytes_le(bytes(b))) for b in inputs], params_name=params_name
    )


class PoseidonCompression:
    """
    Two-to-one Poseidon compression for Merkle nodes.

    Each operand goes through its canonical little-endian byte encoding,
    matching the byte-oriented hasher interface the tree was specified with.
    """

    __slots__ = ("params_name",)

    def __init__(self, params_name: str = "bn254_t3") -> None:
        self.params_name = params_name
        if get_params(params_name).t != 3:
            raise ValueError("PoseidonCompression requires a t=3 parameter set")

    def compress(self, left: Fr, right: Fr) -> Fr:
        return Fr(
            poseidon_hash_bytes_le(
                [left.to_bytes_le(), right.to_bytes_le()], params_name=self.params_name
            )
        )

    def __repr__(self) -> str:
        return f"PoseidonCompression({self.params_name!r})"


__all__ = [
    "PoseidonParams",
    "grain_params",
    "register_params",
    "get_params",
    "load_params_json",
    "poseidon_permute",
    "poseidon_hash",
    "poseidon_hash_bytes_le",
    "PoseidonCompression",
    "CIRCOM_PARTIAL_ROUNDS",
]
