"""
Animica zk.verifiers.poseidon
============================

Poseidon hash over the BN254 scalar field (Fr), used as the pool's hash
oracle for commitments, nullifier hashes and Merkle nodes.

Parameters are explicit values handed to a `PoseidonHasher` instance; there
is no process-wide registry. Load the exact parameter set your circuits use
with `load_params_json(...)`, or use `placeholder_params(t)` for development.

Public API
----------
- PoseidonParams(t, R_F, R_P, alpha, mds, rc)
- load_params_json(path) -> PoseidonParams
- placeholder_params(t) -> PoseidonParams
- poseidon_permute(state, params)
- PoseidonHasher(params_by_width)
    .hash(*elements) -> int        (circom convention)
    .hash1(x32) / .hash2(a32, b32) -> 32 bytes

JSON schema (example)
---------------------
{
  "field": "bn254:fr",
  "alpha": 5,
  "t": 3,
  "R_F": 8,
  "R_P": 57,
  "mds": [[...t ints...], [...], [...]],
  "rc":  [[...t ints...], ... R_F+R_P rows ...]
}

All integers are decimal strings, 0x-hex strings or JSON numbers mod Fr.

Hash convention
---------------
Matches circomlib's ``Poseidon(n)``: width ``t = n + 1``, initial state
``[0, in_1, ..., in_n]``, a single permutation, output ``state[0]``.

License: MIT
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Union

from . import ZKError
from .field import R as _MOD
from .field import fr_from_bytes, fr_to_bytes

# ---------------------------
# Field arithmetic (mod Fr)
# ---------------------------


def _fadd(a: int, b: int) -> int:
    return (a + b) % _MOD


def _fmul(a: int, b: int) -> int:
    return (a * b) % _MOD


def _fpow_alpha(x: int, alpha: int) -> int:
    # x^5 = x * (x^2)^2
    if alpha == 5:
        x2 = _fmul(x, x)
        x4 = _fmul(x2, x2)
        return _fmul(x, x4)
    return pow(x, alpha, _MOD)


# ---------------------------
# Parameters
# ---------------------------


@dataclass(frozen=True)
class PoseidonParams:
    t: int  # state width
    R_F: int  # number of full rounds
    R_P: int  # number of partial rounds
    alpha: int  # S-box exponent (odd >= 3, commonly 5)
    mds: List[List[int]]  # MDS matrix, shape t x t
    rc: List[List[int]]  # round constants, shape (R_F + R_P) x t

    def validate(self) -> None:
        if self.t < 2:
            raise ValueError("t must be >= 2")
        if self.R_F % 2 != 0:
            raise ValueError(
                "R_F must be even (split half-before/after partial rounds)"
            )
        if self.alpha < 3 or self.alpha % 2 == 0:
            raise ValueError("alpha must be an odd integer >= 3")
        if len(self.mds) != self.t or any(len(row) != self.t for row in self.mds):
            raise ValueError("mds must be t x t")
        expected_rounds = self.R_F + self.R_P
        if len(self.rc) != expected_rounds or any(
            len(row) != self.t for row in self.rc
        ):
            raise ValueError(f"rc must be (R_F+R_P) x t = {expected_rounds} x {self.t}")


def _to_int(x: Union[int, str]) -> int:
    if isinstance(x, int):
        return x % _MOD
    s = str(x).strip().lower()
    if s.startswith("0x"):
        return int(s, 16) % _MOD
    return int(s) % _MOD


def params_from_dict(raw: Mapping[str, object]) -> PoseidonParams:
    params = PoseidonParams(
        t=int(raw["t"]),  # type: ignore[arg-type]
        R_F=int(raw["R_F"]),  # type: ignore[arg-type]
        R_P=int(raw["R_P"]),  # type: ignore[arg-type]
        alpha=int(raw.get("alpha", 5)),  # type: ignore[arg-type]
        mds=[[_to_int(v) for v in row] for row in raw["mds"]],  # type: ignore[union-attr]
        rc=[[_to_int(v) for v in row] for row in raw["rc"]],  # type: ignore[union-attr]
    )
    params.validate()
    return params


def load_params_json(path: str) -> PoseidonParams:
    """Load and validate a Poseidon params JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if isinstance(raw, list):
        raise ValueError("expected a single parameter object")
    return params_from_dict(raw)


def load_params_set(path: str) -> Dict[int, PoseidonParams]:
    """Load one params object or a list of them, keyed by width."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    items = raw if isinstance(raw, list) else [raw]
    out: Dict[int, PoseidonParams] = {}
    for item in items:
        p = params_from_dict(item)
        out[p.t] = p
    return out


# Partial-round counts for the standard 128-bit BN254 instances, keyed by t.
_PARTIAL_ROUNDS = {2: 56, 3: 57, 4: 56, 5: 60}


def placeholder_params(t: int = 3) -> PoseidonParams:
    """
    Deterministic development parameters for width ``t``.

    Round counts follow the standard BN254 instances, but the MDS matrix is a
    small Vandermonde matrix and the round constants are SHA3-derived, so
    digests will NOT match circuits built with circomlib constants.
    """
    if t not in _PARTIAL_ROUNDS:
        raise ValueError(f"no placeholder round count for t={t}")
    R_F = 8
    R_P = _PARTIAL_ROUNDS[t]

    bases = [2, 3, 5, 7, 11][:t]
    mds = [[pow(bases[j], i + 1, _MOD) for j in range(t)] for i in range(t)]

    rc: List[List[int]] = []
    for r in range(R_F + R_P):
        row = []
        for i in range(t):
            h = hashlib.sha3_256(
                f"poseidon/placeholder/bn254/t={t}/r={r}/i={i}".encode()
            ).digest()
            row.append(int.from_bytes(h, "big") % _MOD)
        rc.append(row)

    params = PoseidonParams(t=t, R_F=R_F, R_P=R_P, alpha=5, mds=mds, rc=rc)
    params.validate()
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
            acc = _fadd(acc, _fmul(row[j], state[j]))
        out[i] = acc
    return out


def poseidon_permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    """
    Poseidon permutation.

    Round schedule:
      - First R_F/2 full rounds (S-box on all t elements)
      - R_P partial rounds (S-box on the *first* element only)
      - Last  R_F/2 full rounds

    Returns a new list with the permuted state.
    """
    t, alpha, mds, rc = params.t, params.alpha, params.mds, params.rc
    if len(state) != t:
        raise ValueError(f"state length {len(state)} != t={t}")

    x = [int(v) % _MOD for v in state]
    half = params.R_F // 2
    schedule = [True] * half + [False] * params.R_P + [True] * half

    for r, full in enumerate(schedule):
        for i in range(t):
            x[i] = _fadd(x[i], rc[r][i])
        if full:
            for i in range(t):
                x[i] = _fpow_alpha(x[i], alpha)
        else:
            x[0] = _fpow_alpha(x[0], alpha)
        x = _apply_mds(x, mds)

    return x


# ---------------------------
# Hasher
# ---------------------------


class PoseidonHasher:
    """
    Poseidon hash oracle over 32-byte Fr elements.

    Holds one parameter set per state width; ``hash(a)`` uses t=2 and
    ``hash(a, b)`` uses t=3. Instances are immutable and cheap to share.
    """

    name = "poseidon"

    def __init__(self, params_by_width: Optional[Mapping[int, PoseidonParams]] = None) -> None:
        if params_by_width is None:
            params_by_width = {2: placeholder_params(2), 3: placeholder_params(3)}
        for t, p in params_by_width.items():
            if p.t != t:
                raise ValueError(f"params registered for t={t} have t={p.t}")
            p.validate()
        self._params: Dict[int, PoseidonParams] = dict(params_by_width)

    @classmethod
    def from_json_files(cls, paths: Sequence[str]) -> "PoseidonHasher":
        loaded = [load_params_json(p) for p in paths]
        return cls({p.t: p for p in loaded})

    def params(self, t: int) -> PoseidonParams:
        try:
            return self._params[t]
        except KeyError:
            raise ZKError(f"no Poseidon parameters loaded for t={t}") from None

    def hash(self, *elements: int) -> int:
        params = self.params(len(elements) + 1)
        state = [0] + [int(e) % _MOD for e in elements]
        return poseidon_permute(state, params)[0]

    def hash1(self, x: bytes) -> bytes:
        return fr_to_bytes(self.hash(fr_from_bytes(x)))

    def hash2(self, a: bytes, b: bytes) -> bytes:
        return fr_to_bytes(self.hash(fr_from_bytes(a), fr_from_bytes(b)))

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return f"PoseidonHasher(widths={sorted(self._params)})"


__all__ = [
    "PoseidonParams",
    "params_from_dict",
    "load_params_json",
    "load_params_set",
    "placeholder_params",
    "poseidon_permute",
    "PoseidonHasher",
]
