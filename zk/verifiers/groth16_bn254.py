"""
Animica zk.verifiers.groth16_bn254
==================================

Groth16 verifier for BN254 (altbn128) over the pool's withdraw statement.

Verification equation (standard form)
-------------------------------------
    e(A, B) == e(alpha1, beta2) * e(VK_x, gamma2) * e(C, delta2)

implemented as a product check in GT:
    e(A, B) * e(-alpha1, beta2) * e(-VK_x, gamma2) * e(-C, delta2) == 1

with VK_x = IC[0] + Σ input_i * IC[i+1] over the four public inputs
(root, nullifier_hash, recipient, amount).

Proof wire format (256 bytes, EIP-197 ordering)
-----------------------------------------------
    A  = x || y                          (G1, 2 × 32 bytes BE)
    B  = x.c1 || x.c0 || y.c1 || y.c0    (G2, 4 × 32 bytes BE)
    C  = x || y                          (G1, 2 × 32 bytes BE)

Verifying key (snarkjs JSON)
----------------------------
  {
    "vk_alpha_1": [ax, ay, "1"],
    "vk_beta_2": [[bx0, bx1], [by0, by1], ["1", "0"]],
    "vk_gamma_2": ...,
    "vk_delta_2": ...,
    "IC": [[ic0x, ic0y, "1"], ...]       # length = 1 + #public_inputs
  }

Coordinates are decimal strings, 0x-hex strings or numbers. For G2, c0 + c1*i
is encoded as [c0, c1].

Any malformed proof (wrong length, coordinate >= p, point off-curve or
outside the r-torsion) verifies as False; nothing raises out of `verify`.

License: MIT
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Union

from py_ecc.optimized_bn128 import add as _add
from py_ecc.optimized_bn128 import multiply as _mul
from py_ecc.optimized_bn128 import neg as _neg

from . import PublicInputs, ZKError
from .pairing_bn254 import (
    check_pairing_product,
    curve_order,
    field_modulus,
    g1_from_affine,
    g2_from_affine,
    in_subgroup_g2,
    is_on_curve_g1,
    is_on_curve_g2,
    normalize_g1,
    normalize_g2,
)

log = logging.getLogger(__name__)

G1Point = Any
G2Point = Any

PROOF_LEN = 256
_W = 32

_FR = curve_order()
_FQ = field_modulus()


def _to_int(z: Union[int, str]) -> int:
    if isinstance(z, int):
        return z
    s = str(z).strip().lower()
    if s.startswith("0x"):
        return int(s, 16)
    return int(s)


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
# Loaders
# ---------------------------


def _g1_json(p: Sequence[Union[int, str]]) -> G1Point:
    return g1_from_affine(_to_int(p[0]), _to_int(p[1]))


def _g2_json(p: Sequence[Sequence[Union[int, str]]]) -> G2Point:
    return g2_from_affine(
        (_to_int(p[0][0]), _to_int(p[0][1])), (_to_int(p[1][0]), _to_int(p[1][1]))
    )


def load_vk(vk_json: Mapping[str, Any]) -> VerifyingKey:
    """Parse a snarkjs-style verifying key JSON object."""
    try:
        vk = VerifyingKey(
            alpha1=_g1_json(vk_json["vk_alpha_1"]),
            beta2=_g2_json(vk_json["vk_beta_2"]),
            gamma2=_g2_json(vk_json["vk_gamma_2"]),
            delta2=_g2_json(vk_json["vk_delta_2"]),
            IC=[_g1_json(p) for p in vk_json["IC"]],
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ZKError(f"malformed verifying key: {e}") from e

    if not (
        is_on_curve_g1(vk.alpha1)
        and is_on_curve_g2(vk.beta2)
        and is_on_curve_g2(vk.gamma2)
        and is_on_curve_g2(vk.delta2)
    ):
        raise ZKError("VK points are not on curve")
    if not all(is_on_curve_g1(p) for p in vk.IC):
        raise ZKError("IC point not on G1 curve")
    return vk


def load_vk_file(path: str) -> VerifyingKey:
    with open(path, "r", encoding="utf-8") as f:
        return load_vk(json.load(f))


def vk_to_json(vk: VerifyingKey) -> dict:
    """Inverse of `load_vk` (affine, decimal strings)."""

    def g1(p: G1Point) -> List[str]:
        xy = normalize_g1(p) or (0, 0)
        return [str(xy[0]), str(xy[1]), "1"]

    def g2(q: G2Point) -> List[List[str]]:
        xy = normalize_g2(q) or ((0, 0), (0, 0))
        return [[str(xy[0][0]), str(xy[0][1])], [str(xy[1][0]), str(xy[1][1])], ["1", "0"]]

    return {
        "protocol": "groth16",
        "curve": "bn128",
        "nPublic": vk.n_public,
        "vk_alpha_1": g1(vk.alpha1),
        "vk_beta_2": g2(vk.beta2),
        "vk_gamma_2": g2(vk.gamma2),
        "vk_delta_2": g2(vk.delta2),
        "IC": [g1(p) for p in vk.IC],
    }


# ---------------------------
# Proof codec
# ---------------------------


def _words(data: bytes) -> List[int]:
    return [int.from_bytes(data[i : i + _W], "big") for i in range(0, len(data), _W)]


def decode_proof(data: bytes) -> Proof:
    """Parse the 256-byte proof layout; raises ZKError if malformed."""
    if len(data) != PROOF_LEN:
        raise ZKError(f"proof must be {PROOF_LEN} bytes, got {len(data)}")
    w = _words(bytes(data))
    if any(v >= _FQ for v in w):
        raise ZKError("proof coordinate not in base field")
    A = g1_from_affine(w[0], w[1])
    B = g2_from_affine((w[3], w[2]), (w[5], w[4]))
    C = g1_from_affine(w[6], w[7])
    if not (is_on_curve_g1(A) and is_on_curve_g1(C)):
        raise ZKError("proof G1 point is not on curve")
    if not in_subgroup_g2(B):
        raise ZKError("proof G2 point is not in the r-torsion subgroup")
    return Proof(A=A, B=B, C=C)


def encode_proof(proof: Proof) -> bytes:
    """Serialize a proof into the 256-byte layout (for provers and tests)."""
    ax, ay = normalize_g1(proof.A) or (0, 0)
    (bx0, bx1), (by0, by1) = normalize_g2(proof.B) or ((0, 0), (0, 0))
    cx, cy = normalize_g1(proof.C) or (0, 0)
    return b"".join(
        v.to_bytes(_W, "big") for v in (ax, ay, bx1, bx0, by1, by0, cx, cy)
    )


# ---------------------------
# Core verification
# ---------------------------


def _vk_x(IC: Sequence[G1Point], inputs: Sequence[int]) -> G1Point:
    """VK_x = IC[0] + Σ inputs[i] * IC[i+1] in G1."""
    if len(IC) != len(inputs) + 1:
        raise ZKError(f"IC length {len(IC)} != 1 + len(inputs) {len(inputs)}")
    acc = IC[0]
    for i, v in enumerate(inputs):
        s = int(v) % _FR
        if s != 0:
            acc = _add(acc, _mul(IC[i + 1], s))
    return acc


def verify_groth16(vk: VerifyingKey, proof: Proof, inputs: Sequence[int]) -> bool:
    """Pairing-product check for already-parsed key, proof and inputs."""
    vkx = _vk_x(vk.IC, inputs)
    pairs = [
        (proof.A, proof.B),
        (_neg(vk.alpha1), vk.beta2),
        (_neg(vkx), vk.gamma2),
        (_neg(proof.C), vk.delta2),
    ]
    return check_pairing_product(pairs)


class Groth16Verifier:
    """Proof verifier for the withdraw statement backed by a Groth16 VK."""

    name = "groth16"

    def __init__(self, vk: Union[VerifyingKey, Mapping[str, Any]]) -> None:
        self.vk = vk if isinstance(vk, VerifyingKey) else load_vk(vk)
        if self.vk.n_public != PublicInputs.COUNT:
            raise ZKError(
                f"verifying key expects {self.vk.n_public} public inputs, "
                f"withdraw statement has {PublicInputs.COUNT}"
            )

    def verify(self, proof: bytes, public_inputs: PublicInputs) -> bool:
        try:
            parsed = decode_proof(proof)
            return verify_groth16(self.vk, parsed, public_inputs.to_field_elements())
        except (ZKError, ValueError, TypeError, ArithmeticError) as e:
            log.debug("groth16 proof rejected: %s", e)
            return False


def build(*, vk_path: str | None = None, vk: Any = None, **_: Any) -> Groth16Verifier:
    if vk is None:
        if not vk_path:
            raise ZKError("groth16 verifier requires vk_path or vk")
        vk = load_vk_file(vk_path)
    return Groth16Verifier(vk)


__all__ = [
    "PROOF_LEN",
    "VerifyingKey",
    "Proof",
    "load_vk",
    "load_vk_file",
    "vk_to_json",
    "decode_proof",
    "encode_proof",
    "verify_groth16",
    "Groth16Verifier",
    "build",
]
