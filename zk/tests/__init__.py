"""
zk.tests helpers

Shared builders for verifier tests.

Exports:
- sample_inputs(**overrides) -> PublicInputs
- make_groth16_instance(inputs, *, a=..., b=...) -> (vk_json, proof_bytes)

`make_groth16_instance` builds a verifying key from a known trapdoor and
derives the matching C point directly, so tests exercise the real pairing
check without a circuit or trusted-setup files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from zk.verifiers import PublicInputs

TEST_ROOT: Path = Path(__file__).resolve().parent

# trapdoor scalars for the synthetic key
_ALPHA, _BETA, _GAMMA, _DELTA = 3, 5, 7, 11
_IC = (13, 17, 19, 23, 29)


def sample_inputs(**overrides) -> PublicInputs:
    fields = dict(
        root=b"\x01" * 32,
        nullifier_hash=b"\x02" * 32,
        recipient=b"\x03" * 32,
        amount=1_000_000,
    )
    fields.update(overrides)
    return PublicInputs(**fields)


def make_groth16_instance(
    inputs: PublicInputs, *, a: int = 101, b: int = 211
) -> Tuple[dict, bytes]:
    from py_ecc.optimized_bn128 import G1, G2, multiply

    from zk.verifiers.field import R, fr_inv
    from zk.verifiers.groth16_bn254 import Proof, VerifyingKey, encode_proof, vk_to_json

    vk = VerifyingKey(
        alpha1=multiply(G1, _ALPHA),
        beta2=multiply(G2, _BETA),
        gamma2=multiply(G2, _GAMMA),
        delta2=multiply(G2, _DELTA),
        IC=[multiply(G1, s) for s in _IC],
    )
    xs = inputs.to_field_elements()
    k = (_IC[0] + sum(x * ic for x, ic in zip(xs, _IC[1:]))) % R
    c = ((a * b - _ALPHA * _BETA - k * _GAMMA) * fr_inv(_DELTA)) % R
    proof = Proof(A=multiply(G1, a), B=multiply(G2, b), C=multiply(G1, c))
    return vk_to_json(vk), encode_proof(proof)


__all__ = ["TEST_ROOT", "sample_inputs", "make_groth16_instance"]
