# zk/verifiers/__init__.py
"""
Animica ZK Verifiers: high-level facade

This package exposes a small, stable interface for the pool's cryptographic
collaborators:

- the **proof verifier** for the withdraw statement, and
- the **hash oracle** used for commitments and Merkle nodes (see
  `zk.verifiers.poseidon` and `zk.verifiers.merkle`).

Proof verifiers
---------------
Every verifier implements the `ProofVerifier` protocol:

    def verify(self, proof: bytes, public_inputs: PublicInputs) -> bool: ...

`verify` is total: malformed proof bytes yield False, never an exception.

Concrete backends live in sibling modules and are loaded lazily by name:

- `zk.verifiers.groth16_bn254` → Groth16 over BN254 (py_ecc pairings)
- `zk.verifiers.canary`        → deterministic stub, accepts one fixed byte string

Usage
-----
>>> from zk.verifiers import build_verifier, PublicInputs
>>> v = build_verifier("canary", canary_hex="c0ffee")
>>> v.verify(bytes.fromhex("c0ffee"), PublicInputs(b"\\0" * 32, b"\\0" * 32, b"\\0" * 32, 1))
True
"""

from __future__ import annotations

from dataclasses import dataclass
from importlib import import_module
from typing import Any, Dict, Final, List, Literal, Mapping, Protocol, Tuple, runtime_checkable

# ---- Public types ---------------------------------------------------------------------------

VerifierName = Literal["groth16", "canary"]


class ZKError(RuntimeError):
    """Raised for malformed inputs or missing verifier backends."""


@dataclass(frozen=True)
class PublicInputs:
    """
    Public statement of a withdrawal.

    The three 32-byte values are read big-endian and reduced mod r when fed
    to a circuit; `amount` is a u64.
    """

    root: bytes
    nullifier_hash: bytes
    recipient: bytes
    amount: int

    COUNT = 4

    def __post_init__(self) -> None:
        for name in ("root", "nullifier_hash", "recipient"):
            v = getattr(self, name)
            if not isinstance(v, (bytes, bytearray)) or len(v) != 32:
                raise ZKError(f"{name} must be 32 bytes")
        if not (0 <= int(self.amount) < 1 << 64):
            raise ZKError("amount must be a u64")

    def to_field_elements(self) -> List[int]:
        from .field import fr_reduce

        return [
            fr_reduce(self.root),
            fr_reduce(self.nullifier_hash),
            fr_reduce(self.recipient),
            int(self.amount),
        ]


@runtime_checkable
class ProofVerifier(Protocol):
    name: str

    def verify(self, proof: bytes, public_inputs: PublicInputs) -> bool: ...


# ---- Constants & adapter registry ------------------------------------------------------------

SUPPORTED_VERIFIERS: Final[Tuple[VerifierName, ...]] = ("groth16", "canary")

_ADAPTER_MODULE: Final[Mapping[VerifierName, str]] = {
    "groth16": "groth16_bn254",
    "canary": "canary",
}


def _normalize_name(p: str) -> VerifierName:
    if not isinstance(p, str):
        raise ZKError("Verifier name must be a string.")
    key = p.strip().lower().replace("-", "_")
    if key in ("groth16", "g16", "groth16_bn254"):
        return "groth16"
    if key in ("canary", "stub"):
        return "canary"
    raise ZKError(f"Unsupported verifier '{p}'. Supported: {', '.join(SUPPORTED_VERIFIERS)}")


def _import_adapter(name: VerifierName):
    modname = _ADAPTER_MODULE[name]
    try:
        return import_module(f".{modname}", __name__)
    except ModuleNotFoundError as e:
        raise ZKError(
            f"Verifier backend for '{name}' is not available "
            f"(missing module '{e.name}')."
        ) from e


# ---- Public API -----------------------------------------------------------------------------

def build_verifier(name: str, **options: Any) -> ProofVerifier:
    """
    Construct a verifier backend by name.

    Options are backend-specific: ``vk_path`` / ``vk`` for groth16,
    ``canary_hex`` / ``canary`` for the stub.
    """
    adapter = _import_adapter(_normalize_name(name))
    return adapter.build(**options)


def has_adapter(name: str) -> bool:
    try:
        _import_adapter(_normalize_name(name))
        return True
    except ZKError:
        return False


def list_adapters() -> Dict[VerifierName, bool]:
    return {p: has_adapter(p) for p in SUPPORTED_VERIFIERS}


__all__ = [
    "VerifierName",
    "ZKError",
    "PublicInputs",
    "ProofVerifier",
    "SUPPORTED_VERIFIERS",
    "build_verifier",
    "has_adapter",
    "list_adapters",
]
