"""
Animica zk.verifiers.canary
===========================

Deterministic stand-in for a real proof system: a proof is valid iff its
bytes equal a fixed canary. Public inputs are ignored.

Used by test suites and local devnets where generating real Groth16 proofs
is impractical. Never configure it in production: anyone who learns the
canary can withdraw.
"""

from __future__ import annotations

import hmac
from typing import Any, Optional

from . import PublicInputs, ZKError

DEFAULT_CANARY = b"animica/pool/canary-proof/v1"


class CanaryVerifier:
    name = "canary"

    def __init__(self, canary: bytes = DEFAULT_CANARY) -> None:
        if not canary:
            raise ZKError("canary must be non-empty")
        self.canary = bytes(canary)

    def verify(self, proof: bytes, public_inputs: PublicInputs) -> bool:
        if not isinstance(proof, (bytes, bytearray)):
            return False
        return hmac.compare_digest(bytes(proof), self.canary)


def build(*, canary_hex: Optional[str] = None, canary: Optional[bytes] = None, **_: Any) -> CanaryVerifier:
    if canary is None and canary_hex:
        try:
            canary = bytes.fromhex(canary_hex.removeprefix("0x"))
        except ValueError as e:
            raise ZKError(f"invalid canary hex: {e}") from e
    return CanaryVerifier(canary or DEFAULT_CANARY)


__all__ = ["DEFAULT_CANARY", "CanaryVerifier", "build"]
