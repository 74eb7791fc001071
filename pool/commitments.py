"""
Client-side note helpers.

A depositor picks a random ``secret`` and ``nullifier_seed`` and shields

    commitment     = hash2(secret, nullifier_seed)

Spending later reveals only

    nullifier_hash = hash1(nullifier_seed)

plus a proof that some leaf of the tree opens to a commitment built from the
same seed. The pool itself never sees the pre-images.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from zk.verifiers.merkle import HashOracle

# 31 random bytes left-padded to 32 stay below every supported field modulus.
_RANDOM_BYTES = 31


def derive_commitment(secret: bytes, nullifier_seed: bytes, hasher: HashOracle) -> bytes:
    return hasher.hash2(secret, nullifier_seed)


def derive_nullifier_hash(nullifier_seed: bytes, hasher: HashOracle) -> bytes:
    return hasher.hash1(nullifier_seed)


def _random_element() -> bytes:
    return b"\x00" + secrets.token_bytes(_RANDOM_BYTES)


@dataclass(frozen=True)
class Note:
    secret: bytes
    nullifier_seed: bytes
    commitment: bytes
    nullifier_hash: bytes

    @classmethod
    def from_secrets(cls, secret: bytes, nullifier_seed: bytes, hasher: HashOracle) -> "Note":
        return cls(
            secret=bytes(secret),
            nullifier_seed=bytes(nullifier_seed),
            commitment=derive_commitment(secret, nullifier_seed, hasher),
            nullifier_hash=derive_nullifier_hash(nullifier_seed, hasher),
        )

    @classmethod
    def random(cls, hasher: HashOracle) -> "Note":
        return cls.from_secrets(_random_element(), _random_element(), hasher)

    def __repr__(self) -> str:
        # pre-images stay out of logs and tracebacks
        return f"Note(commitment={self.commitment.hex()}, nullifier_hash={self.nullifier_hash.hex()})"


__all__ = ["derive_commitment", "derive_nullifier_hash", "Note"]
