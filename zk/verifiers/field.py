# Copyright
# SPDX-License-Identifier: Apache-2.0
"""
BN254 scalar field (Fr): minimal, pure-Python helpers.

Everything the pool hashes or feeds to a verifier as a public input is an
element of Fr, carried on the wire as 32 big-endian bytes. This module owns
that conversion:

- `R`: the scalar-field modulus (the BN254 group order).
- `fr_from_bytes(b)`: strict parse; values >= R are rejected.
- `fr_reduce(b)`: lenient parse; the value is reduced mod R.
- `fr_to_bytes(x)`: canonical 32-byte big-endian encoding.
- `fr_inv(x)`: inversion via Fermat's little theorem.

Not constant-time; verification and testing only.
"""

from __future__ import annotations

from typing import Union

from . import ZKError

# BN254 / alt_bn128 scalar field order r.
R: int = 21888242871839275222246405745257275088548364400416034343698204186575808495617
FR_BYTE_LEN = 32

BytesLike = Union[bytes, bytearray, memoryview]


def fr_from_bytes(b: BytesLike) -> int:
    """Parse exactly 32 big-endian bytes as a canonical field element."""
    raw = bytes(b)
    if len(raw) != FR_BYTE_LEN:
        raise ZKError(f"field element must be {FR_BYTE_LEN} bytes, got {len(raw)}")
    x = int.from_bytes(raw, "big")
    if x >= R:
        raise ZKError("field element is not canonical (>= r)")
    return x


def fr_reduce(b: BytesLike) -> int:
    """Interpret big-endian bytes as an integer reduced mod r."""
    return int.from_bytes(bytes(b), "big") % R


def fr_to_bytes(x: int) -> bytes:
    return (int(x) % R).to_bytes(FR_BYTE_LEN, "big")


def is_canonical(b: BytesLike) -> bool:
    raw = bytes(b)
    return len(raw) == FR_BYTE_LEN and int.from_bytes(raw, "big") < R


def fr_inv(x: int) -> int:
    x %= R
    if x == 0:
        raise ZKError("inverse of zero")
    return pow(x, R - 2, R)


__all__ = [
    "R",
    "FR_BYTE_LEN",
    "fr_from_bytes",
    "fr_reduce",
    "fr_to_bytes",
    "is_canonical",
    "fr_inv",
]
