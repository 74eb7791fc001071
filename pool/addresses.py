"""
Deterministic account addresses for the pool program.

Each pool structure lives at an address derived from the program id and a
list of seeds, so any client can locate the pool, its tree and any
nullifier record without a registry lookup.
"""

from __future__ import annotations

from core.utils.bytes import BytesLike, expect_len
from core.utils.hash import tagged_sha3_256

PDA_TAG = b"animica/pda/v1"

POOL_SEED = b"privacy_pool"
MERKLE_TREE_SEED = b"merkle_tree"
NULLIFIER_SEED = b"nullifier"


def derive_address(program_id: BytesLike, *seeds: BytesLike) -> bytes:
    pid = expect_len(program_id, 32, name="program_id")
    return tagged_sha3_256(PDA_TAG, *seeds, pid)


def pool_address(program_id: BytesLike) -> bytes:
    return derive_address(program_id, POOL_SEED)


def merkle_tree_address(program_id: BytesLike) -> bytes:
    return derive_address(program_id, MERKLE_TREE_SEED)


def nullifier_address(program_id: BytesLike, nullifier_hash: BytesLike) -> bytes:
    return derive_address(
        program_id, NULLIFIER_SEED, expect_len(nullifier_hash, 32, name="nullifier_hash")
    )


__all__ = [
    "PDA_TAG",
    "POOL_SEED",
    "MERKLE_TREE_SEED",
    "NULLIFIER_SEED",
    "derive_address",
    "pool_address",
    "merkle_tree_address",
    "nullifier_address",
]
