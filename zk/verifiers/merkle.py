"""
Animica zk.verifiers.merkle
==========================

Fixed-height binary Merkle helpers shared by the pool's on-chain
accumulator and off-chain provers.

Conventions
-----------
- Nodes combine as ``hash2(left, right)`` through a `HashOracle`.
- An empty subtree is the all-zero 32-byte value at *every* level, so a
  node whose right subtree is empty is ``hash2(left, ZERO32)``.
- Path directions are one bit per level, leaf to root: 0 means the running
  node is the left child, 1 means it is the right child. For a leaf at
  position ``index`` the bits are simply the bits of ``index``, LSB first.
- Packed direction bits: bit ``i`` lives in byte ``i // 8`` at mask
  ``1 << (i % 8)``.

API
---
Hash oracles (32-byte in, 32-byte out):
    - HashOracle protocol: hash1(x), hash2(a, b)
    - Sha3Hasher: domain-separated SHA3-256

Core:
    - compute_root_from_path(leaf, path, directions, hasher) -> bytes
    - merkle_verify(root, leaf, path, directions, hasher) -> bool
    - directions_for_index(index, height) -> list[int]
    - pack_directions(bits) / unpack_directions(packed, height)

Utilities (off-chain / tests):
    - build_levels(leaves, height, hasher) -> list[list[bytes]]
    - merkle_path(levels, index) -> (siblings, directions)

License: MIT
"""

from __future__ import annotations

from typing import List, Protocol, Sequence, Tuple, runtime_checkable

from core.utils.hash import sha3_256

ZERO32 = b"\x00" * 32


# -----------------------------------------------------------------------------
# Hash oracles
# -----------------------------------------------------------------------------


@runtime_checkable
class HashOracle(Protocol):
    name: str

    def hash1(self, x: bytes) -> bytes: ...

    def hash2(self, a: bytes, b: bytes) -> bytes: ...


class Sha3Hasher:
    """SHA3-256 with one-byte arity tags; accepts any 32-byte inputs."""

    name = "sha3"

    @staticmethod
    def _check(x: bytes) -> bytes:
        if not isinstance(x, (bytes, bytearray)) or len(x) != 32:
            raise ValueError("hash input must be 32 bytes")
        return bytes(x)

    def hash1(self, x: bytes) -> bytes:
        return sha3_256(b"\x00" + self._check(x))

    def hash2(self, a: bytes, b: bytes) -> bytes:
        return sha3_256(b"\x01" + self._check(a) + self._check(b))


# -----------------------------------------------------------------------------
# Direction bits
# -----------------------------------------------------------------------------


def directions_for_index(index: int, height: int) -> List[int]:
    if not (0 <= index < (1 << height)):
        raise ValueError(f"index {index} out of range for height {height}")
    return [(index >> level) & 1 for level in range(height)]


def pack_directions(bits: Sequence[int]) -> bytes:
    out = bytearray((len(bits) + 7) // 8)
    for i, bit in enumerate(bits):
        if bit not in (0, 1):
            raise ValueError("direction bits must be 0 or 1")
        if bit:
            out[i // 8] |= 1 << (i % 8)
    return bytes(out)


def unpack_directions(packed: bytes, height: int) -> List[int]:
    if len(packed) * 8 < height:
        raise ValueError(f"packed directions too short for height {height}")
    return [(packed[i // 8] >> (i % 8)) & 1 for i in range(height)]


# -----------------------------------------------------------------------------
# Core Merkle utilities
# -----------------------------------------------------------------------------


def compute_root_from_path(
    leaf: bytes,
    path: Sequence[bytes],
    directions: Sequence[int],
    hasher: HashOracle,
) -> bytes:
    """
    Walk ``path`` from the leaf upward and return the implied root.

    Raises ValueError on an empty path, a path/direction length mismatch,
    a non-binary direction or a sibling that is not 32 bytes.
    """
    if not path:
        raise ValueError("empty merkle path")
    if len(path) != len(directions):
        raise ValueError(
            f"path length {len(path)} != directions length {len(directions)}"
        )
    node = bytes(leaf)
    for sib, bit in zip(path, directions):
        if len(sib) != 32:
            raise ValueError("merkle sibling must be 32 bytes")
        if bit == 0:
            node = hasher.hash2(node, bytes(sib))
        elif bit == 1:
            node = hasher.hash2(bytes(sib), node)
        else:
            raise ValueError("direction bits must be 0 or 1")
    return node


def merkle_verify(
    root: bytes,
    leaf: bytes,
    path: Sequence[bytes],
    directions: Sequence[int],
    hasher: HashOracle,
) -> bool:
    """Return True iff the path reproduces ``root``; never raises on bad shape."""
    try:
        return compute_root_from_path(leaf, path, directions, hasher) == bytes(root)
    except (ValueError, TypeError):
        return False


def build_levels(
    leaves: Sequence[bytes], height: int, hasher: HashOracle
) -> List[List[bytes]]:
    """
    Build all ``height + 1`` levels of a sparse fixed-height tree
    (for provers and tests): ``levels[0]`` are the leaves, ``levels[height]``
    holds the root (or is empty for an empty tree).
    """
    if len(leaves) > (1 << height):
        raise ValueError(f"{len(leaves)} leaves exceed capacity of height {height}")
    levels: List[List[bytes]] = [[bytes(x) for x in leaves]]
    for _ in range(height):
        cur = levels[-1]
        nxt = [
            hasher.hash2(cur[i], cur[i + 1] if i + 1 < len(cur) else ZERO32)
            for i in range(0, len(cur), 2)
        ]
        levels.append(nxt)
    return levels


def root_of(levels: List[List[bytes]]) -> bytes:
    return levels[-1][0] if levels[-1] else ZERO32


def merkle_path(levels: List[List[bytes]], index: int) -> Tuple[List[bytes], List[int]]:
    """Sibling path and direction bits for the leaf at ``index``."""
    height = len(levels) - 1
    if not (0 <= index < len(levels[0])):
        raise IndexError(f"index {index} out of range for {len(levels[0])} leaves")
    siblings: List[bytes] = []
    idx = index
    for level in range(height):
        cur = levels[level]
        sib = idx ^ 1
        siblings.append(cur[sib] if sib < len(cur) else ZERO32)
        idx >>= 1
    return siblings, directions_for_index(index, height)


__all__ = [
    "ZERO32",
    "HashOracle",
    "Sha3Hasher",
    "directions_for_index",
    "pack_directions",
    "unpack_directions",
    "compute_root_from_path",
    "merkle_verify",
    "build_levels",
    "root_of",
    "merkle_path",
]
