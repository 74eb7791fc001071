"""
Incremental fixed-height Merkle accumulator.

Only the right frontier is stored: ``filled[level]`` is the most recent left
node seen at that level. An append walks the levels once, so it costs
``height`` hash calls regardless of how many leaves the tree holds. Empty
subtrees are the zero value at every level, matching
`zk.verifiers.merkle.build_levels`, which lets provers rebuild any path from
the list of leaves.

Withdrawals are checked against `current_root` only; there is no history of
older roots.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from zk.verifiers import ZKError
from zk.verifiers.merkle import ZERO32, HashOracle
from zk.verifiers.merkle import compute_root_from_path as _compute_root
from zk.verifiers.merkle import merkle_verify

from .codec import MerkleRecord
from .errors import CapacityExceeded, InvalidCommitment, InvalidPool

log = logging.getLogger(__name__)

DEFAULT_MAX_HEIGHT = 32


class MerkleAccumulator:
    def __init__(
        self,
        height: int,
        hasher: HashOracle,
        *,
        current_index: int = 0,
        root: bytes = ZERO32,
        filled: Optional[Sequence[bytes]] = None,
        max_height: int = DEFAULT_MAX_HEIGHT,
    ) -> None:
        if not (1 <= height <= max_height):
            raise InvalidPool(f"tree height must be within 1..{max_height}", height=height)
        if not (0 <= current_index <= 1 << height):
            raise InvalidPool("current_index out of range", current_index=current_index)
        nodes = list(filled) if filled is not None else [ZERO32] * height
        if len(nodes) != height or any(len(n) != 32 for n in nodes):
            raise InvalidPool("filled subtrees must hold one 32-byte node per level")
        if len(root) != 32:
            raise InvalidPool("root must be 32 bytes")
        self.height = height
        self.hasher = hasher
        self.current_index = current_index
        self.root = bytes(root)
        self.filled = [bytes(n) for n in nodes]

    @classmethod
    def initialize(
        cls, height: int, hasher: HashOracle, *, max_height: int = DEFAULT_MAX_HEIGHT
    ) -> "MerkleAccumulator":
        return cls(height, hasher, max_height=max_height)

    @property
    def capacity(self) -> int:
        return 1 << self.height

    def current_root(self) -> bytes:
        return self.root

    def append(self, leaf: bytes) -> int:
        """
        Insert ``leaf`` at the next free position and return that position.

        State is untouched when this raises: the new frontier and root are
        computed on copies and swapped in at the end.
        """
        if self.current_index >= self.capacity:
            raise CapacityExceeded(capacity=self.capacity)
        if len(leaf) != 32:
            raise InvalidCommitment("commitment must be 32 bytes", length=len(leaf))

        position = self.current_index
        filled = list(self.filled)
        idx = position
        node = bytes(leaf)
        try:
            for level in range(self.height):
                if idx & 1 == 0:
                    filled[level] = node
                    node = self.hasher.hash2(node, ZERO32)
                else:
                    node = self.hasher.hash2(filled[level], node)
                idx >>= 1
        except (ZKError, ValueError) as e:
            raise InvalidCommitment(str(e), commitment=bytes(leaf)) from e

        self.filled = filled
        self.root = node
        self.current_index = position + 1
        log.debug("appended leaf %d root=%s", position, node.hex())
        return position

    # -- persistence ------------------------------------------------------

    def to_record(self) -> MerkleRecord:
        return MerkleRecord(
            height=self.height,
            current_index=self.current_index,
            root=self.root,
            filled=list(self.filled),
        )

    @classmethod
    def from_record(
        cls, rec: MerkleRecord, hasher: HashOracle, *, max_height: int = DEFAULT_MAX_HEIGHT
    ) -> "MerkleAccumulator":
        return cls(
            rec.height,
            hasher,
            current_index=rec.current_index,
            root=rec.root,
            filled=rec.filled,
            max_height=max_height,
        )

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return (
            f"MerkleAccumulator(height={self.height}, index={self.current_index}, "
            f"root={self.root.hex()})"
        )


def compute_root_from_path(
    leaf: bytes, sibling_path: Sequence[bytes], direction_bits: Sequence[int], hasher: HashOracle
) -> bytes:
    """Root implied by a leaf and its path; bit 0 means the running node is on the left."""
    return _compute_root(leaf, sibling_path, direction_bits, hasher)


def verify_merkle_proof(
    leaf: bytes,
    sibling_path: Sequence[bytes],
    direction_bits: Sequence[int],
    root: bytes,
    hasher: HashOracle,
) -> bool:
    return merkle_verify(root, leaf, sibling_path, direction_bits, hasher)


__all__ = [
    "DEFAULT_MAX_HEIGHT",
    "MerkleAccumulator",
    "compute_root_from_path",
    "verify_merkle_proof",
]
