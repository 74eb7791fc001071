from __future__ import annotations

import pytest

from pool.errors import CapacityExceeded, InvalidPool
from pool.merkle_tree import MerkleAccumulator, compute_root_from_path, verify_merkle_proof
from pool.tests import c32
from zk.verifiers.merkle import (
    ZERO32,
    build_levels,
    directions_for_index,
    merkle_path,
    pack_directions,
    root_of,
    unpack_directions,
)


def test_fresh_accumulator(sha3):
    acc = MerkleAccumulator.initialize(20, sha3)
    assert acc.current_index == 0
    assert acc.current_root() == ZERO32
    assert acc.filled == [ZERO32] * 20


@pytest.mark.parametrize("height", [0, 33])
def test_height_bounds(sha3, height):
    with pytest.raises(InvalidPool):
        MerkleAccumulator.initialize(height, sha3)


def test_custom_max_height(sha3):
    with pytest.raises(InvalidPool):
        MerkleAccumulator.initialize(9, sha3, max_height=8)


def test_first_leaf_root(sha3):
    acc = MerkleAccumulator.initialize(3, sha3)
    leaf = b"\x07" * 32
    acc.append(leaf)
    expected = sha3.hash2(sha3.hash2(sha3.hash2(leaf, ZERO32), ZERO32), ZERO32)
    assert acc.current_root() == expected


def test_capacity(sha3):
    acc = MerkleAccumulator.initialize(2, sha3)
    for i in range(4):
        assert acc.append(c32(i)) == i
    root, filled = acc.current_root(), list(acc.filled)
    with pytest.raises(CapacityExceeded):
        acc.append(c32(9))
    assert acc.current_index == 4
    assert acc.current_root() == root
    assert acc.filled == filled


@pytest.mark.parametrize("count", [1, 2, 3, 5, 8, 13])
def test_incremental_root_matches_full_rebuild(sha3, count):
    height = 4
    acc = MerkleAccumulator.initialize(height, sha3)
    leaves = [bytes([i + 1]) * 32 for i in range(count)]
    for leaf in leaves:
        acc.append(leaf)
    levels = build_levels(leaves, height, sha3)
    assert acc.current_root() == root_of(levels)

    for i, leaf in enumerate(leaves):
        path, dirs = merkle_path(levels, i)
        assert dirs == directions_for_index(i, height)
        assert compute_root_from_path(leaf, path, dirs, sha3) == acc.current_root()
        assert verify_merkle_proof(leaf, path, dirs, acc.current_root(), sha3)


def test_poseidon_paths(poseidon):
    acc = MerkleAccumulator.initialize(3, poseidon)
    leaves = [c32(11), c32(22), c32(33)]
    for leaf in leaves:
        acc.append(leaf)
    levels = build_levels(leaves, 3, poseidon)
    path, dirs = merkle_path(levels, 2)
    assert verify_merkle_proof(leaves[2], path, dirs, acc.current_root(), poseidon)


def test_bad_paths(sha3):
    leaf = b"\x01" * 32
    levels = build_levels([leaf, b"\x02" * 32], 2, sha3)
    path, dirs = merkle_path(levels, 0)
    root = root_of(levels)
    assert not verify_merkle_proof(leaf, path, [1, 0], root, sha3)
    assert not verify_merkle_proof(leaf, path[:1], dirs, root, sha3)
    assert not verify_merkle_proof(leaf, [], [], root, sha3)
    with pytest.raises(ValueError):
        compute_root_from_path(leaf, [], [], sha3)


def test_packed_directions():
    bits = directions_for_index(0b1011_0110_1, 9)
    packed = pack_directions(bits)
    assert len(packed) == 2
    assert packed[0] & 1 == 1
    assert unpack_directions(packed, 9) == bits
    with pytest.raises(ValueError):
        unpack_directions(b"\x00", 9)


def test_record_roundtrip(sha3):
    acc = MerkleAccumulator.initialize(5, sha3)
    for i in range(3):
        acc.append(c32(i + 1))
    again = MerkleAccumulator.from_record(acc.to_record(), sha3)
    again.append(c32(4))
    acc.append(c32(4))
    assert again.current_root() == acc.current_root()
