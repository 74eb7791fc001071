from __future__ import annotations

import struct

import pytest

from pool.errors import InvalidInstruction
from pool.instruction import Initialize, Shield, Withdraw, decode_instruction

ROOT = b"\x01" * 32
NULL = b"\x02" * 32
RCPT = b"\x03" * 32


def test_initialize_layout():
    assert Initialize(20).encode() == b"\x00\x14"
    assert decode_instruction(b"\x00\x14") == Initialize(20)


def test_shield_layout_is_little_endian():
    data = Shield(1_000_000, b"\xaa" * 32).encode()
    assert data[0] == 1
    assert data[1:9] == (1_000_000).to_bytes(8, "little")
    assert data[9:] == b"\xaa" * 32
    assert decode_instruction(data) == Shield(1_000_000, b"\xaa" * 32)


def test_withdraw_layout():
    proof = b"\x99" * 5
    data = Withdraw(7, ROOT, NULL, RCPT, proof).encode()
    assert len(data) == 1 + 8 + 32 * 3 + 4 + 5
    assert data[105:109] == struct.pack("<I", 5)
    assert decode_instruction(data) == Withdraw(7, ROOT, NULL, RCPT, proof)


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"\x03",
        b"\x00",
        b"\x00\x14\x00",
        b"\x01" + b"\x00" * 8 + b"\xaa" * 31,
        Shield(1, b"\xaa" * 32).encode() + b"\x00",
        Withdraw(1, ROOT, NULL, RCPT, b"abc").encode()[:-1],
    ],
)
def test_malformed_data(data):
    with pytest.raises(InvalidInstruction):
        decode_instruction(data)


def test_oversized_proof():
    data = Withdraw(1, ROOT, NULL, RCPT, b"\x00" * 65).encode()
    assert decode_instruction(data, max_proof_bytes=65).proof == b"\x00" * 65
    with pytest.raises(InvalidInstruction):
        decode_instruction(data, max_proof_bytes=64)


def test_declared_length_larger_than_buffer():
    head = Withdraw(1, ROOT, NULL, RCPT, b"").encode()[:-4]
    with pytest.raises(InvalidInstruction):
        decode_instruction(head + struct.pack("<I", 10) + b"\x00" * 3)


def test_encode_validates_fields():
    with pytest.raises(InvalidInstruction):
        Initialize(256).encode()
    with pytest.raises(InvalidInstruction):
        Shield(-1, b"\x00" * 32).encode()
    with pytest.raises(InvalidInstruction):
        Withdraw(1, ROOT[:31], NULL, RCPT, b"").encode()
