"""
Instruction wire format (Borsh-compatible, little-endian).

    tag u8 | fields...

    0  Initialize  height u8
    1  Shield      amount u64 | commitment [32]
    2  Withdraw    amount u64 | root [32] | nullifier_hash [32] |
                   recipient [32] | proof (u32 len | bytes)

Decoding rejects unknown tags, short buffers, trailing bytes and proofs
longer than ``max_proof_bytes`` with `InvalidInstruction`.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Union

from core.utils.bytes import U64_MAX

from .errors import InvalidInstruction

TAG_INITIALIZE = 0
TAG_SHIELD = 1
TAG_WITHDRAW = 2

DEFAULT_MAX_PROOF_BYTES = 4096


@dataclass(frozen=True)
class Initialize:
    height: int

    def encode(self) -> bytes:
        if not (0 <= self.height <= 0xFF):
            raise InvalidInstruction("height must fit in u8", height=self.height)
        return struct.pack("<BB", TAG_INITIALIZE, self.height)


@dataclass(frozen=True)
class Shield:
    amount: int
    commitment: bytes

    def encode(self) -> bytes:
        _check_u64(self.amount)
        _check_b32("commitment", self.commitment)
        return struct.pack("<BQ", TAG_SHIELD, self.amount) + bytes(self.commitment)


@dataclass(frozen=True)
class Withdraw:
    amount: int
    root: bytes
    nullifier_hash: bytes
    recipient: bytes
    proof: bytes

    def encode(self) -> bytes:
        _check_u64(self.amount)
        for name in ("root", "nullifier_hash", "recipient"):
            _check_b32(name, getattr(self, name))
        if len(self.proof) > 0xFFFFFFFF:
            raise InvalidInstruction("proof too long for u32 length prefix")
        return b"".join(
            (
                struct.pack("<BQ", TAG_WITHDRAW, self.amount),
                bytes(self.root),
                bytes(self.nullifier_hash),
                bytes(self.recipient),
                struct.pack("<I", len(self.proof)),
                bytes(self.proof),
            )
        )


Instruction = Union[Initialize, Shield, Withdraw]


def _check_u64(v: int) -> None:
    if isinstance(v, bool) or not isinstance(v, int) or not (0 <= v <= U64_MAX):
        raise InvalidInstruction("amount must be a u64", amount=str(v))


def _check_b32(name: str, v: bytes) -> None:
    if not isinstance(v, (bytes, bytearray)) or len(v) != 32:
        raise InvalidInstruction(f"{name} must be 32 bytes", field=name)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise InvalidInstruction(
                "instruction data too short", need=end, have=len(self.data)
            )
        out = self.data[self.pos : end]
        self.pos = end
        return out

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def finish(self) -> None:
        if self.pos != len(self.data):
            raise InvalidInstruction(
                "trailing bytes after instruction", extra=len(self.data) - self.pos
            )


def decode_instruction(data: bytes, *, max_proof_bytes: int = DEFAULT_MAX_PROOF_BYTES) -> Instruction:
    r = _Reader(bytes(data))
    tag = r.u8()
    ix: Instruction
    if tag == TAG_INITIALIZE:
        ix = Initialize(height=r.u8())
    elif tag == TAG_SHIELD:
        ix = Shield(amount=r.u64(), commitment=r.take(32))
    elif tag == TAG_WITHDRAW:
        amount = r.u64()
        root = r.take(32)
        nullifier_hash = r.take(32)
        recipient = r.take(32)
        n = r.u32()
        if n > max_proof_bytes:
            raise InvalidInstruction(
                "proof exceeds maximum size", length=n, max_proof_bytes=max_proof_bytes
            )
        ix = Withdraw(amount, root, nullifier_hash, recipient, r.take(n))
    else:
        raise InvalidInstruction("unknown instruction tag", tag=tag)
    r.finish()
    return ix


__all__ = [
    "TAG_INITIALIZE",
    "TAG_SHIELD",
    "TAG_WITHDRAW",
    "Initialize",
    "Shield",
    "Withdraw",
    "Instruction",
    "decode_instruction",
]
