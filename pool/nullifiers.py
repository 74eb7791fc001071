"""
Nullifier registry backed by per-nullifier accounts.

A nullifier is spent exactly when an account exists at
``nullifier_address(program_id, hash)``. Recording is check-then-create
inside the caller's bank transaction; a racing second record hits the
existing account and fails, so the first committed withdrawal wins.
"""

from __future__ import annotations

import logging

from core.errors import DeserializationError
from execution.errors import StateConflict
from execution.runtime.bank import Bank

from .addresses import nullifier_address
from .codec import (
    NULLIFIER_RECORD_SIZE,
    NullifierRecord,
    decode_nullifier,
    encode_nullifier,
)
from .errors import InvalidPool, NullifierAlreadyUsed

log = logging.getLogger(__name__)


class NullifierRegistry:
    def __init__(self, bank: Bank, program_id: bytes) -> None:
        self.bank = bank
        self.program_id = bytes(program_id)

    def address(self, nullifier_hash: bytes) -> bytes:
        return nullifier_address(self.program_id, nullifier_hash)

    def is_spent(self, nullifier_hash: bytes) -> bool:
        return self.bank.exists(self.address(nullifier_hash))

    def get(self, nullifier_hash: bytes) -> NullifierRecord | None:
        addr = self.address(nullifier_hash)
        if not self.bank.exists(addr):
            return None
        if self.bank.owner_of(addr) != self.program_id:
            raise InvalidPool("nullifier account not owned by pool program")
        try:
            rec = decode_nullifier(self.bank.read(addr))
        except DeserializationError as e:
            raise InvalidPool(f"corrupt nullifier record: {e.message}") from e
        if rec.hash != bytes(nullifier_hash):
            raise InvalidPool("nullifier record does not match its address")
        return rec

    def record(self, nullifier_hash: bytes) -> NullifierRecord:
        addr = self.address(nullifier_hash)
        rec = NullifierRecord(hash=bytes(nullifier_hash), spent=True)
        with self.bank.transaction():
            if self.bank.exists(addr):
                raise NullifierAlreadyUsed(nullifier_hash=nullifier_hash)
            try:
                self.bank.create(addr, NULLIFIER_RECORD_SIZE, self.program_id)
            except StateConflict as e:
                raise NullifierAlreadyUsed(nullifier_hash=nullifier_hash) from e
            self.bank.write(addr, encode_nullifier(rec), program=self.program_id)
        log.debug("nullifier recorded %s", nullifier_hash.hex())
        return rec


__all__ = ["NullifierRegistry"]
