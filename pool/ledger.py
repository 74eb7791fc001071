"""
Pool balance ledger.

``total_value`` tracks the value the pool custodies on behalf of all
depositors: every Shield credits it, every completed Withdraw debits it.
"""

from __future__ import annotations

from core.utils.bytes import U64_MAX

from .codec import PoolRecord
from .errors import InsufficientFunds, InvalidPool, Overflow


class PoolLedger:
    def __init__(self, record: PoolRecord) -> None:
        self._rec = record

    @classmethod
    def create(cls, tree_height: int) -> "PoolLedger":
        return cls(PoolRecord(initialized=True, tree_height=tree_height, total_value=0))

    @property
    def record(self) -> PoolRecord:
        return self._rec

    @property
    def total_value(self) -> int:
        return self._rec.total_value

    @property
    def tree_height(self) -> int:
        return self._rec.tree_height

    def is_initialized(self) -> bool:
        return self._rec.initialized

    def require_initialized(self) -> None:
        if not self._rec.initialized:
            raise InvalidPool("pool is not initialized")

    def credit(self, amount: int) -> int:
        self.require_initialized()
        if amount < 0:
            raise ValueError("amount must be non-negative")
        new = self._rec.total_value + amount
        if new > U64_MAX:
            raise Overflow(total_value=self._rec.total_value, amount=amount)
        self._rec.total_value = new
        return new

    def debit(self, amount: int) -> int:
        self.require_initialized()
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if amount > self._rec.total_value:
            raise InsufficientFunds(total_value=self._rec.total_value, amount=amount)
        self._rec.total_value -= amount
        return self._rec.total_value


__all__ = ["PoolLedger"]
