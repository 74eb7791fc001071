"""
execution.state.accounts: Account records for the in-process bank.

An Account holds four fields:

- lamports:  u64 custodied value
- owner:     32-byte id of the program allowed to write data and sign outbound
             transfers (the all-zero SYSTEM_PROGRAM_ID for plain wallets)
- space:     allocated data capacity in bytes (0 for unallocated wallets)
- data:      current record bytes, ``len(data) <= space``

This module avoids any persistence concerns; the Journal layers copies of
these records and the Bank applies them.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.utils.bytes import U64_MAX

from execution.errors import InvalidAccess

SYSTEM_PROGRAM_ID: bytes = b"\x00" * 32


def _ensure_u64(name: str, value: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"{name} must be int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    if value > U64_MAX:
        raise OverflowError(f"{name} exceeds u64")
    return value


@dataclass(slots=True)
class Account:
    """
    Invariants:
    - lamports is u64
    - owner is exactly 32 bytes
    - len(data) <= space
    """
    lamports: int = 0
    owner: bytes = SYSTEM_PROGRAM_ID
    space: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        self.lamports = _ensure_u64("lamports", int(self.lamports))
        if not isinstance(self.owner, (bytes, bytearray, memoryview)):
            raise TypeError("owner must be bytes-like")
        owner = bytes(self.owner)
        if len(owner) != 32:
            raise ValueError("owner must be 32 bytes")
        self.owner = owner
        if self.space < 0:
            raise ValueError("space must be non-negative")
        self.data = bytes(self.data)
        if len(self.data) > self.space:
            raise ValueError("data exceeds allocated space")

    @property
    def allocated(self) -> bool:
        return self.space > 0 or self.owner != SYSTEM_PROGRAM_ID

    def copy(self) -> "Account":
        return Account(
            lamports=self.lamports, owner=self.owner, space=self.space, data=self.data
        )

    def set_data(self, data: bytes) -> None:
        blob = bytes(data)
        if len(blob) > self.space:
            raise InvalidAccess(
                "data exceeds allocated space",
                op="write",
                data={"len": len(blob), "space": self.space},
            )
        self.data = blob

    def to_dict(self) -> dict:
        return {
            "lamports": self.lamports,
            "owner": self.owner.hex(),
            "space": self.space,
            "data": self.data.hex(),
        }


__all__ = ["Account", "SYSTEM_PROGRAM_ID"]
