"""
execution.errors: runtime exceptions for the in-process account bank.

The bank reports failures via *typed exceptions*; the pool processor maps the
ones it expects (e.g. an underfunded payer) onto pool error kinds and lets the
rest propagate.

Hierarchy
---------
ExecError (base)
 ├─ InvalidAccess   : unauthorized signer, owner mismatch or data larger than space
 ├─ StateConflict   : account already allocated at the address
 └─ AccountNotFound : read of an address that holds no allocated account

These classes avoid importing other packages so they can be used from the
lowest layers (accounts, journal) without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ExecError(Exception):
    """
    Base execution error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'INVALID_ACCESS').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "execution error"
    code: str = "EXEC_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class InvalidAccess(ExecError):
    """
    Illegal access under the bank's ownership rules.

    Examples:
      - Outbound transfer not signed by the account (or its owning program)
      - Data write by a program that does not own the account
      - Data write larger than the allocated space
    """
    def __init__(
        self,
        message: str = "invalid access",
        *,
        op: Optional[str] = None,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if op is not None:
            d.setdefault("op", op)
        if address is not None:
            d.setdefault("address", address)
        super().__init__(message=message, code="INVALID_ACCESS", data=d or None)


class StateConflict(ExecError):
    """Allocation of an address that already holds an allocated account."""
    def __init__(
        self,
        message: str = "state conflict",
        *,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if address is not None:
            d.setdefault("address", address)
        super().__init__(message=message, code="STATE_CONFLICT", data=d or None)


class AccountNotFound(ExecError):
    def __init__(self, address: str):
        super().__init__(
            message="account not found",
            code="ACCOUNT_NOT_FOUND",
            data={"address": address},
        )


__all__ = [
    "ExecError",
    "InvalidAccess",
    "StateConflict",
    "AccountNotFound",
]
