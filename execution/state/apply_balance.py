"""
execution.state.apply_balance: safe lamport credit/debit/transfer.

It assumes the state exposes a minimal balance API:

    class State(Protocol):
        def get_balance(self, address: bytes) -> int: ...
        def set_balance(self, address: bytes, value: int) -> None: ...

The Bank implements this protocol over its journal. All amounts are integers
in the smallest unit (lamports) and balances are bounded to u64.
"""

from __future__ import annotations

from typing import Dict, Protocol

from core.utils.bytes import U64_MAX

from ..errors import ExecError


class BalanceAccess(Protocol):
    def get_balance(self, address: bytes) -> int: ...
    def set_balance(self, address: bytes, value: int) -> None: ...


class InsufficientBalance(ExecError):
    """Raised when a debit would make an account balance negative."""


class NegativeAmount(ExecError):
    """Raised when a negative amount is passed to a credit/debit/transfer."""


class BalanceOverflow(ExecError):
    """Raised when a credit would push a balance past u64."""


def _ensure_non_negative(amount: int) -> None:
    if amount < 0:
        raise NegativeAmount(f"amount must be >= 0, got {amount}")


def _safe_add(a: int, b: int) -> int:
    res = a + b
    if res > U64_MAX:
        raise BalanceOverflow("balance overflow", data={"balance": a, "amount": b})
    return res


def _safe_sub(a: int, b: int) -> int:
    res = a - b
    if res < 0:
        raise InsufficientBalance(
            "insufficient balance", data={"balance": a, "amount": b}
        )
    return res


def credit(state: BalanceAccess, address: bytes, amount: int) -> int:
    """Increase `address` balance by `amount` and return the new balance."""
    _ensure_non_negative(amount)
    cur = state.get_balance(address)
    if amount == 0:
        return cur
    new = _safe_add(cur, amount)
    state.set_balance(address, new)
    return new


def debit(state: BalanceAccess, address: bytes, amount: int) -> int:
    """
    Decrease `address` balance by `amount` and return the new balance.
    Raises InsufficientBalance if the account cannot cover the debit.
    """
    _ensure_non_negative(amount)
    cur = state.get_balance(address)
    if amount == 0:
        return cur
    new = _safe_sub(cur, amount)
    state.set_balance(address, new)
    return new


def safe_transfer(state: BalanceAccess, sender: bytes, recipient: bytes, amount: int) -> Dict[str, int]:
    """
    Transfer `amount` from `sender` to `recipient` with checks.

    No-op if sender == recipient or amount == 0 (after validation).
    Returns {"debited": amount, "credited": amount}.
    """
    _ensure_non_negative(amount)
    if amount == 0 or sender == recipient:
        return {"debited": 0, "credited": 0}
    debit(state, sender, amount)
    credit(state, recipient, amount)
    return {"debited": amount, "credited": amount}


__all__ = [
    "BalanceAccess",
    "InsufficientBalance",
    "NegativeAmount",
    "BalanceOverflow",
    "credit",
    "debit",
    "safe_transfer",
]
