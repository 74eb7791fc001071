"""
pool.errors
-----------

Error kinds of the shielded pool program.

Every failure of Initialize / Shield / Withdraw is terminal for the
transaction and surfaces as a `PoolError` whose ``kind`` names what went
wrong. The processor raises before committing anything, so catching one of
these never leaves partially applied state behind.

    try:
        processor.withdraw(...)
    except NullifierAlreadyUsed:
        ...
    except PoolError as e:
        log.warning("rejected: %s", e.kind.name)
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from core.errors import AnimicaError, Severity, _jsonmap


class PoolErrorKind(str, Enum):
    INVALID_POOL = "POOL/INVALID_POOL"
    INVALID_ROOT = "POOL/INVALID_ROOT"
    INVALID_PROOF = "POOL/INVALID_PROOF"
    NULLIFIER_ALREADY_USED = "POOL/NULLIFIER_ALREADY_USED"
    INVALID_RECIPIENT = "POOL/INVALID_RECIPIENT"
    INSUFFICIENT_FUNDS = "POOL/INSUFFICIENT_FUNDS"
    CAPACITY_EXCEEDED = "POOL/CAPACITY_EXCEEDED"
    OVERFLOW = "POOL/OVERFLOW"
    INVALID_INSTRUCTION = "POOL/INVALID_INSTRUCTION"
    INVALID_COMMITMENT = "POOL/INVALID_COMMITMENT"


class PoolError(AnimicaError):
    """Base class; subclasses pin ``kind`` and a default message."""

    kind: PoolErrorKind = PoolErrorKind.INVALID_POOL
    default_message = "pool error"

    def __init__(self, message: str | None = None, **data: Any) -> None:
        super().__init__(
            code=self.kind,
            message=message or self.default_message,
            data=_jsonmap(data),
            severity=Severity.WARNING,
        )


class InvalidPool(PoolError):
    kind = PoolErrorKind.INVALID_POOL
    default_message = "pool is not initialized or its accounts are invalid"


class InvalidRoot(PoolError):
    kind = PoolErrorKind.INVALID_ROOT
    default_message = "root does not match the current merkle root"


class InvalidProof(PoolError):
    kind = PoolErrorKind.INVALID_PROOF
    default_message = "proof rejected by verifier"


class NullifierAlreadyUsed(PoolError):
    kind = PoolErrorKind.NULLIFIER_ALREADY_USED
    default_message = "nullifier already spent"


class InvalidRecipient(PoolError):
    kind = PoolErrorKind.INVALID_RECIPIENT
    default_message = "recipient account does not match instruction"


class InsufficientFunds(PoolError):
    kind = PoolErrorKind.INSUFFICIENT_FUNDS
    default_message = "insufficient funds"


class CapacityExceeded(PoolError):
    kind = PoolErrorKind.CAPACITY_EXCEEDED
    default_message = "merkle tree is full"


class Overflow(PoolError):
    kind = PoolErrorKind.OVERFLOW
    default_message = "pool total would exceed u64"


class InvalidInstruction(PoolError):
    kind = PoolErrorKind.INVALID_INSTRUCTION
    default_message = "malformed instruction data"


class InvalidCommitment(PoolError):
    kind = PoolErrorKind.INVALID_COMMITMENT
    default_message = "commitment is not a valid field element"


_BY_KIND = {
    cls.kind: cls
    for cls in (
        InvalidPool,
        InvalidRoot,
        InvalidProof,
        NullifierAlreadyUsed,
        InvalidRecipient,
        InsufficientFunds,
        CapacityExceeded,
        Overflow,
        InvalidInstruction,
        InvalidCommitment,
    )
}


def error_for(kind: PoolErrorKind, message: str | None = None, **data: Any) -> PoolError:
    """Instantiate the subclass registered for ``kind``."""
    return _BY_KIND[PoolErrorKind(kind)](message, **data)


__all__ = [
    "PoolErrorKind",
    "PoolError",
    "InvalidPool",
    "InvalidRoot",
    "InvalidProof",
    "NullifierAlreadyUsed",
    "InvalidRecipient",
    "InsufficientFunds",
    "CapacityExceeded",
    "Overflow",
    "InvalidInstruction",
    "InvalidCommitment",
    "error_for",
]
