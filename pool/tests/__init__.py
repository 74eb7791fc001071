"""Shared constants for pool tests."""

from pool.config import DEFAULT_PROGRAM_ID
from zk.verifiers.canary import DEFAULT_CANARY

PROGRAM_ID = DEFAULT_PROGRAM_ID
PAYER = bytes.fromhex("aa" * 32)
RECIPIENT = bytes.fromhex("bb" * 32)
VALID_PROOF = DEFAULT_CANARY
PAYER_FUNDS = 10**15


def c32(n: int) -> bytes:
    """Small canonical 32-byte field element."""
    return n.to_bytes(32, "big")
