"""
execution.runtime.bank: in-process account bank with a transaction envelope.

The Bank is the execution environment the pool program runs against. It
provides three services over a journaled account map:

- **storage**:  create(address, size, owner) / read / write / exists
- **custody**:  transfer(src, dst, amount, signer=...), fund, balance
- **atomicity**: ``with bank.transaction(): ...`` commits every write made in
  the block on success and discards all of them if the block raises.

Instructions are serialized by a re-entrant lock held for the duration of the
outermost transaction, so two callers can never interleave writes. Reads take the
same lock: another thread never sees writes staged by an open transaction. Nested
transactions open a journal checkpoint inside the outer one.

Authorization model
-------------------
- Data writes require ``program == account.owner``.
- Outbound transfers from a wallet (owner = SYSTEM_PROGRAM_ID) must be signed
  by the wallet itself; from a program-owned account they must be signed by
  the owning program (the pool signs for its own derived address this way).
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, MutableMapping, Optional

from core.utils.bytes import U64_MAX

from ..errors import AccountNotFound, InvalidAccess, StateConflict
from ..state.accounts import SYSTEM_PROGRAM_ID, Account
from ..state.apply_balance import credit, safe_transfer
from ..state.journal import Journal

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountMeta:
    """An account reference passed alongside an instruction."""

    pubkey: bytes
    is_signer: bool = False
    is_writable: bool = False


class Bank:
    def __init__(self, accounts: Optional[MutableMapping[bytes, Account]] = None) -> None:
        self._accounts: MutableMapping[bytes, Account] = {} if accounts is None else accounts
        self._journal = Journal(self._accounts)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ #
    # Transaction envelope
    # ------------------------------------------------------------------ #

    @contextmanager
    def transaction(self) -> Iterator["Bank"]:
        with self._lock:
            marker = self._journal.begin()
            try:
                yield self
            except BaseException:
                self._journal.revert_to(marker)
                raise
            else:
                self._journal.commit_to(marker)
                if marker == 1:
                    self._journal.commit()

    # ------------------------------------------------------------------ #
    # BalanceAccess protocol
    # ------------------------------------------------------------------ #

    def get_balance(self, address: bytes) -> int:
        with self._lock:
            acc = self._journal.get_account(address)
        return 0 if acc is None else acc.lamports

    def set_balance(self, address: bytes, value: int) -> None:
        if not (0 <= value <= U64_MAX):
            raise ValueError(f"balance out of range: {value}")
        self._journal.ensure_account_for_write(address).lamports = value

    # ------------------------------------------------------------------ #
    # Storage
    # ------------------------------------------------------------------ #

    def exists(self, address: bytes) -> bool:
        with self._lock:
            acc = self._journal.get_account(address)
            return acc is not None and acc.allocated

    def create(self, address: bytes, size: int, owner: bytes) -> None:
        """
        Allocate ``size`` bytes of data at ``address`` owned by ``owner``.
        Lamports already held at the address (a pre-funded wallet) are kept.
        """
        if size <= 0:
            raise ValueError("size must be positive")
        with self.transaction():
            acc = self._journal.get_account_for_write(address)
            if acc is None:
                self._journal.create_account(
                    address, Account(owner=owner, space=size)
                )
            elif acc.allocated:
                raise StateConflict("account already allocated", address=address.hex())
            else:
                acc.owner = bytes(owner)
                acc.space = size
                acc.data = b""
        log.debug("allocated %d bytes at %s", size, address.hex())

    def read(self, address: bytes) -> bytes:
        with self._lock:
            acc = self._journal.get_account(address)
            if acc is None or not acc.allocated:
                raise AccountNotFound(address.hex())
            return acc.data

    def write(self, address: bytes, data: bytes, *, program: bytes) -> None:
        with self.transaction():
            acc = self._journal.get_account_for_write(address)
            if acc is None or not acc.allocated:
                raise AccountNotFound(address.hex())
            if acc.owner != program:
                raise InvalidAccess(
                    "program does not own account", op="write", address=address.hex()
                )
            acc.set_data(data)

    def owner_of(self, address: bytes) -> Optional[bytes]:
        with self._lock:
            acc = self._journal.get_account(address)
            return None if acc is None else acc.owner

    # ------------------------------------------------------------------ #
    # Custody
    # ------------------------------------------------------------------ #

    def balance(self, address: bytes) -> int:
        return self.get_balance(address)

    def fund(self, address: bytes, amount: int) -> int:
        """Mint ``amount`` lamports into ``address`` (test/dev faucet)."""
        with self.transaction():
            return credit(self, address, amount)

    def transfer(self, src: bytes, dst: bytes, amount: int, *, signer: bytes) -> Dict[str, int]:
        with self.transaction():
            acc = self._journal.get_account(src)
            authority = src if acc is None or acc.owner == SYSTEM_PROGRAM_ID else acc.owner
            if signer != authority:
                raise InvalidAccess(
                    "transfer not signed by account authority",
                    op="transfer",
                    address=src.hex(),
                )
            moved = safe_transfer(self, src, dst, amount)
        log.debug("transfer %d lamports %s -> %s", amount, src.hex(), dst.hex())
        return moved

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def snapshot(self) -> Dict[bytes, dict]:
        """Committed accounts as plain dicts (pending writes excluded)."""
        with self._lock:
            return {addr: acc.to_dict() for addr, acc in sorted(self._accounts.items())}


__all__ = ["AccountMeta", "Bank"]
