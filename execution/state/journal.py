"""
execution.state.journal: journaling account writes, checkpoints, revert/commit.

A deterministic, in-memory write journal layered over an accounts mapping.
Nested checkpoints are a stack of overlays. Writes go to the top overlay;
reads consult overlays from top → base. `commit()` merges the top overlay
into the next layer (or the base mapping if it is the last layer).
`revert()` discards the top overlay.

Key properties
--------------
- Pure Python, no I/O.
- Copy-on-write: an Account is copied into the top overlay before mutation,
  so a reverted checkpoint never leaks into lower layers or the base.
- O(changes) merge cost.

Intended usage
--------------
    j = Journal(base_accounts)
    j.begin()
    acc = j.get_account_for_write(addr) or j.create_account(addr)
    acc.lamports += 5
    j.commit()      # merge into the root layer
    j.commit()      # root layer → base mapping

Economic rules are not enforced here; the Bank validates before writing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, MutableMapping, Optional, Set

from execution.errors import StateConflict

from .accounts import Account


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


@dataclass
class _Overlay:
    """
    A single journal layer.

    - `accounts`: copies of Account objects modified/created in this layer.
    - `touched`: addresses written in this layer, in first-write order.
    """

    accounts: Dict[bytes, Account] = field(default_factory=dict)
    touched: List[bytes] = field(default_factory=list)

    def put_account_copy(self, addr: bytes, acc: Account) -> Account:
        acc_copy = acc.copy()
        if addr not in self.accounts:
            self.touched.append(addr)
        self.accounts[addr] = acc_copy
        return acc_copy


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    accounts : MutableMapping[bytes, Account]
        The base (persisted) account mapping.

    API highlights
    --------------
    - begin() / commit() / revert()
    - checkpoint() / commit_to(marker) / revert_to(marker)
    - get_account(), get_account_for_write(), ensure_account_for_write(),
      create_account()
    """

    def __init__(self, accounts: MutableMapping[bytes, Account]) -> None:
        self._base_accounts = accounts
        self._layers: List[_Overlay] = [_Overlay()]

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of overlays (>= 1)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the depth before it was opened."""
        marker = len(self._layers)
        self._layers.append(_Overlay())
        return marker

    def commit(self) -> None:
        """
        Merge the top overlay into its parent, or into the base mapping when
        only the root layer remains.
        """
        top = self._layers.pop()
        if self._layers:
            self._merge_layers(self._layers[-1], top)
        else:
            self._apply_to_base(top)
            self._layers.append(_Overlay())

    def revert(self) -> None:
        """Discard the top overlay (or clear it if it is the root)."""
        if len(self._layers) > 1:
            self._layers.pop()
        else:
            self._layers[0] = _Overlay()

    def checkpoint(self) -> int:
        """Alias for `begin()`."""
        return self.begin()

    def commit_to(self, marker: int) -> None:
        """Commit until the depth equals `marker`; marker 0 flushes to base."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > max(marker, 1):
            self.commit()
        if marker == 0:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """Revert until the depth equals `marker`; marker 0 also clears the root."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > max(marker, 1):
            self.revert()
        if marker == 0:
            self.revert()

    # ------------------------------------------------------------------ #
    # Account API
    # ------------------------------------------------------------------ #

    def _lookup_account_any(self, addr: bytes) -> Optional[Account]:
        for layer in reversed(self._layers):
            local = layer.accounts.get(addr)
            if local is not None:
                return local
        return self._base_accounts.get(addr)

    def get_account(self, address: bytes | bytearray | memoryview) -> Optional[Account]:
        """Readonly lookup. Never mutate the returned object."""
        return self._lookup_account_any(_b(address, name="address"))

    def get_account_for_write(
        self, address: bytes | bytearray | memoryview
    ) -> Optional[Account]:
        """
        Fetch an Account suitable for **mutation** in the top layer, promoting
        a copy from a lower layer or the base. Returns None if absent.
        """
        addr = _b(address, name="address")
        top = self._layers[-1]
        if addr in top.accounts:
            return top.accounts[addr]
        acc = self._lookup_account_any(addr)
        if acc is None:
            return None
        return top.put_account_copy(addr, acc)

    def ensure_account_for_write(
        self, address: bytes | bytearray | memoryview
    ) -> Account:
        """Like `get_account_for_write` but creates a zeroed wallet if absent."""
        addr = _b(address, name="address")
        acc = self.get_account_for_write(addr)
        if acc is not None:
            return acc
        return self._layers[-1].put_account_copy(addr, Account())

    def create_account(
        self, address: bytes | bytearray | memoryview, account: Optional[Account] = None
    ) -> Account:
        """
        Create a new account in the top overlay.
        Raises StateConflict if the address is visible in any layer or the base.
        """
        addr = _b(address, name="address")
        if self._lookup_account_any(addr) is not None:
            raise StateConflict("account already exists", address=addr.hex())
        return self._layers[-1].put_account_copy(addr, account or Account())

    # ------------------------------------------------------------------ #
    # Internal merge/apply
    # ------------------------------------------------------------------ #

    @staticmethod
    def _merge_layers(dst: _Overlay, src: _Overlay) -> None:
        for addr in src.touched:
            dst.put_account_copy(addr, src.accounts[addr])

    def _apply_to_base(self, layer: _Overlay) -> None:
        for addr in layer.touched:
            self._base_accounts[addr] = layer.accounts[addr].copy()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def pending_account_addrs(self) -> Set[bytes]:
        """Addresses with pending account mutations in any layer."""
        s: Set[bytes] = set()
        for layer in self._layers:
            s.update(layer.accounts.keys())
        return s


__all__ = ["Journal"]
