"""
Animica execution layer: the in-process account bank the pool program runs on.

- state.accounts:      Account records (lamports, owner, space, data)
- state.journal:       copy-on-write overlays with nested checkpoints
- state.apply_balance: checked lamport credit/debit/transfer
- runtime.bank:        storage + custody + transaction envelope

Only lightweight metadata is exposed at import time.
"""

from core.version import __version__

__all__ = ["__version__"]
