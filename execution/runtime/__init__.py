"""
execution.runtime: the execution environment for the pool program.

Submodules
----------
- bank : account storage, lamport custody and the transaction envelope

    from execution.runtime import Bank, AccountMeta
"""

from __future__ import annotations

from .bank import AccountMeta, Bank

__all__ = ["AccountMeta", "Bank"]
