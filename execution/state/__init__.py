"""
execution.state: account records, the write journal and balance helpers.

Common symbols are lazily re-exported from their submodules on first access
to keep import-time overhead low and avoid circular imports.
"""

from __future__ import annotations

from importlib import import_module as _imp
from typing import Any, Dict, Tuple

_exports: Dict[str, Tuple[str, str]] = {
    "Account": ("accounts", "Account"),
    "SYSTEM_PROGRAM_ID": ("accounts", "SYSTEM_PROGRAM_ID"),
    "Journal": ("journal", "Journal"),
    "InsufficientBalance": ("apply_balance", "InsufficientBalance"),
    "safe_transfer": ("apply_balance", "safe_transfer"),
}

__all__ = sorted(_exports)


def __getattr__(name: str) -> Any:
    try:
        mod_name, sym = _exports[name]
    except KeyError:
        raise AttributeError(f"module 'execution.state' has no attribute '{name}'") from None
    value = getattr(_imp(f"{__name__}.{mod_name}"), sym)
    globals()[name] = value
    return value
