"""
Animica: core.utils
--------------------

Pure-stdlib utility toolkit used across the pool.

Submodules are exposed lazily so importing `core.utils` stays cheap:

    from core import utils
    h = utils.hash.sha3_256(b"hello")
    bx = utils.bytes.expect_len(b"\\x00", 1)

Names like `bytes` and `hash` shadow Python builtins if imported directly;
prefer module-qualified access (`utils.bytes`, `utils.hash`) or the aliases
(`bytes_utils`, `hash_utils`).
"""

from __future__ import annotations

from importlib import import_module
from types import ModuleType
from typing import TYPE_CHECKING, Any, Dict, List

__all__: List[str] = ["bytes", "hash", "bytes_utils", "hash_utils"]

_SUBMODS: Dict[str, str] = {
    "bytes": "core.utils.bytes",
    "hash": "core.utils.hash",
}

_ALIASES: Dict[str, str] = {
    "bytes_utils": "bytes",
    "hash_utils": "hash",
}

if TYPE_CHECKING:  # pragma: no cover - type-checking only
    from . import bytes as bytes  # type: ignore
    from . import hash as hash  # type: ignore

    bytes_utils: ModuleType
    hash_utils: ModuleType


def __getattr__(name: str) -> Any:
    canonical = _ALIASES.get(name, name)
    if canonical in _SUBMODS:
        mod = import_module(_SUBMODS[canonical])
        globals()[canonical] = mod
        if name != canonical:
            globals()[name] = mod
        return mod
    raise AttributeError(f"module 'core.utils' has no attribute '{name}'")
