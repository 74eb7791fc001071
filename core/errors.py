"""
Animica: core.errors
---------------------

Root error type shared by every package in the shielded pool.

- One root `AnimicaError` with a machine-stable `code` and optional `data`.
- Thin subclasses for the cross-cutting failures (config, codec, internal).
- `to_dict()` gives a JSON-safe shape for structured logs.

Domain packages (``pool``, ``execution``) define their own code enums and
subclasses on top of this root.

This module uses only stdlib to avoid import cycles with core.logging.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional


class Severity(IntEnum):
    """Optional severity hint for operators."""

    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class CoreErrorCode(str, Enum):
    INTERNAL = "CORE/INTERNAL"
    CONFIG = "CORE/CONFIG"
    SERIALIZATION = "CORE/SERIALIZATION"
    DESERIALIZATION = "CORE/DESERIALIZATION"


@dataclass(eq=False)
class AnimicaError(Exception):
    """
    Root error for Animica components.

    Attributes
    ----------
    code: str
        Machine-stable error code.
    message: str
        Human hint suitable for logs; never carries secrets (note pre-images).
    data: dict
        Optional machine data (hashes, sizes). Must be JSON-serializable.
    severity: Severity
        Optional severity hint (default ERROR).
    retryable: bool
        Whether the operation may succeed on retry without changing inputs.
    cause: Optional[BaseException]
        Wrapped original exception.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.ERROR
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{_code_str(self.code)}: {self.message}")

    def with_context(self, **ctx: Any) -> "AnimicaError":
        """Return a copy with extra context merged into ``data``."""
        clone = copy.copy(self)
        clone.data = {**self.data, **_jsonmap(ctx)}
        return clone

    def with_cause(self, exc: BaseException) -> "AnimicaError":
        """Return a copy with ``cause`` attached."""
        clone = copy.copy(self)
        clone.data = dict(self.data)
        clone.cause = exc
        return clone

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs."""
        out = {
            "code": _code_str(self.code),
            "message": self.message,
            "data": _coerce_json(self.data),
            "severity": int(self.severity),
            "retryable": self.retryable,
        }
        if include_cause and self.cause is not None:
            out["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return out

    def __str__(self) -> str:  # pragma: no cover - human formatting
        parts = [f"{_code_str(self.code)}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class InternalError(AnimicaError):
    def __init__(self, message="internal error", **data: Any) -> None:
        super().__init__(
            code=CoreErrorCode.INTERNAL, message=message, data=_jsonmap(data)
        )


class ConfigError(AnimicaError):
    def __init__(self, message="invalid configuration", **data: Any) -> None:
        super().__init__(
            code=CoreErrorCode.CONFIG,
            message=message,
            data=_jsonmap(data),
            retryable=False,
        )


class SerializationError(AnimicaError):
    def __init__(self, message="serialization failed", **data: Any) -> None:
        super().__init__(
            code=CoreErrorCode.SERIALIZATION, message=message, data=_jsonmap(data)
        )


class DeserializationError(AnimicaError):
    def __init__(self, message="deserialization failed", **data: Any) -> None:
        super().__init__(
            code=CoreErrorCode.DESERIALIZATION, message=message, data=_jsonmap(data)
        )


def ensure_animica_error(exc: BaseException) -> AnimicaError:
    """Coerce unknown exceptions to InternalError with cause attached."""
    if isinstance(exc, AnimicaError):
        return exc
    return InternalError(type(exc).__name__).with_cause(exc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _code_str(code: Any) -> str:
    return code.value if isinstance(code, Enum) else str(code)


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; stringify the rest.
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, dict):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_coerce_json(x) for x in v]
    if isinstance(v, Enum):
        return v.value
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"
