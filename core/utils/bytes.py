"""
core.utils.bytes
================

Byte normalization and length guards shared by addresses, hashing and the
instruction codec.

>>> expect_len(bytearray(32), 32) == bytes(32)
True
"""

from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

U64_MAX = (1 << 64) - 1


def b(x: BytesLike) -> bytes:
    """Normalize any bytes-like value to immutable bytes."""
    if isinstance(x, bytes):
        return x
    if isinstance(x, (bytearray, memoryview)):
        return bytes(x)
    raise TypeError(f"unsupported type for b(): {type(x)!r}")


def expect_len(data: BytesLike, n: int, *, name: str = "bytes") -> bytes:
    """Return ``data`` as immutable bytes after validating exact length ``n``."""
    data_b = b(data)
    if len(data_b) != n:
        raise ValueError(f"{name} must be length {n}, got {len(data_b)}")
    return data_b


__all__ = ["BytesLike", "U64_MAX", "b", "expect_len"]
