"""
core.utils.hash
===============

Thin wrappers for the digests used across the pool (all return `bytes`):

- sha3_256(data)
- tagged_sha3_256(tag, *parts)   # domain-separated, length-prefixed parts

Determinism notes
-----------------
`tagged_sha3_256` frames every input as ``u32_be(len) || bytes`` after the
tag, so ``("ab", "c")`` and ``("a", "bc")`` never collide.
"""

from __future__ import annotations

import hashlib
import struct

from .bytes import BytesLike
from .bytes import b as _b


def sha3_256(data: BytesLike) -> bytes:
    """SHA3-256 digest."""
    return hashlib.sha3_256(_b(data)).digest()


def tagged_sha3_256(tag: bytes, *parts: BytesLike) -> bytes:
    h = hashlib.sha3_256()
    h.update(struct.pack(">I", len(tag)))
    h.update(tag)
    for p in parts:
        pb = _b(p)
        h.update(struct.pack(">I", len(pb)))
        h.update(pb)
    return h.digest()


__all__ = ["sha3_256", "tagged_sha3_256"]
