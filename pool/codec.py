"""
pool.codec: typed, versioned account records.

Every pool account holds one canonical CBOR map (``cbor2`` with
``canonical=True``) carrying a ``kind`` tag and a schema version ``v``:

    pool:       {kind, v, initialized, tree_height, total_value}
    merkle:     {kind, v, height, current_index, root, filled}
    nullifier:  {kind, v, hash, spent}

Decoding is strict. Wrong kind or version, missing or extra keys, wrong field
types and out-of-range values all raise `DeserializationError`; the
processor surfaces that as ``InvalidPool``.

Account sizes are the largest encoding a record can reach, so an account
allocated once never needs to grow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import cbor2

from core.errors import DeserializationError, SerializationError
from core.utils.bytes import U64_MAX

SCHEMA_VERSION = 1

KIND_POOL = "pool"
KIND_MERKLE = "merkle"
KIND_NULLIFIER = "nullifier"

_MAX_HEIGHT = 32


@dataclass
class PoolRecord:
    initialized: bool = False
    tree_height: int = 0
    total_value: int = 0


@dataclass
class MerkleRecord:
    height: int
    current_index: int = 0
    root: bytes = b"\x00" * 32
    filled: List[bytes] = field(default_factory=list)


@dataclass(frozen=True)
class NullifierRecord:
    hash: bytes
    spent: bool = True


# ---------------------------------------------------------------------------
# Low-level
# ---------------------------------------------------------------------------


def _dumps(obj: Dict[str, Any]) -> bytes:
    try:
        return cbor2.dumps(obj, canonical=True)
    except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
        raise SerializationError(f"cannot encode record: {e}") from e


def _loads(data: bytes, kind: str, keys: frozenset) -> Dict[str, Any]:
    if not data:
        raise DeserializationError("empty account data", kind=kind)
    try:
        obj = cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError, TypeError, EOFError) as e:
        raise DeserializationError(f"invalid CBOR: {e}", kind=kind) from e
    if not isinstance(obj, dict):
        raise DeserializationError("record is not a map", kind=kind)
    if obj.get("kind") != kind:
        raise DeserializationError(
            "unexpected record kind", kind=kind, got=str(obj.get("kind"))
        )
    if obj.get("v") != SCHEMA_VERSION:
        raise DeserializationError("unsupported schema version", kind=kind, got=str(obj.get("v")))
    if set(obj) != keys | {"kind", "v"}:
        raise DeserializationError(
            "record keys mismatch", kind=kind, keys=sorted(map(str, obj))
        )
    return obj


def _uint(obj: Dict[str, Any], key: str, hi: int) -> int:
    v = obj[key]
    if isinstance(v, bool) or not isinstance(v, int) or not (0 <= v <= hi):
        raise DeserializationError(f"{key} out of range", field=key)
    return v


def _bool(obj: Dict[str, Any], key: str) -> bool:
    v = obj[key]
    if not isinstance(v, bool):
        raise DeserializationError(f"{key} must be bool", field=key)
    return v


def _b32(v: Any, key: str) -> bytes:
    if not isinstance(v, bytes) or len(v) != 32:
        raise DeserializationError(f"{key} must be 32 bytes", field=key)
    return v


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------

_POOL_KEYS = frozenset({"initialized", "tree_height", "total_value"})


def encode_pool(rec: PoolRecord) -> bytes:
    return _dumps(
        {
            "kind": KIND_POOL,
            "v": SCHEMA_VERSION,
            "initialized": bool(rec.initialized),
            "tree_height": rec.tree_height,
            "total_value": rec.total_value,
        }
    )


def decode_pool(data: bytes) -> PoolRecord:
    obj = _loads(data, KIND_POOL, _POOL_KEYS)
    return PoolRecord(
        initialized=_bool(obj, "initialized"),
        tree_height=_uint(obj, "tree_height", _MAX_HEIGHT),
        total_value=_uint(obj, "total_value", U64_MAX),
    )


POOL_RECORD_SIZE = len(encode_pool(PoolRecord(True, _MAX_HEIGHT, U64_MAX)))


# ---------------------------------------------------------------------------
# Merkle accumulator
# ---------------------------------------------------------------------------

_MERKLE_KEYS = frozenset({"height", "current_index", "root", "filled"})


def encode_merkle(rec: MerkleRecord) -> bytes:
    return _dumps(
        {
            "kind": KIND_MERKLE,
            "v": SCHEMA_VERSION,
            "height": rec.height,
            "current_index": rec.current_index,
            "root": bytes(rec.root),
            "filled": [bytes(x) for x in rec.filled],
        }
    )


def decode_merkle(data: bytes) -> MerkleRecord:
    obj = _loads(data, KIND_MERKLE, _MERKLE_KEYS)
    height = _uint(obj, "height", _MAX_HEIGHT)
    if height == 0:
        raise DeserializationError("height must be positive", field="height")
    current_index = _uint(obj, "current_index", 1 << height)
    filled = obj["filled"]
    if not isinstance(filled, list) or len(filled) != height:
        raise DeserializationError("filled must list one node per level", field="filled")
    return MerkleRecord(
        height=height,
        current_index=current_index,
        root=_b32(obj["root"], "root"),
        filled=[_b32(x, "filled") for x in filled],
    )


def merkle_record_size(height: int) -> int:
    if not (1 <= height <= _MAX_HEIGHT):
        raise ValueError(f"height must be within 1..{_MAX_HEIGHT}")
    worst = MerkleRecord(
        height=height,
        current_index=1 << height,
        root=b"\xff" * 32,
        filled=[b"\xff" * 32] * height,
    )
    return len(encode_merkle(worst))


# ---------------------------------------------------------------------------
# Nullifier
# ---------------------------------------------------------------------------

_NULLIFIER_KEYS = frozenset({"hash", "spent"})


def encode_nullifier(rec: NullifierRecord) -> bytes:
    return _dumps(
        {
            "kind": KIND_NULLIFIER,
            "v": SCHEMA_VERSION,
            "hash": bytes(rec.hash),
            "spent": bool(rec.spent),
        }
    )


def decode_nullifier(data: bytes) -> NullifierRecord:
    obj = _loads(data, KIND_NULLIFIER, _NULLIFIER_KEYS)
    return NullifierRecord(hash=_b32(obj["hash"], "hash"), spent=_bool(obj, "spent"))


NULLIFIER_RECORD_SIZE = len(encode_nullifier(NullifierRecord(b"\xff" * 32, True)))


__all__ = [
    "SCHEMA_VERSION",
    "PoolRecord",
    "MerkleRecord",
    "NullifierRecord",
    "encode_pool",
    "decode_pool",
    "encode_merkle",
    "decode_merkle",
    "encode_nullifier",
    "decode_nullifier",
    "POOL_RECORD_SIZE",
    "NULLIFIER_RECORD_SIZE",
    "merkle_record_size",
]
