"""
Shielded pool configuration loader.

Layered with clear precedence:
    1) Explicit overrides passed to `load()` (highest)
    2) Environment variables (ANIMICA_POOL_*)
    3) Config file (TOML or JSON)
    4) Built-in defaults (lowest)

A file may hold the keys at top level or under a ``[pool]`` table:

    [pool]
    tree_height = 20
    hasher = "poseidon"
    verifier = "groth16"
    vk_path = "keys/withdraw_vk.json"

Logging keys (``log_level`` / ``log_format``) are applied by
`configure_logging`, which hands them to `core.logging.configure`.
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.errors import ConfigError
from core.utils.hash import tagged_sha3_256

ENV_PREFIX = "ANIMICA_POOL_"

DEFAULT_PROGRAM_ID = tagged_sha3_256(b"animica/program-id/v1", b"shielded_pool")
DEFAULT_TREE_HEIGHT = 20
DEFAULT_MAX_TREE_HEIGHT = 32
DEFAULT_MAX_PROOF_BYTES = 4096

HASHERS = ("poseidon", "sha3")
VERIFIERS = ("groth16", "canary")
LOG_FORMATS = ("json", "text")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _expand(p: str | Path) -> Path:
    return Path(p).expanduser().resolve()


def _parse_int(name: str, v: Any) -> int:
    if isinstance(v, bool):
        raise ConfigError(f"{name} must be an integer", key=name)
    if isinstance(v, int):
        return v
    try:
        return int(str(v).strip(), 0)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {v!r}", key=name) from e


@dataclass
class PoolConfig:
    program_id: str = DEFAULT_PROGRAM_ID.hex()
    tree_height: int = DEFAULT_TREE_HEIGHT
    max_tree_height: int = DEFAULT_MAX_TREE_HEIGHT
    hasher: str = "poseidon"
    poseidon_params: Optional[str] = None
    verifier: str = "groth16"
    vk_path: Optional[str] = None
    canary_hex: Optional[str] = None
    max_proof_bytes: int = DEFAULT_MAX_PROOF_BYTES
    log_level: str = "INFO"
    log_format: Optional[str] = None

    @property
    def program_id_bytes(self) -> bytes:
        return bytes.fromhex(self.program_id.removeprefix("0x"))

    def validate(self) -> None:
        try:
            pid = self.program_id_bytes
        except ValueError as e:
            raise ConfigError("program_id must be hex", key="program_id") from e
        if len(pid) != 32:
            raise ConfigError("program_id must be 32 bytes", key="program_id", length=len(pid))
        if not (1 <= self.max_tree_height <= DEFAULT_MAX_TREE_HEIGHT):
            raise ConfigError(
                f"max_tree_height must be within 1..{DEFAULT_MAX_TREE_HEIGHT}",
                key="max_tree_height",
            )
        if not (1 <= self.tree_height <= self.max_tree_height):
            raise ConfigError(
                f"tree_height must be within 1..{self.max_tree_height}", key="tree_height"
            )
        if self.hasher not in HASHERS:
            raise ConfigError(f"hasher must be one of {HASHERS}", key="hasher", value=self.hasher)
        if self.verifier not in VERIFIERS:
            raise ConfigError(
                f"verifier must be one of {VERIFIERS}", key="verifier", value=self.verifier
            )
        if self.canary_hex is not None:
            try:
                bytes.fromhex(self.canary_hex.removeprefix("0x"))
            except ValueError as e:
                raise ConfigError("canary_hex must be hex", key="canary_hex") from e
        if self.max_proof_bytes <= 0:
            raise ConfigError("max_proof_bytes must be positive", key="max_proof_bytes")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {LOG_LEVELS}", key="log_level")
        if self.log_format is not None and self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {LOG_FORMATS}", key="log_format")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_INT_KEYS = frozenset({"tree_height", "max_tree_height", "max_proof_bytes"})
_KEYS = frozenset(PoolConfig.__dataclass_fields__)


def _load_file(path: Path) -> Dict[str, Any]:
    suffix = path.suffix.lower()
    try:
        with path.open("rb") as f:
            if suffix in {".toml", ".tml"}:
                data = tomllib.load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigError(
                    f"Unsupported config format: {suffix}. Use .toml or .json", path=str(path)
                )
    except (OSError, ValueError) as e:
        raise ConfigError(f"cannot read config file: {e}", path=str(path)) from e
    if not isinstance(data, dict):
        raise ConfigError("config file must hold a table", path=str(path))
    section = data.get("pool", data)
    if not isinstance(section, dict):
        raise ConfigError("[pool] must be a table", path=str(path))
    return dict(section)


def _from_env() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _KEYS:
        v = os.environ.get(ENV_PREFIX + key.upper())
        if v is not None and v != "":
            out[key] = v.strip()
    return out


def load(config_file: Optional[str | Path] = None, **overrides: Any) -> PoolConfig:
    """
    Load the pool configuration.

    Precedence: overrides > env > file > defaults. Unknown keys and invalid
    values raise ConfigError.
    """
    base: Dict[str, Any] = asdict(PoolConfig())

    if config_file:
        base.update(_load_file(_expand(config_file)))
    base.update(_from_env())
    base.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(base) - _KEYS)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}", keys=unknown)

    for k in _INT_KEYS:
        base[k] = _parse_int(k, base[k])
    for k in ("hasher", "verifier"):
        base[k] = str(base[k]).strip().lower()
    if base["log_format"] is not None:
        base["log_format"] = str(base["log_format"]).strip().lower()
    base["log_level"] = str(base["log_level"]).strip().upper()
    if isinstance(base["program_id"], (bytes, bytearray)):
        base["program_id"] = bytes(base["program_id"]).hex()

    cfg = PoolConfig(**base)
    cfg.validate()
    return cfg


def configure_logging(cfg: PoolConfig) -> None:
    """Apply the config's logging keys to the root logger."""
    from core.logging import configure

    json_flag = None if cfg.log_format is None else cfg.log_format == "json"
    configure(json=json_flag, level=cfg.log_level)


__all__ = [
    "ENV_PREFIX",
    "DEFAULT_PROGRAM_ID",
    "PoolConfig",
    "load",
    "configure_logging",
]
