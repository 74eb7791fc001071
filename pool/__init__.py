"""
Animica shielded pool.

Deposits go in under a hidden commitment (a leaf of an append-only Merkle
tree) and come out against a zero-knowledge proof plus a one-time nullifier.

Typical wiring:

    from execution.runtime import Bank
    from pool import build_processor, config

    cfg = config.load("pool.toml")
    proc = build_processor(cfg, Bank())
    proc.initialize(payer, cfg.tree_height)

or, for a process entry point that should also honor the logging keys:

    proc = boot("pool.toml")
"""

from __future__ import annotations

from typing import Optional

from core.errors import ConfigError
from core.version import __version__
from execution.runtime.bank import Bank
from zk.verifiers import ProofVerifier, ZKError, build_verifier
from zk.verifiers.merkle import HashOracle, Sha3Hasher
from zk.verifiers.poseidon import PoseidonHasher, load_params_set

from .config import PoolConfig, configure_logging, load
from .errors import PoolError, PoolErrorKind
from .processor import Processor


def build_hasher(cfg: PoolConfig) -> HashOracle:
    if cfg.hasher == "sha3":
        return Sha3Hasher()
    if cfg.poseidon_params:
        try:
            return PoseidonHasher(load_params_set(cfg.poseidon_params))
        except (OSError, KeyError, TypeError, ValueError) as e:
            raise ConfigError(
                f"cannot load poseidon params: {e}", path=cfg.poseidon_params
            ) from e
    return PoseidonHasher()


def build_proof_verifier(cfg: PoolConfig) -> ProofVerifier:
    try:
        return build_verifier(cfg.verifier, vk_path=cfg.vk_path, canary_hex=cfg.canary_hex)
    except (OSError, ValueError, ZKError) as e:
        raise ConfigError(f"cannot build {cfg.verifier} verifier: {e}", verifier=cfg.verifier) from e


def build_processor(
    cfg: PoolConfig,
    bank: Bank,
    *,
    hasher: Optional[HashOracle] = None,
    verifier: Optional[ProofVerifier] = None,
) -> Processor:
    """Wire a Processor from config; explicit collaborators win over config."""
    cfg.validate()
    return Processor(
        bank,
        cfg.program_id_bytes,
        hasher if hasher is not None else build_hasher(cfg),
        verifier if verifier is not None else build_proof_verifier(cfg),
        max_tree_height=cfg.max_tree_height,
        max_proof_bytes=cfg.max_proof_bytes,
    )


def boot(
    config_file: Optional[str] = None, bank: Optional[Bank] = None, **overrides
) -> Processor:
    """Load config, apply its logging keys, and return a wired Processor."""
    cfg = load(config_file, **overrides)
    configure_logging(cfg)
    return build_processor(cfg, bank if bank is not None else Bank())


__all__ = [
    "__version__",
    "PoolConfig",
    "PoolError",
    "PoolErrorKind",
    "Processor",
    "build_hasher",
    "build_proof_verifier",
    "build_processor",
    "boot",
]
