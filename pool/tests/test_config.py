from __future__ import annotations

import json
import logging
import os

import pytest

from core.errors import ConfigError
from execution.runtime.bank import Bank
from core.logging import JSONFormatter, TextFormatter
from pool import boot, build_processor, config
from pool.commitments import Note, derive_commitment, derive_nullifier_hash
from pool.config import DEFAULT_PROGRAM_ID, PoolConfig
from zk.verifiers.canary import CanaryVerifier
from zk.verifiers.merkle import Sha3Hasher
from zk.verifiers.poseidon import PoseidonHasher


@pytest.fixture(autouse=True)
def _no_pool_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith(config.ENV_PREFIX):
            monkeypatch.delenv(key)


def test_defaults():
    cfg = config.load()
    assert cfg.tree_height == 20
    assert cfg.max_tree_height == 32
    assert cfg.hasher == "poseidon"
    assert cfg.verifier == "groth16"
    assert cfg.max_proof_bytes == 4096
    assert cfg.program_id_bytes == DEFAULT_PROGRAM_ID


def test_precedence(tmp_path, monkeypatch):
    path = tmp_path / "pool.toml"
    path.write_text('[pool]\ntree_height = 10\nhasher = "sha3"\nverifier = "canary"\n')
    monkeypatch.setenv("ANIMICA_POOL_TREE_HEIGHT", "12")

    cfg = config.load(path)
    assert cfg.tree_height == 12
    assert cfg.hasher == "sha3"

    cfg = config.load(path, tree_height=14)
    assert cfg.tree_height == 14


def test_json_file(tmp_path):
    path = tmp_path / "pool.json"
    path.write_text(json.dumps({"verifier": "canary", "canary_hex": "0xc0ffee"}))
    cfg = config.load(path)
    assert cfg.verifier == "canary"
    assert cfg.canary_hex == "0xc0ffee"


@pytest.mark.parametrize(
    "overrides",
    [
        {"tree_height": 0},
        {"tree_height": 33},
        {"tree_height": 10, "max_tree_height": 8},
        {"hasher": "md5"},
        {"verifier": "plonk"},
        {"program_id": "zz"},
        {"program_id": "00" * 31},
        {"max_proof_bytes": 0},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"tree_height": "twenty"},
        {"surprise": 1},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ConfigError):
        config.load(**overrides)


def test_bad_file(tmp_path):
    path = tmp_path / "pool.yaml"
    path.write_text("tree_height: 3\n")
    with pytest.raises(ConfigError):
        config.load(path)
    with pytest.raises(ConfigError):
        config.load(tmp_path / "missing.toml")


def test_build_processor_from_config():
    cfg = config.load(hasher="sha3", verifier="canary", canary_hex="c0ffee", tree_height=4)
    proc = build_processor(cfg, Bank())
    assert isinstance(proc.hasher, Sha3Hasher)
    assert isinstance(proc.verifier, CanaryVerifier)
    assert proc.verifier.canary == bytes.fromhex("c0ffee")
    assert proc.program_id == DEFAULT_PROGRAM_ID


def test_build_processor_requires_vk_for_groth16():
    with pytest.raises(ConfigError):
        build_processor(PoolConfig(verifier="groth16"), Bank())


def test_build_processor_with_poseidon_params_file(tmp_path):
    from zk.verifiers.poseidon import placeholder_params

    params = [placeholder_params(2), placeholder_params(3)]
    path = tmp_path / "poseidon.json"
    path.write_text(
        json.dumps(
            [
                {"t": p.t, "R_F": p.R_F, "R_P": p.R_P, "alpha": p.alpha, "mds": p.mds, "rc": p.rc}
                for p in params
            ]
        )
    )
    cfg = PoolConfig(poseidon_params=str(path), verifier="canary")
    proc = build_processor(cfg, Bank())
    assert proc.hasher.hash2(b"\x00" * 31 + b"\x01", b"\x00" * 32) == PoseidonHasher().hash2(
        b"\x00" * 31 + b"\x01", b"\x00" * 32
    )


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in saved[0]:
        root.addHandler(h)
    root.setLevel(saved[1])


def test_boot_applies_logging_keys(root_logger):
    bank = Bank()
    proc = boot(bank=bank, hasher="sha3", verifier="canary", log_level="DEBUG", log_format="json")
    assert proc.bank is bank
    assert isinstance(proc.hasher, Sha3Hasher)
    assert root_logger.level == logging.DEBUG
    assert [type(h.formatter) for h in root_logger.handlers] == [JSONFormatter]

    boot(hasher="sha3", verifier="canary", log_level="WARNING", log_format="text")
    assert root_logger.level == logging.WARNING
    assert [type(h.formatter) for h in root_logger.handlers] == [TextFormatter]


def test_note_helpers(poseidon):
    note = Note.random(poseidon)
    assert note.commitment == derive_commitment(note.secret, note.nullifier_seed, poseidon)
    assert note.nullifier_hash == derive_nullifier_hash(note.nullifier_seed, poseidon)
    assert note.secret.hex() not in repr(note)
    assert Note.random(poseidon).commitment != note.commitment
