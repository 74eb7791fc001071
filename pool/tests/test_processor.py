"""
State-machine scenarios: initialize, shield and withdraw against an
in-process bank with the Poseidon hasher and the canary verifier.
"""

from __future__ import annotations

import threading

import pytest

from execution.runtime.bank import AccountMeta
from pool.addresses import nullifier_address
from pool.commitments import Note
from pool.errors import (
    CapacityExceeded,
    InsufficientFunds,
    InvalidCommitment,
    InvalidInstruction,
    InvalidPool,
    InvalidProof,
    InvalidRecipient,
    InvalidRoot,
    NullifierAlreadyUsed,
    PoolErrorKind,
)
from pool.instruction import Initialize, Shield, Withdraw
from pool.processor import Processor, processor_accounts, withdraw_accounts
from pool.tests import PAYER, PAYER_FUNDS, PROGRAM_ID, RECIPIENT, VALID_PROOF, c32
from zk.verifiers.canary import CanaryVerifier
from zk.verifiers.field import R
from zk.verifiers.merkle import ZERO32, build_levels, root_of


def test_initialize_creates_empty_pool(pool20: Processor):
    ledger = pool20.ledger()
    acc = pool20.accumulator()
    assert ledger.is_initialized()
    assert ledger.total_value == 0
    assert ledger.tree_height == 20
    assert acc.current_index == 0
    assert acc.current_root() == ZERO32
    assert pool20.bank.owner_of(pool20.pool_address) == PROGRAM_ID


def test_second_initialize_is_rejected(pool20: Processor):
    with pytest.raises(InvalidPool):
        pool20.initialize(PAYER, 20)
    assert pool20.ledger().tree_height == 20


@pytest.mark.parametrize("height", [0, 33, 200])
def test_initialize_rejects_bad_height(processor: Processor, height: int):
    with pytest.raises(InvalidPool):
        processor.initialize(PAYER, height)
    assert not processor.is_initialized()


def test_operations_on_uninitialized_pool(processor: Processor):
    with pytest.raises(InvalidPool):
        processor.shield(PAYER, 1, c32(1))
    with pytest.raises(InvalidPool):
        processor.withdraw(1, ZERO32, c32(2), RECIPIENT, VALID_PROOF)
    with pytest.raises(InvalidPool):
        processor.ledger()


def test_shield_then_withdraw_then_double_spend(pool20: Processor, poseidon):
    note = Note.random(poseidon)
    index = pool20.shield(PAYER, 1_000_000, note.commitment)

    assert index == 0
    assert pool20.ledger().total_value == 1_000_000
    assert pool20.accumulator().current_index == 1
    assert pool20.bank.balance(pool20.pool_address) == 1_000_000
    assert pool20.bank.balance(PAYER) == PAYER_FUNDS - 1_000_000

    root = pool20.accumulator().current_root()
    pool20.withdraw(1_000_000, root, note.nullifier_hash, RECIPIENT, VALID_PROOF)

    assert pool20.ledger().total_value == 0
    assert pool20.is_spent(note.nullifier_hash)
    assert pool20.bank.balance(RECIPIENT) == 1_000_000
    assert pool20.bank.balance(pool20.pool_address) == 0

    with pytest.raises(NullifierAlreadyUsed):
        pool20.withdraw(1_000_000, root, note.nullifier_hash, RECIPIENT, VALID_PROOF)


def test_withdraw_more_than_pool_holds(pool20: Processor):
    pool20.shield(PAYER, 500_000, c32(7))
    root = pool20.accumulator().current_root()
    with pytest.raises(InsufficientFunds):
        pool20.withdraw(1_000_000, root, c32(8), RECIPIENT, VALID_PROOF)
    assert pool20.ledger().total_value == 500_000
    assert not pool20.is_spent(c32(8))


def test_stale_root_is_rejected(pool20: Processor):
    pool20.shield(PAYER, 10, c32(1))
    old_root = pool20.accumulator().current_root()
    pool20.shield(PAYER, 10, c32(2))
    with pytest.raises(InvalidRoot):
        pool20.withdraw(10, old_root, c32(3), RECIPIENT, VALID_PROOF)
    with pytest.raises(InvalidRoot):
        pool20.withdraw(10, b"\x42" * 32, c32(3), RECIPIENT, VALID_PROOF)


def test_invalid_proof_is_rejected(pool20: Processor):
    pool20.shield(PAYER, 10, c32(1))
    root = pool20.accumulator().current_root()
    with pytest.raises(InvalidProof):
        pool20.withdraw(10, root, c32(3), RECIPIENT, b"not the canary")
    with pytest.raises(InvalidProof):
        pool20.withdraw(10, root, c32(3), RECIPIENT, b"")


def test_oversized_proof_is_rejected_as_invalid(bank, poseidon):
    proc = Processor(bank, PROGRAM_ID, poseidon, CanaryVerifier(), max_proof_bytes=8)
    proc.initialize(PAYER, 4)
    proc.shield(PAYER, 10, c32(1))
    root = proc.accumulator().current_root()
    assert len(VALID_PROOF) > 8
    with pytest.raises(InvalidProof):
        proc.withdraw(1, root, c32(3), RECIPIENT, VALID_PROOF)
    with pytest.raises(InvalidProof):
        proc.withdraw(1, root, c32(3), RECIPIENT, b"\x00" * 5000)
    with pytest.raises(InvalidRoot):
        proc.withdraw(1, ZERO32, c32(3), RECIPIENT, b"\x00" * 5000)
    assert not proc.is_spent(c32(3))
    assert proc.ledger().total_value == 10


def test_root_check_precedes_nullifier_check(pool20: Processor):
    pool20.shield(PAYER, 20, c32(1))
    root = pool20.accumulator().current_root()
    pool20.withdraw(5, root, c32(9), RECIPIENT, VALID_PROOF)
    with pytest.raises(InvalidRoot):
        pool20.withdraw(5, ZERO32, c32(9), RECIPIENT, VALID_PROOF)


def test_verifier_exception_counts_as_rejection(bank, poseidon):
    class Exploding:
        name = "exploding"

        def verify(self, proof, public_inputs):
            raise ValueError("malformed")

    proc = Processor(bank, PROGRAM_ID, poseidon, Exploding())
    proc.initialize(PAYER, 4)
    proc.shield(PAYER, 10, c32(1))
    with pytest.raises(InvalidProof):
        proc.withdraw(10, proc.accumulator().current_root(), c32(2), RECIPIENT, b"x")


def test_verifier_sees_public_inputs(bank, poseidon):
    seen = []

    class Recording(CanaryVerifier):
        def verify(self, proof, public_inputs):
            seen.append(public_inputs)
            return super().verify(proof, public_inputs)

    proc = Processor(bank, PROGRAM_ID, poseidon, Recording())
    proc.initialize(PAYER, 4)
    proc.shield(PAYER, 10, c32(1))
    root = proc.accumulator().current_root()
    proc.withdraw(7, root, c32(2), RECIPIENT, VALID_PROOF)

    (inputs,) = seen
    assert inputs.root == root
    assert inputs.nullifier_hash == c32(2)
    assert inputs.recipient == RECIPIENT
    assert inputs.amount == 7


def test_payer_without_funds(pool20: Processor):
    poor = b"\x01" * 32
    with pytest.raises(InsufficientFunds):
        pool20.shield(poor, 1, c32(1))
    assert pool20.accumulator().current_index == 0
    assert pool20.ledger().total_value == 0


def test_non_canonical_commitment_with_poseidon(pool20: Processor):
    with pytest.raises(InvalidCommitment):
        pool20.shield(PAYER, 1, R.to_bytes(32, "big"))
    assert pool20.accumulator().current_index == 0
    assert pool20.bank.balance(PAYER) == PAYER_FUNDS


def test_capacity_exceeded_leaves_state(bank, poseidon):
    proc = Processor(bank, PROGRAM_ID, poseidon, CanaryVerifier())
    proc.initialize(PAYER, 2)
    for i in range(4):
        proc.shield(PAYER, 1, c32(i + 1))
    before = bank.snapshot()
    with pytest.raises(CapacityExceeded):
        proc.shield(PAYER, 1, c32(99))
    assert bank.snapshot() == before
    assert proc.accumulator().current_index == 4


def test_incremental_root_matches_rebuilt_tree(bank, poseidon):
    proc = Processor(bank, PROGRAM_ID, poseidon, CanaryVerifier())
    proc.initialize(PAYER, 5)
    leaves = [c32(i * 31 + 5) for i in range(7)]
    for leaf in leaves:
        proc.shield(PAYER, 3, leaf)
    assert proc.accumulator().current_root() == root_of(build_levels(leaves, 5, poseidon))


def test_failed_withdraw_is_byte_for_byte_noop(pool20: Processor):
    pool20.shield(PAYER, 100, c32(1))
    root = pool20.accumulator().current_root()
    pool20.withdraw(40, root, c32(2), RECIPIENT, VALID_PROOF)
    before = pool20.bank.snapshot()

    failures = [
        (InvalidRoot, dict(amount=1, root=ZERO32, nullifier_hash=c32(3))),
        (NullifierAlreadyUsed, dict(amount=1, root=root, nullifier_hash=c32(2))),
        (InsufficientFunds, dict(amount=61, root=root, nullifier_hash=c32(3))),
    ]
    for exc, kw in failures:
        with pytest.raises(exc):
            pool20.withdraw(recipient=RECIPIENT, proof=VALID_PROOF, **kw)
        assert pool20.bank.snapshot() == before


def test_error_kind_is_exposed(pool20: Processor):
    with pytest.raises(InvalidRoot) as ei:
        pool20.withdraw(1, b"\x01" * 32, c32(2), RECIPIENT, VALID_PROOF)
    assert ei.value.kind is PoolErrorKind.INVALID_ROOT
    assert ei.value.to_dict()["code"] == "POOL/INVALID_ROOT"


# ---------------------------------------------------------------------------
# Wire entry point
# ---------------------------------------------------------------------------


def test_process_full_flow(processor: Processor):
    processor.process(Initialize(8).encode(), processor_accounts(processor, PAYER))
    processor.process(Shield(50, c32(5)).encode(), processor_accounts(processor, PAYER))
    root = processor.accumulator().current_root()

    ix = Withdraw(50, root, c32(6), RECIPIENT, VALID_PROOF)
    processor.process(ix.encode(), withdraw_accounts(processor, PAYER, c32(6), RECIPIENT))

    assert processor.ledger().total_value == 0
    assert processor.bank.balance(RECIPIENT) == 50
    assert processor.bank.exists(nullifier_address(PROGRAM_ID, c32(6)))


def test_process_rejects_wrong_pool_account(processor: Processor):
    accounts = processor_accounts(processor, PAYER)
    accounts[1] = AccountMeta(b"\x05" * 32, is_writable=True)
    with pytest.raises(InvalidPool):
        processor.process(Initialize(8).encode(), accounts)


def test_process_rejects_mismatched_recipient(pool20: Processor):
    pool20.shield(PAYER, 50, c32(5))
    root = pool20.accumulator().current_root()
    ix = Withdraw(50, root, c32(6), RECIPIENT, VALID_PROOF)
    accounts = withdraw_accounts(pool20, PAYER, c32(6), b"\xcc" * 32)
    with pytest.raises(InvalidRecipient):
        pool20.process(ix.encode(), accounts)
    assert pool20.ledger().total_value == 50


def test_process_rejects_wrong_nullifier_account(pool20: Processor):
    root = pool20.accumulator().current_root()
    ix = Withdraw(0, root, c32(6), RECIPIENT, VALID_PROOF)
    accounts = withdraw_accounts(pool20, PAYER, c32(7), RECIPIENT)
    with pytest.raises(InvalidPool):
        pool20.process(ix.encode(), accounts)


def test_process_requires_payer_signature(processor: Processor):
    accounts = processor_accounts(processor, PAYER)
    accounts[0] = AccountMeta(PAYER, is_signer=False, is_writable=True)
    with pytest.raises(InvalidInstruction):
        processor.process(Initialize(8).encode(), accounts)


def test_process_rejects_garbage(processor: Processor):
    with pytest.raises(InvalidInstruction):
        processor.process(b"\x07", processor_accounts(processor, PAYER))
    with pytest.raises(InvalidInstruction):
        processor.process(Initialize(8).encode(), [PAYER])


def test_pool_accounts_cannot_pay_deposits(pool20: Processor):
    pool20.shield(PAYER, 10, c32(1))
    pool20.bank.fund(pool20.pool_address, 5)
    pool20.bank.fund(pool20.tree_address, 5)
    for payer in (pool20.pool_address, pool20.tree_address):
        with pytest.raises(InvalidInstruction):
            pool20.shield(payer, 5, c32(2))
    assert pool20.accumulator().current_index == 1
    assert pool20.ledger().total_value == 10


def test_nullifier_account_cannot_pay_deposits(pool20: Processor):
    pool20.shield(PAYER, 10, c32(1))
    pool20.withdraw(0, pool20.accumulator().current_root(), c32(4), RECIPIENT, VALID_PROOF)
    spent_account = nullifier_address(PROGRAM_ID, c32(4))
    pool20.bank.fund(spent_account, 5)
    before = pool20.bank.snapshot()
    with pytest.raises(InvalidInstruction):
        pool20.shield(spent_account, 5, c32(2))
    assert pool20.bank.snapshot() == before


@pytest.mark.parametrize("max_height", [0, 33, 40])
def test_max_tree_height_is_bounded(bank, poseidon, max_height: int):
    with pytest.raises(ValueError):
        Processor(bank, PROGRAM_ID, poseidon, CanaryVerifier(), max_tree_height=max_height)


def test_readers_do_not_see_open_withdrawal(pool20: Processor):
    pool20.shield(PAYER, 10, c32(1))
    staged = threading.Event()
    release = threading.Event()
    seen = []

    def writer():
        try:
            with pool20.bank.transaction():
                pool20.nullifiers.record(c32(5))
                staged.set()
                release.wait(5)
                raise RuntimeError("abort")
        except RuntimeError:
            pass

    def reader():
        seen.append((pool20.is_spent(c32(5)), pool20.ledger().total_value))

    w = threading.Thread(target=writer)
    w.start()
    assert staged.wait(5)
    r = threading.Thread(target=reader)
    r.start()
    r.join(0.2)
    assert r.is_alive()

    release.set()
    w.join(5)
    r.join(5)
    assert seen == [(False, 10)]
    assert not pool20.is_spent(c32(5))
