"""
pool.processor: the Initialize / Shield / Withdraw state machine.

The processor owns every transition of the three pool structures:

    pool account    PoolLedger          (initialized, tree_height, total_value)
    tree account    MerkleAccumulator   (height, index, root, frontier)
    nullifier PDAs  NullifierRegistry   (one account per spent nullifier)

Each instruction runs inside one ``bank.transaction()``. All checks happen
against in-memory copies of the records; the records are written back only
after every check passed, and the bank discards all staged writes if
anything raises. A rejected instruction therefore leaves the ledger total,
root and nullifier set exactly as they were.

Account lists for `process` (all `AccountMeta` or raw 32-byte keys):

    Initialize   [payer, pool, merkle_tree]
    Shield       [payer, pool, merkle_tree]
    Withdraw     [payer, pool, merkle_tree, nullifier, recipient]
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar, Union

from core.errors import DeserializationError
from core.logging import bind, trace_scope
from core.utils.bytes import U64_MAX
from execution.errors import InvalidAccess
from execution.runtime.bank import AccountMeta, Bank
from execution.state.apply_balance import BalanceOverflow, InsufficientBalance
from zk.verifiers import ProofVerifier, PublicInputs, ZKError
from zk.verifiers.merkle import HashOracle

from .addresses import merkle_tree_address, nullifier_address, pool_address
from .codec import (
    POOL_RECORD_SIZE,
    decode_merkle,
    decode_pool,
    encode_merkle,
    encode_pool,
    merkle_record_size,
)
from .errors import (
    InsufficientFunds,
    InvalidInstruction,
    InvalidPool,
    InvalidProof,
    InvalidRecipient,
    InvalidRoot,
    NullifierAlreadyUsed,
    Overflow,
    PoolError,
)
from .instruction import (
    DEFAULT_MAX_PROOF_BYTES,
    Initialize,
    Shield,
    Withdraw,
    decode_instruction,
)
from .ledger import PoolLedger
from .merkle_tree import DEFAULT_MAX_HEIGHT, MerkleAccumulator
from .nullifiers import NullifierRegistry

log = logging.getLogger(__name__)

T = TypeVar("T")
AccountRef = Union[AccountMeta, bytes]


def _key(ref: AccountRef) -> bytes:
    return ref.pubkey if isinstance(ref, AccountMeta) else bytes(ref)


def _is_signer(ref: AccountRef) -> bool:
    # raw keys carry no flags; treat them as signed by the caller
    return ref.is_signer if isinstance(ref, AccountMeta) else True


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or not (0 <= amount <= U64_MAX):
        raise InvalidInstruction("amount must be a u64", amount=str(amount))


def _check_b32(name: str, v: bytes) -> bytes:
    if not isinstance(v, (bytes, bytearray)) or len(v) != 32:
        raise InvalidInstruction(f"{name} must be 32 bytes", field=name)
    return bytes(v)


class Processor:
    def __init__(
        self,
        bank: Bank,
        program_id: bytes,
        hasher: HashOracle,
        verifier: ProofVerifier,
        *,
        max_tree_height: int = DEFAULT_MAX_HEIGHT,
        max_proof_bytes: int = DEFAULT_MAX_PROOF_BYTES,
    ) -> None:
        if len(program_id) != 32:
            raise ValueError("program_id must be 32 bytes")
        if not (1 <= max_tree_height <= DEFAULT_MAX_HEIGHT):
            raise ValueError(f"max_tree_height must be within 1..{DEFAULT_MAX_HEIGHT}")
        self.bank = bank
        self.program_id = bytes(program_id)
        self.hasher = hasher
        self.verifier = verifier
        self.max_tree_height = max_tree_height
        self.max_proof_bytes = max_proof_bytes
        self.pool_address = pool_address(self.program_id)
        self.tree_address = merkle_tree_address(self.program_id)
        self.nullifiers = NullifierRegistry(bank, self.program_id)

    # ------------------------------------------------------------------ #
    # Wire entry point
    # ------------------------------------------------------------------ #

    def process(self, instruction_data: bytes, accounts: Sequence[AccountRef]) -> None:
        ix = decode_instruction(instruction_data, max_proof_bytes=self.max_proof_bytes)
        if isinstance(ix, Initialize):
            payer = self._check_accounts(accounts, 3)
            self.initialize(payer, ix.height)
        elif isinstance(ix, Shield):
            payer = self._check_accounts(accounts, 3)
            self.shield(payer, ix.amount, ix.commitment)
        else:
            payer = self._check_accounts(accounts, 5)
            if _key(accounts[3]) != nullifier_address(self.program_id, ix.nullifier_hash):
                raise InvalidPool("nullifier account does not match nullifier hash")
            self.withdraw(
                ix.amount,
                ix.root,
                ix.nullifier_hash,
                ix.recipient,
                ix.proof,
                recipient_account=_key(accounts[4]),
            )

    def _check_accounts(self, accounts: Sequence[AccountRef], need: int) -> bytes:
        if len(accounts) < need:
            raise InvalidInstruction("not enough accounts", need=need, have=len(accounts))
        if not _is_signer(accounts[0]):
            raise InvalidInstruction("payer must sign")
        if _key(accounts[1]) != self.pool_address:
            raise InvalidPool("pool account does not match derived address")
        if _key(accounts[2]) != self.tree_address:
            raise InvalidPool("merkle tree account does not match derived address")
        return _key(accounts[0])

    # ------------------------------------------------------------------ #
    # Instructions
    # ------------------------------------------------------------------ #

    def initialize(self, payer: bytes, height: int) -> None:
        def run() -> None:
            with self.bank.transaction():
                if self.bank.exists(self.pool_address) or self.bank.exists(self.tree_address):
                    raise InvalidPool("pool already initialized")
                acc = MerkleAccumulator.initialize(
                    height, self.hasher, max_height=self.max_tree_height
                )
                ledger = PoolLedger.create(height)
                self.bank.create(self.pool_address, POOL_RECORD_SIZE, self.program_id)
                self.bank.create(self.tree_address, merkle_record_size(height), self.program_id)
                self._store(ledger, acc)
            log.info("pool initialized height=%d payer=%s", height, payer.hex())

        self._run("initialize", run)

    def shield(self, payer: bytes, amount: int, commitment: bytes) -> int:
        """Deposit ``amount`` under ``commitment``; returns the leaf index."""
        _check_amount(amount)
        commitment = _check_b32("commitment", commitment)

        def run() -> int:
            with self.bank.transaction():
                ledger, acc = self._load()
                if payer in (self.pool_address, self.tree_address):
                    raise InvalidInstruction("payer cannot be a pool account")
                index = acc.append(commitment)
                ledger.credit(amount)
                try:
                    self.bank.transfer(payer, self.pool_address, amount, signer=payer)
                except InsufficientBalance as e:
                    raise InsufficientFunds(
                        "payer cannot cover deposit", payer=payer, amount=amount
                    ) from e
                except InvalidAccess as e:
                    raise InvalidInstruction("payer cannot authorize the deposit", payer=payer) from e
                except BalanceOverflow as e:
                    raise Overflow("pool custody would exceed u64") from e
                self._store(ledger, acc)
            log.info(
                "shielded amount=%d index=%d root=%s", amount, index, acc.current_root().hex()
            )
            return index

        return self._run("shield", run)

    def withdraw(
        self,
        amount: int,
        root: bytes,
        nullifier_hash: bytes,
        recipient: bytes,
        proof: bytes,
        *,
        recipient_account: Optional[bytes] = None,
    ) -> None:
        """
        Release ``amount`` to ``recipient`` against a proof of a note in the
        current tree. ``recipient_account`` is the account supplied with the
        instruction; when given it must equal ``recipient``.
        """
        _check_amount(amount)
        root = _check_b32("root", root)
        nullifier_hash = _check_b32("nullifier_hash", nullifier_hash)
        recipient = _check_b32("recipient", recipient)

        def run() -> None:
            with self.bank.transaction():
                ledger, acc = self._load()
                if recipient_account is not None and recipient_account != recipient:
                    raise InvalidRecipient(recipient=recipient, account=recipient_account)
                if recipient in (self.pool_address, self.tree_address):
                    raise InvalidRecipient("recipient cannot be a pool account")
                if root != acc.current_root():
                    raise InvalidRoot(root=root, current=acc.current_root())
                if self.nullifiers.is_spent(nullifier_hash):
                    raise NullifierAlreadyUsed(nullifier_hash=nullifier_hash)
                inputs = PublicInputs(root, nullifier_hash, recipient, amount)
                if not self._verify(bytes(proof), inputs):
                    raise InvalidProof(verifier=getattr(self.verifier, "name", "?"))
                if ledger.total_value < amount:
                    raise InsufficientFunds(total_value=ledger.total_value, amount=amount)

                self.nullifiers.record(nullifier_hash)
                ledger.debit(amount)
                try:
                    self.bank.transfer(
                        self.pool_address, recipient, amount, signer=self.program_id
                    )
                except InsufficientBalance as e:
                    raise InsufficientFunds("pool custody below ledger total") from e
                except InvalidAccess as e:
                    raise InvalidPool("pool custody not owned by pool program") from e
                except BalanceOverflow as e:
                    raise Overflow("recipient balance would exceed u64") from e
                self._store(ledger, acc)
            log.info("withdrew amount=%d nullifier=%s", amount, nullifier_hash.hex())

        self._run("withdraw", run)

    # ------------------------------------------------------------------ #
    # Read views
    # ------------------------------------------------------------------ #

    def ledger(self) -> PoolLedger:
        with self.bank.transaction():
            return self._load()[0]

    def accumulator(self) -> MerkleAccumulator:
        with self.bank.transaction():
            return self._load()[1]

    def is_spent(self, nullifier_hash: bytes) -> bool:
        return self.nullifiers.is_spent(nullifier_hash)

    def is_initialized(self) -> bool:
        return self.bank.exists(self.pool_address)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _run(self, name: str, fn: Callable[[], T]) -> T:
        with trace_scope():
            bind(component="pool", program=self.program_id.hex()[:16], instruction=name)
            try:
                return fn()
            except PoolError as e:
                log.warning("%s rejected: %s", name, e.kind.name, extra={"error": e.to_dict()})
                raise

    def _verify(self, proof: bytes, inputs: PublicInputs) -> bool:
        if len(proof) > self.max_proof_bytes:
            log.debug("proof of %d bytes exceeds limit %d", len(proof), self.max_proof_bytes)
            return False
        try:
            return bool(self.verifier.verify(proof, inputs))
        except (ZKError, ValueError, TypeError, ArithmeticError) as e:
            log.debug("verifier raised %s; treating proof as invalid", type(e).__name__)
            return False

    def _read_owned(self, address: bytes, what: str) -> bytes:
        if not self.bank.exists(address):
            raise InvalidPool(f"{what} account does not exist")
        if self.bank.owner_of(address) != self.program_id:
            raise InvalidPool(f"{what} account not owned by pool program")
        return self.bank.read(address)

    def _load(self) -> Tuple[PoolLedger, MerkleAccumulator]:
        try:
            pool_rec = decode_pool(self._read_owned(self.pool_address, "pool"))
            tree_rec = decode_merkle(self._read_owned(self.tree_address, "merkle tree"))
        except DeserializationError as e:
            raise InvalidPool(f"corrupt pool account: {e.message}", **e.data) from e
        ledger = PoolLedger(pool_rec)
        ledger.require_initialized()
        if tree_rec.height != ledger.tree_height:
            raise InvalidPool(
                "tree height disagrees with pool record",
                pool=ledger.tree_height,
                tree=tree_rec.height,
            )
        acc = MerkleAccumulator.from_record(
            tree_rec, self.hasher, max_height=self.max_tree_height
        )
        return ledger, acc

    def _store(self, ledger: PoolLedger, acc: MerkleAccumulator) -> None:
        try:
            self.bank.write(self.pool_address, encode_pool(ledger.record), program=self.program_id)
            self.bank.write(
                self.tree_address, encode_merkle(acc.to_record()), program=self.program_id
            )
        except InvalidAccess as e:
            raise InvalidPool(f"cannot write pool accounts: {e.message}") from e


def processor_accounts(processor: Processor, payer: bytes) -> List[AccountMeta]:
    """Account list for Initialize and Shield."""
    return [
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(processor.pool_address, is_writable=True),
        AccountMeta(processor.tree_address, is_writable=True),
    ]


def withdraw_accounts(
    processor: Processor, payer: bytes, nullifier_hash: bytes, recipient: bytes
) -> List[AccountMeta]:
    return processor_accounts(processor, payer) + [
        AccountMeta(nullifier_address(processor.program_id, nullifier_hash), is_writable=True),
        AccountMeta(recipient, is_writable=True),
    ]


__all__ = ["Processor", "processor_accounts", "withdraw_accounts"]
