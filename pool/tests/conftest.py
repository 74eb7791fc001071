from __future__ import annotations

import pytest

from execution.runtime.bank import Bank
from pool.processor import Processor
from pool.tests import PAYER, PAYER_FUNDS, PROGRAM_ID
from zk.verifiers.canary import CanaryVerifier
from zk.verifiers.merkle import Sha3Hasher
from zk.verifiers.poseidon import PoseidonHasher


@pytest.fixture(scope="session")
def poseidon() -> PoseidonHasher:
    return PoseidonHasher()


@pytest.fixture
def sha3() -> Sha3Hasher:
    return Sha3Hasher()


@pytest.fixture
def bank() -> Bank:
    b = Bank()
    b.fund(PAYER, PAYER_FUNDS)
    return b


@pytest.fixture
def processor(bank: Bank, poseidon: PoseidonHasher) -> Processor:
    return Processor(bank, PROGRAM_ID, poseidon, CanaryVerifier())


@pytest.fixture
def pool20(processor: Processor) -> Processor:
    processor.initialize(PAYER, 20)
    return processor
