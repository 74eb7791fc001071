"""
Repository-wide pytest configuration.

- Registers the ``slow`` marker (pairing-based Groth16 checks).
- ``--runslow`` / ANIMICA_RUN_SLOW=1 opts into slow tests; they are skipped
  otherwise.
- Resets the bound logging context between tests so trace ids never leak.
"""

from __future__ import annotations

import os

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--runslow",
        action="store_true",
        default=os.getenv("ANIMICA_RUN_SLOW", "") in ("1", "true", "yes"),
        help="run tests marked slow (env: ANIMICA_RUN_SLOW)",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: pairing-heavy test, needs --runslow")


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --runslow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def _clean_log_context():
    from core.logging import clear_context

    clear_context()
    yield
    clear_context()
