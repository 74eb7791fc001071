# -*- coding: utf-8 -*-
"""
tests.property package bootstrap.

Shared Hypothesis configuration for the pool's property tests.

On import:
- Registers named profiles (dev/ci/fast/stress).
- Selects the active one from HYPOTHESIS_PROFILE, otherwise "ci" when the CI
  env var is truthy and "dev" locally.
- Re-exports `given`, `settings` and `st` plus a few pool-shaped strategies.

Environment knobs:
- HYPOTHESIS_PROFILE=dev|ci|fast|stress
- CI=true
"""
from __future__ import annotations

import os
from typing import Final, Tuple

from hypothesis import HealthCheck, Verbosity, given, settings
from hypothesis import strategies as st


def _hc(*items: HealthCheck) -> Tuple[HealthCheck, ...]:
    return items


# Each example replays a whole pool; keep counts modest and deadlines off.
settings.register_profile(
    "dev",
    settings(
        max_examples=40,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow),
        verbosity=Verbosity.normal,
    ),
)

settings.register_profile(
    "ci",
    settings(
        max_examples=80,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow),
        verbosity=Verbosity.verbose,
        derandomize=True,
    ),
)

settings.register_profile(
    "fast",
    settings(max_examples=10, deadline=None, suppress_health_check=_hc(HealthCheck.too_slow)),
)

settings.register_profile(
    "stress",
    settings(
        max_examples=500,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow, HealthCheck.data_too_large),
        derandomize=True,
    ),
)


def _env_truthy(name: str) -> bool:
    v = os.getenv(name)
    return (v or "").lower() not in ("", "0", "false", "no", "off")


_active: Final[str] = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev")
settings.load_profile(_active)


def active_profile() -> str:
    return _active


def b32():
    """32-byte values (any bit pattern; fine for the SHA3 hasher)."""
    return st.binary(min_size=32, max_size=32)


def amounts(max_value: int = 10**12):
    return st.integers(min_value=0, max_value=max_value)


__all__ = ["st", "given", "settings", "active_profile", "b32", "amounts"]
