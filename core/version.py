"""
Version helpers for the Animica shielded pool.

Resolution order:
    1) ANIMICA_VERSION env var (authoritative override)
    2) installed distribution metadata (``animica-shielded-pool``)
    3) DEFAULT_VERSION

No external dependencies; safe to import very early.
"""

from __future__ import annotations

import os
from importlib import metadata

DEFAULT_VERSION = "0.1.0"
DIST_NAME = "animica-shielded-pool"


def resolve_version() -> str:
    env = os.getenv("ANIMICA_VERSION")
    if env:
        return env.strip()
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return DEFAULT_VERSION


__version__ = resolve_version()


if __name__ == "__main__":
    print(__version__)
