"""Package-wide default random number generator.

``sample()`` methods accept an explicit ``numpy.random.Generator``. When none
is given they draw from a shared generator seeded from the HYBRIDBN_SEED
environment variable (default 42) so that repeated runs are reproducible.
"""

from __future__ import annotations

import os
from typing import Optional

import numpy as np

_SEED_ENV_VAR = "HYBRIDBN_SEED"
_DEFAULT_SEED = 42


def _seed_from_env() -> int:
    raw = os.getenv(_SEED_ENV_VAR, str(_DEFAULT_SEED))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{_SEED_ENV_VAR} must be an integer, got {raw!r}") from None


_default_rng: np.random.Generator = np.random.default_rng(_seed_from_env())


def default_rng() -> np.random.Generator:
    """Return the shared default generator."""
    return _default_rng


def reset_default_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Reseed the shared default generator.

    Args:
        seed: New seed. If None, re-reads HYBRIDBN_SEED.

    Returns:
        The new default generator.
    """
    global _default_rng
    _default_rng = np.random.default_rng(_seed_from_env() if seed is None else seed)
    return _default_rng


def resolve_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    """Return ``rng`` if given, else the shared default generator."""
    return rng if rng is not None else _default_rng
