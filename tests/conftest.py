"""Pytest configuration and shared fixtures for hybridbn tests.

This module provides:
- A deterministic numpy RNG fixture
- Reseeding of numpy's global generator and the package default generator
"""

import os

import numpy as np
import pytest

from hybridbn.core.rng import reset_default_rng


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    This ensures tests are reproducible while allowing override for debugging.

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set global random seeds for reproducibility.

    This fixture runs automatically for every test to ensure deterministic behavior.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    np.random.seed(seed)
    reset_default_rng(seed)
