"""Diagnostics and debugging utilities for hybridbn."""

from .core import assert_leaf_budget, assert_normalized, total_mass
from .debug_mode import (
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

__all__ = [
    "total_mass",
    "assert_normalized",
    "assert_leaf_budget",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
]
