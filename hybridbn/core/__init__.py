"""Core value types, keys, errors and random number configuration."""

from .errors import (
    HybridError,
    IllFormedNodeError,
    IndeterminantSystemError,
    MissingKeyError,
    MissingMeasurementError,
    PrunedBranchError,
    TopologicalOrderError,
    WrongVariantError,
)
from .keys import DiscreteKey, Key, KeyFormatter, default_key_formatter, symbol
from .rng import default_rng, reset_default_rng
from .values import DiscreteValues, HybridValues, VectorValues

__all__ = [
    "DiscreteKey",
    "Key",
    "KeyFormatter",
    "default_key_formatter",
    "symbol",
    "DiscreteValues",
    "VectorValues",
    "HybridValues",
    "default_rng",
    "reset_default_rng",
    "HybridError",
    "MissingKeyError",
    "PrunedBranchError",
    "WrongVariantError",
    "MissingMeasurementError",
    "IllFormedNodeError",
    "TopologicalOrderError",
    "IndeterminantSystemError",
]
