"""hybridbn - hybrid discrete/continuous Bayes nets on decision trees and numpy."""

__version__ = "0.1.0"

# Core value types
from .core import (
    DiscreteKey,
    DiscreteValues,
    HybridError,
    HybridValues,
    IllFormedNodeError,
    IndeterminantSystemError,
    MissingKeyError,
    MissingMeasurementError,
    PrunedBranchError,
    TopologicalOrderError,
    VectorValues,
    WrongVariantError,
    default_rng,
    reset_default_rng,
    symbol,
)

# Diagnostics
from .diagnostics import (
    assert_leaf_budget,
    assert_normalized,
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

# Discrete
from .discrete import DecisionTree, DecisionTreeFactor, DiscreteConditional

# Hybrid
from .hybrid import (
    GaussianMixture,
    GaussianMixtureFactor,
    HybridBayesNet,
    HybridCategory,
    HybridConditional,
    HybridFactor,
    HybridGaussianFactorGraph,
)

# Linear
from .linear import (
    GaussianBayesNet,
    GaussianConditional,
    GaussianFactorGraph,
    JacobianFactor,
    NoiseModel,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level

__all__ = [
    "__version__",
    "DiscreteKey",
    "DiscreteValues",
    "VectorValues",
    "HybridValues",
    "symbol",
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
    "DecisionTree",
    "DecisionTreeFactor",
    "DiscreteConditional",
    "NoiseModel",
    "JacobianFactor",
    "GaussianConditional",
    "GaussianBayesNet",
    "GaussianFactorGraph",
    "HybridCategory",
    "HybridConditional",
    "HybridFactor",
    "GaussianMixture",
    "GaussianMixtureFactor",
    "HybridBayesNet",
    "HybridGaussianFactorGraph",
    "assert_normalized",
    "assert_leaf_budget",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "get_logger",
    "set_log_level",
    "configure_logging",
]
