"""Linear-Gaussian building blocks: noise models, factors, conditionals."""

from .bayes_net import GaussianBayesNet
from .conditional import GaussianConditional
from .factor_graph import EliminationResult, GaussianFactorGraph
from .jacobian_factor import JacobianFactor
from .noise import NoiseModel

__all__ = [
    "EliminationResult",
    "GaussianBayesNet",
    "GaussianConditional",
    "GaussianFactorGraph",
    "JacobianFactor",
    "NoiseModel",
]
