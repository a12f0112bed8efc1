"""Hybrid discrete/continuous conditionals, factors, Bayes nets and factor graphs."""

from .bayes_net import HybridBayesNet
from .conditional import HybridConditional
from .factor import HybridFactor
from .factor_graph import HybridGaussianFactorGraph
from .gaussian_mixture import GaussianMixture
from .mixture import Mixture
from .mixture_factor import GaussianMixtureFactor, MixtureComponent
from .node import HybridCategory, HybridNode

__all__ = [
    "HybridCategory",
    "HybridNode",
    "Mixture",
    "MixtureComponent",
    "GaussianMixture",
    "GaussianMixtureFactor",
    "HybridConditional",
    "HybridFactor",
    "HybridBayesNet",
    "HybridGaussianFactorGraph",
]
