"""Hybrid conditionals: one node type over discrete, Gaussian and mixture variants."""

from __future__ import annotations

from typing import List, Optional, Union

import numpy as np

from ..core.errors import WrongVariantError
from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..core.values import HybridValues
from ..discrete.conditional import DiscreteConditional
from ..linear.conditional import GaussianConditional
from .gaussian_mixture import GaussianMixture
from .node import HybridCategory, HybridNode

Inner = Union[DiscreteConditional, GaussianConditional, GaussianMixture]


class HybridConditional(HybridNode):
    """A conditional in a hybrid Bayes net.

    Wraps exactly one of DiscreteConditional (category Discrete),
    GaussianConditional (Continuous) or GaussianMixture (Hybrid), and
    exposes the same evaluation contract for all three.

    Examples:
        >>> m = DiscreteKey("m", 2)
        >>> node = HybridConditional(DiscreteConditional(m, "1/1"))
        >>> node.header()
        'Discrete [m]'
    """

    def __init__(self, inner: Inner) -> None:
        if isinstance(inner, DiscreteConditional):
            continuous: List[Key] = []
            discrete: List[DiscreteKey] = inner.frontals + inner.parents
            frontals: List[Key] = inner.frontal_keys()
        elif isinstance(inner, GaussianConditional):
            continuous, discrete, frontals = inner.keys, [], inner.frontals
        elif isinstance(inner, GaussianMixture):
            continuous, discrete, frontals = inner.continuous_keys, inner.discrete_keys, inner.frontals
        else:
            raise TypeError(f"Cannot wrap {type(inner).__name__} in a HybridConditional")
        super().__init__(continuous, discrete)
        self.frontals: List[Key] = list(frontals)
        self._inner = inner

    @property
    def inner(self) -> Inner:
        return self._inner

    @property
    def nr_frontals(self) -> int:
        return len(self.frontals)

    @property
    def parents(self) -> List[Key]:
        return [key for key in self.keys if key not in self.frontals]

    def continuous_parents(self) -> List[Key]:
        return [key for key in self.continuous_keys if key not in self.frontals]

    def discrete_parents(self) -> List[DiscreteKey]:
        return [dk for dk in self.discrete_keys if dk.key not in self.frontals]

    def frontal_discrete_keys(self) -> List[DiscreteKey]:
        return [dk for dk in self.discrete_keys if dk.key in self.frontals]

    def as_discrete(self) -> DiscreteConditional:
        if self.category is not HybridCategory.DISCRETE:
            raise WrongVariantError(f"{self.header()} is not a discrete conditional")
        return self._inner

    def as_gaussian(self) -> GaussianConditional:
        if self.category is not HybridCategory.CONTINUOUS:
            raise WrongVariantError(f"{self.header()} is not a Gaussian conditional")
        return self._inner

    def as_mixture(self) -> GaussianMixture:
        if self.category is not HybridCategory.HYBRID:
            raise WrongVariantError(f"{self.header()} is not a Gaussian mixture")
        return self._inner

    def error(self, values: HybridValues) -> float:
        if self.category is HybridCategory.DISCRETE:
            return self._inner.error(values.discrete)
        if self.category is HybridCategory.CONTINUOUS:
            return self._inner.error(values.continuous)
        return self._inner.error(values)

    def log_probability(self, values: HybridValues) -> float:
        if self.category is HybridCategory.DISCRETE:
            return self._inner.log_probability(values.discrete)
        if self.category is HybridCategory.CONTINUOUS:
            return self._inner.log_probability(values.continuous)
        return self._inner.log_probability(values)

    def evaluate(self, values: HybridValues) -> float:
        return float(np.exp(self.log_probability(values)))

    def sample(self, values: HybridValues, rng: Optional[np.random.Generator] = None) -> HybridValues:
        """Sample the frontals given parent values; returns only the new values."""
        if self.category is HybridCategory.DISCRETE:
            return HybridValues(discrete=self._inner.sample(values.discrete, rng))
        if self.category is HybridCategory.CONTINUOUS:
            return HybridValues(self._inner.sample(values.continuous, rng))
        return HybridValues(self._inner.sample(values, rng))

    def equals(self, other: "HybridConditional", tol: float = 1e-9) -> bool:
        if not isinstance(other, HybridConditional) or not self._same_keys(other):
            return False
        return self._inner.equals(other._inner, tol)

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        return self.header(formatter) + "\n" + self._inner.to_string(formatter)

    def __repr__(self) -> str:
        return f"HybridConditional({self._inner!r})"
