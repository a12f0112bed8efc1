"""Hybrid factors: one node type over discrete, Gaussian and mixture factors."""

from __future__ import annotations

from typing import Union

import numpy as np

from ..core.errors import WrongVariantError
from ..core.keys import KeyFormatter, default_key_formatter
from ..core.values import HybridValues, VectorValues, as_vector_values
from ..discrete.decision_tree import DecisionTree
from ..discrete.factor import DecisionTreeFactor
from ..linear.jacobian_factor import JacobianFactor
from .mixture_factor import GaussianMixtureFactor
from .node import HybridCategory, HybridNode

Inner = Union[DecisionTreeFactor, JacobianFactor, GaussianMixtureFactor]


class HybridFactor(HybridNode):
    """A factor in a hybrid factor graph, tagged by the kinds of keys it touches."""

    def __init__(self, inner: Inner) -> None:
        if isinstance(inner, DecisionTreeFactor):
            super().__init__([], inner.discrete_keys)
        elif isinstance(inner, JacobianFactor):
            super().__init__(inner.keys, [])
        elif isinstance(inner, GaussianMixtureFactor):
            super().__init__(inner.continuous_keys, inner.discrete_keys)
        else:
            raise TypeError(f"Cannot wrap {type(inner).__name__} in a HybridFactor")
        self._inner = inner

    @property
    def inner(self) -> Inner:
        return self._inner

    def as_discrete(self) -> DecisionTreeFactor:
        if self.category is not HybridCategory.DISCRETE:
            raise WrongVariantError(f"{self.header()} is not a discrete factor")
        return self._inner

    def as_gaussian(self) -> JacobianFactor:
        if self.category is not HybridCategory.CONTINUOUS:
            raise WrongVariantError(f"{self.header()} is not a Gaussian factor")
        return self._inner

    def as_mixture(self) -> GaussianMixtureFactor:
        if self.category is not HybridCategory.HYBRID:
            raise WrongVariantError(f"{self.header()} is not a Gaussian mixture factor")
        return self._inner

    def error(self, values: HybridValues) -> float:
        if self.category is HybridCategory.DISCRETE:
            return self._inner.error(values.discrete)
        if self.category is HybridCategory.CONTINUOUS:
            return self._inner.error(values.continuous)
        return self._inner.error(values)

    def error_tree(self, continuous: VectorValues) -> DecisionTree:
        """Error as a function of the discrete keys at fixed continuous values."""
        if self.category is HybridCategory.DISCRETE:
            return self._inner.error_tree()
        if self.category is HybridCategory.CONTINUOUS:
            return DecisionTree.leaf(self._inner.error(as_vector_values(continuous)))
        return self._inner.error_tree(continuous)

    def evaluate(self, values: HybridValues) -> float:
        return float(np.exp(-self.error(values)))

    def equals(self, other: "HybridFactor", tol: float = 1e-9) -> bool:
        if not isinstance(other, HybridFactor) or not self._same_keys(other):
            return False
        return self._inner.equals(other._inner, tol)

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        return self.header(formatter) + "\n" + self._inner.to_string(formatter)

    def __repr__(self) -> str:
        return f"HybridFactor({self._inner!r})"
