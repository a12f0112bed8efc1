"""Conditional Gaussian mixtures p(x | parents, m)."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union

import numpy as np

from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..core.values import HybridValues, VectorValues, as_vector_values
from ..discrete.decision_tree import DecisionTree
from ..discrete.factor import DecisionTreeFactor
from ..linear.conditional import GaussianConditional
from .mixture import Mixture
from .mixture_factor import GaussianMixtureFactor


class GaussianMixture(Mixture):
    """A Gaussian conditional chosen by the values of discrete parents.

    Every component has the same continuous frontals and parents. Error is
    offset per component so that ``log_probability = log_constant - error``
    is a properly normalized log density in every mode, where
    ``log_constant`` is the largest component log-normalization constant.

    Attributes:
        frontals: Continuous frontal keys.
        parents: Continuous parent keys.
        log_constant: Max over components of their log normalization constant.
    """

    def __init__(
        self,
        frontals: Sequence[Key],
        parents: Sequence[Key],
        discrete_parents: Union[DiscreteKey, Sequence[DiscreteKey]],
        conditionals: Union[DecisionTree, Sequence[Optional[GaussianConditional]]],
    ) -> None:
        """Initialize a mixture.

        Args:
            frontals: Continuous frontal keys.
            parents: Continuous parent keys.
            discrete_parents: Keys selecting the component.
            conditionals: GaussianConditionals (None for pruned branches),
                as a DecisionTree or a row-major sequence over
                ``discrete_parents``.

        Raises:
            ValueError: If a component's keys differ from ``frontals`` and
                ``parents``, or if every component is null.
        """
        self.frontals = list(frontals)
        self.parents = list(parents)
        super().__init__(self.frontals + self.parents, discrete_parents, conditionals)
        components = self.components()
        if not components:
            raise ValueError("GaussianMixture needs at least one non-null component")
        self.log_constant = max(c.log_normalization_constant() for c in components)

    def _check_component(self, component: GaussianConditional) -> None:
        if component.frontals != self.frontals or set(component.parents) != set(self.parents):
            raise ValueError(
                f"Component p({component.frontals} | {component.parents}) does not match "
                f"mixture p({self.frontals} | {self.parents})"
            )

    @property
    def discrete_parents(self):
        return list(self.discrete_keys)

    def choose(self, assignment: Mapping[Key, int]) -> GaussianConditional:
        """Component for ``assignment``; raises PrunedBranchError if null."""
        return self(assignment)

    def _offset(self, component: GaussianConditional) -> float:
        return self.log_constant - component.log_normalization_constant()

    def error(self, values: HybridValues) -> float:
        component = self(values.discrete)
        return component.error(values.continuous) + self._offset(component)

    def log_probability(self, values: HybridValues) -> float:
        return self.log_constant - self.error(values)

    def evaluate(self, values: HybridValues) -> float:
        return float(np.exp(self.log_probability(values)))

    def error_tree(self, continuous: VectorValues) -> DecisionTree:
        """Error for every discrete assignment; pruned branches are inf."""
        continuous = as_vector_values(continuous)
        return self._map(lambda c: c.error(continuous) + self._offset(c), float(np.inf))

    def log_probability_tree(self, continuous: VectorValues) -> DecisionTree:
        """Log density for every discrete assignment; pruned branches are -inf."""
        continuous = as_vector_values(continuous)
        return self._map(lambda c: c.log_probability(continuous), float(-np.inf))

    def log_normalization_tree(self) -> DecisionTree:
        """Per-component log normalization constants; pruned branches are -inf."""
        return self._map(lambda c: c.log_normalization_constant(), float(-np.inf))

    def likelihood(
        self, frontal_values: VectorValues
    ) -> Union[GaussianMixtureFactor, DecisionTreeFactor]:
        """Fix the frontals at measured values.

        Each component becomes a Jacobian factor on the continuous parents
        whose log-normalizer is ``-log_normalization_constant`` of that
        component. Without continuous parents the result is a discrete
        factor holding each component's density at the measurement.
        """
        frontal_values = as_vector_values(frontal_values)
        if not self.parents:
            values = self._map(
                lambda c: float(np.exp(c.log_probability(frontal_values))), 0.0
            )
            return DecisionTreeFactor(self.discrete_keys, values)
        factors = self._map(lambda c: c.likelihood(frontal_values))
        normalizers = self._map(lambda c: -c.log_normalization_constant(), 0.0)
        return GaussianMixtureFactor(self.parents, self.discrete_keys, factors, normalizers)

    def as_factor(self) -> GaussianMixtureFactor:
        """Unmeasured mixture as a factor over frontals and parents, keeping normalization."""
        factors = self._map(lambda c: c.as_factor())
        normalizers = self._map(lambda c: -c.log_normalization_constant(), 0.0)
        return GaussianMixtureFactor(self.continuous_keys, self.discrete_keys, factors, normalizers)

    def prune(self, kept: Sequence[Mapping[Key, int]]) -> "GaussianMixture":
        """Copy with every component nulled unless it agrees with a kept assignment."""
        return GaussianMixture(self.frontals, self.parents, self.discrete_keys, self._kept_tree(kept))

    def sample(
        self, values: HybridValues, rng: Optional[np.random.Generator] = None
    ) -> VectorValues:
        """Sample the frontals from the component chosen by ``values.discrete``."""
        return self(values.discrete).sample(values.continuous, rng)

    def equals(self, other: "GaussianMixture", tol: float = 1e-9) -> bool:
        return (
            isinstance(other, GaussianMixture)
            and self.frontals == other.frontals
            and self.parents == other.parents
            and super().equals(other, tol)
        )

    def to_string(self, formatter: KeyFormatter = default_key_formatter, leaf_formatter=None) -> str:
        frontal_str = " ".join(formatter(k) for k in self.frontals)
        given = [formatter(k) for k in self.parents] + [formatter(dk.key) for dk in self.discrete_keys]
        header = f"GaussianMixture P( {frontal_str} | {' '.join(given)} )"
        return header + "\n" + super().to_string(formatter, leaf_formatter)

    def __repr__(self) -> str:
        return (
            f"GaussianMixture(frontals={self.frontals}, parents={self.parents}, "
            f"discrete={[dk.key for dk in self.discrete_keys]})"
        )
