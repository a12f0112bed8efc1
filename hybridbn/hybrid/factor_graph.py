"""Hybrid Gaussian factor graphs and their sequential elimination."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Union

import numpy as np

from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..core.values import HybridValues, VectorValues, as_vector_values
from ..diagnostics.core import assert_normalized
from ..diagnostics.debug_mode import is_debug_enabled
from ..discrete.conditional import DiscreteConditional
from ..discrete.decision_tree import DecisionTree
from ..discrete.factor import DecisionTreeFactor, enumerate_assignments, union_keys
from ..linear.factor_graph import GaussianFactorGraph
from ..linear.jacobian_factor import JacobianFactor
from ..logging import get_logger
from .factor import HybridFactor
from .gaussian_mixture import GaussianMixture
from .mixture_factor import GaussianMixtureFactor, add_graph_trees
from .node import HybridCategory

logger = get_logger(__name__)

FactorLike = Union[HybridFactor, DecisionTreeFactor, JacobianFactor, GaussianMixtureFactor]


def _same_conditional(a, b) -> bool:
    if a is None or b is None:
        return a is b
    return a.equals(b)


class HybridGaussianFactorGraph:
    """A collection of discrete, Gaussian and Gaussian mixture factors.

    The graph's error at (x, m) is the sum of its factors' errors; its
    unnormalized density is exp(-error).
    """

    def __init__(self, factors: Optional[Iterable[FactorLike]] = None) -> None:
        self.factors: List[HybridFactor] = []
        for factor in factors or []:
            self.push_back(factor)

    def push_back(self, factor: FactorLike) -> None:
        if not isinstance(factor, HybridFactor):
            factor = HybridFactor(factor)
        self.factors.append(factor)

    def __len__(self) -> int:
        return len(self.factors)

    def __iter__(self) -> Iterator[HybridFactor]:
        return iter(self.factors)

    def __getitem__(self, index: int) -> HybridFactor:
        return self.factors[index]

    def continuous_keys(self) -> List[Key]:
        """Continuous keys in order of first appearance."""
        seen: List[Key] = []
        for factor in self.factors:
            for key in factor.continuous_keys:
                if key not in seen:
                    seen.append(key)
        return seen

    def discrete_keys(self) -> List[DiscreteKey]:
        """Discrete keys in order of first appearance."""
        return union_keys(*(factor.discrete_keys for factor in self.factors))

    def error(self, values: HybridValues) -> float:
        return float(sum(factor.error(values) for factor in self.factors))

    def error_tree(self, continuous: VectorValues) -> DecisionTree:
        """Total error at fixed continuous values for every discrete assignment."""
        continuous = as_vector_values(continuous)
        tree = DecisionTree.leaf(0.0)
        for factor in self.factors:
            tree = tree + factor.error_tree(continuous)
        return tree

    def _graph_tree(self) -> DecisionTree:
        gaussian = GaussianFactorGraph(
            [f.inner for f in self.factors if f.category is HybridCategory.CONTINUOUS]
        )
        tree = DecisionTree.leaf(gaussian)
        for factor in self.factors:
            if factor.category is HybridCategory.HYBRID:
                tree = add_graph_trees(tree, factor.inner.as_graph_tree())
        return tree

    def eliminate_sequential(self, ordering: Optional[Sequence[Key]] = None):
        """Eliminate all continuous variables, then all discrete variables.

        For every discrete assignment the Gaussian factors active in that
        mode are eliminated exactly; each mode is then weighted by its
        Gaussian marginal likelihood times the discrete factors.

        Args:
            ordering: Continuous elimination order. Defaults to continuous
                keys in order of first appearance.

        Returns:
            HybridBayesNet with one conditional per continuous key (a
            GaussianMixture wherever modes differ) followed by a single
            DiscreteConditional over every discrete key.

        Raises:
            IndeterminantSystemError: If some mode leaves a variable
                unconstrained.
            ValueError: If every discrete assignment has zero probability.
        """
        from .bayes_net import HybridBayesNet

        ordering = list(ordering) if ordering is not None else self.continuous_keys()
        discrete_keys = self.discrete_keys()
        discrete_factors = [f.inner for f in self.factors if f.category is HybridCategory.DISCRETE]

        eliminated = self._graph_tree().apply(
            lambda graph: None if graph is None else graph.eliminate(ordering)
        )
        if all(result is None for result in eliminated.leaves()):
            raise ValueError("Every discrete assignment has been pruned")

        def log_weight(assignment) -> float:
            result = eliminated(assignment)
            if result is None:
                return float(-np.inf)
            weight = -result.constant_error - result.bayes_net.log_normalization_constant()
            for factor in discrete_factors:
                value = factor(assignment)
                weight += float(np.log(value)) if value > 0.0 else float(-np.inf)
            return weight

        bayes_net = HybridBayesNet()
        for index, key in enumerate(ordering):
            tree = eliminated.apply(lambda r: None if r is None else r.bayes_net[index])
            tree = tree.simplify(_same_conditional)
            if tree.is_leaf():
                bayes_net.push_back(tree.leaves()[0])
                continue
            first = next(c for c in tree.leaves() if c is not None)
            bayes_net.push_back(GaussianMixture(first.frontals, first.parents, tree.keys, tree))

        if discrete_keys:
            assignments = list(enumerate_assignments(discrete_keys))
            log_weights = np.array([log_weight(a) for a in assignments])
            if not np.any(np.isfinite(log_weights)):
                raise ValueError("Every discrete assignment has zero probability")
            weights = np.exp(log_weights - np.max(log_weights))
            for assignment, lw in zip(assignments, log_weights):
                logger.debug("Mode %s log marginal %.6g", assignment, lw)
            posterior = DiscreteConditional(discrete_keys, weights.tolist())
            if is_debug_enabled():
                assert_normalized(posterior)
            bayes_net.push_back(posterior)
        logger.debug(
            "Eliminated %d continuous and %d discrete variables",
            len(ordering),
            len(discrete_keys),
        )
        return bayes_net

    def optimize(self):
        """MPE of the graph: eliminate, then optimize the resulting Bayes net."""
        return self.eliminate_sequential().optimize()

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        lines = [f"HybridGaussianFactorGraph of size {len(self)}"]
        for i, factor in enumerate(self.factors):
            lines.append(f"factor {i}:")
            lines.append(factor.to_string(formatter))
        return "\n".join(lines)

    def print(self, s: str = "", formatter: KeyFormatter = default_key_formatter) -> None:
        if s:
            print(s)
        print(self.to_string(formatter))
