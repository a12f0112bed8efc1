"""Hybrid Bayes nets over discrete and continuous variables.

A HybridBayesNet stores conditionals in elimination order: every parent of
a conditional is a frontal of a later conditional or is supplied from
outside. Back-substitution and ancestral sampling therefore walk the net
from the last conditional to the first.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Mapping, Optional, Set, Union

import numpy as np

from ..core.errors import MissingMeasurementError, TopologicalOrderError
from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..core.rng import resolve_rng
from ..core.values import (
    DiscreteValues,
    HybridValues,
    VectorValues,
    as_vector_values,
)
from ..diagnostics.core import assert_leaf_budget, assert_normalized
from ..diagnostics.debug_mode import is_debug_enabled
from ..discrete.conditional import DiscreteConditional
from ..discrete.decision_tree import DecisionTree
from ..discrete.factor import enumerate_assignments, product, union_keys
from ..linear.bayes_net import GaussianBayesNet
from ..linear.conditional import GaussianConditional
from ..logging import get_logger
from .conditional import HybridConditional
from .factor_graph import HybridGaussianFactorGraph
from .gaussian_mixture import GaussianMixture
from .node import HybridCategory

logger = get_logger(__name__)

ConditionalLike = Union[HybridConditional, DiscreteConditional, GaussianConditional, GaussianMixture]


class HybridBayesNet:
    """An ordered product of hybrid conditionals p(X, M) = prod_i p_i.

    Examples:
        >>> m = DiscreteKey("m", 2)
        >>> z0 = GaussianConditional.from_mean_and_stddev("z", [1.0], 2.0)
        >>> z1 = GaussianConditional.from_mean_and_stddev("z", [3.0], 2.0)
        >>> net = HybridBayesNet()
        >>> net.push_back(GaussianMixture(["z"], [], [m], [z0, z1]))
        >>> net.push_back(DiscreteConditional(m, "1/1"))
        >>> len(net)
        2
    """

    def __init__(self, conditionals: Optional[Iterable[ConditionalLike]] = None) -> None:
        self._conditionals: List[HybridConditional] = []
        self._frontals: Set[Key] = set()
        for conditional in conditionals or []:
            self.push_back(conditional)

    # ------------------------------------------------------------------
    # Container
    # ------------------------------------------------------------------

    def push_back(self, conditional: ConditionalLike) -> None:
        """Append a conditional, checking that the elimination order is kept.

        Raises:
            TopologicalOrderError: If one of the new conditional's frontals is
                already a frontal of the net, or if one of its parents is a
                frontal of an earlier conditional.
        """
        if not isinstance(conditional, HybridConditional):
            conditional = HybridConditional(conditional)
        duplicate = [key for key in conditional.frontals if key in self._frontals]
        if duplicate:
            raise TopologicalOrderError(f"Variables {duplicate} already have a conditional")
        early = [key for key in conditional.parents if key in self._frontals]
        if early:
            raise TopologicalOrderError(
                f"Parents {early} of {conditional.header()} appear as frontals of "
                f"earlier conditionals; parents must come later in the net"
            )
        self._conditionals.append(conditional)
        self._frontals.update(conditional.frontals)

    def __len__(self) -> int:
        return len(self._conditionals)

    def __iter__(self) -> Iterator[HybridConditional]:
        return iter(self._conditionals)

    def __getitem__(self, index: int) -> HybridConditional:
        return self._conditionals[index]

    at = __getitem__

    def keys(self) -> List[Key]:
        seen: List[Key] = []
        for conditional in self._conditionals:
            for key in conditional.keys:
                if key not in seen:
                    seen.append(key)
        return seen

    def discrete_keys(self) -> List[DiscreteKey]:
        """Discrete keys in order of first appearance."""
        return union_keys(*(c.discrete_keys for c in self._conditionals))

    def continuous_keys(self) -> List[Key]:
        seen: List[Key] = []
        for conditional in self._conditionals:
            for key in conditional.continuous_keys:
                if key not in seen:
                    seen.append(key)
        return seen

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def choose(self, assignment: Mapping[Key, int]) -> GaussianBayesNet:
        """Continuous slice of the net for one discrete assignment.

        Mixtures are replaced by their selected component, Gaussian
        conditionals are kept and discrete conditionals are dropped.

        Raises:
            MissingKeyError: If a mixture needs a key missing from ``assignment``.
            PrunedBranchError: If a selected component was pruned.
        """
        net = GaussianBayesNet()
        for conditional in self._conditionals:
            if conditional.category is HybridCategory.HYBRID:
                net.push_back(conditional.as_mixture().choose(assignment))
            elif conditional.category is HybridCategory.CONTINUOUS:
                net.push_back(conditional.as_gaussian())
        return net

    def log_probability(self, values: Union[HybridValues, VectorValues]):
        """Joint log density.

        Given HybridValues, returns a float. Given only continuous values,
        returns a DecisionTree over the discrete keys.
        """
        if isinstance(values, HybridValues):
            return float(sum(c.log_probability(values) for c in self._conditionals))
        continuous = as_vector_values(values)
        tree = DecisionTree.leaf(0.0)
        for conditional in self._conditionals:
            if conditional.category is HybridCategory.HYBRID:
                tree = tree + conditional.as_mixture().log_probability_tree(continuous)
            elif conditional.category is HybridCategory.CONTINUOUS:
                tree = tree + conditional.as_gaussian().log_probability(continuous)
            else:
                tree = tree + conditional.as_discrete().log_probability_tree()
        return tree

    def evaluate(self, values: Union[HybridValues, VectorValues]):
        """Joint density (float) or, given only continuous values, a DecisionTree of densities."""
        log_probability = self.log_probability(values)
        if isinstance(log_probability, DecisionTree):
            return log_probability.apply(lambda v: float(np.exp(v)))
        return float(np.exp(log_probability))

    def error(self, values: HybridValues) -> float:
        return float(sum(c.error(values) for c in self._conditionals))

    def error_tree(self, continuous: VectorValues) -> DecisionTree:
        """Sum of conditional errors at fixed continuous values, per discrete assignment."""
        continuous = as_vector_values(continuous)
        tree = DecisionTree.leaf(0.0)
        for conditional in self._conditionals:
            if conditional.category is HybridCategory.HYBRID:
                tree = tree + conditional.as_mixture().error_tree(continuous)
            elif conditional.category is HybridCategory.CONTINUOUS:
                tree = tree + conditional.as_gaussian().error(continuous)
            else:
                tree = tree + conditional.as_discrete().error_tree()
        return tree

    def _mode_scores(self) -> DecisionTree:
        """Joint log density at each mode's continuous optimum.

        Back-substitution zeroes every Gaussian residual, so the score is the
        sum of discrete log probabilities and component log normalizers.
        """
        tree = DecisionTree.leaf(0.0)
        for conditional in self._conditionals:
            if conditional.category is HybridCategory.HYBRID:
                tree = tree + conditional.as_mixture().log_normalization_tree()
            elif conditional.category is HybridCategory.CONTINUOUS:
                tree = tree + conditional.as_gaussian().log_normalization_constant()
            else:
                tree = tree + conditional.as_discrete().log_probability_tree()
        return tree

    def optimize(self, assignment: Optional[Mapping[Key, int]] = None):
        """Most probable explanation, or the continuous optimum for one mode.

        Without an argument, returns the HybridValues maximizing the joint
        density. Modes are compared in log space; ties go to the assignment
        that comes first lexicographically in :meth:`discrete_keys` order.

        With ``assignment``, returns the VectorValues obtained by
        back-substitution in ``choose(assignment)``.
        """
        if assignment is not None:
            return self.choose(assignment).optimize()
        scores = self._mode_scores()
        best: DiscreteValues = DiscreteValues()
        best_score = float(-np.inf)
        for candidate in enumerate_assignments(self.discrete_keys()):
            score = scores(candidate)
            if score > best_score:
                best, best_score = DiscreteValues(candidate), score
        if not np.isfinite(best_score):
            raise ValueError("No discrete assignment has non-zero probability")
        logger.info("MPE assignment %s with log density %.6g", dict(best), best_score)
        return HybridValues(self.choose(best).optimize(), best)

    def sample(
        self,
        given: Optional[Union[HybridValues, np.random.Generator]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> HybridValues:
        """Ancestral sample of every variable not already in ``given``.

        Args:
            given: Values to condition on; they are never overwritten. A
                Generator passed here is used as ``rng``.
            rng: Random generator; defaults to the package generator.

        Raises:
            ValueError: If only some frontals of a continuous conditional are
                given, or if the given discrete values have zero probability.
        """
        if isinstance(given, np.random.Generator):
            given, rng = None, given
        rng = resolve_rng(rng)
        values = given.copy() if given is not None else HybridValues()
        for conditional in reversed(self._conditionals):
            known = [
                key for key in conditional.frontals if key in values.continuous or key in values.discrete
            ]
            if len(known) == len(conditional.frontals):
                continue
            if known and not conditional.is_discrete():
                raise ValueError(
                    f"Cannot sample {conditional.header()} with only some frontals given: {known}"
                )
            drawn = conditional.sample(values, rng)
            for key in known:
                drawn.continuous.pop(key, None)
                drawn.discrete.pop(key, None)
            values.update(drawn)
        return values

    def prune(self, max_nr_leaves: int) -> "HybridBayesNet":
        """Keep only the ``max_nr_leaves`` most probable discrete assignments.

        The discrete conditionals are multiplied into one joint, all but the
        top assignments are zeroed and the result is renormalized into a
        single DiscreteConditional at the end of the returned net. Mixture
        components agreeing with no kept assignment are nulled.
        """
        if max_nr_leaves < 1:
            raise ValueError(f"max_nr_leaves must be >= 1, got {max_nr_leaves}")
        discrete = [c.as_discrete() for c in self._conditionals if c.is_discrete()]
        joint = product(discrete)
        if joint is None:
            return HybridBayesNet(self._conditionals)
        kept = joint.top_assignments(max_nr_leaves)
        pruned_joint = joint.prune(max_nr_leaves).normalize()
        posterior = DiscreteConditional.from_factor(pruned_joint)

        net = HybridBayesNet()
        for conditional in self._conditionals:
            if conditional.is_hybrid():
                net.push_back(conditional.as_mixture().prune(kept))
            elif conditional.is_continuous():
                net.push_back(conditional)
        net.push_back(posterior)

        if is_debug_enabled():
            assert_normalized(posterior)
            assert_leaf_budget(posterior, max_nr_leaves)
        logger.info(
            "Pruned discrete joint from %d to %d assignments",
            joint.nr_nonzero(),
            len(kept),
        )
        return net

    def to_factor_graph(self, measurements: Mapping[Key, np.ndarray]) -> HybridGaussianFactorGraph:
        """Condition on measured continuous frontals and return the factor graph.

        Measured Gaussian conditionals become likelihood factors on their
        parents, measured mixtures become mixture factors (or discrete
        factors when no continuous parent is left), and every other
        conditional is passed through as a factor.

        Raises:
            MissingMeasurementError: If only some frontals of a conditional
                are measured.
        """
        measurements = as_vector_values(measurements)
        graph = HybridGaussianFactorGraph()
        for conditional in self._conditionals:
            if conditional.is_discrete():
                graph.push_back(conditional.as_discrete())
                continue
            measured = [key for key in conditional.frontals if key in measurements]
            if measured and len(measured) != conditional.nr_frontals:
                raise MissingMeasurementError(
                    f"Only {measured} of frontals {conditional.frontals} are measured"
                )
            if conditional.is_continuous():
                gaussian = conditional.as_gaussian()
                if not measured:
                    graph.push_back(gaussian.as_factor())
                elif gaussian.parents:
                    graph.push_back(gaussian.likelihood(measurements))
            else:
                mixture = conditional.as_mixture()
                graph.push_back(mixture.likelihood(measurements) if measured else mixture.as_factor())
        return graph

    # ------------------------------------------------------------------
    # Testable/printing
    # ------------------------------------------------------------------

    def equals(self, other: "HybridBayesNet", tol: float = 1e-9) -> bool:
        if not isinstance(other, HybridBayesNet) or len(self) != len(other):
            return False
        return all(a.equals(b, tol) for a, b in zip(self, other))

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        lines = [f"HybridBayesNet of size {len(self)}"]
        for i, conditional in enumerate(self._conditionals):
            lines.append(f"conditional {i}: " + conditional.to_string(formatter))
        return "\n".join(lines)

    def print(self, s: str = "", formatter: KeyFormatter = default_key_formatter) -> None:
        if s:
            print(s)
        print(self.to_string(formatter))

    def __repr__(self) -> str:
        return f"HybridBayesNet(size={len(self)})"
