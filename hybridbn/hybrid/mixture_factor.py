"""Gaussian mixture factors: one Jacobian factor per discrete assignment."""

from __future__ import annotations

from typing import Any, NamedTuple, Optional, Sequence, Union

import numpy as np

from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..core.values import HybridValues, VectorValues, as_vector_values
from ..discrete.decision_tree import DecisionTree
from ..linear.factor_graph import GaussianFactorGraph
from ..linear.jacobian_factor import JacobianFactor
from .mixture import Mixture
from .node import HybridNode


class MixtureComponent(NamedTuple):
    """A Jacobian factor plus the scalar added to its error.

    The log-normalizer lets modes with different noise scales be compared on
    a log-probability scale rather than on squared residuals alone.
    """

    factor: JacobianFactor
    log_normalizer: float = 0.0

    def equals(self, other: "MixtureComponent", tol: float = 1e-9) -> bool:
        return (
            isinstance(other, MixtureComponent)
            and self.factor.equals(other.factor, tol)
            and abs(self.log_normalizer - other.log_normalizer) <= tol
        )

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        text = self.factor.to_string(formatter)
        if self.log_normalizer != 0.0:
            text += f"\n  log-normalizer: {self.log_normalizer:.6g}"
        return text


def _as_component(leaf: Any, log_normalizer: Any = None) -> Optional[MixtureComponent]:
    if leaf is None or isinstance(leaf, MixtureComponent):
        return leaf
    return MixtureComponent(leaf, float(log_normalizer or 0.0))


def add_graph_trees(a: DecisionTree, b: DecisionTree) -> DecisionTree:
    """Leafwise concatenation of two trees of GaussianFactorGraphs.

    A null leaf on either side stays null in the result.
    """
    return a.combine(b, lambda x, y: None if x is None or y is None else x + y)


class GaussianMixtureFactor(Mixture):
    """Hybrid factor selecting a Gaussian factor by discrete assignment.

    Error at (x, m) is ``factor_m.error(x) + log_normalizer_m``.

    Examples:
        >>> m = DiscreteKey("m", 2)
        >>> f0 = JacobianFactor([("x", np.eye(1))], [0.0])
        >>> f1 = JacobianFactor([("x", np.eye(1))], [1.0])
        >>> mixture = GaussianMixtureFactor(["x"], [m], [f0, f1])
        >>> mixture.error(HybridValues({"x": [1.0]}, {"m": 0}))
        0.5
    """

    def __init__(
        self,
        continuous_keys: Sequence[Key],
        discrete_keys: Union[DiscreteKey, Sequence[DiscreteKey]],
        factors: Union[DecisionTree, Sequence[Any]],
        log_normalizers: Union[DecisionTree, Sequence[float], None] = None,
    ) -> None:
        """Initialize a mixture factor.

        Args:
            continuous_keys: Keys shared by every component factor.
            discrete_keys: Keys selecting the component.
            factors: JacobianFactors (or MixtureComponents, or None for a
                pruned branch), as a DecisionTree or a row-major sequence.
            log_normalizers: Optional per-leaf scalars, same layout as
                ``factors``. Defaults to zero for every leaf.
        """
        if isinstance(discrete_keys, DiscreteKey):
            discrete_keys = [discrete_keys]
        if not isinstance(factors, DecisionTree):
            factors = DecisionTree.from_table(discrete_keys, list(factors))
        if log_normalizers is None:
            tree = factors.apply(_as_component)
        else:
            if not isinstance(log_normalizers, DecisionTree):
                log_normalizers = DecisionTree.from_table(discrete_keys, list(log_normalizers))
            tree = factors.combine(log_normalizers, _as_component)
        super().__init__(continuous_keys, discrete_keys, tree)

    def _check_component(self, component: MixtureComponent) -> None:
        if set(component.factor.keys) != set(self.continuous_keys):
            raise ValueError(
                f"Component factor keys {component.factor.keys} differ from "
                f"mixture keys {self.continuous_keys}"
            )

    def factor(self, assignment) -> JacobianFactor:
        """The Jacobian factor selected by ``assignment``."""
        return self(assignment).factor

    def error(self, values: HybridValues) -> float:
        component = self(values.discrete)
        return component.factor.error(values.continuous) + component.log_normalizer

    def error_tree(self, continuous: VectorValues) -> DecisionTree:
        """Error at ``continuous`` for every discrete assignment; pruned leaves are inf."""
        continuous = as_vector_values(continuous)
        return self._map(lambda c: c.factor.error(continuous) + c.log_normalizer, float(np.inf))

    def as_graph_tree(self) -> DecisionTree:
        """Tree of single-factor GaussianFactorGraphs carrying the log-normalizer as constant."""
        return self._map(lambda c: GaussianFactorGraph([c.factor], c.log_normalizer))

    def __add__(self, other: Union["GaussianMixtureFactor", DecisionTree]) -> DecisionTree:
        """Leafwise union of component factors over both discrete key sets."""
        if isinstance(other, GaussianMixtureFactor):
            other = other.as_graph_tree()
        if not isinstance(other, DecisionTree):
            return NotImplemented
        return add_graph_trees(self.as_graph_tree(), other)

    def to_string(self, formatter: KeyFormatter = default_key_formatter, leaf_formatter=None) -> str:
        header = HybridNode(self.continuous_keys, self.discrete_keys).header(formatter)
        body = super().to_string(formatter, leaf_formatter)
        return f"GaussianMixtureFactor\n{header}{{\n{body}\n}}"

    def __repr__(self) -> str:
        return (
            f"GaussianMixtureFactor(continuous={self.continuous_keys}, "
            f"discrete={[dk.key for dk in self.discrete_keys]})"
        )
