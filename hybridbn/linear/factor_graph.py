"""Gaussian factor graphs and sequential QR elimination."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from ..core.errors import IndeterminantSystemError
from ..core.keys import Key, KeyFormatter, default_key_formatter
from ..core.values import VectorValues
from ..logging import get_logger
from .bayes_net import GaussianBayesNet
from .conditional import GaussianConditional
from .jacobian_factor import JacobianFactor

logger = get_logger(__name__)

_RANK_TOL = 1e-12


@dataclass
class EliminationResult:
    """Output of sequential elimination.

    Attributes:
        bayes_net: Conditionals, one per eliminated variable, in ordering order.
        constant_error: Error left over once every variable is eliminated,
            including the graph's own constant. This is the minimum of the
            graph's error over all continuous values.
    """

    bayes_net: GaussianBayesNet
    constant_error: float


class GaussianFactorGraph:
    """A sum of Jacobian factor errors plus a scalar constant.

    The constant lets hybrid code carry per-mode normalization terms
    through elimination alongside the Gaussian factors.
    """

    def __init__(self, factors: Optional[Iterable[JacobianFactor]] = None, constant: float = 0.0) -> None:
        self.factors: List[JacobianFactor] = list(factors or [])
        self.constant = float(constant)

    def push_back(self, factor: JacobianFactor) -> None:
        self.factors.append(factor)

    def __len__(self) -> int:
        return len(self.factors)

    def __iter__(self) -> Iterator[JacobianFactor]:
        return iter(self.factors)

    def __add__(self, other: "GaussianFactorGraph") -> "GaussianFactorGraph":
        if not isinstance(other, GaussianFactorGraph):
            return NotImplemented
        return GaussianFactorGraph(self.factors + other.factors, self.constant + other.constant)

    def keys(self) -> List[Key]:
        """Keys in order of first appearance."""
        seen: List[Key] = []
        for factor in self.factors:
            for key in factor.keys:
                if key not in seen:
                    seen.append(key)
        return seen

    def error(self, values: Mapping[Key, np.ndarray]) -> float:
        return self.constant + float(sum(f.error(values) for f in self.factors))

    def eliminate(self, ordering: Optional[Sequence[Key]] = None) -> EliminationResult:
        """Eliminate variables one at a time by dense QR.

        Args:
            ordering: Variables to eliminate, in order. Defaults to every key
                in order of first appearance.

        Returns:
            EliminationResult with the Bayes net and the residual error.

        Raises:
            IndeterminantSystemError: If a variable is unconstrained or
                underdetermined by the factors involving it.
            ValueError: If ``ordering`` misses keys present in the graph.
        """
        ordering = list(ordering) if ordering is not None else self.keys()
        missing = [key for key in self.keys() if key not in ordering]
        if missing:
            raise ValueError(f"Ordering does not cover keys {missing}")
        position = {key: i for i, key in enumerate(ordering)}

        factors = [f.whitened() for f in self.factors]
        dims: Dict[Key, int] = {}
        for factor in factors:
            dims.update(factor.dims())

        bayes_net = GaussianBayesNet()
        for key in ordering:
            involved = [f for f in factors if key in f.keys]
            if not involved:
                raise IndeterminantSystemError(f"No factor constrains variable {key!r}")
            factors = [f for f in factors if key not in f.keys]
            separator = sorted(
                {k for f in involved for k in f.keys if k != key}, key=position.__getitem__
            )
            conditional, remainder = _eliminate_one(key, separator, dims, involved)
            bayes_net.push_back(conditional)
            if remainder is not None:
                factors.append(remainder)

        constant_error = self.constant + float(sum(f.error({}) for f in factors))
        logger.debug("Eliminated %d variables, constant error %.6g", len(ordering), constant_error)
        return EliminationResult(bayes_net, constant_error)

    def optimize(self, ordering: Optional[Sequence[Key]] = None) -> VectorValues:
        """Minimizer of the graph error."""
        return self.eliminate(ordering).bayes_net.optimize()

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        lines = [f"GaussianFactorGraph of size {len(self)}, constant {self.constant:.6g}"]
        for i, factor in enumerate(self.factors):
            lines.append(f"factor {i}:")
            lines.append(factor.to_string(formatter))
        return "\n".join(lines)


def _eliminate_one(
    key: Key,
    separator: List[Key],
    dims: Dict[Key, int],
    factors: List[JacobianFactor],
):
    """Stack [A | b] over ``key`` and its separator and factor it by QR.

    Returns the conditional on ``key`` and the factor on the separator made
    from the remaining rows (None if there are none).
    """
    columns = [key] + separator
    offsets = {}
    width = 0
    for k in columns:
        offsets[k] = width
        width += dims[k]
    rows = []
    for factor in factors:
        Ab = np.zeros((factor.rows, width + 1))
        for k, matrix in factor.terms():
            Ab[:, offsets[k]:offsets[k] + dims[k]] = matrix
        Ab[:, width] = factor.b
        rows.append(Ab)
    R = np.linalg.qr(np.vstack(rows), mode="r")

    n = dims[key]
    diag = np.abs(np.diag(R[:n, :n])) if R.shape[0] >= n else np.zeros(0)
    scale = max(1.0, float(np.max(np.abs(R)))) if R.size else 1.0
    if diag.shape[0] < n or np.any(diag < _RANK_TOL * scale):
        raise IndeterminantSystemError(f"Variable {key!r} is underdetermined")

    parents = [(k, R[:n, offsets[k]:offsets[k] + dims[k]]) for k in separator]
    conditional = GaussianConditional([(key, R[:n, :n])], R[:n, width], parents)

    rest = R[n:]
    if rest.shape[0] == 0:
        return conditional, None
    terms = [(k, rest[:, offsets[k]:offsets[k] + dims[k]]) for k in separator]
    return conditional, JacobianFactor(terms, rest[:, width])
