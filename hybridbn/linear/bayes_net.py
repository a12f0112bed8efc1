"""Ordered collections of Gaussian conditionals."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Mapping, Optional

import numpy as np

from ..core.keys import Key, KeyFormatter, default_key_formatter
from ..core.rng import resolve_rng
from ..core.values import VectorValues
from .conditional import GaussianConditional


class GaussianBayesNet:
    """A product of Gaussian conditionals in elimination order.

    Parents of a conditional are frontals of conditionals that come later,
    so back-substitution runs from the last conditional to the first.
    """

    def __init__(self, conditionals: Optional[Iterable[GaussianConditional]] = None) -> None:
        self._conditionals: List[GaussianConditional] = list(conditionals or [])

    def push_back(self, conditional: GaussianConditional) -> None:
        self._conditionals.append(conditional)

    def __len__(self) -> int:
        return len(self._conditionals)

    def __iter__(self) -> Iterator[GaussianConditional]:
        return iter(self._conditionals)

    def __getitem__(self, index: int) -> GaussianConditional:
        return self._conditionals[index]

    def keys(self) -> List[Key]:
        seen: List[Key] = []
        for conditional in self._conditionals:
            for key in conditional.keys:
                if key not in seen:
                    seen.append(key)
        return seen

    def optimize(self, given: Optional[Mapping[Key, np.ndarray]] = None) -> VectorValues:
        """Back-substitute conditional means, last conditional first.

        Args:
            given: Values for variables not solved by this net.

        Raises:
            MissingKeyError: If a parent is neither solved nor given.
        """
        values = VectorValues(given)
        for conditional in reversed(self._conditionals):
            values.update(conditional.solve(values))
        return values

    def sample(
        self,
        given: Optional[Mapping[Key, np.ndarray]] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> VectorValues:
        """Ancestral sample; frontals already in ``given`` are kept as is."""
        rng = resolve_rng(rng)
        values = VectorValues(given)
        for conditional in reversed(self._conditionals):
            if all(key in values for key in conditional.frontals):
                continue
            values.update(conditional.sample(values, rng))
        return values

    def error(self, values: Mapping[Key, np.ndarray]) -> float:
        return float(sum(c.error(values) for c in self._conditionals))

    def log_normalization_constant(self) -> float:
        return float(sum(c.log_normalization_constant() for c in self._conditionals))

    def log_probability(self, values: Mapping[Key, np.ndarray]) -> float:
        return float(sum(c.log_probability(values) for c in self._conditionals))

    def evaluate(self, values: Mapping[Key, np.ndarray]) -> float:
        return float(np.exp(self.log_probability(values)))

    def equals(self, other: "GaussianBayesNet", tol: float = 1e-9) -> bool:
        if not isinstance(other, GaussianBayesNet) or len(self) != len(other):
            return False
        return all(a.equals(b, tol) for a, b in zip(self, other))

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        lines = [f"GaussianBayesNet of size {len(self)}"]
        for i, conditional in enumerate(self._conditionals):
            lines.append(f"conditional {i}: " + conditional.to_string(formatter))
        return "\n".join(lines)

    def print(self, s: str = "", formatter: KeyFormatter = default_key_formatter) -> None:
        if s:
            print(s)
        print(self.to_string(formatter))
