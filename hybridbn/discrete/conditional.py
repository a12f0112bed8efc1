"""Categorical conditional distributions P(frontals | parents)."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..core.errors import MissingKeyError
from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..core.rng import resolve_rng
from .decision_tree import DecisionTree
from .factor import DecisionTreeFactor, TableLike, enumerate_assignments, parse_table


def _as_key_list(keys: Union[DiscreteKey, Sequence[DiscreteKey], None]) -> List[DiscreteKey]:
    if keys is None:
        return []
    if isinstance(keys, DiscreteKey):
        return [keys]
    return [DiscreteKey(*dk) for dk in keys]


def _normalize_rows(
    tree: DecisionTree, frontals: List[DiscreteKey], parents: List[DiscreteKey]
) -> DecisionTree:
    """Divide by the sum over frontal assignments for every parent assignment."""
    row_sums: Dict[tuple, float] = {}
    for parent_assignment in enumerate_assignments(parents):
        total = 0.0
        for frontal_assignment in enumerate_assignments(frontals):
            total += float(tree({**parent_assignment, **frontal_assignment}))
        if total <= 0.0:
            raise ValueError(
                f"Conditional row for parents {parent_assignment} sums to {total}"
            )
        row_sums[tuple(parent_assignment[dk.key] for dk in parents)] = total

    def normalized(assignment: Dict[Key, int]) -> float:
        row = tuple(assignment[dk.key] for dk in parents)
        return float(tree(assignment)) / row_sums[row]

    return DecisionTree.from_function(parents + frontals, normalized)


class DiscreteConditional(DecisionTreeFactor):
    """A conditional probability table P(frontals | parents).

    Tables are laid out with one row per parent assignment (first parent
    varies slowest) and, inside a row, one entry per frontal assignment.
    Rows are normalized on construction.

    Examples:
        >>> m = DiscreteKey("m", 2)
        >>> prior = DiscreteConditional(m, "1/3")
        >>> prior({"m": 1})
        0.75
    """

    def __init__(
        self,
        frontals: Union[DiscreteKey, Sequence[DiscreteKey]],
        table: TableLike,
        parents: Union[DiscreteKey, Sequence[DiscreteKey], None] = None,
    ) -> None:
        """Initialize a conditional.

        Args:
            frontals: Key (or keys) the distribution is over.
            table: Signature string like ``"1/3 2/2"``, a flat row-major
                sequence, or a DecisionTree over parents and frontals.
            parents: Conditioning keys.
        """
        self.frontals: List[DiscreteKey] = _as_key_list(frontals)
        self.parents: List[DiscreteKey] = _as_key_list(parents)
        if not self.frontals:
            raise ValueError("DiscreteConditional needs at least one frontal key")
        ordered = self.parents + self.frontals
        if isinstance(table, DecisionTree):
            raw = table
        else:
            values = parse_table(table) if isinstance(table, str) else [float(v) for v in table]
            if any(v < 0 for v in values):
                raise ValueError("Probabilities must be non-negative")
            raw = DecisionTree.from_table(ordered, values)
        super().__init__(self.frontals + self.parents, _normalize_rows(raw, self.frontals, self.parents))

    @classmethod
    def from_factor(
        cls, factor: DecisionTreeFactor, frontals: Optional[Sequence[DiscreteKey]] = None
    ) -> "DiscreteConditional":
        """Condition a joint factor: P(frontals | rest) = f / sum_frontals f.

        Args:
            factor: Joint factor.
            frontals: Frontal keys; defaults to all of the factor's keys.
        """
        frontals = list(frontals) if frontals is not None else list(factor.discrete_keys)
        frontal_ids = {dk.key for dk in frontals}
        parents = [dk for dk in factor.discrete_keys if dk.key not in frontal_ids]
        return cls(frontals, factor.tree, parents)

    @property
    def nr_frontals(self) -> int:
        return len(self.frontals)

    def frontal_keys(self) -> List[Key]:
        return [dk.key for dk in self.frontals]

    def parent_keys(self) -> List[Key]:
        return [dk.key for dk in self.parents]

    def log_probability(self, values: Mapping[Key, int]) -> float:
        value = self.evaluate(values)
        return float(np.log(value)) if value > 0.0 else float(-np.inf)

    def log_probability_tree(self) -> DecisionTree:
        return self.tree.apply(lambda v: float(np.log(v)) if v > 0.0 else float(-np.inf))

    def _row(self, parent_values: Mapping[Key, int]):
        for dk in self.parents:
            if dk.key not in parent_values:
                raise MissingKeyError(dk.key, "discrete parent")
        parent_assignment = {dk.key: int(parent_values[dk.key]) for dk in self.parents}
        fixed = {dk.key: int(parent_values[dk.key]) for dk in self.frontals if dk.key in parent_values}
        assignments = [
            a for a in enumerate_assignments(self.frontals) if all(a[k] == v for k, v in fixed.items())
        ]
        probs = np.array([self.tree({**parent_assignment, **a}) for a in assignments], dtype=float)
        return assignments, probs

    def sample(
        self, parent_values: Optional[Mapping[Key, int]] = None, rng: Optional[np.random.Generator] = None
    ) -> Dict[Key, int]:
        """Draw frontal values given parent values.

        Frontal keys already present in ``parent_values`` are held fixed and
        the remaining frontals are drawn from the row restricted to them.

        Returns:
            Mapping from frontal key to sampled value.

        Raises:
            ValueError: If the fixed frontal values have zero probability.
        """
        assignments, probs = self._row(parent_values or {})
        if not probs.sum() > 0.0:
            raise ValueError(f"Fixed frontal values have zero probability in {self!r}")
        index = resolve_rng(rng).choice(len(assignments), p=probs / probs.sum())
        return assignments[index]

    def argmax(self, parent_values: Optional[Mapping[Key, int]] = None) -> Dict[Key, int]:
        """Most probable frontal assignment given parents (and any fixed frontals); ties go to the first."""
        assignments, probs = self._row(parent_values or {})
        return assignments[int(np.argmax(probs))]

    def equals(self, other: "DecisionTreeFactor", tol: float = 1e-9) -> bool:
        if not isinstance(other, DiscreteConditional):
            return False
        return (
            self.frontals == other.frontals
            and set(self.parents) == set(other.parents)
            and self.tree.equals(other.tree, tol)
        )

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        frontal_str = " ".join(formatter(dk.key) for dk in self.frontals)
        if self.parents:
            parent_str = " ".join(formatter(dk.key) for dk in self.parents)
            header = f"P( {frontal_str} | {parent_str} ):"
        else:
            header = f"P( {frontal_str} ):"
        return header + "\n" + self.tree.to_string(formatter)

    def __repr__(self) -> str:
        return f"DiscreteConditional(frontals={self.frontal_keys()}, parents={self.parent_keys()})"
