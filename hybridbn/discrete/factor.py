"""Discrete factors represented as decision trees of non-negative values."""

from __future__ import annotations

import itertools
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from .decision_tree import DecisionTree

TableLike = Union[DecisionTree, Sequence[float], str]


def parse_table(table: str) -> List[float]:
    """Parse a whitespace- or slash-separated table such as ``"1 2 3 4"``."""
    return [float(tok) for tok in table.replace("/", " ").split()]


def union_keys(*key_lists: Sequence[DiscreteKey]) -> List[DiscreteKey]:
    """Ordered union of DiscreteKey lists, keeping first appearance."""
    seen: Dict[Key, DiscreteKey] = {}
    for keys in key_lists:
        for dk in keys:
            dk = DiscreteKey(*dk)
            if dk.key in seen and seen[dk.key].cardinality != dk.cardinality:
                raise ValueError(
                    f"Cardinality mismatch for key {dk.key!r}: "
                    f"{seen[dk.key].cardinality} vs {dk.cardinality}"
                )
            seen.setdefault(dk.key, dk)
    return list(seen.values())


def enumerate_assignments(keys: Sequence[DiscreteKey]) -> Iterator[Dict[Key, int]]:
    """Every joint assignment over ``keys``; the first key varies slowest."""
    for combo in itertools.product(*(range(dk.cardinality) for dk in keys)):
        yield {dk.key: v for dk, v in zip(keys, combo)}


class DecisionTreeFactor:
    """A non-negative function of discrete variables.

    Attributes:
        discrete_keys: Keys the factor is defined over.
        tree: DecisionTree of float values.
    """

    def __init__(self, keys: Sequence[DiscreteKey], table: TableLike) -> None:
        """Initialize a factor.

        Args:
            keys: DiscreteKeys the factor depends on.
            table: A DecisionTree, a row-major sequence of values, or a string
                such as ``"1 2 3 4"``.

        Raises:
            ValueError: If the table has the wrong size or negative entries.
        """
        if isinstance(keys, DiscreteKey):
            keys = [keys]
        self.discrete_keys: List[DiscreteKey] = [DiscreteKey(*dk) for dk in keys]
        if isinstance(table, DecisionTree):
            tree = table
        else:
            values = parse_table(table) if isinstance(table, str) else [float(v) for v in table]
            if any(v < 0 for v in values):
                raise ValueError("Discrete factor values must be non-negative")
            tree = DecisionTree.from_table(self.discrete_keys, values)
        extra = {dk.key for dk in tree.keys} - {dk.key for dk in self.discrete_keys}
        if extra:
            raise ValueError(f"Tree branches on keys {sorted(map(str, extra))} not in factor keys")
        self.tree = tree

    @property
    def keys(self) -> List[Key]:
        return [dk.key for dk in self.discrete_keys]

    def size(self) -> int:
        return len(self.discrete_keys)

    def evaluate(self, values: Mapping[Key, int]) -> float:
        """Factor value at a discrete assignment."""
        return float(self.tree(values))

    __call__ = evaluate

    def error(self, values: Mapping[Key, int]) -> float:
        """Negative log of the factor value (inf where the value is zero)."""
        value = self.evaluate(values)
        return float(-np.log(value)) if value > 0.0 else float(np.inf)

    def error_tree(self) -> DecisionTree:
        return self.tree.apply(lambda v: float(-np.log(v)) if v > 0.0 else float(np.inf))

    def items(self) -> Iterator[Tuple[Dict[Key, int], float]]:
        """(assignment, value) over every joint assignment of the factor's keys."""
        for assignment in enumerate_assignments(self.discrete_keys):
            yield assignment, float(self.tree(assignment))

    def multiply(self, other: "DecisionTreeFactor") -> "DecisionTreeFactor":
        """Product factor over the union of keys."""
        keys = union_keys(self.discrete_keys, other.discrete_keys)
        return DecisionTreeFactor(keys, self.tree * other.tree)

    __mul__ = multiply

    def _unbranched_count(self) -> int:
        """Assignments of factor keys the tree does not branch on."""
        branched = {dk.key for dk in self.tree.keys}
        return int(np.prod([dk.cardinality for dk in self.discrete_keys if dk.key not in branched]))

    def total(self) -> float:
        """Sum of the values over every joint assignment of the factor's keys."""
        return self.tree.sum() * self._unbranched_count()

    def normalize(self) -> "DecisionTreeFactor":
        """Scale so the values over all joint assignments sum to one."""
        total = self.total()
        if total <= 0.0:
            raise ValueError("Cannot normalize a discrete factor whose values sum to zero")
        return DecisionTreeFactor(self.discrete_keys, self.tree.apply(lambda v: v / total))

    def sum_out(self, key: Key) -> "DecisionTreeFactor":
        """Marginalize one key by summation."""
        label = self._label(key)
        remaining = [dk for dk in self.discrete_keys if dk.key != key]
        tree = self.tree.restrict(label, 0)
        for value in range(1, label.cardinality):
            tree = tree + self.tree.restrict(label, value)
        return DecisionTreeFactor(remaining, tree)

    def max_out(self, key: Key) -> "DecisionTreeFactor":
        """Marginalize one key by maximization."""
        label = self._label(key)
        remaining = [dk for dk in self.discrete_keys if dk.key != key]
        tree = self.tree.restrict(label, 0)
        for value in range(1, label.cardinality):
            tree = tree.combine(self.tree.restrict(label, value), max)
        return DecisionTreeFactor(remaining, tree)

    def _label(self, key: Key) -> DiscreteKey:
        for dk in self.discrete_keys:
            if dk.key == key:
                return dk
        raise KeyError(f"Key {key!r} not in factor")

    def top_assignments(self, max_nr_assignments: int) -> List[Dict[Key, int]]:
        """The ``max_nr_assignments`` assignments with the largest values.

        Ties are broken in favour of the lexicographically smaller assignment
        (first key most significant). Zero-valued assignments are never kept.
        """
        ranked = sorted(
            ((value, index, assignment) for index, (assignment, value) in enumerate(self.items())),
            key=lambda t: (-t[0], t[1]),
        )
        return [a for v, _, a in ranked[:max_nr_assignments] if v > 0.0]

    def prune(self, max_nr_assignments: int) -> "DecisionTreeFactor":
        """Zero out all but the ``max_nr_assignments`` largest values."""
        if max_nr_assignments < 1:
            raise ValueError(f"max_nr_assignments must be >= 1, got {max_nr_assignments}")
        kept = {tuple(a[dk.key] for dk in self.discrete_keys) for a in self.top_assignments(max_nr_assignments)}
        keys = self.discrete_keys

        def keep(assignment: Dict[Key, int]) -> float:
            if tuple(assignment[dk.key] for dk in keys) in kept:
                return float(self.tree(assignment))
            return 0.0

        return DecisionTreeFactor(keys, DecisionTree.from_function(keys, keep))

    def nr_nonzero(self) -> int:
        count = sum(n for v, n in self.tree.weighted_leaves() if v > 0.0)
        return count * self._unbranched_count()

    def equals(self, other: "DecisionTreeFactor", tol: float = 1e-9) -> bool:
        if not isinstance(other, DecisionTreeFactor):
            return False
        if {dk for dk in self.discrete_keys} != {dk for dk in other.discrete_keys}:
            return False
        return self.tree.equals(other.tree, tol)

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        header = "f[ " + " ".join(f"({formatter(dk.key)},{dk.cardinality})" for dk in self.discrete_keys) + " ]"
        return header + "\n" + self.tree.to_string(formatter)

    def print(self, s: str = "", formatter: KeyFormatter = default_key_formatter) -> None:
        if s:
            print(s)
        print(self.to_string(formatter))

    def __repr__(self) -> str:
        return f"DecisionTreeFactor(keys={self.keys})"


def product(factors: Sequence[DecisionTreeFactor]) -> Optional[DecisionTreeFactor]:
    """Product of a sequence of discrete factors, or None if empty."""
    result: Optional[DecisionTreeFactor] = None
    for factor in factors:
        result = factor if result is None else result * factor
    return result
