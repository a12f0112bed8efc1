"""Immutable decision trees indexed by discrete keys.

A decision tree is a total function from the cartesian product of its
discrete keys' cardinalities to leaf values. Internal nodes branch on one
DiscreteKey; leaves hold arbitrary values (floats, Gaussian conditionals,
factor graphs, or None to mark a pruned branch).

Trees are never edited in place. Binary combination walks both operands
together and only materializes the leaves reachable through the existing
branch structure, sharing unexpanded subtrees where possible.

Conventions:
    - Key order is the order of first appearance in a pre-order walk.
    - Tables passed to :meth:`DecisionTree.from_table` are row-major: the
      first key varies slowest, the last key fastest (as in ``np.ndindex``).
"""

from __future__ import annotations

import itertools
import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import MissingKeyError
from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter


@dataclass(frozen=True, eq=False)
class _Leaf:
    value: Any


@dataclass(frozen=True, eq=False)
class _Choice:
    label: DiscreteKey
    branches: Tuple[Any, ...]


def _build_table(keys: Sequence[DiscreteKey], values: Sequence[Any], offset: int) -> Any:
    if not keys:
        return _Leaf(values[offset])
    head, rest = keys[0], keys[1:]
    stride = int(np.prod([dk.cardinality for dk in rest])) if rest else 1
    return _Choice(
        head,
        tuple(_build_table(rest, values, offset + i * stride) for i in range(head.cardinality)),
    )


def _build_function(
    keys: Sequence[DiscreteKey], fn: Callable[[Dict[Key, int]], Any], assignment: Dict[Key, int]
) -> Any:
    if not keys:
        return _Leaf(fn(dict(assignment)))
    head, rest = keys[0], keys[1:]
    branches = []
    for value in range(head.cardinality):
        assignment[head.key] = value
        branches.append(_build_function(rest, fn, assignment))
    del assignment[head.key]
    return _Choice(head, tuple(branches))


def _restrict(node: Any, label: DiscreteKey, value: int) -> Any:
    if isinstance(node, _Leaf):
        return node
    if node.label.key == label.key:
        if node.label.cardinality != label.cardinality:
            raise ValueError(
                f"Cardinality mismatch for key {label.key!r}: "
                f"{node.label.cardinality} vs {label.cardinality}"
            )
        return node.branches[value]
    branches = tuple(_restrict(child, label, value) for child in node.branches)
    if all(new is old for new, old in zip(branches, node.branches)):
        return node
    return _Choice(node.label, branches)


def _combine(a: Any, b: Any, op: Callable[[Any, Any], Any]) -> Any:
    if isinstance(a, _Leaf):
        if isinstance(b, _Leaf):
            return _Leaf(op(a.value, b.value))
        return _Choice(b.label, tuple(_combine(a, child, op) for child in b.branches))
    return _Choice(
        a.label,
        tuple(
            _combine(child, _restrict(b, a.label, i), op) for i, child in enumerate(a.branches)
        ),
    )


def _apply(node: Any, fn: Callable[[Any], Any]) -> Any:
    if isinstance(node, _Leaf):
        return _Leaf(fn(node.value))
    return _Choice(node.label, tuple(_apply(child, fn) for child in node.branches))


def _apply_with_assignment(
    node: Any, fn: Callable[[Dict[Key, int], Any], Any], assignment: Dict[Key, int]
) -> Any:
    if isinstance(node, _Leaf):
        return _Leaf(fn(dict(assignment), node.value))
    branches = []
    for value, child in enumerate(node.branches):
        assignment[node.label.key] = value
        branches.append(_apply_with_assignment(child, fn, assignment))
    del assignment[node.label.key]
    return _Choice(node.label, tuple(branches))


def _same(a: Any, b: Any, eq: Callable[[Any, Any], bool]) -> bool:
    if a is b:
        return True
    if isinstance(a, _Leaf) and isinstance(b, _Leaf):
        return eq(a.value, b.value)
    if isinstance(a, _Choice) and isinstance(b, _Choice):
        return a.label == b.label and all(
            _same(x, y, eq) for x, y in zip(a.branches, b.branches)
        )
    return False


def _simplify(node: Any, eq: Callable[[Any, Any], bool]) -> Any:
    if isinstance(node, _Leaf):
        return node
    branches = tuple(_simplify(child, eq) for child in node.branches)
    first = branches[0]
    if all(_same(first, other, eq) for other in branches[1:]):
        return first
    return _Choice(node.label, branches)


def _default_eq(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is b
    if hasattr(a, "equals"):
        return a.equals(b)
    if isinstance(a, (float, int, np.floating, np.integer)):
        return bool(np.isclose(a, b, rtol=0.0, atol=1e-9))
    return a == b


class DecisionTree:
    """Persistent decision tree over discrete keys.

    Attributes:
        keys: DiscreteKeys the tree branches on, in first-appearance order.

    Examples:
        >>> a = DiscreteKey("a", 2)
        >>> tree = DecisionTree.from_table([a], [0.25, 0.75])
        >>> tree({"a": 1})
        0.75
    """

    __slots__ = ("_root", "_keys")

    def __init__(self, root: Any = None) -> None:
        """Create a tree from an internal node, or a single leaf holding None."""
        if not isinstance(root, (_Leaf, _Choice)):
            root = _Leaf(root)
        self._root = root
        self._keys: Optional[List[DiscreteKey]] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def leaf(cls, value: Any) -> "DecisionTree":
        """A tree with no keys and a single leaf."""
        return cls(_Leaf(value))

    @classmethod
    def from_table(cls, keys: Sequence[DiscreteKey], values: Sequence[Any]) -> "DecisionTree":
        """Build a full tree from a row-major table of leaf values.

        Args:
            keys: Keys to branch on; the first key varies slowest.
            values: One leaf per joint assignment.

        Raises:
            ValueError: If the table size does not match the key cardinalities.
        """
        keys = [DiscreteKey(*dk) for dk in keys]
        _check_distinct(keys)
        expected = int(np.prod([dk.cardinality for dk in keys])) if keys else 1
        values = list(values)
        if len(values) != expected:
            raise ValueError(
                f"Table has {len(values)} entries but keys require {expected}"
            )
        return cls(_build_table(keys, values, 0))

    @classmethod
    def from_function(
        cls, keys: Sequence[DiscreteKey], fn: Callable[[Dict[Key, int]], Any]
    ) -> "DecisionTree":
        """Build a full tree whose leaf at each assignment is ``fn(assignment)``."""
        keys = [DiscreteKey(*dk) for dk in keys]
        _check_distinct(keys)
        return cls(_build_function(keys, fn, {}))

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def keys(self) -> List[DiscreteKey]:
        if self._keys is None:
            seen: Dict[Key, DiscreteKey] = {}
            stack = [self._root]
            while stack:
                node = stack.pop()
                if isinstance(node, _Choice):
                    if node.label.key not in seen:
                        seen[node.label.key] = node.label
                    stack.extend(reversed(node.branches))
            self._keys = list(seen.values())
        return list(self._keys)

    def is_leaf(self) -> bool:
        return isinstance(self._root, _Leaf)

    def nr_leaves(self) -> int:
        """Number of leaves in the tree structure (not the number of assignments)."""
        count = 0
        stack = [self._root]
        while stack:
            node = stack.pop()
            if isinstance(node, _Leaf):
                count += 1
            else:
                stack.extend(node.branches)
        return count

    def leaves(self) -> List[Any]:
        """Leaf values in pre-order."""
        out: List[Any] = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            if isinstance(node, _Leaf):
                out.append(node.value)
            else:
                stack.extend(reversed(node.branches))
        return out

    def value_at(self, assignment: Mapping[Key, int]) -> Any:
        """Walk from the root following ``assignment``.

        Keys in the assignment that the tree does not branch on are ignored.

        Raises:
            MissingKeyError: If the tree branches on a key missing from ``assignment``.
            ValueError: If an assigned value is out of range.
        """
        node = self._root
        while isinstance(node, _Choice):
            key = node.label.key
            if key not in assignment:
                raise MissingKeyError(key, "decision tree lookup")
            value = int(assignment[key])
            if not 0 <= value < node.label.cardinality:
                raise ValueError(
                    f"Value {value} out of range for key {key!r} "
                    f"with cardinality {node.label.cardinality}"
                )
            node = node.branches[value]
        return node.value

    __call__ = value_at

    def assignments(self) -> Iterator[Dict[Key, int]]:
        """All joint assignments over the tree's keys; first key varies slowest."""
        keys = self.keys
        for combo in itertools.product(*(range(dk.cardinality) for dk in keys)):
            yield {dk.key: v for dk, v in zip(keys, combo)}

    def items(self) -> Iterator[Tuple[Dict[Key, int], Any]]:
        """(assignment, value) pairs over every joint assignment of the tree's keys."""
        for assignment in self.assignments():
            yield assignment, self.value_at(assignment)

    # ------------------------------------------------------------------
    # Transformation
    # ------------------------------------------------------------------

    def apply(self, fn: Callable[[Any], Any]) -> "DecisionTree":
        """New tree with the same structure and ``fn`` applied to every leaf."""
        return DecisionTree(_apply(self._root, fn))

    def apply_with_assignment(
        self, fn: Callable[[Dict[Key, int], Any], Any]
    ) -> "DecisionTree":
        """Like :meth:`apply`, passing the (partial) path assignment to ``fn``."""
        return DecisionTree(_apply_with_assignment(self._root, fn, {}))

    def combine(self, other: "DecisionTree", op: Callable[[Any, Any], Any]) -> "DecisionTree":
        """Pointwise combination over the union of both trees' keys.

        The leaf at a joint assignment is ``op(self(a), other(a))``. Only
        combinations reachable through both operands' branch structure are
        materialized.
        """
        return DecisionTree(_combine(self._root, other._root, op))

    def restrict(self, key: DiscreteKey, value: int) -> "DecisionTree":
        """Fix ``key`` to ``value`` wherever the tree branches on it."""
        return DecisionTree(_restrict(self._root, DiscreteKey(*key), value))

    def simplify(self, eq: Optional[Callable[[Any, Any], bool]] = None) -> "DecisionTree":
        """Collapse every choice whose branches are all equal under ``eq``."""
        return DecisionTree(_simplify(self._root, eq or _default_eq))

    def equals(
        self, other: "DecisionTree", tol: float = 1e-9, eq: Optional[Callable[[Any, Any], bool]] = None
    ) -> bool:
        """Functional equality: equal leaves at every joint assignment."""
        if eq is None:
            def eq(a: Any, b: Any) -> bool:
                if a is None or b is None:
                    return a is b
                if hasattr(a, "equals"):
                    return a.equals(b, tol)
                if isinstance(a, (float, int, np.floating, np.integer)):
                    return bool(abs(a - b) <= tol)
                return a == b

        return all(self.combine(other, eq).leaves())

    # ------------------------------------------------------------------
    # Algebra for float-valued trees
    # ------------------------------------------------------------------

    def _binary(self, other: Any, op: Callable[[Any, Any], Any]) -> "DecisionTree":
        if isinstance(other, DecisionTree):
            return self.combine(other, op)
        return self.apply(lambda v: op(v, other))

    def __add__(self, other: Any) -> "DecisionTree":
        return self._binary(other, operator.add)

    def __radd__(self, other: Any) -> "DecisionTree":
        return self.apply(lambda v: other + v)

    def __sub__(self, other: Any) -> "DecisionTree":
        return self._binary(other, operator.sub)

    def __mul__(self, other: Any) -> "DecisionTree":
        return self._binary(other, operator.mul)

    def __rmul__(self, other: Any) -> "DecisionTree":
        return self.apply(lambda v: other * v)

    def __truediv__(self, other: Any) -> "DecisionTree":
        return self._binary(other, operator.truediv)

    def __neg__(self) -> "DecisionTree":
        return self.apply(operator.neg)

    def weighted_leaves(self) -> Iterator[Tuple[Any, int]]:
        """(value, count) for every leaf in pre-order.

        ``count`` is the number of joint assignments over :attr:`keys` that
        reach the leaf, so folds never enumerate the cross product.
        """
        cardinality = {dk.key: dk.cardinality for dk in self.keys}
        total = int(np.prod(list(cardinality.values()))) if cardinality else 1
        stack = [(self._root, total)]
        while stack:
            node, count = stack.pop()
            if isinstance(node, _Leaf):
                yield node.value, count
            else:
                share = count // cardinality[node.label.key]
                stack.extend((child, share) for child in reversed(node.branches))

    def sum(self) -> float:
        """Sum of leaf values over every joint assignment."""
        return float(sum(value * count for value, count in self.weighted_leaves()))

    def max(self) -> float:
        return float(max(self.leaves()))

    def min(self) -> float:
        return float(min(self.leaves()))

    def normalize(self) -> "DecisionTree":
        """Divide every leaf by :meth:`sum`."""
        total = self.sum()
        if total <= 0.0:
            raise ValueError(f"Cannot normalize a tree with non-positive sum {total}")
        return self.apply(lambda v: v / total)

    def argmax(self) -> Tuple[Dict[Key, int], float]:
        """Assignment with the largest value; ties go to the first one enumerated."""
        best_assignment: Dict[Key, int] = {}
        best_value = -np.inf
        first = True
        for assignment, value in self.items():
            if first or value > best_value:
                best_assignment, best_value, first = assignment, value, False
        return best_assignment, float(best_value)

    # ------------------------------------------------------------------
    # Printing
    # ------------------------------------------------------------------

    def to_string(
        self,
        formatter: KeyFormatter = default_key_formatter,
        leaf_formatter: Optional[Callable[[Any], str]] = None,
    ) -> str:
        """Render the tree with one ``Choice``/``Leaf`` line per node.

        Each line is prefixed by the branch path leading to it. A leaf whose
        text spans several lines is printed as ``Leaf :`` followed by that
        text verbatim and a blank line.
        """
        leaf_formatter = leaf_formatter or _format_leaf
        lines: List[str] = []

        def visit(node: Any, path: str) -> None:
            if isinstance(node, _Leaf):
                body = leaf_formatter(node.value)
                if "\n" in body:
                    lines.append(f"{path} Leaf :")
                    lines.extend(body.split("\n"))
                    lines.append("")
                else:
                    lines.append(f"{path} Leaf {body}")
                return
            lines.append(f"{path} Choice({formatter(node.label.key)}) ")
            for i, child in enumerate(node.branches):
                visit(child, f"{path} {i}")

        visit(self._root, "")
        return "\n".join(lines)

    def print(self, s: str = "", formatter: KeyFormatter = default_key_formatter) -> None:
        if s:
            print(s)
        print(self.to_string(formatter))

    def __repr__(self) -> str:
        return f"DecisionTree(keys={[dk.key for dk in self.keys]}, nr_leaves={self.nr_leaves()})"


def _format_leaf(value: Any) -> str:
    if value is None:
        return "nullptr"
    if hasattr(value, "to_string"):
        return value.to_string()
    if isinstance(value, (float, np.floating)):
        return f"{float(value):.6g}"
    return str(value)


def _check_distinct(keys: Sequence[DiscreteKey]) -> None:
    ids = [dk.key for dk in keys]
    if len(set(ids)) != len(ids):
        raise ValueError(f"Duplicate discrete keys: {ids}")
    for dk in keys:
        if dk.cardinality < 1:
            raise ValueError(f"Cardinality of {dk.key!r} must be >= 1, got {dk.cardinality}")
