"""Decision trees of linear-Gaussian components sharing continuous keys."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..core.errors import PrunedBranchError
from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter
from ..discrete.decision_tree import DecisionTree


class Mixture:
    """A DecisionTree of components indexed by discrete keys.

    Every non-null component is defined over the same continuous keys; only
    numeric parameters differ between leaves. A null (None) leaf marks a
    pruned branch.

    Attributes:
        continuous_keys: Continuous keys shared by every component.
        discrete_keys: Discrete keys the tree may branch on.
        tree: DecisionTree of components (or None).
    """

    def __init__(
        self,
        continuous_keys: Sequence[Key],
        discrete_keys: Union[DiscreteKey, Sequence[DiscreteKey]],
        components: Union[DecisionTree, Sequence[Any]],
    ) -> None:
        if isinstance(discrete_keys, DiscreteKey):
            discrete_keys = [discrete_keys]
        self.continuous_keys: List[Key] = list(continuous_keys)
        self.discrete_keys: List[DiscreteKey] = [DiscreteKey(*dk) for dk in discrete_keys]
        if isinstance(components, DecisionTree):
            tree = components
        else:
            tree = DecisionTree.from_table(self.discrete_keys, list(components))
        extra = {dk.key for dk in tree.keys} - {dk.key for dk in self.discrete_keys}
        if extra:
            raise ValueError(f"Tree branches on keys {sorted(map(str, extra))} not declared as discrete keys")
        for leaf in tree.leaves():
            if leaf is not None:
                self._check_component(leaf)
        self.tree = tree

    def _check_component(self, component: Any) -> None:
        """Raise ValueError if ``component`` does not fit this mixture."""

    def __call__(self, assignment: Mapping[Key, int]) -> Any:
        """Component at ``assignment``.

        Raises:
            MissingKeyError: If the assignment lacks a key the tree branches on.
            PrunedBranchError: If the selected leaf was pruned.
        """
        component = self.tree(assignment)
        if component is None:
            selected = {dk.key: assignment[dk.key] for dk in self.tree.keys}
            raise PrunedBranchError(f"Mixture branch {selected} was pruned")
        return component

    def components(self) -> List[Any]:
        """Distinct non-null leaves in pre-order."""
        return [leaf for leaf in self.tree.leaves() if leaf is not None]

    def nr_components(self) -> int:
        return len(self.components())

    def _map(self, fn: Callable[[Any], Any], pruned: Any = None) -> DecisionTree:
        """Apply ``fn`` to every non-null leaf, mapping null leaves to ``pruned``."""
        return self.tree.apply(lambda c: pruned if c is None else fn(c))

    def _kept_tree(self, kept: Sequence[Mapping[Key, int]]) -> DecisionTree:
        """Null every leaf that agrees with none of the ``kept`` assignments.

        Agreement is checked on the keys shared between this mixture and
        each kept assignment.
        """
        keys = self.discrete_keys

        def select(assignment: Dict[Key, int]) -> Any:
            for candidate in kept:
                if all(candidate[k] == v for k, v in assignment.items() if k in candidate):
                    return self.tree(assignment)
            return None

        return DecisionTree.from_function(keys, select)

    def _same_structure(self, other: "Mixture") -> bool:
        return (
            type(self) is type(other)
            and self.continuous_keys == other.continuous_keys
            and self.discrete_keys == other.discrete_keys
        )

    def equals(self, other: "Mixture", tol: float = 1e-9) -> bool:
        return isinstance(other, Mixture) and self._same_structure(other) and self.tree.equals(other.tree, tol)

    def to_string(
        self,
        formatter: KeyFormatter = default_key_formatter,
        leaf_formatter: Optional[Callable[[Any], str]] = None,
    ) -> str:
        if leaf_formatter is None:
            leaf_formatter = lambda c: "nullptr" if c is None else c.to_string(formatter)
        return self.tree.to_string(formatter, leaf_formatter)
