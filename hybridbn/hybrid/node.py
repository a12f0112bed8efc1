"""Category tagging shared by hybrid conditionals and factors."""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence

from ..core.errors import IllFormedNodeError
from ..core.keys import DiscreteKey, Key, KeyFormatter, default_key_formatter


class HybridCategory(Enum):
    """Which kinds of variables a node depends on."""

    DISCRETE = "Discrete"
    CONTINUOUS = "Continuous"
    HYBRID = "Hybrid"


def classify(continuous_keys: Sequence[Key], discrete_keys: Sequence[DiscreteKey]) -> HybridCategory:
    """Category from which key sets are non-empty.

    Raises:
        IllFormedNodeError: If both key sets are empty.
    """
    if continuous_keys and discrete_keys:
        return HybridCategory.HYBRID
    if continuous_keys:
        return HybridCategory.CONTINUOUS
    if discrete_keys:
        return HybridCategory.DISCRETE
    raise IllFormedNodeError("A hybrid node needs at least one continuous or discrete key")


class HybridNode:
    """Keys and category common to every hybrid conditional and factor.

    Attributes:
        continuous_keys: Continuous variables, in order.
        discrete_keys: Discrete variables, in order.
        category: Derived from which of the two key lists are non-empty.
    """

    def __init__(self, continuous_keys: Sequence[Key], discrete_keys: Sequence[DiscreteKey]) -> None:
        self.continuous_keys: List[Key] = list(continuous_keys)
        self.discrete_keys: List[DiscreteKey] = [DiscreteKey(*dk) for dk in discrete_keys]
        self.category = classify(self.continuous_keys, self.discrete_keys)

    @property
    def keys(self) -> List[Key]:
        """Continuous keys followed by discrete key identifiers."""
        return self.continuous_keys + [dk.key for dk in self.discrete_keys]

    def is_discrete(self) -> bool:
        return self.category is HybridCategory.DISCRETE

    def is_continuous(self) -> bool:
        return self.category is HybridCategory.CONTINUOUS

    def is_hybrid(self) -> bool:
        return self.category is HybridCategory.HYBRID

    def header(self, formatter: KeyFormatter = default_key_formatter) -> str:
        """One-line summary such as ``Hybrid [x1 x2; m1]``."""
        text = self.category.value + " ["
        for i, key in enumerate(self.continuous_keys):
            text += formatter(key)
            if i < len(self.continuous_keys) - 1:
                text += " "
            elif self.discrete_keys:
                text += "; "
        text += " ".join(formatter(dk.key) for dk in self.discrete_keys)
        return text + "]"

    def _same_keys(self, other: "HybridNode") -> bool:
        return (
            self.category is other.category
            and self.continuous_keys == other.continuous_keys
            and self.discrete_keys == other.discrete_keys
        )

    def equals(self, other: "HybridNode", tol: float = 1e-9) -> bool:
        return isinstance(other, HybridNode) and self._same_keys(other)

    def to_string(self, formatter: KeyFormatter = default_key_formatter) -> str:
        return self.header(formatter)

    def print(self, s: str = "", formatter: KeyFormatter = default_key_formatter) -> None:
        if s:
            print(s)
        print(self.to_string(formatter))
