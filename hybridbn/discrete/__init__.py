"""Discrete building blocks: decision trees, factors and conditionals."""

from .conditional import DiscreteConditional
from .decision_tree import DecisionTree
from .factor import DecisionTreeFactor, enumerate_assignments, product, union_keys

__all__ = [
    "DecisionTree",
    "DecisionTreeFactor",
    "DiscreteConditional",
    "enumerate_assignments",
    "product",
    "union_keys",
]
