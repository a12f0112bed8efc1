"""Invariant checks for discrete tables and pruned networks."""

from __future__ import annotations

import numpy as np

from ..discrete.conditional import DiscreteConditional
from ..discrete.factor import DecisionTreeFactor, enumerate_assignments


def total_mass(factor: DecisionTreeFactor) -> float:
    """
    Sum of a discrete factor's values over every joint assignment.

    Parameters
    ----------
    factor:
        Discrete factor.

    Returns
    -------
    float
        Total mass.
    """
    return float(factor.total())


def assert_normalized(conditional: DiscreteConditional, atol: float = 1e-9) -> None:
    """
    Assert that every row of a discrete conditional sums to one.

    Parameters
    ----------
    conditional:
        Conditional to check.
    atol:
        Absolute tolerance for |row sum - 1|.

    Raises
    ------
    ValueError
        If any row is not normalized within the tolerance.
    """
    for parent_assignment in enumerate_assignments(conditional.parents):
        total = 0.0
        for frontal_assignment in enumerate_assignments(conditional.frontals):
            total += conditional({**parent_assignment, **frontal_assignment})
        if not np.isfinite(total) or abs(total - 1.0) > atol:
            raise ValueError(
                f"Conditional row {parent_assignment} is not normalized within "
                f"tolerance {atol}: sum is {total}"
            )


def assert_leaf_budget(factor: DecisionTreeFactor, max_nr_leaves: int) -> None:
    """
    Assert that a discrete factor has at most ``max_nr_leaves`` non-zero entries.

    Raises
    ------
    ValueError
        If the budget is exceeded.
    """
    count = factor.nr_nonzero()
    if count > max_nr_leaves:
        raise ValueError(f"Factor keeps {count} assignments, budget is {max_nr_leaves}")
