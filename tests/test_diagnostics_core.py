"""Tests for core diagnostic functions."""

import pytest

from hybridbn.core.keys import DiscreteKey
from hybridbn.diagnostics import assert_leaf_budget, assert_normalized, total_mass
from hybridbn.discrete import DecisionTreeFactor, DiscreteConditional


def test_total_mass() -> None:
    """Test total_mass sums every joint assignment."""
    a, b = DiscreteKey("a", 2), DiscreteKey("b", 2)
    factor = DecisionTreeFactor([a, b], "1 2 3 4")
    assert total_mass(factor) == pytest.approx(10.0)


def test_assert_normalized_accepts_conditional() -> None:
    """Test that a constructed conditional passes the row check."""
    a, b = DiscreteKey("a", 2), DiscreteKey("b", 2)
    conditional = DiscreteConditional(a, "1/3 2/2", parents=[b])
    # Should not raise
    assert_normalized(conditional, atol=1e-12)


def test_assert_normalized_raises_for_unnormalized_rows() -> None:
    """Test that assert_normalized raises when a row is scaled after construction."""
    a = DiscreteKey("a", 2)
    conditional = DiscreteConditional(a, "1/3")
    conditional.tree = conditional.tree.apply(lambda v: 2.0 * v)
    with pytest.raises(ValueError, match="not normalized"):
        assert_normalized(conditional, atol=1e-6)


def test_assert_leaf_budget() -> None:
    """Test the non-zero assignment budget check."""
    a, b = DiscreteKey("a", 2), DiscreteKey("b", 2)
    factor = DecisionTreeFactor([a, b], "1 0 3 4")
    # Should not raise
    assert_leaf_budget(factor, 3)
    with pytest.raises(ValueError, match="budget is 2"):
        assert_leaf_budget(factor, 2)
    assert_leaf_budget(factor.prune(2), 2)
