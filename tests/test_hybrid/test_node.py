"""Tests for HybridNode classification, HybridConditional and HybridFactor."""

import numpy as np
import pytest

from hybridbn.core.errors import IllFormedNodeError, WrongVariantError
from hybridbn.core.keys import DiscreteKey
from hybridbn.core.values import HybridValues
from hybridbn.discrete import DecisionTreeFactor, DiscreteConditional
from hybridbn.hybrid import (
    GaussianMixture,
    HybridCategory,
    HybridConditional,
    HybridFactor,
    HybridNode,
)
from hybridbn.linear import GaussianConditional, JacobianFactor

M = DiscreteKey("m", 2)


def two_means_mixture(sigmas=(2.0, 2.0)) -> GaussianMixture:
    return GaussianMixture(
        ["z"],
        [],
        [M],
        [
            GaussianConditional.from_mean_and_stddev("z", [1.0], sigmas[0]),
            GaussianConditional.from_mean_and_stddev("z", [3.0], sigmas[1]),
        ],
    )


class TestHybridNode:
    def test_category_from_key_sets(self):
        assert HybridNode(["x"], []).category is HybridCategory.CONTINUOUS
        assert HybridNode([], [M]).category is HybridCategory.DISCRETE
        assert HybridNode(["x"], [M]).category is HybridCategory.HYBRID

    def test_empty_node_is_ill_formed(self):
        with pytest.raises(IllFormedNodeError):
            HybridNode([], [])

    def test_header_format(self):
        node = HybridNode(["x1", "x2"], [DiscreteKey(1, 2)])
        assert node.header() == "Hybrid [x1 x2; 1]"
        assert HybridNode(["x1"], []).header() == "Continuous [x1]"
        assert HybridNode([], [M, DiscreteKey("n", 3)]).header() == "Discrete [m n]"

    def test_header_uses_formatter(self):
        node = HybridNode(["x1"], [M])
        assert node.header(lambda k: k.upper()) == "Hybrid [X1; M]"

    def test_equals_compares_tag_and_keys(self):
        assert HybridNode(["x"], [M]).equals(HybridNode(["x"], [M]))
        assert not HybridNode(["x"], [M]).equals(HybridNode(["x"], []))
        assert not HybridNode(["x"], [M]).equals(HybridNode(["x"], [DiscreteKey("m", 3)]))


class TestHybridConditional:
    def test_discrete_variant(self):
        node = HybridConditional(DiscreteConditional(M, "1/3"))
        assert node.is_discrete()
        assert node.frontals == ["m"]
        assert node.evaluate(HybridValues(discrete={"m": 1})) == pytest.approx(0.75)
        with pytest.raises(WrongVariantError):
            node.as_mixture()

    def test_wrong_variant_is_type_error(self):
        node = HybridConditional(GaussianConditional.from_mean_and_stddev("x", [0.0], 1.0))
        with pytest.raises(TypeError):
            node.as_discrete()

    def test_mixture_variant_keys(self):
        node = HybridConditional(two_means_mixture())
        assert node.is_hybrid()
        assert node.continuous_keys == ["z"]
        assert node.discrete_keys == [M]
        assert node.parents == ["m"]
        assert node.header() == "Hybrid [z; m]"

    def test_mixture_evaluate_matches_component(self):
        node = HybridConditional(two_means_mixture((8.0, 4.0)))
        values = HybridValues({"z": [2.0]}, {"m": 0})
        component = node.as_mixture().choose({"m": 0})
        assert node.evaluate(values) == pytest.approx(component.evaluate({"z": [2.0]}))

    def test_equals_with_tolerance(self):
        a = HybridConditional(GaussianConditional.from_mean_and_stddev("x", [0.0], 1.0))
        b = HybridConditional(GaussianConditional.from_mean_and_stddev("x", [1e-12], 1.0))
        c = HybridConditional(GaussianConditional.from_mean_and_stddev("x", [0.1], 1.0))
        assert a.equals(b)
        assert not a.equals(c)

    def test_to_string_starts_with_header(self):
        node = HybridConditional(two_means_mixture())
        assert node.to_string().splitlines()[0] == "Hybrid [z; m]"


class TestHybridFactor:
    def test_wraps_each_variant(self):
        assert HybridFactor(DecisionTreeFactor([M], [1.0, 2.0])).is_discrete()
        assert HybridFactor(JacobianFactor([("x", np.eye(1))], [0.0])).is_continuous()

    def test_error_tree_of_gaussian_factor_is_leaf(self):
        factor = HybridFactor(JacobianFactor([("x", np.eye(1))], [1.0]))
        tree = factor.error_tree({"x": [0.0]})
        assert tree.is_leaf()
        assert tree({}) == pytest.approx(0.5)

    def test_rejects_unknown_payload(self):
        with pytest.raises(TypeError):
            HybridFactor("not a factor")
