"""Tests for GaussianMixtureFactor and GaussianMixture."""

import numpy as np
import pytest

from hybridbn.core.errors import MissingKeyError, PrunedBranchError
from hybridbn.core.keys import DiscreteKey
from hybridbn.core.values import HybridValues
from hybridbn.discrete import DecisionTree, DecisionTreeFactor
from hybridbn.hybrid import GaussianMixture, GaussianMixtureFactor
from hybridbn.linear import GaussianConditional, JacobianFactor, NoiseModel

LOG_2PI = np.log(2.0 * np.pi)


def zero_factor(keys_and_dims, tag: float) -> JacobianFactor:
    """Zero Jacobian factor whose b vector identifies it."""
    return JacobianFactor([(k, np.zeros((2, d))) for k, d in keys_and_dims], [tag, tag])


class TestGaussianMixtureFactor:
    def test_sum_combines_components_per_assignment(self):
        m1, m2 = DiscreteKey(1, 2), DiscreteKey(2, 3)
        factors_a = [zero_factor([("x1", 1), ("x2", 2)], 10 + i) for i in range(2)]
        factors_b = [zero_factor([("x1", 1), ("x3", 3)], 20 + i) for i in range(3)]
        mixture_a = GaussianMixtureFactor(["x1", "x2"], [m1], factors_a)
        mixture_b = GaussianMixtureFactor(["x1", "x3"], [m2], factors_b)

        total = mixture_a + mixture_b
        assert {dk.key for dk in total.keys} == {1, 2}
        graph = total({1: 1, 2: 2})
        assert graph.factors[0] is factors_a[1]
        assert graph.factors[1] is factors_b[2]

    def test_error_tree_regression(self):
        m1 = DiscreteKey(1, 2)
        I = np.eye(2)
        f0 = JacobianFactor([("x1", I), ("x2", I)], np.zeros(2))
        f1 = JacobianFactor([("x1", I), ("x2", 2 * I)], np.zeros(2))
        mixture = GaussianMixtureFactor(["x1", "x2"], [m1], [f0, f1])

        continuous = {"x1": np.zeros(2), "x2": np.ones(2)}
        tree = mixture.error_tree(continuous)
        expected = DecisionTree.from_table([m1], [1.0, 4.0])
        assert tree.equals(expected)
        assert tree.nr_leaves() == 2
        assert mixture.error(HybridValues(continuous, {1: 1})) == pytest.approx(4.0)

    def test_log_normalizer_added_to_error(self):
        m = DiscreteKey("m", 2)
        f = JacobianFactor([("x", np.eye(1))], [0.0])
        mixture = GaussianMixtureFactor(["x"], [m], [f, f], [0.25, 1.5])
        assert mixture.error(HybridValues({"x": [1.0]}, {"m": 1})) == pytest.approx(2.0)

    def test_pruned_component(self):
        m = DiscreteKey("m", 2)
        mixture = GaussianMixtureFactor(["x"], [m], [JacobianFactor([("x", np.eye(1))], [0.0]), None])
        with pytest.raises(PrunedBranchError):
            mixture.error(HybridValues({"x": [0.0]}, {"m": 1}))
        assert mixture.error_tree({"x": [0.0]})({"m": 1}) == np.inf

    def test_missing_discrete_value(self):
        m = DiscreteKey("m", 2)
        f = JacobianFactor([("x", np.eye(1))], [0.0])
        mixture = GaussianMixtureFactor(["x"], [m], [f, f])
        with pytest.raises(MissingKeyError):
            mixture.error(HybridValues({"x": [0.0]}, {}))

    def test_component_keys_must_match(self):
        m = DiscreteKey("m", 2)
        with pytest.raises(ValueError, match="differ"):
            GaussianMixtureFactor(
                ["x"],
                [m],
                [JacobianFactor([("x", np.eye(1))], [0.0]), JacobianFactor([("y", np.eye(1))], [0.0])],
            )

    def test_printing(self):
        m1 = DiscreteKey(1, 2)
        f = JacobianFactor([("x1", np.zeros((2, 1))), ("x2", np.zeros((2, 2)))], np.zeros(2))
        leaf = "\n".join(
            [
                "  A[x1] = [",
                "\t0;",
                "\t0",
                "]",
                "  A[x2] = [",
                "\t0, 0;",
                "\t0, 0",
                "]",
                "  b = [ 0 0 ]",
                "  No noise model",
                "",
            ]
        )
        expected = (
            "GaussianMixtureFactor\n"
            "Hybrid [x1 x2; 1]{\n"
            " Choice(1) \n"
            f" 0 Leaf :\n{leaf}\n"
            f" 1 Leaf :\n{leaf}\n"
            "}"
        )
        assert GaussianMixtureFactor(["x1", "x2"], [m1], [f, f]).to_string() == expected


class TestGaussianMixture:
    def setup_method(self):
        self.m = DiscreteKey("m", 2)
        self.c0 = GaussianConditional.from_mean_and_stddev("z", [1.0], 8.0)
        self.c1 = GaussianConditional.from_mean_and_stddev("z", [3.0], 4.0)
        self.mixture = GaussianMixture(["z"], [], [self.m], [self.c0, self.c1])

    def test_log_probability_is_component_density(self):
        for index, component in enumerate([self.c0, self.c1]):
            values = HybridValues({"z": [2.0]}, {"m": index})
            assert self.mixture.log_probability(values) == pytest.approx(
                component.log_probability({"z": [2.0]})
            )

    def test_error_offsets_by_log_constant(self):
        values = HybridValues({"z": [1.0]}, {"m": 0})
        # Residual is zero, so the error is log(8) - log(4).
        assert self.mixture.error(values) == pytest.approx(np.log(2.0))
        assert self.mixture.log_constant == pytest.approx(-np.log(4.0) - 0.5 * LOG_2PI)

    def test_likelihood_without_parents_is_discrete(self):
        likelihood = self.mixture.likelihood({"z": [2.0]})
        assert isinstance(likelihood, DecisionTreeFactor)
        assert likelihood({"m": 1}) == pytest.approx(self.c1.evaluate({"z": [2.0]}))

    def test_likelihood_with_parents_keeps_normalizers(self):
        A = np.array([[1.0]])
        c0 = GaussianConditional.from_mean_and_stddev("z", [0.0], 1.0, parents=[("x", A)])
        c1 = GaussianConditional.from_mean_and_stddev("z", [0.0], 3.0, parents=[("x", A)])
        mixture = GaussianMixture(["z"], ["x"], [self.m], [c0, c1])
        likelihood = mixture.likelihood({"z": [1.0]})
        assert isinstance(likelihood, GaussianMixtureFactor)
        assert likelihood.continuous_keys == ["x"]
        for index, component in enumerate([c0, c1]):
            values = HybridValues({"x": [0.5]}, {"m": index})
            assert likelihood.error(values) == pytest.approx(
                -component.log_probability({"z": [1.0], "x": [0.5]})
            )

    def test_components_must_share_keys(self):
        other = GaussianConditional.from_mean_and_stddev("y", [0.0], 1.0)
        with pytest.raises(ValueError, match="does not match"):
            GaussianMixture(["z"], [], [self.m], [self.c0, other])

    def test_prune_nulls_unkept_components(self):
        pruned = self.mixture.prune([{"m": 1}])
        assert pruned.choose({"m": 1}).equals(self.c1)
        with pytest.raises(PrunedBranchError):
            pruned.choose({"m": 0})
        assert pruned.log_probability_tree({"z": [2.0]})({"m": 0}) == -np.inf

    def test_sample_uses_chosen_component(self, rng):
        c0 = GaussianConditional.from_mean_and_stddev("z", [-100.0], 1e-3)
        c1 = GaussianConditional.from_mean_and_stddev("z", [100.0], 1e-3)
        mixture = GaussianMixture(["z"], [], [self.m], [c0, c1])
        sample = mixture.sample(HybridValues(discrete={"m": 1}), rng)
        assert sample["z"][0] == pytest.approx(100.0, abs=0.1)

    def test_equals(self):
        same = GaussianMixture(["z"], [], [self.m], [self.c0, self.c1])
        swapped = GaussianMixture(["z"], [], [self.m], [self.c1, self.c0])
        assert self.mixture.equals(same)
        assert not self.mixture.equals(swapped)

    def test_noise_model_in_printing(self):
        text = self.mixture.to_string()
        assert text.splitlines()[0] == "GaussianMixture P( z | m )"
        assert "Noise model: isotropic dim=1 sigma=8" in text
