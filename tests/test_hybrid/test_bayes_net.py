"""Tests for HybridBayesNet queries."""

import numpy as np
import pytest

from hybridbn.core.errors import (
    MissingKeyError,
    MissingMeasurementError,
    PrunedBranchError,
    TopologicalOrderError,
)
from hybridbn.core.keys import DiscreteKey
from hybridbn.core.values import HybridValues
from hybridbn.discrete import DiscreteConditional
from hybridbn.hybrid import GaussianMixture, HybridBayesNet
from hybridbn.linear import GaussianConditional, NoiseModel

M = DiscreteKey("m", 2)


def mixture_model(sigmas=(2.0, 2.0), prior="1/1") -> HybridBayesNet:
    """P(z | m) P(m) with component means 1 and 3."""
    net = HybridBayesNet()
    net.push_back(
        GaussianMixture(
            ["z"],
            [],
            [M],
            [
                GaussianConditional.from_mean_and_stddev("z", [1.0], sigmas[0]),
                GaussianConditional.from_mean_and_stddev("z", [3.0], sigmas[1]),
            ],
        )
    )
    net.push_back(DiscreteConditional(M, prior))
    return net


def switching_chain() -> HybridBayesNet:
    """p(x1 | x0, m1) p(x0 | m0) P(m1 | m0) P(m0) with distinct mode probabilities."""
    m0, m1 = DiscreteKey("m0", 2), DiscreteKey("m1", 2)
    I = np.eye(1)
    x1_components = [
        GaussianConditional.from_mean_and_stddev("x1", [step], 1.0, parents=[("x0", I)])
        for step in (0.0, 1.0)
    ]
    x0_components = [
        GaussianConditional.from_mean_and_stddev("x0", [mean], sigma)
        for mean, sigma in ((0.0, 1.0), (5.0, 2.0))
    ]
    return HybridBayesNet(
        [
            GaussianMixture(["x1"], ["x0"], [m1], x1_components),
            GaussianMixture(["x0"], [], [m0], x0_components),
            DiscreteConditional(m1, "1/4 3/2", parents=m0),
            DiscreteConditional(m0, "2/3"),
        ]
    )


class TestOrdering:
    def test_parent_before_child_rejected(self):
        net = HybridBayesNet()
        net.push_back(DiscreteConditional(M, "1/1"))
        with pytest.raises(TopologicalOrderError):
            net.push_back(mixture_model()[0])

    def test_duplicate_frontal_rejected(self):
        net = HybridBayesNet([GaussianConditional.from_mean_and_stddev("x", [0.0], 1.0)])
        with pytest.raises(TopologicalOrderError, match="already"):
            net.push_back(GaussianConditional.from_mean_and_stddev("x", [1.0], 1.0))

    def test_keys(self):
        net = switching_chain()
        assert [dk.key for dk in net.discrete_keys()] == ["m1", "m0"]
        assert net.continuous_keys() == ["x1", "x0"]


class TestChoose:
    def test_choose_selects_components_and_drops_discrete(self):
        net = switching_chain()
        chosen = net.choose({"m0": 1, "m1": 0})
        assert len(chosen) == 2
        assert chosen[0].equals(net[0].as_mixture().choose({"m1": 0}))
        assert chosen[1].equals(net[1].as_mixture().choose({"m0": 1}))

    def test_choose_missing_key(self):
        with pytest.raises(MissingKeyError):
            switching_chain().choose({"m0": 0})

    def test_choose_pruned_branch(self):
        pruned = switching_chain().prune(1)
        kept = pruned.optimize()
        other = {"m0": 1 - kept.discrete["m0"], "m1": kept.discrete["m1"]}
        with pytest.raises(PrunedBranchError):
            pruned.choose(other)


class TestEvaluate:
    def test_evaluate_is_product_of_conditionals(self):
        net = switching_chain()
        values = HybridValues({"x0": [0.3], "x1": [1.1]}, {"m0": 1, "m1": 0})
        expected = np.prod([c.evaluate(values) for c in net])
        assert net.evaluate(values) == pytest.approx(expected)
        assert net.log_probability(values) == pytest.approx(np.log(expected))

    def test_evaluate_tree_matches_pointwise(self):
        net = switching_chain()
        continuous = {"x0": [0.3], "x1": [1.1]}
        tree = net.evaluate(continuous)
        for m0 in range(2):
            for m1 in range(2):
                discrete = {"m0": m0, "m1": m1}
                assert tree(discrete) == pytest.approx(
                    net.evaluate(HybridValues(continuous, discrete))
                )

    def test_error_tree_matches_pointwise(self):
        net = switching_chain()
        continuous = {"x0": [0.3], "x1": [1.1]}
        tree = net.error_tree(continuous)
        discrete = {"m0": 0, "m1": 1}
        assert tree(discrete) == pytest.approx(net.error(HybridValues(continuous, discrete)))

    def test_evaluate_missing_continuous_value(self):
        with pytest.raises(MissingKeyError):
            mixture_model().evaluate(HybridValues({}, {"m": 0}))


class TestOptimize:
    def test_tighter_component_wins(self):
        result = mixture_model((8.0, 4.0)).optimize()
        assert result.discrete == {"m": 1}
        assert np.allclose(result.continuous["z"], [3.0])

    def test_ties_go_to_lowest_assignment(self):
        result = mixture_model((2.0, 2.0)).optimize()
        assert result.discrete == {"m": 0}
        assert np.allclose(result.continuous["z"], [1.0])

    def test_prior_breaks_symmetry(self):
        result = mixture_model((2.0, 2.0), prior="1/3").optimize()
        assert result.discrete == {"m": 1}

    def test_optimize_is_joint_maximum(self):
        net = switching_chain()
        best = net.optimize()
        best_log = net.log_probability(best)
        for m0 in range(2):
            for m1 in range(2):
                assignment = {"m0": m0, "m1": m1}
                candidate = HybridValues(net.optimize(assignment), assignment)
                assert net.log_probability(candidate) <= best_log + 1e-12

    def test_optimize_given_assignment_back_substitutes(self):
        solution = switching_chain().optimize({"m0": 1, "m1": 1})
        assert np.allclose(solution["x0"], [5.0])
        assert np.allclose(solution["x1"], [6.0])


class TestSample:
    def test_given_values_are_not_overwritten(self, rng):
        net = switching_chain()
        given = HybridValues({"x0": [7.0]}, {"m0": 1})
        sample = net.sample(given, rng)
        assert sample.discrete["m0"] == 1
        assert np.allclose(sample.continuous["x0"], [7.0])
        assert set(sample.continuous) == {"x0", "x1"}
        assert set(sample.discrete) == {"m0", "m1"}
        # The input is left untouched.
        assert "x1" not in given.continuous

    def test_mode_frequencies_follow_prior(self, rng):
        net = mixture_model(prior="1/3")
        draws = [net.sample(rng).discrete["m"] for _ in range(2000)]
        assert np.mean(draws) == pytest.approx(0.75, abs=0.04)

    def test_default_rng_is_reproducible(self):
        from hybridbn.core.rng import reset_default_rng

        reset_default_rng(7)
        first = switching_chain().sample()
        reset_default_rng(7)
        second = switching_chain().sample()
        assert first.equals(second)

    def test_given_mode_kept_in_joint_discrete_conditional(self, rng):
        m0, m1 = DiscreteKey("m0", 2), DiscreteKey("m1", 2)
        components = [
            GaussianConditional.from_mean_and_stddev("x", [float(mean)], 1.0) for mean in range(4)
        ]
        net = HybridBayesNet(
            [
                GaussianMixture(["x"], [], [m0, m1], components),
                DiscreteConditional([m0, m1], "1 1 1 1"),
            ]
        ).prune(4)
        draws = [net.sample(HybridValues(discrete={"m1": 1}), rng) for _ in range(50)]
        assert {d.discrete["m1"] for d in draws} == {1}
        assert {d.discrete["m0"] for d in draws} == {0, 1}

    def test_given_mode_with_zero_probability_rejected(self, rng):
        m0, m1 = DiscreteKey("m0", 2), DiscreteKey("m1", 2)
        net = HybridBayesNet([DiscreteConditional([m0, m1], "1 1 1 1")]).prune(1)
        with pytest.raises(ValueError, match="zero probability"):
            net.sample(HybridValues(discrete={"m1": 1}), rng)

    def test_partially_given_gaussian_frontals_rejected(self, rng):
        I = np.eye(1)
        net = HybridBayesNet([GaussianConditional([("a", I), ("b", I)], [0.0, 0.0])])
        with pytest.raises(ValueError, match="only some frontals"):
            net.sample(HybridValues({"a": [1.0]}), rng)


class TestPrune:
    def test_prune_respects_budget_and_normalizes(self):
        net = switching_chain()
        pruned = net.prune(2)
        posterior = pruned[len(pruned) - 1].as_discrete()
        assert posterior.nr_nonzero() <= 2
        assert sum(v for _, v in posterior.items()) == pytest.approx(1.0)

    def test_prune_keeps_most_probable_assignment(self):
        net = switching_chain()
        # P(m0=1) = 0.6, P(m1=0 | m0=1) = 0.6 -> 0.36 is the largest joint entry
        pruned = net.prune(1)
        posterior = pruned[len(pruned) - 1].as_discrete()
        assert posterior({"m0": 1, "m1": 0}) == pytest.approx(1.0)

    def test_prune_nulls_mixture_leaves(self):
        pruned = switching_chain().prune(1)
        x1 = pruned[0].as_mixture()
        x0 = pruned[1].as_mixture()
        assert x1.nr_components() == 1
        assert x0.nr_components() == 1
        with pytest.raises(PrunedBranchError):
            x0.choose({"m0": 0})

    def test_prune_returns_new_net(self):
        net = switching_chain()
        net.prune(1)
        assert len(net) == 4
        assert net[1].as_mixture().nr_components() == 2

    def test_prune_with_large_budget_keeps_distribution(self):
        net = switching_chain()
        pruned = net.prune(10)
        values = HybridValues({"x0": [0.3], "x1": [1.1]}, {"m0": 0, "m1": 1})
        assert pruned.evaluate(values) == pytest.approx(net.evaluate(values))

    def test_prune_rejects_zero_budget(self):
        with pytest.raises(ValueError):
            switching_chain().prune(0)


class TestToFactorGraph:
    def test_partial_measurement_rejected(self):
        conditional = GaussianConditional(
            [("z1", np.array([[1.0], [0.0]])), ("z2", np.array([[0.0], [1.0]]))],
            [0.0, 0.0],
            model=NoiseModel.unit(2),
        )
        net = HybridBayesNet([conditional])
        with pytest.raises(MissingMeasurementError):
            net.to_factor_graph({"z1": [1.0]})

    def test_measured_mixture_without_parents_becomes_discrete(self):
        graph = mixture_model().to_factor_graph({"z": [2.0]})
        assert len(graph) == 2
        assert all(factor.is_discrete() for factor in graph)

    def test_unmeasured_conditionals_pass_through(self):
        graph = switching_chain().to_factor_graph({})
        assert [f.category.value for f in graph] == ["Hybrid", "Hybrid", "Discrete", "Discrete"]
        values = HybridValues({"x0": [0.3], "x1": [1.1]}, {"m0": 1, "m1": 1})
        # Factors keep their normalization, so the graph error is -log density.
        assert graph.error(values) == pytest.approx(-switching_chain().log_probability(values))

    def test_print_header(self, capsys):
        mixture_model().print("net")
        out = capsys.readouterr().out
        assert out.startswith("net\nHybridBayesNet of size 2")
        assert "conditional 0: Hybrid [z; m]" in out
