"""Tests for GaussianConditional and GaussianBayesNet."""

import numpy as np
import pytest

from hybridbn.core.errors import MissingKeyError
from hybridbn.linear import GaussianBayesNet, GaussianConditional, NoiseModel

LOG_2PI = np.log(2.0 * np.pi)


def test_from_mean_and_stddev_density():
    conditional = GaussianConditional.from_mean_and_stddev("z", [1.0], 2.0)
    values = {"z": np.array([2.0])}
    expected = -0.5 * (1.0 / 2.0) ** 2 - np.log(2.0) - 0.5 * LOG_2PI
    assert conditional.log_probability(values) == pytest.approx(expected)
    assert conditional.error(values) == pytest.approx(0.125)
    assert conditional.log_normalization_constant() == pytest.approx(-np.log(2.0) - 0.5 * LOG_2PI)


def test_solve_with_parent():
    # x = 2 + 3 * p
    conditional = GaussianConditional.from_mean_and_stddev(
        "x", [2.0], 1.0, parents=[("p", np.array([[3.0]]))]
    )
    assert conditional.parents == ["p"]
    solution = conditional.solve({"p": np.array([1.0])})
    assert np.allclose(solution["x"], [5.0])


def test_solve_missing_parent():
    conditional = GaussianConditional([("x", np.eye(1))], [0.0], [("p", np.eye(1))])
    with pytest.raises(MissingKeyError):
        conditional.solve({})


def test_multivariate_normalization_matches_covariance():
    R = np.array([[2.0, 1.0], [0.0, 1.0]])
    conditional = GaussianConditional([("x", R)], [1.0, 1.0], model=NoiseModel.diagonal([1.0, 0.5]))
    cov = conditional.covariance()
    expected = -0.5 * np.log(np.linalg.det(2.0 * np.pi * cov))
    assert conditional.log_normalization_constant() == pytest.approx(expected)


def test_likelihood_reproduces_error():
    conditional = GaussianConditional.from_mean_and_stddev(
        "z", [0.5], 2.0, parents=[("x", np.array([[1.0]]))]
    )
    z = {"z": np.array([3.0])}
    factor = conditional.likelihood(z)
    assert factor.keys == ["x"]
    x = {"x": np.array([1.5])}
    assert factor.error(x) == pytest.approx(conditional.error({**z, **x}))


def test_sample_statistics(rng):
    conditional = GaussianConditional.from_mean_and_stddev("x", [1.0], 0.5)
    draws = np.array([conditional.sample(rng=rng)["x"][0] for _ in range(4000)])
    assert draws.mean() == pytest.approx(1.0, abs=0.05)
    assert draws.std() == pytest.approx(0.5, abs=0.05)


def test_singular_r_rejected():
    with pytest.raises(ValueError, match="non-singular"):
        GaussianConditional([("x", np.zeros((1, 1)))], [0.0])


def test_bayes_net_back_substitution_runs_last_to_first():
    net = GaussianBayesNet(
        [
            GaussianConditional.from_mean_and_stddev("x1", [0.0], 1.0, parents=[("x2", np.eye(1))]),
            GaussianConditional.from_mean_and_stddev("x2", [2.0], 1.0),
        ]
    )
    solution = net.optimize()
    assert np.allclose(solution["x2"], [2.0])
    assert np.allclose(solution["x1"], [2.0])
    assert net.error(solution) == pytest.approx(0.0)


def test_bayes_net_sample_keeps_given(rng):
    net = GaussianBayesNet(
        [
            GaussianConditional.from_mean_and_stddev("x1", [0.0], 1.0, parents=[("x2", np.eye(1))]),
            GaussianConditional.from_mean_and_stddev("x2", [2.0], 1.0),
        ]
    )
    sample = net.sample({"x2": np.array([10.0])}, rng=rng)
    assert np.allclose(sample["x2"], [10.0])
    assert "x1" in sample
