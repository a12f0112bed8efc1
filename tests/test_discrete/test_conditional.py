"""Tests for DiscreteConditional."""

import numpy as np
import pytest

from hybridbn.core.errors import MissingKeyError
from hybridbn.core.keys import DiscreteKey
from hybridbn.discrete import DecisionTreeFactor, DiscreteConditional

M = DiscreteKey("m", 2)
P = DiscreteKey("p", 3)


def test_signature_rows_are_normalized():
    conditional = DiscreteConditional(M, "1/3 2/2 0/5", parents=P)
    assert conditional({"m": 1, "p": 0}) == pytest.approx(0.75)
    assert conditional({"m": 0, "p": 1}) == pytest.approx(0.5)
    assert conditional({"m": 0, "p": 2}) == 0.0
    assert conditional.frontal_keys() == ["m"]
    assert conditional.parent_keys() == ["p"]


def test_zero_row_rejected():
    with pytest.raises(ValueError, match="sums to"):
        DiscreteConditional(M, "0/0")


def test_log_probability_and_error():
    prior = DiscreteConditional(M, "1/3")
    assert prior.log_probability({"m": 0}) == pytest.approx(np.log(0.25))
    assert prior.error({"m": 0}) == pytest.approx(-np.log(0.25))


def test_from_factor_conditions_on_rest():
    joint = DecisionTreeFactor([M, DiscreteKey("q", 2)], "1 3 2 2")
    conditional = DiscreteConditional.from_factor(joint, [M])
    # P(m | q=0) = 1/3, 2/3
    assert conditional({"m": 0, "q": 0}) == pytest.approx(1.0 / 3.0)
    assert conditional.parent_keys() == ["q"]


def test_sample_uses_parent_row(rng):
    conditional = DiscreteConditional(M, "1/0 0/1", parents=DiscreteKey("q", 2))
    assert conditional.sample({"q": 0}, rng) == {"m": 0}
    assert conditional.sample({"q": 1}, rng) == {"m": 1}


def test_sample_frequencies(rng):
    prior = DiscreteConditional(M, "1/3")
    draws = [prior.sample(rng=rng)["m"] for _ in range(4000)]
    assert np.mean(draws) == pytest.approx(0.75, abs=0.03)


def test_sample_missing_parent():
    conditional = DiscreteConditional(M, "1/1 1/1 1/1", parents=P)
    with pytest.raises(MissingKeyError):
        conditional.sample({})


def test_argmax_first_on_ties():
    assert DiscreteConditional(M, "1/1").argmax() == {"m": 0}


def test_to_string_header():
    conditional = DiscreteConditional(M, "1/1 1/1 1/1", parents=P)
    assert conditional.to_string().splitlines()[0] == "P( m | p ):"
