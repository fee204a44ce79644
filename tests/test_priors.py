import numpy as np
import pytest

from ctabc.calibration.priors import (
    ParameterPrior,
    compute_prior_probability,
    priors_from_mapping,
    sample_prior_matrix,
)
from ctabc.errors import ConfigurationError


def test_samples_respect_bounds():
    rng = np.random.default_rng(0)
    uniform = ParameterPrior("b", "uniform", (-0.1, 0.1))
    loguniform = ParameterPrior("mu", "loguniform", (1e-4, 0.1))
    u = uniform.sample(rng, n=500)
    lu = loguniform.sample(rng, n=500)
    assert u.min() >= -0.1 and u.max() <= 0.1
    assert lu.min() >= 1e-4 and lu.max() <= 0.1
    # log-uniform puts half its mass below the geometric midpoint
    assert 0.4 < np.mean(lu < np.sqrt(1e-4 * 0.1)) < 0.6


def test_mapping_accepts_tuples_and_dicts():
    priors = priors_from_mapping(
        {
            "mu": ("loguniform", 1e-4, 0.1),
            "b": {"distribution": "uniform", "params": [-0.1, 0.1], "description": "bias"},
        }
    )
    assert priors["mu"].distribution == "loguniform"
    assert priors["b"].params == (-0.1, 0.1)
    assert priors["b"].description == "bias"


@pytest.mark.parametrize(
    "entry",
    [
        ("gamma", 1.0, 2.0),
        ("uniform", 1.0, 0.0),
        ("loguniform", 0.0, 1.0),
        ("normal", 0.0, -1.0),
        ("uniform", 0.0),
    ],
)
def test_invalid_priors_rejected(entry):
    with pytest.raises(ConfigurationError):
        priors_from_mapping({"x": entry})


def test_prior_matrix_column_order():
    priors = priors_from_mapping({"a": ("uniform", 0.0, 1.0), "c": ("uniform", 10.0, 11.0)})
    matrix = sample_prior_matrix(priors, ["c", "a"], np.random.default_rng(1), 20)
    assert matrix.shape == (20, 2)
    assert np.all(matrix[:, 0] >= 10.0)
    assert np.all(matrix[:, 1] <= 1.0)
    with pytest.raises(ConfigurationError):
        sample_prior_matrix(priors, ["a", "z"], np.random.default_rng(1), 5)


def test_log_prob():
    priors = priors_from_mapping({"a": ("uniform", 0.0, 2.0), "c": ("normal", 0.0, 1.0)})
    assert priors["a"].log_prob(1.0) == pytest.approx(np.log(0.5))
    assert priors["a"].log_prob(3.0) == -np.inf
    joint = compute_prior_probability({"a": 1.0, "c": 0.0}, priors)
    assert joint == pytest.approx(np.log(0.5) - 0.5 * np.log(2 * np.pi))
