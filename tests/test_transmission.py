import numpy as np
import pytest

from ctabc.errors import ConfigurationError
from ctabc.model.transmission import (
    frequency_bias,
    get_transmission_model,
    neutral,
    validate_transmission_model,
)


def test_unbiased_copying_is_frequency_proportional():
    counts = np.array([6, 3, 1, 0])
    probs = frequency_bias(counts, 0.1, b=0.0)
    assert probs.shape == (5,)
    assert np.allclose(probs[:-1], counts / counts.sum() * 0.9)
    assert probs[-1] == pytest.approx(0.1)
    assert np.allclose(neutral(counts, 0.1), probs)


def test_no_innovation_when_mu_is_zero():
    probs = frequency_bias(np.array([4, 4, 2]), 0.0, b=0.3)
    assert probs[-1] == 0.0
    assert probs.sum() == pytest.approx(1.0)


def test_conformist_bias_favours_common_variants():
    counts = np.array([8, 2])
    conformist = frequency_bias(counts, 0.0, b=0.5)
    anti = frequency_bias(counts, 0.0, b=-0.5)
    assert conformist[0] > 0.8 > anti[0]
    assert anti[0] > 0.5


def test_extinct_variants_cannot_be_copied():
    probs = frequency_bias(np.array([0, 5, 0]), 0.05, b=-0.9)
    assert probs[0] == 0.0 and probs[2] == 0.0
    assert probs[1] == pytest.approx(0.95)


def test_empty_population_only_innovates():
    probs = frequency_bias(np.zeros(3, dtype=int), 0.05)
    assert probs.tolist() == [0.0, 0.0, 0.0, 1.0]


def test_builtin_models_validate():
    validate_transmission_model(frequency_bias, ["b"])
    validate_transmission_model(neutral, [])


def test_wrong_arity_rejected():
    with pytest.raises(ConfigurationError):
        validate_transmission_model(lambda counts: counts, [])
    with pytest.raises(ConfigurationError):
        validate_transmission_model(neutral, ["b"])


def test_unbound_required_parameter_rejected():
    def needs_k(counts, mu, k):
        return frequency_bias(counts, mu)

    with pytest.raises(ConfigurationError):
        validate_transmission_model(needs_k, [])
    validate_transmission_model(needs_k, ["k"])


def test_bad_outputs_rejected():
    def too_short(counts, mu):
        return np.ones(len(counts)) / len(counts)

    def negative(counts, mu):
        probs = np.zeros(len(counts) + 1)
        probs[0], probs[1] = 1.5, -0.5
        return probs

    def unnormalised(counts, mu):
        return np.ones(len(counts) + 1)

    for fn in (too_short, negative, unnormalised):
        with pytest.raises(ConfigurationError):
            validate_transmission_model(fn, [])


def test_unknown_model_name():
    assert get_transmission_model("neutral") is neutral
    with pytest.raises(ConfigurationError):
        get_transmission_model("prestige")
