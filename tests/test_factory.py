import pickle

import numpy as np
import pytest

from ctabc.errors import ConfigurationError, DomainError
from ctabc.model.factory import CulturalSimulator, ThetaSchema, gen_sim
from ctabc.model.transmission import frequency_bias


def test_example_scenario(example_dataset):
    simulator = gen_sim(example_dataset, ["mu", "b"], s_mean=0.2, r_mean=0.2)
    out = simulator([0.05, -0.01], rng=123)
    assert out.shape == (16,)
    assert np.all((out >= 0) & (out <= 1))
    again = simulator([0.05, -0.01], rng=123)
    assert np.array_equal(out, again)


def test_every_call_is_a_fresh_draw(example_dataset):
    simulator = gen_sim(example_dataset, ["mu", "b"], s_mean=0.2, r_mean=0.2, s_var=0.001)
    rng = np.random.default_rng(0)
    first = simulator.run([0.05, 0.0], rng)
    second = simulator.run([0.05, 0.0], rng)
    assert first.sampling_fraction != second.sampling_fraction
    assert not np.array_equal(first.frequencies, second.frequencies)


def test_wrong_theta_length_fails_fast(example_dataset):
    simulator = gen_sim(example_dataset, ["mu", "b"], s_mean=0.2)
    with pytest.raises(DomainError):
        simulator([0.05])
    with pytest.raises(DomainError):
        simulator([0.05, 0.0, 1.0])
    with pytest.raises(DomainError):
        simulator([np.nan, 0.0])


def test_invalid_innovation_rate(example_dataset):
    simulator = gen_sim(example_dataset, ["mu", "b"], s_mean=0.2)
    with pytest.raises(DomainError):
        simulator([1.5, 0.0], rng=0)


def test_nuisance_parameters_can_be_free(small_dataset):
    simulator = gen_sim(small_dataset, ["mu", "s", "r"], transmission="neutral")
    outcome = simulator.run([0.01, 0.25, 0.4], rng=1)
    assert outcome.sampling_fraction == 0.25
    assert outcome.replacement_rate == 0.4


def test_fixed_parameters_reach_the_model(small_dataset):
    seen = {}

    def recording(counts, mu, b=0.0):
        seen["b"] = b
        return frequency_bias(counts, mu)

    simulator = CulturalSimulator(small_dataset, ["mu"], transmission=recording, fixed_params={"b": 0.7})
    seen.clear()
    simulator([0.05], rng=3)
    assert seen["b"] == 0.7


@pytest.mark.parametrize(
    "free, kwargs",
    [
        (["b"], {}),
        (["mu", "mu"], {}),
        ([], {}),
        (["mu", "b"], {"fixed_params": {"b": 0.1}}),
        (["mu", "b"], {"transmission": "neutral"}),
        (["mu"], {"alpha": 0.0}),
        (["mu"], {"transmission": "unknown"}),
    ],
)
def test_construction_errors(small_dataset, free, kwargs):
    with pytest.raises(ConfigurationError):
        CulturalSimulator(small_dataset, free, **kwargs)


def test_schema_binds_in_order():
    schema = ThetaSchema(("mu", "b"))
    assert schema.bind([0.1, -0.2]) == {"mu": 0.1, "b": -0.2}


def test_simulator_is_picklable(small_dataset):
    simulator = gen_sim(small_dataset, ["mu", "b"])
    clone = pickle.loads(pickle.dumps(simulator))
    assert np.array_equal(clone([0.02, 0.1], rng=5), simulator([0.02, 0.1], rng=5))
