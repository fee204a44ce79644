import numpy as np
import pandas as pd

from ctabc.calibration.validation import (
    compute_coverage,
    posterior_predictive_check,
    summarize_predictive,
)
from ctabc.model.factory import gen_sim


def test_predictive_draws_layout(example_dataset):
    simulator = gen_sim(example_dataset, ["mu", "b"], s_mean=0.2, r_mean=0.2)
    posterior = pd.DataFrame({"b": [0.0, 0.01, -0.01], "mu": [0.01, 0.005, 0.02]})
    draws = posterior_predictive_check(example_dataset, simulator, posterior, n_draws=5, seed=2)
    assert list(draws.columns) == ["draw", "variant", "phase", "timestamp", "frequency"]
    assert draws.shape[0] == 5 * 16
    assert set(draws["phase"]) == {2, 3}
    assert set(draws["timestamp"]) == {30, 60}
    assert draws["frequency"].between(0, 1).all()


def test_uses_every_posterior_row_by_default(small_dataset):
    simulator = gen_sim(small_dataset, ["mu", "b"])
    posterior = np.array([[0.01, 0.0], [0.02, 0.1]])
    draws = posterior_predictive_check(small_dataset, simulator, posterior, seed=1)
    assert sorted(draws["draw"].unique()) == [0, 1]


def test_summary_and_coverage(example_dataset):
    simulator = gen_sim(example_dataset, ["mu", "b"], s_mean=0.2, r_mean=0.2)
    posterior = pd.DataFrame({"mu": [0.01], "b": [0.0]})
    draws = posterior_predictive_check(example_dataset, simulator, posterior, n_draws=20, seed=3)
    summary = summarize_predictive(draws, example_dataset, level=0.9)
    assert summary.shape[0] == 16
    assert {"observed", "lower", "upper", "in_interval", "z_score"} <= set(summary.columns)
    assert (summary["lower"] <= summary["upper"]).all()
    first = summary[(summary["variant"] == example_dataset.variants[0]) & (summary["phase"] == 2)]
    assert first["observed"].iloc[0] == example_dataset.target_frequencies[0]
    coverage = compute_coverage(summary)
    assert coverage["n_targets"] == 16
    assert 0.0 <= coverage["coverage"] <= 1.0
