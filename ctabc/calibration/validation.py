"""
Posterior Predictive Checks
============================
Reruns the simulator under accepted parameter sets and compares the
resulting variant frequencies with the observed ones.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

import numpy as np
import pandas as pd

from ctabc.analysis.aggregate import aggregate_draws
from ctabc.calibration.parallel import run_parallel
from ctabc.data.dataset import FrequencyDataset
from ctabc.rng import RNGManager


def posterior_predictive_check(
    dataset: FrequencyDataset,
    simulate_fn: Callable[..., np.ndarray],
    posterior: pd.DataFrame | np.ndarray,
    n_draws: Optional[int] = None,
    seed: int | None = None,
    workers: int = 1,
    chunksize: int = 8,
) -> pd.DataFrame:
    """
    Simulate from the posterior.

    Uses every posterior row once when ``n_draws`` is None, otherwise
    resamples ``n_draws`` rows with replacement. Failed simulations are
    dropped.

    Returns a long frame with columns ``draw, variant, phase, timestamp,
    frequency``; phases are numbered from 2 like the data rows they predict.
    """
    if isinstance(posterior, pd.DataFrame):
        names = getattr(simulate_fn, "param_names", None)
        posterior = posterior[list(names)] if names else posterior
        thetas = posterior.to_numpy(dtype=float)
    else:
        thetas = np.atleast_2d(np.asarray(posterior, dtype=float))
    if thetas.shape[0] == 0:
        raise ValueError("posterior sample is empty")

    rng_manager = RNGManager(seed)
    if n_draws is not None:
        rows = rng_manager.numpy.integers(0, thetas.shape[0], size=n_draws)
        thetas = thetas[rows]

    batch = run_parallel(
        simulate_fn,
        thetas,
        rng_manager.spawn(thetas.shape[0]),
        workers=workers,
        chunksize=chunksize,
    )
    if batch.n_failed:
        logging.warning("%d of %d predictive simulations failed", batch.n_failed, thetas.shape[0])

    k = dataset.k
    n_later = dataset.n_phases - 1
    variants = np.repeat([dataset.variants[c] for c in dataset.first_phase_variants], n_later)
    phases = np.tile(np.arange(2, dataset.n_phases + 1), k)
    timestamps = np.tile(dataset.timestamps[1:], k)

    frames = []
    for draw in np.flatnonzero(~batch.failed):
        frames.append(
            pd.DataFrame(
                {
                    "draw": int(draw),
                    "variant": variants,
                    "phase": phases,
                    "timestamp": timestamps,
                    "frequency": batch.sumstats[draw],
                }
            )
        )
    if not frames:
        return pd.DataFrame(columns=["draw", "variant", "phase", "timestamp", "frequency"])
    return pd.concat(frames, ignore_index=True)


def observed_frame(dataset: FrequencyDataset) -> pd.DataFrame:
    n_later = dataset.n_phases - 1
    return pd.DataFrame(
        {
            "variant": np.repeat([dataset.variants[c] for c in dataset.first_phase_variants], n_later),
            "phase": np.tile(np.arange(2, dataset.n_phases + 1), dataset.k),
            "observed": dataset.target_frequencies,
        }
    )


def summarize_predictive(
    draws: pd.DataFrame,
    dataset: FrequencyDataset,
    level: float = 0.9,
) -> pd.DataFrame:
    """Per (variant, phase) predictive distribution next to the observed frequency."""
    summary = aggregate_draws(draws, ["variant", "phase", "timestamp"], "frequency", level=level)
    summary = summary.merge(observed_frame(dataset), on=["variant", "phase"], how="left")
    summary["in_interval"] = (summary["observed"] >= summary["lower"]) & (
        summary["observed"] <= summary["upper"]
    )
    # z-score of the observation under the predictive distribution
    summary["z_score"] = (summary["observed"] - summary["mean"]) / (summary["std"] + 1e-10)
    return summary


def compute_coverage(summary: pd.DataFrame) -> Dict[str, float]:
    """
    Coverage = fraction of observed frequencies inside their predictive interval.

    A well-calibrated model should cover roughly ``level`` of them.
    """
    if summary.empty:
        return {"coverage": 0.0, "mean_abs_z_score": 0.0, "n_targets": 0}
    return {
        "coverage": float(summary["in_interval"].mean()),
        "mean_abs_z_score": float(summary["z_score"].abs().mean()),
        "n_targets": int(summary.shape[0]),
    }
