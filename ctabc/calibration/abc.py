"""
Approximate Bayesian Computation
=================================
Rejection ABC over an arbitrary stochastic simulator.

ABC works by:
1. Sampling parameters from the prior
2. Simulating with those parameters (in parallel)
3. Measuring the distance between simulated and observed summary statistics
4. Keeping the closest fraction of parameter sets

This avoids computing intractable likelihoods.

References:
- Beaumont, M. A., et al. (2002). Approximate Bayesian computation in
  population genetics
- Csillery, K., et al. (2012). abc: an R package for approximate Bayesian
  computation
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Literal, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field, model_validator

from ctabc.calibration.parallel import run_parallel
from ctabc.calibration.priors import ParameterPrior, sample_prior_matrix
from ctabc.errors import ConfigurationError, DomainError
from ctabc.rng import RNGManager


class ABCConfig(BaseModel):
    """Configuration for ABC rejection."""

    n_sim: int = Field(1000, gt=0)
    # Either the accepted fraction or an absolute distance threshold; tol
    # defaults to 0.01 when neither is given
    tol: Optional[float] = Field(None, gt=0.0, le=1.0)
    threshold: Optional[float] = Field(None, gt=0.0)

    distance_metric: Literal["euclidean", "manhattan", "max"] = "euclidean"
    scale_by_mad: bool = False

    workers: int = 1  # <= 0 uses all but one CPU
    chunksize: int = Field(8, gt=0)

    # Above this share of failed simulations the model is treated as misspecified
    max_failure_fraction: float = Field(0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _one_rule(self) -> "ABCConfig":
        if self.tol is not None and self.threshold is not None:
            raise ValueError("set either 'tol' or 'threshold', not both")
        if self.tol is None and self.threshold is None:
            self.tol = 0.01
        return self


@dataclass
class ABCResult:
    """Accepted parameter sets with their distances and summary statistics."""

    params: pd.DataFrame
    distances: np.ndarray
    sumstats: pd.DataFrame
    n_simulations: int
    n_failed: int
    final_threshold: float
    target: np.ndarray
    all_distances: np.ndarray = field(repr=False, default_factory=lambda: np.empty(0))

    @property
    def n_accepted(self) -> int:
        return int(self.params.shape[0])

    @property
    def acceptance_rate(self) -> float:
        return self.n_accepted / self.n_simulations if self.n_simulations else 0.0

    def posterior_mean(self) -> Dict[str, float]:
        return {k: float(v) for k, v in self.params.mean().items()}

    def posterior_std(self) -> Dict[str, float]:
        return {k: float(v) for k, v in self.params.std(ddof=0).items()}

    def credible_interval(self, param_name: str, level: float = 0.95) -> Tuple[float, float]:
        """Equal-tailed credible interval for a parameter; NaN when nothing was accepted."""
        alpha = (1 - level) / 2
        values = self.params[param_name].to_numpy()
        if values.shape[0] == 0:
            return float("nan"), float("nan")
        lower, upper = np.quantile(values, [alpha, 1 - alpha])
        return float(lower), float(upper)

    def summary(self) -> pd.DataFrame:
        rows = []
        for name in self.params.columns:
            lower, upper = self.credible_interval(name)
            rows.append(
                {
                    "param": name,
                    "mean": float(self.params[name].mean()),
                    "median": float(self.params[name].median()),
                    "std": float(self.params[name].std(ddof=0)),
                    "ci95_lower": lower,
                    "ci95_upper": upper,
                }
            )
        return pd.DataFrame(rows)

    def to_frame(self) -> pd.DataFrame:
        frame = self.params.copy()
        frame["distance"] = self.distances
        return frame

    def save(self, out_dir: str | Path) -> None:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_csv(out_dir / "accepted_params.csv", index=False)
        self.sumstats.to_csv(out_dir / "accepted_sumstats.csv", index=False)
        self.summary().to_csv(out_dir / "posterior_summary.csv", index=False)
        with (out_dir / "summary.json").open("w") as f:
            json.dump(
                {
                    "n_simulations": self.n_simulations,
                    "n_failed": self.n_failed,
                    "n_accepted": self.n_accepted,
                    "acceptance_rate": self.acceptance_rate,
                    "final_threshold": self.final_threshold,
                    "posterior_mean": self.posterior_mean(),
                },
                f,
                indent=2,
            )


def mad_scale(sumstats: np.ndarray) -> np.ndarray:
    """Median absolute deviation per statistic; zeros replaced by one."""
    med = np.median(sumstats, axis=0)
    mad = 1.4826 * np.median(np.abs(sumstats - med), axis=0)
    return np.where(mad > 0, mad, 1.0)


def compute_distances(
    simulated: np.ndarray,
    target: np.ndarray,
    metric: str = "euclidean",
    scale: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Distance of every simulated row to the target vector."""
    diff = np.atleast_2d(simulated) - np.asarray(target)[None, :]
    if scale is not None:
        diff = diff / scale
    if metric == "euclidean":
        return np.sqrt(np.sum(diff ** 2, axis=1))
    elif metric == "manhattan":
        return np.sum(np.abs(diff), axis=1)
    elif metric == "max":
        return np.max(np.abs(diff), axis=1)
    raise ConfigurationError(f"Unknown distance metric: {metric}")


def n_to_accept(tol: float, n_valid: int) -> int:
    return max(1, min(n_valid, int(np.floor(tol * n_valid + 0.5))))


def reject(
    sumstats: np.ndarray,
    target: np.ndarray,
    cfg: ABCConfig,
) -> Tuple[np.ndarray, np.ndarray, float]:
    """Indices of accepted rows (closest first), all distances and the cut-off used."""
    scale = mad_scale(sumstats) if cfg.scale_by_mad else None
    distances = compute_distances(sumstats, target, cfg.distance_metric, scale)
    order = np.argsort(distances, kind="stable")
    if cfg.threshold is not None:
        accepted = order[distances[order] <= cfg.threshold]
        cutoff = float(cfg.threshold)
    else:
        accepted = order[: n_to_accept(cfg.tol, distances.shape[0])]
        cutoff = float(distances[accepted[-1]])
    return accepted, distances, cutoff


def run_abc_rejection(
    simulate_fn: Callable[..., np.ndarray],
    priors: Mapping[str, ParameterPrior],
    target: Sequence[float],
    cfg: ABCConfig,
    seed: int | None = None,
    param_names: Sequence[str] | None = None,
    stat_names: Sequence[str] | None = None,
    progress_fnc: Callable[[int, int], None] | None = None,
) -> ABCResult:
    """
    Run ABC rejection sampling.

    Args:
        simulate_fn: Maps a parameter vector (and optionally ``rng=``) to
            summary statistics
        priors: Prior distributions for parameters
        target: Observed summary statistics
        cfg: ABC configuration
        seed: Seed for prior draws and per-simulation streams
        param_names: Parameter order expected by ``simulate_fn``; defaults
            to its ``param_names`` attribute, then to the prior order

    Returns:
        ABCResult with accepted parameters, sorted by distance
    """
    if param_names is None:
        param_names = getattr(simulate_fn, "param_names", None) or list(priors)
    param_names = list(param_names)
    target = np.asarray(target, dtype=float)

    rng_manager = RNGManager(seed)
    thetas = sample_prior_matrix(priors, param_names, rng_manager.numpy, cfg.n_sim)
    seed_sequences = rng_manager.spawn(cfg.n_sim)

    logging.info(
        "Running %d simulations over %s with %d worker(s)",
        cfg.n_sim, param_names, cfg.workers,
    )
    batch = run_parallel(
        simulate_fn,
        thetas,
        seed_sequences,
        workers=cfg.workers,
        chunksize=cfg.chunksize,
        progress_fnc=progress_fnc,
    )

    n_failed = batch.n_failed
    if n_failed:
        logging.warning("%d of %d simulations failed", n_failed, cfg.n_sim)
    if n_failed / cfg.n_sim > cfg.max_failure_fraction or n_failed == cfg.n_sim:
        raise DomainError(
            f"{n_failed} of {cfg.n_sim} simulations failed "
            f"(limit {cfg.max_failure_fraction:.0%}); first error: {batch.errors[0]}"
        )

    valid = ~batch.failed
    thetas, sumstats = thetas[valid], batch.sumstats[valid]
    if sumstats.shape[1] != target.shape[0]:
        raise ConfigurationError(
            f"simulator returns {sumstats.shape[1]} statistics, target has {target.shape[0]}"
        )

    accepted, distances, cutoff = reject(sumstats, target, cfg)
    if stat_names is None:
        stat_names = [f"stat_{i + 1}" for i in range(target.shape[0])]

    result = ABCResult(
        params=pd.DataFrame(thetas[accepted], columns=param_names),
        distances=distances[accepted],
        sumstats=pd.DataFrame(sumstats[accepted], columns=list(stat_names)),
        n_simulations=cfg.n_sim,
        n_failed=n_failed,
        final_threshold=cutoff,
        target=target,
        all_distances=distances,
    )
    if result.n_accepted == 0:
        logging.warning(
            "No simulation fell within distance %.4g of the target; smallest was %.4g",
            cutoff, float(distances.min()),
        )
    logging.info(
        "Accepted %d of %d simulations (distance <= %.4f)",
        result.n_accepted, cfg.n_sim - n_failed, cutoff,
    )
    return result
