"""
Population Size Estimation
==========================
Turns phase-level sample sizes into a population size for every time step.

A sampling fraction s (the share of the living population that ends up in
the archaeological sample) is drawn from a normal distribution truncated to
(0, 1). Each phase's population is estimated as sample_size / s, and the
trajectory between phases is linearly interpolated and rounded.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy import stats

from ctabc.data.dataset import FrequencyDataset
from ctabc.errors import DomainError


@dataclass(frozen=True, eq=False)
class PopulationTrajectory:
    sampling_fraction: float
    phase_estimates: np.ndarray
    sizes: np.ndarray  # index t - 1 holds time step t

    def at(self, t: int) -> int:
        return int(self.sizes[t - 1])

    def __len__(self) -> int:
        return int(self.sizes.shape[0])


def draw_truncated_normal(
    mean: float,
    variance: float,
    rng: np.random.Generator,
    lower: float = 0.0,
    upper: float = 1.0,
) -> float:
    """One draw from N(mean, variance) truncated to (lower, upper).

    With zero variance the mean is returned as is.
    """
    if variance < 0:
        raise DomainError(f"variance must be non-negative, got {variance}")
    if variance == 0:
        if not lower < mean <= upper:
            raise DomainError(f"value {mean} outside ({lower}, {upper}]")
        return float(mean)
    sd = np.sqrt(variance)
    a, b = (lower - mean) / sd, (upper - mean) / sd
    value = float(stats.truncnorm.rvs(a, b, loc=mean, scale=sd, random_state=rng))
    if not lower < value <= upper:
        raise DomainError(f"degenerate truncated-normal draw {value}")
    return value


def interpolate_sizes(timestamps: np.ndarray, estimates: np.ndarray) -> np.ndarray:
    steps = np.arange(1, int(timestamps[-1]) + 1)
    return np.rint(np.interp(steps, timestamps, estimates)).astype(np.int64)


def estimate_population(
    dataset: FrequencyDataset,
    s_mean: float,
    s_var: float,
    rng: np.random.Generator,
    sampling_fraction: float | None = None,
) -> PopulationTrajectory:
    """Estimate the population trajectory over time steps 1..max_timestamp.

    Steps before the first timestamp hold the first phase's estimate.
    """
    if sampling_fraction is None:
        s = draw_truncated_normal(s_mean, s_var, rng)
    else:
        s = float(sampling_fraction)
    if not 0.0 < s <= 1.0:
        raise DomainError(f"sampling fraction must lie in (0, 1], got {s}")

    estimates = dataset.sample_sizes / s
    sizes = interpolate_sizes(dataset.timestamps, estimates)
    if np.any(sizes < 1):
        raise DomainError("population trajectory collapses to zero")
    sizes.setflags(write=False)
    return PopulationTrajectory(
        sampling_fraction=s,
        phase_estimates=estimates,
        sizes=sizes,
    )
