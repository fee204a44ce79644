from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ctabc.errors import DomainError
from ctabc.model.population import PopulationTrajectory, draw_truncated_normal


@dataclass(frozen=True, eq=False)
class TurnoverSchedule:
    """Removals and additions for every transition t - 1 -> t, t = 2..T."""

    replacement_rate: float
    remove: np.ndarray
    add: np.ndarray

    def step(self, t: int) -> Tuple[int, int]:
        return int(self.remove[t - 2]), int(self.add[t - 2])

    def __len__(self) -> int:
        return int(self.remove.shape[0])


def draw_replacement_rate(r_mean: float, r_var: float, rng: np.random.Generator) -> float:
    return draw_truncated_normal(r_mean, r_var, rng)


def schedule_turnover(trajectory: PopulationTrajectory, r: float) -> TurnoverSchedule:
    """
    Compute how many individuals leave and join at each time step.

    A fraction r of the previous population is replaced ("churn"), capped so
    at least one individual survives. Growth adds the difference on top of
    the churn; decline removes at least the difference.
    """
    if not 0.0 <= r <= 1.0:
        raise DomainError(f"replacement rate must lie in [0, 1], got {r}")
    sizes = trajectory.sizes
    prev, curr = sizes[:-1], sizes[1:]
    delta = curr - prev

    churn = np.minimum(np.rint(prev * r).astype(np.int64), prev - 1)
    remove = np.where(delta >= 0, churn, np.maximum(churn, -delta))
    add = remove + delta

    if np.any(remove < 0) or np.any(add < 0):
        raise DomainError("turnover schedule produced negative counts")
    return TurnoverSchedule(replacement_rate=float(r), remove=remove, add=add)
