"""
Cultural Change Simulation
==========================
Discrete-time stochastic model of variant frequency change.

Starting from the composition estimated for the first phase, each time step:
1. Removes individuals at random without replacement (death, discard)
2. Adds individuals who copy a variant, or innovate, according to the
   transmission model evaluated on the post-removal composition

Transmission probabilities are computed once per step and held fixed for
every addition within that step.

Frequencies of the first-phase variants are recorded at every later phase,
time-averaged over the phase's duration window. A phase sample is read as
an assemblage accumulated over (timestamp - duration, timestamp], so tracked
counts and live totals are summed across that window before dividing; with a
duration of 1 this is the live composition at the phase timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from ctabc.data.dataset import FrequencyDataset
from ctabc.errors import DomainError
from ctabc.model.composition import VariantComposition
from ctabc.model.population import PopulationTrajectory
from ctabc.model.transmission import TransmissionModel, check_probabilities
from ctabc.model.turnover import TurnoverSchedule


@dataclass
class SimulationOutcome:
    frequencies: np.ndarray  # variant-major, (phases - 1) * k
    sampling_fraction: float
    replacement_rate: float
    initial_offset: int  # live total minus trajectory, from initial rounding
    totals: Optional[np.ndarray] = None
    n_variants: Optional[np.ndarray] = None
    tracked_frequencies: Optional[np.ndarray] = None  # (steps, k)

    def as_matrix(self, k: int) -> np.ndarray:
        """(k, phases - 1) view of the frequencies."""
        return self.frequencies.reshape(k, -1)


def _window_starts(dataset: FrequencyDataset) -> Dict[int, int]:
    """Map the first step of each averaging window to its phase index."""
    starts = {}
    for idx, (ts, dur) in enumerate(zip(dataset.timestamps[1:], dataset.durations)):
        starts[int(ts - dur + 1)] = idx
    return starts


def simulate_cultural_change(
    dataset: FrequencyDataset,
    trajectory: PopulationTrajectory,
    schedule: TurnoverSchedule,
    composition: VariantComposition,
    transmission: TransmissionModel,
    mu: float,
    params: Dict[str, float],
    rng: np.random.Generator,
    record_history: bool = False,
) -> SimulationOutcome:
    """Run the model from the first timestamp to the last; mutates ``composition``."""
    k = composition.n_tracked
    t0 = int(dataset.timestamps[0])
    t_max = dataset.max_timestamp
    phase_ends = {int(ts): idx for idx, ts in enumerate(dataset.timestamps[1:])}
    window_starts = _window_starts(dataset)

    n_later = dataset.n_phases - 1
    window_tracked = np.zeros((n_later, k), dtype=np.int64)
    window_totals = np.zeros(n_later, dtype=np.int64)
    active = set()
    offset = composition.total - trajectory.at(t0)

    totals = np.zeros(t_max - t0 + 1, dtype=np.int64) if record_history else None
    n_variants = np.zeros(t_max - t0 + 1, dtype=np.int64) if record_history else None
    tracked_freqs = np.zeros((t_max - t0 + 1, k)) if record_history else None
    if record_history:
        totals[0] = composition.total
        n_variants[0] = int(np.count_nonzero(composition.counts))
        tracked_freqs[0] = composition.frequencies_of(range(k))

    for t in range(t0 + 1, t_max + 1):
        remove, add = schedule.step(t)
        if remove > composition.total:
            raise DomainError(
                f"step {t}: schedule removes {remove} of {composition.total} individuals"
            )
        composition.remove(remove, rng)

        if add > 0:
            probs = transmission(composition.counts.copy(), mu, **params)
            probs = check_probabilities(probs, len(composition) + 1, error=DomainError)
            selected = rng.multinomial(add, probs / probs.sum())
            composition.add(selected)
        composition.compact()

        if t in window_starts:
            active.add(window_starts[t])
        tracked = composition.tracked_counts()
        for idx in active:
            window_tracked[idx] += tracked
            window_totals[idx] += composition.total
        if t in phase_ends:
            active.discard(phase_ends[t])

        if record_history:
            totals[t - t0] = composition.total
            n_variants[t - t0] = int(np.count_nonzero(composition.counts))
            tracked_freqs[t - t0] = composition.frequencies_of(range(k))

    freqs = window_tracked / np.maximum(window_totals, 1)[:, None]
    return SimulationOutcome(
        frequencies=freqs.T.reshape(-1),
        sampling_fraction=trajectory.sampling_fraction,
        replacement_rate=schedule.replacement_rate,
        initial_offset=int(offset),
        totals=totals,
        n_variants=n_variants,
        tracked_frequencies=tracked_freqs,
    )
