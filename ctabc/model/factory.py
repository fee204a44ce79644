"""
Simulator Factory
=================
Binds a dataset, a transmission model and the nuisance-parameter settings
into a callable that maps a parameter vector (theta) to the summary
statistic compared against the data during ABC.

Every call is an independent Monte Carlo draw: the sampling fraction, the
replacement rate, the initial composition and the whole trajectory of the
population are redrawn each time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Sequence, Tuple

import numpy as np

from ctabc.data.dataset import FrequencyDataset
from ctabc.errors import ConfigurationError, DomainError
from ctabc.model.composition import estimate_initial_composition
from ctabc.model.population import draw_truncated_normal, estimate_population
from ctabc.model.simulator import SimulationOutcome, simulate_cultural_change
from ctabc.model.transmission import (
    TransmissionModel,
    get_transmission_model,
    validate_transmission_model,
)
from ctabc.model.turnover import draw_replacement_rate, schedule_turnover
from ctabc.rng import as_generator

# Free-parameter names that replace a nuisance draw instead of feeding the
# transmission model.
SAMPLING_FRACTION = "s"
REPLACEMENT_RATE = "r"
INNOVATION_RATE = "mu"


@dataclass(frozen=True)
class ThetaSchema:
    """Ordered names of the free parameters."""

    names: Tuple[str, ...]

    def __post_init__(self) -> None:
        names = tuple(self.names)
        if not names:
            raise ConfigurationError("at least one free parameter is required")
        if len(set(names)) != len(names):
            raise ConfigurationError(f"duplicate free parameters in {names}")
        object.__setattr__(self, "names", names)

    def __len__(self) -> int:
        return len(self.names)

    def bind(self, theta: Sequence[float]) -> Dict[str, float]:
        values = np.asarray(theta, dtype=float).reshape(-1)
        if values.shape[0] != len(self.names):
            raise DomainError(
                f"expected {len(self.names)} parameters {list(self.names)}, got {values.shape[0]}"
            )
        if not np.all(np.isfinite(values)):
            raise DomainError(f"non-finite parameter values {values.tolist()}")
        return dict(zip(self.names, values.tolist()))


class CulturalSimulator:
    """Picklable theta -> summary statistic function."""

    def __init__(
        self,
        dataset: FrequencyDataset,
        free_params: Sequence[str],
        transmission: TransmissionModel | str = "frequency_bias",
        fixed_params: Mapping[str, float] | None = None,
        s_mean: float = 0.5,
        s_var: float = 0.0,
        r_mean: float = 0.1,
        r_var: float = 0.0,
        alpha: float = 1.0,
    ):
        self.dataset = dataset
        self.schema = ThetaSchema(tuple(free_params))
        if isinstance(transmission, str):
            transmission = get_transmission_model(transmission)
        self.transmission = transmission
        self.fixed_params = dict(fixed_params or {})
        self.s_mean, self.s_var = float(s_mean), float(s_var)
        self.r_mean, self.r_var = float(r_mean), float(r_var)
        self.alpha = float(alpha)

        names = set(self.schema.names)
        if INNOVATION_RATE not in names and INNOVATION_RATE not in self.fixed_params:
            raise ConfigurationError("the innovation rate 'mu' must be free or fixed")
        overlap = names & set(self.fixed_params)
        if overlap:
            raise ConfigurationError(f"parameters both free and fixed: {sorted(overlap)}")
        if self.alpha <= 0:
            raise ConfigurationError(f"alpha must be positive, got {self.alpha}")
        if self.s_var < 0 or self.r_var < 0:
            raise ConfigurationError("variances must be non-negative")

        self.model_params = [
            n for n in (*self.schema.names, *self.fixed_params)
            if n not in (INNOVATION_RATE, SAMPLING_FRACTION, REPLACEMENT_RATE)
        ]
        validate_transmission_model(self.transmission, self.model_params, self.fixed_params)

    @property
    def param_names(self) -> Tuple[str, ...]:
        return self.schema.names

    @property
    def n_stats(self) -> int:
        return (self.dataset.n_phases - 1) * self.dataset.k

    def run(
        self,
        theta: Sequence[float],
        rng: np.random.Generator | np.random.SeedSequence | int | None = None,
        record_history: bool = False,
    ) -> SimulationOutcome:
        rng = as_generator(rng)
        values = {**self.fixed_params, **self.schema.bind(theta)}
        mu = values[INNOVATION_RATE]
        if not 0.0 <= mu <= 1.0:
            raise DomainError(f"innovation rate must lie in [0, 1], got {mu}")

        if SAMPLING_FRACTION in values:
            s = values[SAMPLING_FRACTION]
        else:
            s = draw_truncated_normal(self.s_mean, self.s_var, rng)
        trajectory = estimate_population(self.dataset, self.s_mean, self.s_var, rng, sampling_fraction=s)

        if REPLACEMENT_RATE in values:
            r = values[REPLACEMENT_RATE]
        else:
            r = draw_replacement_rate(self.r_mean, self.r_var, rng)
        schedule = schedule_turnover(trajectory, r)

        t0 = int(self.dataset.timestamps[0])
        composition = estimate_initial_composition(
            self.dataset.first_phase_counts, trajectory.at(t0), self.alpha, rng
        )
        params = {n: values[n] for n in self.model_params}
        outcome = simulate_cultural_change(
            self.dataset,
            trajectory,
            schedule,
            composition,
            self.transmission,
            mu,
            params,
            rng,
            record_history=record_history,
        )
        logging.debug(
            "theta=%s s=%.3f r=%.3f offset=%d", values, s, r, outcome.initial_offset
        )
        return outcome

    def __call__(
        self,
        theta: Sequence[float],
        rng: np.random.Generator | np.random.SeedSequence | int | None = None,
    ) -> np.ndarray:
        return self.run(theta, rng).frequencies


def gen_sim(
    dataset: FrequencyDataset,
    free_params: Sequence[str],
    transmission: TransmissionModel | str = "frequency_bias",
    **kwargs,
) -> Callable[..., np.ndarray]:
    """Shorthand for :class:`CulturalSimulator`."""
    return CulturalSimulator(dataset, free_params, transmission, **kwargs)


def build_simulator(model_cfg, dataset: FrequencyDataset) -> CulturalSimulator:
    """Simulator from the ``model`` section of a run configuration."""
    return CulturalSimulator(
        dataset,
        model_cfg.free_params,
        transmission=model_cfg.transmission,
        fixed_params=model_cfg.fixed_params,
        s_mean=model_cfg.s_mean,
        s_var=model_cfg.s_var,
        r_mean=model_cfg.r_mean,
        r_var=model_cfg.r_var,
        alpha=model_cfg.alpha,
    )
