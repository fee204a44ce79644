"""
Prior Distributions for ABC
============================
Independent priors over the free parameters of a simulator.

Each prior is a distribution family plus two numbers:
- uniform, loguniform: lower and upper bound
- normal: mean and standard deviation
- beta: the two shape parameters
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Sequence, Tuple

import numpy as np
from scipy import stats

from ctabc.errors import ConfigurationError

DISTRIBUTIONS = ("uniform", "loguniform", "normal", "beta")


@dataclass(frozen=True)
class ParameterPrior:
    """Prior distribution for a single parameter."""

    name: str
    distribution: str
    params: Tuple[float, float]
    description: str = ""

    def __post_init__(self) -> None:
        if self.distribution not in DISTRIBUTIONS:
            raise ConfigurationError(f"Unknown distribution: {self.distribution}")
        a, b = (float(v) for v in self.params)
        if self.distribution in ("uniform", "loguniform") and not a < b:
            raise ConfigurationError(f"{self.name}: lower bound must be below upper bound")
        if self.distribution == "loguniform" and a <= 0:
            raise ConfigurationError(f"{self.name}: loguniform bounds must be positive")
        if self.distribution == "normal" and b <= 0:
            raise ConfigurationError(f"{self.name}: standard deviation must be positive")
        if self.distribution == "beta" and (a <= 0 or b <= 0):
            raise ConfigurationError(f"{self.name}: beta shapes must be positive")
        object.__setattr__(self, "params", (a, b))

    def sample(self, rng: np.random.Generator, n: int = 1) -> np.ndarray:
        """Sample n values from prior."""
        a, b = self.params
        if self.distribution == "uniform":
            return rng.uniform(a, b, size=n)
        if self.distribution == "loguniform":
            return 10 ** rng.uniform(np.log10(a), np.log10(b), size=n)
        if self.distribution == "normal":
            return rng.normal(a, b, size=n)
        return rng.beta(a, b, size=n)

    def log_prob(self, value: float) -> float:
        a, b = self.params
        if self.distribution == "uniform":
            return float(stats.uniform.logpdf(value, loc=a, scale=b - a))
        if self.distribution == "loguniform":
            return float(stats.loguniform.logpdf(value, a, b))
        if self.distribution == "normal":
            return float(stats.norm.logpdf(value, loc=a, scale=b))
        return float(stats.beta.logpdf(value, a, b))


def priors_from_mapping(spec: Mapping[str, Sequence]) -> Dict[str, ParameterPrior]:
    """
    Build priors from ``{name: (family, a, b)}``.

    Values may also be mappings with ``distribution`` and ``params`` keys, or
    objects exposing those attributes (config entries).
    """
    priors = {}
    for name, entry in spec.items():
        if isinstance(entry, ParameterPrior):
            priors[name] = entry
            continue
        if isinstance(entry, Mapping):
            family, params = entry["distribution"], entry["params"]
            description = entry.get("description", "")
        elif hasattr(entry, "distribution"):
            family, params = entry.distribution, entry.params
            description = getattr(entry, "description", "")
        else:
            family, *params = entry
            description = ""
        if len(params) != 2:
            raise ConfigurationError(f"{name}: expected two distribution parameters, got {params}")
        priors[name] = ParameterPrior(
            name=name,
            distribution=family,
            params=tuple(params),
            description=description,
        )
    return priors


def sample_prior_matrix(
    priors: Mapping[str, ParameterPrior],
    names: Sequence[str],
    rng: np.random.Generator,
    n_samples: int,
) -> np.ndarray:
    """(n_samples, len(names)) matrix of independent prior draws, columns in ``names`` order."""
    missing = [n for n in names if n not in priors]
    if missing:
        raise ConfigurationError(f"no prior for parameters {missing}")
    return np.column_stack([priors[n].sample(rng, n=n_samples) for n in names])


def compute_prior_probability(
    params: Mapping[str, float],
    priors: Mapping[str, ParameterPrior],
) -> float:
    """Joint log prior of a parameter set (sum of independent log densities)."""
    return float(sum(priors[name].log_prob(v) for name, v in params.items() if name in priors))
