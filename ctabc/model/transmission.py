"""
Transmission Models
===================
A transmission model gives, for one new individual, the probability of
copying each variant currently in the population or of innovating.

Contract::

    fn(counts, mu, **params) -> probs

where ``counts`` holds the live variant counts, ``mu`` is the innovation
rate and ``probs`` has ``len(counts) + 1`` entries, the last being the
innovation slot. Any callable honoring the contract can be plugged in; it
is checked once by :func:`validate_transmission_model` before use.

References:
- Kandler, A. & Shennan, S. (2013). A non-equilibrium neutral model for
  analysing cultural change
- Crema, E. R., et al. (2016). Revealing patterns of cultural transmission
  from frequency data
"""

from __future__ import annotations

import inspect
from typing import Callable, Dict, Iterable, Type

import numpy as np

from ctabc.errors import ConfigurationError, CTABCError

TransmissionModel = Callable[..., np.ndarray]

PROBABILITY_TOLERANCE = 1e-8


def frequency_bias(counts: np.ndarray, mu: float, b: float = 0.0) -> np.ndarray:
    """
    Frequency-biased copying.

    pi_j = m_j^(1+b) / sum_s m_s^(1+b) * (1 - mu), innovation gets mu.
    b < 0 is anti-conformist, b = 0 unbiased, b > 0 conformist. Variants with
    no living carriers cannot be copied.
    """
    counts = np.asarray(counts, dtype=float)
    probs = np.zeros(counts.shape[0] + 1)
    present = counts > 0
    if present.any():
        m = counts[present] / counts[present].sum()
        weights = m ** (1.0 + b)
        probs[:-1][present] = weights / weights.sum() * (1.0 - mu)
        probs[-1] = mu
    else:
        probs[-1] = 1.0
    return probs


def neutral(counts: np.ndarray, mu: float) -> np.ndarray:
    """Unbiased copying: frequency-proportional with innovation rate mu."""
    return frequency_bias(counts, mu, b=0.0)


TRANSMISSION_MODELS: Dict[str, TransmissionModel] = {
    "frequency_bias": frequency_bias,
    "neutral": neutral,
}


def get_transmission_model(name: str) -> TransmissionModel:
    try:
        return TRANSMISSION_MODELS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown transmission model: {name} (available: {sorted(TRANSMISSION_MODELS)})"
        ) from None


def _check_signature(fn: TransmissionModel, param_names: Iterable[str]) -> None:
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"cannot inspect transmission model {fn!r}") from exc
    params = list(sig.parameters.values())
    positional = [
        p for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    has_varargs = any(p.kind == p.VAR_POSITIONAL for p in params)
    if len(positional) < 2 and not has_varargs:
        raise ConfigurationError("transmission model must accept (counts, mu, ...)")
    has_varkw = any(p.kind == p.VAR_KEYWORD for p in params)
    keyword_names = {
        p.name for p in params[2:]
        if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    }
    missing = [n for n in param_names if n not in keyword_names and not has_varkw]
    if missing:
        raise ConfigurationError(
            f"transmission model {getattr(fn, '__name__', fn)!r} does not accept parameters {missing}"
        )
    required = [
        p.name for p in params[2:]
        if p.default is p.empty and p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    ]
    unbound = [n for n in required if n not in set(param_names)]
    if unbound:
        raise ConfigurationError(f"transmission model requires unbound parameters {unbound}")


def check_probabilities(
    probs: np.ndarray,
    n_slots: int,
    error: Type[CTABCError] = ConfigurationError,
) -> np.ndarray:
    """Validate a probability vector, raising ``error`` when it is unusable.

    Construction-time checks raise ConfigurationError; the simulator passes
    DomainError so a single bad draw fails only that simulation.
    """
    probs = np.asarray(probs, dtype=float)
    if probs.shape != (n_slots,):
        raise error(f"transmission model returned shape {probs.shape}, expected ({n_slots},)")
    if not np.all(np.isfinite(probs)) or np.any(probs < 0):
        raise error("transmission model returned negative or non-finite probabilities")
    if abs(probs.sum() - 1.0) > PROBABILITY_TOLERANCE:
        raise error(f"transmission probabilities sum to {probs.sum():.10f}, not 1")
    return probs


def validate_transmission_model(
    fn: TransmissionModel,
    param_names: Iterable[str] = (),
    trial_values: Dict[str, float] | None = None,
) -> TransmissionModel:
    """Check arity and output of a transmission model on a small composition."""
    if not callable(fn):
        raise ConfigurationError(f"transmission model {fn!r} is not callable")
    param_names = list(param_names)
    _check_signature(fn, param_names)
    trial_values = trial_values or {}
    kwargs = {name: float(trial_values.get(name, 0.0)) for name in param_names}
    trial = np.array([5, 3, 1, 0, 1], dtype=np.int64)
    try:
        probs = fn(trial.copy(), 0.01, **kwargs)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise ConfigurationError(f"transmission model failed on a trial composition: {exc}") from exc
    check_probabilities(probs, trial.shape[0] + 1)
    return fn
