"""Approximate Bayesian inference of cultural transmission from variant frequencies."""

from ctabc.data.dataset import FrequencyDataset
from ctabc.errors import ConfigurationError, DatasetValidationError, DomainError
from ctabc.model.factory import CulturalSimulator, gen_sim

__version__ = "0.1.0"

__all__ = [
    "FrequencyDataset",
    "ConfigurationError",
    "DatasetValidationError",
    "DomainError",
    "CulturalSimulator",
    "gen_sim",
]
