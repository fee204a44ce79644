from __future__ import annotations


class CTABCError(Exception):
    """Base class for all errors raised by ctabc."""


class DatasetValidationError(CTABCError):
    """Malformed frequency data detected while building a dataset."""


class DomainError(CTABCError):
    """A single simulation cannot proceed with the values it was given."""


class ConfigurationError(CTABCError):
    """Invalid configuration or transmission-model plug-in."""
