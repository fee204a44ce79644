"""
Generative Model
================
Stochastic model of cultural change between sampling phases.

Pipeline:
1. Population size trajectory from sample sizes and a sampling fraction
2. Initial composition from a Dirichlet draw on the first-phase counts
3. Turnover schedule from the trajectory and a replacement rate
4. Step-by-step removal and transmission-driven replacement
"""

from ctabc.model.composition import (
    VariantComposition,
    dirichlet_frequencies,
    estimate_initial_composition,
)
from ctabc.model.factory import CulturalSimulator, ThetaSchema, build_simulator, gen_sim
from ctabc.model.population import (
    PopulationTrajectory,
    draw_truncated_normal,
    estimate_population,
)
from ctabc.model.simulator import SimulationOutcome, simulate_cultural_change
from ctabc.model.transmission import (
    TRANSMISSION_MODELS,
    frequency_bias,
    get_transmission_model,
    neutral,
    validate_transmission_model,
)
from ctabc.model.turnover import TurnoverSchedule, draw_replacement_rate, schedule_turnover

__all__ = [
    "VariantComposition",
    "dirichlet_frequencies",
    "estimate_initial_composition",
    "CulturalSimulator",
    "ThetaSchema",
    "build_simulator",
    "gen_sim",
    "PopulationTrajectory",
    "draw_truncated_normal",
    "estimate_population",
    "SimulationOutcome",
    "simulate_cultural_change",
    "TRANSMISSION_MODELS",
    "frequency_bias",
    "get_transmission_model",
    "neutral",
    "validate_transmission_model",
    "TurnoverSchedule",
    "draw_replacement_rate",
    "schedule_turnover",
]
