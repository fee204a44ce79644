"""
Bayesian Calibration Framework
===============================
Approximate Bayesian Computation (ABC) for the cultural change model.

Key components:
1. Prior Distributions: Independent priors over the free parameters
2. Parallel Runner: Independent simulations across worker processes
3. ABC Rejection: Keep the parameter sets closest to the observed data
4. Posterior Predictive Checks: Rerun accepted parameter sets

References:
- Beaumont, M. A., et al. (2002). Approximate Bayesian computation
- Crema, E. R., et al. (2014). Approximate Bayesian computation and the
  inference of cultural transmission processes
"""

from ctabc.calibration.priors import (
    ParameterPrior,
    priors_from_mapping,
    sample_prior_matrix,
    compute_prior_probability,
)

from ctabc.calibration.parallel import (
    BatchResult,
    run_parallel,
)

from ctabc.calibration.abc import (
    ABCConfig,
    ABCResult,
    run_abc_rejection,
    compute_distances,
    reject,
)

from ctabc.calibration.validation import (
    posterior_predictive_check,
    summarize_predictive,
    compute_coverage,
)

__all__ = [
    "ParameterPrior",
    "priors_from_mapping",
    "sample_prior_matrix",
    "compute_prior_probability",
    "BatchResult",
    "run_parallel",
    "ABCConfig",
    "ABCResult",
    "run_abc_rejection",
    "compute_distances",
    "reject",
    "posterior_predictive_check",
    "summarize_predictive",
    "compute_coverage",
]
