"""
Illusory Senescence — Simulated Reproduction Histories

This package simulates yearly reproduction histories for a population with
truncated-geometric lifespans, fits binomial-logit models to them, and shows
how model mis-specification (polynomial symmetry) and selective disappearance
produce an apparent age-related decline that no individual experiences.
"""

from .config import (  # noqa: F401
    AGE_AT_MIN,
    AGE_AT_PLATEAU,
    BASE_SEED,
    LONGEVITY_MAX,
    LONGEVITY_MIN,
    N_INDIVIDUALS,
    N_INDIVIDUALS_QUICK,
    N_SEEDS,
    N_SEEDS_QUICK,
    PLATEAU_AGE1,
    PLATEAU_AGE2,
    PLATEAU_LONG1,
    PLATEAU_LONG2,
    POLY_DEGREE,
    PRIME_AGE_CUTOFF,
    PROB_AGE3,
    PROB_MIN,
    PROB_PLATEAU,
    SURVIVAL,
)
from .model import EmptyPopulation, InvalidParameter  # noqa: F401
