"""
Configuration for the illusory-senescence experiments.

Only numpy/pandas/statsmodels/tqdm/matplotlib are assumed available in the environment.
"""

# Population sizes
N_INDIVIDUALS = 2_000
N_SEEDS = 20

# Quick mode (dev / smoke test)
N_INDIVIDUALS_QUICK = 300
N_SEEDS_QUICK = 3

# Lifespan sampler (truncated geometric)
SURVIVAL = 0.8
LONGEVITY_MIN = 3
LONGEVITY_MAX = 20

# Variant A: pure age effect
AGE_AT_MIN = 3
AGE_AT_PLATEAU = 7
PROB_MIN = 0.5
PROB_PLATEAU = 0.9
POLY_DEGREE = 2

# Variant B: selective disappearance
PROB_AGE3 = 0.5
PLATEAU_AGE1 = 7
PLATEAU_LONG1 = 0.9
PLATEAU_AGE2 = 15
PLATEAU_LONG2 = 0.7
PRIME_AGE_CUTOFF = 10

# Randomness
BASE_SEED = 12345
