from __future__ import annotations

"""
Sanity-check / validation script.

This script does NOT write into illusory_senescence/results/. It checks the
reference probability-curve scenarios, the lifespan sampler against the
truncated-geometric closed form, and runs one seed of each demonstration,
printing key diagnostics to console.
"""

import math

import numpy as np

from . import config
from .experiments import VARIANTS, fit_and_compare, simulate_variant
from .model import age_only_repro_prob, longevity_plateau, sample_lifespans


def truncated_geometric_moments(p: float, lo: int, hi: int) -> tuple[float, float]:
    """Mean and variance of Geometric(p) (support 1, 2, ...) restricted to [lo, hi]."""
    k = np.arange(lo, hi + 1, dtype=float)
    w = p * (1.0 - p) ** (k - 1.0)
    w = w / w.sum()
    mean = float(np.sum(w * k))
    var = float(np.sum(w * (k - mean) ** 2))
    return mean, var


def main() -> None:
    seed = 123

    # ---- Probability curves
    print("[VALIDATION] variant A curve (3, 7, 0.5, 0.9)")
    for age in (3, 5, 7, 10):
        p = age_only_repro_prob(age, age_at_min=3, age_at_plateau=7, prob_min=0.5, prob_plateau=0.9)
        print(f"repro_prob({age}) = {p:.6g}")
    print("")

    print("[VALIDATION] variant B plateau (7 -> 0.9, 15 -> 0.7)")
    for L in (7, 11, 15, 20):
        p = longevity_plateau(L, plateau_age1=7, plateau_long1=0.9, plateau_age2=15, plateau_long2=0.7)
        print(f"plateau(longevity={L}) = {p:.6g}")
    print("")

    # ---- Lifespan sampler
    N = 10_000
    rng = np.random.default_rng(seed)
    L = sample_lifespans(
        N, survival=config.SURVIVAL, lo=config.LONGEVITY_MIN, hi=config.LONGEVITY_MAX, rng=rng
    )
    mean, var = truncated_geometric_moments(1.0 - config.SURVIVAL, config.LONGEVITY_MIN, config.LONGEVITY_MAX)
    se = math.sqrt(var / L.size)
    print("[VALIDATION] lifespan sampler")
    print(f"N={N}, retained={L.size} ({100.0 * L.size / N:.2f}%)")
    print(f"sample mean={float(np.mean(L)):.6g}, closed-form mean={mean:.6g}, z={(float(np.mean(L)) - mean) / se:.3g}")
    print(f"sample var={float(np.var(L)):.6g}, closed-form var={var:.6g}")
    print("")

    # ---- One seed of each demonstration
    for variant in VARIANTS:
        rng_v = np.random.default_rng(seed)
        obs = simulate_variant(variant, n_individuals=config.N_INDIVIDUALS, rng=rng_v)
        comparison, diag = fit_and_compare(
            variant, obs, warn_hook=lambda msg: print(f"[VALIDATION][WARN] {msg}"), context=variant
        )
        print(f"[VALIDATION] {variant}")
        print(comparison.to_string(index=False, float_format=lambda x: f"{x:.4f}"))
        print(
            f"peak fitted={diag.peak_prob:.4g} at age {diag.peak_age}; "
            f"fitted at oldest age {diag.oldest_age}={diag.oldest_prob:.4g}; "
            f"apparent_decline={diag.apparent_decline:.4g}; pooled_decline={diag.pooled_decline:.4g}"
        )
        print("")

    print("[VALIDATION COMPLETE]")


if __name__ == "__main__":
    main()
