from __future__ import annotations

from dataclasses import asdict, fields
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import pandas as pd
from tqdm import tqdm

from . import config
from .fitting import (
    FitDiagnostics,
    compare_fit,
    fit_age_category_interaction,
    fit_age_polynomial,
    summarise_fit,
)
from .io_utils import (
    atomic_write_csv,
    mode_suffix,
    read_csv_or_empty,
    results_root,
    seed_indices_present,
    upsert_row,
)
from .model import sample_lifespans, simulate_age_only, simulate_selective_disappearance

VARIANTS = ("age_only", "selective")

# Seed offsets keep the two variants on independent streams.
_SWEEP_OFFSETS = {"age_only": 0, "selective": 1}

DIAGNOSTIC_COLUMNS = [f.name for f in fields(FitDiagnostics)]

SEED_COLUMNS = ["run_id", "variant", "seed_index", "seed"] + DIAGNOSTIC_COLUMNS
SUMMARY_COLUMNS = [
    "run_id",
    "variant",
    "mean_apparent_decline",
    "std_apparent_decline",
    "mean_pooled_decline",
    "mean_max_abs_error",
    "frac_declining",
    "n_seeds",
]


def _seed_for(*, base_seed: int, sweep_offset: int, seed_index: int) -> int:
    return int(base_seed + sweep_offset * 1000 + seed_index)


def _std_across_seeds(x: pd.Series) -> float:
    if len(x) <= 1:
        return 0.0
    return float(x.std(ddof=1))


def _append_row(df: pd.DataFrame, row: dict) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame([row])
    return pd.concat([df, pd.DataFrame([row])], ignore_index=True)


def _check_variant(variant: str) -> None:
    if variant not in VARIANTS:
        raise ValueError(f"unknown variant {variant!r}; expected one of {VARIANTS}")


def simulate_variant(variant: str, *, n_individuals: int, rng: np.random.Generator) -> pd.DataFrame:
    """Sample lifespans and simulate yearly reproduction for one variant."""
    _check_variant(variant)
    longevities = sample_lifespans(
        n_individuals,
        survival=config.SURVIVAL,
        lo=config.LONGEVITY_MIN,
        hi=config.LONGEVITY_MAX,
        rng=rng,
    )
    if variant == "age_only":
        return simulate_age_only(
            longevities,
            rng=rng,
            age_at_min=config.AGE_AT_MIN,
            age_at_plateau=config.AGE_AT_PLATEAU,
            prob_min=config.PROB_MIN,
            prob_plateau=config.PROB_PLATEAU,
        )
    return simulate_selective_disappearance(
        longevities,
        rng=rng,
        prob_age3=config.PROB_AGE3,
        plateau_age1=config.PLATEAU_AGE1,
        plateau_long1=config.PLATEAU_LONG1,
        plateau_age2=config.PLATEAU_AGE2,
        plateau_long2=config.PLATEAU_LONG2,
        prime_age_cutoff=config.PRIME_AGE_CUTOFF,
    )


def fit_and_compare(
    variant: str,
    obs: pd.DataFrame,
    *,
    warn_hook: Optional[Callable[[str], None]] = None,
    context: str = "",
) -> tuple[pd.DataFrame, FitDiagnostics]:
    """Fit the variant's (mis-specified) model and build the per-age comparison."""
    _check_variant(variant)
    if variant == "age_only":
        result = fit_age_polynomial(obs, degree=config.POLY_DEGREE)
        comparison = compare_fit(obs, result)
    else:
        result = fit_age_category_interaction(obs)
        comparison = compare_fit(obs, result, prime_age_cutoff=config.PRIME_AGE_CUTOFF)
    diagnostics = summarise_fit(obs, comparison, result, warn_hook=warn_hook, context=context)
    return comparison, diagnostics


def run_demonstration(
    variant: str,
    *,
    mode: str,
    n_individuals: int,
    seed: int,
    logger_warn: Callable[[str], None],
    logger_info: Callable[[str], None],
    out_root: Optional[Path] = None,
) -> FitDiagnostics:
    """Single seeded run: write observations + comparison CSVs for one variant."""
    _check_variant(variant)
    root = results_root() if out_root is None else Path(out_root)
    out_dir = root / variant
    suffix = mode_suffix(mode)

    logger_info(f"START {variant}: n_individuals={n_individuals} seed={seed}")

    rng = np.random.default_rng(seed)
    obs = simulate_variant(variant, n_individuals=n_individuals, rng=rng)
    comparison, diag = fit_and_compare(variant, obs, warn_hook=logger_warn, context=variant)

    atomic_write_csv(obs, out_dir / f"observations{suffix}.csv")
    atomic_write_csv(comparison, out_dir / f"comparison{suffix}.csv")

    logger_info(
        f"{variant}: individuals={diag.n_individuals} observations={diag.n_observations} "
        f"fitted peak={diag.peak_prob:.4g} at age {diag.peak_age}, "
        f"apparent_decline={diag.apparent_decline:.4g}, pooled_decline={diag.pooled_decline:.4g}, "
        f"max_abs_error={diag.max_abs_error:.4g}"
    )
    logger_info(f"END {variant}")
    return diag


def run_replicate_sweep(
    *,
    mode: str,
    n_individuals: int,
    n_seeds: int,
    logger_warn: Callable[[str], None],
    logger_info: Callable[[str], None],
    out_root: Optional[Path] = None,
) -> pd.DataFrame:
    """
    Repeat both demonstrations over n_seeds seeds and summarise the apparent decline.

    Seeds already recorded in the seed diagnostics CSV are skipped, so an
    interrupted sweep resumes where it stopped. Returns the summary table.
    """
    run_id = f"illusory_senescence_{mode}"
    root = results_root() if out_root is None else Path(out_root)
    out_dir = root / "replicates"
    suffix = mode_suffix(mode)
    seed_path = out_dir / f"replicate_seed_diagnostics{suffix}.csv"
    summary_path = out_dir / f"replicate_summary{suffix}.csv"

    logger_info(f"START replicates: variants={list(VARIANTS)} n_seeds={n_seeds}")

    seed_df = read_csv_or_empty(seed_path, expected_columns=SEED_COLUMNS)
    summary_df = read_csv_or_empty(summary_path, expected_columns=SUMMARY_COLUMNS)

    for variant in VARIANTS:
        present = seed_indices_present(seed_df, key={"variant": variant})
        missing = [i for i in range(n_seeds) if i not in present]
        if missing:
            logger_info(f"replicates: running variant={variant} missing_seeds={missing}")

        for seed_index in tqdm(missing, desc=f"{variant}{suffix}", leave=True):
            seed = _seed_for(
                base_seed=config.BASE_SEED,
                sweep_offset=_SWEEP_OFFSETS[variant],
                seed_index=seed_index,
            )
            rng = np.random.default_rng(seed)
            obs = simulate_variant(variant, n_individuals=n_individuals, rng=rng)
            _, diag = fit_and_compare(
                variant,
                obs,
                warn_hook=logger_warn,
                context=f"replicates variant={variant} seed_index={seed_index}",
            )
            row = {
                "run_id": run_id,
                "variant": variant,
                "seed_index": int(seed_index),
                "seed": int(seed),
                **asdict(diag),
            }
            seed_df = _append_row(seed_df, row)
            atomic_write_csv(seed_df[SEED_COLUMNS], seed_path)

        seed_rows = seed_df.loc[seed_df["variant"] == variant]
        n_done = int(len(seed_rows))
        decline = seed_rows["apparent_decline"].astype(float)
        summary_row = {
            "run_id": run_id,
            "variant": variant,
            "mean_apparent_decline": float(decline.mean()) if n_done else float("nan"),
            "std_apparent_decline": _std_across_seeds(decline) if n_done else float("nan"),
            "mean_pooled_decline": float(seed_rows["pooled_decline"].astype(float).mean())
            if n_done
            else float("nan"),
            "mean_max_abs_error": float(seed_rows["max_abs_error"].astype(float).mean())
            if n_done
            else float("nan"),
            "frac_declining": float((decline > 0).mean()) if n_done else float("nan"),
            "n_seeds": n_done,
        }
        summary_df = upsert_row(summary_df, summary_row, key_cols=["variant"])
        summary_df = summary_df[SUMMARY_COLUMNS]
        atomic_write_csv(summary_df, summary_path)

        if n_done and summary_row["frac_declining"] < 1.0:
            logger_warn(
                f"replicates: variant={variant} apparent decline absent in "
                f"{100.0 * (1.0 - summary_row['frac_declining']):.1f}% of seeds"
            )

    logger_info("END replicates")
    return summary_df
