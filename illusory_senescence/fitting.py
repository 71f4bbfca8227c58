from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .model import PRE_SENESCENT, SENESCENT, EmptyPopulation, InvalidParameter, age_category

SELECTIVE_FORMULA = "repro ~ age * C(age_category)"

COMPARISON_COLUMNS = [
    "age",
    "n",
    "n_repro",
    "observed_prob",
    "true_prob",
    "fitted_prob",
    "fitted_lower",
    "fitted_upper",
    "abs_error",
]


@dataclass(frozen=True)
class FitDiagnostics:
    """Summary of one fitted demonstration (one variant, one seed)."""

    n_individuals: int
    n_observations: int
    mean_longevity: float
    peak_age: int
    peak_prob: float
    oldest_age: int
    oldest_prob: float
    apparent_decline: float  # fitted peak minus fitted at oldest age
    pooled_decline: float  # same for the true pooled curve
    max_abs_error: float
    aic: float
    converged: bool


def fit_logit(formula: str, data: pd.DataFrame) -> Any:
    """
    Fit a binomial-logit GLM using the statsmodels formula interface.

    Parameters
    ----------
    formula : str
        Model formula in patsy/R syntax (e.g. 'repro ~ age + I(age ** 2)').
    data : pd.DataFrame
        Observation table containing the variables referenced in the formula.

    Returns
    -------
    fitted GLM results object
    """
    model = sm.GLM.from_formula(formula=formula, data=data, family=sm.families.Binomial())
    return model.fit()


def polynomial_age_formula(degree: int) -> str:
    if degree < 1:
        raise InvalidParameter(f"degree must be >= 1, got {degree}")
    terms = ["age"] + [f"I(age ** {k})" for k in range(2, degree + 1)]
    return "repro ~ " + " + ".join(terms)


def fit_age_polynomial(obs: pd.DataFrame, *, degree: int) -> Any:
    """Variant A fit: logit(p) polynomial in age (quadratic by default)."""
    formula = polynomial_age_formula(degree)
    n_ages = int(obs["age"].nunique())
    if n_ages <= degree:
        raise EmptyPopulation(
            f"{n_ages} distinct age(s) cannot identify a degree-{degree} polynomial"
        )
    return fit_logit(formula, obs)


def fit_age_category_interaction(obs: pd.DataFrame) -> Any:
    """Variant B fit: separate logit-linear age slopes before and after the cutoff."""
    present = set(obs["age_category"].unique())
    missing = {PRE_SENESCENT, SENESCENT} - present
    if missing:
        raise EmptyPopulation(
            f"no observations in age category {sorted(missing)}; interaction not estimable"
        )
    return fit_logit(SELECTIVE_FORMULA, obs)


def observed_by_age(obs: pd.DataFrame) -> pd.DataFrame:
    """
    Per-age group counts and rates.

    true_prob is the mean generating probability of the individuals present
    at each age, i.e. the expected pooled reproduction rate.
    """
    table = (
        obs.groupby("age", sort=True)
        .agg(
            n=("repro", "size"),
            n_repro=("repro", "sum"),
            observed_prob=("repro", "mean"),
            true_prob=("repro_prob", "mean"),
        )
        .reset_index()
    )
    return table


def compare_fit(
    obs: pd.DataFrame,
    result: Any,
    *,
    prime_age_cutoff: Optional[int] = None,
    alpha: float = 0.05,
) -> pd.DataFrame:
    """
    Observed vs fitted vs true reproduction probability, one row per age.

    Pass prime_age_cutoff for models that use the age_category factor.
    fitted_lower/fitted_upper bound the (1 - alpha) confidence interval of the
    fitted mean.
    """
    table = observed_by_age(obs)
    new = pd.DataFrame({"age": table["age"].to_numpy()})
    if prime_age_cutoff is not None:
        new["age_category"] = [age_category(int(a), prime_age_cutoff) for a in new["age"]]

    pred = result.get_prediction(new).summary_frame(alpha=alpha)
    table["fitted_prob"] = pred["mean"].to_numpy(dtype=float)
    table["fitted_lower"] = pred["mean_ci_lower"].to_numpy(dtype=float)
    table["fitted_upper"] = pred["mean_ci_upper"].to_numpy(dtype=float)
    table["abs_error"] = (table["fitted_prob"] - table["true_prob"]).abs()
    return table[COMPARISON_COLUMNS]


def _decline(curve: np.ndarray) -> float:
    # Averages of identical probabilities can differ in the last bit.
    return max(0.0, round(float(np.max(curve) - curve[-1]), 12))


def summarise_fit(
    obs: pd.DataFrame,
    comparison: pd.DataFrame,
    result: Any,
    *,
    warn_hook: Optional[Callable[[str], None]] = None,
    context: str = "",
) -> FitDiagnostics:
    converged = bool(getattr(result, "converged", True))
    if not converged and warn_hook is not None:
        warn_hook("GLM did not converge" + (f" [{context}]" if context else ""))

    fitted = comparison["fitted_prob"].to_numpy(dtype=float)
    true = comparison["true_prob"].to_numpy(dtype=float)
    ages = comparison["age"].to_numpy()

    i_peak = int(np.argmax(fitted))
    longevity = obs.groupby("individual")["longevity"].first()

    return FitDiagnostics(
        n_individuals=int(longevity.size),
        n_observations=int(len(obs)),
        mean_longevity=float(longevity.mean()),
        peak_age=int(ages[i_peak]),
        peak_prob=float(fitted[i_peak]),
        oldest_age=int(ages[-1]),
        oldest_prob=float(fitted[-1]),
        apparent_decline=_decline(fitted),
        pooled_decline=_decline(true),
        max_abs_error=float(np.max(comparison["abs_error"].to_numpy(dtype=float))),
        aic=float(result.aic),
        converged=converged,
    )
