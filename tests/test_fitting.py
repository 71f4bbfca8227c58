"""Tests for illusory_senescence.fitting — GLM fits and observed/fitted/true comparison."""

from types import SimpleNamespace

import numpy as np
import pandas as pd
import pytest

from illusory_senescence import config
from illusory_senescence.experiments import simulate_variant
from illusory_senescence.fitting import (
    COMPARISON_COLUMNS,
    SELECTIVE_FORMULA,
    FitDiagnostics,
    compare_fit,
    fit_age_category_interaction,
    fit_age_polynomial,
    observed_by_age,
    polynomial_age_formula,
    summarise_fit,
)
from illusory_senescence.model import (
    PRE_SENESCENT,
    EmptyPopulation,
    InvalidParameter,
    simulate_age_only,
)


@pytest.fixture(scope="module")
def age_only_obs():
    return simulate_variant("age_only", n_individuals=3_000, rng=np.random.default_rng(2024))


@pytest.fixture(scope="module")
def selective_obs():
    return simulate_variant("selective", n_individuals=3_000, rng=np.random.default_rng(2025))


# ── formulas ─────────────────────────────────────────────────────────

class TestFormulas:
    def test_linear(self):
        assert polynomial_age_formula(1) == "repro ~ age"

    def test_quadratic(self):
        assert polynomial_age_formula(2) == "repro ~ age + I(age ** 2)"

    def test_cubic(self):
        assert polynomial_age_formula(3) == "repro ~ age + I(age ** 2) + I(age ** 3)"

    def test_degree_zero_rejected(self):
        with pytest.raises(InvalidParameter):
            polynomial_age_formula(0)

    def test_selective_formula_interacts_age_and_category(self):
        assert SELECTIVE_FORMULA == "repro ~ age * C(age_category)"


# ── observed_by_age ──────────────────────────────────────────────────

class TestObservedByAge:
    def test_group_counts_and_rates(self):
        obs = pd.DataFrame(
            {
                "individual": [0, 0, 0, 1, 1],
                "longevity": [5, 5, 5, 4, 4],
                "age": [3, 4, 5, 3, 4],
                "repro_prob": [0.5, 0.6, 0.7, 0.5, 0.8],
                "repro": [1, 0, 1, 1, 1],
            }
        )
        table = observed_by_age(obs)
        assert table["age"].tolist() == [3, 4, 5]
        assert table["n"].tolist() == [2, 2, 1]
        assert table["n_repro"].tolist() == [2, 1, 1]
        assert table["observed_prob"].tolist() == pytest.approx([1.0, 0.5, 1.0])
        assert table["true_prob"].tolist() == pytest.approx([0.5, 0.7, 0.7])


# ── variant A: polynomial symmetry bias ──────────────────────────────

class TestAgeOnlyFit:
    def test_comparison_table(self, age_only_obs):
        result = fit_age_polynomial(age_only_obs, degree=2)
        comparison = compare_fit(age_only_obs, result)
        assert list(comparison.columns) == COMPARISON_COLUMNS
        assert comparison["n"].sum() == len(age_only_obs)
        fitted = comparison["fitted_prob"].to_numpy()
        assert np.all((fitted > 0) & (fitted < 1))
        assert np.all(comparison["fitted_lower"].to_numpy() <= fitted)
        assert np.all(fitted <= comparison["fitted_upper"].to_numpy())

    def test_true_curve_never_declines(self, age_only_obs):
        result = fit_age_polynomial(age_only_obs, degree=2)
        comparison = compare_fit(age_only_obs, result)
        true = comparison["true_prob"].to_numpy()
        assert np.all(np.diff(true) >= -1e-12)
        assert true[-1] == pytest.approx(config.PROB_PLATEAU)

    def test_quadratic_fit_shows_illusory_decline(self, age_only_obs):
        result = fit_age_polynomial(age_only_obs, degree=2)
        comparison = compare_fit(age_only_obs, result)
        diag = summarise_fit(age_only_obs, comparison, result)
        assert isinstance(diag, FitDiagnostics)
        assert diag.pooled_decline == 0.0
        assert diag.apparent_decline > 0
        assert diag.peak_age < diag.oldest_age
        assert diag.converged

    @pytest.mark.parametrize("lifespan", [3, 4])
    def test_too_few_ages_rejected(self, lifespan):
        obs = simulate_age_only(
            [lifespan] * 200,
            rng=np.random.default_rng(0),
            age_at_min=config.AGE_AT_MIN,
            age_at_plateau=config.AGE_AT_PLATEAU,
            prob_min=config.PROB_MIN,
            prob_plateau=config.PROB_PLATEAU,
        )
        with pytest.raises(EmptyPopulation):
            fit_age_polynomial(obs, degree=2)
        # A straight line is still identifiable from two ages.
        if lifespan == 4:
            assert fit_age_polynomial(obs, degree=1).params.size == 2

    def test_diagnostic_counts(self, age_only_obs):
        result = fit_age_polynomial(age_only_obs, degree=2)
        comparison = compare_fit(age_only_obs, result)
        diag = summarise_fit(age_only_obs, comparison, result)
        assert diag.n_observations == len(age_only_obs)
        assert diag.n_individuals == age_only_obs["individual"].nunique()
        assert config.LONGEVITY_MIN <= diag.mean_longevity <= config.LONGEVITY_MAX
        assert diag.aic == pytest.approx(result.aic)


# ── variant B: selective disappearance ───────────────────────────────

class TestSelectiveFit:
    def test_pooled_true_curve_declines(self, selective_obs):
        result = fit_age_category_interaction(selective_obs)
        comparison = compare_fit(selective_obs, result, prime_age_cutoff=config.PRIME_AGE_CUTOFF)
        true = comparison.set_index("age")["true_prob"]
        assert true.iloc[-1] < true.loc[config.PLATEAU_AGE1]

        diag = summarise_fit(selective_obs, comparison, result)
        assert diag.pooled_decline > 0

    def test_interaction_terms_estimated(self, selective_obs):
        result = fit_age_category_interaction(selective_obs)
        names = list(result.params.index)
        assert "age" in names
        assert any("Senescent" in n and "age:" in n for n in names)

    def test_fitted_values_bounded(self, selective_obs):
        result = fit_age_category_interaction(selective_obs)
        comparison = compare_fit(selective_obs, result, prime_age_cutoff=config.PRIME_AGE_CUTOFF)
        fitted = comparison["fitted_prob"].to_numpy()
        assert np.all(np.isfinite(fitted))
        assert np.all((fitted > 0) & (fitted < 1))

    def test_single_category_rejected(self, selective_obs):
        young = selective_obs.loc[selective_obs["age_category"] == PRE_SENESCENT]
        with pytest.raises(EmptyPopulation):
            fit_age_category_interaction(young)


# ── summarise_fit warnings ───────────────────────────────────────────

class TestSummariseFit:
    def test_non_convergence_reported(self):
        obs = pd.DataFrame(
            {
                "individual": [0, 0],
                "longevity": [4, 4],
                "age": [3, 4],
                "repro_prob": [0.5, 0.6],
                "repro": [1, 0],
            }
        )
        comparison = pd.DataFrame(
            {
                "age": [3, 4],
                "true_prob": [0.5, 0.6],
                "fitted_prob": [0.55, 0.5],
                "abs_error": [0.05, 0.1],
            }
        )
        warnings = []
        diag = summarise_fit(
            obs,
            comparison,
            SimpleNamespace(converged=False, aic=12.0),
            warn_hook=warnings.append,
            context="unit",
        )
        assert not diag.converged
        assert warnings == ["GLM did not converge [unit]"]
        assert diag.peak_age == 3
        assert diag.apparent_decline == pytest.approx(0.05)
        assert diag.pooled_decline == pytest.approx(0.0)
        assert diag.max_abs_error == pytest.approx(0.1)

    def test_rounding_noise_not_reported_as_decline(self):
        obs = pd.DataFrame(
            {
                "individual": [0, 0],
                "longevity": [4, 4],
                "age": [3, 4],
                "repro_prob": [0.9, 0.9],
                "repro": [1, 1],
            }
        )
        comparison = pd.DataFrame(
            {
                "age": [3, 4],
                "true_prob": [0.9000000000000001, 0.9],
                "fitted_prob": [0.8, 0.8],
                "abs_error": [0.1, 0.1],
            }
        )
        diag = summarise_fit(obs, comparison, SimpleNamespace(converged=True, aic=1.0))
        assert diag.pooled_decline == 0.0
        assert diag.apparent_decline == 0.0
