"""Tests for factor regressions of short assets on long assets."""

import numpy as np
import pytest

from stambaugh_cov.estimators.regression import fit_factor_regression


def _factor_data(n_obs: int = 120, seed: int = 0):
    rng = np.random.default_rng(seed)
    factors = rng.normal(0.0, 0.05, size=(n_obs, 2))
    beta = np.array([[0.8, -0.3], [1.2, 0.5]])
    alpha = np.array([0.01, -0.002])
    responses = alpha + factors @ beta.T
    return factors, responses, alpha, beta


def test_least_squares_recovers_exact_coefficients():
    factors, responses, alpha, beta = _factor_data()
    fit = fit_factor_regression(factors, responses)
    np.testing.assert_allclose(fit.alpha, alpha, atol=1e-10)
    np.testing.assert_allclose(fit.beta, beta, atol=1e-10)
    assert fit.residuals.shape == (120, 2)
    assert fit.n_obs == 120


def test_single_response_shapes():
    factors, responses, _, _ = _factor_data()
    fit = fit_factor_regression(factors, responses[:, 0])
    assert fit.alpha.shape == (1,)
    assert fit.beta.shape == (1, 2)
    assert fit.residuals.shape == (120, 1)
    assert fit.residual_scale.shape == (1,)


def test_residual_scale_uses_degrees_of_freedom():
    rng = np.random.default_rng(4)
    factors = rng.normal(size=(50, 3))
    responses = factors.sum(axis=1) + rng.normal(0.0, 0.1, 50)
    fit = fit_factor_regression(factors, responses)
    ssr = float((fit.residuals**2).sum())
    assert fit.residual_scale[0] == pytest.approx(np.sqrt(ssr / (50 - 4)))


def test_robust_regression_resists_outlier():
    rng = np.random.default_rng(1)
    factors = rng.normal(0.0, 0.05, size=(100, 1))
    responses = 0.01 + 0.9 * factors[:, 0] + rng.normal(0.0, 0.005, 100)
    responses[10] += 5.0

    ols = fit_factor_regression(factors, responses)
    robust = fit_factor_regression(factors, responses, robust=True)
    assert abs(robust.alpha[0] - 0.01) < abs(ols.alpha[0] - 0.01)
    assert robust.beta[0, 0] == pytest.approx(0.9, abs=0.05)


def test_bisquare_norm_is_accepted():
    factors, responses, alpha, beta = _factor_data()
    rng = np.random.default_rng(2)
    noisy = responses + rng.normal(0.0, 0.001, responses.shape)
    fit = fit_factor_regression(factors, noisy, robust=True, norm="bisquare")
    np.testing.assert_allclose(fit.beta, beta, atol=0.05)


def test_unknown_norm_raises():
    factors, responses, _, _ = _factor_data()
    with pytest.raises(ValueError, match="norm"):
        fit_factor_regression(factors, responses, robust=True, norm="cauchy")


def test_too_few_rows_raises():
    factors, responses, _, _ = _factor_data(n_obs=3)
    with pytest.raises(ValueError, match="not enough"):
        fit_factor_regression(factors, responses)


def test_rank_deficient_factors_raise():
    factors, responses, _, _ = _factor_data()
    duplicated = np.column_stack([factors[:, 0], factors[:, 0]])
    with pytest.raises(np.linalg.LinAlgError):
        fit_factor_regression(duplicated, responses)
    with pytest.raises(np.linalg.LinAlgError):
        fit_factor_regression(duplicated, responses, robust=True)


def test_misaligned_or_missing_inputs_raise():
    factors, responses, _, _ = _factor_data()
    with pytest.raises(ValueError, match="misaligned"):
        fit_factor_regression(factors[:-1], responses)
    holes = factors.copy()
    holes[0, 0] = np.nan
    with pytest.raises(ValueError, match="missing"):
        fit_factor_regression(holes, responses)
