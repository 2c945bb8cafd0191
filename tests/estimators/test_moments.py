"""Tests for classical and robust location/scatter estimators."""

import numpy as np
import pytest
from sklearn.covariance import MinCovDet
from statsmodels.robust.scale import Huber

from stambaugh_cov.config import StambaughConfig
from stambaugh_cov.estimators import moments
from stambaugh_cov.estimators.regression import fit_factor_regression


def _block(n_obs: int = 80, n_assets: int = 3, seed: int = 5) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(0.01, 0.05, size=(n_obs, n_assets))


def test_classical_moments_match_numpy():
    block = _block()
    loc, cov = moments.classical_moments(block)
    np.testing.assert_allclose(loc, block.mean(axis=0))
    np.testing.assert_allclose(cov, np.cov(block, rowvar=False, ddof=1))


def test_classical_moments_single_asset_is_two_dimensional():
    loc, cov = moments.classical_moments(_block(n_assets=1))
    assert loc.shape == (1,)
    assert cov.shape == (1, 1)


def test_classical_moments_need_two_rows():
    with pytest.raises(ValueError):
        moments.classical_moments(_block(n_obs=1))


def test_robust_moments_match_min_cov_det():
    block = _block()
    config = StambaughConfig(mcd_alpha=0.75, random_state=3)
    loc, cov = moments.estimate_moments(block, robust=True, config=config)
    mcd = MinCovDet(support_fraction=0.75, random_state=3).fit(block)
    np.testing.assert_allclose(loc, mcd.location_)
    np.testing.assert_allclose(cov, mcd.covariance_, atol=1e-14)


def test_robust_moments_single_asset_use_huber():
    block = _block(n_assets=1)
    loc, cov = moments.estimate_moments(block, robust=True)
    expected_loc, expected_scale = Huber(c=1.5)(block[:, 0])
    assert loc[0] == pytest.approx(float(expected_loc))
    assert cov[0, 0] == pytest.approx(float(expected_scale) ** 2)


def test_residual_covariance_variants():
    rng = np.random.default_rng(9)
    factors = rng.normal(size=(60, 2))
    responses = factors @ np.array([[0.5, 0.2], [0.1, 0.9]]).T + rng.normal(0, 0.1, (60, 2))

    classical = fit_factor_regression(factors, responses)
    np.testing.assert_allclose(
        moments.residual_covariance(classical),
        np.cov(classical.residuals, rowvar=False, ddof=1),
    )

    single = fit_factor_regression(factors, responses[:, 0], robust=True)
    robust_cov = moments.residual_covariance(single, robust=True)
    assert robust_cov.shape == (1, 1)
    assert robust_cov[0, 0] == pytest.approx(single.residual_scale[0] ** 2)

    several = fit_factor_regression(factors, responses, robust=True)
    config = StambaughConfig(random_state=1)
    mcd = MinCovDet(support_fraction=0.5, random_state=1).fit(several.residuals)
    np.testing.assert_allclose(
        moments.residual_covariance(several, robust=True, config=config),
        mcd.covariance_,
        atol=1e-14,
    )


def test_warn_if_ill_conditioned_flags_singular_matrix():
    with pytest.warns(RuntimeWarning):
        moments.warn_if_ill_conditioned(np.ones((2, 2)))
