"""Tests for the Stambaugh estimator on staggered panels."""

import numpy as np
import pandas as pd
import pytest
from sklearn.covariance import MinCovDet

from stambaugh_cov.errors import EstimationError, InputShapeError
from stambaugh_cov.estimators import stambaugh_est
from stambaugh_cov.estimators.moments import classical_moments
from stambaugh_cov.estimators.regression import fit_factor_regression
from stambaugh_cov.estimators.stambaugh import MomentEstimate, combine_stage
from stambaugh_cov.utils.checks import assert_psd, assert_symmetric


def test_complete_panel_reduces_to_sample_moments(complete_panel):
    result = stambaugh_est(complete_panel)
    np.testing.assert_allclose(result.center.to_numpy(), complete_panel.mean().to_numpy())
    np.testing.assert_allclose(result.cov.to_numpy(), complete_panel.cov().to_numpy())
    assert list(result.cov.columns) == list(complete_panel.columns)
    assert len(result.cohorts) == 1
    assert result.robust_params is None


def test_complete_panel_robust_matches_min_cov_det(complete_panel):
    result = stambaugh_est(complete_panel, robust=True, mcd_alpha=0.75, random_state=2)
    mcd = MinCovDet(support_fraction=0.75, random_state=2).fit(complete_panel.to_numpy())
    np.testing.assert_allclose(result.center.to_numpy(), mcd.location_)
    np.testing.assert_allclose(result.cov.to_numpy(), mcd.covariance_, atol=1e-14)
    assert result.robust_params["alpha"] == 0.75


def test_two_cohort_blocks_follow_regression_identities(panel_factory):
    panel = panel_factory((0, 0, 40))
    result = stambaugh_est(panel)

    long_all = panel[["A", "B"]].to_numpy()
    loc_long, cov_long = classical_moments(long_all)
    rows = panel["C"].notna().to_numpy()
    reg = fit_factor_regression(long_all[rows], panel.loc[rows, ["C"]].to_numpy())
    resid_cov = np.cov(reg.residuals, rowvar=False, ddof=1)

    cov = result.cov
    np.testing.assert_allclose(cov.loc[["A", "B"], ["A", "B"]].to_numpy(), cov_long)
    np.testing.assert_allclose(cov.loc[["C"], ["A", "B"]].to_numpy(), reg.beta @ cov_long)
    np.testing.assert_allclose(
        cov.loc[["C"], ["C"]].to_numpy(), resid_cov + reg.beta @ cov_long @ reg.beta.T
    )
    np.testing.assert_allclose(result.center["C"], reg.alpha[0] + reg.beta[0] @ loc_long)
    np.testing.assert_allclose(result.center[["A", "B"]].to_numpy(), loc_long)


def test_output_is_symmetric_and_psd(staggered_panel):
    result = stambaugh_est(staggered_panel)
    assert_symmetric(result.cov)
    assert_psd(result.cov)
    assert result.cov.shape == (5, 5)
    assert [c.start for c in result.cohorts] == [0, 48, 66, 78]


def test_robust_staggered_panel_is_symmetric_and_psd(robust_panel):
    result = stambaugh_est(robust_panel, robust=True)
    assert_symmetric(result.cov)
    assert_psd(result.cov)
    assert [c.assets for c in result.cohorts] == [("A", "B"), ("C", "D"), ("E",)]
    assert np.isfinite(result.center.to_numpy()).all()


def test_column_order_does_not_change_the_estimate(staggered_panel):
    base = stambaugh_est(staggered_panel)
    shuffled_cols = ["D", "A", "E", "C", "B"]
    shuffled = stambaugh_est(staggered_panel[shuffled_cols])

    assert list(shuffled.center.index) == shuffled_cols
    np.testing.assert_allclose(
        shuffled.center.to_numpy(), base.center.loc[shuffled_cols].to_numpy()
    )
    np.testing.assert_allclose(
        shuffled.cov.to_numpy(),
        base.cov.loc[shuffled_cols, shuffled_cols].to_numpy(),
        atol=1e-14,
    )


def test_single_asset_seed_cohort(panel_factory):
    panel = panel_factory((0, 20, 40))
    classic = stambaugh_est(panel)
    robust = stambaugh_est(panel, robust=True)
    assert classic.cov.loc["A", "A"] == pytest.approx(panel["A"].var())
    assert robust.cov.shape == (3, 3)
    assert_psd(robust.cov)


def test_all_missing_panel_returns_none():
    frame = pd.DataFrame({"A": [np.nan, np.nan], "B": [np.nan, np.nan]})
    assert stambaugh_est(frame) is None


def test_all_missing_rows_are_ignored(staggered_panel):
    padded = staggered_panel.copy()
    padded.iloc[10] = np.nan
    trimmed = staggered_panel.drop(staggered_panel.index[10])
    left = stambaugh_est(padded)
    right = stambaugh_est(trimmed)
    np.testing.assert_allclose(left.cov.to_numpy(), right.cov.to_numpy())
    assert len(left.data) == len(staggered_panel) - 1


def test_interior_gaps_in_long_block_are_dropped(panel_factory):
    panel = panel_factory((0, 0, 40))
    panel.iloc[50:56, 0] = np.nan
    result = stambaugh_est(panel)

    complete = panel.dropna()
    reg = fit_factor_regression(complete[["A", "B"]].to_numpy(), complete[["C"]].to_numpy())
    loc_long, _ = classical_moments(panel[["A", "B"]].dropna().to_numpy())
    np.testing.assert_allclose(result.center["C"], reg.alpha[0] + reg.beta[0] @ loc_long)


def test_short_cohort_without_enough_rows_names_the_cohort(panel_factory):
    panel = panel_factory((0, 0, 0, 82))
    with pytest.raises(EstimationError) as info:
        stambaugh_est(panel)
    assert info.value.cohort == 1
    assert info.value.assets == ("D",)


def test_collinear_long_block_raises_estimation_error(panel_factory):
    panel = panel_factory((0, 0, 30))
    panel["A2"] = panel["A"]
    panel = panel[["A", "A2", "B", "C"]]
    with pytest.raises(EstimationError, match="rank deficient"):
        stambaugh_est(panel)


def test_unknown_option_is_rejected(complete_panel):
    with pytest.raises(InputShapeError):
        stambaugh_est(complete_panel, not_an_option=1)


def test_combine_stage_checks_estimate_size():
    rng = np.random.default_rng(0)
    long_block = rng.normal(size=(30, 2))
    estimate = MomentEstimate(np.zeros(3), np.eye(3))
    with pytest.raises(ValueError):
        combine_stage(long_block, rng.normal(size=30), estimate)


def test_robust_column_order_does_not_change_the_estimate(robust_panel):
    base = stambaugh_est(robust_panel, robust=True)
    shuffled_cols = ["E", "C", "A", "D", "B"]
    shuffled = stambaugh_est(robust_panel[shuffled_cols], robust=True)

    np.testing.assert_allclose(
        shuffled.center.to_numpy(), base.center.loc[shuffled_cols].to_numpy()
    )
    np.testing.assert_allclose(
        shuffled.cov.to_numpy(),
        base.cov.loc[shuffled_cols, shuffled_cols].to_numpy(),
        atol=1e-14,
    )


def test_robust_two_asset_cohort_uses_mcd_on_residuals(robust_panel):
    panel = robust_panel[["A", "B", "C", "D"]]
    result = stambaugh_est(panel, robust=True)

    long_all = panel[["A", "B"]].to_numpy()
    seed = MinCovDet(support_fraction=0.5, random_state=0).fit(long_all)
    rows = panel["C"].notna().to_numpy()
    reg = fit_factor_regression(
        long_all[rows], panel.loc[rows, ["C", "D"]].to_numpy(), robust=True
    )
    resid_cov = MinCovDet(support_fraction=0.5, random_state=0).fit(reg.residuals).covariance_
    cov_long = seed.covariance_

    short, long = ["C", "D"], ["A", "B"]
    np.testing.assert_allclose(
        result.cov.loc[short, long].to_numpy(), reg.beta @ cov_long, atol=1e-12
    )
    np.testing.assert_allclose(
        result.cov.loc[short, short].to_numpy(),
        resid_cov + reg.beta @ cov_long @ reg.beta.T,
        atol=1e-12,
    )
    np.testing.assert_allclose(
        result.center[short].to_numpy(), reg.alpha + reg.beta @ seed.location_
    )
