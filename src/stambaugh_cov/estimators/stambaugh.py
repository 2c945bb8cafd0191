"""Stambaugh (1997) estimator for panels with staggered start dates.

Assets are grouped by the row at which their history begins.  The group with
the longest history seeds a location/covariance estimate; every later group
(the *short* block) is regressed on all assets merged so far (the *long*
block) and the fitted relation extends the running estimate:

    loc_short = alpha + B loc_long
    cov_short_long = B cov_long
    cov_short_short = cov(resid) + B cov_long B'

so that all available history is used instead of truncating the panel to the
common sample.  Robust mode swaps the sample moments and least squares for
MCD/Huber moments and M-regressions.

References
----------
Stambaugh, R. F. (1997), *Analyzing Investments Whose Histories Differ in
    Length*. Journal of Financial Economics 45.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
import pandas as pd

from stambaugh_cov.config.schemas import StambaughConfig, resolve_config
from stambaugh_cov.errors import EstimationError
from stambaugh_cov.estimators.moments import (
    estimate_moments,
    residual_covariance,
    symmetrize,
    warn_if_ill_conditioned,
)
from stambaugh_cov.estimators.panel import Cohort, PanelLike, build_cohorts, to_panel
from stambaugh_cov.estimators.regression import fit_factor_regression

__all__ = [
    "MomentEstimate",
    "StambaughEstimate",
    "combine_stage",
    "stambaugh_est",
]

logger = logging.getLogger(__name__)

_NUMERICAL_ERRORS = (ValueError, np.linalg.LinAlgError, FloatingPointError)


@dataclass(frozen=True)
class MomentEstimate:
    """Location vector and covariance matrix over an ordered set of assets."""

    loc: np.ndarray
    cov: np.ndarray

    def __post_init__(self) -> None:
        loc = np.asarray(self.loc, dtype=float).ravel()
        cov = np.atleast_2d(np.asarray(self.cov, dtype=float))
        if cov.shape != (loc.size, loc.size):
            raise ValueError(
                f"covariance shape {cov.shape} does not match location size {loc.size}."
            )
        object.__setattr__(self, "loc", loc)
        object.__setattr__(self, "cov", cov)

    @property
    def size(self) -> int:
        return int(self.loc.size)


@dataclass(frozen=True)
class StambaughEstimate:
    """Output of :func:`stambaugh_est` in the caller's column order."""

    center: pd.Series
    cov: pd.DataFrame
    data: pd.DataFrame
    robust: bool
    config: StambaughConfig
    cohorts: tuple[Cohort, ...]

    @property
    def robust_params(self) -> dict[str, Any] | None:
        return self.config.robust_params() if self.robust else None


def combine_stage(
    long_block: np.ndarray,
    short_block: np.ndarray,
    estimate: MomentEstimate,
    *,
    robust: bool = False,
    config: StambaughConfig | None = None,
) -> MomentEstimate:
    """Extend ``estimate`` (over the long assets) with the short assets.

    ``long_block`` and ``short_block`` must be row-aligned; rows with a missing
    value in either block are dropped before the regression.  The result lists
    the long assets first, followed by the short assets in their given order.
    """

    config = config or StambaughConfig()
    long_values = np.asarray(long_block, dtype=float)
    short_values = np.asarray(short_block, dtype=float)
    if short_values.ndim == 1:
        short_values = short_values.reshape(-1, 1)
    if long_values.shape[1] != estimate.size:
        raise ValueError(
            f"long block has {long_values.shape[1]} assets, estimate covers {estimate.size}."
        )

    keep = ~(np.isnan(long_values).any(axis=1) | np.isnan(short_values).any(axis=1))
    regression = fit_factor_regression(
        long_values[keep],
        short_values[keep],
        robust=robust,
        norm=config.regression_norm,
        max_iter=config.regression_max_iter,
    )

    B = regression.beta
    resid_cov = residual_covariance(regression, robust=robust, config=config)

    loc_short = regression.alpha + B @ estimate.loc
    cov_short_long = B @ estimate.cov
    cov_short_short = symmetrize(resid_cov + B @ estimate.cov @ B.T)

    cov = np.block(
        [
            [estimate.cov, cov_short_long.T],
            [cov_short_long, cov_short_short],
        ]
    )
    return MomentEstimate(np.concatenate([estimate.loc, loc_short]), cov)


def stambaugh_est(
    data: PanelLike,
    *,
    robust: bool = False,
    config: StambaughConfig | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> StambaughEstimate | None:
    """Stambaugh location/covariance estimate of a staggered return panel.

    Parameters
    ----------
    data
        Returns arranged as observations (rows) by assets (columns); ``NaN``
        marks missing values, typically leading gaps before an asset's
        inception.
    robust
        Use robust moments and regressions.
    config, **overrides
        Estimator options (see :class:`StambaughConfig`); unknown keys raise
        :class:`~stambaugh_cov.errors.InputShapeError`.

    Returns
    -------
    StambaughEstimate or None
        ``None`` when no observation is left after dropping rows that are
        missing for every asset.

    Raises
    ------
    EstimationError
        When the moment or regression routine fails for a cohort.
    """

    config = resolve_config(config, **overrides)
    panel = to_panel(data).drop_empty_rows()
    if panel.is_empty:
        logger.info("panel is empty after dropping all-missing rows")
        return None

    start = panel.start_index()
    permutation, cohorts = build_cohorts(start, panel.columns)
    ordered = permutation.apply_columns(panel.values)
    logger.debug(
        "cohort layout",
        extra={"cohorts": [(c.start, [str(a) for a in c.assets]) for c in cohorts]},
    )

    seed = cohorts[0]
    seed_block = ordered[:, : seed.size]
    seed_block = seed_block[~np.isnan(seed_block).any(axis=1)]
    try:
        loc, cov = estimate_moments(seed_block, robust=robust, config=config)
    except _NUMERICAL_ERRORS as exc:
        raise EstimationError(str(exc), cohort=0, assets=seed.assets) from exc
    estimate = MomentEstimate(loc, cov)

    merged = seed.size
    for stage, cohort in enumerate(cohorts[1:], start=1):
        short = ordered[:, merged : merged + cohort.size]
        rows = ~np.isnan(short).any(axis=1)
        try:
            estimate = combine_stage(
                ordered[rows, :merged],
                short[rows],
                estimate,
                robust=robust,
                config=config,
            )
        except _NUMERICAL_ERRORS as exc:
            raise EstimationError(str(exc), cohort=stage, assets=cohort.assets) from exc
        logger.debug(
            "merged cohort",
            extra={"stage": stage, "start_row": cohort.start, "n_rows": int(rows.sum())},
        )
        merged += cohort.size

    restore = permutation.inverse()
    loc_out = restore.apply(estimate.loc)
    cov_out = restore.apply(estimate.cov)
    warn_if_ill_conditioned(cov_out)

    labels = list(panel.columns)
    logger.info(
        "stambaugh estimate completed",
        extra={"n_assets": panel.n_assets, "n_cohorts": len(cohorts), "robust": robust},
    )
    return StambaughEstimate(
        center=pd.Series(loc_out, index=labels, dtype=float),
        cov=pd.DataFrame(cov_out, index=labels, columns=labels),
        data=panel.to_frame(),
        robust=robust,
        config=config,
        cohorts=tuple(cohorts),
    )
