"""Time-series factor regressions of a short block on a long block.

Each response column (a newly introduced asset) is regressed on all factor
columns (the assets already merged) with an intercept:

    short_t = alpha + B long_t + e_t

The classical fit is a single multi-response least-squares solve; the robust
fit runs one ``statsmodels`` M-regression per response, mirroring the
per-asset fits of a time-series factor model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import statsmodels.api as sm

__all__ = ["FactorRegression", "fit_factor_regression", "ROBUST_NORMS"]

logger = logging.getLogger(__name__)

ROBUST_NORMS = {
    "huber": sm.robust.norms.HuberT,
    "bisquare": sm.robust.norms.TukeyBiweight,
}


@dataclass(frozen=True)
class FactorRegression:
    """Coefficients and residuals of a factor regression.

    Attributes
    ----------
    alpha : ndarray (n_responses,)
        Intercepts.
    beta : ndarray (n_responses, n_factors)
        Loadings, one row per response.
    residuals : ndarray (n_obs, n_responses)
        In-sample residuals.
    residual_scale : ndarray (n_responses,)
        Residual standard deviation (robust scale for M-regressions).
    """

    alpha: np.ndarray
    beta: np.ndarray
    residuals: np.ndarray
    residual_scale: np.ndarray

    @property
    def n_obs(self) -> int:
        return int(self.residuals.shape[0])


def _as_matrix(values: np.ndarray, name: str) -> np.ndarray:
    array = np.asarray(values, dtype=float)
    if array.ndim == 1:
        array = array.reshape(-1, 1)
    if array.ndim != 2:
        raise ValueError(f"{name} must be a 2D array.")
    if np.isnan(array).any():
        raise ValueError(f"{name} contains missing values.")
    return array


def _least_squares(X: np.ndarray, Y: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    coef, _, rank, _ = np.linalg.lstsq(X, Y, rcond=None)
    if rank < X.shape[1]:
        raise np.linalg.LinAlgError(
            f"factor block is rank deficient (rank {rank} < {X.shape[1]})."
        )
    resid = Y - X @ coef
    dof = X.shape[0] - X.shape[1]
    scale = np.sqrt((resid**2).sum(axis=0) / dof)
    return coef, resid, scale


def _robust_fit(
    X: np.ndarray, Y: np.ndarray, *, norm: str, max_iter: int
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    try:
        norm_cls = ROBUST_NORMS[norm]
    except KeyError:
        raise ValueError(f"Unsupported robust norm '{norm}'.") from None

    if np.linalg.matrix_rank(X) < X.shape[1]:
        raise np.linalg.LinAlgError("factor block is rank deficient.")

    coefs = np.empty((X.shape[1], Y.shape[1]))
    resid = np.empty_like(Y)
    scale = np.empty(Y.shape[1])
    for j in range(Y.shape[1]):
        results = sm.RLM(Y[:, j], X, M=norm_cls()).fit(maxiter=max_iter)
        coefs[:, j] = results.params
        resid[:, j] = results.resid
        scale[j] = float(results.scale)
    return coefs, resid, scale


def fit_factor_regression(
    factors: np.ndarray,
    responses: np.ndarray,
    *,
    robust: bool = False,
    norm: str = "huber",
    max_iter: int = 50,
) -> FactorRegression:
    """Regress ``responses`` on ``factors`` with an intercept.

    Parameters
    ----------
    factors
        Complete ``(n_obs, n_factors)`` block (the long assets).
    responses
        Complete ``(n_obs, n_responses)`` block (the short assets); a 1D array
        is treated as a single response.
    robust
        Use per-response M-regressions instead of least squares.
    norm, max_iter
        Norm and iteration cap of the robust fits.

    Raises
    ------
    ValueError
        On misaligned or incomplete inputs and when there are too few rows.
    numpy.linalg.LinAlgError
        When the factor block is rank deficient.
    """

    F = _as_matrix(factors, "factors")
    Y = _as_matrix(responses, "responses")
    if F.shape[0] != Y.shape[0]:
        raise ValueError(
            f"factors and responses are misaligned ({F.shape[0]} vs {Y.shape[0]} rows)."
        )

    n_obs, n_factors = F.shape
    if n_obs < n_factors + 2:
        raise ValueError(
            f"{n_obs} observations are not enough to fit {n_factors} factors with an intercept."
        )

    X = np.column_stack([np.ones(n_obs), F])
    if robust:
        coef, resid, scale = _robust_fit(X, Y, norm=norm, max_iter=max_iter)
    else:
        coef, resid, scale = _least_squares(X, Y)

    logger.debug(
        "factor regression fitted",
        extra={"n_obs": n_obs, "n_factors": n_factors, "n_responses": Y.shape[1], "robust": robust},
    )

    return FactorRegression(
        alpha=coef[0].copy(),
        beta=coef[1:].T.copy(),
        residuals=resid,
        residual_scale=scale,
    )
