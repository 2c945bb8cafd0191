"""Location/scatter estimators used by the Stambaugh procedure.

Classical moments are the sample mean and the unbiased sample covariance.
Robust moments rely on the minimum covariance determinant estimator from
``scikit-learn`` in the multivariate case and on Huber's joint location/scale
estimate from ``statsmodels`` when only one asset is involved.

References
----------
Rousseeuw, P. J. and Van Driessen, K. (1999), *A Fast Algorithm for the
    Minimum Covariance Determinant Estimator*. Technometrics 41.
Huber, P. J. (1981), *Robust Statistics*. Wiley.
"""

from __future__ import annotations

import warnings

import numpy as np
from numpy.linalg import LinAlgError
from sklearn.covariance import MinCovDet
from statsmodels.robust.scale import Huber

from stambaugh_cov.config.schemas import StambaughConfig
from stambaugh_cov.estimators.regression import FactorRegression

__all__ = [
    "classical_moments",
    "estimate_moments",
    "huber_location_scale",
    "mcd_moments",
    "residual_covariance",
    "symmetrize",
    "warn_if_ill_conditioned",
]


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=float)
    return 0.5 * (matrix + matrix.T)


def warn_if_ill_conditioned(matrix: np.ndarray, threshold: float = 1e12) -> None:
    """Emit warnings for poorly conditioned matrices."""

    try:
        cond_number = np.linalg.cond(matrix)
    except LinAlgError:
        warnings.warn("Covariance matrix appears singular.", RuntimeWarning)
        return

    if not np.isfinite(cond_number):
        warnings.warn("Covariance matrix conditioning is not finite.", RuntimeWarning)
        return

    if cond_number > threshold:
        warnings.warn(
            f"Covariance matrix is poorly conditioned (cond > {threshold:.1e}).",
            RuntimeWarning,
        )


def classical_moments(block: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Sample mean and unbiased sample covariance of a complete block."""

    values = np.asarray(block, dtype=float)
    if values.shape[0] < 2:
        raise ValueError("At least two observations required for a covariance.")
    loc = values.mean(axis=0)
    cov = np.atleast_2d(np.cov(values, rowvar=False, ddof=1))
    return loc, symmetrize(cov)


def mcd_moments(
    block: np.ndarray, *, alpha: float = 0.5, random_state: int | None = 0
) -> tuple[np.ndarray, np.ndarray]:
    """Reweighted MCD location and covariance."""

    values = np.asarray(block, dtype=float)
    mcd = MinCovDet(support_fraction=alpha, random_state=random_state).fit(values)
    return np.asarray(mcd.location_, dtype=float), symmetrize(mcd.covariance_)


def huber_location_scale(values: np.ndarray, *, c: float = 1.5) -> tuple[float, float]:
    """Huber proposal-2 joint estimate of location and scale for one series."""

    series = np.asarray(values, dtype=float).ravel()
    if series.size < 2:
        raise ValueError("At least two observations required for a scale estimate.")
    loc, scale = Huber(c=c)(series)
    return float(np.squeeze(loc)), float(np.squeeze(scale))


def estimate_moments(
    block: np.ndarray,
    *,
    robust: bool = False,
    config: StambaughConfig | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Seed moments for the longest-history cohort.

    Returns a ``(loc, cov)`` pair where ``cov`` is always two-dimensional, also
    for a single asset.
    """

    config = config or StambaughConfig()
    values = np.asarray(block, dtype=float)
    if values.ndim == 1:
        values = values.reshape(-1, 1)

    if not robust:
        return classical_moments(values)

    if values.shape[1] == 1:
        loc, scale = huber_location_scale(values[:, 0], c=config.huber_c)
        return np.array([loc]), np.array([[scale**2]])

    return mcd_moments(values, alpha=config.mcd_alpha, random_state=config.random_state)


def residual_covariance(
    regression: FactorRegression,
    *,
    robust: bool = False,
    config: StambaughConfig | None = None,
) -> np.ndarray:
    """Covariance of factor-regression residuals.

    Robust mode uses the MCD scatter for several responses and the squared
    residual scale of the M-regression for a single response; classical mode
    always uses the sample covariance.
    """

    config = config or StambaughConfig()
    resid = regression.residuals

    if robust:
        if resid.shape[1] == 1:
            return np.array([[float(regression.residual_scale[0]) ** 2]])
        _, cov = mcd_moments(resid, alpha=config.mcd_alpha, random_state=config.random_state)
        return cov

    return symmetrize(np.atleast_2d(np.cov(resid, rowvar=False, ddof=1)))
