"""Stage-wise Mahalanobis distances and outlier flags for Stambaugh models.

A point's outlier status is judged against the estimate that matches its own
cohort regime: for every cohort boundary the model is refitted on the assets
already trading at that date, distances of the cohort's rows are measured
against the refit, and the threshold is the square root of the chi-square
quantile with as many degrees of freedom as assets in the refit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import numpy as np
import pandas as pd
from scipy.stats import chi2

from stambaugh_cov.errors import InputShapeError
from stambaugh_cov.estimators.panel import to_panel
from stambaugh_cov.estimators.stambaugh import stambaugh_est
from stambaugh_cov.models import FitResult, StambaughModels

__all__ = [
    "DistanceRecord",
    "DistanceReport",
    "chi2_thresholds",
    "mahalanobis_distance",
    "stambaugh_distance",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistanceRecord:
    """Distances and flagged outliers of one model.

    ``frame`` is indexed like the panel with a ``distance`` column (square
    root of the Mahalanobis distance, ``NaN`` for rows with missing values) and
    an ``outlier`` column holding the row position of flagged points.
    ``thresholds`` has one entry per cohort plus a repeated last entry.
    """

    name: str
    type: str
    frame: pd.DataFrame
    thresholds: np.ndarray

    @property
    def distances(self) -> pd.Series:
        return self.frame["distance"]

    @property
    def flagged(self) -> list[int]:
        return [int(v) for v in self.frame["outlier"].dropna()]

    @property
    def n_outliers(self) -> int:
        return len(self.flagged)


@dataclass(frozen=True)
class DistanceReport:
    """Distance records for every model sharing the same cohort boundaries."""

    records: Mapping[str, DistanceRecord]
    boundaries: np.ndarray
    level: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))

    def __getitem__(self, name: str) -> DistanceRecord:
        return self.records[name]

    def to_frame(self) -> pd.DataFrame:
        """Long format with ``Type``, ``Distance``, ``Outlier`` and ``Position``."""

        frames = []
        for record in self.records.values():
            frames.append(
                pd.DataFrame(
                    {
                        "Type": record.type,
                        "Distance": record.frame["distance"].to_numpy(),
                        "Outlier": record.frame["outlier"].array,
                        "Position": np.arange(len(record.frame)),
                    },
                    index=record.frame.index,
                )
            )
        return pd.concat(frames)


def chi2_thresholds(dof: np.ndarray, level: float) -> np.ndarray:
    """Square root of the upper ``1 - level`` chi-square quantile per ``dof``."""

    return np.sqrt(chi2.ppf(level, df=np.asarray(dof, dtype=float)))


def mahalanobis_distance(values: np.ndarray, center: np.ndarray, cov: np.ndarray) -> np.ndarray:
    """Square-root Mahalanobis distance of every row; ``NaN`` rows stay ``NaN``."""

    values = np.atleast_2d(np.asarray(values, dtype=float))
    out = np.full(values.shape[0], np.nan)
    finite = ~np.isnan(values).any(axis=1)
    if not finite.any():
        return out
    diff = values[finite] - np.asarray(center, dtype=float)
    solved = np.linalg.solve(np.atleast_2d(cov), diff.T).T
    squared = np.einsum("ij,ij->i", diff, solved)
    out[finite] = np.sqrt(np.clip(squared, 0.0, None))
    return out


def _model_distances(
    data: pd.DataFrame, fit: FitResult, *, level: float, id_n: int
) -> tuple[DistanceRecord, np.ndarray]:
    panel = to_panel(data)
    start = panel.start_index()
    starts, counts = np.unique(start, return_counts=True)
    boundaries = np.append(starts, panel.n_rows).astype(int)
    thresholds = chi2_thresholds(np.cumsum(counts), level)

    distance = np.full(panel.n_rows, np.nan)
    flagged = np.zeros(panel.n_rows, dtype=bool)

    for i, row in enumerate(starts):
        positions = np.flatnonzero(start <= row)
        subset = panel.take_columns(positions)
        refit = stambaugh_est(subset, robust=fit.robust, config=fit.config)
        lo, hi = int(row), int(boundaries[i + 1])
        distance[lo:hi] = mahalanobis_distance(
            subset.values[lo:hi], refit.center.to_numpy(), refit.cov.to_numpy()
        )

        segment = distance[lo:hi]
        exceed = np.flatnonzero(np.nan_to_num(segment, nan=-np.inf) > thresholds[i])
        ranked = exceed[np.argsort(-segment[exceed], kind="stable")][:id_n]
        flagged[lo + ranked] = True
        logger.debug(
            "cohort distances",
            extra={
                "model": fit.name,
                "stage": i,
                "n_assets": int(positions.size),
                "n_flagged": int(ranked.size),
            },
        )

    outlier = pd.Series(np.arange(panel.n_rows), dtype="Int64").where(flagged)
    frame = pd.DataFrame(
        {"distance": distance, "outlier": outlier.array}, index=panel.index
    )
    record = DistanceRecord(
        name=fit.name,
        type=fit.type,
        frame=frame,
        thresholds=np.append(thresholds, thresholds[-1]),
    )
    return record, boundaries


def stambaugh_distance(
    models: StambaughModels,
    level: float = 0.975,
    *,
    id_n: int | None = None,
) -> DistanceReport:
    """Compute stage-wise distances and outliers for every model in ``models``.

    Parameters
    ----------
    models
        Collection returned by :func:`~stambaugh_cov.models.stambaugh_fit`;
        a ``"Truncated"`` model is not allowed.
    level
        Chi-square quantile level in ``(0, 1)``.
    id_n
        Maximum number of outliers flagged per cohort; defaults to each
        model's configured ``id_n``.
    """

    if not isinstance(models, StambaughModels):
        raise InputShapeError("models must be a StambaughModels collection.")
    if models.data.shape[1] == 0:
        raise InputShapeError("Empty Data")
    if len(models) == 0:
        raise InputShapeError("Empty Models")
    if "Truncated" in models:
        raise InputShapeError("Truncated data not allowed")
    if not 0.0 < float(level) < 1.0:
        raise InputShapeError(f"level must lie in (0, 1), got {level}.")
    if id_n is not None and id_n < 1:
        raise InputShapeError("id_n must be positive.")

    records: dict[str, DistanceRecord] = {}
    boundaries = np.array([], dtype=int)
    for name, fit in models.models.items():
        cap = fit.config.id_n if id_n is None else int(id_n)
        records[name], boundaries = _model_distances(
            models.data, fit, level=float(level), id_n=cap
        )
        logger.info(
            "distance diagnostics",
            extra={"model": name, "level": float(level), "n_outliers": records[name].n_outliers},
        )

    return DistanceReport(records=records, boundaries=boundaries, level=float(level))
