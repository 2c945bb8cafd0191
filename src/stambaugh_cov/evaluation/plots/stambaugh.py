"""Comparison plots for fitted Stambaugh models."""

from __future__ import annotations

from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.stats import chi2

from stambaugh_cov.diagnostics.distance import DistanceReport, stambaugh_distance
from stambaugh_cov.errors import InputShapeError
from stambaugh_cov.models import StambaughModels

__all__ = [
    "ellipse_points",
    "plot_stambaugh",
    "plot_stambaugh_distances",
    "plot_stambaugh_ellipses",
]

_MODEL_STYLES = (
    {"color": "tab:blue", "linestyle": "-"},
    {"color": "tab:red", "linestyle": "--"},
)


def ellipse_points(
    center: Sequence[float], cov: np.ndarray, *, level: float = 0.975, n_points: int = 100
) -> np.ndarray:
    """Boundary of the ``level`` probability ellipse of a bivariate normal."""

    cov = np.asarray(cov, dtype=float)
    if cov.shape != (2, 2):
        raise ValueError("cov must be a 2x2 matrix.")
    radius = np.sqrt(chi2.ppf(level, df=2))
    eigvals, eigvecs = np.linalg.eigh(0.5 * (cov + cov.T))
    axes = eigvecs * np.sqrt(np.clip(eigvals, 0.0, None))
    theta = np.linspace(0.0, 2.0 * np.pi, n_points)
    circle = np.vstack([np.cos(theta), np.sin(theta)])
    return (np.asarray(center, dtype=float)[:, None] + radius * axes @ circle).T


def plot_stambaugh_ellipses(
    models: StambaughModels,
    *,
    assets: Sequence[str] | None = None,
    level: float = 0.975,
    figsize: tuple[float, float] | None = None,
) -> plt.Figure:
    """Pairwise scatter of the panel with the ellipses of both models overlaid."""

    if len(models) != 2:
        raise InputShapeError("2 models needed for ellipse plot")

    data = models.data
    columns = list(data.columns if assets is None else assets)
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise InputShapeError(f"unknown assets: {missing}")
    if len(columns) < 2:
        raise InputShapeError("ellipse plot needs at least two assets")

    n = len(columns)
    fig, axes = plt.subplots(n, n, figsize=figsize or (2.5 * n, 2.5 * n), squeeze=False)

    for i, row_asset in enumerate(columns):
        for j, col_asset in enumerate(columns):
            ax = axes[i, j]
            if i == j:
                ax.text(0.5, 0.5, str(row_asset), ha="center", va="center", fontsize=12)
                ax.set_xticks([])
                ax.set_yticks([])
                continue
            ax.scatter(data[col_asset], data[row_asset], s=6, color="0.6", alpha=0.6)
            for style, (name, fit) in zip(_MODEL_STYLES, models.models.items()):
                pair = [col_asset, row_asset]
                points = ellipse_points(
                    fit.center.loc[pair].to_numpy(),
                    fit.cov.loc[pair, pair].to_numpy(),
                    level=level,
                )
                ax.plot(points[:, 0], points[:, 1], label=name, **style)
            ax.tick_params(labelsize=7)

    handles, labels = axes[0, 1].get_legend_handles_labels()
    fig.legend(handles, labels, loc="upper center", ncol=2)
    return fig


def _step_thresholds(ax: plt.Axes, boundaries: np.ndarray, thresholds: np.ndarray) -> None:
    for i in range(len(boundaries) - 1):
        ax.hlines(
            thresholds[i], boundaries[i], boundaries[i + 1],
            colors="blue", linestyles="dashed",
        )
        ax.vlines(
            boundaries[i + 1], thresholds[i], thresholds[i + 1],
            colors="blue", linestyles="dashed",
        )


def plot_stambaugh_distances(
    models: StambaughModels | DistanceReport,
    *,
    level: float = 0.975,
    figsize: tuple[float, float] | None = None,
) -> plt.Figure:
    """Square-root Mahalanobis distances per model against stepwise thresholds."""

    report = models if isinstance(models, DistanceReport) else stambaugh_distance(models, level)
    n_models = len(report.records)
    fig, axes = plt.subplots(
        1, n_models, figsize=figsize or (6 * n_models, 4), sharey=True, squeeze=False
    )

    for ax, (name, record) in zip(axes[0], report.records.items()):
        positions = np.arange(len(record.frame))
        distances = record.frame["distance"].to_numpy(dtype=float)
        ax.scatter(positions, distances, s=10)
        for pos in record.flagged:
            ax.annotate(str(pos), (pos, distances[pos]), ha="right", va="bottom", fontsize=8)
        _step_thresholds(ax, report.boundaries, record.thresholds)

        index = record.frame.index
        if isinstance(index, pd.DatetimeIndex) and len(index) > 0:
            ticks = np.unique(np.linspace(0, len(index) - 1, 5).astype(int)[:-1])
            ax.set_xticks(ticks)
            ax.set_xticklabels(index[ticks].strftime("%Y"))
        ax.set_title(name)
        ax.set_xlabel("Date")
        ax.grid(True, alpha=0.3)

    axes[0, 0].set_ylabel("Square Root of Mahalanobis Distance")
    return fig


def plot_stambaugh(models: StambaughModels, which: int = 1, **kwargs) -> plt.Figure:
    """Dispatch to the ellipse (``which=1``) or distance (``which=2``) plot."""

    if which not in (1, 2):
        raise InputShapeError("Unknown plot selected")
    if which == 1:
        return plot_stambaugh_ellipses(models, **kwargs)
    return plot_stambaugh_distances(models, **kwargs)
