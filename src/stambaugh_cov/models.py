"""Fit and package Stambaugh models for comparison.

:func:`stambaugh_fit` runs one or two flavours of the estimator on the same
panel and returns them as a :class:`StambaughModels` collection keyed by
display name, ready for the distance diagnostics and the comparison plots.

- ``classic``: least-squares Stambaugh estimate (``"Stambaugh"``).
- ``robust``: MCD/M-regression Stambaugh estimate (``"Robust Stambaugh"``).
- ``truncated``: classical moments of the complete-case rows only
  (``"Truncated"``), the naive baseline that discards early history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence

import pandas as pd

from stambaugh_cov.config.schemas import StambaughConfig, resolve_config
from stambaugh_cov.errors import EmptyPanelError, InputShapeError
from stambaugh_cov.estimators.panel import Cohort, PanelLike, to_panel
from stambaugh_cov.estimators.stambaugh import stambaugh_est

__all__ = [
    "METHODS",
    "FitResult",
    "StambaughModels",
    "normalize_methods",
    "stambaugh_fit",
]

logger = logging.getLogger(__name__)

METHODS: dict[str, tuple[str, str]] = {
    "classic": ("Stambaugh", "Classical"),
    "robust": ("Robust Stambaugh", "Robust"),
    "truncated": ("Truncated", "Classical"),
}
MAX_METHODS = 2


@dataclass(frozen=True)
class FitResult:
    """One fitted model: center, covariance and the panel it was fitted on."""

    method: str
    center: pd.Series
    cov: pd.DataFrame
    data: pd.DataFrame
    config: StambaughConfig
    cohorts: tuple[Cohort, ...] = ()

    @property
    def name(self) -> str:
        return METHODS[self.method][0]

    @property
    def type(self) -> str:
        return METHODS[self.method][1]

    @property
    def robust(self) -> bool:
        return self.method == "robust"

    @property
    def robust_params(self) -> dict[str, Any] | None:
        return self.config.robust_params() if self.robust else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "method": self.method,
            "type": self.type,
            "assets": [str(asset) for asset in self.center.index],
            "center": [float(v) for v in self.center.to_numpy()],
            "cov": self.cov.to_numpy(dtype=float).tolist(),
            "n_obs": int(self.data.shape[0]),
        }
        if self.robust_params is not None:
            payload["robust_params"] = self.robust_params
        return payload


@dataclass(frozen=True)
class StambaughModels:
    """Ordered collection of at most two fitted models plus the cleaned panel."""

    models: Mapping[str, FitResult]
    data: pd.DataFrame

    def __post_init__(self) -> None:
        object.__setattr__(self, "models", MappingProxyType(dict(self.models)))

    @property
    def names(self) -> list[str]:
        return list(self.models)

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[str]:
        return iter(self.models)

    def __contains__(self, name: object) -> bool:
        return name in self.models

    def __getitem__(self, name: str) -> FitResult:
        return self.models[name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "assets": [str(c) for c in self.data.columns],
            "n_obs": int(self.data.shape[0]),
            "models": {name: fit.to_dict() for name, fit in self.models.items()},
        }


def normalize_methods(method: str | Sequence[str]) -> tuple[str, ...]:
    """Validate the requested methods, returning them in canonical order."""

    requested = [method] if isinstance(method, str) else list(method)
    if not requested:
        raise InputShapeError("at least one method must be requested.")
    unknown = [m for m in requested if m not in METHODS]
    if unknown:
        raise InputShapeError(
            f"invalid model(s) {unknown}; choose from {sorted(METHODS)}."
        )
    if len(requested) > MAX_METHODS:
        raise InputShapeError(f"can fit at most {MAX_METHODS} models at once.")
    if len(set(requested)) != len(requested):
        raise InputShapeError("duplicate methods requested.")
    return tuple(m for m in METHODS if m in requested)


def stambaugh_fit(
    data: PanelLike,
    method: str | Sequence[str] = ("classic", "robust"),
    *,
    config: StambaughConfig | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> StambaughModels:
    """Fit up to two Stambaugh models on ``data``.

    Inputs, methods and options are validated before any estimation work.

    Parameters
    ----------
    data
        Return panel (rows = time, columns = assets) with ``NaN`` for missing
        history.
    method
        One or two of ``"classic"``, ``"robust"``, ``"truncated"``.
    config, **overrides
        Estimator options shared by all requested models.

    Raises
    ------
    InputShapeError
        On invalid data, methods or options.
    EmptyPanelError
        When no usable observation remains.
    EstimationError
        When a cohort regression fails.
    """

    methods = normalize_methods(method)
    config = resolve_config(config, **overrides)
    panel = to_panel(data).drop_empty_rows()
    if panel.is_empty:
        raise EmptyPanelError("panel has no observations after dropping empty rows.")

    models: dict[str, FitResult] = {}
    for name in methods:
        source = panel.complete_rows() if name == "truncated" else panel
        if source.is_empty:
            raise EmptyPanelError("panel has no complete rows to truncate to.")
        estimate = stambaugh_est(source, robust=(name == "robust"), config=config)
        if estimate is None:  # pragma: no cover - guarded by the checks above
            raise EmptyPanelError("panel has no observations after dropping empty rows.")
        models[METHODS[name][0]] = FitResult(
            method=name,
            center=estimate.center,
            cov=estimate.cov,
            data=estimate.data,
            config=config,
            cohorts=estimate.cohorts,
        )
        logger.info(
            "fitted model",
            extra={"model": METHODS[name][0], "n_obs": int(estimate.data.shape[0])},
        )

    return StambaughModels(models=models, data=panel.to_frame())
