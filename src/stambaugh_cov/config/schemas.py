"""Pydantic schemas for estimator configuration.

The Stambaugh estimator delegates to a handful of numerical primitives
(least squares, M-regressions, MCD, Huber location/scale).  Their tuning knobs
are gathered in :class:`StambaughConfig`; unknown keys are rejected so that a
typo never silently falls back to a default.

YAML files under ``configs/`` validate against these schemas through
:func:`stambaugh_cov.config.loader.load_config`.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stambaugh_cov.errors import InputShapeError

__all__ = [
    "StambaughConfig",
    "resolve_config",
]


class StambaughConfig(BaseModel):
    """Options forwarded to the regression and robust moment routines.

    Attributes
    ----------
    mcd_alpha : float
        Support fraction of the minimum covariance determinant estimator
        (the breakdown control ``alpha``).
    regression_norm : Literal
        M-estimator norm for robust per-asset regressions.
    regression_max_iter : int
        Iteration cap for the robust regressions.
    huber_c : float
        Tuning constant of the univariate Huber location/scale estimate.
    id_n : int
        Maximum number of outliers flagged per cohort.
    level : float
        Chi-square quantile used for distance thresholds.
    random_state : int | None
        Seed for the MCD random subsets.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    mcd_alpha: float = Field(default=0.5, ge=0.5, le=1.0, description="MCD support fraction")
    regression_norm: Literal["huber", "bisquare"] = Field(
        default="huber", description="Norm for robust factor regressions"
    )
    regression_max_iter: int = Field(default=50, gt=0, description="Robust regression iterations")
    huber_c: float = Field(default=1.5, gt=0, description="Huber tuning constant")
    id_n: int = Field(default=10, ge=1, description="Outliers flagged per cohort")
    level: float = Field(default=0.975, gt=0, lt=1, description="Chi-square quantile level")
    random_state: int | None = Field(default=0, description="Seed for MCD subsets")

    def robust_params(self) -> dict[str, Any]:
        return {
            "alpha": self.mcd_alpha,
            "regression_norm": self.regression_norm,
            "huber_c": self.huber_c,
            "random_state": self.random_state,
        }


def resolve_config(
    config: StambaughConfig | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> StambaughConfig:
    """Merge ``config`` with keyword overrides, rejecting unknown options."""

    if config is None:
        base: dict[str, Any] = {}
    elif isinstance(config, StambaughConfig):
        base = config.model_dump()
    else:
        base = dict(config)
    base.update(overrides)
    try:
        return StambaughConfig.model_validate(base)
    except ValidationError as exc:
        raise InputShapeError(f"invalid estimator options:\n{exc}") from exc
