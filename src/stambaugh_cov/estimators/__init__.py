"""Estimators for return panels whose histories differ in length."""

from .panel import Cohort, PanelData, Permutation, build_cohorts, to_panel
from .regression import FactorRegression, fit_factor_regression
from .stambaugh import MomentEstimate, StambaughEstimate, combine_stage, stambaugh_est

__all__ = [
    "Cohort",
    "PanelData",
    "Permutation",
    "build_cohorts",
    "to_panel",
    "FactorRegression",
    "fit_factor_regression",
    "MomentEstimate",
    "StambaughEstimate",
    "combine_stage",
    "stambaugh_est",
]
