"""Outlier diagnostics built on fitted Stambaugh models."""

from .distance import (
    DistanceRecord,
    DistanceReport,
    chi2_thresholds,
    mahalanobis_distance,
    stambaugh_distance,
)

__all__ = [
    "DistanceRecord",
    "DistanceReport",
    "chi2_thresholds",
    "mahalanobis_distance",
    "stambaugh_distance",
]
