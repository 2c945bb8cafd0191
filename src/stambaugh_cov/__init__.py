"""
stambaugh_cov: location and covariance estimates for return panels whose
histories start at different dates.

The high-level entry points are re-exported here:

- :func:`stambaugh_est` runs the sequential Stambaugh estimator once.
- :func:`stambaugh_fit` fits up to two models (classic, robust, truncated).
- :func:`stambaugh_distance` computes stage-wise outlier diagnostics.
"""

__version__ = "0.1.0"

from .config import StambaughConfig
from .diagnostics import DistanceRecord, DistanceReport, stambaugh_distance
from .errors import EmptyPanelError, EstimationError, InputShapeError
from .estimators import PanelData, Permutation, StambaughEstimate, stambaugh_est, to_panel
from .models import FitResult, StambaughModels, stambaugh_fit

__all__ = [
    "__version__",
    "StambaughConfig",
    "DistanceRecord",
    "DistanceReport",
    "stambaugh_distance",
    "EmptyPanelError",
    "EstimationError",
    "InputShapeError",
    "PanelData",
    "Permutation",
    "StambaughEstimate",
    "stambaugh_est",
    "to_panel",
    "FitResult",
    "StambaughModels",
    "stambaugh_fit",
]
