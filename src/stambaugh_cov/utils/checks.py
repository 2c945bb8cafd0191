"""Validation helpers for covariance matrices.

Raise ``ValueError`` with a descriptive message when an estimate is not a
valid covariance matrix, so that callers can verify output before handing it
to downstream tools.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

__all__ = ["assert_psd", "assert_symmetric"]


def _square(matrix) -> np.ndarray:
    if isinstance(matrix, pd.DataFrame):
        values = matrix.to_numpy(dtype=float)
    elif isinstance(matrix, np.ndarray):
        values = matrix.astype(float)
    else:
        raise TypeError("Expected a DataFrame or ndarray.")
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise ValueError("Matrix must be square.")
    return values


def assert_symmetric(matrix, atol: float = 1e-8) -> None:
    """Raise ``ValueError`` unless ``matrix`` equals its transpose within ``atol``."""

    values = _square(matrix)
    if not np.allclose(values, values.T, atol=atol):
        raise ValueError("Matrix is not symmetric within the given tolerance.")


def assert_psd(matrix, atol: float = 1e-8) -> None:
    """Raise ``ValueError`` when an eigenvalue is below ``-atol``."""

    values = _square(matrix)
    eigenvalues = np.linalg.eigvalsh(0.5 * (values + values.T))
    if np.any(eigenvalues < -atol):
        raise ValueError(
            f"Matrix is not positive semi-definite (min eigenvalue {eigenvalues.min():.3e})."
        )
