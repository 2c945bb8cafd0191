"""Exception hierarchy shared by the estimation stack."""

from __future__ import annotations

from typing import Sequence

__all__ = ["InputShapeError", "EmptyPanelError", "EstimationError"]


class InputShapeError(ValueError):
    """Raised when inputs or options are invalid before any estimation runs."""


class EmptyPanelError(InputShapeError):
    """Raised when a panel holds no observations after removing empty rows."""


class EstimationError(RuntimeError):
    """Raised when a regression or moment routine fails for a cohort.

    Attributes
    ----------
    cohort
        Zero-based stage number (``0`` is the seed cohort).
    assets
        Asset names of the failing cohort.
    """

    def __init__(self, message: str, *, cohort: int, assets: Sequence[str] = ()) -> None:
        self.cohort = int(cohort)
        self.assets = tuple(str(asset) for asset in assets)
        label = ", ".join(self.assets) if self.assets else "?"
        super().__init__(f"cohort {self.cohort} [{label}]: {message}")
