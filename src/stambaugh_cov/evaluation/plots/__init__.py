"""Convenience exports for plotting utilities."""

from .stambaugh import (
    ellipse_points,
    plot_stambaugh,
    plot_stambaugh_distances,
    plot_stambaugh_ellipses,
)

__all__ = [
    "ellipse_points",
    "plot_stambaugh",
    "plot_stambaugh_distances",
    "plot_stambaugh_ellipses",
]
