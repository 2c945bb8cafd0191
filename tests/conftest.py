from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
import pandas as pd
import pytest


def _make_panel(
    starts: Sequence[int], *, n_rows: int = 84, seed: int = 7
) -> pd.DataFrame:
    """Monthly one-factor returns; column ``k`` is missing before ``starts[k]``."""

    rng = np.random.default_rng(seed)
    market = rng.normal(0.006, 0.04, n_rows)
    columns: dict[str, np.ndarray] = {}
    for k, start in enumerate(starts):
        beta = 0.6 + 0.2 * k
        series = 0.001 * k + beta * market + rng.normal(0.0, 0.02 + 0.005 * k, n_rows)
        series[:start] = np.nan
        columns[chr(ord("A") + k)] = series
    index = pd.date_range("2010-01-01", periods=n_rows, freq="MS")
    return pd.DataFrame(columns, index=index)


@pytest.fixture
def panel_factory() -> Callable[..., pd.DataFrame]:
    return _make_panel


@pytest.fixture
def staggered_panel() -> pd.DataFrame:
    """Seven years of monthly data: A, B complete; C, D, E start 4, 5.5, 6.5 years in."""
    return _make_panel((0, 0, 48, 66, 78))


@pytest.fixture
def robust_panel() -> pd.DataFrame:
    """Staggered panel with a two-asset cohort and long enough short histories."""
    return _make_panel((0, 0, 30, 30, 50), n_rows=120, seed=11)


@pytest.fixture
def complete_panel() -> pd.DataFrame:
    return _make_panel((0, 0, 0), n_rows=60, seed=3)
