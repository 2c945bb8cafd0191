"""Lightweight helpers to load return panels from disk."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

__all__ = ["read_returns"]


def read_returns(path: Path) -> pd.DataFrame:
    """Read a return panel, using the first column as the row index."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Returns file not found: {path}")
    suffix = path.suffix.lower()
    if suffix in {".parquet", ".pq"}:
        frame = pd.read_parquet(path)
    elif suffix in {".csv"}:
        frame = pd.read_csv(path, index_col=0, parse_dates=True)
    elif suffix in {".pkl", ".pickle"}:
        frame = pd.read_pickle(path)
    else:
        raise ValueError(f"Unsupported data format for {path}")
    if isinstance(frame, pd.Series):
        frame = frame.to_frame()
    return frame
