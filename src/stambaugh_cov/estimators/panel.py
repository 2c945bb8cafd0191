"""Panel adapter for asset-return histories with staggered start dates.

Every estimator in the package works on :class:`PanelData`: a plain float
matrix (rows = time, columns = assets, ``NaN`` = missing) together with the
row index and the asset labels of the caller's input.  The conversion from
``pandas``/``numpy`` inputs happens once, in :func:`to_panel`, so that the
numerical core never deals with implicit coercions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, Sequence, Union

import numpy as np
import pandas as pd

from stambaugh_cov.errors import InputShapeError

PanelLike = Union[pd.DataFrame, pd.Series, np.ndarray, Sequence[Sequence[float]]]

__all__ = [
    "Cohort",
    "PanelData",
    "Permutation",
    "build_cohorts",
    "to_panel",
]


@dataclass(frozen=True)
class Permutation:
    """Explicit column permutation.

    ``indices[k]`` is the original position of the column placed at position
    ``k`` after sorting, so ``apply`` goes from the caller's order to the sorted
    order and ``inverse().apply`` goes back.
    """

    indices: tuple[int, ...]

    def __post_init__(self) -> None:
        if sorted(self.indices) != list(range(len(self.indices))):
            raise ValueError("indices must be a permutation of 0..n-1.")

    @classmethod
    def identity(cls, size: int) -> "Permutation":
        return cls(tuple(range(size)))

    @classmethod
    def sorting(cls, keys: Iterable[float]) -> "Permutation":
        """Stable ascending sort of ``keys`` (ties keep their original order)."""

        order = np.argsort(np.asarray(list(keys)), kind="stable")
        return cls(tuple(int(i) for i in order))

    def __len__(self) -> int:
        return len(self.indices)

    def inverse(self) -> "Permutation":
        return Permutation(tuple(int(i) for i in np.argsort(self.indices)))

    def apply(self, values: np.ndarray) -> np.ndarray:
        """Permute a vector, or rows and columns of a square matrix."""

        array = np.asarray(values)
        idx = np.asarray(self.indices, dtype=int)
        if array.ndim == 1:
            return array[idx]
        if array.ndim == 2 and array.shape[0] == array.shape[1]:
            return array[np.ix_(idx, idx)]
        raise ValueError("Permutation applies to vectors or square matrices only.")

    def apply_columns(self, matrix: np.ndarray) -> np.ndarray:
        return np.asarray(matrix)[:, np.asarray(self.indices, dtype=int)]

    def apply_labels(self, labels: Sequence[Hashable]) -> tuple[Hashable, ...]:
        return tuple(labels[i] for i in self.indices)


@dataclass(frozen=True)
class Cohort:
    """Assets sharing the same first valid row."""

    start: int
    positions: tuple[int, ...]
    assets: tuple[Hashable, ...]

    @property
    def size(self) -> int:
        return len(self.positions)


@dataclass(frozen=True)
class PanelData:
    """Immutable matrix view of a return panel."""

    values: np.ndarray
    index: pd.Index
    columns: tuple[Hashable, ...]

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=float, copy=True)
        if values.ndim != 2:
            raise InputShapeError("panel values must be two-dimensional.")
        if values.shape[1] != len(self.columns):
            raise InputShapeError("column labels do not match the panel width.")
        if values.shape[0] != len(self.index):
            raise InputShapeError("row index does not match the panel height.")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    @property
    def n_rows(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_assets(self) -> int:
        return int(self.values.shape[1])

    @property
    def is_empty(self) -> bool:
        return self.n_rows == 0

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, index=self.index, columns=list(self.columns))

    def take_rows(self, mask: np.ndarray) -> "PanelData":
        mask = np.asarray(mask)
        return PanelData(self.values[mask], self.index[mask], self.columns)

    def take_columns(self, positions: Sequence[int]) -> "PanelData":
        positions = list(positions)
        return PanelData(
            self.values[:, positions],
            self.index,
            tuple(self.columns[i] for i in positions),
        )

    def drop_empty_rows(self) -> "PanelData":
        """Remove rows that are missing in every column."""

        if self.n_assets == 0:
            return self
        return self.take_rows(~np.isnan(self.values).all(axis=1))

    def complete_rows(self) -> "PanelData":
        """Keep only rows without any missing value."""

        return self.take_rows(~np.isnan(self.values).any(axis=1))

    def start_index(self) -> np.ndarray:
        """First row position at which each column stops being missing."""

        observed = ~np.isnan(self.values)
        empty = ~observed.any(axis=0)
        if empty.any():
            names = [str(self.columns[i]) for i in np.flatnonzero(empty)]
            raise InputShapeError(f"columns without observations: {', '.join(names)}.")
        return observed.argmax(axis=0).astype(int)


def to_panel(data: PanelLike) -> PanelData:
    """Convert supported inputs into :class:`PanelData`.

    ``DataFrame`` labels are kept; plain arrays get positional column labels.
    Non-numeric cells are coerced to ``NaN``.
    """

    if isinstance(data, PanelData):
        return data
    if isinstance(data, pd.DataFrame):
        df = data.copy()
    elif isinstance(data, pd.Series):
        df = data.to_frame()
    else:
        try:
            array = np.asarray(data, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InputShapeError("returns must be a rectangular numeric array.") from exc
        if array.ndim != 2:
            raise InputShapeError("returns must be a 2D array-like structure.")
        df = pd.DataFrame(array)

    if df.shape[1] < 1:
        raise InputShapeError("returns must contain at least one column.")
    if df.columns.has_duplicates:
        raise InputShapeError("asset labels must be unique.")

    df = df.apply(pd.to_numeric, errors="coerce")
    return PanelData(df.to_numpy(dtype=float), df.index, tuple(df.columns))


def build_cohorts(start: np.ndarray, columns: Sequence[Hashable]) -> tuple[Permutation, list[Cohort]]:
    """Group columns by start row, longest history first.

    Returns the sorting permutation together with the cohorts in processing
    order; within a cohort columns keep the caller's order.
    """

    start = np.asarray(start, dtype=int)
    permutation = Permutation.sorting(start)
    cohorts: list[Cohort] = []
    for position in permutation.indices:
        row = int(start[position])
        if cohorts and cohorts[-1].start == row:
            last = cohorts[-1]
            cohorts[-1] = Cohort(
                row, last.positions + (position,), last.assets + (columns[position],)
            )
        else:
            cohorts.append(Cohort(row, (position,), (columns[position],)))
    return permutation, cohorts
