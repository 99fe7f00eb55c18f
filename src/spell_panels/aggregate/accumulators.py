"""Running-statistics accumulators keyed by group tuples.

A `GroupKeyAccumulator` keeps, per group key, the observation count and the
running sum and sum of squares of each tracked field. Means and sample
standard deviations are derived only when the accumulator is materialized,
so memory grows with the number of distinct keys and never with the number
of observations.

Accumulators with the same schema can be merged by key-wise summation. The
merge is associative and commutative, which is what makes partitioned
aggregation produce the same tables as a sequential run.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Hashable, Iterable, Sequence

import numpy as np
import pandas as pd

from spell_panels.errors import DataError


@dataclass(frozen=True)
class FieldSpec:
    """A tracked numeric field and the output columns derived from it.

    Attributes:
        name: Attribute name on the yearly observation.
        mean_column: Output column holding the mean.
        sd_column: Output column holding the sample standard deviation, or
            ``None`` when only the mean is reported.
        digits: Rounding for this field; ``None`` uses the accumulator's
            default precision.
    """
    name: str
    mean_column: str
    sd_column: str | None = None
    digits: int | None = None


class _Cell:
    """Count, sums and sums of squares for one group key."""

    __slots__ = ("count", "sums", "sumsq")

    def __init__(self, width: int) -> None:
        self.count = 0
        self.sums = [0.0] * width
        self.sumsq = [0.0] * width

    def add(self, values: Sequence[float]) -> None:
        self.count += 1
        sums, sumsq = self.sums, self.sumsq
        for i, v in enumerate(values):
            sums[i] += v
            sumsq[i] += v * v

    def absorb(self, other: "_Cell") -> None:
        self.count += other.count
        for i in range(len(self.sums)):
            self.sums[i] += other.sums[i]
            self.sumsq[i] += other.sumsq[i]


def check_finite(fields: Sequence[FieldSpec], values: Sequence[float]) -> None:
    """Raise `DataError` unless every value is a finite number.

    Args:
        fields: Field specs aligned with `values` (used for the message).
        values: Candidate values.
    """
    if len(values) != len(fields):
        raise DataError(f"expected {len(fields)} field values, got {len(values)}")
    for field, v in zip(fields, values):
        if not math.isfinite(v):
            raise DataError(f"field '{field.name}' must be finite, got {v!r}")


class GroupKeyAccumulator:
    """Map group-key tuples to running statistics over a fixed field list."""

    def __init__(
        self,
        name: str,
        key_columns: Sequence[str],
        fields: Sequence[FieldSpec],
        precision: int = 4,
    ) -> None:
        self.name = name
        self.key_columns = tuple(key_columns)
        self.fields = tuple(fields)
        self.field_names = tuple(f.name for f in self.fields)
        self.precision = precision
        self._cells: dict[tuple[Hashable, ...], _Cell] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def keys(self) -> Iterable[tuple[Hashable, ...]]:
        return self._cells.keys()

    def count(self, key: tuple[Hashable, ...]) -> int:
        """Return the number of observations folded into `key` (0 if absent)."""
        cell = self._cells.get(key)
        return cell.count if cell is not None else 0

    def update(self, key: tuple[Hashable, ...], values: Sequence[float]) -> None:
        """Fold one observation into the cell for `key`.

        Args:
            key: Group key tuple, aligned with `key_columns`.
            values: One value per tracked field, aligned with `fields`.

        Raises:
            DataError: if a value is NaN or infinite. State is unchanged.
        """
        check_finite(self.fields, values)
        cell = self._cells.get(key)
        if cell is None:
            cell = self._cells[key] = _Cell(len(self.fields))
        cell.add(values)

    def merge(self, other: "GroupKeyAccumulator") -> None:
        """Add the cells of `other` into this accumulator, key by key.

        Raises:
            ValueError: if the two accumulators do not share a schema.
        """
        if (other.key_columns, other.field_names) != (self.key_columns, self.field_names):
            raise ValueError(
                f"cannot merge accumulator '{other.name}' into '{self.name}': schema differs"
            )
        for key, theirs in other._cells.items():
            mine = self._cells.get(key)
            if mine is None:
                mine = self._cells[key] = _Cell(len(self.fields))
            mine.absorb(theirs)

    def columns(self) -> list[str]:
        """Return the output column order of `materialize`."""
        cols = list(self.key_columns)
        for f in self.fields:
            cols.append(f.mean_column)
            if f.sd_column is not None:
                cols.append(f.sd_column)
        cols.append("n_obs")
        return cols

    def materialize(self) -> pd.DataFrame:
        """Return one row per key with means, sample deviations and `n_obs`.

        The standard deviation of a singleton cell is 0.0. Rows come out in
        insertion order; callers sort them.
        """
        if not self._cells:
            return pd.DataFrame(columns=self.columns())

        keys = list(self._cells.keys())
        cells = [self._cells[k] for k in keys]
        n = np.array([c.count for c in cells], dtype=float)
        sums = np.array([c.sums for c in cells], dtype=float)
        sumsq = np.array([c.sumsq for c in cells], dtype=float)

        means = sums / n[:, None]
        dof = (n - 1.0)[:, None]
        var = np.divide(
            sumsq - n[:, None] * means**2,
            dof,
            out=np.zeros_like(means),
            where=dof > 0,
        )
        sds = np.sqrt(np.maximum(var, 0.0))

        data: dict[str, object] = {}
        for i, col in enumerate(self.key_columns):
            data[col] = [k[i] for k in keys]
        for j, f in enumerate(self.fields):
            digits = self.precision if f.digits is None else f.digits
            data[f.mean_column] = np.round(means[:, j], digits)
            if f.sd_column is not None:
                data[f.sd_column] = np.round(sds[:, j], digits)
        data["n_obs"] = n.astype(np.int64)

        return pd.DataFrame(data, columns=self.columns())
