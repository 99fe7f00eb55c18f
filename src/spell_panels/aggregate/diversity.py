"""Employer-year category counts and the Blau diversity index.

`DiversityAccumulator` counts yearly observations per category inside each
(employer, year) cell. Small cells are kept during accumulation and only
dropped by `DiversityIndexCalculator` at materialization, so the threshold
can change between runs without re-aggregating.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Hashable, Mapping

import pandas as pd

DIVERSITY_COLUMNS = ["employer_id", "year", "diversity_index", "n_employees", "n_categories"]


def blau_index(counts: Mapping[Hashable, int]) -> float:
    """Return the Gini–Simpson diversity ``1 - sum(p_i ** 2)`` of `counts`.

    Args:
        counts: Category → observation count. Must have a positive total.

    Returns:
        0.0 when one category holds everything, approaching ``1 - 1/k`` for
        an even split over k categories.
    """
    total = sum(counts.values())
    if total <= 0:
        raise ValueError("blau_index requires a positive total count")
    return 1.0 - sum((c / total) ** 2 for c in counts.values())


@dataclass(frozen=True)
class DiversityScore:
    """Diversity of one employer-year cell."""
    diversity_index: float
    n_employees: int
    n_categories: int


@dataclass(frozen=True)
class DiversityIndexCalculator:
    """Score category-count maps, suppressing cells below `min_cell_size`.

    Attributes:
        min_cell_size: Minimum total count for a cell to be scored.
        precision: Decimal places of the reported index.
    """
    min_cell_size: int = 10
    precision: int = 4

    def evaluate(self, counts: Mapping[Hashable, int]) -> DiversityScore | None:
        """Return the cell's `DiversityScore`, or ``None`` if it is suppressed."""
        total = sum(counts.values())
        if total < self.min_cell_size:
            return None
        return DiversityScore(
            diversity_index=round(blau_index(counts), self.precision),
            n_employees=total,
            n_categories=len(counts),
        )


class DiversityAccumulator:
    """Map (employer, year) keys to per-category observation counts."""

    def __init__(self) -> None:
        self._cells: dict[tuple[Hashable, int], Counter] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def update(self, employer_id: Hashable, year: int, category: Hashable) -> None:
        """Count one observation of `category` at `employer_id` in `year`."""
        key = (employer_id, year)
        cell = self._cells.get(key)
        if cell is None:
            cell = self._cells[key] = Counter()
        cell[category] += 1

    def counts(self, employer_id: Hashable, year: int) -> dict[Hashable, int]:
        """Return a copy of the category counts for one cell (empty if absent)."""
        return dict(self._cells.get((employer_id, year), {}))

    def merge(self, other: "DiversityAccumulator") -> None:
        """Add the counts of `other` into this accumulator."""
        for key, theirs in other._cells.items():
            mine = self._cells.get(key)
            if mine is None:
                mine = self._cells[key] = Counter()
            mine.update(theirs)

    def materialize(self, calculator: DiversityIndexCalculator) -> pd.DataFrame:
        """Return one row per employer-year cell that survives suppression."""
        rows = []
        for (employer_id, year), counts in self._cells.items():
            score = calculator.evaluate(counts)
            if score is None:
                continue
            rows.append(
                {
                    "employer_id": employer_id,
                    "year": year,
                    "diversity_index": score.diversity_index,
                    "n_employees": score.n_employees,
                    "n_categories": score.n_categories,
                }
            )
        return pd.DataFrame(rows, columns=DIVERSITY_COLUMNS)
