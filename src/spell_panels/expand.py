"""Expansion of spells into calendar-year observations.

`SpellYearExpander` turns one `SpellRecord` into the years it covers. A
spell ending on January 1st does not count as employment in that year, and
years past the configured horizon are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from spell_panels.models import SpellRecord


@dataclass(frozen=True)
class YearlyObservation:
    """One (spell, calendar year) pair with the spell's attributes copied in.

    Attributes:
        year: Calendar year covered by the spell.
        tenure: Years since the spell's start year (0 in the first year).
    """
    year: int
    tenure: int
    category: str
    female: int
    job_category: str
    employer_id: int | None
    seniority: float
    log_salary: float
    log_comp: float
    edu_level: int


class SpellYearExpander:
    """Expand spells into yearly observations up to `horizon_year`."""

    def __init__(self, horizon_year: int = 2024) -> None:
        self.horizon_year = horizon_year

    def year_span(self, spell: SpellRecord) -> range:
        """Return the calendar years covered by `spell` (possibly empty).

        Args:
            spell: Spell to inspect.

        Returns:
            A `range` of years; iterating it again restarts from the start year.
        """
        start_year = spell.start_date.year
        end_year = min(spell.end_date.year, self.horizon_year)

        # job ending Jan 1 does not count that year
        end = spell.end_date
        if end.month == 1 and end.day == 1:
            end_year -= 1

        if end_year < start_year:
            return range(0)
        return range(start_year, end_year + 1)

    def expand(self, spell: SpellRecord) -> Iterator[YearlyObservation]:
        """Yield one `YearlyObservation` per year covered by `spell`."""
        start_year = spell.start_date.year
        for year in self.year_span(spell):
            yield YearlyObservation(
                year=year,
                tenure=year - start_year,
                category=spell.category,
                female=spell.female,
                job_category=spell.job_category,
                employer_id=spell.employer_id,
                seniority=spell.seniority,
                log_salary=spell.log_salary,
                log_comp=spell.log_comp,
                edu_level=spell.edu_level,
            )
