"""Panel schemas, the accumulator bundle, and panel materialization.

Four panels are built from every yearly observation:

- ``category_year``: category × year
- ``category_year_gender``: category × year × gender flag
- ``category_year_jobcat``: category × year × job category
- ``employer_year``: employer × year

plus the employer × year diversity table. `PanelAccumulators` holds the
five accumulators of one run and folds each observation into all of them
as one unit; `PanelMaterializer` turns the final state into sorted tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from operator import attrgetter
from typing import Callable, Hashable, Iterator

import pandas as pd

from spell_panels.aggregate.accumulators import FieldSpec, GroupKeyAccumulator, check_finite
from spell_panels.aggregate.diversity import DiversityAccumulator, DiversityIndexCalculator
from spell_panels.aggregate.summary import category_summary, year_summary
from spell_panels.config import Settings
from spell_panels.expand import YearlyObservation

log = logging.getLogger(__name__)

SENIORITY = FieldSpec("seniority", "mean_seniority", "sd_seniority")
LOG_SALARY = FieldSpec("log_salary", "mean_log_salary", "sd_log_salary")
LOG_COMP = FieldSpec("log_comp", "mean_log_comp", "sd_log_comp")
TENURE = FieldSpec("tenure", "mean_tenure", "sd_tenure", digits=2)
FEMALE = FieldSpec("female", "pct_female")
EDUCATION = FieldSpec("edu_level", "mean_edu", digits=2)

FULL_FIELDS = (SENIORITY, LOG_SALARY, LOG_COMP, TENURE, FEMALE, EDUCATION)
GENDER_FIELDS = (SENIORITY, LOG_SALARY, LOG_COMP, TENURE, EDUCATION)


@dataclass(frozen=True)
class PanelSchema:
    """Key definition and tracked fields of one panel.

    Attributes:
        name: Table name, also used as the export file stem.
        key_columns: Output key columns, in sort order.
        key_of: Builds the group key of an observation.
        fields: Tracked numeric fields.
        needs_employer: Observations without an employer are not folded in.
    """
    name: str
    key_columns: tuple[str, ...]
    key_of: Callable[[YearlyObservation], tuple[Hashable, ...]]
    fields: tuple[FieldSpec, ...]
    needs_employer: bool = False

    def accumulator(self, precision: int) -> GroupKeyAccumulator:
        return GroupKeyAccumulator(self.name, self.key_columns, self.fields, precision)


PANEL_SCHEMAS = (
    PanelSchema(
        "category_year",
        ("category", "year"),
        attrgetter("category", "year"),
        FULL_FIELDS,
    ),
    PanelSchema(
        "category_year_gender",
        ("category", "year", "female"),
        attrgetter("category", "year", "female"),
        GENDER_FIELDS,
    ),
    PanelSchema(
        "category_year_jobcat",
        ("category", "year", "job_category"),
        attrgetter("category", "year", "job_category"),
        FULL_FIELDS,
    ),
    PanelSchema(
        "employer_year",
        ("employer_id", "year"),
        attrgetter("employer_id", "year"),
        FULL_FIELDS,
        needs_employer=True,
    ),
)


class PanelAccumulators:
    """The four panel accumulators and the diversity accumulator of one run."""

    def __init__(self, precision: int = 4) -> None:
        self.precision = precision
        self.schemas = PANEL_SCHEMAS
        self.panels = {s.name: s.accumulator(precision) for s in self.schemas}
        self.diversity = DiversityAccumulator()
        self._values = {s.name: attrgetter(*(f.name for f in s.fields)) for s in self.schemas}

    def fold(self, obs: YearlyObservation) -> None:
        """Fold one observation into every accumulator it belongs to.

        Values are checked before anything is written, so a `DataError`
        leaves all five accumulators untouched.
        """
        staged = []
        for schema in self.schemas:
            if schema.needs_employer and obs.employer_id is None:
                continue
            values = self._values[schema.name](obs)
            check_finite(schema.fields, values)
            staged.append((self.panels[schema.name], schema.key_of(obs), values))

        for acc, key, values in staged:
            acc.update(key, values)
        if obs.employer_id is not None:
            self.diversity.update(obs.employer_id, obs.year, obs.category)

    def merge(self, other: "PanelAccumulators") -> None:
        """Merge another run's partial accumulators into this one."""
        for name, acc in self.panels.items():
            acc.merge(other.panels[name])
        self.diversity.merge(other.diversity)


@dataclass
class PanelTables:
    """Terminal output of an aggregation run."""
    category_year: pd.DataFrame
    category_year_gender: pd.DataFrame
    category_year_jobcat: pd.DataFrame
    employer_year: pd.DataFrame
    employer_diversity: pd.DataFrame
    category_summary: pd.DataFrame
    year_summary: pd.DataFrame

    def items(self) -> Iterator[tuple[str, pd.DataFrame]]:
        """Yield ``(table_name, frame)`` pairs in a fixed order."""
        yield "category_year", self.category_year
        yield "category_year_gender", self.category_year_gender
        yield "category_year_jobcat", self.category_year_jobcat
        yield "employer_year", self.employer_year
        yield "employer_diversity", self.employer_diversity
        yield "category_summary", self.category_summary
        yield "year_summary", self.year_summary


def _sorted(df: pd.DataFrame, by: list[str]) -> pd.DataFrame:
    if df.empty:
        return df.reset_index(drop=True)
    return df.sort_values(by, kind="mergesort").reset_index(drop=True)


class PanelMaterializer:
    """Convert final accumulator state into sorted output tables."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.calculator = DiversityIndexCalculator(
            min_cell_size=self.settings.min_diversity_cell_size,
            precision=self.settings.decimal_precision,
        )

    def materialize(self, accumulators: PanelAccumulators) -> PanelTables:
        """Return the four panels, the diversity table and the two summaries."""
        frames: dict[str, pd.DataFrame] = {}
        for schema in accumulators.schemas:
            df = accumulators.panels[schema.name].materialize()
            frames[schema.name] = _sorted(df, list(schema.key_columns))
            log.info("Materialized %s: %d rows", schema.name, len(frames[schema.name]))

        diversity = _sorted(
            accumulators.diversity.materialize(self.calculator),
            ["employer_id", "year"],
        )
        log.info(
            "Materialized employer_diversity: %d of %d employer-years (min cell size %d)",
            len(diversity),
            len(accumulators.diversity),
            self.calculator.min_cell_size,
        )

        return PanelTables(
            category_year=frames["category_year"],
            category_year_gender=frames["category_year_gender"],
            category_year_jobcat=frames["category_year_jobcat"],
            employer_year=frames["employer_year"],
            employer_diversity=diversity,
            category_summary=category_summary(frames["category_year"]),
            year_summary=year_summary(frames["category_year"]),
        )
