from __future__ import annotations

from datetime import date
from pathlib import Path

import pandas as pd

from spell_panels.aggregate.driver import aggregate_spells
from spell_panels.export import write_tables


def test_write_tables_creates_one_csv_per_table(tmp_path: Path, make_spell) -> None:
    spells = [make_spell(subject_id=i, employer_id=3) for i in range(10)]
    spells.append(make_spell(subject_id=99, start_date=date(2020, 1, 1), end_date=date(2019, 1, 1)))
    paths = write_tables(aggregate_spells(spells), tmp_path / "out")

    names = sorted(p.stem for p in paths)
    assert names == sorted(
        [
            "category_year",
            "category_year_gender",
            "category_year_jobcat",
            "employer_year",
            "employer_diversity",
            "category_summary",
            "year_summary",
        ]
    )
    cy = pd.read_csv(tmp_path / "out" / "category_year.csv")
    assert list(cy["n_obs"]) == [10]
    div = pd.read_csv(tmp_path / "out" / "employer_diversity.csv")
    assert list(div["n_employees"]) == [10]
    years = pd.read_csv(tmp_path / "out" / "year_summary.csv")
    assert list(years["total_obs"]) == [10]
