from __future__ import annotations

from datetime import date
import math

import numpy as np
import pandas as pd

from spell_panels.prepare.transform import SPELL_COLUMNS, derive_analysis_columns
from spell_panels.prepare.validate import validate_partition


def _raw(**overrides: object) -> dict[str, object]:
    rec: dict[str, object] = {
        "user_id": 42,
        "rcid": 9001,
        "ethnicity_predicted": "Hispanic",
        "sex_predicted": "F",
        "jobcats": "Engineer",
        "startdate": "2016-04-01",
        "enddate": "2019-01-01",
        "seniority": 3,
        "salary": 85_000.0,
        "total_compensation": 0.0,
        "highest_degree": "MBA",
    }
    rec.update(overrides)
    return rec


def test_derive_analysis_columns() -> None:
    pdf = pd.DataFrame([_raw(), _raw(sex_predicted="M", highest_degree="Diploma")])
    out = derive_analysis_columns(pdf)
    assert list(out.columns) == SPELL_COLUMNS
    assert list(out["female"]) == [1, 0]
    assert list(out["edu_level"]) == [4, 0]
    assert out.loc[0, "log_salary"] == np.log(85_000.0)
    # compensation floored at 1 before the log
    assert out.loc[0, "log_comp"] == 0.0
    assert out.loc[0, "start_date"] == pd.Timestamp("2016-04-01")


def test_validate_partition_builds_spell_records() -> None:
    out = derive_analysis_columns(pd.DataFrame([_raw()]))
    good, bad = validate_partition(out)
    assert bad == 0
    (spell,) = good
    assert spell.subject_id == 42
    assert spell.employer_id == 9001
    assert spell.start_date == date(2016, 4, 1)
    assert spell.end_date == date(2019, 1, 1)
    assert spell.category == "Hispanic"


def test_validate_partition_handles_missing_values() -> None:
    pdf = pd.DataFrame(
        [
            _raw(rcid=None),
            _raw(startdate="not a date"),
            _raw(ethnicity_predicted=None),
            _raw(seniority=None),
        ]
    )
    good, bad = validate_partition(derive_analysis_columns(pdf))
    assert bad == 2
    assert good[0].employer_id is None
    # missing outcomes are left for the aggregator to report
    assert math.isnan(good[1].seniority)
