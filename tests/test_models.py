from __future__ import annotations

from datetime import date
import math

import pytest
from pydantic import ValidationError

from spell_panels.models import DiversityRow, SpellRecord


def _rec(**overrides: object) -> dict[str, object]:
    rec: dict[str, object] = {
        "subject_id": "u-1",
        "category": "White",
        "female": 1,
        "job_category": "Sales",
        "employer_id": None,
        "start_date": date(2019, 1, 1),
        "end_date": date(2018, 1, 1),
        "seniority": 3.0,
        "log_salary": 10.5,
        "log_comp": 10.9,
        "edu_level": 4,
    }
    rec.update(overrides)
    return rec


def test_spell_record_allows_reversed_dates_and_missing_employer() -> None:
    spell = SpellRecord.model_validate(_rec())
    assert spell.employer_id is None
    assert spell.end_date < spell.start_date


def test_spell_record_accepts_non_finite_outcomes() -> None:
    spell = SpellRecord.model_validate(_rec(seniority=float("nan")))
    assert math.isnan(spell.seniority)


def test_spell_record_rejects_bad_flags() -> None:
    with pytest.raises(ValidationError):
        SpellRecord.model_validate(_rec(female=2))
    with pytest.raises(ValidationError):
        SpellRecord.model_validate(_rec(edu_level=6))
    with pytest.raises(ValidationError):
        SpellRecord.model_validate(_rec(extra_column=1))


def test_spell_record_is_frozen() -> None:
    spell = SpellRecord.model_validate(_rec())
    with pytest.raises(ValidationError):
        spell.category = "Asian"  # type: ignore[misc]


def test_diversity_row_bounds() -> None:
    DiversityRow.model_validate(
        {"employer_id": 7, "year": 2020, "diversity_index": 0.5, "n_employees": 20, "n_categories": 2}
    )
    with pytest.raises(ValidationError):
        DiversityRow.model_validate(
            {"employer_id": 7, "year": 2020, "diversity_index": 1.0, "n_employees": 20, "n_categories": 2}
        )
