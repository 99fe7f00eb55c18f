from __future__ import annotations

from datetime import date
from typing import Any, Callable

import pytest

from spell_panels.models import SpellRecord


def _spell(**overrides: Any) -> SpellRecord:
    rec: dict[str, Any] = {
        "subject_id": 1,
        "category": "Asian",
        "female": 0,
        "job_category": "Engineer",
        "employer_id": 100,
        "start_date": date(2015, 3, 1),
        "end_date": date(2015, 9, 30),
        "seniority": 2.0,
        "log_salary": 11.0,
        "log_comp": 11.5,
        "edu_level": 3,
    }
    rec.update(overrides)
    return SpellRecord.model_validate(rec)


@pytest.fixture
def make_spell() -> Callable[..., SpellRecord]:
    return _spell


@pytest.fixture
def mixed_spells() -> list[SpellRecord]:
    """A small stream touching every panel, including edge-case spells."""
    spells = []
    categories = ["White", "Asian", "Hispanic", "Black", "Multiple"]
    for i in range(60):
        spells.append(
            _spell(
                subject_id=i,
                category=categories[i % 5],
                female=i % 2,
                job_category=["Engineer", "Sales", "Admin"][i % 3],
                employer_id=None if i % 11 == 0 else 100 + i % 4,
                start_date=date(2014 + i % 4, 1 + i % 12, 1 + i % 28),
                end_date=date(2016 + i % 5, 1, 1) if i % 7 == 0 else date(2017 + i % 4, 6, 15),
                seniority=float(1 + i % 7),
                log_salary=10.0 + (i % 9) * 0.25,
                log_comp=10.5 + (i % 5) * 0.5,
                edu_level=i % 6,
            )
        )
    # end before start, and a spell entirely past the horizon
    spells.append(_spell(subject_id=998, start_date=date(2019, 5, 1), end_date=date(2018, 2, 1)))
    spells.append(_spell(subject_id=999, start_date=date(2026, 1, 5), end_date=date(2027, 3, 1)))
    return spells
