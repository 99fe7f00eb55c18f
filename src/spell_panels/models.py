"""Pydantic models for spell input records and panel output rows.

`SpellRecord` is the schema every spell must satisfy before it reaches the
aggregation core. The output models describe rows of the emitted tables and
are used to check them in tests and downstream consumers.
"""

from __future__ import annotations

from datetime import date
from pydantic import BaseModel, Field, ConfigDict

OUTCOME_FIELDS = ("seniority", "log_salary", "log_comp")


class SpellRecord(BaseModel):
    """Schema for one cleaned person-job spell.

    Attributes:
        subject_id: Identifier of the person holding the job.
        category: Mutually exclusive group label (e.g. predicted ethnicity).
        female: Gender flag, 1 for female and 0 otherwise.
        job_category: Job category label.
        employer_id: Employer identifier; ``None`` when unknown.
        start_date: First day of the spell.
        end_date: Last day of the spell. May precede `start_date`.
        seniority: Seniority score.
        log_salary: Log of salary (floored at 1 before the log).
        log_comp: Log of total compensation (floored at 1 before the log).
        edu_level: Ordinal education level, 0 (unknown) to 5 (doctorate).
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    subject_id: int | str
    category: str
    female: int = Field(..., ge=0, le=1)
    job_category: str
    employer_id: int | None = None
    start_date: date
    end_date: date
    seniority: float
    log_salary: float
    log_comp: float
    edu_level: int = Field(..., ge=0, le=5)


class DiversityRow(BaseModel):
    """Row of the employer × year diversity table."""
    model_config = ConfigDict(extra="forbid")
    employer_id: int
    year: int
    diversity_index: float = Field(..., ge=0.0, lt=1.0)
    n_employees: int = Field(..., ge=1)
    n_categories: int = Field(..., ge=1)


class CategorySummaryRow(BaseModel):
    """Row of the per-category summary derived from the category × year panel."""
    model_config = ConfigDict(extra="forbid")
    category: str
    total_obs: int = Field(..., ge=0)
    avg_seniority: float
    avg_log_salary: float
