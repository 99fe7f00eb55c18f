"""Analysis-variable derivation for the cleaned spell table.

This module maps the columns of the upstream cleaned table onto the
`SpellRecord` field names and derives the gender flag, the education level
and the log outcomes. Aggregation applies it to every chunk or partition
of the table.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)

COLUMN_MAP = {
    "user_id": "subject_id",
    "rcid": "employer_id",
    "ethnicity_predicted": "category",
    "jobcats": "job_category",
    "startdate": "start_date",
    "enddate": "end_date",
}

EDU_LEVELS = {
    "High School": 1,
    "Associate": 2,
    "Bachelor": 3,
    "Master": 4,
    "MBA": 4,
    "Doctor": 5,
}

SPELL_COLUMNS = [
    "subject_id",
    "category",
    "female",
    "job_category",
    "employer_id",
    "start_date",
    "end_date",
    "seniority",
    "log_salary",
    "log_comp",
    "edu_level",
]


def derive_analysis_columns(pdf: pd.DataFrame) -> pd.DataFrame:
    """Return a frame with exactly the `SpellRecord` columns.

    Args:
        pdf: Cleaned spell table with the upstream column names
            (`user_id`, `rcid`, `ethnicity_predicted`, `sex_predicted`,
            `jobcats`, `startdate`, `enddate`, `seniority`, `salary`,
            `total_compensation`, `highest_degree`).

    Returns:
        DataFrame with columns `SPELL_COLUMNS`. Unparseable dates become NaT
        and are rejected later by validation.
    """
    log.debug("Deriving analysis columns for %d rows", len(pdf))
    pdf = pdf.rename(columns=COLUMN_MAP)
    out = pd.DataFrame(index=pdf.index)

    out["subject_id"] = pdf["subject_id"]
    out["category"] = pdf["category"]
    out["job_category"] = pdf["job_category"]
    out["employer_id"] = pdf["employer_id"]

    # -----------------------------
    # Gender flag (1 = female)
    # -----------------------------
    out["female"] = (pdf["sex_predicted"] == "F").astype(np.int64)

    # -----------------------------
    # Education level (0 = unknown)
    # -----------------------------
    out["edu_level"] = (
        pdf["highest_degree"].astype(str).map(EDU_LEVELS).fillna(0).astype(np.int64)
    )

    # -----------------------------
    # Log outcomes, floored at 1
    # -----------------------------
    salary = pd.to_numeric(pdf["salary"], errors="coerce")
    comp = pd.to_numeric(pdf["total_compensation"], errors="coerce")
    out["log_salary"] = np.log(np.maximum(salary, 1.0))
    out["log_comp"] = np.log(np.maximum(comp, 1.0))
    out["seniority"] = pd.to_numeric(pdf["seniority"], errors="coerce").astype(float)

    # -----------------------------
    # Dates
    # -----------------------------
    out["start_date"] = pd.to_datetime(pdf["start_date"], errors="coerce")
    out["end_date"] = pd.to_datetime(pdf["end_date"], errors="coerce")

    return out[SPELL_COLUMNS]

