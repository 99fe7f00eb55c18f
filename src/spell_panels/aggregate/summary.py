"""Small summaries derived from materialized panels.

These are computed from the already-aggregated tables, never from the spell
stream, so they cost nothing beyond the panels themselves.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

SUMMARY_COLUMNS = ["category", "total_obs", "avg_seniority", "avg_log_salary"]
YEAR_COLUMNS = ["year", "total_obs"]


def category_summary(category_year: pd.DataFrame) -> pd.DataFrame:
    """Return per-category totals from the category × year panel.

    Args:
        category_year: Panel with `category`, `n_obs`, `mean_seniority` and
            `mean_log_salary` columns.

    Returns:
        DataFrame with columns `category`, `total_obs`, `avg_seniority`
        (mean of yearly means, 2 dp) and `avg_log_salary` (3 dp), largest
        categories first.
    """
    if category_year.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    out = (
        category_year.groupby("category", sort=True)
        .agg(
            total_obs=("n_obs", "sum"),
            avg_seniority=("mean_seniority", "mean"),
            avg_log_salary=("mean_log_salary", "mean"),
        )
        .reset_index()
    )
    out["avg_seniority"] = out["avg_seniority"].round(2)
    out["avg_log_salary"] = out["avg_log_salary"].round(3)
    out["total_obs"] = out["total_obs"].astype(np.int64)

    return (
        out.sort_values(["total_obs", "category"], ascending=[False, True], kind="mergesort")
        .reset_index(drop=True)[SUMMARY_COLUMNS]
    )


def diversity_distribution(diversity: pd.DataFrame) -> dict[str, Any]:
    """Describe the spread of the diversity index across employer-years.

    Returns:
        Dict with `n`, `mean`, `median`, `min`, `max` (3 dp); statistics
        are ``None`` when the table is empty.
    """
    n = int(len(diversity))
    if n == 0:
        return {"n": 0, "mean": None, "median": None, "min": None, "max": None}

    col = diversity["diversity_index"].astype(float)
    return {
        "n": n,
        "mean": round(float(col.mean()), 3),
        "median": round(float(col.median()), 3),
        "min": round(float(col.min()), 3),
        "max": round(float(col.max()), 3),
    }


def year_summary(category_year: pd.DataFrame) -> pd.DataFrame:
    """Return total yearly observations across categories, by year.

    Args:
        category_year: Panel with `year` and `n_obs` columns.

    Returns:
        DataFrame with columns `year` and `total_obs`, oldest year first.
    """
    if category_year.empty:
        return pd.DataFrame(columns=YEAR_COLUMNS)

    out = (
        category_year.groupby("year", sort=True)
        .agg(total_obs=("n_obs", "sum"))
        .reset_index()
    )
    out["total_obs"] = out["total_obs"].astype(np.int64)
    return out[YEAR_COLUMNS]
