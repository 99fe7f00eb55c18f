"""Validation of prepared rows into `SpellRecord` objects.

Rows are converted from pandas types (Timestamps, NaN/NaT, numpy scalars)
into native Python values and validated with the Pydantic `SpellRecord`
model. Rows that fail validation are counted, not raised: dropping invalid
rows belongs to the cleaning stage, and this is the last line of defence.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import pandas as pd
from pydantic import ValidationError

from spell_panels.models import SpellRecord

log = logging.getLogger(__name__)


def _native(value: Any) -> Any:
    """Return `value` as a plain Python object; missing values become None."""
    if value is None:
        return None
    if isinstance(value, (str, bytes)):
        return value
    if pd.isna(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if hasattr(value, "item"):
        return value.item()
    return value


def _employer(value: Any) -> Any:
    value = _native(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def validate_rows(pdf: pd.DataFrame) -> tuple[list[SpellRecord], list[int], int]:
    """Validate prepared rows and keep the position of every valid one.

    Args:
        pdf: DataFrame with the `SpellRecord` columns (see
            `derive_analysis_columns`).

    Returns:
        A tuple of (valid_records, their_row_positions_in_pdf, bad_count).
    """
    good: list[SpellRecord] = []
    positions: list[int] = []
    bad = 0

    for pos, rec in enumerate(pdf.to_dict(orient="records")):
        row = {k: _native(v) for k, v in rec.items()}
        # NaN outcomes must reach the aggregator, which reports them as DataError
        for k in ("seniority", "log_salary", "log_comp"):
            if row.get(k) is None and k in rec:
                row[k] = float(rec[k]) if rec[k] is not None else None
        row["employer_id"] = _employer(rec.get("employer_id"))

        try:
            good.append(SpellRecord.model_validate(row))
            positions.append(pos)
        except ValidationError as e:
            bad += 1
            log.debug("Rejected spell row subject_id=%r: %s", row.get("subject_id"), e)

    if bad:
        log.warning("Rejected %d of %d spell rows during validation", bad, len(pdf))
    return good, positions, bad


def validate_partition(pdf: pd.DataFrame) -> tuple[list[SpellRecord], int]:
    """Validate a pandas partition of prepared rows using Pydantic.

    Returns:
        A tuple of (list_of_valid_records, bad_count).
    """
    good, _, bad = validate_rows(pdf)
    return good, bad
