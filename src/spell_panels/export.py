"""Utilities for writing materialized panel tables to disk.

Panel tables are small (one row per group key), so each one is written as a
single CSV file named after the table.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from spell_panels.aggregate.panels import PanelTables

log = logging.getLogger(__name__)


def write_table(df: pd.DataFrame, output_dir: Path, table_name: str) -> Path:
    """Write one table to `<output_dir>/<table_name>.csv`.

    Args:
        df: Table to write.
        output_dir: Target directory; created when missing.
        table_name: File stem.

    Returns:
        Path of the written file. Empty tables are still written (header only).
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{table_name}.csv"

    if df.empty:
        log.warning("No rows to write for %s", table_name)

    df.to_csv(path, index=False)
    log.info("Saved %s (%d rows)", path.name, len(df))
    return path


def write_tables(tables: PanelTables, output_dir: Path) -> list[Path]:
    """Write every table of a run and return the written paths."""
    return [write_table(df, output_dir, name) for name, df in tables.items()]
