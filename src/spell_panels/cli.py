"""Command-line interface for building spell panels.

Provides subcommands: `validate` and `aggregate`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace.
"""
from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path
from typing import Any, Iterator
from typing import cast, Any as TypingAny

import pandas as pd
import dask.dataframe as dd

from spell_panels.config import Settings, get_settings
from spell_panels.logging_config import configure_logging
from spell_panels.models import SpellRecord

# PREPARE
from spell_panels.prepare.transform import derive_analysis_columns
from spell_panels.prepare.validate import validate_partition

# AGGREGATE
from spell_panels.aggregate.driver import BatchedAggregationDriver, aggregate_ddf
from spell_panels.aggregate.panels import PanelTables
from spell_panels.aggregate.summary import diversity_distribution
from spell_panels.export import write_tables

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _settings_from_args(args: argparse.Namespace) -> Settings:
    """Return environment settings with any CLI overrides applied."""
    overrides: dict[str, Any] = {}
    for field in ("horizon_year", "chunk_size", "min_diversity_cell_size", "workers"):
        value = getattr(args, field, None)
        if value is not None:
            overrides[field] = value
    if getattr(args, "skip_invalid", False):
        overrides["skip_invalid_records"] = True
    return dataclasses.replace(get_settings(), **overrides)


def _iter_validated_chunks(
    path: Path,
    chunk_size: int,
) -> Iterator[tuple[list[SpellRecord], int]]:
    """Read the cleaned table in chunks and yield (valid_records, bad_count)."""
    for pdf in pd.read_csv(path, chunksize=chunk_size):
        yield validate_partition(derive_analysis_columns(pdf))


def _log_tables(tables: PanelTables) -> None:
    for name, df in tables.items():
        log.info("%s: %d rows", name, len(df))
    if not tables.category_year.empty:
        years = tables.category_year["year"]
        log.info("Years: %d to %d", int(years.min()), int(years.max()))
    stats = diversity_distribution(tables.employer_diversity)
    log.info(
        "Diversity index: n=%d mean=%s median=%s min=%s max=%s",
        stats["n"],
        stats["mean"],
        stats["median"],
        stats["min"],
        stats["max"],
    )


# --------------------------------------------------
# VALIDATE
# --------------------------------------------------
def cmd_validate(args: argparse.Namespace) -> None:
    """Count spell rows in the cleaned table that pass `SpellRecord` validation."""
    settings = _settings_from_args(args)
    good = bad = 0
    for records, rejected in _iter_validated_chunks(args.input, settings.chunk_size):
        good += len(records)
        bad += rejected
    log.info("Validated %s: good=%d bad=%d", args.input, good, bad)


# --------------------------------------------------
# AGGREGATE
# --------------------------------------------------
def _aggregate_streaming(path: Path, settings: Settings) -> PanelTables:
    """Fold the table chunk by chunk; `DataError` positions are CSV data rows."""
    driver = BatchedAggregationDriver(settings)
    bad_total = 0
    rows_read = 0
    for pdf in pd.read_csv(path, chunksize=settings.chunk_size):
        bad_total += driver.consume_frame(pdf, rows_read)
        rows_read += len(pdf)
    if bad_total:
        log.warning("%d rows failed validation and were not aggregated", bad_total)
    return driver.materialize()


def _aggregate_partitioned(path: Path, settings: Settings) -> PanelTables:
    dd_mod = cast(TypingAny, dd)
    # dask blocksize partitions; `workers` only sets scheduler parallelism
    ddf = dd_mod.read_csv(str(path), assume_missing=True)
    log.info("Loaded %s into %d Dask partitions", path, ddf.npartitions)
    return aggregate_ddf(ddf, settings)


def cmd_aggregate(args: argparse.Namespace) -> None:
    """Build all panel tables from the cleaned table and write them as CSV.

    Args:
        args: argparse namespace with `input`, `output_dir` and overrides.
    """
    settings = _settings_from_args(args)
    log.info("Aggregating %s with %s", args.input, settings)

    if settings.workers > 1:
        tables = _aggregate_partitioned(args.input, settings)
    else:
        tables = _aggregate_streaming(args.input, settings)

    _log_tables(tables)
    write_tables(tables, args.output_dir)
    log.info("Panels written to %s", args.output_dir)


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="spell-panels")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_validate = sub.add_parser("validate")
    p_validate.add_argument("--input", type=Path, required=True)
    p_validate.add_argument("--chunk-size", dest="chunk_size", type=int, default=None)

    p_agg = sub.add_parser("aggregate")
    p_agg.add_argument("--input", type=Path, required=True)
    p_agg.add_argument("--output-dir", type=Path, default=Path("output"))
    p_agg.add_argument("--horizon-year", dest="horizon_year", type=int, default=None)
    p_agg.add_argument("--chunk-size", dest="chunk_size", type=int, default=None)
    p_agg.add_argument(
        "--min-cell-size", dest="min_diversity_cell_size", type=int, default=None
    )
    p_agg.add_argument("--workers", type=int, default=None)
    p_agg.add_argument("--skip-invalid", action="store_true")

    return p


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    configure_logging(Path("logs/spell_panels.log"))

    args = build_parser().parse_args(argv)

    if args.cmd == "validate":
        cmd_validate(args)
    elif args.cmd == "aggregate":
        cmd_aggregate(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
