"""Batched aggregation of spell streams into panel accumulators.

`BatchedAggregationDriver` consumes spells in fixed-size chunks, expands
each spell into yearly observations and folds every observation into the
run's `PanelAccumulators`. Peak memory beyond the accumulator state is one
chunk of spells, and chunk boundaries have no effect on the result.

Partitioned runs give every partition a private driver and merge the
partial accumulators afterwards in a single-threaded reduction. Dask runs
the per-partition work, the same way the cleaned table is prepared.
"""
from __future__ import annotations

import logging
import math
from functools import reduce
from itertools import accumulate, islice
from typing import Any, Iterable, Iterator, Sequence
from typing import cast, Any as TypingAny

import pandas as pd
from dask import delayed, compute  # type: ignore[attr-defined]

from spell_panels.aggregate.panels import PanelAccumulators, PanelMaterializer, PanelTables
from spell_panels.config import Settings
from spell_panels.errors import DataError
from spell_panels.expand import SpellYearExpander
from spell_panels.models import OUTCOME_FIELDS, SpellRecord
from spell_panels.prepare.transform import derive_analysis_columns
from spell_panels.prepare.validate import validate_rows

log = logging.getLogger(__name__)


def _chunks(spells: Iterable[SpellRecord], size: int) -> Iterator[list[SpellRecord]]:
    """Yield lists of at most `size` spells without reading ahead further."""
    it = iter(spells)
    while True:
        chunk = list(islice(it, size))
        if not chunk:
            return
        yield chunk


class BatchedAggregationDriver:
    """Drive one aggregation run over a stream of spells.

    Attributes:
        settings: Run configuration.
        accumulators: Accumulator state owned by this run.
        spells_seen: Spells read from the stream.
        spells_skipped: Spells dropped because of a `DataError`
            (only with `skip_invalid_records`).
        spells_empty: Spells covering zero calendar years.
        observations: Yearly observations folded into the accumulators.
        chunks: Chunks processed so far.
        first_index: Stream position of this driver's first spell; a
            partition's driver starts at the partition's offset in the run.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        label: str = "run",
        first_index: int = 0,
    ) -> None:
        self.settings = settings or Settings()
        self.label = label
        self.first_index = first_index
        self.expander = SpellYearExpander(self.settings.horizon_year)
        self.accumulators = PanelAccumulators(self.settings.decimal_precision)
        self.spells_seen = 0
        self.spells_skipped = 0
        self.spells_empty = 0
        self.observations = 0
        self.chunks = 0

    def consume(self, spells: Iterable[SpellRecord]) -> None:
        """Process an iterable of spells in chunks of `settings.chunk_size`."""
        for chunk in _chunks(spells, self.settings.chunk_size):
            self.process_chunk(chunk)

    def consume_frame(self, pdf: pd.DataFrame, first_row: int = 0) -> int:
        """Derive, validate and fold a slice of the cleaned table.

        The frame is cut into pieces of `settings.chunk_size` rows, so at most
        one piece of `SpellRecord` objects exists at a time. Errors report the
        spell's row position in the table, counting rows that fail validation.

        Args:
            pdf: Rows of the cleaned table.
            first_row: Table position of the frame's first row.

        Returns:
            Number of rows that failed validation.
        """
        size = self.settings.chunk_size
        bad_total = 0
        for start in range(0, len(pdf), size):
            piece = pdf.iloc[start : start + size]
            records, positions, bad = validate_rows(derive_analysis_columns(piece))
            bad_total += bad
            self.process_chunk(records, [first_row + start + p for p in positions])
        return bad_total

    def process_chunk(
        self,
        chunk: Sequence[SpellRecord],
        indices: Sequence[int] | None = None,
    ) -> int:
        """Fold one chunk of spells into the accumulators.

        Args:
            chunk: Spells to fold.
            indices: Input positions of the spells, reported in `DataError`.
                Defaults to consecutive positions after the spells seen so far.

        Returns:
            Number of yearly observations produced by the chunk.
        """
        self.chunks += 1
        if indices is None:
            base = self.first_index + self.spells_seen
            indices = range(base, base + len(chunk))
        produced = 0
        for index, spell in zip(indices, chunk):
            produced += self._fold_spell(index, spell)
            self.spells_seen += 1
        self.observations += produced

        log.info(
            "[%s] chunk %d: %d spells, %d yearly observations",
            self.label,
            self.chunks,
            len(chunk),
            produced,
        )
        return produced

    def _fold_spell(self, index: int, spell: SpellRecord) -> int:
        try:
            for name in OUTCOME_FIELDS:
                value = getattr(spell, name)
                if not math.isfinite(value):
                    raise DataError(f"field '{name}' must be finite, got {value!r}")
        except DataError as e:
            err = e.with_context(spell.subject_id, index)
            if not self.settings.skip_invalid_records:
                raise err from None
            self.spells_skipped += 1
            log.warning("[%s] skipping spell: %s", self.label, err)
            return 0

        produced = 0
        for obs in self.expander.expand(spell):
            self.accumulators.fold(obs)
            produced += 1
        if produced == 0:
            self.spells_empty += 1
        return produced

    def merge(self, other: "BatchedAggregationDriver") -> "BatchedAggregationDriver":
        """Absorb another driver's accumulators and counters; returns self."""
        self.accumulators.merge(other.accumulators)
        self.spells_seen += other.spells_seen
        self.spells_skipped += other.spells_skipped
        self.spells_empty += other.spells_empty
        self.observations += other.observations
        self.chunks += other.chunks
        return self

    def materialize(self) -> PanelTables:
        """Return the panel tables for everything consumed so far."""
        log.info(
            "[%s] materializing: spells=%d skipped=%d empty=%d observations=%d",
            self.label,
            self.spells_seen,
            self.spells_skipped,
            self.spells_empty,
            self.observations,
        )
        return PanelMaterializer(self.settings).materialize(self.accumulators)


def aggregate_spells(
    spells: Iterable[SpellRecord],
    settings: Settings | None = None,
) -> PanelTables:
    """Run a sequential aggregation over `spells` and return the tables."""
    driver = BatchedAggregationDriver(settings)
    driver.consume(spells)
    return driver.materialize()


# --------------------------------------------------
# Partitioned runs
# --------------------------------------------------
def _offsets(lengths: Iterable[int]) -> list[int]:
    """Return the starting position of each partition given their lengths."""
    return [0, *accumulate(lengths)][:-1]


def _aggregate_partition(
    spells: Iterable[SpellRecord],
    settings: Settings,
    label: str,
    first_index: int,
) -> BatchedAggregationDriver:
    """Runs inside a worker (delayed task) with a private driver."""
    driver = BatchedAggregationDriver(settings, label=label, first_index=first_index)
    driver.consume(spells)
    return driver


def _aggregate_frame(
    pdf: pd.DataFrame,
    settings: Settings,
    label: str,
    first_row: int,
) -> BatchedAggregationDriver:
    """Derive, validate and aggregate one pandas partition of the cleaned table."""
    driver = BatchedAggregationDriver(settings, label=label, first_index=first_row)
    driver.consume_frame(pdf, first_row)
    return driver


def _reduce(partials: Sequence[BatchedAggregationDriver], settings: Settings) -> PanelTables:
    """Merge partial drivers in order on the calling thread."""
    total = reduce(
        lambda acc, part: acc.merge(part),
        partials,
        BatchedAggregationDriver(settings, label="merged"),
    )
    return total.materialize()


def aggregate_partitions(
    partitions: Sequence[Sequence[SpellRecord]],
    settings: Settings | None = None,
) -> PanelTables:
    """Aggregate independent spell partitions in parallel and merge them.

    Args:
        partitions: Consecutive, disjoint slices of the spell stream; a
            `DataError` reports positions in the concatenated stream.
        settings: Run configuration.

    Returns:
        The same tables a sequential run over all partitions would produce.
    """
    settings = settings or Settings()
    offsets = _offsets(len(part) for part in partitions)
    tasks = [
        delayed(_aggregate_partition)(part, settings, f"partition {i}", offsets[i])
        for i, part in enumerate(partitions)
    ]
    log.info("Aggregating %d partitions", len(tasks))

    # `compute` is untyped in our environment; cast to Any before calling
    partials = cast(TypingAny, compute)(*tasks, num_workers=settings.workers)
    return _reduce(partials, settings)


def aggregate_ddf(ddf: Any, settings: Settings | None = None) -> PanelTables:
    """Aggregate a Dask DataFrame of the cleaned table partition by partition.

    Uses `to_delayed()` so each partition is derived, validated and folded
    by its own driver, `chunk_size` rows at a time, before the
    single-threaded merge. Partition lengths are counted first so errors
    report row positions in the whole table.
    """
    settings = settings or Settings()
    lengths = [int(n) for n in ddf.map_partitions(len).compute()]
    offsets = _offsets(lengths)
    log.info("Aggregating %d rows in %d dask partitions", sum(lengths), len(lengths))

    delayed_parts = ddf.to_delayed()
    tasks = [
        delayed(_aggregate_frame)(part, settings, f"partition {i}", offsets[i])
        for i, part in enumerate(delayed_parts)
    ]

    partials = cast(TypingAny, compute)(*tasks, num_workers=settings.workers)
    return _reduce(partials, settings)
