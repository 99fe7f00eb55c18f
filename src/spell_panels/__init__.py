"""spell_panels package.

Contains modules for turning cleaned person-job spell records into yearly
panel datasets: deriving analysis variables from the cleaned table,
validating spells, expanding each spell into calendar years, folding the
yearly observations into running-statistics accumulators, and exporting
the materialized panels.

Architecture:
- Cleaned table → SpellRecord stream → yearly observations → panels
- Accumulators keep running sums, so memory grows with keys, not rows
- Dask is used for optional partitioned aggregation
- Pydantic models validate spell records and output rows
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
