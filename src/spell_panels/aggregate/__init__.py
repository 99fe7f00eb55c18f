"""Panel aggregation.

This package contains the streaming core: running-statistics accumulators,
the employer-year diversity accumulator, the batched driver that folds
yearly observations into them, and the materializer that turns the final
state into sorted panel tables.
"""
