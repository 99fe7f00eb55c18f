from __future__ import annotations

import math

import pytest

from spell_panels.aggregate.accumulators import FieldSpec, GroupKeyAccumulator
from spell_panels.errors import DataError

FIELDS = (
    FieldSpec("x", "mean_x", "sd_x"),
    FieldSpec("t", "mean_t", "sd_t", digits=2),
    FieldSpec("f", "pct_f"),
)


def _acc() -> GroupKeyAccumulator:
    return GroupKeyAccumulator("test", ("category", "year"), FIELDS)


def test_mean_and_sample_sd() -> None:
    acc = _acc()
    for x in (10.0, 20.0, 30.0):
        acc.update(("White", 2020), (x, 1.0, 0.0))
    row = acc.materialize().iloc[0]
    assert row["mean_x"] == 20.0
    assert row["sd_x"] == 10.0
    assert row["n_obs"] == 3


def test_singleton_cell_has_zero_sd() -> None:
    acc = _acc()
    acc.update(("Asian", 2019), (5.0, 2.0, 1.0))
    row = acc.materialize().iloc[0]
    assert row["sd_x"] == 0.0
    assert row["sd_t"] == 0.0
    assert not math.isnan(row["sd_x"])


def test_columns_follow_field_specs() -> None:
    acc = _acc()
    acc.update(("Asian", 2019), (5.0, 2.0, 1.0))
    assert list(acc.materialize().columns) == [
        "category", "year", "mean_x", "sd_x", "mean_t", "sd_t", "pct_f", "n_obs",
    ]


def test_rounding_per_field() -> None:
    acc = _acc()
    for x, t in ((1.0, 1.0), (2.0, 2.0), (2.0, 2.0)):
        acc.update(("Black", 2018), (x, t, 1.0))
    row = acc.materialize().iloc[0]
    assert row["mean_x"] == 1.6667
    assert row["mean_t"] == 1.67
    assert row["pct_f"] == 1.0


def test_constant_values_never_yield_nan_sd() -> None:
    acc = _acc()
    for _ in range(5):
        acc.update(("White", 2021), (0.1, 0.1, 0.1))
    row = acc.materialize().iloc[0]
    assert row["sd_x"] == 0.0


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_value_rejected_without_side_effects(bad: float) -> None:
    acc = _acc()
    acc.update(("White", 2020), (1.0, 1.0, 1.0))
    with pytest.raises(DataError, match="'x' must be finite"):
        acc.update(("White", 2020), (bad, 1.0, 1.0))
    with pytest.raises(DataError):
        acc.update(("Asian", 2020), (1.0, 1.0, bad))
    assert acc.count(("White", 2020)) == 1
    assert len(acc) == 1


def test_merge_equals_single_accumulator() -> None:
    values = [(("White", 2020), (float(i), float(i % 3), float(i % 2))) for i in range(10)]
    values += [(("Asian", 2021), (float(i) * 1.5, 1.0, 0.0)) for i in range(4)]

    whole = _acc()
    for key, v in values:
        whole.update(key, v)

    left, right = _acc(), _acc()
    for i, (key, v) in enumerate(values):
        (left if i % 3 else right).update(key, v)
    left.merge(right)

    a = whole.materialize().sort_values(["category", "year"]).reset_index(drop=True)
    b = left.materialize().sort_values(["category", "year"]).reset_index(drop=True)
    assert a.equals(b)


def test_merge_rejects_other_schema() -> None:
    other = GroupKeyAccumulator("other", ("employer_id", "year"), FIELDS)
    with pytest.raises(ValueError):
        _acc().merge(other)


def test_empty_accumulator_materializes_header_only() -> None:
    df = _acc().materialize()
    assert df.empty
    assert "n_obs" in df.columns
