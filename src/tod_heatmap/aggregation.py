from __future__ import annotations

import logging
import math
from typing import Any, Literal, Sequence

import numpy as np
import pandas as pd

LOGGER = logging.getLogger(__name__)

AggregationName = Literal["mean", "sum", "count", "min", "max", "first", "last"]

AGGREGATIONS: tuple[str, ...] = ("mean", "sum", "count", "min", "max", "first", "last")
DEFAULT_AGGREGATION = "mean"


def resolve_aggregation(name: str | None) -> str:
    normalized = str(name or "").strip().lower()
    if normalized in AGGREGATIONS:
        return normalized
    LOGGER.warning("Unknown aggregation %r; using %s", name, DEFAULT_AGGREGATION)
    return DEFAULT_AGGREGATION


def is_present(value: Any) -> bool:
    if value is None:
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def aggregate(
    kind: str,
    values: Sequence[float | None],
    timestamps: Sequence[Any] | None = None,
) -> float | None:
    """Reduce one bucket's samples to a single value.

    Missing samples (None, NaN, non-numeric, infinite) are skipped entirely.
    With `timestamps`, first/last pick the earliest/latest sample; equal
    timestamps keep input order. Without them, input order is the time order.
    An empty bucket is absent (None) for every aggregation, including count.
    """
    kind = resolve_aggregation(kind)
    order = range(len(values))
    if timestamps is not None:
        order = sorted(order, key=lambda idx: timestamps[idx])
    present = [float(values[idx]) for idx in order if is_present(values[idx])]
    if not present:
        return None

    if kind == "count":
        return float(len(present))
    if kind == "sum":
        return float(math.fsum(present))
    if kind == "mean":
        return float(math.fsum(present) / len(present))
    if kind == "min":
        return min(present)
    if kind == "max":
        return max(present)
    if kind == "first":
        return present[0]
    return present[-1]


def aggregate_groups(
    frame: pd.DataFrame,
    keys: list[str],
    kind: str,
    value_column: str = "value",
    time_column: str = "timestamp",
) -> pd.Series:
    """Vectorized `aggregate` over every group of `frame`.

    Groups whose samples are all missing do not appear in the result.
    """
    kind = resolve_aggregation(kind)
    values = pd.to_numeric(frame[value_column], errors="coerce")
    working = frame.assign(**{value_column: values})
    working = working[np.isfinite(working[value_column].to_numpy(dtype=float))]
    if working.empty:
        return pd.Series(dtype=float, name=value_column)
    if time_column in working.columns:
        working = working.sort_values(time_column, kind="stable")
    # Missing values are already dropped and rows stably sorted by time, so
    # pandas' positional first/last and count agree with `aggregate`.
    reduced = working.groupby(keys, sort=True)[value_column].agg(kind)
    return reduced.astype(float)
