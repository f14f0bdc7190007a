from __future__ import annotations

from pathlib import Path

import pandas as pd

from tod_heatmap.bucketize import resolve_timezone

SERIES_COLUMNS = ["timestamp", "value"]


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def _parse_timestamps(raw: pd.Series, timezone: str) -> pd.Series:
    if pd.api.types.is_numeric_dtype(raw):
        return pd.to_datetime(raw, unit="ms", utc=True, errors="coerce")

    try:
        timestamps = pd.to_datetime(raw, errors="coerce", format="mixed")
    except (TypeError, ValueError):
        timestamps = None
    if timestamps is None or not pd.api.types.is_datetime64_any_dtype(timestamps):
        # Mixed UTC offsets only parse as instants.
        return pd.to_datetime(raw, errors="coerce", format="mixed", utc=True)

    if timestamps.dt.tz is None:
        timestamps = timestamps.dt.tz_localize(
            resolve_timezone(timezone),
            nonexistent="shift_forward",
            ambiguous="NaT",
        )
    return timestamps.dt.tz_convert("UTC")


def series_from_frame(
    df: pd.DataFrame,
    time_column: str,
    value_column: str,
    timezone: str = "UTC",
) -> pd.DataFrame:
    """Canonical `timestamp` (UTC) / `value` (float) series from any frame.

    Naive timestamps are read as wall-clock time in `timezone`; numeric time
    columns are epoch milliseconds. Rows keep their input order.
    """
    for column in (time_column, value_column):
        if column not in df.columns:
            raise ValueError(f"Input data missing column: {column}")

    return pd.DataFrame(
        {
            "timestamp": _parse_timestamps(df[time_column], timezone),
            "value": pd.to_numeric(df[value_column], errors="coerce").astype(float),
        },
        columns=SERIES_COLUMNS,
    )


def load_series(
    path: Path,
    time_column: str = "time",
    value_column: str = "value",
    timezone: str = "UTC",
) -> pd.DataFrame:
    return series_from_frame(
        load_table(path),
        time_column=time_column,
        value_column=value_column,
        timezone=timezone,
    )
