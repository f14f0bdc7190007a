from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

from tod_heatmap.config import AppConfig
from tod_heatmap.pipeline import build_heatmap, load_heatmap, render_heatmap, series_time_range

UTC = timezone.utc


def _series() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "timestamp": pd.to_datetime(
                [
                    "2026-01-05T01:00:00Z",
                    "2026-01-05T02:00:00Z",
                    "2026-01-05T13:00:00Z",
                    "2026-01-06T07:00:00Z",
                ]
            ),
            "value": [1.0, 3.0, 10.0, 4.0],
        }
    )


def _config() -> AppConfig:
    return AppConfig.model_validate({"grid": {"bucket_count": 4}})


def test_series_time_range_fills_open_ends() -> None:
    time_range = series_time_range(_series())

    assert time_range is not None
    assert time_range.start == datetime(2026, 1, 5, 1, tzinfo=UTC)
    assert time_range.end == datetime(2026, 1, 6, 7, tzinfo=UTC)

    explicit = series_time_range(_series(), start=datetime(2026, 1, 7, tzinfo=UTC))
    assert explicit is not None
    assert explicit.start < explicit.end


def test_series_time_range_accepts_naive_bound() -> None:
    time_range = series_time_range(_series(), start=datetime(2026, 1, 5, 12))

    assert time_range is not None
    assert time_range.start == datetime(2026, 1, 5, 12, tzinfo=UTC)
    assert time_range.end == datetime(2026, 1, 6, 7, tzinfo=UTC)


def test_series_time_range_without_timestamps() -> None:
    empty = pd.DataFrame({"timestamp": pd.to_datetime([], utc=True), "value": []})

    assert series_time_range(empty) is None


def test_build_heatmap_resolves_domain_from_cells() -> None:
    series = _series()
    result = build_heatmap(series, _config(), series_time_range(series))

    assert len(result.grid) == 3
    assert result.grid.values() == [2.0, 10.0, 4.0]
    assert result.palette.domain == (2.0, 10.0)

    frame = result.to_frame()
    assert list(frame.columns) == ["day_start", "bucket_start", "bucket_index", "value", "color"]
    assert frame["color"].str.match(r"^#[0-9a-f]{6}$").all()


def test_load_heatmap_rejects_series_without_timestamps(tmp_path: Path) -> None:
    csv_path = tmp_path / "series.csv"
    csv_path.write_text("time,value\nnot a time,1\n", encoding="utf-8")

    with pytest.raises(ValueError, match="No valid timestamps"):
        load_heatmap(csv_path, _config())


def test_load_and_render_heatmap(tmp_path: Path) -> None:
    csv_path = tmp_path / "series.csv"
    csv_path.write_text(
        "time,value\n2026-01-05 01:00,1\n2026-01-05 13:00,5\n2026-01-06 07:00,3\n",
        encoding="utf-8",
    )
    config = AppConfig.model_validate(
        {"grid": {"bucket_count": 4}, "render": {"regions": [{"start": "12:00", "end": "13:00"}]}}
    )

    result = load_heatmap(csv_path, config)
    output_path = render_heatmap(result, config, tmp_path / "heatmap.png")

    assert len(result.grid.days) == 2
    assert output_path == tmp_path / "heatmap.png"
    assert output_path.exists()
