from __future__ import annotations

import os
from datetime import time
from pathlib import Path
from typing import Annotated, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

from tod_heatmap.aggregation import AggregationName
from tod_heatmap.bucketize import daily_interval_from_hours
from tod_heatmap.colors.spaces import ColorSpace
from tod_heatmap.models import BucketConfig, TimeRange

DEFAULT_NULL_COLOR = "rgb(155, 155, 155)"
DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
TIMEZONE_ENV_VAR = "TOD_HEATMAP_TIMEZONE"


class InputConfig(BaseModel):
    time_column: str = "time"
    value_column: str = "value"


class GridConfig(BaseModel):
    timezone: str = "UTC"
    daily_interval_hours: tuple[float, float] = (0.0, 24.0)
    bucket_count: int = 24
    aggregation: AggregationName = "mean"

    def to_bucket_config(self, time_range: TimeRange) -> BucketConfig:
        return BucketConfig(
            timezone=self.timezone,
            daily_interval_minutes=daily_interval_from_hours(*self.daily_interval_hours),
            bucket_count=self.bucket_count,
            aggregation=self.aggregation,
            time_range=time_range,
        )


class _PaletteBase(BaseModel):
    null_color: str = DEFAULT_NULL_COLOR
    domain: tuple[float, float] | None = None


class SequentialPalette(_PaletteBase):
    kind: Literal["predefined-sequential"] = "predefined-sequential"
    name: str = "Spectral"
    invert: bool = False


class DivergingPalette(_PaletteBase):
    kind: Literal["predefined-diverging"] = "predefined-diverging"
    name: str = "Spectral"
    invert: bool = False
    midpoint: float | None = None


class ThresholdStop(BaseModel):
    position: float
    color: str


class CustomPalette(_PaletteBase):
    kind: Literal["custom"] = "custom"
    color_space: ColorSpace = "rgb"
    threshold_mode: Literal["absolute", "percentage"] = "percentage"
    thresholds: list[ThresholdStop] = Field(default_factory=list)


class ExternalPalette(_PaletteBase):
    kind: Literal["external"] = "external"


PaletteConfig = Annotated[
    Union[SequentialPalette, DivergingPalette, CustomPalette, ExternalPalette],
    Field(discriminator="kind"),
]


class TimeRegionConfig(BaseModel):
    start: time
    end: time
    color: str = "rgba(120, 120, 120, 0.25)"


class RenderConfig(BaseModel):
    show_legend: bool = True
    legend_quality: Literal["high", "medium", "low"] = "high"
    cell_border: bool = False
    figure_width: float = Field(default=12.0, gt=0.0)
    figure_height: float = Field(default=5.0, gt=0.0)
    regions: list[TimeRegionConfig] = Field(default_factory=list)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input: InputConfig = Field(default_factory=InputConfig)
    grid: GridConfig = Field(default_factory=GridConfig)
    palette: PaletteConfig = Field(default_factory=SequentialPalette)
    render: RenderConfig = Field(default_factory=RenderConfig)


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    config.grid.timezone = os.getenv(TIMEZONE_ENV_VAR) or config.grid.timezone
    return config

