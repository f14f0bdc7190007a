from __future__ import annotations

from datetime import datetime
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError

from tod_heatmap.colors.palettes import palette_catalog
from tod_heatmap.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from tod_heatmap.logging import configure_logging
from tod_heatmap.pipeline import HeatmapResult, load_heatmap, render_heatmap

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    try:
        return load_config(config_path)
    except (ValidationError, yaml.YAMLError) as exc:
        raise typer.BadParameter(f"Invalid config {config_path}: {exc}") from exc


def _parse_bound(value: str | None, option: str) -> datetime | None:
    if value is None or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise typer.BadParameter(f"{option} must be an ISO-8601 datetime: {value}") from exc


def _apply_overrides(cfg: AppConfig, timezone: str | None, buckets: int | None) -> None:
    if timezone is not None:
        cfg.grid.timezone = timezone
    if buckets is not None:
        cfg.grid.bucket_count = buckets


def _build(
    csv: Path,
    cfg: AppConfig,
    start: str | None,
    end: str | None,
) -> HeatmapResult:
    try:
        return load_heatmap(
            csv_path=csv,
            config=cfg,
            start=_parse_bound(start, "--start"),
            end=_parse_bound(end, "--end"),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def render(
    csv: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out/heatmap.png"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    start: str | None = typer.Option(None, help="Range start (ISO-8601); defaults to first sample."),
    end: str | None = typer.Option(None, help="Range end (ISO-8601); defaults to last sample."),
    timezone: str | None = typer.Option(None, help="Override grid.timezone."),
    buckets: int | None = typer.Option(None, help="Override grid.bucket_count."),
) -> None:
    """Bucketize a CSV time series and render a time-of-day heatmap PNG."""
    configure_logging()
    cfg = _load_app_config(config)
    _apply_overrides(cfg, timezone=timezone, buckets=buckets)
    result = _build(csv, cfg, start, end)
    output_path = render_heatmap(result, cfg, out)
    if output_path is None:
        typer.echo("Nothing to render: the range contains no days.")
        return
    typer.echo(f"Heatmap written to: {output_path} ({len(result.grid)} cells)")


@app.command()
def grid(
    csv: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out/grid.csv"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    start: str | None = typer.Option(None, help="Range start (ISO-8601); defaults to first sample."),
    end: str | None = typer.Option(None, help="Range end (ISO-8601); defaults to last sample."),
    timezone: str | None = typer.Option(None, help="Override grid.timezone."),
    buckets: int | None = typer.Option(None, help="Override grid.bucket_count."),
) -> None:
    """Write the bucket grid, with each cell's color, as a CSV table."""
    configure_logging()
    cfg = _load_app_config(config)
    _apply_overrides(cfg, timezone=timezone, buckets=buckets)
    result = _build(csv, cfg, start, end)
    out.parent.mkdir(parents=True, exist_ok=True)
    result.to_frame().to_csv(out, index=False)
    typer.echo(f"Grid written to: {out} ({len(result.grid)} cells)")


@app.command()
def palettes() -> None:
    """List the predefined color palettes."""
    for group, names in palette_catalog().items():
        typer.echo(f"{group}: {', '.join(names)}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
