from __future__ import annotations

from pathlib import Path

import pandas as pd
from typer.testing import CliRunner

from tod_heatmap.cli import app


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    csv_path = tmp_path / "series.csv"
    csv_path.write_text(
        "time,value\n"
        "2026-01-05 00:30,1\n"
        "2026-01-05 00:45,3\n"
        "2026-01-05 18:00,8\n"
        "2026-01-06 09:15,4\n",
        encoding="utf-8",
    )
    config_path = tmp_path / "config.yaml"
    config_path.write_text("grid:\n  bucket_count: 4\n", encoding="utf-8")
    return csv_path, config_path


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "render" in result.stdout
    assert "grid" in result.stdout
    assert "palettes" in result.stdout


def test_palettes_command_lists_catalog() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["palettes"])

    assert result.exit_code == 0
    assert "Blues" in result.stdout
    assert "diverging: Spectral, RdYlGn" in result.stdout


def test_grid_command_writes_csv(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("TOD_HEATMAP_TIMEZONE", raising=False)
    csv_path, config_path = _write_inputs(tmp_path)
    out_path = tmp_path / "out" / "grid.csv"

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["grid", "--csv", str(csv_path), "--config", str(config_path), "--out", str(out_path)],
    )

    assert result.exit_code == 0, result.stdout
    grid = pd.read_csv(out_path)
    assert grid["bucket_index"].tolist() == [0, 3, 1]
    assert grid["value"].tolist() == [2.0, 8.0, 4.0]
    assert "3 cells" in result.stdout


def test_grid_command_applies_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("TOD_HEATMAP_TIMEZONE", raising=False)
    csv_path, config_path = _write_inputs(tmp_path)
    out_path = tmp_path / "grid.csv"

    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "grid",
            "--csv",
            str(csv_path),
            "--config",
            str(config_path),
            "--out",
            str(out_path),
            "--buckets",
            "1",
            "--start",
            "2026-01-06T00:00:00+00:00",
        ],
    )

    assert result.exit_code == 0, result.stdout
    grid = pd.read_csv(out_path)
    assert grid["bucket_index"].tolist() == [0]
    assert grid["value"].tolist() == [4.0]


def test_render_command_writes_png(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("TOD_HEATMAP_TIMEZONE", raising=False)
    csv_path, config_path = _write_inputs(tmp_path)
    out_path = tmp_path / "heatmap.png"

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["render", "--csv", str(csv_path), "--config", str(config_path), "--out", str(out_path)],
    )

    assert result.exit_code == 0, result.stdout
    assert out_path.exists()


def test_render_command_rejects_bad_range(tmp_path: Path) -> None:
    csv_path, config_path = _write_inputs(tmp_path)

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["render", "--csv", str(csv_path), "--config", str(config_path), "--start", "yesterday"],
    )

    assert result.exit_code != 0


def test_render_command_rejects_invalid_config(tmp_path: Path) -> None:
    csv_path, config_path = _write_inputs(tmp_path)
    config_path.write_text("palette:\n  kind: rainbow\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["render", "--csv", str(csv_path), "--config", str(config_path)],
    )

    assert result.exit_code != 0
