"""Shared fixtures for writing small SKAB-style CSV files."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import numpy as np
import pytest

HEADER = (
    "datetime;Accelerometer1RMS;Accelerometer2RMS;Current;Pressure;"
    "Temperature;Thermocouple;Voltage;Volume Flow RateRMS;anomaly;changepoint"
)


def _write_csv(path: Path, rows: Sequence[Sequence[object]], header: str = HEADER) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [header] + [";".join(str(value) for value in row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def _make_rows(count: int, prefix: str = "t", anomaly: int = 0, seed: int = 0) -> list[list[object]]:
    rng = np.random.default_rng(seed)
    rows: list[list[object]] = []
    for idx in range(count):
        channels = rng.normal(loc=1.0, scale=0.1, size=8).round(4).tolist()
        rows.append([f"{prefix}{idx}", *channels, anomaly, 0])
    return rows


@pytest.fixture
def write_csv() -> Callable[..., Path]:
    return _write_csv


@pytest.fixture
def make_rows() -> Callable[..., list[list[object]]]:
    return _make_rows


@pytest.fixture
def skab_layout(tmp_path: Path) -> dict[str, object]:
    """Baseline file plus two run folders, each with one labelled file."""
    baseline = _write_csv(tmp_path / "anomaly-free" / "anomaly-free.csv", _make_rows(40, "b", seed=1))
    valve1 = tmp_path / "valve1"
    valve2 = tmp_path / "valve2"
    _write_csv(valve1 / "0.csv", _make_rows(30, "v1_", anomaly=0, seed=2))
    _write_csv(valve2 / "0.csv", _make_rows(30, "v2_", anomaly=1, seed=3))
    return {
        "baseline": baseline,
        "folders": [valve1, valve2],
        "output_dir": tmp_path / "results",
    }
