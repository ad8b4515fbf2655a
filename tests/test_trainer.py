"""End-to-end tests for training, evaluation and the CLI."""

from __future__ import annotations

import json
import math
from pathlib import Path

import numpy as np
import pytest

from config.pca_config import DEFAULT_SAMPLE_POINT, PcaDetectorConfig
from scripts.train_pca_detector import main
from src.ml.evaluator import Evaluator
from src.ml.pca_model import PcaAnomalyModel
from src.ml.trainer import Trainer


def _config(layout: dict[str, object], **overrides: object) -> PcaDetectorConfig:
    params = {
        "baseline_path": layout["baseline"],
        "folder_paths": layout["folders"],
        "output_dir": layout["output_dir"],
        "random_seed": 0,
    }
    params.update(overrides)
    return PcaDetectorConfig(**params)


def test_trainer_saves_reloads_and_scores(skab_layout: dict[str, object]) -> None:
    config = _config(skab_layout)

    result = Trainer(config).train()

    assert result.model_path == config.output_dir / "model.joblib"
    assert result.model_path.exists()
    assert len(result.test_scores) == len(result.test_df)
    assert math.isfinite(result.sample_score)
    assert result.metrics["train_rows"] + result.metrics["test_rows"] == 100

    metrics = json.loads((config.output_dir / "metrics.json").read_text(encoding="utf-8"))
    assert metrics["sample_score"] == pytest.approx(result.sample_score)
    config_used = json.loads((config.output_dir / "config_used.json").read_text(encoding="utf-8"))
    assert config_used["rank"] == 1
    assert config_used["test_fraction"] == 0.2

    reloaded = PcaAnomalyModel.load(result.model_path)
    np.testing.assert_allclose(reloaded.score_frame(result.test_df), result.test_scores)


def test_trainer_rejects_invalid_sample_point(skab_layout: dict[str, object]) -> None:
    sample = dict(DEFAULT_SAMPLE_POINT, Current=float("nan"))
    config = _config(skab_layout, sample_point=sample)

    with pytest.raises(ValueError, match="not a valid record"):
        Trainer(config).train()
    assert DEFAULT_SAMPLE_POINT["Current"] == 1.75


def test_evaluator_writes_report_and_plots(skab_layout: dict[str, object]) -> None:
    config = _config(skab_layout)
    result = Trainer(config).train()

    report = Evaluator(config).evaluate(result.test_df)

    assert set(report) >= {"precision", "recall", "f1", "auc", "threshold", "num_records"}
    assert report["num_records"] == len(result.test_df)
    assert (config.output_dir / "evaluation_report.json").exists()
    assert (config.output_dir / "score_distribution.png").exists()


def test_evaluator_skips_auc_for_single_class(skab_layout: dict[str, object]) -> None:
    config = _config(skab_layout)
    result = Trainer(config).train()
    normal_only = result.test_df.assign(anomaly=0.0)

    report = Evaluator(config).evaluate(normal_only)

    assert report["auc"] is None
    assert report["num_anomalies"] == 0


def test_cli_prints_one_line_per_score(
    skab_layout: dict[str, object], capsys: pytest.CaptureFixture[str]
) -> None:
    folders = [str(folder) for folder in skab_layout["folders"]]
    argv = [
        "--baseline", str(skab_layout["baseline"]),
        "--folder", folders[0],
        "--folder", folders[1],
        "--output-dir", str(skab_layout["output_dir"]),
        "--seed", "3",
        "--no-wait",
    ]

    main(argv)

    lines = capsys.readouterr().out.strip().splitlines()
    score_lines = [line for line in lines if line.startswith("Anomaly Score: ")]
    sample_lines = [line for line in lines if line.startswith("Sample Anomaly Score: ")]
    assert len(sample_lines) == 1
    assert len(score_lines) == len(lines) - 1
    metrics = json.loads((Path(skab_layout["output_dir"]) / "metrics.json").read_text(encoding="utf-8"))
    assert len(score_lines) == metrics["test_rows"]


def test_training_with_same_seed_is_reproducible(skab_layout: dict[str, object], tmp_path: Path) -> None:
    first = Trainer(_config(skab_layout, random_seed=11)).train()
    second = Trainer(
        _config(skab_layout, random_seed=11, output_dir=tmp_path / "second")
    ).train()

    assert first.test_df["datetime"].tolist() == second.test_df["datetime"].tolist()
    np.testing.assert_allclose(first.test_scores, second.test_scores)
    assert first.sample_score == pytest.approx(second.sample_score)
