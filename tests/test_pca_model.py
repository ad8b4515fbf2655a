"""Tests for the PCA anomaly model and its persistence."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from src.ml.pca_model import PcaAnomalyModel, build_pipeline
from src.ml.schema import CHANNEL_COLUMNS, SensorRecord


def _correlated_frame(count: int = 300, seed: int = 0) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    base = rng.normal(size=(count, 1))
    values = base @ np.ones((1, len(CHANNEL_COLUMNS))) + rng.normal(scale=0.01, size=(count, len(CHANNEL_COLUMNS)))
    df = pd.DataFrame(values.astype(np.float32), columns=CHANNEL_COLUMNS)
    df.insert(0, "datetime", [f"t{idx}" for idx in range(count)])
    df["anomaly"] = 0.0
    df["changepoint"] = 0.0
    return df


def _row(values: list[float]) -> pd.DataFrame:
    return pd.DataFrame([values], columns=CHANNEL_COLUMNS)


def test_build_pipeline_has_scaler_and_rank_one_pca() -> None:
    pipeline = build_pipeline(rank=1, random_seed=0)

    assert list(pipeline.named_steps) == ["scaler", "pca"]
    assert pipeline.named_steps["pca"].n_components == 1


def test_off_subspace_point_scores_higher_than_inlier() -> None:
    model = PcaAnomalyModel(CHANNEL_COLUMNS, rank=1, random_seed=0).fit(_correlated_frame())

    inlier = model.score_frame(_row([0.5] * 8))[0]
    outlier = model.score_frame(_row([2.0, -2.0] * 4))[0]

    assert inlier >= 0.0
    assert outlier > 10 * inlier
    assert outlier > model.threshold


def test_score_record_matches_score_frame() -> None:
    model = PcaAnomalyModel(CHANNEL_COLUMNS, random_seed=0).fit(_correlated_frame())
    record = SensorRecord("t", 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8)

    assert model.score(record) == pytest.approx(model.score_frame(record.to_frame())[0])


def test_predict_returns_binary_labels() -> None:
    train_df = _correlated_frame()
    model = PcaAnomalyModel(CHANNEL_COLUMNS, threshold_quantile=0.9, random_seed=0).fit(train_df)

    predictions = model.predict(train_df)

    assert set(np.unique(predictions)) <= {0, 1}
    assert predictions.mean() == pytest.approx(0.1, abs=0.02)


def test_save_and_load_reproduce_scores(tmp_path: Path) -> None:
    train_df = _correlated_frame()
    model = PcaAnomalyModel(CHANNEL_COLUMNS, random_seed=0).fit(train_df)
    model_path = tmp_path / "models" / "model.joblib"

    model.save(model_path)
    loaded = PcaAnomalyModel.load(model_path)

    assert model_path.exists()
    assert loaded.feature_columns == CHANNEL_COLUMNS
    assert loaded.threshold == pytest.approx(model.threshold)
    np.testing.assert_allclose(loaded.score_frame(train_df), model.score_frame(train_df))


def test_unfitted_model_cannot_score_or_save(tmp_path: Path) -> None:
    model = PcaAnomalyModel(CHANNEL_COLUMNS)

    with pytest.raises(RuntimeError, match="not fitted"):
        model.score_frame(_correlated_frame(5))
    with pytest.raises(RuntimeError, match="not fitted"):
        model.save(tmp_path / "model.joblib")


def test_fit_requires_more_rows_than_rank() -> None:
    with pytest.raises(ValueError, match="at least 2 training rows"):
        PcaAnomalyModel(CHANNEL_COLUMNS, rank=1).fit(_correlated_frame(1))


def test_load_missing_model_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Model file not found"):
        PcaAnomalyModel.load(tmp_path / "missing.joblib")


def test_score_frame_reports_missing_features() -> None:
    model = PcaAnomalyModel(CHANNEL_COLUMNS, random_seed=0).fit(_correlated_frame())

    with pytest.raises(ValueError, match="Missing feature columns"):
        model.score_frame(pd.DataFrame({"Current": [1.0]}))
