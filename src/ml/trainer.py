import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import numpy as np
import pandas as pd

from config.pca_config import PcaDetectorConfig
from src.ml.dataset_builder import DatasetBuilder
from src.ml.pca_model import PcaAnomalyModel
from src.ml.schema import SensorRecord
from src.ml.utils import load_model, write_json

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Scores and artifacts produced by one training run."""

    model_path: Path
    test_df: pd.DataFrame
    test_scores: np.ndarray
    sample_score: float
    metrics: dict = field(default_factory=dict)


class Trainer:
    """Handles model training, persistence and scoring."""

    def __init__(self, config: PcaDetectorConfig):
        self.config = config
        self.model: Optional[PcaAnomalyModel] = None

    def train(self) -> TrainingResult:
        """
        Main training pipeline: build split, fit, save, reload, score.

        Returns:
            TrainingResult with scores from the reloaded model
        """
        logger.info("=" * 60)
        logger.info("PCA Anomaly Detection Training")
        logger.info("=" * 60)

        sample = SensorRecord.from_mapping(self.config.sample_point)
        if not sample.is_valid():
            raise ValueError(f"Sample point is not a valid record: {self.config.sample_point}")

        # Load and split data
        logger.info("Loading data...")
        train_df, test_df = DatasetBuilder(self.config).build()

        # Fit and persist
        logger.info(f"Training rank-{self.config.rank} PCA model...")
        self.model = PcaAnomalyModel.from_config(self.config).fit(train_df)
        self.model.save(self.config.model_path)

        # Score with the model read back from disk
        loaded_model = load_model(self.config.model_path)
        logger.info("Scoring test set...")
        test_scores = loaded_model.score_frame(test_df)
        sample_score = loaded_model.score(sample)

        metrics = {
            "train_rows": len(train_df),
            "test_rows": len(test_df),
            "rank": self.config.rank,
            "threshold": loaded_model.threshold,
            "threshold_quantile": self.config.threshold_quantile,
            "test_score_mean": float(test_scores.mean()) if len(test_scores) else None,
            "test_score_max": float(test_scores.max()) if len(test_scores) else None,
            "test_flagged_ratio": (
                float((test_scores > loaded_model.threshold).mean()) if len(test_scores) else None
            ),
            "sample_score": sample_score,
        }

        logger.info("Saving artifacts...")
        self._save_artifacts(metrics)

        logger.info("=" * 60)
        logger.info("Training completed successfully!")
        logger.info("=" * 60)

        return TrainingResult(
            model_path=self.config.model_path,
            test_df=test_df,
            test_scores=test_scores,
            sample_score=sample_score,
            metrics=metrics,
        )

    def _save_artifacts(self, metrics: dict):
        """Save config and metrics next to the model."""
        config_path = self.config.output_dir / "config_used.json"
        config_dict = {
            "baseline_path": str(self.config.baseline_path),
            "folder_paths": [str(p) for p in self.config.folder_paths],
            "model_path": str(self.config.model_path),
            "feature_columns": self.config.feature_columns,
            "label_column": self.config.label_column,
            "test_fraction": self.config.test_fraction,
            "random_seed": self.config.random_seed,
            "rank": self.config.rank,
            "threshold_quantile": self.config.threshold_quantile,
            "sample_point": self.config.sample_point,
        }
        write_json(config_dict, config_path)
        logger.info(f"Config saved to {config_path}")

        metrics_path = self.config.output_dir / "metrics.json"
        write_json(metrics, metrics_path)
        logger.info(f"Metrics saved to {metrics_path}")
