import joblib
import numpy as np
import pandas as pd
from pathlib import Path
from sklearn.decomposition import PCA
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
import logging
from typing import List, Optional, Union

from src.ml.schema import SensorRecord

logger = logging.getLogger(__name__)


def build_pipeline(rank: int = 1, random_seed: Optional[int] = None) -> Pipeline:
    """
    Build the normalization + PCA pipeline.

    Args:
        rank: Number of principal components kept as the "normal" subspace
        random_seed: Seed for the randomized SVD solver

    Returns:
        Unfitted scikit-learn Pipeline
    """
    pipeline = Pipeline([
        ("scaler", StandardScaler()),
        ("pca", PCA(n_components=rank, svd_solver="randomized", random_state=random_seed)),
    ])
    logger.info(f"Built PCA pipeline with rank {rank}")
    return pipeline


class PcaAnomalyModel:
    """PCA reconstruction-error anomaly scorer over the sensor channels."""

    def __init__(
        self,
        feature_columns: List[str],
        rank: int = 1,
        threshold_quantile: float = 0.95,
        random_seed: Optional[int] = None,
    ):
        self.feature_columns = list(feature_columns)
        self.rank = rank
        self.threshold_quantile = threshold_quantile
        self.pipeline = build_pipeline(rank, random_seed)
        self.threshold: Optional[float] = None

    @classmethod
    def from_config(cls, config) -> "PcaAnomalyModel":
        return cls(
            feature_columns=config.feature_columns,
            rank=config.rank,
            threshold_quantile=config.threshold_quantile,
            random_seed=config.random_seed,
        )

    @property
    def is_fitted(self) -> bool:
        return self.threshold is not None

    def fit(self, train_df: pd.DataFrame) -> "PcaAnomalyModel":
        """
        Fit scaler and PCA on the training records, then set the score threshold
        from the training score distribution.
        """
        if len(train_df) < self.rank + 1:
            raise ValueError(
                f"Need at least {self.rank + 1} training rows for rank {self.rank}, "
                f"got {len(train_df)}"
            )

        X = self._features(train_df)
        self.pipeline.fit(X)

        train_scores = self._reconstruction_error(X)
        self.threshold = float(np.quantile(train_scores, self.threshold_quantile))

        explained = self.pipeline.named_steps["pca"].explained_variance_ratio_.sum()
        logger.info(
            f"Fitted PCA on {len(X)} rows (explained variance {explained:.3f}, "
            f"threshold {self.threshold:.4f})"
        )
        return self

    def score_frame(self, df: pd.DataFrame) -> np.ndarray:
        """Anomaly score per row: norm of the PCA reconstruction residual."""
        self._check_fitted()
        if len(df) == 0:
            return np.empty(0, dtype=np.float64)
        return self._reconstruction_error(self._features(df))

    def score(self, record: SensorRecord) -> float:
        """Anomaly score of a single record."""
        return float(self.score_frame(record.to_frame())[0])

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """1 where the score exceeds the training threshold, else 0."""
        return (self.score_frame(df) > self.threshold).astype(np.int32)

    def save(self, path: Union[str, Path]):
        """Persist the fitted pipeline and its metadata with joblib."""
        self._check_fitted()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(
            {
                "pipeline": self.pipeline,
                "feature_columns": self.feature_columns,
                "rank": self.rank,
                "threshold_quantile": self.threshold_quantile,
                "threshold": self.threshold,
            },
            path,
        )
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "PcaAnomalyModel":
        """Load a model written by save()."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Model file not found: {path}")

        payload = joblib.load(path)
        model = cls(
            feature_columns=payload["feature_columns"],
            rank=payload["rank"],
            threshold_quantile=payload["threshold_quantile"],
        )
        model.pipeline = payload["pipeline"]
        model.threshold = payload["threshold"]
        logger.info(f"Model loaded from {path}")
        return model

    def _features(self, df: pd.DataFrame) -> np.ndarray:
        missing = [col for col in self.feature_columns if col not in df.columns]
        if missing:
            raise ValueError(f"Missing feature columns: {missing}")
        return df[self.feature_columns].to_numpy(dtype=np.float64)

    def _reconstruction_error(self, X: np.ndarray) -> np.ndarray:
        scaled = self.pipeline.named_steps["scaler"].transform(X)
        pca = self.pipeline.named_steps["pca"]
        reconstructed = pca.inverse_transform(pca.transform(scaled))
        return np.linalg.norm(scaled - reconstructed, axis=1)

    def _check_fitted(self):
        if not self.is_fitted:
            raise RuntimeError("Model is not fitted; call fit() or load() first")
