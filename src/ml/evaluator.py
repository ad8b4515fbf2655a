import logging
from typing import Dict, Optional
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from sklearn.metrics import precision_recall_fscore_support, roc_auc_score, roc_curve

from config.pca_config import PcaDetectorConfig
from src.ml.pca_model import PcaAnomalyModel
from src.ml.utils import load_model, write_json

logger = logging.getLogger(__name__)


class Evaluator:
    """Scores held-out records against the ground-truth anomaly labels."""

    def __init__(self, config: PcaDetectorConfig):
        self.config = config
        self.output_dir = config.output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def evaluate(
        self, test_df: pd.DataFrame, model: Optional[PcaAnomalyModel] = None
    ) -> Dict[str, Optional[float]]:
        """
        Evaluate the model on labelled test records.

        Args:
            test_df: Records with the label column
            model: Fitted model; loaded from config.model_path when omitted

        Returns:
            Dictionary with precision, recall, f1, auc (None if undefined) and counts
        """
        if model is None:
            logger.info("Loading model...")
            model = load_model(self.config.model_path)

        if len(test_df) == 0:
            raise ValueError("Cannot evaluate on an empty test set")

        y_true = (test_df[self.config.label_column].to_numpy() > 0.5).astype(int)
        scores = model.score_frame(test_df)
        y_pred = (scores > model.threshold).astype(int)

        true_counts = np.bincount(y_true, minlength=2)
        pred_counts = np.bincount(y_pred, minlength=2)
        logger.info(f"Label distribution: {true_counts}, prediction distribution: {pred_counts}")

        precision, recall, f1, _ = precision_recall_fscore_support(
            y_true, y_pred, average="binary", zero_division=0
        )

        roc_auc = None
        if true_counts.min() == 0:
            logger.warning("Only one class in test labels; ROC AUC is undefined")
        else:
            roc_auc = float(roc_auc_score(y_true, scores))
            fpr, tpr, _ = roc_curve(y_true, scores)
            self._plot_roc_curve(fpr, tpr, roc_auc)

        self._plot_score_distribution(scores, y_true, model.threshold)

        report = {
            "precision": float(precision),
            "recall": float(recall),
            "f1": float(f1),
            "auc": roc_auc,
            "threshold": model.threshold,
            "num_records": int(len(y_true)),
            "num_anomalies": int(true_counts[1]),
            "num_flagged": int(pred_counts[1]),
        }

        report_path = self.output_dir / "evaluation_report.json"
        write_json(report, report_path)

        logger.info(f"Evaluation summary: {report}")
        return report

    def _plot_score_distribution(self, scores: np.ndarray, y_true: np.ndarray, threshold: float):
        """Histogram of scores split by ground-truth label."""
        fig, ax = plt.subplots(figsize=(8, 5))
        bins = np.histogram_bin_edges(scores, bins=50)
        ax.hist(scores[y_true == 0], bins=bins, alpha=0.6, label="Normal")
        ax.hist(scores[y_true == 1], bins=bins, alpha=0.6, label="Anomaly")
        ax.axvline(threshold, color="red", linestyle="--", label=f"Threshold = {threshold:.3f}")
        ax.set_xlabel("Anomaly Score")
        ax.set_ylabel("Count")
        ax.set_title("Score Distribution")
        ax.legend()
        ax.grid(True, alpha=0.3)

        dist_path = self.output_dir / "score_distribution.png"
        plt.savefig(dist_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"Score distribution saved to {dist_path}")

    def _plot_roc_curve(self, fpr: np.ndarray, tpr: np.ndarray, roc_auc: float):
        """Plot ROC curve."""
        fig, ax = plt.subplots(figsize=(6, 5))
        ax.plot(fpr, tpr, label=f"AUC = {roc_auc:.3f}")
        ax.plot([0, 1], [0, 1], linestyle="--", color="gray")
        ax.set_xlabel("False Positive Rate")
        ax.set_ylabel("True Positive Rate")
        ax.set_title("ROC Curve")
        ax.legend(loc="lower right")
        ax.grid(True, alpha=0.3)

        roc_path = self.output_dir / "roc_curve.png"
        plt.savefig(roc_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"ROC curve saved to {roc_path}")
