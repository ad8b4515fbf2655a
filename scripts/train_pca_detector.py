"""
Train a PCA anomaly detector on SKAB sensor data and print anomaly scores.
Usage: python scripts/train_pca_detector.py --baseline data/SKAB/anomaly-free/anomaly-free.csv \
    --folder data/SKAB/valve1 --folder data/SKAB/valve2 --folder data/SKAB/other
"""
import argparse
import json
import logging
import os
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.pca_config import DEFAULT_SAMPLE_POINT, PcaDetectorConfig
from src.ml.dataset_builder import DatasetBuilder
from src.ml.evaluator import Evaluator
from src.ml.reporter import report_sample, report_scores, wait_for_exit
from src.ml.trainer import Trainer

logger = logging.getLogger(__name__)


def _env_folders():
    value = os.environ.get("SKAB_FOLDERS")
    if not value:
        return None
    return [p for p in value.split(os.pathsep) if p]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PCA anomaly detection on SKAB sensor data"
    )
    parser.add_argument(
        "--baseline", type=str,
        default=os.environ.get("SKAB_BASELINE_PATH", "data/SKAB/anomaly-free/anomaly-free.csv"),
        help="Anomaly-free CSV file (env: SKAB_BASELINE_PATH)"
    )
    parser.add_argument(
        "--folder", dest="folders", action="append", default=None,
        help="Folder of run CSV files; repeat for several (env: SKAB_FOLDERS, os.pathsep-separated)"
    )
    parser.add_argument(
        "--output-dir", type=str,
        default=os.environ.get("SKAB_OUTPUT_DIR", "results/pca"),
        help="Output directory for artifacts (env: SKAB_OUTPUT_DIR)"
    )
    parser.add_argument(
        "--model-path", type=str,
        default=os.environ.get("SKAB_MODEL_PATH"),
        help="Trained model file (env: SKAB_MODEL_PATH, default: <output-dir>/model.joblib)"
    )
    parser.add_argument(
        "--sample", type=str, default=None,
        help="JSON file with the sample point to score (default: built-in sample)"
    )
    parser.add_argument(
        "--test-fraction", type=float, default=0.2,
        help="Expected share of records held out for testing"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for the train/test split (default: fresh randomness)"
    )
    parser.add_argument(
        "--rank", type=int, default=1,
        help="Number of principal components"
    )
    parser.add_argument(
        "--threshold-quantile", type=float, default=0.95,
        help="Training-score quantile used as the anomaly threshold"
    )
    parser.add_argument(
        "--evaluate", action="store_true",
        help="Also evaluate scores against the anomaly labels"
    )
    parser.add_argument(
        "--eval-only", action="store_true",
        help="Run evaluation only with an existing model (skip training)"
    )
    parser.add_argument(
        "--no-wait", action="store_true",
        help="Exit without waiting for Enter"
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Enable debug logging"
    )
    return parser


def load_sample_point(path):
    if path is None:
        return dict(DEFAULT_SAMPLE_POINT)
    with open(path, "r") as f:
        return json.load(f)


def main(argv=None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    folders = args.folders or _env_folders() or [
        "data/SKAB/valve1", "data/SKAB/valve2", "data/SKAB/other"
    ]

    config = PcaDetectorConfig(
        baseline_path=Path(args.baseline),
        folder_paths=[Path(f) for f in folders],
        output_dir=Path(args.output_dir),
        model_path=Path(args.model_path) if args.model_path else None,
        test_fraction=args.test_fraction,
        random_seed=args.seed,
        rank=args.rank,
        threshold_quantile=args.threshold_quantile,
        sample_point=load_sample_point(args.sample),
    )

    if args.eval_only:
        if config.random_seed is None:
            logger.warning("No --seed given; the test split differs from the training run")
        logger.info("Running evaluation only...")
        _, test_df = DatasetBuilder(config).build()
        Evaluator(config).evaluate(test_df)
        return

    logger.info("Running training...")
    result = Trainer(config).train()

    report_scores(result.test_scores)
    report_sample(result.sample_score)

    if args.evaluate:
        logger.info("Running evaluation...")
        Evaluator(config).evaluate(result.test_df)

    if not args.no_wait:
        wait_for_exit()


if __name__ == "__main__":
    main()
