import numpy as np
import pandas as pd
import logging
from typing import Optional, Tuple

from config.pca_config import PcaDetectorConfig
from src.ml.errors import EmptyDatasetError
from src.ml.record_loader import SensorFolderLoader, load_records
from src.ml.schema import concat_records

logger = logging.getLogger(__name__)


def split_records(
    df: pd.DataFrame,
    test_fraction: float = 0.2,
    seed: Optional[int] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Randomly partition records into train and test sets.

    Every record draws independently from a uniform distribution and lands in
    the test set when its draw is below test_fraction, so the test share is
    approximately (not exactly) test_fraction. Row order is preserved inside
    each part.

    Args:
        df: Combined records
        test_fraction: Expected share of records assigned to the test set
        seed: Seed for reproducible splits; None draws fresh randomness

    Returns:
        Tuple of (train_df, test_df)
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(f"test_fraction must be in (0, 1), got {test_fraction}")
    if len(df) == 0:
        raise EmptyDatasetError("Cannot split an empty dataset")

    rng = np.random.default_rng(seed)
    is_test = rng.random(len(df)) < test_fraction

    train_df = df.loc[~is_test].reset_index(drop=True)
    test_df = df.loc[is_test].reset_index(drop=True)
    return train_df, test_df


class DatasetBuilder:
    """Merges the baseline file and every run folder, then splits train/test."""

    def __init__(self, config: PcaDetectorConfig):
        self.config = config

    def load_combined(self) -> pd.DataFrame:
        """Baseline records first, then each folder in configured order."""
        logger.info(f"Loading baseline from {self.config.baseline_path}")
        frames = [load_records(self.config.baseline_path)]
        logger.info(f"Baseline: {len(frames[0])} rows")

        for folder in self.config.folder_paths:
            frames.append(SensorFolderLoader(folder).load_all())

        combined_df = concat_records(frames)
        if len(combined_df) == 0:
            raise EmptyDatasetError(
                f"No valid records in {self.config.baseline_path} or "
                f"{[str(p) for p in self.config.folder_paths]}"
            )

        logger.info(f"Combined dataset: {len(combined_df)} rows from {len(frames)} sources")
        return combined_df

    def build(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Load all sources and split them.

        Returns:
            Tuple of (train_df, test_df)
        """
        df = self.load_combined()
        train_df, test_df = split_records(
            df,
            test_fraction=self.config.test_fraction,
            seed=self.config.random_seed,
        )
        logger.info(f"Split - Train: {len(train_df)}, Test: {len(test_df)}")
        return train_df, test_df
