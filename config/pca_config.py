from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

# Hand-written smoke-test point scored after training
DEFAULT_SAMPLE_POINT: Dict[str, Union[str, float]] = {
    "datetime": "10.03.2020 14:00",
    "Accelerometer1RMS": 0.28,
    "Accelerometer2RMS": 0.30,
    "Current": 1.75,
    "Pressure": 0.45,
    "Temperature": 72.3,
    "Thermocouple": 26.5,
    "Voltage": 230.0,
    "Volume Flow RateRMS": 120.0,
}


@dataclass
class PcaDetectorConfig:
    """Configuration for the PCA anomaly detection pipeline."""

    # Data paths - one anomaly-free CSV plus folders of labelled runs
    baseline_path: Path = Path("data/SKAB/anomaly-free/anomaly-free.csv")
    folder_paths: List[Path] = field(default_factory=lambda: [
        Path("data/SKAB/valve1"),
        Path("data/SKAB/valve2"),
        Path("data/SKAB/other"),
    ])
    output_dir: Path = Path("results/pca")
    model_path: Optional[Path] = None  # defaults to output_dir / "model.joblib"

    # Features
    feature_columns: List[str] = field(default_factory=lambda: [
        "Accelerometer1RMS", "Accelerometer2RMS", "Current", "Pressure",
        "Temperature", "Thermocouple", "Voltage", "Volume Flow RateRMS",
    ])
    label_column: str = "anomaly"

    # Random train/test split
    test_fraction: float = 0.2
    random_seed: Optional[int] = None  # None = fresh randomness per run

    # Model
    rank: int = 1
    threshold_quantile: float = 0.95

    sample_point: Dict[str, Union[str, float]] = field(
        default_factory=lambda: dict(DEFAULT_SAMPLE_POINT)
    )

    @property
    def num_features(self) -> int:
        """Number of input features."""
        return len(self.feature_columns)

    def __post_init__(self):
        """Validate configuration."""
        self.baseline_path = Path(self.baseline_path)
        self.folder_paths = [Path(p) for p in self.folder_paths]
        self.output_dir = Path(self.output_dir)
        if self.model_path is None:
            self.model_path = self.output_dir / "model.joblib"
        self.model_path = Path(self.model_path)

        if not self.baseline_path.exists():
            raise FileNotFoundError(f"Baseline file not found: {self.baseline_path}")

        for folder in self.folder_paths:
            if not folder.is_dir():
                raise FileNotFoundError(f"Data folder not found: {folder}")

        if not 0.0 < self.test_fraction < 1.0:
            raise ValueError(f"test_fraction must be in (0, 1), got {self.test_fraction}")

        if not 1 <= self.rank <= self.num_features:
            raise ValueError(
                f"rank must be between 1 and {self.num_features}, got {self.rank}"
            )

        if not 0.0 < self.threshold_quantile < 1.0:
            raise ValueError(
                f"threshold_quantile must be in (0, 1), got {self.threshold_quantile}"
            )

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.model_path.parent.mkdir(parents=True, exist_ok=True)
