import json
from pathlib import Path

from src.ml.pca_model import PcaAnomalyModel


def load_model(model_path: Path) -> PcaAnomalyModel:
    """Load saved model."""
    return PcaAnomalyModel.load(model_path)


def write_json(data: dict, path: Path):
    """Write a dict as indented JSON."""
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
