import math
from dataclasses import asdict, dataclass, fields
from typing import Dict, List, Mapping, Union

import numpy as np
import pandas as pd

# Fixed column order of a SKAB CSV file (the schema contract)
CHANNEL_COLUMNS = [
    "Accelerometer1RMS",
    "Accelerometer2RMS",
    "Current",
    "Pressure",
    "Temperature",
    "Thermocouple",
    "Voltage",
    "Volume Flow RateRMS",
]
LABEL_COLUMNS = ["anomaly", "changepoint"]
RECORD_COLUMNS = ["datetime"] + CHANNEL_COLUMNS + LABEL_COLUMNS
SOURCE_COLUMN = "source_file"


@dataclass(frozen=True)
class SensorRecord:
    """One timestamped multi-channel sensor observation."""

    datetime: str
    accelerometer1_rms: float
    accelerometer2_rms: float
    current: float
    pressure: float
    temperature: float
    thermocouple: float
    voltage: float
    volume_flow_rate_rms: float
    anomaly: float = 0.0
    changepoint: float = 0.0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Union[str, float]]) -> "SensorRecord":
        """Build a record from a mapping keyed by CSV column names."""
        missing = [col for col in RECORD_COLUMNS[:9] if col not in values]
        if missing:
            raise ValueError(f"Sample point is missing columns: {missing}")

        kwargs = {"datetime": str(values["datetime"])}
        for field_, column in zip(fields(cls)[1:], RECORD_COLUMNS[1:]):
            if column in values:
                kwargs[field_.name] = float(values[column])
        return cls(**kwargs)

    def to_mapping(self) -> Dict[str, Union[str, float]]:
        """Inverse of from_mapping."""
        return dict(zip(RECORD_COLUMNS, asdict(self).values()))

    def is_valid(self) -> bool:
        """Non-blank timestamp and all eight channels finite."""
        if not self.datetime.strip():
            return False
        channels = list(asdict(self).values())[1:9]
        return all(math.isfinite(value) for value in channels)

    def to_frame(self) -> pd.DataFrame:
        """One-row frame with the same dtypes as loaded CSV data."""
        df = pd.DataFrame([self.to_mapping()], columns=RECORD_COLUMNS)
        df[CHANNEL_COLUMNS + LABEL_COLUMNS] = df[CHANNEL_COLUMNS + LABEL_COLUMNS].astype(np.float32)
        return df


def empty_records() -> pd.DataFrame:
    """Empty frame carrying the record schema."""
    columns = {"datetime": pd.Series(dtype=object)}
    for col in CHANNEL_COLUMNS + LABEL_COLUMNS:
        columns[col] = pd.Series(dtype=np.float32)
    columns[SOURCE_COLUMN] = pd.Series(dtype=object)
    return pd.DataFrame(columns)


def concat_records(frames: List[pd.DataFrame]) -> pd.DataFrame:
    """Concatenate record frames in order, skipping empty ones."""
    frames = [df for df in frames if len(df) > 0]
    if not frames:
        return empty_records()
    return pd.concat(frames, ignore_index=True)
