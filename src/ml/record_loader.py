import numpy as np
import pandas as pd
from pathlib import Path
import logging
from typing import Union

from src.ml.errors import RecordParseError
from src.ml.schema import (
    CHANNEL_COLUMNS,
    LABEL_COLUMNS,
    RECORD_COLUMNS,
    SOURCE_COLUMN,
    concat_records,
    empty_records,
)

logger = logging.getLogger(__name__)

# datetime + eight channels; the label columns may be absent (anomaly-free file)
MIN_COLUMNS = 1 + len(CHANNEL_COLUMNS)


def load_records(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load one semicolon-separated SKAB CSV file into validated sensor records.

    Columns are mapped by position and the header row sets the row width: shorter
    rows are padded with empty cells, longer rows are cut. Empty label cells read
    as 0. The header row itself is skipped. Rows with a blank
    timestamp or a non-finite channel value are dropped. A cell that is not a
    number at all raises RecordParseError.

    Args:
        path: CSV file to read

    Returns:
        DataFrame with RECORD_COLUMNS plus the source file name
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"CSV file not found: {path}")

    try:
        header = pd.read_csv(path, sep=";", nrows=0, index_col=False)
    except pd.errors.EmptyDataError:
        logger.debug(f"{path.name}: empty file")
        return empty_records()

    # The header row fixes the width; every data row is padded or cut to it
    width = len(header.columns)
    if width < MIN_COLUMNS:
        raise RecordParseError(
            f"{path}: expected at least {MIN_COLUMNS} columns, found {width}"
        )

    try:
        raw = pd.read_csv(
            path,
            sep=";",
            header=None,
            skiprows=1,
            names=list(range(width)),
            usecols=lambda col: col < width,
            index_col=False,
            dtype=str,
            keep_default_na=False,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        raw = None
    except pd.errors.ParserError as e:
        raise RecordParseError(f"Malformed CSV {path}: {e}") from e

    if raw is None or len(raw) == 0:
        logger.debug(f"{path.name}: no data rows")
        return empty_records()

    # Short rows come back as NaN even with dtype=str
    raw = raw.iloc[:, :len(RECORD_COLUMNS)].fillna("")
    raw.columns = RECORD_COLUMNS[:raw.shape[1]]

    df = pd.DataFrame({"datetime": raw["datetime"].astype(str)})
    for col in CHANNEL_COLUMNS:
        df[col] = _parse_numeric_column(raw[col], path)
    # Absent or empty label cells read as 0
    for col in LABEL_COLUMNS:
        if col in raw.columns:
            df[col] = _parse_numeric_column(raw[col], path, empty=0.0)
        else:
            df[col] = np.zeros(len(df), dtype=np.float32)

    valid = _valid_mask(df)
    dropped = int((~valid).sum())
    df = df.loc[valid].reset_index(drop=True)
    df[SOURCE_COLUMN] = path.name

    if dropped:
        logger.debug(f"{path.name}: dropped {dropped} invalid rows")
    logger.debug(f"Loaded {path.name}: {len(df)} rows")
    return df


def _parse_cell(cell: str, empty: float = np.nan) -> float:
    text = cell.strip()
    if not text:
        return empty
    return float(text)


def _parse_numeric_column(column: pd.Series, path: Path, empty: float = np.nan) -> np.ndarray:
    """Parse a string column to float32; NaN/inf survive, garbage raises."""
    values = []
    for idx, cell in column.items():
        try:
            values.append(_parse_cell(cell, empty))
        except ValueError:
            raise RecordParseError(
                f"{path}: data row {idx + 1}, column '{column.name}': "
                f"cannot parse {cell!r} as a number"
            ) from None

    # Values beyond float32 range become inf and are filtered like any other
    with np.errstate(over="ignore"):
        return np.asarray(values, dtype=np.float64).astype(np.float32)


def _valid_mask(df: pd.DataFrame) -> pd.Series:
    """Rows with a non-blank timestamp and eight finite channels."""
    has_timestamp = df["datetime"].str.strip() != ""
    finite = np.isfinite(df[CHANNEL_COLUMNS].to_numpy(dtype=np.float32)).all(axis=1)
    return has_timestamp & finite


class SensorFolderLoader:
    """Loads and concatenates every SKAB CSV file in one folder."""

    def __init__(self, folder: Union[str, Path]):
        """
        Args:
            folder: Directory containing *.csv run files (not searched recursively)
        """
        self.folder = Path(folder)
        if not self.folder.is_dir():
            raise FileNotFoundError(f"Data folder not found: {self.folder}")

    def list_files(self):
        """CSV files in lexicographic order."""
        return sorted(p for p in self.folder.glob("*.csv") if p.is_file())

    def load_all(self) -> pd.DataFrame:
        """
        Load every CSV file in the folder, in sorted file-name order.

        Returns:
            Combined DataFrame; empty (with the record schema) if the folder has no CSV files
        """
        csv_files = self.list_files()
        if not csv_files:
            logger.info(f"No CSV files found in {self.folder}")
            return empty_records()

        logger.info(f"Found {len(csv_files)} CSV files in {self.folder}")
        combined_df = concat_records([load_records(f) for f in csv_files])
        logger.info(f"Loaded {len(combined_df)} rows from {self.folder.name}")
        return combined_df

    def get_file_count(self) -> int:
        """Get number of CSV files."""
        return len(self.list_files())
