"""
Market-data boundary.

The pipeline never fetches data itself; it asks a BarSource for a completed
bar sequence per symbol. Two sources are provided:

- InMemoryBarSource: bars handed in by the caller (tests, notebooks, an API layer)
- CsvBarSource: one <SYMBOL>.csv per symbol in a directory

Expected CSV format (header required, volume optional):
    timestamp,open,high,low,close,volume
    2024-01-02T14:45:00Z,187.15,187.40,186.90,187.32,120034

Timestamps may be ISO-8601 strings or epoch milliseconds. Rows are returned
in file order; ordering is checked at the pipeline entry, not here.
"""

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Protocol, Sequence, Union

import numpy as np
import pandas as pd

from stockwatch.signals.bars import Bar, bars_from_frame

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["timestamp", "open", "high", "low", "close"]


class BarSource(Protocol):
    """Anything that can hand over the bars for a symbol."""

    def get_bars(self, symbol: str) -> List[Bar]:
        ...


def load_bars_csv(file_path: Union[str, Path], validate: bool = True) -> List[Bar]:
    """
    Load OHLCV bars from a CSV file.

    Args:
        file_path: Path to the CSV file
        validate: Log warnings for suspicious OHLC rows and drop NaN rows

    Returns:
        Bars in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If required columns are missing
    """
    file_path = Path(file_path)
    logger.debug(f"Loading bars from {file_path}")

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path)
    df.columns = [c.strip().lower() for c in df.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{file_path} is missing columns: {missing}")

    if pd.api.types.is_numeric_dtype(df["timestamp"]):
        df["timestamp"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    else:
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)

    if validate:
        df = _validate_ohlc(df, file_path)

    bars = bars_from_frame(df)
    logger.debug(f"Loaded {len(bars):,} bars from {file_path}")
    return bars


def _validate_ohlc(df: pd.DataFrame, file_path: Path) -> pd.DataFrame:
    """
    Drop rows with missing prices and warn about inconsistent OHLC values.
    """
    price_cols = ["open", "high", "low", "close"]

    nan_rows = df[price_cols].isna().any(axis=1)
    if nan_rows.any():
        logger.warning(f"{file_path}: dropped {int(nan_rows.sum())} rows with missing prices")
        df = df[~nan_rows]

    negative = (df[price_cols] < 0).any(axis=1)
    if negative.any():
        logger.warning(f"{file_path}: {int(negative.sum())} rows with negative prices")

    invalid_hl = df["high"] < df["low"]
    if invalid_hl.any():
        logger.warning(f"{file_path}: {int(invalid_hl.sum())} rows where high < low")

    if "volume" in df.columns and (df["volume"] < 0).any():
        logger.warning(f"{file_path}: {int(np.sum(df['volume'] < 0))} negative volume values")

    return df


class InMemoryBarSource:
    """Bars supplied up front, keyed by symbol."""

    def __init__(self, bars_by_symbol: Mapping[str, Sequence[Bar]]):
        self._bars: Dict[str, List[Bar]] = {
            symbol.upper(): list(bars) for symbol, bars in bars_by_symbol.items()
        }

    def get_bars(self, symbol: str) -> List[Bar]:
        """
        Raises:
            KeyError: Unknown symbol
        """
        try:
            return list(self._bars[symbol.upper()])
        except KeyError:
            raise KeyError(f"No bars for symbol {symbol!r}") from None

    def symbols(self) -> List[str]:
        return sorted(self._bars)


class CsvBarSource:
    """One CSV file per symbol: <data_dir>/<SYMBOL>.csv."""

    def __init__(self, data_dir: Union[str, Path], validate: bool = True):
        self.data_dir = Path(data_dir)
        self.validate = validate

    def path_for(self, symbol: str) -> Path:
        return self.data_dir / f"{symbol.upper()}.csv"

    def get_bars(self, symbol: str) -> List[Bar]:
        return load_bars_csv(self.path_for(symbol), validate=self.validate)

    def symbols(self) -> List[str]:
        """Symbols with a CSV file in data_dir."""
        if not self.data_dir.exists():
            return []
        return sorted(p.stem.upper() for p in self.data_dir.glob("*.csv"))
