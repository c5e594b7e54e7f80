"""
OHLCV Bars and the Bar Aggregator

A Bar is one OHLCV observation identified by the UTC close time of its
window. Vendor data usually arrives as 1-minute bars; the aggregator folds
them into coarser windows (15 minutes by default) keyed by window close.

Aggregation rules:
- bucket key = floor(timestamp, period) + period (the window close)
- open = first bar's open, close = last bar's close
- high/low = max/min across the bucket, volume = sum
- empty buckets are NOT filled in; gaps survive as missing bars and are
  handled downstream by the labeler

Bars whose timestamps already sit on the target grid are treated as
already aggregated at that period and pass through unchanged, so running
the aggregator twice is a no-op.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Sequence

import pandas as pd

from stockwatch.lib.constants import DEFAULT_PERIOD_MINUTES
from stockwatch.lib.time_utils import (
    TimestampLike,
    is_on_boundary,
    is_rth_close_utc,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]


class BarOrderingError(ValueError):
    """Raised when a bar sequence is not strictly increasing in window_close."""
    pass


@dataclass(frozen=True)
class Bar:
    """One OHLCV observation for a symbol over a time window."""
    window_close: datetime  # UTC close of the window; the bar's identity
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @classmethod
    def create(
        cls,
        window_close: TimestampLike,
        open: float,
        high: float,
        low: float,
        close: float,
        volume: float = 0.0,
    ) -> "Bar":
        """Build a bar from vendor-style values, normalizing the timestamp to UTC."""
        return cls(
            window_close=parse_timestamp(window_close),
            open=float(open),
            high=float(high),
            low=float(low),
            close=float(close),
            volume=float(volume or 0.0),
        )

    def to_dict(self) -> dict:
        return {
            "window_close": self.window_close.isoformat(),
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


def validate_bar_sequence(bars: Sequence[Bar]) -> None:
    """
    Check that window_close strictly increases through the sequence.

    Raises:
        BarOrderingError: On the first duplicate or out-of-order window
    """
    for i in range(1, len(bars)):
        prev, cur = bars[i - 1].window_close, bars[i].window_close
        if cur == prev:
            raise BarOrderingError(f"Duplicate bar window {cur.isoformat()} at index {i}")
        if cur < prev:
            raise BarOrderingError(
                f"Bar at index {i} ({cur.isoformat()}) precedes bar at index {i - 1} "
                f"({prev.isoformat()})"
            )


def bars_to_frame(bars: Iterable[Bar]) -> pd.DataFrame:
    """Convert bars to a DataFrame with a UTC DatetimeIndex and OHLCV columns."""
    bars = list(bars)
    df = pd.DataFrame(
        [[b.open, b.high, b.low, b.close, b.volume] for b in bars],
        columns=OHLCV_COLUMNS,
        index=pd.DatetimeIndex([b.window_close for b in bars], name="window_close"),
        dtype=float,
    )
    if df.index.tz is None:
        df.index = df.index.tz_localize("UTC")
    return df


def bars_from_frame(df: pd.DataFrame) -> List[Bar]:
    """
    Convert a DataFrame (DatetimeIndex or 'timestamp' column) to bars.

    Volume is optional and defaults to 0.
    """
    if "timestamp" in df.columns:
        df = df.set_index("timestamp")

    index = pd.DatetimeIndex(pd.to_datetime(df.index, utc=True))
    volume = df["volume"].fillna(0.0) if "volume" in df.columns else pd.Series(0.0, index=df.index)

    return [
        Bar(
            window_close=ts.to_pydatetime(),
            open=float(o),
            high=float(h),
            low=float(l),
            close=float(c),
            volume=float(v),
        )
        for ts, o, h, l, c, v in zip(
            index, df["open"], df["high"], df["low"], df["close"], volume
        )
    ]


def _is_aggregated(bars: Sequence[Bar], period_minutes: int) -> bool:
    return all(is_on_boundary(b.window_close, period_minutes) for b in bars)


def aggregate(bars: Sequence[Bar], period_minutes: int = DEFAULT_PERIOD_MINUTES) -> List[Bar]:
    """
    Fold fine-grained bars into period_minutes bars keyed by window close.

    Args:
        bars: Input bars, roughly gapless at native granularity (any order)
        period_minutes: Target window size

    Returns:
        Aggregated bars sorted ascending by window_close

    Example:
        1-minute bars at 00:00 and 00:01 fold into one bar closing at 00:15.

    Input whose timestamps all sit on the period grid is taken to be
    aggregated already and is returned sorted with its timestamps unchanged.
    A series of boundary-aligned minute bars is therefore ambiguous: a lone
    1-minute bar stamped 14:00 stays at 14:00 rather than moving to the
    14:15 bucket. Mixed input (any bar off the grid) is always resampled,
    and then an on-grid bar opens the bucket that starts at its timestamp.
    """
    if not bars:
        return []

    if period_minutes < 1:
        raise ValueError(f"period_minutes must be >= 1, got {period_minutes}")

    if _is_aggregated(bars, period_minutes):
        logger.debug(f"{len(bars)} bars already on the {period_minutes}-minute grid")
        return sorted(bars, key=lambda b: b.window_close)

    df = bars_to_frame(bars).sort_index(kind="stable")

    # closed='left' + label='right': [floor, floor + period) labeled floor + period
    resampled = df.resample(
        f"{period_minutes}min", closed="left", label="right", origin="epoch"
    ).agg(
        {
            "open": "first",
            "high": "max",
            "low": "min",
            "close": "last",
            "volume": "sum",
        }
    )

    # Empty buckets are gaps, not bars
    resampled = resampled.dropna(subset=["open", "high", "low", "close"], how="all")

    out = bars_from_frame(resampled)
    logger.debug(f"Aggregated {len(bars)} bars into {len(out)} {period_minutes}-minute bars")
    return out


def merge_bars(primary: Sequence[Bar], secondary: Sequence[Bar]) -> List[Bar]:
    """
    Union two bar sequences keyed by window_close, preferring primary.

    Typical use is laying freshly fetched bars over a cached history.
    """
    by_window = {b.window_close: b for b in secondary}
    by_window.update({b.window_close: b for b in primary})
    return [by_window[k] for k in sorted(by_window)]


def filter_rth(bars: Iterable[Bar]) -> List[Bar]:
    """Keep bars whose close falls within regular trading hours (UTC approximation)."""
    return [b for b in bars if is_rth_close_utc(b.window_close)]

