"""
Feature Builder for labeled bars.

Generates one fixed-schema feature vector per labeled bar:

1. Returns (4): 1, 5, 15 and 60-bar percentage change
2. Momentum (1): RSI-14 from simple sums of the trailing 14 close diffs
3. Trend (2): close minus EMA-9, close minus EMA-21 (price units)
4. Volatility (1): ATR-14, mean true range over the trailing 14 bars
5. Market context (1): benchmark return over the same bar
6. Time (1): UTC minute of day

Index i always refers to the labeled sequence, so history is the labeled
bars up to and including i. Every feature is computed WITHOUT lookahead and
falls back to a neutral value (0 for returns/gaps/ATR, 50 for RSI) when
history is too short; no feature is ever NaN.
"""

import logging
from dataclasses import astuple, dataclass, fields
from datetime import datetime
from typing import List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.lib.stride_tricks import sliding_window_view

from stockwatch.lib.time_utils import TimestampLike, minute_of_day, parse_timestamp
from stockwatch.signals.labeler import LabeledBar

logger = logging.getLogger(__name__)

RETURN_PERIODS = (1, 5, 15, 60)
EMA_PERIODS = (9, 21)
# First index with a reported gap; other periods start at period - 1
EMA_GAP_START = {9: 9}
RSI_PERIOD = 14
ATR_PERIOD = 14

RSI_NEUTRAL = 50.0


@dataclass(frozen=True)
class FeatureVector:
    """Features for one bar; numeric fields follow FEATURE_NAMES order."""
    timestamp: datetime
    symbol: str
    r1: float = 0.0
    r5: float = 0.0
    r15: float = 0.0
    r60: float = 0.0
    rsi14: float = RSI_NEUTRAL
    ema_gap9: float = 0.0
    ema_gap21: float = 0.0
    atr14: float = 0.0
    market_return: float = 0.0
    minute_of_day: int = 0

    def to_dict(self) -> dict:
        d = {"timestamp": self.timestamp.isoformat(), "symbol": self.symbol}
        d.update({name: getattr(self, name) for name in FEATURE_NAMES})
        return d

    def as_array(self) -> np.ndarray:
        return np.array(astuple(self)[2:], dtype=float)


FEATURE_NAMES = tuple(f.name for f in fields(FeatureVector))[2:]


def _trailing_returns(closes: np.ndarray, period: int) -> np.ndarray:
    """closes[i] / closes[i - period] - 1, or 0 without enough history."""
    out = np.zeros(len(closes))
    if len(closes) <= period:
        return out

    prev = closes[:-period]
    cur = closes[period:]
    with np.errstate(divide="ignore", invalid="ignore"):
        ret = np.where(prev != 0, cur / prev - 1.0, 0.0)
    out[period:] = ret
    return out


def _ema_gaps(closes: np.ndarray, period: int) -> np.ndarray:
    """
    Close minus EMA(period), EMA seeded with the first close.

    The EMA is defined once `period` closes exist (index period - 1), except
    the 9-bar gap, which stays 0 through index 8 (EMA_GAP_START).
    """
    start = EMA_GAP_START.get(period, period - 1)
    out = np.zeros(len(closes))
    if len(closes) <= start:
        return out

    ema = pd.Series(closes).ewm(span=period, adjust=False).mean().to_numpy()
    out[start:] = closes[start:] - ema[start:]
    return out


def _rsi(closes: np.ndarray, period: int = RSI_PERIOD) -> np.ndarray:
    """
    RSI from simple gain/loss sums over the trailing `period` diffs.

    RSI = 100 - 100 / (1 + avg_gain / avg_loss), 100 when there are no losses.
    """
    out = np.full(len(closes), RSI_NEUTRAL)
    if len(closes) <= period:
        return out

    windows = sliding_window_view(np.diff(closes), period)
    gains = np.where(windows > 0, windows, 0.0).sum(axis=1) / period
    losses = np.where(windows < 0, -windows, 0.0).sum(axis=1) / period

    with np.errstate(divide="ignore", invalid="ignore"):
        rsi = np.where(losses == 0, 100.0, 100.0 - 100.0 / (1.0 + gains / losses))
    out[period:] = rsi
    return out


def _atr(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    period: int = ATR_PERIOD,
) -> np.ndarray:
    """Mean true range over the trailing `period` bars, each needing a previous close."""
    out = np.zeros(len(closes))
    if len(closes) <= period:
        return out

    prev_close = closes[:-1]
    high, low = highs[1:], lows[1:]
    true_range = np.maximum.reduce([
        high - low,
        np.abs(high - prev_close),
        np.abs(low - prev_close),
    ])

    out[period:] = sliding_window_view(true_range, period).mean(axis=1)
    return out


def _context_returns(
    timestamps: Sequence[datetime],
    market_context: Optional[Mapping[datetime, float]],
) -> np.ndarray:
    """Benchmark close-to-close return between this bar and the previous one."""
    out = np.zeros(len(timestamps))
    if not market_context:
        return out

    for i in range(1, len(timestamps)):
        cur = market_context.get(timestamps[i])
        prev = market_context.get(timestamps[i - 1])
        if cur is not None and prev is not None and prev != 0:
            out[i] = cur / prev - 1.0
    return out


def normalize_context(market_context: Mapping[TimestampLike, float]) -> dict:
    """Re-key a benchmark close map by UTC datetime."""
    return {parse_timestamp(k): float(v) for k, v in market_context.items()}


def build_features(
    labeled: Sequence[LabeledBar],
    symbol: str,
    market_context: Optional[Mapping[TimestampLike, float]] = None,
) -> List[FeatureVector]:
    """
    Build one FeatureVector per labeled bar, same order and count.

    Args:
        labeled: Labeled bars ascending by window_close
        symbol: Symbol the bars belong to
        market_context: Optional benchmark close keyed by window close

    Returns:
        List of FeatureVector
    """
    if not labeled:
        return []

    closes = np.array([b.close for b in labeled], dtype=float)
    highs = np.array([b.high for b in labeled], dtype=float)
    lows = np.array([b.low for b in labeled], dtype=float)
    timestamps = [b.window_close for b in labeled]

    context = normalize_context(market_context) if market_context else None

    returns = {p: _trailing_returns(closes, p) for p in RETURN_PERIODS}
    gaps = {p: _ema_gaps(closes, p) for p in EMA_PERIODS}
    rsi = _rsi(closes)
    atr = _atr(highs, lows, closes)
    market = _context_returns(timestamps, context)

    vectors = [
        FeatureVector(
            timestamp=timestamps[i],
            symbol=symbol,
            r1=float(returns[1][i]),
            r5=float(returns[5][i]),
            r15=float(returns[15][i]),
            r60=float(returns[60][i]),
            rsi14=float(rsi[i]),
            ema_gap9=float(gaps[9][i]),
            ema_gap21=float(gaps[21][i]),
            atr14=float(atr[i]),
            market_return=float(market[i]),
            minute_of_day=minute_of_day(timestamps[i]),
        )
        for i in range(len(labeled))
    ]

    logger.debug(f"Built {len(vectors)} feature vectors for {symbol}")
    return vectors


def features_to_frame(vectors: Sequence[FeatureVector]) -> pd.DataFrame:
    """Feature vectors as a DataFrame indexed by timestamp, columns FEATURE_NAMES."""
    return pd.DataFrame(
        [v.as_array() for v in vectors],
        columns=list(FEATURE_NAMES),
        index=pd.DatetimeIndex([v.timestamp for v in vectors], name="timestamp"),
    )
