"""
Performance Metrics for signal backtests

Metrics are computed from the per-trade net returns and the equity curve
they compound into (starting equity 1.0, one point per realized trade).

Key Metrics:
- CAGR: compounded growth between the first and last curve points
- Sharpe: mean / sample std of per-trade returns, annualized by bars per year
- Max drawdown: largest fractional decline from a prior equity peak
- Hit rate: fraction of trades with a positive net return
- Turnover: trades per bar considered

Every metric is 0 when there is nothing to measure (no trades, a single
return, zero variance); none of them raise on short input.
"""

import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Sequence

import numpy as np

from stockwatch.lib.constants import MIN_CAGR_YEARS, bars_per_year
from stockwatch.lib.time_utils import years_between

# Below this the return series is treated as constant
MIN_STD = 1e-12


@dataclass(frozen=True)
class EquityPoint:
    """Equity after a realized trade, stamped with the exit bar's close."""
    timestamp: datetime
    equity: float

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp.isoformat(), "equity": self.equity}


@dataclass(frozen=True)
class Metrics:
    """Risk/return metrics for one backtest run."""
    cagr: float = 0.0
    sharpe: float = 0.0
    max_drawdown: float = 0.0
    hit_rate: float = 0.0
    turnover: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def build_equity_curve(
    timestamps: Sequence[datetime],
    returns: Sequence[float],
    start_equity: float = 1.0,
) -> List[EquityPoint]:
    """Compound returns into an equity curve aligned with timestamps."""
    curve = []
    equity = start_equity
    for ts, r in zip(timestamps, returns):
        equity *= 1.0 + r
        curve.append(EquityPoint(timestamp=ts, equity=equity))
    return curve


def calculate_sharpe_ratio(
    returns: Sequence[float],
    periods_per_year: float = bars_per_year(),
) -> float:
    """
    Annualized Sharpe ratio of per-bar returns.

    Sharpe = mean / std (ddof=1) * sqrt(periods_per_year)

    Returns 0 for fewer than two returns or a (numerically) constant series.
    """
    if len(returns) <= 1:
        return 0.0

    arr = np.asarray(returns, dtype=float)
    std = float(np.std(arr, ddof=1))

    if not math.isfinite(std) or std < MIN_STD:
        return 0.0

    return float(np.mean(arr) / std * math.sqrt(periods_per_year))


def calculate_max_drawdown(equity: Sequence[float]) -> float:
    """
    Maximum drawdown as a fraction in [0, 1].

    Drawdown = (Peak - Equity) / Peak, with Peak the running high-water mark.
    """
    if len(equity) == 0:
        return 0.0

    arr = np.asarray(equity, dtype=float)
    running_max = np.maximum.accumulate(arr)

    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(running_max > 0, (running_max - arr) / running_max, 0.0)

    max_dd = float(np.nanmax(drawdowns))
    if not math.isfinite(max_dd):
        return 0.0
    return min(max(max_dd, 0.0), 1.0)


def calculate_cagr(curve: Sequence[EquityPoint]) -> float:
    """
    Compound annual growth rate between the first and last curve points.

    Elapsed time is floored at one day (1/365 year). Returns 0 for an empty
    curve or non-positive equity at either end.
    """
    if not curve:
        return 0.0

    start, end = curve[0].equity, curve[-1].equity
    if start <= 0 or end <= 0:
        return 0.0

    years = max(years_between(curve[0].timestamp, curve[-1].timestamp), MIN_CAGR_YEARS)

    # Short spans annualize to huge numbers; let them saturate to inf
    with np.errstate(over="ignore"):
        growth = np.power(end / start, 1.0 / years)
    return float(growth - 1.0)


def calculate_hit_rate(wins: int, trades: int) -> float:
    """Fraction of winning trades (0 if no trades)."""
    return wins / trades if trades > 0 else 0.0


def calculate_turnover(trades: int, bars_considered: int) -> float:
    """Trades per bar considered."""
    return trades / max(1, bars_considered)


def calculate_metrics(
    curve: Sequence[EquityPoint],
    returns: Sequence[float],
    wins: int,
    bars_considered: int,
    periods_per_year: float = bars_per_year(),
) -> Metrics:
    """
    Calculate all metrics for one run.

    Args:
        curve: Equity curve, one point per trade
        returns: Per-trade net returns (same order as curve)
        wins: Number of trades with net return > 0
        bars_considered: Bars the runner evaluated for entry
        periods_per_year: Sharpe annualization factor

    Returns:
        Metrics (all zeros when there are no trades)
    """
    trades = len(returns)
    if trades == 0:
        return Metrics()

    return Metrics(
        cagr=calculate_cagr(curve),
        sharpe=calculate_sharpe_ratio(returns, periods_per_year),
        max_drawdown=calculate_max_drawdown([p.equity for p in curve]),
        hit_rate=calculate_hit_rate(wins, trades),
        turnover=calculate_turnover(trades, bars_considered),
    )
