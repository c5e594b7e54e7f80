"""
One-bar-hold Backtest Runner

Replays per-bar probabilities against realized closes:

Trading Rules:
- Entry: probs[i] >= long_threshold opens a long at bars[i].close
- Exit: always at the next bar's close, bars[i + 1].close
- Long only, fixed notional of 1 unit, every bar evaluated independently
- Costs: entry and exit bps subtracted from each trade's gross return

The walk covers i = 0 .. min(len(labeled), len(probs)) - 1 and stops early
as soon as bars[i + 1] does not exist. The threshold is not range-checked
here; a threshold above 1 simply produces zero trades.

Entry and exit are read by position: probs[i] trades bars[i] -> bars[i + 1]
whatever the timestamps. label_bars drops pairs that span a gap, so labeled[i]
is bars[i] only for gapless input. After a gap the probability of one bar
is traded on another; pass gapless bars (one session, or pre-split) here.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from stockwatch.backtest.costs import BpsCostModel, CostConfig
from stockwatch.backtest.metrics import (
    EquityPoint,
    Metrics,
    build_equity_curve,
    calculate_hit_rate,
    calculate_metrics,
)
from stockwatch.lib.constants import (
    DEFAULT_ENTRY_COST_BPS,
    DEFAULT_EXIT_COST_BPS,
    DEFAULT_LONG_THRESHOLD,
    bars_per_year,
)
from stockwatch.signals.bars import Bar
from stockwatch.signals.labeler import LabeledBar

logger = logging.getLogger(__name__)


@dataclass
class BacktestConfig:
    """Knobs for one backtest run."""
    entry_cost_bps: float = DEFAULT_ENTRY_COST_BPS
    exit_cost_bps: float = DEFAULT_EXIT_COST_BPS
    long_threshold: float = DEFAULT_LONG_THRESHOLD
    # Sharpe annualization; 252 * 26 for 15-minute bars
    periods_per_year: float = field(default_factory=bars_per_year)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Trade:
    """Record of a single one-bar round trip."""
    entry_index: int
    entry_time: datetime
    exit_time: datetime
    entry_price: float
    exit_price: float
    probability: float
    gross_return: float
    net_return: float

    @property
    def is_win(self) -> bool:
        return self.net_return > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for CSV export."""
        return {
            "entry_index": self.entry_index,
            "entry_time": self.entry_time.isoformat(),
            "exit_time": self.exit_time.isoformat(),
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "probability": round(self.probability, 4),
            "gross_return": self.gross_return,
            "net_return": self.net_return,
            "is_win": self.is_win,
        }


@dataclass(frozen=True)
class BacktestSummary:
    """Aggregate result for one symbol over one run."""
    symbol: str
    trades: int = 0
    win_rate: float = 0.0
    pnl_pct: float = 0.0
    # Sum of round-trip costs, as a fraction of notional
    total_cost: float = 0.0
    metrics: Metrics = field(default_factory=Metrics)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "trades": self.trades,
            "win_rate": self.win_rate,
            "pnl_pct": self.pnl_pct,
            "total_cost": self.total_cost,
            **self.metrics.to_dict(),
        }


@dataclass
class BacktestResult:
    """Result of running a backtest."""
    summary: BacktestSummary
    metrics: Metrics
    trades: List[Trade]
    equity_curve: List[EquityPoint]
    config: BacktestConfig


class SignalBacktest:
    """
    Backtest engine for per-bar long probabilities.

    Example usage:
        backtest = SignalBacktest(BacktestConfig(long_threshold=0.6))
        result = backtest.run(bars, labeled, probs, symbol="AAPL")
        print(result.summary.to_dict())
    """

    def __init__(self, config: Optional[BacktestConfig] = None):
        """
        Initialize the backtest engine.

        Args:
            config: Backtest configuration (uses defaults if None)
        """
        self.config = config or BacktestConfig()
        self.cost_model = BpsCostModel(CostConfig(
            entry_cost_bps=self.config.entry_cost_bps,
            exit_cost_bps=self.config.exit_cost_bps,
        ))

    def run(
        self,
        bars: Sequence[Bar],
        labeled: Sequence[LabeledBar],
        probs: Sequence[float],
        symbol: str = "",
    ) -> BacktestResult:
        """
        Run the backtest.

        Args:
            bars: Bars supplying realized prices (bars[i] entry, bars[i + 1] exit)
                aligned with labeled by position (gapless input assumed)
            labeled: Labeled bars; only their count bounds the walk
            probs: Probability per labeled bar
            symbol: Symbol for the summary

        Returns:
            BacktestResult with summary, metrics, trades and equity curve
        """
        self.cost_model.reset()
        threshold = self.config.long_threshold

        trades: List[Trade] = []
        considered = 0
        n = min(len(labeled), len(probs))

        for i in range(n):
            if i + 1 >= len(bars):
                break
            considered += 1

            p = probs[i]
            if p < threshold:
                continue

            entry, exit_ = bars[i], bars[i + 1]
            if entry.close <= 0:
                logger.debug(f"{symbol}: skipping entry at index {i}, non-positive close")
                continue

            gross = exit_.close / entry.close - 1.0
            trades.append(Trade(
                entry_index=i,
                entry_time=entry.window_close,
                exit_time=exit_.window_close,
                entry_price=entry.close,
                exit_price=exit_.close,
                probability=float(p),
                gross_return=gross,
                net_return=self.cost_model.net_return(gross),
            ))
            self.cost_model.record_trade()

        result = self._build_result(symbol, trades, considered)

        logger.debug(
            f"{symbol}: {result.summary.trades} trades over {considered} bars, "
            f"pnl={result.summary.pnl_pct:+.4%}"
        )
        return result

    def _build_result(
        self,
        symbol: str,
        trades: List[Trade],
        considered: int,
    ) -> BacktestResult:
        """Build the final backtest result."""
        returns = [t.net_return for t in trades]
        wins = sum(1 for t in trades if t.is_win)

        curve = build_equity_curve([t.exit_time for t in trades], returns, start_equity=1.0)
        metrics = calculate_metrics(
            curve,
            returns,
            wins=wins,
            bars_considered=considered,
            periods_per_year=self.config.periods_per_year,
        )

        summary = BacktestSummary(
            symbol=symbol,
            trades=len(trades),
            win_rate=calculate_hit_rate(wins, len(trades)),
            pnl_pct=curve[-1].equity - 1.0 if curve else 0.0,
            total_cost=self.cost_model.get_total_cost(),
            metrics=metrics,
        )

        return BacktestResult(
            summary=summary,
            metrics=metrics,
            trades=trades,
            equity_curve=curve,
            config=self.config,
        )


def run_backtest(
    bars: Sequence[Bar],
    labeled: Sequence[LabeledBar],
    probs: Sequence[float],
    entry_cost_bps: float = DEFAULT_ENTRY_COST_BPS,
    exit_cost_bps: float = DEFAULT_EXIT_COST_BPS,
    long_threshold: float = DEFAULT_LONG_THRESHOLD,
    symbol: str = "",
    periods_per_year: Optional[float] = None,
) -> BacktestResult:
    """
    Convenience function to run a backtest.

    Returns:
        BacktestResult; result.summary and result.metrics carry the headline numbers
    """
    config = BacktestConfig(
        entry_cost_bps=entry_cost_bps,
        exit_cost_bps=exit_cost_bps,
        long_threshold=long_threshold,
    )
    if periods_per_year is not None:
        config.periods_per_year = periods_per_year

    return SignalBacktest(config).run(bars, labeled, probs, symbol=symbol)
