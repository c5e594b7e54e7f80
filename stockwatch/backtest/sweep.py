"""
Decision-threshold sweep.

Reruns the one-bar-hold backtest over a grid of long thresholds with the
same bars, probabilities and costs, so the threshold can be chosen from
realized P&L rather than guessed.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Sequence

from stockwatch.backtest.runner import BacktestConfig, SignalBacktest
from stockwatch.lib.constants import default_sweep_thresholds
from stockwatch.signals.bars import Bar
from stockwatch.signals.labeler import LabeledBar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepRow:
    """Backtest outcome at one threshold."""
    threshold: float
    trades: int
    win_rate: float
    pnl_pct: float

    def to_dict(self) -> dict:
        return asdict(self)


def sweep_thresholds(
    bars: Sequence[Bar],
    labeled: Sequence[LabeledBar],
    probs: Sequence[float],
    config: Optional[BacktestConfig] = None,
    thresholds: Optional[Iterable[float]] = None,
) -> List[SweepRow]:
    """
    Backtest at each threshold, keeping every other knob from config.

    Args:
        bars: Bars supplying realized prices
        labeled: Labeled bars
        probs: Probability per labeled bar
        config: Base configuration; its long_threshold is ignored
        thresholds: Grid to try (default 0.54..0.70 step 0.02)

    Returns:
        One SweepRow per threshold, in grid order
    """
    base = config or BacktestConfig()
    grid = list(thresholds) if thresholds is not None else default_sweep_thresholds()

    rows = []
    for th in grid:
        run_config = BacktestConfig(
            entry_cost_bps=base.entry_cost_bps,
            exit_cost_bps=base.exit_cost_bps,
            long_threshold=th,
            periods_per_year=base.periods_per_year,
        )
        summary = SignalBacktest(run_config).run(bars, labeled, probs).summary
        rows.append(SweepRow(
            threshold=th,
            trades=summary.trades,
            win_rate=summary.win_rate,
            pnl_pct=summary.pnl_pct,
        ))

    logger.debug(f"Swept {len(rows)} thresholds")
    return rows


def best_threshold(rows: Sequence[SweepRow]) -> Optional[SweepRow]:
    """
    Row with the highest pnl_pct; ties go to more trades, then the lower threshold.

    Returns None for an empty sweep.
    """
    if not rows:
        return None
    return max(rows, key=lambda r: (r.pnl_pct, r.trades, -r.threshold))
