"""
Backtesting Module for per-bar signals

This module provides:
- Basis-point transaction costs (entry and exit sides)
- A one-bar-hold, long-only backtest over per-bar probabilities
- CAGR, Sharpe, max drawdown, hit rate and turnover
- Threshold sweeps and CSV/JSON report export
"""

from .costs import (
    BpsCostModel,
    CostConfig,
    apply_per_side_costs,
    apply_round_trip_costs,
    bps,
    expected_slippage_bps,
)
from .metrics import (
    EquityPoint,
    Metrics,
    build_equity_curve,
    calculate_cagr,
    calculate_max_drawdown,
    calculate_metrics,
    calculate_sharpe_ratio,
)
from .runner import (
    BacktestConfig,
    BacktestResult,
    BacktestSummary,
    SignalBacktest,
    Trade,
    run_backtest,
)
from .sweep import (
    SweepRow,
    best_threshold,
    sweep_thresholds,
)
from .export import (
    export_summaries_csv,
    export_summary_json,
    export_sweep_json,
    export_trades_csv,
)

__all__ = [
    # Costs
    "BpsCostModel",
    "CostConfig",
    "apply_per_side_costs",
    "apply_round_trip_costs",
    "bps",
    "expected_slippage_bps",
    # Metrics
    "EquityPoint",
    "Metrics",
    "build_equity_curve",
    "calculate_cagr",
    "calculate_max_drawdown",
    "calculate_metrics",
    "calculate_sharpe_ratio",
    # Runner
    "BacktestConfig",
    "BacktestResult",
    "BacktestSummary",
    "SignalBacktest",
    "Trade",
    "run_backtest",
    # Sweep
    "SweepRow",
    "best_threshold",
    "sweep_thresholds",
    # Export
    "export_summaries_csv",
    "export_summary_json",
    "export_sweep_json",
    "export_trades_csv",
]
