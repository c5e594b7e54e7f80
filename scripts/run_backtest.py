#!/usr/bin/env python3
"""
Run Backtest Entry Point for the stock signal pipeline.

Loads one CSV of bars per symbol, runs label -> features -> score ->
backtest for every symbol, prints a summary table and writes reports.

Outputs (in --output-dir):
- summary.json: per-symbol summaries plus the run configuration
- summary.csv: one row per symbol
- sweep.json: per-symbol threshold sweep (with --sweep)

Usage:
    # Run with defaults (data/bars/<SYMBOL>.csv, 15-minute bars)
    python scripts/run_backtest.py --symbols AAPL,MSFT

    # Fold 1-minute bars into 15-minute bars, RTH only
    python scripts/run_backtest.py --aggregate --rth-only --data-dir data/minute

    # Custom costs and threshold, plus a threshold sweep
    python scripts/run_backtest.py --entry-bps 2 --exit-bps 2 --threshold 0.58 --sweep

    # Remember the knobs between runs
    python scripts/run_backtest.py --settings ~/.stockwatch/settings.yaml

Precedence: built-in defaults < --config file < STOCKWATCH_* env vars
< stored settings (--settings) < command-line flags.

Exit codes: 0 on success, 2 on configuration errors.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from stockwatch.backtest.export import (
    export_summaries_csv,
    export_summary_json,
    export_sweep_json,
)
from stockwatch.backtest.sweep import best_threshold
from stockwatch.lib.config import (
    SCORER_NAMES,
    ConfigValidationError,
    StockwatchConfig,
    config_to_dict,
    load_config,
    validate_config,
)
from stockwatch.lib.logging_utils import setup_logging
from stockwatch.lib.settings_store import BacktestSettings, YamlSettingsRepository
from stockwatch.pipeline.batch import BatchResult, BatchRunner
from stockwatch.pipeline.data_source import CsvBarSource
from stockwatch.pipeline.runner import SignalPipeline

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Run the stock signal backtest',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Configuration and data
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to YAML config file',
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        default=None,
        help='Directory with one <SYMBOL>.csv per symbol',
    )
    parser.add_argument(
        '--symbols',
        type=str,
        default=None,
        help='Comma-separated symbols (default: config symbols)',
    )
    parser.add_argument(
        '--period',
        type=int,
        default=None,
        help='Bar size in minutes (default 15)',
    )
    parser.add_argument(
        '--aggregate',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Input bars are finer than --period and must be aggregated',
    )
    parser.add_argument(
        '--rth-only',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Keep only regular-trading-hours bars',
    )
    parser.add_argument(
        '--context-symbol',
        type=str,
        default=None,
        help="Benchmark for the market-context feature ('none' disables it)",
    )

    # Strategy
    parser.add_argument(
        '--entry-bps',
        type=float,
        default=None,
        help='Entry cost in basis points',
    )
    parser.add_argument(
        '--exit-bps',
        type=float,
        default=None,
        help='Exit cost in basis points',
    )
    parser.add_argument(
        '--threshold',
        type=float,
        default=None,
        help='Long entry probability threshold in [0, 1]',
    )
    parser.add_argument(
        '--scorer',
        choices=SCORER_NAMES,
        default=None,
        help='Probability model',
    )
    parser.add_argument(
        '--sweep',
        action='store_true',
        help='Also backtest across the threshold grid',
    )

    # Execution and output
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Thread pool size',
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default=None,
        help='Output directory for reports',
    )
    parser.add_argument(
        '--settings',
        type=str,
        default=None,
        help='YAML file remembering costs, threshold and symbols between runs',
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level',
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> StockwatchConfig:
    """Layer stored settings and command-line flags over the loaded config."""
    config, _ = resolve_config(args)
    return config


def resolve_config(args: argparse.Namespace) -> Tuple[StockwatchConfig, Optional[str]]:
    """
    Same layering as build_config.

    Also returns the path the stored settings were read from (None when
    nothing was stored). Logging is not configured yet at this point, so
    the caller reports it.
    """
    config = load_config(args.config)
    stored_from = None

    settings_path = args.settings or config.output.settings_path
    if settings_path:
        config.output.settings_path = settings_path
        stored = YamlSettingsRepository(settings_path).load()
        if stored is not None:
            stored_from = settings_path
            config.strategy.entry_cost_bps = stored.entry_cost_bps
            config.strategy.exit_cost_bps = stored.exit_cost_bps
            config.strategy.long_threshold = stored.long_threshold
            config.batch.symbols = list(stored.symbols)

    if args.data_dir:
        config.data.data_dir = args.data_dir
    if args.symbols:
        config.batch.symbols = [s.strip().upper() for s in args.symbols.split(',') if s.strip()]
    if args.period is not None:
        config.data.period_minutes = args.period
    if args.aggregate is not None:
        config.data.aggregate = args.aggregate
    if args.rth_only is not None:
        config.data.rth_only = args.rth_only
    if args.context_symbol is not None:
        config.data.context_symbol = (
            None if args.context_symbol.lower() == 'none' else args.context_symbol.upper()
        )
    if args.entry_bps is not None:
        config.strategy.entry_cost_bps = args.entry_bps
    if args.exit_bps is not None:
        config.strategy.exit_cost_bps = args.exit_bps
    if args.threshold is not None:
        config.strategy.long_threshold = args.threshold
    if args.scorer:
        config.strategy.scorer = args.scorer
    if args.workers is not None:
        config.batch.max_workers = args.workers
    if args.output_dir:
        config.output.output_dir = args.output_dir
    if args.log_level:
        config.output.log_level = args.log_level

    return config, stored_from


def print_summary(batch: BatchResult) -> None:
    """Print a per-symbol summary table."""
    print("\n" + "=" * 88)
    print(f"{'SYMBOL':<8} {'TRADES':>7} {'WIN%':>7} {'PNL%':>9} "
          f"{'CAGR':>12} {'SHARPE':>8} {'MAXDD%':>8} {'TURNOVER':>9}")
    print("-" * 88)

    for s in batch.summaries():
        m = s.metrics
        print(f"{s.symbol:<8} {s.trades:>7d} {s.win_rate:>7.1%} {s.pnl_pct:>+9.2%} "
              f"{m.cagr:>12.4g} {m.sharpe:>8.2f} {m.max_drawdown:>8.2%} {m.turnover:>9.3f}")

    print("=" * 88)

    for symbol, reason in sorted(batch.skipped.items()):
        print(f"skipped {symbol}: {reason}")
    for symbol, error in sorted(batch.failures.items()):
        print(f"failed  {symbol}: {error}")

    for symbol in sorted(batch.results):
        best = best_threshold(batch.results[symbol].sweep)
        if best is not None:
            print(f"{symbol}: best threshold {best.threshold:.2f} "
                  f"({best.trades} trades, pnl {best.pnl_pct:+.2%})")


def write_reports(batch: BatchResult, config: StockwatchConfig, sweep: bool) -> Path:
    """Write summary.json, summary.csv and (optionally) sweep.json."""
    output_dir = Path(config.output.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    summaries = batch.summaries()
    export_summary_json(summaries, output_dir / "summary.json", config=config_to_dict(config))
    export_summaries_csv(summaries, output_dir / "summary.csv")

    if sweep:
        export_sweep_json(
            {symbol: r.sweep for symbol, r in batch.results.items()},
            output_dir / "sweep.json",
        )

    return output_dir


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config, stored_from = resolve_config(args)
        warnings = validate_config(config)
    except (ConfigValidationError, FileNotFoundError) as e:
        setup_logging(level="ERROR", use_colors=False)
        logger.error(f"Configuration error: {e}")
        return 2

    setup_logging(level=config.output.log_level, log_dir=config.output.logs_dir)
    if stored_from:
        logger.info(f"Using stored settings from {stored_from}")
    for w in warnings:
        logger.warning(w)

    pipeline = SignalPipeline(config)
    runner = BatchRunner(pipeline, CsvBarSource(config.data.data_dir))
    batch = runner.run(config.batch.symbols, sweep=args.sweep)

    print_summary(batch)
    output_dir = write_reports(batch, config, args.sweep)
    logger.info(f"Reports written to {output_dir}")

    if config.output.settings_path:
        YamlSettingsRepository(config.output.settings_path).save(BacktestSettings(
            entry_cost_bps=config.strategy.entry_cost_bps,
            exit_cost_bps=config.strategy.exit_cost_bps,
            long_threshold=config.strategy.long_threshold,
            symbols=list(config.batch.symbols),
        ))

    return 0


if __name__ == '__main__':
    sys.exit(main())
