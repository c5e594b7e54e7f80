"""
Backtest report export (CSV / JSON).
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from stockwatch.backtest.runner import BacktestResult, BacktestSummary
from stockwatch.backtest.sweep import SweepRow, best_threshold

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _prepare(filepath: PathLike) -> Path:
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def export_trades_csv(result: BacktestResult, filepath: PathLike) -> None:
    """Export trades to CSV file."""
    if not result.trades:
        logger.warning("No trades to export")
        return

    path = _prepare(filepath)
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=result.trades[0].to_dict().keys())
        writer.writeheader()
        for trade in result.trades:
            writer.writerow(trade.to_dict())

    logger.info(f"Exported {len(result.trades)} trades to {path}")


def export_summaries_csv(summaries: Sequence[BacktestSummary], filepath: PathLike) -> None:
    """Export one row per symbol summary (metrics flattened into columns)."""
    if not summaries:
        logger.warning("No summaries to export")
        return

    path = _prepare(filepath)
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=summaries[0].to_dict().keys())
        writer.writeheader()
        for summary in summaries:
            writer.writerow(summary.to_dict())

    logger.info(f"Exported {len(summaries)} summaries to {path}")


def export_summary_json(
    summaries: Sequence[BacktestSummary],
    filepath: PathLike,
    config: Optional[dict] = None,
) -> None:
    """
    Export summaries (and optionally the run config) to JSON.

    Args:
        summaries: Per-symbol summaries
        filepath: Output path
        config: Run configuration as a plain dict
    """
    payload = {"summaries": [s.to_dict() for s in summaries]}

    if config is not None:
        payload["config"] = config

    path = _prepare(filepath)
    with open(path, "w") as f:
        json.dump(payload, f, indent=2, default=str)

    logger.info(f"Exported summary to {path}")


def export_sweep_json(sweeps: Dict[str, List[SweepRow]], filepath: PathLike) -> None:
    """Export per-symbol threshold sweeps with the best row for each symbol."""
    payload = {}
    for symbol, rows in sweeps.items():
        best = best_threshold(rows)
        payload[symbol] = {
            "rows": [r.to_dict() for r in rows],
            "best": best.to_dict() if best else None,
        }

    path = _prepare(filepath)
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)

    logger.info(f"Exported sweeps for {len(sweeps)} symbols to {path}")
