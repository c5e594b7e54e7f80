"""
Multi-symbol batch runs.

Each symbol's pipeline is independent, so symbols run as separate tasks on
a bounded thread pool. The benchmark symbol (default SPY) is loaded once up
front and shared read-only as the market-context map.

Per-symbol outcomes:
- results: the pipeline ran
- skipped: fewer than min_bars bars after preparation
- failures: loading or running raised; logged and recorded, other symbols continue
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from stockwatch.backtest.runner import BacktestSummary
from stockwatch.lib.logging_utils import log_backtest_summary
from stockwatch.pipeline.data_source import BarSource
from stockwatch.pipeline.runner import SignalPipeline, SymbolResult, context_map

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of a batch run, keyed by symbol."""
    results: Dict[str, SymbolResult] = field(default_factory=dict)
    skipped: Dict[str, str] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    def summaries(self) -> List[BacktestSummary]:
        """Summaries sorted by symbol."""
        return [self.results[s].summary for s in sorted(self.results)]


class BatchRunner:
    """
    Runs the signal pipeline across many symbols.

    Example usage:
        runner = BatchRunner(SignalPipeline(config), CsvBarSource("data/bars"))
        batch = runner.run(["AAPL", "MSFT"])
        for summary in batch.summaries():
            print(summary.to_dict())
    """

    def __init__(
        self,
        pipeline: SignalPipeline,
        source: BarSource,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize the batch runner.

        Args:
            pipeline: Configured pipeline shared by all tasks
            source: Market-data boundary
            max_workers: Thread pool size (config.batch.max_workers if None)
        """
        self.pipeline = pipeline
        self.source = source
        self.max_workers = max_workers or pipeline.config.batch.max_workers

    def load_context(self) -> Optional[Dict[datetime, float]]:
        """Prepared benchmark closes, or None when disabled or unavailable."""
        symbol = self.pipeline.config.data.context_symbol
        if not symbol:
            return None

        try:
            bars = self.pipeline.prepare_bars(self.source.get_bars(symbol))
        except Exception as e:
            logger.warning(f"Market context {symbol} unavailable, continuing without it: {e}")
            return None

        logger.info(f"Loaded market context {symbol} ({len(bars)} bars)")
        return context_map(bars)

    def _run_symbol(
        self,
        symbol: str,
        context: Optional[Dict[datetime, float]],
        sweep: bool,
    ) -> Optional[SymbolResult]:
        """Load, prepare and run one symbol; None if it has too few bars."""
        prepared = self.pipeline.prepare_bars(self.source.get_bars(symbol))

        min_bars = self.pipeline.config.data.min_bars
        if len(prepared) < min_bars:
            return None

        return self.pipeline.run_prepared(symbol, prepared, context, sweep=sweep)

    def run(self, symbols: Sequence[str], sweep: bool = False) -> BatchResult:
        """
        Run every symbol.

        Args:
            symbols: Symbols to process (duplicates are ignored)
            sweep: Also run the threshold sweep per symbol

        Returns:
            BatchResult

        Raises:
            ConfigValidationError: Invalid costs or threshold (checked once, before any task)
        """
        self.pipeline.validate_params()

        unique = list(dict.fromkeys(s.upper() for s in symbols))
        batch = BatchResult()
        if not unique:
            logger.warning("No symbols to run")
            return batch

        context = self.load_context()
        min_bars = self.pipeline.config.data.min_bars

        logger.info(f"Running {len(unique)} symbols on {self.max_workers} workers")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._run_symbol, symbol, context, sweep): symbol
                for symbol in unique
            }

            for future in as_completed(futures):
                symbol = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.warning(f"{symbol} failed: {e}")
                    batch.failures[symbol] = str(e)
                    continue

                if result is None:
                    reason = f"fewer than {min_bars} bars"
                    logger.warning(f"Skipping {symbol}: {reason}")
                    batch.skipped[symbol] = reason
                    continue

                batch.results[symbol] = result
                log_backtest_summary(logger, result.summary)

        logger.info(
            f"Batch complete: {len(batch.results)} ran, {len(batch.skipped)} skipped, "
            f"{len(batch.failures)} failed"
        )
        return batch
