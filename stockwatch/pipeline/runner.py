"""
Per-symbol signal pipeline.

Chains the stages for one symbol:

    validate -> [aggregate] -> [RTH filter] -> label -> features -> score -> backtest

Invalid knobs (negative costs, threshold outside [0, 1]) and malformed bar
ordering are rejected here, before any stage runs. Everything downstream
degrades to neutral values or empty results instead of raising.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from stockwatch.backtest.runner import (
    BacktestConfig,
    BacktestResult,
    BacktestSummary,
    SignalBacktest,
)
from stockwatch.backtest.sweep import SweepRow, sweep_thresholds
from stockwatch.lib.config import StockwatchConfig, validate_run_params
from stockwatch.lib.constants import bars_per_year
from stockwatch.signals.bars import Bar, aggregate, filter_rth, validate_bar_sequence
from stockwatch.signals.features import FeatureVector, build_features
from stockwatch.signals.labeler import LabeledBar, label_bars
from stockwatch.signals.scorer import BaseScorer, get_scorer

logger = logging.getLogger(__name__)


@dataclass
class SymbolResult:
    """Everything the pipeline produced for one symbol."""
    symbol: str
    bars: List[Bar]
    labeled: List[LabeledBar]
    features: List[FeatureVector]
    probabilities: List[float]
    backtest: BacktestResult
    sweep: List[SweepRow] = field(default_factory=list)

    @property
    def summary(self) -> BacktestSummary:
        return self.backtest.summary


def context_map(bars: Sequence[Bar]) -> Dict[datetime, float]:
    """Benchmark closes keyed by window_close, for the market-context feature."""
    return {b.window_close: b.close for b in bars}


class SignalPipeline:
    """
    Runs the full signal pipeline for one symbol at a time.

    The pipeline holds only configuration, so one instance can serve many
    symbols from several threads.

    Example usage:
        pipeline = SignalPipeline(load_config("config/backtest.yaml"))
        result = pipeline.run("AAPL", bars, market_context=context_map(spy_bars))
        print(result.summary.to_dict())
    """

    def __init__(
        self,
        config: Optional[StockwatchConfig] = None,
        scorer: Optional[BaseScorer] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Full configuration (defaults if None)
            scorer: Scorer instance; built from config.strategy.scorer if None
        """
        self.config = config or StockwatchConfig()
        self.scorer = scorer or get_scorer(self.config.strategy.scorer)

    def backtest_config(self) -> BacktestConfig:
        strategy = self.config.strategy
        return BacktestConfig(
            entry_cost_bps=strategy.entry_cost_bps,
            exit_cost_bps=strategy.exit_cost_bps,
            long_threshold=strategy.long_threshold,
            periods_per_year=bars_per_year(self.config.data.period_minutes),
        )

    def prepare_bars(self, bars: Sequence[Bar]) -> List[Bar]:
        """
        Validate ordering, then aggregate and RTH-filter as configured.

        Raises:
            BarOrderingError: Duplicate or out-of-order window_close
        """
        validate_bar_sequence(bars)
        data = self.config.data

        prepared = list(bars)
        if data.aggregate:
            prepared = aggregate(prepared, data.period_minutes)
        if data.rth_only:
            prepared = filter_rth(prepared)
        return prepared

    def run(
        self,
        symbol: str,
        bars: Sequence[Bar],
        market_context: Optional[Mapping[datetime, float]] = None,
        sweep: bool = False,
    ) -> SymbolResult:
        """
        Run every stage for one symbol.

        Args:
            symbol: Symbol the bars belong to
            bars: Bars ascending by window_close
            market_context: Benchmark close keyed by window_close (optional)
            sweep: Also backtest across the configured threshold grid

        Returns:
            SymbolResult with every intermediate output

        Raises:
            ConfigValidationError: Invalid costs or threshold
            BarOrderingError: Malformed bar ordering
        """
        self.validate_params()
        prepared = self.prepare_bars(bars)
        return self.run_prepared(symbol, prepared, market_context, sweep)

    def validate_params(self) -> None:
        """
        Raises:
            ConfigValidationError: Invalid costs or threshold
        """
        strategy = self.config.strategy
        validate_run_params(
            strategy.entry_cost_bps, strategy.exit_cost_bps, strategy.long_threshold
        )

    def run_prepared(
        self,
        symbol: str,
        prepared: List[Bar],
        market_context: Optional[Mapping[datetime, float]] = None,
        sweep: bool = False,
    ) -> SymbolResult:
        """Label, build features, score and backtest bars already passed through prepare_bars."""
        strategy = self.config.strategy
        labeled = label_bars(prepared, self.config.data.period_minutes)
        features = build_features(labeled, symbol, market_context)
        probs = self.scorer.score_batch(features)

        bt_config = self.backtest_config()
        result = SignalBacktest(bt_config).run(prepared, labeled, probs, symbol=symbol)

        rows = []
        if sweep:
            rows = sweep_thresholds(
                prepared, labeled, probs, bt_config, strategy.sweep_thresholds
            )

        logger.debug(
            f"{symbol}: {len(prepared)} bars, {len(labeled)} labeled, "
            f"{result.summary.trades} trades"
        )

        return SymbolResult(
            symbol=symbol,
            bars=prepared,
            labeled=labeled,
            features=features,
            probabilities=probs,
            backtest=result,
            sweep=rows,
        )
