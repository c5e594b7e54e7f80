"""
Tests for stockwatch/pipeline/runner.py

Tests cover:
- Full per-symbol run (label -> features -> score -> backtest)
- Parameter validation before any stage runs
- Bar ordering validation
- Aggregation and RTH options
- Threshold sweep
- Custom scorers

Run with: pytest tests/pipeline/test_signal_pipeline.py -v
"""

from datetime import datetime, timezone

import pytest

from stockwatch.lib.config import ConfigValidationError
from stockwatch.pipeline.runner import SignalPipeline, context_map
from stockwatch.signals.bars import BarOrderingError
from stockwatch.signals.scorer import LinearScorer, RuleBasedScorer


class TestSignalPipeline:
    """Tests for SignalPipeline.run."""

    def test_default_scorer_is_linear(self, pipeline_config):
        assert isinstance(SignalPipeline(pipeline_config).scorer, LinearScorer)

    def test_scorer_from_config(self, pipeline_config):
        pipeline_config.strategy.scorer = "rule"
        assert isinstance(SignalPipeline(pipeline_config).scorer, RuleBasedScorer)

    def test_run_produces_every_stage(self, pipeline_config, random_walk_bars, market_context):
        result = SignalPipeline(pipeline_config).run(
            "TEST", random_walk_bars, market_context=market_context
        )

        assert result.symbol == "TEST"
        assert len(result.labeled) == len(random_walk_bars) - 1
        assert len(result.features) == len(result.labeled)
        assert len(result.probabilities) == len(result.features)
        assert all(0.0 <= p <= 1.0 for p in result.probabilities)
        assert result.summary.symbol == "TEST"
        assert result.sweep == []

    def test_threshold_controls_trades(self, pipeline_config, random_walk_bars, constant_scorer):
        pipeline = SignalPipeline(pipeline_config, scorer=constant_scorer(0.7))
        result = pipeline.run("TEST", random_walk_bars)

        assert result.summary.trades == len(random_walk_bars) - 1

        pipeline_config.strategy.long_threshold = 0.8
        result = SignalPipeline(pipeline_config, scorer=constant_scorer(0.7)).run(
            "TEST", random_walk_bars
        )
        assert result.summary.trades == 0
        assert result.summary.pnl_pct == 0.0

    def test_periods_per_year_follows_period(self, pipeline_config):
        pipeline_config.data.period_minutes = 5
        assert SignalPipeline(pipeline_config).backtest_config().periods_per_year == 252 * 78

    @pytest.mark.parametrize("field,value", [
        ("entry_cost_bps", -1.0),
        ("exit_cost_bps", -0.5),
        ("long_threshold", 1.5),
    ])
    def test_invalid_params_rejected(self, pipeline_config, random_walk_bars, field, value):
        setattr(pipeline_config.strategy, field, value)

        with pytest.raises(ConfigValidationError):
            SignalPipeline(pipeline_config).run("TEST", random_walk_bars)

    def test_out_of_order_bars_rejected(self, pipeline_config, random_walk_bars):
        bars = list(random_walk_bars)
        bars[3], bars[4] = bars[4], bars[3]

        with pytest.raises(BarOrderingError):
            SignalPipeline(pipeline_config).run("TEST", bars)

    def test_duplicate_bars_rejected(self, pipeline_config, random_walk_bars):
        bars = list(random_walk_bars[:10]) + [random_walk_bars[9]]

        with pytest.raises(BarOrderingError):
            SignalPipeline(pipeline_config).run("TEST", bars)

    def test_empty_bars(self, pipeline_config):
        result = SignalPipeline(pipeline_config).run("TEST", [])

        assert result.labeled == []
        assert result.summary.trades == 0

    def test_aggregate_option(self, pipeline_config, minute_bars):
        pipeline_config.data.aggregate = True

        result = SignalPipeline(pipeline_config).run("TEST", minute_bars)

        assert len(result.bars) == 4
        assert len(result.labeled) == 3
        assert result.bars[0].window_close == datetime(2024, 1, 2, 14, 45, tzinfo=timezone.utc)

    def test_rth_option(self, pipeline_config, bar_factory):
        # 20:30 .. 22:00 UTC; only 20:30-21:00 survive the EST window
        start = datetime(2024, 1, 2, 20, 30, tzinfo=timezone.utc)
        bars = bar_factory([100.0 + i for i in range(7)], start=start)
        pipeline_config.data.rth_only = True

        result = SignalPipeline(pipeline_config).run("TEST", bars)

        assert [b.window_close.hour * 60 + b.window_close.minute for b in result.bars] == [
            1230, 1245, 1260,
        ]

    def test_sweep(self, pipeline_config, random_walk_bars):
        pipeline_config.strategy.sweep_thresholds = [0.5, 0.6, 0.99]

        result = SignalPipeline(pipeline_config).run("TEST", random_walk_bars, sweep=True)

        assert [r.threshold for r in result.sweep] == [0.5, 0.6, 0.99]
        trades = [r.trades for r in result.sweep]
        assert trades == sorted(trades, reverse=True)

    def test_context_map(self, random_walk_bars):
        ctx = context_map(random_walk_bars[:3])

        assert list(ctx) == [b.window_close for b in random_walk_bars[:3]]
        assert ctx[random_walk_bars[0].window_close] == random_walk_bars[0].close
