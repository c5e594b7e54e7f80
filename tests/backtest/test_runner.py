"""
Tests for stockwatch/backtest/runner.py, sweep.py and export.py

Tests cover:
- Entry rule (probability >= threshold) and one-bar exits
- Net returns after entry/exit costs
- Zero-trade runs (unreachable threshold)
- Cost monotonicity
- Equity curve timestamps and pnl_pct
- Early stop when the exit bar is missing
- Threshold sweep and best-threshold selection
- CSV / JSON export

Run with: pytest tests/backtest/test_runner.py -v
"""

import csv
import json
from datetime import timedelta

import pytest

from stockwatch.backtest.export import (
    export_summaries_csv,
    export_summary_json,
    export_sweep_json,
    export_trades_csv,
)
from stockwatch.backtest.runner import (
    BacktestConfig,
    SignalBacktest,
    run_backtest,
)
from stockwatch.backtest.sweep import SweepRow, best_threshold, sweep_thresholds
from stockwatch.signals.labeler import label_bars


@pytest.fixture
def simple_bars(bar_factory):
    """Closes 100, 101, 99, 102, 102."""
    return bar_factory([100.0, 101.0, 99.0, 102.0, 102.0])


@pytest.fixture
def simple_labeled(simple_bars):
    return label_bars(simple_bars)


# =============================================================================
# Runner
# =============================================================================

class TestSignalBacktest:
    """Tests for the one-bar-hold walk."""

    def test_entries_follow_threshold(self, simple_bars, simple_labeled):
        probs = [0.7, 0.2, 0.6, 0.59]

        result = run_backtest(simple_bars, simple_labeled, probs, 0, 0, long_threshold=0.6)

        assert [t.entry_index for t in result.trades] == [0, 2]

    def test_threshold_is_inclusive(self, simple_bars, simple_labeled):
        result = run_backtest(simple_bars, simple_labeled, [0.6] * 4, 0, 0, long_threshold=0.6)

        assert result.summary.trades == 4

    def test_trade_prices_and_returns(self, simple_bars, simple_labeled):
        result = run_backtest(
            simple_bars, simple_labeled, [0.9, 0, 0, 0], 5, 3, long_threshold=0.5
        )

        trade = result.trades[0]
        assert trade.entry_price == 100.0
        assert trade.exit_price == 101.0
        assert trade.gross_return == pytest.approx(0.01)
        assert trade.net_return == pytest.approx(0.01 - 0.0008)
        assert trade.is_win
        assert trade.exit_time == simple_bars[1].window_close

    def test_summary_and_equity(self, simple_bars, simple_labeled):
        probs = [0.9, 0.9, 0.0, 0.0]

        result = run_backtest(simple_bars, simple_labeled, probs, 0, 0, long_threshold=0.5)

        r1 = 101 / 100 - 1
        r2 = 99 / 101 - 1
        assert result.summary.trades == 2
        assert result.summary.win_rate == pytest.approx(0.5)
        assert result.summary.pnl_pct == pytest.approx((1 + r1) * (1 + r2) - 1)
        assert [p.timestamp for p in result.equity_curve] == [
            simple_bars[1].window_close, simple_bars[2].window_close
        ]
        assert result.metrics.max_drawdown == pytest.approx(-r2)
        assert result.metrics.turnover == pytest.approx(2 / 4)
        assert result.summary.metrics is result.metrics

    def test_unreachable_threshold_gives_zero_trades(self, random_walk_bars):
        labeled = label_bars(random_walk_bars)
        probs = [0.99] * len(labeled)

        result = run_backtest(random_walk_bars, labeled, probs, long_threshold=1.1)

        assert result.summary.trades == 0
        assert result.summary.pnl_pct == 0.0
        assert result.metrics.sharpe == 0.0
        assert result.metrics.max_drawdown == 0.0
        assert result.metrics.cagr == 0.0
        assert result.equity_curve == []

    def test_empty_inputs(self):
        result = run_backtest([], [], [])

        assert result.summary.trades == 0
        assert result.summary.pnl_pct == 0.0

    def test_stops_without_exit_bar(self, simple_bars, simple_labeled):
        # Only two bars supplied: index 1 has no exit bar
        result = run_backtest(simple_bars[:2], simple_labeled, [0.9] * 4, 0, 0, 0.5)

        assert result.summary.trades == 1

    def test_walk_bounded_by_shorter_input(self, simple_bars, simple_labeled):
        result = run_backtest(simple_bars, simple_labeled, [0.9, 0.9], 0, 0, 0.5)

        assert result.summary.trades == 2

    @pytest.mark.parametrize("extra_bps", [0.0, 1.0, 5.0, 25.0, 100.0])
    def test_cost_monotonicity(self, random_walk_bars, extra_bps):
        labeled = label_bars(random_walk_bars)
        probs = [0.7 if i % 3 else 0.4 for i in range(len(labeled))]

        base = run_backtest(random_walk_bars, labeled, probs, 5.0, 3.0, 0.6)
        costlier = run_backtest(random_walk_bars, labeled, probs, 5.0 + extra_bps, 3.0, 0.6)

        assert costlier.summary.trades == base.summary.trades
        assert costlier.summary.pnl_pct <= base.summary.pnl_pct

    def test_engine_reusable(self, simple_bars, simple_labeled):
        engine = SignalBacktest(BacktestConfig(long_threshold=0.5))

        first = engine.run(simple_bars, simple_labeled, [0.9] * 4, symbol="X")
        second = engine.run(simple_bars, simple_labeled, [0.9] * 4, symbol="X")

        assert first.summary == second.summary
        assert engine.cost_model.get_total_trades() == 4

    def test_summary_to_dict(self, simple_bars, simple_labeled):
        result = run_backtest(simple_bars, simple_labeled, [0.9] * 4, symbol="ABC")

        d = result.summary.to_dict()

        assert d["symbol"] == "ABC"
        assert {"trades", "win_rate", "pnl_pct", "sharpe", "max_drawdown", "cagr"} <= set(d)

    def test_total_cost_sums_round_trips(self, simple_bars, simple_labeled):
        result = run_backtest(
            simple_bars, simple_labeled, [0.9, 0.1, 0.9, 0.9], 5, 3, long_threshold=0.5
        )

        assert result.summary.trades == 3
        assert result.summary.total_cost == pytest.approx(3 * 0.0008)
        assert result.summary.to_dict()["total_cost"] == pytest.approx(0.0024)

    def test_total_cost_resets_between_runs(self, simple_bars, simple_labeled):
        engine = SignalBacktest(BacktestConfig(long_threshold=0.5))

        engine.run(simple_bars, simple_labeled, [0.9] * 4)
        second = engine.run(simple_bars, simple_labeled, [0.9, 0, 0, 0])

        assert second.summary.total_cost == pytest.approx(0.0008)

    def test_zero_trades_zero_cost(self, simple_bars, simple_labeled):
        result = run_backtest(simple_bars, simple_labeled, [0.1] * 4, long_threshold=0.5)

        assert result.summary.total_cost == 0.0

    def test_gapped_bars_trade_by_position(self, bar_factory):
        head = bar_factory([100.0, 101.0])
        tail = bar_factory(
            [99.0, 102.0, 103.0], start=head[-1].window_close + timedelta(minutes=45)
        )
        bars = head + tail
        labeled = label_bars(bars)

        result = run_backtest(bars, labeled, [0.0, 0.9, 0.0], 0, 0, long_threshold=0.5)

        # labeled[1] is the first bar after the gap, but bars[1] is traded
        assert len(labeled) == 3
        assert labeled[1].window_close == bars[2].window_close
        trade = result.trades[0]
        assert trade.entry_index == 1
        assert trade.entry_time == bars[1].window_close
        assert (trade.entry_price, trade.exit_price) == (101.0, 99.0)


# =============================================================================
# Sweep
# =============================================================================

class TestSweep:
    """Tests for threshold sweeps."""

    def test_default_grid(self, simple_bars, simple_labeled):
        rows = sweep_thresholds(simple_bars, simple_labeled, [0.55, 0.6, 0.65, 0.7])

        assert [r.threshold for r in rows] == [
            0.54, 0.56, 0.58, 0.6, 0.62, 0.64, 0.66, 0.68, 0.7
        ]
        assert rows[0].trades == 4
        assert rows[-1].trades == 1

    def test_trades_non_increasing_in_threshold(self, random_walk_bars):
        labeled = label_bars(random_walk_bars)
        probs = [0.5 + (i % 25) / 100 for i in range(len(labeled))]

        rows = sweep_thresholds(random_walk_bars, labeled, probs)

        counts = [r.trades for r in rows]
        assert counts == sorted(counts, reverse=True)

    def test_uses_base_costs(self, simple_bars, simple_labeled):
        probs = [0.9] * 4
        free = sweep_thresholds(simple_bars, simple_labeled, probs, BacktestConfig(0, 0), [0.5])
        costly = sweep_thresholds(simple_bars, simple_labeled, probs, BacktestConfig(50, 50), [0.5])

        assert costly[0].pnl_pct < free[0].pnl_pct

    def test_best_threshold(self):
        rows = [
            SweepRow(0.54, 10, 0.5, 0.01),
            SweepRow(0.56, 8, 0.6, 0.03),
            SweepRow(0.58, 12, 0.6, 0.03),
            SweepRow(0.60, 12, 0.6, 0.03),
        ]

        assert best_threshold(rows).threshold == 0.58

    def test_best_threshold_empty(self):
        assert best_threshold([]) is None


# =============================================================================
# Export
# =============================================================================

class TestExport:
    """Tests for report files."""

    def test_trades_csv(self, tmp_path, simple_bars, simple_labeled):
        result = run_backtest(simple_bars, simple_labeled, [0.9] * 4, 0, 0, 0.5)
        path = tmp_path / "trades.csv"

        export_trades_csv(result, path)

        with open(path) as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 4
        assert rows[0]["entry_price"] == "100.0"

    def test_trades_csv_no_trades(self, tmp_path):
        result = run_backtest([], [], [])
        path = tmp_path / "trades.csv"

        export_trades_csv(result, path)

        assert not path.exists()

    def test_summaries_csv_and_json(self, tmp_path, simple_bars, simple_labeled):
        summary = run_backtest(simple_bars, simple_labeled, [0.9] * 4, symbol="AAA").summary

        export_summaries_csv([summary], tmp_path / "out" / "summary.csv")
        export_summary_json([summary], tmp_path / "out" / "summary.json", config={"k": 1})

        with open(tmp_path / "out" / "summary.csv") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["symbol"] == "AAA"

        with open(tmp_path / "out" / "summary.json") as f:
            payload = json.load(f)
        assert payload["summaries"][0]["trades"] == 4
        assert payload["config"] == {"k": 1}

    def test_sweep_json(self, tmp_path):
        rows = [SweepRow(0.54, 3, 0.5, 0.01), SweepRow(0.56, 2, 1.0, 0.02)]

        export_sweep_json({"AAA": rows}, tmp_path / "sweep.json")

        with open(tmp_path / "sweep.json") as f:
            payload = json.load(f)
        assert len(payload["AAA"]["rows"]) == 2
        assert payload["AAA"]["best"]["threshold"] == 0.56
