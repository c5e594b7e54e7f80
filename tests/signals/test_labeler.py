"""
Tests for stockwatch/signals/labeler.py

Tests cover:
- Next-bar direction labels (strictly greater close = 1)
- Gap pairs dropped, never bridged
- The final bar never labeled

Run with: pytest tests/signals/test_labeler.py -v
"""

from datetime import timedelta

from stockwatch.signals.bars import Bar
from stockwatch.signals.labeler import LabeledBar, label_bars


class TestLabelBars:
    """Tests for label_bars."""

    def test_up_and_down_labels(self, bar_factory):
        bars = bar_factory([10, 11, 11, 9, 12])

        labeled = label_bars(bars)

        assert [lb.label for lb in labeled] == [1, 0, 0, 1]

    def test_equal_close_is_not_up(self, bar_factory):
        labeled = label_bars(bar_factory([10, 10]))

        assert labeled[0].label == 0

    def test_last_bar_dropped(self, bar_factory):
        bars = bar_factory([1, 2, 3, 4, 5])

        labeled = label_bars(bars)

        assert len(labeled) == len(bars) - 1
        assert labeled[-1].window_close == bars[-2].window_close

    def test_gap_pair_dropped(self, bar_factory):
        # Windows at 15, 30, 60 minutes: the 45 bar is missing
        bars = bar_factory([1, 2, 3])
        bars[2] = Bar(
            window_close=bars[1].window_close + timedelta(minutes=30),
            open=2, high=3.5, low=1.5, close=3, volume=0,
        )

        labeled = label_bars(bars)

        assert len(labeled) == 1
        assert labeled[0].window_close == bars[0].window_close

    def test_empty_and_single(self, bar_factory):
        assert label_bars([]) == []
        assert label_bars(bar_factory([1])) == []

    def test_custom_period(self, bar_factory):
        bars = bar_factory([1, 2, 3], period_minutes=5)

        assert len(label_bars(bars, period_minutes=5)) == 2
        assert label_bars(bars, period_minutes=15) == []

    def test_labeled_bar_keeps_bar_fields(self, bar_factory):
        bars = bar_factory([10, 12])

        lb = label_bars(bars)[0]

        assert isinstance(lb, LabeledBar)
        assert (lb.open, lb.high, lb.low, lb.close, lb.volume) == (
            bars[0].open, bars[0].high, bars[0].low, bars[0].close, bars[0].volume
        )
        assert lb.to_dict()["label"] == 1

    def test_at_most_n_minus_one(self, random_walk_bars):
        assert len(label_bars(random_walk_bars)) <= len(random_walk_bars) - 1
