"""
Pytest fixtures for signal pipeline tests.

This module provides:
- Bar factories on an exact 15-minute grid (UTC)
- Deterministic random-walk bar series
- 1-minute bars for aggregation tests
- A benchmark close map for the market-context feature
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from stockwatch.signals.bars import Bar

# 2024-01-02 14:45 UTC = 09:45 New York, on the 15-minute grid
START = datetime(2024, 1, 2, 14, 45, tzinfo=timezone.utc)


def make_bars(closes, start=START, period_minutes=15, spread=0.5):
    """Bars with the given closes, one period apart, open = previous close."""
    bars = []
    prev = closes[0]
    for i, c in enumerate(closes):
        bars.append(Bar(
            window_close=start + timedelta(minutes=i * period_minutes),
            open=float(prev),
            high=float(max(prev, c) + spread),
            low=float(min(prev, c) - spread),
            close=float(c),
            volume=1000.0 + i,
        ))
        prev = c
    return bars


@pytest.fixture
def bar_factory():
    """Expose make_bars to tests."""
    return make_bars


@pytest.fixture
def random_walk_bars():
    """
    Create 120 15-minute bars of a seeded random walk around 100.
    """
    np.random.seed(42)
    returns = np.random.normal(0, 0.002, 120)
    closes = 100.0 * np.cumprod(1 + returns)
    return make_bars(closes.tolist(), spread=0.05)


@pytest.fixture
def minute_bars():
    """
    Create 60 1-minute bars starting on a 15-minute boundary.

    Folds into four complete 15-minute bars.
    """
    np.random.seed(7)
    start = datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)
    closes = 50.0 + np.cumsum(np.random.normal(0, 0.05, 60))
    bars = []
    prev = 50.0
    for i, c in enumerate(closes):
        bars.append(Bar(
            window_close=start + timedelta(minutes=i),
            open=float(prev),
            high=float(max(prev, c) + 0.02),
            low=float(min(prev, c) - 0.02),
            close=float(c),
            volume=float(100 + i),
        ))
        prev = c
    return bars


@pytest.fixture
def market_context(random_walk_bars):
    """Benchmark closes on the same timestamps, rising 0.1% per bar."""
    return {
        b.window_close: 400.0 * (1.001 ** i)
        for i, b in enumerate(random_walk_bars)
    }
