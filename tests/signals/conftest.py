"""
Shared fixtures for signal-stage tests.

Provides labeled bars and feature vectors built from the deterministic
random walk in tests/conftest.py.
"""

from datetime import datetime, timezone

import pytest

from stockwatch.signals.features import FeatureVector, build_features
from stockwatch.signals.labeler import label_bars


@pytest.fixture
def labeled_bars(random_walk_bars):
    """119 labeled bars (the last bar has no successor)."""
    return label_bars(random_walk_bars)


@pytest.fixture
def feature_vectors(labeled_bars, market_context):
    """Feature vectors with market context."""
    return build_features(labeled_bars, "TEST", market_context)


@pytest.fixture
def neutral_features():
    """A FeatureVector with every feature at its neutral value."""
    return FeatureVector(
        timestamp=datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc),
        symbol="TEST",
    )
