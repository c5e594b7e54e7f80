"""
Shared fixtures for pipeline tests.
"""

import pytest

from stockwatch.lib.config import StockwatchConfig
from stockwatch.signals.scorer import BaseScorer


class ConstantScorer(BaseScorer):
    """Scores every vector with the same probability."""

    name = "constant"

    def __init__(self, probability):
        self.probability = probability

    def score(self, features):
        return self.probability


@pytest.fixture
def constant_scorer():
    return ConstantScorer


@pytest.fixture
def pipeline_config():
    """Defaults without a benchmark symbol, two workers, min_bars 30."""
    config = StockwatchConfig()
    config.data.context_symbol = None
    config.batch.max_workers = 2
    return config
