"""
Pipeline orchestration.

Key components:
- data_source: Market-data boundary (in-memory and CSV bar sources)
- runner: Per-symbol pipeline (validate, prepare, label, features, score, backtest)
- batch: Multi-symbol runs on a bounded thread pool
"""

from .data_source import (
    BarSource,
    CsvBarSource,
    InMemoryBarSource,
    load_bars_csv,
)
from .runner import (
    SignalPipeline,
    SymbolResult,
    context_map,
)
from .batch import (
    BatchResult,
    BatchRunner,
)

__all__ = [
    # Data sources
    "BarSource",
    "CsvBarSource",
    "InMemoryBarSource",
    "load_bars_csv",
    # Pipeline
    "SignalPipeline",
    "SymbolResult",
    "context_map",
    # Batch
    "BatchResult",
    "BatchRunner",
]
