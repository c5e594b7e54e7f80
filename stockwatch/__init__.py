"""
Stock signal pipeline: bars -> labels -> features -> probabilities -> backtest.
"""

__version__ = "0.1.0"
