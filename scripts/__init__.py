"""
Entry point scripts for the stock signal pipeline.

Scripts:
- run_backtest.py: Run the signal backtest across symbols from CSV bars
"""
