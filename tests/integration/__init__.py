"""Integration tests for the signal pipeline.

These tests validate end-to-end functionality:
- Synthetic bars through label, features, score and backtest
- Batch runs over CSV data directories
- Report files written by the command-line entry point
"""
