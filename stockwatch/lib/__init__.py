"""
Shared utilities library for the signal pipeline.

This module provides common utilities used across the codebase:
- constants: Bar sizes, session windows, annualization, default costs
- time_utils: UTC normalization, bar boundaries, RTH checks
- config: Unified configuration loading from YAML and environment variables
- logging_utils: Structured logging with rotation and formatting
- settings_store: Repository for the last-used backtest knobs
"""

from stockwatch.lib.constants import (
    DEFAULT_PERIOD_MINUTES,
    DEFAULT_ENTRY_COST_BPS,
    DEFAULT_EXIT_COST_BPS,
    DEFAULT_LONG_THRESHOLD,
    DEFAULT_CONTEXT_SYMBOL,
    DEFAULT_SYMBOLS,
    RTH_WINDOWS_UTC,
    bars_per_day,
    bars_per_year,
    default_sweep_thresholds,
)

from stockwatch.lib.time_utils import (
    parse_timestamp,
    to_utc,
    floor_to_minutes,
    minute_of_day,
    is_rth_close_utc,
    years_between,
)

from stockwatch.lib.config import (
    StockwatchConfig,
    DataConfig,
    StrategyConfig,
    BatchConfig,
    OutputConfig,
    ConfigValidationError,
    load_config,
    validate_config,
    validate_run_params,
)

from stockwatch.lib.logging_utils import (
    setup_logging,
    get_logger,
    PipelineFormatter,
    log_backtest_summary,
)

from stockwatch.lib.settings_store import (
    BacktestSettings,
    SettingsRepository,
    InMemorySettingsRepository,
    YamlSettingsRepository,
)

__all__ = [
    # Constants
    "DEFAULT_PERIOD_MINUTES",
    "DEFAULT_ENTRY_COST_BPS",
    "DEFAULT_EXIT_COST_BPS",
    "DEFAULT_LONG_THRESHOLD",
    "DEFAULT_CONTEXT_SYMBOL",
    "DEFAULT_SYMBOLS",
    "RTH_WINDOWS_UTC",
    "bars_per_day",
    "bars_per_year",
    "default_sweep_thresholds",
    # Time utilities
    "parse_timestamp",
    "to_utc",
    "floor_to_minutes",
    "minute_of_day",
    "is_rth_close_utc",
    "years_between",
    # Config
    "StockwatchConfig",
    "DataConfig",
    "StrategyConfig",
    "BatchConfig",
    "OutputConfig",
    "ConfigValidationError",
    "load_config",
    "validate_config",
    "validate_run_params",
    # Logging
    "setup_logging",
    "get_logger",
    "PipelineFormatter",
    "log_backtest_summary",
    # Settings
    "BacktestSettings",
    "SettingsRepository",
    "InMemorySettingsRepository",
    "YamlSettingsRepository",
]
