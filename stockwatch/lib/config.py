"""
Unified configuration management.

This module provides a centralized way to load, validate, and access
configuration for the signal pipeline. It supports:
- YAML file loading
- Environment variable overrides
- Type validation via dataclasses
- Default values from constants

Configuration Hierarchy (highest to lowest priority):
1. Environment variables (STOCKWATCH_*)
2. User-provided config file
3. Default values from constants.py

Example usage:
    config = load_config("config/backtest.yaml")
    validate_config(config)

    print(config.strategy.long_threshold)
    print(config.batch.symbols)
"""

import math
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from stockwatch.lib.constants import (
    DEFAULT_CONTEXT_SYMBOL,
    DEFAULT_ENTRY_COST_BPS,
    DEFAULT_EXIT_COST_BPS,
    DEFAULT_LONG_THRESHOLD,
    DEFAULT_MAX_WORKERS,
    DEFAULT_MIN_BARS,
    DEFAULT_PERIOD_MINUTES,
    DEFAULT_SYMBOLS,
    default_sweep_thresholds,
)

SCORER_NAMES = ("linear", "rule")


# =============================================================================
# Configuration Dataclasses
# =============================================================================

@dataclass
class DataConfig:
    """Configuration for bar loading and preparation."""
    # Directory with one <SYMBOL>.csv per symbol
    data_dir: str = "data/bars"
    # Target bar size in minutes
    period_minutes: int = DEFAULT_PERIOD_MINUTES
    # Input bars are finer than period_minutes and must be aggregated
    aggregate: bool = False
    # Keep only regular-trading-hours bars
    rth_only: bool = False
    # Symbols with fewer bars are skipped
    min_bars: int = DEFAULT_MIN_BARS
    # Benchmark used for the market-context feature (None disables it)
    context_symbol: Optional[str] = DEFAULT_CONTEXT_SYMBOL


@dataclass
class StrategyConfig:
    """Configuration for scoring and the long-only backtest."""
    entry_cost_bps: float = DEFAULT_ENTRY_COST_BPS
    exit_cost_bps: float = DEFAULT_EXIT_COST_BPS
    long_threshold: float = DEFAULT_LONG_THRESHOLD
    # Scorer: 'linear' (reference model) or 'rule'
    scorer: str = "linear"
    sweep_thresholds: list[float] = field(default_factory=default_sweep_thresholds)


@dataclass
class BatchConfig:
    """Configuration for multi-symbol runs."""
    symbols: list[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    max_workers: int = DEFAULT_MAX_WORKERS


@dataclass
class OutputConfig:
    """Configuration for output and logging."""
    output_dir: str = "./results"
    logs_dir: Optional[str] = None
    log_level: str = "INFO"
    # YAML file remembering the last-used knobs (None disables persistence)
    settings_path: Optional[str] = None


@dataclass
class StockwatchConfig:
    """Main configuration container."""
    data: DataConfig = field(default_factory=DataConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    output: OutputConfig = field(default_factory=OutputConfig)


class ConfigValidationError(ValueError):
    """Raised when configuration loading or validation fails."""
    pass


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(
    config_path: Optional[str] = None,
    override_env: bool = True
) -> StockwatchConfig:
    """
    Load configuration from YAML file with optional environment overrides.

    Args:
        config_path: Path to YAML config file (optional)
        override_env: If True, apply environment variable overrides

    Returns:
        StockwatchConfig instance

    Raises:
        FileNotFoundError: If config_path does not exist
        ConfigValidationError: Unparseable YAML or a non-numeric env override
    """
    config = StockwatchConfig()

    if config_path:
        config = _load_from_yaml(config_path, config)

    if override_env:
        config = _apply_env_overrides(config)

    return config


def _load_from_yaml(config_path: str, base_config: StockwatchConfig) -> StockwatchConfig:
    """Load configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Config file {config_path} is not valid YAML: {e}") from e

    if yaml_data is None:
        return base_config

    if not isinstance(yaml_data, dict):
        raise ConfigValidationError(
            f"Config file {config_path} must contain a mapping, got {type(yaml_data).__name__}"
        )

    if "data" in yaml_data:
        base_config.data = _update_dataclass(base_config.data, yaml_data["data"])

    if "strategy" in yaml_data:
        base_config.strategy = _update_dataclass(base_config.strategy, yaml_data["strategy"])

    if "batch" in yaml_data:
        base_config.batch = _update_dataclass(base_config.batch, yaml_data["batch"])

    if "output" in yaml_data:
        base_config.output = _update_dataclass(base_config.output, yaml_data["output"])

    # Top-level shortcut
    if "symbols" in yaml_data:
        base_config.batch.symbols = list(yaml_data["symbols"])

    return base_config


def _update_dataclass(instance: Any, data: dict) -> Any:
    """Update dataclass fields from dictionary."""
    if not data:
        return instance

    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"Config section for {type(instance).__name__} must be a mapping, got {data!r}"
        )

    field_names = {f.name for f in instance.__dataclass_fields__.values()}

    for key, value in data.items():
        normalized_key = key.replace(".", "_").replace("-", "_")

        if normalized_key in field_names:
            setattr(instance, normalized_key, value)

    return instance


def _parse_env(name: str, value: str, cast: Callable[[str], Any]) -> Any:
    try:
        return cast(value)
    except ValueError:
        raise ConfigValidationError(
            f"{name} must be {'an integer' if cast is int else 'a number'}, got {value!r}"
        ) from None


def _apply_env_overrides(config: StockwatchConfig) -> StockwatchConfig:
    """Apply environment variable overrides to config."""

    if env_val := os.getenv("STOCKWATCH_ENTRY_COST_BPS"):
        config.strategy.entry_cost_bps = _parse_env("STOCKWATCH_ENTRY_COST_BPS", env_val, float)

    if env_val := os.getenv("STOCKWATCH_EXIT_COST_BPS"):
        config.strategy.exit_cost_bps = _parse_env("STOCKWATCH_EXIT_COST_BPS", env_val, float)

    if env_val := os.getenv("STOCKWATCH_LONG_THRESHOLD"):
        config.strategy.long_threshold = _parse_env("STOCKWATCH_LONG_THRESHOLD", env_val, float)

    if env_val := os.getenv("STOCKWATCH_DATA_DIR"):
        config.data.data_dir = env_val

    if env_val := os.getenv("STOCKWATCH_SYMBOLS"):
        config.batch.symbols = [s.strip().upper() for s in env_val.split(",") if s.strip()]

    if env_val := os.getenv("STOCKWATCH_MAX_WORKERS"):
        config.batch.max_workers = _parse_env("STOCKWATCH_MAX_WORKERS", env_val, int)

    if env_val := os.getenv("STOCKWATCH_OUTPUT_DIR"):
        config.output.output_dir = env_val

    if env_val := os.getenv("STOCKWATCH_LOG_LEVEL"):
        config.output.log_level = env_val.upper()

    return config


# =============================================================================
# Configuration Validation
# =============================================================================

def _is_number(value: Any) -> bool:
    # bool is an int subclass but `true` is never a valid knob
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _run_param_errors(
    entry_cost_bps: float,
    exit_cost_bps: float,
    long_threshold: float,
) -> list[str]:
    errors = []
    for name, value in (("entry_cost_bps", entry_cost_bps), ("exit_cost_bps", exit_cost_bps)):
        if not _is_number(value) or not math.isfinite(value):
            errors.append(f"{name} must be a finite number, got {value!r}")
        elif value < 0:
            errors.append(f"{name} cannot be negative, got {value}")

    if not _is_number(long_threshold) or not math.isfinite(long_threshold):
        errors.append(f"long_threshold must be a finite number, got {long_threshold!r}")
    elif not 0.0 <= long_threshold <= 1.0:
        errors.append(f"long_threshold must be within [0, 1], got {long_threshold}")

    return errors


def validate_run_params(
    entry_cost_bps: float,
    exit_cost_bps: float,
    long_threshold: float,
) -> None:
    """
    Reject invalid backtest knobs before a run starts.

    Raises:
        ConfigValidationError: Negative or non-finite costs, or a threshold
            outside [0, 1]. Values are never clamped.
    """
    errors = _run_param_errors(entry_cost_bps, exit_cost_bps, long_threshold)
    if errors:
        raise ConfigValidationError("Invalid backtest parameters:\n" +
                                    "\n".join(f"  - {e}" for e in errors))


def validate_config(config: StockwatchConfig) -> list[str]:
    """
    Validate configuration values.

    Args:
        config: StockwatchConfig to validate

    Returns:
        List of validation warnings (empty if valid)

    Raises:
        ConfigValidationError: If critical validation fails
    """
    warnings = []
    errors = _run_param_errors(
        config.strategy.entry_cost_bps,
        config.strategy.exit_cost_bps,
        config.strategy.long_threshold,
    )

    if config.strategy.scorer not in SCORER_NAMES:
        errors.append(
            f"scorer must be one of {', '.join(SCORER_NAMES)}, got {config.strategy.scorer!r}"
        )

    sweep = config.strategy.sweep_thresholds
    if not isinstance(sweep, (list, tuple)):
        errors.append(f"sweep_thresholds must be a list of numbers, got {sweep!r}")
        sweep = []
    for th in sweep:
        if not _is_number(th) or not math.isfinite(th):
            errors.append(f"sweep threshold must be a finite number, got {th!r}")
        elif not 0.0 <= th <= 1.0:
            errors.append(f"sweep threshold {th} is outside [0, 1]")

    for name, value in (
        ("period_minutes", config.data.period_minutes),
        ("max_workers", config.batch.max_workers),
        ("min_bars", config.data.min_bars),
    ):
        if not _is_integer(value):
            errors.append(f"{name} must be an integer, got {value!r}")

    if _is_integer(config.data.period_minutes) and config.data.period_minutes < 1:
        errors.append(f"period_minutes must be >= 1, got {config.data.period_minutes}")

    if _is_integer(config.batch.max_workers) and config.batch.max_workers < 1:
        errors.append(f"max_workers must be >= 1, got {config.batch.max_workers}")

    if _is_integer(config.data.min_bars) and config.data.min_bars < 2:
        warnings.append(
            f"min_bars ({config.data.min_bars}) below 2 cannot produce any labeled bar"
        )

    if not errors and config.strategy.long_threshold < 0.5:
        warnings.append(
            f"long_threshold ({config.strategy.long_threshold}) below 0.5 enters on "
            f"bars the model considers more likely down than up"
        )

    if not config.batch.symbols:
        warnings.append("No symbols configured - batch runs will be empty")

    if errors:
        raise ConfigValidationError("Configuration validation failed:\n" +
                                    "\n".join(f"  - {e}" for e in errors))

    return warnings


# =============================================================================
# Configuration Export
# =============================================================================

def config_to_dict(config: StockwatchConfig) -> dict:
    """Convert StockwatchConfig to a YAML-safe dictionary."""
    return asdict(config)


def save_config(config: StockwatchConfig, path: str) -> None:
    """Save configuration to YAML file."""
    data = config_to_dict(config)

    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
