"""
Structured logging utilities for the signal pipeline.

This module provides:
- Configured logging with rotation and formatting
- A formatter that appends structured `extra` fields
- A helper to log backtest summaries consistently

Log Format:
    YYYY-MM-DD HH:MM:SS.mmm [LEVEL] module - message [key=value ...]

Example usage:
    from stockwatch.lib.logging_utils import setup_logging, get_logger

    setup_logging(level="INFO", log_dir="./logs")

    logger = get_logger(__name__)
    logger.info("Backtest complete", extra={"symbol": "AAPL"})
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from stockwatch.lib.time_utils import utc_now

# LogRecord attributes that are never treated as structured extras
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class PipelineFormatter(logging.Formatter):
    """
    Formatter for pipeline logs.

    Features:
    - Millisecond precision UTC timestamps
    - Structured extras appended as key=value
    - Colored output for terminal (optional)
    """

    COLORS = {
        logging.DEBUG: "\033[36m",     # Cyan
        logging.INFO: "\033[32m",      # Green
        logging.WARNING: "\033[33m",   # Yellow
        logging.ERROR: "\033[31m",     # Red
        logging.CRITICAL: "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = False, include_extras: bool = True):
        """
        Initialize formatter.

        Args:
            use_colors: Enable ANSI colors for terminal output
            include_extras: Include extra fields in output
        """
        self.use_colors = use_colors
        self.include_extras = include_extras
        super().__init__("[%(levelname)-8s] %(name)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with timestamp and optional colors."""
        timestamp = utc_now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        message = super().format(record)

        if self.include_extras:
            extras = {
                k: v for k, v in record.__dict__.items()
                if k not in _RESERVED_ATTRS and not k.startswith("_")
            }
            if extras:
                extras_str = " ".join(f"{k}={v}" for k, v in extras.items())
                message = f"{message} [{extras_str}]"

        full_message = f"{timestamp} {message}"

        if self.use_colors and sys.stderr.isatty():
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{full_message}{self.RESET}"

        return full_message


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    use_colors: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Setup application-wide logging configuration.

    Creates handlers for:
    - Console output (stderr, colored if terminal)
    - File output with rotation (if log_dir provided)

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files (optional)
        log_file: Specific log file name (default: stockwatch_YYYY-MM-DD.log)
        use_colors: Enable colored console output
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        Root logger
    """
    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(PipelineFormatter(use_colors=use_colors))
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        if not log_file:
            log_file = f"stockwatch_{utc_now().strftime('%Y-%m-%d')}.log"

        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(PipelineFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name (usually __name__)."""
    return logging.getLogger(name)


def log_backtest_summary(
    logger: logging.Logger,
    summary: Any,
    **kwargs: Any
) -> None:
    """
    Log a BacktestSummary with consistent formatting.

    Args:
        logger: Logger instance
        summary: BacktestSummary (anything with symbol/trades/win_rate/pnl_pct/metrics)
        **kwargs: Additional structured fields
    """
    metrics = summary.metrics
    logger.info(
        f"BACKTEST: {summary.symbol} trades={summary.trades} "
        f"win_rate={summary.win_rate:.1%} pnl={summary.pnl_pct:+.2%} "
        f"sharpe={metrics.sharpe:.2f} max_dd={metrics.max_drawdown:.2%}",
        extra={"symbol": summary.symbol, "trades": summary.trades, **kwargs}
    )
