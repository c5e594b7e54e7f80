"""
Signal and backtest constants.

This module defines the constants shared across the stock-watching signal
pipeline:
- Bar sizes and session lengths (US equities regular trading hours)
- Annualization factors for Sharpe and CAGR
- Default transaction costs and decision threshold
- Default symbol universe and benchmark for market context

All timestamps in the pipeline are UTC; session windows are therefore
expressed as UTC minute-of-day ranges covering both EDT and EST.
"""


# =============================================================================
# Bars and Sessions
# =============================================================================

DEFAULT_PERIOD_MINUTES = 15  # Target bar size for labeling/features

RTH_DURATION_MINUTES = 390  # 09:30-16:00 New York = 6.5 hours
TRADING_DAYS_PER_YEAR = 252

# 09:30-16:00 New York expressed in UTC minutes-from-midnight.
# EDT: 13:30-20:00 UTC, EST: 14:30-21:00 UTC (both inclusive of the close).
RTH_WINDOWS_UTC = (
    (13 * 60 + 30, 20 * 60),
    (14 * 60 + 30, 21 * 60),
)

DAYS_PER_YEAR = 365.25
SECONDS_PER_YEAR = DAYS_PER_YEAR * 24 * 3600
MIN_CAGR_YEARS = 1 / 365  # Floor for CAGR elapsed time


def bars_per_day(period_minutes: int = DEFAULT_PERIOD_MINUTES) -> int:
    """Number of full bars in one regular session for a bar size."""
    return max(1, RTH_DURATION_MINUTES // period_minutes)


def bars_per_year(period_minutes: int = DEFAULT_PERIOD_MINUTES) -> int:
    """
    Annualization factor for per-bar returns.

    15-minute bars: 252 * 26 = 6552.
    """
    return TRADING_DAYS_PER_YEAR * bars_per_day(period_minutes)


# =============================================================================
# Costs and Thresholds
# =============================================================================

BPS_PER_UNIT = 10_000  # 1 bp = 0.01% = 0.0001

DEFAULT_ENTRY_COST_BPS = 5.0
DEFAULT_EXIT_COST_BPS = 3.0
DEFAULT_LONG_THRESHOLD = 0.62
DEFAULT_SLIPPAGE_FILL_FRACTION = 0.5

# Threshold sweep grid (inclusive)
SWEEP_THRESHOLD_START = 0.54
SWEEP_THRESHOLD_END = 0.70
SWEEP_THRESHOLD_STEP = 0.02


# =============================================================================
# Universe
# =============================================================================

DEFAULT_CONTEXT_SYMBOL = "SPY"
DEFAULT_MIN_BARS = 30  # Symbols with fewer bars are skipped by the batch
MAX_SETTINGS_SYMBOLS = 64
DEFAULT_MAX_WORKERS = 4

DEFAULT_SYMBOLS = (
    "SPY", "QQQ", "IWM", "AAPL", "MSFT", "NVDA", "AMZN", "GOOGL", "META",
    "TSLA", "AVGO", "AMD", "SMCI", "COIN", "MARA", "RIOT", "PLTR", "CRWD",
    "PANW", "SNOW", "NET", "SHOP", "TTD", "UBER", "XLE", "XLF", "XLV",
    "XLK", "XLC", "XLY",
)


def default_sweep_thresholds() -> list[float]:
    """Thresholds 0.54, 0.56, ..., 0.70 rounded to two decimals."""
    thresholds = []
    t = SWEEP_THRESHOLD_START
    while t <= SWEEP_THRESHOLD_END + 1e-9:
        thresholds.append(round(t, 2))
        t += SWEEP_THRESHOLD_STEP
    return thresholds
