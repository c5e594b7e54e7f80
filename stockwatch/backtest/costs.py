"""
Transaction Cost Model in basis points

Equity trades here are sized as a fixed notional of 1 unit, so every cost is
a fraction of that notional, quoted in basis points (1 bp = 0.0001).

Cost Structure:
- Entry cost: charged once when the position opens (default 5 bps)
- Exit cost: charged once when the position closes (default 3 bps)
- Round-trip: entry + exit, subtracted from the gross return

Example:
    gross return +0.20%, costs 5 + 3 bps
    net = 0.0020 - 0.0008 = 0.0012
"""

from dataclasses import dataclass
from typing import Optional

from stockwatch.lib.constants import (
    BPS_PER_UNIT,
    DEFAULT_ENTRY_COST_BPS,
    DEFAULT_EXIT_COST_BPS,
    DEFAULT_SLIPPAGE_FILL_FRACTION,
)


def bps(n: float) -> float:
    """Basis points to a fraction: bps(5) == 0.0005."""
    return n / BPS_PER_UNIT


def apply_round_trip_costs(gross_return: float, cost_bps: float) -> float:
    """Subtract a single round-trip cost (in bps) from a gross return."""
    return gross_return - bps(cost_bps)


def apply_per_side_costs(gross_return: float, entry_bps: float, exit_bps: float) -> float:
    """Subtract separate entry and exit costs (in bps) from a gross return."""
    return gross_return - bps(entry_bps) - bps(exit_bps)


def expected_slippage_bps(
    spread_bps: float,
    fill_fraction: float = DEFAULT_SLIPPAGE_FILL_FRACTION,
) -> float:
    """
    Expected slippage from crossing part of the bid/ask spread.

    With the default fill fraction of 0.5, a 4 bp spread costs 2 bps.
    Never negative.
    """
    return max(0.0, spread_bps * fill_fraction)


@dataclass
class CostConfig:
    """
    Per-side transaction costs in basis points.

    Attributes:
        entry_cost_bps: Cost to open a position
        exit_cost_bps: Cost to close a position
    """
    entry_cost_bps: float = DEFAULT_ENTRY_COST_BPS
    exit_cost_bps: float = DEFAULT_EXIT_COST_BPS

    @property
    def round_trip_bps(self) -> float:
        return self.entry_cost_bps + self.exit_cost_bps

    @property
    def round_trip_fraction(self) -> float:
        """Round-trip cost as a fraction of notional."""
        return bps(self.round_trip_bps)


class BpsCostModel:
    """
    Cost calculator for fixed-notional, one-bar-hold trades.

    Tracks cumulative cost for the current run; call reset() before
    reusing the model for another run.

    Usage:
        model = BpsCostModel(CostConfig(entry_cost_bps=5, exit_cost_bps=3))
        net = model.net_return(0.002)   # 0.0012
        model.record_trade()
    """

    def __init__(self, config: Optional[CostConfig] = None):
        self.config = config or CostConfig()
        self._total_cost = 0.0
        self._total_trades = 0

    def net_return(self, gross_return: float) -> float:
        """Gross return minus entry and exit costs."""
        return apply_per_side_costs(
            gross_return, self.config.entry_cost_bps, self.config.exit_cost_bps
        )

    def record_trade(self) -> float:
        """
        Record a completed round trip and return its cost as a fraction.
        """
        cost = self.config.round_trip_fraction
        self._total_cost += cost
        self._total_trades += 1
        return cost

    def get_total_cost(self) -> float:
        """Sum of round-trip costs across recorded trades (fraction of notional)."""
        return self._total_cost

    def get_total_trades(self) -> int:
        return self._total_trades

    def reset(self) -> None:
        """Reset cumulative tracking (e.g., for a new backtest run)."""
        self._total_cost = 0.0
        self._total_trades = 0

    def __repr__(self) -> str:
        return (
            f"BpsCostModel(entry={self.config.entry_cost_bps:g}bps, "
            f"exit={self.config.exit_cost_bps:g}bps)"
        )
