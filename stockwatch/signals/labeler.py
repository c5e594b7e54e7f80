"""
Next-bar direction labels.

Each bar is paired with its successor and labeled 1 when the successor's
close is strictly higher, else 0. Pairs that span a gap (anything other than
exactly one period between window closes) are dropped rather than bridged,
and the final bar never receives a label.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Sequence

from stockwatch.lib.constants import DEFAULT_PERIOD_MINUTES
from stockwatch.signals.bars import Bar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabeledBar(Bar):
    """A Bar plus the direction of the following bar's close."""
    label: int = 0

    @classmethod
    def from_bar(cls, bar: Bar, label: int) -> "LabeledBar":
        return cls(
            window_close=bar.window_close,
            open=bar.open,
            high=bar.high,
            low=bar.low,
            close=bar.close,
            volume=bar.volume,
            label=label,
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["label"] = self.label
        return d


def label_bars(
    bars: Sequence[Bar],
    period_minutes: int = DEFAULT_PERIOD_MINUTES,
) -> List[LabeledBar]:
    """
    Label each consecutive bar pair.

    Args:
        bars: Bars ascending by window_close
        period_minutes: Nominal bar size; only pairs exactly this far apart are kept

    Returns:
        LabeledBars in input order, at most len(bars) - 1 of them
    """
    period = timedelta(minutes=period_minutes)
    labeled = []
    dropped = 0

    for cur, nxt in zip(bars, bars[1:]):
        if nxt.window_close - cur.window_close != period:
            dropped += 1
            continue
        labeled.append(LabeledBar.from_bar(cur, 1 if nxt.close > cur.close else 0))

    if dropped:
        logger.debug(f"Dropped {dropped} bar pairs spanning gaps")

    return labeled
