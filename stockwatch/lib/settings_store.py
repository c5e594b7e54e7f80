"""
Persistence for the last-used backtest knobs.

The knobs (costs, threshold, symbol list) used to live in mutable
browser-storage maps. Here they sit behind a small repository interface
(save/load/clear) that callers receive explicitly, with a YAML-file
implementation for the command line and an in-memory one for tests and
embedding.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from stockwatch.lib.constants import (
    DEFAULT_ENTRY_COST_BPS,
    DEFAULT_EXIT_COST_BPS,
    DEFAULT_LONG_THRESHOLD,
    DEFAULT_SYMBOLS,
    MAX_SETTINGS_SYMBOLS,
)

logger = logging.getLogger(__name__)


@dataclass
class BacktestSettings:
    """User-facing backtest knobs."""
    entry_cost_bps: float = DEFAULT_ENTRY_COST_BPS
    exit_cost_bps: float = DEFAULT_EXIT_COST_BPS
    long_threshold: float = DEFAULT_LONG_THRESHOLD
    symbols: list[str] = field(default_factory=lambda: list(DEFAULT_SYMBOLS))

    @classmethod
    def from_dict(cls, data: dict) -> "BacktestSettings":
        """Build settings from a stored mapping, keeping defaults for missing keys."""
        settings = cls()
        if "entry_cost_bps" in data:
            settings.entry_cost_bps = float(data["entry_cost_bps"])
        if "exit_cost_bps" in data:
            settings.exit_cost_bps = float(data["exit_cost_bps"])
        if "long_threshold" in data:
            settings.long_threshold = float(data["long_threshold"])
        symbols = data.get("symbols")
        if isinstance(symbols, list) and symbols:
            settings.symbols = [str(s) for s in symbols[:MAX_SETTINGS_SYMBOLS]]
        return settings

    def to_dict(self) -> dict:
        return asdict(self)


class SettingsRepository(ABC):
    """Storage contract for BacktestSettings."""

    @abstractmethod
    def load(self) -> Optional[BacktestSettings]:
        """Return stored settings, or None if nothing usable is stored."""

    @abstractmethod
    def save(self, settings: BacktestSettings) -> None:
        """Persist settings, replacing anything stored before."""

    @abstractmethod
    def clear(self) -> None:
        """Remove stored settings."""


class InMemorySettingsRepository(SettingsRepository):
    """Settings kept in process memory."""

    def __init__(self, settings: Optional[BacktestSettings] = None):
        self._data: Optional[dict] = settings.to_dict() if settings else None

    def load(self) -> Optional[BacktestSettings]:
        if self._data is None:
            return None
        return BacktestSettings.from_dict(self._data)

    def save(self, settings: BacktestSettings) -> None:
        self._data = settings.to_dict()

    def clear(self) -> None:
        self._data = None


class YamlSettingsRepository(SettingsRepository):
    """
    Settings stored as a YAML document on disk.

    Unreadable or malformed files are treated as "nothing stored" on load
    (logged as a warning); write errors propagate.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[BacktestSettings]:
        if not self.path.exists():
            return None

        try:
            with open(self.path) as f:
                data = yaml.safe_load(f)
            if not isinstance(data, dict):
                logger.warning(f"Ignoring settings file {self.path}: expected a mapping")
                return None
            return BacktestSettings.from_dict(data)
        except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable settings file {self.path}: {e}")
            return None

    def save(self, settings: BacktestSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.debug(f"Saved settings to {self.path}")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
