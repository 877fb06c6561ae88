"""
income_engine/snapshot_loader.py
--------------------------------
Reads the inputs of one engine run from disk.

Snapshot layout (JSON)::

    {
      "universe":     [{"ticker": "JEPI", "price": 57.1, "strategy": "Covered Call",
                        "window": {"4w": 0.01, "13w": 0.03, "26w": 0.05, "52w": 0.09},
                        ...}],
      "prices":       {"JEPI": 57.2},
      "growth_cache": {"JEPI": {"4w": 0.011, "13w": 0.031, "26w": 0.052, "52w": 0.094}},
      "positions":    [{"ticker": "JEPI", "shares": 100, "current_value": 5720,
                        "signal": 1}],
      "config":       {"top_k": 5, "weighting": "risk_parity"}
    }

Only ``universe`` is required.  A position may carry ``drip_signal`` and
``rsi`` instead of ``signal``; the composite signal is then derived.

Price histories are CSV files with ``Date`` and ``Adj Close`` columns.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pandas as pd

from income_engine.config import WINDOW_WEEKS
from income_engine.errors import ConfigurationError, SnapshotError
from income_engine.models import (
    Instrument,
    Position,
    ReturnWindow,
    WeightingConfig,
    finite_or_none,
)
from income_engine.signal_engine import SignalEngine

logger = logging.getLogger(__name__)

_INSTRUMENT_FIELDS = {f.name for f in fields(Instrument)} - {"window"}
_POSITION_FIELDS = {f.name for f in fields(Position)}
_CONFIG_FIELDS = {f.name for f in fields(WeightingConfig)}


@dataclass
class Snapshot:
    """Everything one run needs: universe, quotes, growth windows, holdings."""
    universe: List[Instrument] = field(default_factory=list)
    prices: Dict[str, float] = field(default_factory=dict)
    growth_cache: Dict[str, Dict[str, Optional[float]]] = field(default_factory=dict)
    positions: List[Position] = field(default_factory=list)
    config: Optional[WeightingConfig] = None


class SnapshotLoader:
    """Parses snapshot files into engine records."""

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @staticmethod
    def load(path) -> Snapshot:
        """
        Read the JSON snapshot at *path*.

        Raises
        ------
        SnapshotError
            If the file is missing, is not valid JSON, or holds malformed
            records.
        """
        path = Path(path)
        if not path.exists():
            raise SnapshotError(f"Snapshot not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"Snapshot {path} is not valid JSON: {exc}") from exc

        snapshot = SnapshotLoader.from_dict(data)
        logger.info(
            "Loaded snapshot %s: %d instruments, %d positions",
            path.name, len(snapshot.universe), len(snapshot.positions),
        )
        return snapshot

    @staticmethod
    def from_dict(data: Mapping) -> Snapshot:
        """Build a :class:`Snapshot` from already-parsed JSON."""
        if not isinstance(data, Mapping):
            raise SnapshotError("Snapshot root must be a JSON object.")
        if not isinstance(data.get("universe"), list):
            raise SnapshotError("Snapshot must contain a 'universe' list.")

        universe = [SnapshotLoader.parse_instrument(item) for item in data["universe"]]
        positions = [SnapshotLoader.parse_position(item) for item in data.get("positions") or []]

        prices = {}
        for ticker, value in (data.get("prices") or {}).items():
            price = finite_or_none(value)
            if price is not None:
                prices[str(ticker).upper()] = price

        growth_cache = {
            str(ticker).upper(): SnapshotLoader._window_mapping(entry)
            for ticker, entry in (data.get("growth_cache") or {}).items()
        }

        config = None
        if data.get("config") is not None:
            config = SnapshotLoader.parse_config(data["config"])

        return Snapshot(
            universe=universe,
            prices=prices,
            growth_cache=growth_cache,
            positions=positions,
            config=config,
        )

    @staticmethod
    def load_history(path) -> pd.DataFrame:
        """
        Read one price-history CSV (``Date``, ``Adj Close``).

        Raises
        ------
        SnapshotError
            If the file is missing, empty, or lacks the required columns.
        """
        path = Path(path)
        if not path.exists():
            raise SnapshotError(f"Price history not found: {path}")
        try:
            df = pd.read_csv(path, parse_dates=["Date"])
        except (ValueError, pd.errors.EmptyDataError) as exc:
            raise SnapshotError(f"Unreadable price history {path}: {exc}") from exc

        if "Adj Close" not in df.columns:
            raise SnapshotError(f"Price history {path} has no 'Adj Close' column.")
        if df.empty:
            raise SnapshotError(f"Price history {path} contains no rows.")
        return df

    # ------------------------------------------------------------------
    # Record parsers
    # ------------------------------------------------------------------

    @staticmethod
    def parse_instrument(item: Mapping) -> Instrument:
        ticker = SnapshotLoader._ticker(item, "universe")
        kwargs = {k: v for k, v in item.items() if k in _INSTRUMENT_FIELDS}
        kwargs["ticker"] = ticker
        for key in ("price", "total_return_1y", "volatility", "max_drawdown",
                    "risk_score", "yield_ttm", "composite_score"):
            if key in kwargs:
                kwargs[key] = finite_or_none(kwargs[key])

        if kwargs.get("trading_days") is not None:
            days = finite_or_none(kwargs["trading_days"])
            if days is None or days < 0:
                raise SnapshotError(
                    f"Instrument {ticker!r} has an invalid 'trading_days': "
                    f"{kwargs['trading_days']!r}."
                )
            kwargs["trading_days"] = int(days)

        window = item.get("window")
        if window is not None:
            values = SnapshotLoader._window_mapping(window)
            kwargs["window"] = ReturnWindow.from_values(*values.values())
        return Instrument(**kwargs)

    @staticmethod
    def parse_position(item: Mapping) -> Position:
        ticker = SnapshotLoader._ticker(item, "positions")
        kwargs = {k: v for k, v in item.items() if k in _POSITION_FIELDS}
        kwargs["ticker"] = ticker

        for key in ("shares", "current_value"):
            value = finite_or_none(item.get(key))
            if value is None:
                raise SnapshotError(f"Position {ticker!r} needs a numeric {key!r}.")
            kwargs[key] = value

        if "signal" not in item and ("drip_signal" in item or "rsi" in item):
            kwargs["signal"] = int(SignalEngine.composite_signal(item.get("drip_signal"), item.get("rsi")))

        try:
            return Position(**kwargs)
        except ConfigurationError as exc:
            raise SnapshotError(str(exc)) from exc

    @staticmethod
    def parse_config(item: Mapping) -> WeightingConfig:
        if not isinstance(item, Mapping):
            raise SnapshotError("'config' must be a JSON object.")
        unknown = set(item) - _CONFIG_FIELDS
        if unknown:
            raise SnapshotError(f"Unknown config keys: {sorted(unknown)}")
        return WeightingConfig(**item)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ticker(item, section: str) -> str:
        if not isinstance(item, Mapping) or not item.get("ticker"):
            raise SnapshotError(f"Every '{section}' entry needs a 'ticker'.")
        return str(item["ticker"]).strip().upper()

    @staticmethod
    def _window_mapping(entry) -> Dict[str, Optional[float]]:
        if not isinstance(entry, Mapping):
            raise SnapshotError(f"Growth window must be an object keyed {list(WINDOW_WEEKS)}.")
        return {key: finite_or_none(entry.get(key)) for key in WINDOW_WEEKS}
