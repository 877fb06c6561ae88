"""
income_engine/window_extractor.py
---------------------------------
Supplies the four trailing cumulative-return windows (4/13/26/52 weeks) for
each instrument.

Source precedence
-----------------
1. The reinvestment-growth cache entry for the ticker, when one exists.
   Entries are mappings keyed ``"4w"``, ``"13w"``, ``"26w"``, ``"52w"``.
2. Otherwise the instrument's own ``window`` metadata.

A horizon that is missing or non-finite comes back as ``None``; it is never
replaced by zero.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from income_engine.config import WINDOW_COMPLETENESS_THRESHOLD, WINDOW_WEEKS
from income_engine.models import Instrument, ReturnWindow

logger = logging.getLogger(__name__)


class WindowReturnExtractor:
    """Stateless lookup of :class:`ReturnWindow` values."""

    @staticmethod
    def extract(
        instrument: Instrument,
        growth_cache: Optional[Mapping[str, Mapping]] = None,
    ) -> ReturnWindow:
        """
        Return the trailing windows for *instrument*.

        Parameters
        ----------
        instrument : Instrument
            Universe record; its ``window`` is the metadata fallback.
        growth_cache : Mapping[str, Mapping] or None
            ``{ticker: {"4w": r, "13w": r, "26w": r, "52w": r}}``.

        Returns
        -------
        ReturnWindow
            Possibly incomplete; callers check ``is_complete``.
        """
        entry = (growth_cache or {}).get(instrument.ticker)
        if entry is not None:
            return WindowReturnExtractor.from_cache_entry(entry)

        if instrument.window is not None:
            return ReturnWindow.from_values(*instrument.window.as_tuple())

        logger.debug("No growth windows for %s", instrument.ticker)
        return ReturnWindow()

    @staticmethod
    def from_cache_entry(entry: Mapping) -> ReturnWindow:
        """Read one growth-cache entry into a :class:`ReturnWindow`."""
        return ReturnWindow.from_values(*(entry.get(key) for key in WINDOW_WEEKS))

    @staticmethod
    def drip_data_complete(
        instruments: Iterable[Instrument],
        growth_cache: Optional[Mapping[str, Mapping]] = None,
        threshold: float = WINDOW_COMPLETENESS_THRESHOLD,
    ) -> bool:
        """
        True when at least *threshold* of *instruments* have all four windows.

        An empty universe is never considered complete.
        """
        instruments = list(instruments)
        if not instruments:
            return False

        complete = sum(
            1 for inst in instruments
            if WindowReturnExtractor.extract(inst, growth_cache).is_complete
        )
        return complete >= len(instruments) * threshold
