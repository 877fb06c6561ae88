"""
income_engine/ranking.py
------------------------
Immutable ticker → rank table shared by one advisory call.

The table is built once and handed to the advisor as a value, so every
position and every new-candidate suggestion in a run sees the same ranks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from income_engine.models import Instrument
from income_engine.window_extractor import WindowReturnExtractor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingSnapshot:
    """
    Frozen 1-based ranking.

    ``ranks`` is a read-only mapping; ``order`` holds the tickers from best
    to worst.
    """
    order: Tuple[str, ...] = ()
    ranks: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    # ------------------------------------------------------------------ #
    #  Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_order(cls, tickers: Iterable[str]) -> "RankingSnapshot":
        """Snapshot from tickers already sorted best first.  Duplicates keep their first rank."""
        order: List[str] = []
        ranks = {}
        for ticker in tickers:
            if ticker in ranks:
                continue
            order.append(ticker)
            ranks[ticker] = len(order)
        return cls(order=tuple(order), ranks=MappingProxyType(ranks))

    @classmethod
    def build(
        cls,
        universe: Sequence[Instrument],
        growth_cache: Optional[Mapping[str, Mapping]] = None,
    ) -> "RankingSnapshot":
        """
        Rank *universe*.

        When at least 80% of the instruments have all four growth windows,
        order by the window sum ``r4 + r13 + r26 + r52`` (missing horizons
        count as 0), descending, then by ``composite_score`` descending.
        Otherwise order by ``composite_score`` descending.  Remaining ties
        and missing scores fall back to ticker order.
        """
        if WindowReturnExtractor.drip_data_complete(universe, growth_cache):
            def key(inst: Instrument):
                window = WindowReturnExtractor.extract(inst, growth_cache)
                window_sum = sum(r or 0.0 for r in window.as_tuple())
                return (-window_sum, -(inst.composite_score or 0.0), inst.ticker)
            basis = "window sum"
        else:
            def key(inst: Instrument):
                score = inst.composite_score
                return (score is None, -(score or 0.0), inst.ticker)
            basis = "composite score"

        ordered = sorted(universe, key=key)
        logger.debug("Ranked %d instruments by %s", len(ordered), basis)
        return cls.from_order(inst.ticker for inst in ordered)

    # ------------------------------------------------------------------ #
    #  Lookups
    # ------------------------------------------------------------------ #

    def rank_of(self, ticker: str) -> Optional[int]:
        return self.ranks.get(ticker)

    def ranked_tickers(self) -> List[str]:
        return list(self.order)

    def sort_by_rank(self, tickers: Iterable[str]) -> List[str]:
        """Sort *tickers* by rank; unranked tickers go last in their given order."""
        unranked = len(self.order) + 1
        return sorted(tickers, key=lambda t: self.ranks.get(t, unranked))

    def __contains__(self, ticker) -> bool:
        return ticker in self.ranks

    def __len__(self) -> int:
        return len(self.order)
