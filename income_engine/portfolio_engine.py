"""
income_engine/portfolio_engine.py
---------------------------------
Pure transformation engine: instrument universe → weighted portfolio.

Design contract:
  - No I/O, no persistence
  - Scoring is delegated to CandidateSelector, weights to WeightAllocator
  - Fully deterministic and stateless (all methods are @staticmethod)
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence

from income_engine.models import (
    Instrument,
    PortfolioEntry,
    ScoreRecord,
    WeightingConfig,
)
from income_engine.selection_engine import CandidateSelector
from income_engine.weight_allocator import WeightAllocator

logger = logging.getLogger(__name__)

# Score fields copied verbatim from ScoreRecord onto PortfolioEntry.
_DIAGNOSTIC_FIELDS = (
    "volatility",
    "trend_raw",
    "ret1y_raw",
    "pastperf_raw",
    "trend_score",
    "ret1y_score",
    "pastperf_score",
    "blend_score",
    "badge",
    "drip_signal",
)


class PortfolioEngine:
    """
    Build a capital allocation from a universe of income instruments.

    Pipeline::

        universe
            → eligibility filter   (price, optional minimum history)
            → CandidateSelector    (score, normalise, top-K)
            → WeightAllocator      (raw weights, cap-and-normalise)
            → assemble             (dollars and share counts)

    Every returned entry carries the diagnostic score fields of its
    candidate so the result can be explained and tested end to end.
    """

    # ------------------------------------------------------------------ #
    #  Public entry point
    # ------------------------------------------------------------------ #

    @staticmethod
    def build_portfolio(
        universe: Sequence[Instrument],
        config: WeightingConfig,
        prices: Optional[Mapping[str, float]] = None,
        growth_cache: Optional[Mapping[str, Mapping]] = None,
    ) -> List[PortfolioEntry]:
        """
        Select and weight the top candidates of *universe*.

        Parameters
        ----------
        universe:
            Instruments to choose from.
        config:
            :class:`WeightingConfig` — top-K, score source, weighting
            method, cap, capital, share rounding, past-performance mode.
        prices:
            ``{ticker: latest price}``; falls back to ``Instrument.price``.
        growth_cache:
            ``{ticker: {"4w": r, "13w": r, "26w": r, "52w": r}}``; falls
            back to ``Instrument.window``.

        Returns
        -------
        List[PortfolioEntry]
            Sorted by score source descending.  Empty when no instrument
            has a usable score; missing data never raises.

        Raises
        ------
        ConfigurationError
            Only for invalid configuration, never for missing data.
        """
        logger.info(
            "Building portfolio from %d instruments (source=%s, weighting=%s, top_k=%d)",
            len(universe), config.score_source.value, config.weighting.value, config.top_k,
        )

        eligible = PortfolioEngine._eligible(universe, config.min_trading_days)

        records = CandidateSelector.score_universe(
            eligible,
            prices=prices,
            growth_cache=growth_cache,
            pastperf_mode=config.pastperf_mode,
            trend_noise=config.trend_noise,
        )
        CandidateSelector.normalize(records)

        selected = CandidateSelector.select(records, config.score_source, config.top_k)
        if not selected:
            return []

        weights = WeightAllocator.allocate(selected, config.weighting, config.max_weight)
        entries = PortfolioEngine.assemble(
            selected, weights, config.capital, config.round_shares
        )

        logger.info(
            "Portfolio built: %d positions, total weight %.4f",
            len(entries), sum(e.weight for e in entries),
        )
        return entries

    @staticmethod
    def assemble(
        candidates: Sequence[ScoreRecord],
        weights: Sequence[float],
        capital: float,
        round_shares: bool = True,
    ) -> List[PortfolioEntry]:
        """
        Turn weights into dollar allocations and share counts.

        ``dollars = weight × capital``; ``shares = floor(dollars / price)``
        when *round_shares* is set, else the exact fraction;
        ``allocation_rounded = shares × price``.
        """
        entries = []
        for record, weight in zip(candidates, weights):
            dollars = float(weight) * capital
            shares = dollars / record.price
            if round_shares:
                shares = math.floor(shares)

            entries.append(PortfolioEntry(
                ticker=record.ticker,
                weight=float(weight),
                shares=shares,
                price=record.price,
                allocation_dollars=dollars,
                allocation_rounded=shares * record.price,
                **{f: getattr(record, f) for f in _DIAGNOSTIC_FIELDS},
            ))
        return entries

    @staticmethod
    def portfolio_summary(entries: Sequence[PortfolioEntry], capital: float) -> Dict[str, float]:
        """
        Structured summary of an assembled portfolio.

        Returns
        -------
        dict
            ``invested``             — Σ allocation_rounded
            ``cash_remaining``       — capital left after share rounding
            ``weighted_return_1y``   — Σ wᵢ · ret1yᵢ  (missing returns count as 0)
            ``portfolio_volatility`` — √Σ(wᵢ² · σᵢ²) (independent-instrument assumption)
            ``max_weight``           — largest single weight
        """
        if not entries:
            return {
                "invested":             0.0,
                "cash_remaining":       float(capital),
                "weighted_return_1y":   0.0,
                "portfolio_volatility": 0.0,
                "max_weight":           0.0,
            }

        invested = sum(e.allocation_rounded for e in entries)
        weighted_return = sum(e.weight * (e.ret1y_raw or 0.0) for e in entries)

        # Independent-instrument variance: σp² = Σ(wᵢ² · σᵢ²)
        variance = sum((e.weight ** 2) * ((e.volatility or 0.0) ** 2) for e in entries)

        return {
            "invested":             invested,
            "cash_remaining":       capital - invested,
            "weighted_return_1y":   weighted_return,
            "portfolio_volatility": math.sqrt(variance),
            "max_weight":           max(e.weight for e in entries),
        }

    # ------------------------------------------------------------------ #
    #  Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _eligible(
        universe: Sequence[Instrument],
        min_trading_days: Optional[int],
    ) -> List[Instrument]:
        """
        Drop instruments whose known history is shorter than
        *min_trading_days*.  Instruments with unknown history length are
        kept.
        """
        if not min_trading_days:
            return list(universe)

        kept = [
            inst for inst in universe
            if inst.trading_days is None or inst.trading_days >= min_trading_days
        ]
        if len(kept) < len(universe):
            logger.debug(
                "Excluded %d instruments with fewer than %d trading days",
                len(universe) - len(kept), min_trading_days,
            )
        return kept
