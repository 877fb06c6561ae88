"""
income_engine/selection_engine.py
---------------------------------
Turns the raw universe into scored records and picks the top candidates.

Pipeline::

    instruments + prices + growth windows
        → score_universe   (trend / ret1y / pastperf raw values)
        → normalize        (0-100 per criterion, blend)
        → select           (filter on score source, sort, top-K)

Instruments without a positive price are left out silently; so are
instruments whose chosen score is undefined.  Neither is an error.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence

from income_engine.config import BLEND_RET1Y_WEIGHT, BLEND_TREND_WEIGHT, TREND_NOISE_EPS
from income_engine.constants import SCORE_FIELDS
from income_engine.enums import PastPerfMode, ScoreSource
from income_engine.models import Instrument, ScoreRecord, finite_or_none
from income_engine.normalizer import scale_safe
from income_engine.pastperf_scorer import PastPerformanceScorer
from income_engine.trend_scorer import TrendScorer
from income_engine.window_extractor import WindowReturnExtractor

logger = logging.getLogger(__name__)


def resolve_price(
    instrument: Instrument,
    prices: Optional[Mapping[str, float]] = None,
) -> Optional[float]:
    """Latest price from the price lookup, else the instrument's own price."""
    price = finite_or_none((prices or {}).get(instrument.ticker))
    if price is None or price <= 0:
        price = finite_or_none(instrument.price)
    if price is None or price <= 0:
        return None
    return price


class CandidateSelector:
    """
    Score, normalise and rank instruments.

    Design goals
    ------------
    * **Gap-tolerant** — a missing window or return never becomes zero; the
      affected score stays ``None`` and the record is skipped for that source.
    * **Explainable** — raw values, normalised values and the momentum badge
      are all kept on the record.
    """

    # ------------------------------------------------------------------ #
    #  Raw scoring
    # ------------------------------------------------------------------ #

    @staticmethod
    def score_universe(
        instruments: Sequence[Instrument],
        prices: Optional[Mapping[str, float]] = None,
        growth_cache: Optional[Mapping[str, Mapping]] = None,
        pastperf_mode: PastPerfMode = PastPerfMode.EQUAL,
        trend_noise: float = TREND_NOISE_EPS,
    ) -> List[ScoreRecord]:
        """
        Build one :class:`ScoreRecord` per priced instrument with raw scores
        filled in.  Normalised fields are left empty until :meth:`normalize`.
        """
        records: List[ScoreRecord] = []
        skipped = 0

        for inst in instruments:
            price = resolve_price(inst, prices)
            if price is None:
                skipped += 1
                continue

            window = WindowReturnExtractor.extract(inst, growth_cache)
            record = ScoreRecord(
                ticker=inst.ticker,
                price=price,
                window=window,
                volatility=finite_or_none(inst.volatility),
                ret1y_raw=finite_or_none(inst.total_return_1y),
            )

            trend = TrendScorer.score_window(window, eps=trend_noise)
            if trend is not None:
                record.trend_raw = trend.raw
                record.badge = TrendScorer.badge(trend.deltas)
                record.drip_signal = TrendScorer.drip_signal(trend)

            past = PastPerformanceScorer.score_window(window, mode=pastperf_mode)
            if past is not None:
                record.pastperf_raw = past.raw

            records.append(record)

        if skipped:
            logger.debug("Skipped %d instruments without a usable price", skipped)
        return records

    # ------------------------------------------------------------------ #
    #  Normalisation
    # ------------------------------------------------------------------ #

    @staticmethod
    def normalize(records: List[ScoreRecord]) -> List[ScoreRecord]:
        """
        Fill ``trend_score``, ``ret1y_score``, ``pastperf_score`` (0-100) and
        ``blend_score`` in place and return *records*.

        Scaling uses every record of the call, so scores are relative to the
        universe being ranked.
        """
        if not records:
            return records

        for raw_attr, score_attr in (
            ("trend_raw", "trend_score"),
            ("ret1y_raw", "ret1y_score"),
            ("pastperf_raw", "pastperf_score"),
        ):
            raw = [getattr(r, raw_attr) for r in records]
            scaled = scale_safe(raw)
            for record, value, original in zip(records, scaled, raw):
                setattr(record, score_attr, None if original is None else float(value))

        for record in records:
            if record.trend_score is not None and record.ret1y_score is not None:
                record.blend_score = (
                    BLEND_TREND_WEIGHT * record.trend_score
                    + BLEND_RET1Y_WEIGHT * record.ret1y_score
                )

        return records

    # ------------------------------------------------------------------ #
    #  Selection
    # ------------------------------------------------------------------ #

    @staticmethod
    def select(
        records: Sequence[ScoreRecord],
        score_source: ScoreSource,
        top_k: int,
    ) -> List[ScoreRecord]:
        """
        Keep records with a defined *score_source* value, sort them
        descending (ties broken by ticker) and return the first
        ``min(top_k, count)``.  *top_k* is clamped to at least 1.

        Returns an empty list when no record qualifies.
        """
        attr = SCORE_FIELDS[ScoreSource(score_source)]
        eligible = [r for r in records if getattr(r, attr) is not None]

        if not eligible:
            logger.warning(
                "No valid candidates for score source %r among %d records",
                ScoreSource(score_source).value, len(records),
            )
            return []

        eligible.sort(key=lambda r: (-getattr(r, attr), r.ticker))
        selected = eligible[:max(1, int(top_k))]

        logger.info(
            "Selected top %d of %d candidates by %s",
            len(selected), len(eligible), attr,
        )
        return selected
