"""
income_engine/trend_scorer.py
-----------------------------
Ladder-Delta momentum score and direction badge.

The four cumulative windows are turned into per-week rates so that they are
comparable across horizons::

    p4 = r4/4    p13 = r13/13    p26 = r26/26    p52 = r52/52

and consecutive rates are differenced into momentum deltas::

    d1 = p4 - p13    d2 = p13 - p26    d3 = p26 - p52

A positive delta means the shorter horizon is earning faster than the
longer one (accelerating momentum).  The raw score rewards recent rates,
adds a bonus for acceleration and subtracts a penalty for deceleration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from income_engine.config import (
    BADGE_DELTA_EPS,
    DRIP_BUY_THRESHOLD,
    LADDER_BASE_WEIGHTS,
    LADDER_BONUS_WEIGHTS,
    LADDER_PENALTY_WEIGHT,
    TREND_NOISE_EPS,
    WINDOW_WEEKS,
)
from income_engine.constants import BADGE_LABELS, BADGE_MIXED
from income_engine.enums import TrendArrow
from income_engine.models import Badge, ReturnWindow


@dataclass(frozen=True)
class LadderTrend:
    """Intermediate values of one Ladder-Delta computation."""
    rates: Tuple[float, float, float, float]   # p4, p13, p26, p52
    deltas: Tuple[float, float, float]         # d1, d2, d3
    raw: float

    @property
    def p4(self) -> float:
        return self.rates[0]

    @property
    def p13(self) -> float:
        return self.rates[1]

    @property
    def p26(self) -> float:
        return self.rates[2]

    @property
    def p52(self) -> float:
        return self.rates[3]


class TrendScorer:
    """Stateless Ladder-Delta scoring."""

    @staticmethod
    def ladder_trend_raw(
        r4: float,
        r13: float,
        r26: float,
        r52: float,
        eps: float = TREND_NOISE_EPS,
    ) -> LadderTrend:
        """
        Compute the raw Ladder-Delta score.

        Formula::

            trend_raw = 0.60·p4 + 0.25·p13 + 0.10·p26 + 0.05·p52
                      + 1.00·pos(d1) + 0.70·pos(d2) + 0.50·pos(d3)
                      - 0.50·(neg(d1) + neg(d2) + neg(d3))

        where ``pos(x) = max(0, x - eps)`` and ``neg(x) = max(0, -x - eps)``.

        Parameters
        ----------
        r4, r13, r26, r52 : float
            Fractional cumulative returns over 4/13/26/52 weeks.
        eps : float
            Noise threshold; deltas smaller than this contribute nothing.
        """
        weeks = tuple(WINDOW_WEEKS.values())
        rates = tuple(r / w for r, w in zip((r4, r13, r26, r52), weeks))
        deltas = (
            rates[0] - rates[1],
            rates[1] - rates[2],
            rates[2] - rates[3],
        )

        base = sum(w * p for w, p in zip(LADDER_BASE_WEIGHTS, rates))
        bonus = sum(
            w * max(0.0, d - eps) for w, d in zip(LADDER_BONUS_WEIGHTS, deltas)
        )
        penalty = LADDER_PENALTY_WEIGHT * sum(max(0.0, -d - eps) for d in deltas)

        return LadderTrend(rates=rates, deltas=deltas, raw=base + bonus - penalty)

    @staticmethod
    def score_window(window: ReturnWindow, eps: float = TREND_NOISE_EPS):
        """Ladder-Delta for a complete window, or ``None`` when incomplete."""
        if not window.is_complete:
            return None
        return TrendScorer.ladder_trend_raw(*window.as_tuple(), eps=eps)

    @staticmethod
    def classify_delta(delta: float, eps: float = BADGE_DELTA_EPS) -> TrendArrow:
        if delta > eps:
            return TrendArrow.UP
        if delta < -eps:
            return TrendArrow.DOWN
        return TrendArrow.FLAT

    @staticmethod
    def badge(deltas, eps: float = BADGE_DELTA_EPS) -> Badge:
        """
        Summarise the three deltas as arrows plus a label and colour.

        ======================  ==========================  ======
        Pattern                 Label                       Colour
        ======================  ==========================  ======
        3 up                    Strong uptrend              green
        2 up, 0 down            Uptrend (moderate)          green
        3 down                  Strong downtrend            red
        2 down, 0 up            Downtrend (moderate)        red
        anything else           Mixed / choppy              yellow
        ======================  ==========================  ======
        """
        arrows = [TrendScorer.classify_delta(d, eps) for d in deltas]
        ups = arrows.count(TrendArrow.UP)
        downs = arrows.count(TrendArrow.DOWN)
        label, color = BADGE_LABELS.get((ups, downs), BADGE_MIXED)
        return Badge(
            arrows="".join(a.value for a in arrows),
            label=label,
            color=color,
        )

    @staticmethod
    def drip_signal(trend: LadderTrend) -> int:
        """
        Buy / hold / sell position implied by the Ladder-Delta alone.

        * ``+1`` — score above the buy threshold and every delta positive
        * ``-1`` — negative score, or the most recent delta not positive
        * ``0``  — otherwise
        """
        d1, d2, d3 = trend.deltas
        if trend.raw > DRIP_BUY_THRESHOLD and d1 > 0 and d2 > 0 and d3 > 0:
            return 1
        if trend.raw < 0 or d1 <= 0:
            return -1
        return 0
