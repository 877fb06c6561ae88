"""
income_engine/pastperf_scorer.py
--------------------------------
Past-performance score built from non-overlapping "rungs" of the trailing
year.

The cumulative windows overlap (the 52-week return contains the 4-week
return), so averaging them directly would count recent weeks several times.
Dividing out the earlier compounding isolates each slice::

    g_0_4   = g4
    g_5_13  = g13 / g4
    g_14_26 = g26 / g13
    g_27_52 = g52 / g26

Each rung is then expressed as an implied weekly compounding rate so that
short and long slices are comparable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from income_engine.config import RUNG_WEEKS
from income_engine.enums import PastPerfMode
from income_engine.models import ReturnWindow


@dataclass(frozen=True)
class PastPerformance:
    """Rung returns, their weekly rates and the aggregated raw score."""
    rung_returns: Tuple[float, float, float, float]
    weekly_rates: Tuple[float, float, float, float]
    raw: float


def weekly_cagr(r: float, weeks: float) -> float:
    """
    Implied weekly compounding rate of a net return *r* earned over *weeks*.

    ``(1 + r) ** (1 / weeks) - 1``, floored at ``-1.0`` when ``r <= -1``
    (total loss) so a fractional power never sees a non-positive base.
    """
    if r <= -1.0:
        return -1.0
    return (1.0 + r) ** (1.0 / weeks) - 1.0


class PastPerformanceScorer:
    """Stateless rung decomposition and scoring."""

    @staticmethod
    def rungs_from_window(window: ReturnWindow) -> Optional[Tuple[float, float, float, float]]:
        """
        Net returns of the four non-overlapping rungs.

        Returns ``None`` when the window is incomplete or when an earlier
        growth factor is not positive (the later rung is then undefined).
        """
        if not window.is_complete:
            return None

        g4, g13, g26, g52 = (1.0 + r for r in window.as_tuple())
        if g4 <= 0 or g13 <= 0 or g26 <= 0:
            return None

        return (g4 - 1.0, g13 / g4 - 1.0, g26 / g13 - 1.0, g52 / g26 - 1.0)

    @staticmethod
    def pastperf_flat_from_rungs(
        r_0_4: float,
        r_5_13: float,
        r_14_26: float,
        r_27_52: float,
        mode: PastPerfMode = PastPerfMode.EQUAL,
    ) -> PastPerformance:
        """
        Aggregate four rung returns into ``pastperf_raw``.

        ``mode=EQUAL`` takes the simple mean of the weekly rates;
        ``mode=TIME`` weights each rate by its rung length in weeks.
        """
        mode = PastPerfMode(mode)
        rungs = (r_0_4, r_5_13, r_14_26, r_27_52)
        rates = tuple(weekly_cagr(r, w) for r, w in zip(rungs, RUNG_WEEKS))

        if mode is PastPerfMode.TIME:
            raw = sum(rate * w for rate, w in zip(rates, RUNG_WEEKS)) / sum(RUNG_WEEKS)
        else:
            raw = sum(rates) / len(rates)

        return PastPerformance(rung_returns=rungs, weekly_rates=rates, raw=raw)

    @staticmethod
    def score_window(
        window: ReturnWindow,
        mode: PastPerfMode = PastPerfMode.EQUAL,
    ) -> Optional[PastPerformance]:
        rungs = PastPerformanceScorer.rungs_from_window(window)
        if rungs is None:
            return None
        return PastPerformanceScorer.pastperf_flat_from_rungs(*rungs, mode=mode)
