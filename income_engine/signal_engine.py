"""
income_engine/signal_engine.py
------------------------------
Composite buy/sell signal from the DRIP trend position and RSI.

The advisor consumes signals on a five-step scale::

    2 strong buy   1 buy   0 hold   -1 sell   -2 strong sell
"""

from __future__ import annotations

from typing import Optional

from income_engine.config import (
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    SIGNAL_BANDS,
    SIGNAL_DRIP_WEIGHT,
    SIGNAL_RSI_WEIGHT,
)
from income_engine.enums import Signal
from income_engine.models import finite_or_none


class SignalEngine:
    """Stateless mapping of indicator positions onto :class:`Signal`."""

    @staticmethod
    def rsi_position(rsi: Optional[float]) -> int:
        """``+1`` when oversold, ``-1`` when overbought, ``0`` otherwise or when missing."""
        rsi = finite_or_none(rsi)
        if rsi is None:
            return 0
        if rsi < RSI_OVERSOLD:
            return 1
        if rsi > RSI_OVERBOUGHT:
            return -1
        return 0

    @staticmethod
    def composite_value(drip: Optional[int], rsi: Optional[float] = None) -> float:
        """``0.7·drip + 0.3·rsi_position``; a missing DRIP position counts as 0."""
        return (
            SIGNAL_DRIP_WEIGHT * (drip or 0)
            + SIGNAL_RSI_WEIGHT * SignalEngine.rsi_position(rsi)
        )

    @staticmethod
    def composite_signal(drip: Optional[int], rsi: Optional[float] = None) -> Signal:
        """
        Band the composite value into a :class:`Signal`.

        ======================  ==============
        Composite value         Signal
        ======================  ==============
        ≥ 0.6                   STRONG_BUY
        ≥ 0.2                   BUY
        ≥ -0.2                  HOLD
        ≥ -0.6                  SELL
        below                   STRONG_SELL
        ======================  ==============
        """
        value = SignalEngine.composite_value(drip, rsi)
        for lower_bound, signal in SIGNAL_BANDS:
            if value >= lower_bound:
                return Signal(signal)
        return Signal.STRONG_SELL
