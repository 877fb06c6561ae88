from __future__ import annotations

import math
from typing import Optional

import numpy as np
import pandas as pd

from income_engine.config import WINDOW_WEEKS
from income_engine.models import Instrument, ReturnWindow


class HistoryMetrics:
    """
    Derives scoring inputs from a historical price DataFrame.

    The frame needs a ``Date`` column and an ``Adj Close`` column, so that
    reinvested distributions are reflected in every return.  Only static
    methods are exposed.
    """

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    @staticmethod
    def prepare(df: pd.DataFrame) -> pd.DataFrame:
        """
        Return a sorted, de-duplicated copy with parsed dates and no
        missing prices.

        Raises
        ------
        ValueError
            If ``Date`` or ``Adj Close`` is missing.
        """
        missing = [c for c in ("Date", "Adj Close") if c not in df.columns]
        if missing:
            raise ValueError(f"Price history is missing columns: {missing}")

        out = df[["Date", "Adj Close"]].copy()
        out["Date"] = pd.to_datetime(out["Date"])
        out = out.dropna(subset=["Adj Close"])
        out = out.drop_duplicates(subset="Date", keep="last")
        return out.sort_values("Date").reset_index(drop=True)

    # ------------------------------------------------------------------
    # Window returns
    # ------------------------------------------------------------------

    @staticmethod
    def trailing_return(df: pd.DataFrame, weeks: int) -> Optional[float]:
        """
        Cumulative return over the last *weeks* calendar weeks.

        The start price is the last close on or before ``latest - weeks``.
        Returns ``None`` when the history does not reach back that far or
        the start price is not positive.
        """
        if df.empty:
            return None

        latest = df["Date"].iloc[-1]
        cutoff = latest - pd.Timedelta(weeks=weeks)
        before = df[df["Date"] <= cutoff]
        if before.empty:
            return None

        start = float(before["Adj Close"].iloc[-1])
        end = float(df["Adj Close"].iloc[-1])
        if start <= 0:
            return None
        return end / start - 1.0

    @staticmethod
    def window_returns(df: pd.DataFrame) -> ReturnWindow:
        """The 4/13/26/52-week trailing returns as a :class:`ReturnWindow`."""
        df = HistoryMetrics.prepare(df)
        values = [HistoryMetrics.trailing_return(df, w) for w in WINDOW_WEEKS.values()]
        return ReturnWindow.from_values(*values)

    # ------------------------------------------------------------------
    # Risk metrics
    # ------------------------------------------------------------------

    @staticmethod
    def volatility(df: pd.DataFrame) -> Optional[float]:
        """Annualised volatility = std(daily returns) × √252, or ``None`` with < 2 returns."""
        daily = df["Adj Close"].pct_change().dropna()
        if len(daily) < 2:
            return None
        vol = float(daily.std() * np.sqrt(252))
        return vol if math.isfinite(vol) else None

    @staticmethod
    def max_drawdown(df: pd.DataFrame) -> float:
        """
        Largest peak-to-trough decline as a positive fraction.

        ``0.25`` means a 25% fall from the running peak.  Returns ``0.0``
        for fewer than two rows.
        """
        if len(df) < 2:
            return 0.0
        prices = df["Adj Close"]
        peak = prices.cummax()
        return float(((peak - prices) / peak).max())

    @staticmethod
    def trading_days(df: pd.DataFrame) -> int:
        return int(len(df))

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    @staticmethod
    def instrument_from_history(
        ticker: str,
        df: pd.DataFrame,
        **metadata,
    ) -> Instrument:
        """
        Build an :class:`Instrument` whose price, window, 1-year return,
        volatility, drawdown and history length come from *df*.

        Extra keyword arguments (``name``, ``strategy``, ``yield_ttm``,
        ``risk_score`` …) are passed through unchanged.
        """
        df = HistoryMetrics.prepare(df)
        window = ReturnWindow.from_values(
            *(HistoryMetrics.trailing_return(df, w) for w in WINDOW_WEEKS.values())
        )
        return Instrument(
            ticker=ticker,
            price=float(df["Adj Close"].iloc[-1]) if not df.empty else None,
            total_return_1y=window.r52,
            volatility=HistoryMetrics.volatility(df),
            max_drawdown=HistoryMetrics.max_drawdown(df),
            trading_days=HistoryMetrics.trading_days(df),
            window=window,
            **metadata,
        )
