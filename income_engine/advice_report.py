"""
income_engine/advice_report.py
------------------------------
Plain-text and tabular rendering of engine output.

Design contract:
  - Does NOT compute scores or weights
  - Does NOT mutate portfolios or advice
  - Only formats PortfolioEngine / PortfolioAdvisor output
  - Fully stateless (all methods are @staticmethod)
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import pandas as pd

from income_engine.constants import HEALTH_LABELS
from income_engine.models import PortfolioAdvice, PortfolioEntry
from income_engine.portfolio_engine import PortfolioEngine

_RULE = "-" * 64

# Column order of the recommendation export.
_EXPORT_COLUMNS = [
    "kind", "ticker", "action", "priority", "confidence",
    "current_value", "current_allocation", "target_value",
    "target_allocation", "target_shares", "reason",
]


def _section(title: str) -> str:
    return f"{_RULE}\n{title}\n{_RULE}"


def _pct(value) -> str:
    return "n/a" if value is None else f"{value * 100:.2f}%"


class AdviceReport:
    """
    Human-readable reports for the CLI.

    Entry points::

        text = AdviceReport.format_portfolio(entries, capital)
        text = AdviceReport.format_advice(advice)
        AdviceReport.export_csv(advice, "advice.csv")
    """

    @staticmethod
    def health_label(score: float) -> str:
        """Excellent ≥ 80, Good ≥ 70, Fair ≥ 60, Needs Improvement ≥ 40, else Poor."""
        for lower, label in HEALTH_LABELS:
            if score >= lower:
                return label
        return HEALTH_LABELS[-1][1]

    # ------------------------------------------------------------------ #
    #  Portfolio
    # ------------------------------------------------------------------ #

    @staticmethod
    def portfolio_frame(entries: Sequence[PortfolioEntry]) -> pd.DataFrame:
        """One row per entry with the allocation and diagnostic columns."""
        rows = []
        for e in entries:
            row = e.to_dict()
            badge = row.pop("badge") or {}
            row["badge"] = badge.get("arrows", "")
            row["badge_label"] = badge.get("label", "")
            rows.append(row)
        return pd.DataFrame(rows)

    @staticmethod
    def format_portfolio(entries: Sequence[PortfolioEntry], capital: float) -> str:
        if not entries:
            return _section("PORTFOLIO") + "\nNo instrument had a usable score. Nothing allocated."

        lines = [
            _section("PORTFOLIO"),
            f"{'Ticker':<8} {'Weight':>8} {'Shares':>10} {'Dollars':>12} "
            f"{'Blend':>7}  Trend",
        ]
        for e in entries:
            blend = "-" if e.blend_score is None else f"{e.blend_score:.1f}"
            arrows = e.badge.arrows if e.badge else ""
            lines.append(
                f"{e.ticker:<8} {_pct(e.weight):>8} {e.shares:>10.2f} "
                f"{e.allocation_rounded:>12,.2f} {blend:>7}  {arrows}"
            )

        summary = PortfolioEngine.portfolio_summary(entries, capital)
        lines += [
            "",
            f"Invested:            {summary['invested']:,.2f} of {capital:,.2f}",
            f"Cash remaining:      {summary['cash_remaining']:,.2f}",
            f"Weighted 1y return:  {_pct(summary['weighted_return_1y'])}",
            f"Est. volatility:     {_pct(summary['portfolio_volatility'])}",
        ]
        return "\n".join(lines)

    # ------------------------------------------------------------------ #
    #  Advice
    # ------------------------------------------------------------------ #

    @staticmethod
    def format_advice(advice: PortfolioAdvice) -> str:
        analysis = advice.portfolio_analysis
        summary = advice.rebalancing_summary

        lines: List[str] = [_section("PORTFOLIO HEALTH")]
        lines.append(
            f"Health: {analysis.health_score}/100 "
            f"({AdviceReport.health_label(analysis.health_score)})"
        )
        lines.append(
            f"Diversification {analysis.diversification_score} | "
            f"Risk {analysis.risk_score} | "
            f"Yield balance {analysis.yield_balance} | "
            f"Trend alignment {analysis.trend_alignment}"
        )
        lines.append(
            f"{analysis.position_count} positions worth {analysis.total_value:,.2f}; "
            f"average yield {_pct(analysis.weighted_avg_yield)}"
        )
        lines += [f"  * {text}" for text in analysis.recommendations]

        lines += ["", _section("POSITIONS")]
        if not advice.target_recommendations:
            lines.append("No positions held.")
        for t in advice.target_recommendations:
            lines.append(
                f"[{t.priority.value:<6}] {t.ticker:<8} {t.action.value:<8} "
                f"{_pct(t.current_allocation):>8} -> {_pct(t.target_allocation):>8} "
                f"({t.target_shares} sh, {t.confidence}%)"
            )
            lines.append(f"         {t.reason}")

        lines += ["", _section("NEW CANDIDATES")]
        if not advice.new_candidate_recommendations:
            lines.append("No new candidates suggested.")
        for c in advice.new_candidate_recommendations:
            lines.append(
                f"[{c.priority.value:<6}] {c.ticker:<8} #{c.rank:<4} "
                f"{c.target_shares} sh @ {c.price:,.2f} = {c.target_value:,.2f} "
                f"({c.confidence}%)"
            )
            lines.append(f"         {c.reason}")

        lines += [
            "",
            _section("REBALANCING"),
            f"Changes: {summary.total_changes}   Sell: {summary.sell_value:,.2f}   "
            f"Buy: {summary.buy_value:,.2f}   Net: {summary.net_change:+,.2f}",
            f"Estimated turnover: {_pct(summary.estimated_turnover)}",
        ]
        return "\n".join(lines)

    # ------------------------------------------------------------------ #
    #  Export
    # ------------------------------------------------------------------ #

    @staticmethod
    def recommendations_frame(advice: PortfolioAdvice) -> pd.DataFrame:
        """Held-position and new-candidate recommendations in one table."""
        rows = []
        for t in advice.target_recommendations:
            row = t.to_dict()
            row["kind"] = "position"
            rows.append(row)
        for c in advice.new_candidate_recommendations:
            row = c.to_dict()
            row.update(kind="new", action="BUY", current_value=0.0, current_allocation=0.0)
            rows.append(row)
        return pd.DataFrame(rows, columns=_EXPORT_COLUMNS)

    @staticmethod
    def export_csv(advice: PortfolioAdvice, path) -> Path:
        """Write :meth:`recommendations_frame` to *path* and return the path."""
        path = Path(path)
        AdviceReport.recommendations_frame(advice).to_csv(path, index=False)
        return path
