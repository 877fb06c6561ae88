"""
income_engine/constants.py
--------------------------
Labels, registries and fixed texts shared across modules.

Placing these here keeps the report layer (AdviceReport) and the processing
layers (CandidateSelector, PortfolioAdvisor) aligned on a single source of
truth without creating circular imports.
"""

from __future__ import annotations

from income_engine.enums import ScoreSource


# ---------------------------------------------------------------------------
# Score source → ScoreRecord attribute
# ---------------------------------------------------------------------------

SCORE_FIELDS: dict = {
    ScoreSource.TREND:    "trend_score",
    ScoreSource.RET1Y:    "ret1y_score",
    ScoreSource.PASTPERF: "pastperf_score",
    ScoreSource.BLEND:    "blend_score",
}


# ---------------------------------------------------------------------------
# Momentum badges
# ---------------------------------------------------------------------------
# Keyed by (up_count, down_count) of the three Ladder-Delta arrows.
# Anything not listed is "Mixed / choppy".

BADGE_LABELS: dict = {
    (3, 0): ("Strong uptrend",       "green"),
    (2, 0): ("Uptrend (moderate)",   "green"),
    (0, 3): ("Strong downtrend",     "red"),
    (0, 2): ("Downtrend (moderate)", "red"),
}

BADGE_MIXED: tuple = ("Mixed / choppy", "yellow")


# ---------------------------------------------------------------------------
# Portfolio health labels (lower bound, label)
# ---------------------------------------------------------------------------

HEALTH_LABELS: tuple = (
    (80, "Excellent"),
    (70, "Good"),
    (60, "Fair"),
    (40, "Needs Improvement"),
    (0,  "Poor"),
)


# ---------------------------------------------------------------------------
# Aggregate diagnostics → recommendation texts
# ---------------------------------------------------------------------------
# Each entry fires when its dimension falls on the wrong side of the
# threshold.  Text placeholders are filled with the observed value.

ANALYSIS_RECOMMENDATIONS: dict = {
    "diversification": (
        60,
        "Diversification is weak ({value}/100). Add positions across "
        "different income strategies.",
    ),
    "risk": (
        60,
        "Portfolio risk is elevated ({value}/100). Consider lower-volatility "
        "income instruments.",
    ),
    "yield_balance": (
        70,
        "Average yield sits outside the 6-15% sweet spot (balance "
        "{value}/100). Rebalance toward steadier payers.",
    ),
    "trend_alignment": (
        50,
        "Most holdings are not in buy territory (alignment {value}/100). "
        "Review positions with sell signals.",
    ),
}

FEW_POSITIONS_TEXT: str = (
    "Only {count} positions held. Consider adding more for diversification "
    "(target: 8-15)."
)
MANY_POSITIONS_TEXT: str = (
    "{count} positions may be over-diversified. Consider consolidating into "
    "the strongest performers."
)
HEALTHY_TEXTS: tuple = (
    "Portfolio is well balanced for income investing. Keep monitoring "
    "distributions and momentum.",
    "Rebalance when positions drift more than 3% from their targets.",
)
