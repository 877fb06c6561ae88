"""
income_engine/config.py
-----------------------
Tunable scoring, allocation and advisory parameters.

Kept separate from income_engine/constants.py (labels, registries and
report texts) so that this file owns only the numbers that shape results.
"""

# ---------------------------------------------------------------------------
# Trailing return windows
# ---------------------------------------------------------------------------
# Horizon keys used by the reinvestment-growth cache, with their length in
# weeks.  Order matters: shortest first.

WINDOW_WEEKS: dict = {
    "4w":  4,
    "13w": 13,
    "26w": 26,
    "52w": 52,
}

# Share of the universe that must have all four windows before rankings are
# ordered by window sum instead of stored composite scores.
WINDOW_COMPLETENESS_THRESHOLD: float = 0.80

# ---------------------------------------------------------------------------
# Ladder-Delta trend score
# ---------------------------------------------------------------------------
# trend_raw = base + bonus - penalty
#   base    = Σ LADDER_BASE_WEIGHTS[i] · p_i      (per-week rates)
#   bonus   = Σ LADDER_BONUS_WEIGHTS[j] · pos(d_j) (accelerating momentum)
#   penalty = LADDER_PENALTY_WEIGHT · Σ neg(d_j)   (decelerating momentum)

LADDER_BASE_WEIGHTS: tuple = (0.60, 0.25, 0.10, 0.05)
LADDER_BONUS_WEIGHTS: tuple = (1.00, 0.70, 0.50)
LADDER_PENALTY_WEIGHT: float = 0.50

# Default noise threshold ε applied inside pos()/neg().
TREND_NOISE_EPS: float = 0.0

# Dead band ε₂ for classifying a delta as ↑ / ↓ / ↔ in the badge.
BADGE_DELTA_EPS: float = 0.0005

# DRIP buy/sell rule: buy needs trend_raw above this and all deltas positive.
DRIP_BUY_THRESHOLD: float = 0.005

# ---------------------------------------------------------------------------
# Past-performance rungs
# ---------------------------------------------------------------------------
# Non-overlapping slices of the trailing year: weeks 0-4, 5-13, 14-26, 27-52.

RUNG_WEEKS: tuple = (4, 9, 13, 26)

# ---------------------------------------------------------------------------
# Score blending
# ---------------------------------------------------------------------------

BLEND_TREND_WEIGHT: float = 0.70
BLEND_RET1Y_WEIGHT: float = 0.30

# Neutral normalised score used when every input is identical (or missing).
NEUTRAL_SCORE: float = 50.0

# ---------------------------------------------------------------------------
# Weight capping
# ---------------------------------------------------------------------------
# cap_and_normalize() is a bounded heuristic, not an exact water-filling
# solver.  With max_weight < 1/n it cannot satisfy the cap and stops after
# this many rounds.

CAP_MAX_ROUNDS: int = 10
CAP_TOLERANCE: float = 1e-12

# ---------------------------------------------------------------------------
# Composite signal (DRIP position + RSI position)
# ---------------------------------------------------------------------------

SIGNAL_DRIP_WEIGHT: float = 0.70
SIGNAL_RSI_WEIGHT: float = 0.30
RSI_OVERSOLD: float = 30.0
RSI_OVERBOUGHT: float = 70.0

# Lower bounds of each composite band, strongest first.
SIGNAL_BANDS: tuple = (
    (0.6,  2),
    (0.2,  1),
    (-0.2, 0),
    (-0.6, -1),
)

# ---------------------------------------------------------------------------
# Portfolio advisor
# ---------------------------------------------------------------------------

# Buy side: (max rank, strong multiplier, normal multiplier, cap,
#            strong confidence, normal confidence)
BUY_TIERS: tuple = (
    (10, 1.60, 1.50, 0.25, 95, 90),
    (25, 1.35, 1.25, 0.20, 80, 75),
)
BUY_UNRANKED_MULTIPLIER: float = 1.10
BUY_UNRANKED_CAP: float = 0.15
BUY_UNRANKED_MAX_ALLOCATION: float = 0.05
BUY_UNRANKED_CONFIDENCE: int = 65

# Sell side
SELL_HEAVY_ALLOCATION: float = 0.15
SELL_HEAVY_MULTIPLIERS: tuple = (0.30, 0.40)   # (strong, normal)
SELL_HEAVY_FLOOR: float = 0.02
SELL_HEAVY_CONFIDENCE: tuple = (90, 85)
SELL_MEDIUM_ALLOCATION: float = 0.05
SELL_MEDIUM_MULTIPLIER: float = 0.60
SELL_MEDIUM_FLOOR: float = 0.01
SELL_MEDIUM_CONFIDENCE: int = 75
SELL_EXIT_CONFIDENCE: int = 80

# Hold side
HOLD_TOP_RANK: int = 15
HOLD_TOP_MULTIPLIER: float = 1.10
HOLD_TOP_CAP: float = 0.18
HOLD_TOP_CONFIDENCE: int = 70
HOLD_TRIM_ALLOCATION: float = 0.12
HOLD_TRIM_MULTIPLIER: float = 0.90
HOLD_TRIM_CONFIDENCE: int = 65
HOLD_DEFAULT_CONFIDENCE: int = 60

# New-candidate suggestions
OPTIMAL_POSITION_COUNT: int = 10
MAX_NEW_CANDIDATES: int = 3
NEW_CANDIDATE_MAX_ALLOCATION: float = 0.10
NEW_CANDIDATE_BUDGET: float = 0.80
STRATEGY_CONCENTRATION_LIMIT: float = 0.35

# Aggregate diagnostics
DEFAULT_RISK_SCORE: float = 50.0
HIGH_RISK_THRESHOLD: float = 70.0
HIGH_RISK_PENALTY: float = 20.0
MAX_POSITION_BALANCE: float = 0.40
