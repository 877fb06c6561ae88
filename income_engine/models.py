"""
income_engine/models.py
-----------------------
Typed records passed between the engine stages.

One record per entity, with explicit optional fields.  Every record is
created fresh for a single call and can be flattened to plain Python
structures via ``to_dict()``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional

from income_engine.enums import (
    Action,
    PastPerfMode,
    Priority,
    ScoreSource,
    WeightingMethod,
)
from income_engine.errors import ConfigurationError


def _plain(value):
    """Recursively convert dataclasses / enums / tuples to JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


class _Record:
    def to_dict(self) -> dict:
        return _plain(self)


def finite_or_none(value) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


# ---------------------------------------------------------------------------
# Scoring inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReturnWindow(_Record):
    """
    Four trailing cumulative returns (fractions, e.g. ``0.08`` = +8%).

    ``None`` means the horizon is not available.  Zero is a valid return and
    is never used as a placeholder.
    """
    r4: Optional[float] = None
    r13: Optional[float] = None
    r26: Optional[float] = None
    r52: Optional[float] = None

    @classmethod
    def from_values(cls, r4=None, r13=None, r26=None, r52=None) -> "ReturnWindow":
        """Build a window, turning non-numeric / non-finite values into ``None``."""
        return cls(
            r4=finite_or_none(r4),
            r13=finite_or_none(r13),
            r26=finite_or_none(r26),
            r52=finite_or_none(r52),
        )

    @property
    def is_complete(self) -> bool:
        return all(v is not None for v in self.as_tuple())

    def as_tuple(self) -> tuple:
        return (self.r4, self.r13, self.r26, self.r52)


@dataclass
class Instrument(_Record):
    """
    One member of the investable universe, as supplied by upstream data
    collaborators.  Only ``ticker`` is required.
    """
    ticker: str
    name: Optional[str] = None
    price: Optional[float] = None
    total_return_1y: Optional[float] = None
    volatility: Optional[float] = None       # annualised, fraction
    max_drawdown: Optional[float] = None     # positive fraction
    risk_score: Optional[float] = None       # 0-100, higher = riskier
    yield_ttm: Optional[float] = None        # fraction
    strategy: Optional[str] = None
    composite_score: Optional[float] = None
    trading_days: Optional[int] = None
    window: Optional[ReturnWindow] = None    # metadata fallback for growth windows


@dataclass(frozen=True)
class Badge(_Record):
    """Momentum direction summary, e.g. ``"↑↑↔"`` / Uptrend (moderate) / green."""
    arrows: str
    label: str
    color: str


@dataclass
class ScoreRecord(_Record):
    """Raw and normalised scores for one instrument."""
    ticker: str
    price: float
    window: ReturnWindow
    volatility: Optional[float] = None
    trend_raw: Optional[float] = None
    ret1y_raw: Optional[float] = None
    pastperf_raw: Optional[float] = None
    trend_score: Optional[float] = None
    ret1y_score: Optional[float] = None
    pastperf_score: Optional[float] = None
    blend_score: Optional[float] = None
    badge: Optional[Badge] = None
    drip_signal: Optional[int] = None


# ---------------------------------------------------------------------------
# Portfolio construction
# ---------------------------------------------------------------------------

@dataclass
class WeightingConfig(_Record):
    """
    Options for ``PortfolioEngine.build_portfolio``.

    String values are accepted for the enum fields and converted on
    construction; invalid values raise :class:`ConfigurationError`.
    """
    top_k: int = 10
    score_source: ScoreSource = ScoreSource.BLEND
    weighting: WeightingMethod = WeightingMethod.RETURN
    max_weight: Optional[float] = 0.25
    capital: float = 10_000.0
    round_shares: bool = True
    pastperf_mode: PastPerfMode = PastPerfMode.EQUAL
    min_trading_days: Optional[int] = None
    trend_noise: float = 0.0

    def __post_init__(self):
        self.score_source = _coerce(ScoreSource, self.score_source, "score source")
        self.weighting = _coerce(WeightingMethod, self.weighting, "weighting method")
        self.pastperf_mode = _coerce(PastPerfMode, self.pastperf_mode, "past-performance mode")

        try:
            top_k = int(self.top_k)
        except (TypeError, ValueError):
            raise ConfigurationError(f"top_k must be an integer (got {self.top_k!r}).") from None
        if top_k < 1:
            raise ConfigurationError(f"top_k must be at least 1 (got {self.top_k}).")
        self.top_k = top_k

        if not self.capital or self.capital <= 0:
            raise ConfigurationError(f"capital must be positive (got {self.capital}).")

        if self.max_weight is not None and not 0 < self.max_weight < 1:
            raise ConfigurationError(
                f"max_weight must lie strictly between 0 and 1 (got {self.max_weight})."
            )

        if self.min_trading_days is not None and self.min_trading_days < 0:
            raise ConfigurationError(
                f"min_trading_days cannot be negative (got {self.min_trading_days})."
            )

        if self.trend_noise < 0:
            raise ConfigurationError(f"trend_noise cannot be negative (got {self.trend_noise}).")


def _coerce(enum_cls, value, what: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = [m.value for m in enum_cls]
        raise ConfigurationError(
            f"Unknown {what}: {value!r}. Choose from {valid}."
        ) from None


@dataclass
class PortfolioEntry(_Record):
    """One selected instrument with its final weight and allocation."""
    ticker: str
    weight: float
    shares: float
    price: float
    allocation_dollars: float
    allocation_rounded: float
    volatility: Optional[float] = None
    trend_raw: Optional[float] = None
    ret1y_raw: Optional[float] = None
    pastperf_raw: Optional[float] = None
    trend_score: Optional[float] = None
    ret1y_score: Optional[float] = None
    pastperf_score: Optional[float] = None
    blend_score: Optional[float] = None
    badge: Optional[Badge] = None
    drip_signal: Optional[int] = None


# ---------------------------------------------------------------------------
# Advisory
# ---------------------------------------------------------------------------

@dataclass
class Position(_Record):
    """An existing holding."""
    ticker: str
    shares: float
    current_value: float
    signal: int = 0                          # -2 strong sell … 2 strong buy
    rank: Optional[int] = None
    yield_ttm: Optional[float] = None
    strategy: Optional[str] = None
    risk_score: Optional[float] = None

    def __post_init__(self):
        if self.signal not in (-2, -1, 0, 1, 2):
            raise ConfigurationError(
                f"Signal for {self.ticker!r} must be in -2..2 (got {self.signal})."
            )
        self.signal = int(self.signal)


@dataclass
class TargetRecommendation(_Record):
    ticker: str
    current_value: float
    current_allocation: float
    target_value: float
    target_allocation: float
    target_shares: int
    action: Action
    reason: str
    confidence: int
    priority: Priority = Priority.LOW


@dataclass
class NewCandidateRecommendation(_Record):
    ticker: str
    target_value: float
    target_allocation: float
    target_shares: int
    price: float
    rank: int
    confidence: int
    reason: str
    strategy: Optional[str] = None
    priority: Priority = Priority.MEDIUM


@dataclass
class PortfolioAnalysis(_Record):
    total_value: float = 0.0
    position_count: int = 0
    weighted_avg_yield: Optional[float] = None
    diversification_score: int = 0
    risk_score: int = 0
    yield_balance: int = 0
    trend_alignment: int = 0
    health_score: int = 0
    recommendations: List[str] = field(default_factory=list)


@dataclass
class RebalancingSummary(_Record):
    total_changes: int = 0
    sell_value: float = 0.0
    buy_value: float = 0.0
    net_change: float = 0.0
    estimated_turnover: float = 0.0


@dataclass
class PortfolioAdvice(_Record):
    target_recommendations: List[TargetRecommendation]
    new_candidate_recommendations: List[NewCandidateRecommendation]
    portfolio_analysis: PortfolioAnalysis
    rebalancing_summary: RebalancingSummary = field(default_factory=RebalancingSummary)


GrowthCache = Dict[str, Dict[str, Optional[float]]]
