from enum import Enum, IntEnum


class ScoreSource(Enum):
    """Score field used to rank candidates."""
    TREND = "trend"        # Ladder-Delta momentum
    RET1Y = "ret1y"        # trailing 1-year total return
    PASTPERF = "pastperf"  # non-overlapping rung performance
    BLEND = "blend"        # 70% trend + 30% ret1y


class WeightingMethod(Enum):
    """Raw weight construction for the selected candidates."""
    EQUAL = "equal"
    RETURN = "return"
    RISK_PARITY = "risk_parity"   # inverse volatility


class PastPerfMode(Enum):
    """How the four rung rates are averaged."""
    EQUAL = "equal"   # simple mean
    TIME = "time"     # weeks-weighted mean


class Signal(IntEnum):
    """Composite buy/sell strength for an instrument."""
    STRONG_SELL = -2
    SELL = -1
    HOLD = 0
    BUY = 1
    STRONG_BUY = 2


class Action(Enum):
    """Rebalancing action for an existing position."""
    HOLD = "HOLD"
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    SELL = "SELL"


class Priority(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class TrendArrow(Enum):
    """Direction of a single Ladder-Delta momentum delta."""
    UP = "↑"
    DOWN = "↓"
    FLAT = "↔"
