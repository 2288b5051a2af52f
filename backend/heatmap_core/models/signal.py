"""Signal, bias and regime enumerations."""

from enum import Enum


class Signal(str, Enum):
    """Discrete trading signal for a timeframe."""

    LONG = "LONG"
    SHORT = "SHORT"
    NONE = "NONE"


class Bias(str, Enum):
    """Price position relative to the 200-period moving average."""

    BULL = "BULL"
    BEAR = "BEAR"
    NEUTRAL = "NEUTRAL"


class Direction(str, Enum):
    """Trend or momentum direction."""

    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class Stage(str, Enum):
    """Where a timeframe sits in the alerting pipeline."""

    TRIGGERED = "triggered"
    COOLDOWN = "cooldown"
    GATED = "gated"
    READY = "ready"


class Regime(str, Enum):
    """Per-bar market regime label."""

    DOWN = "D"
    REVERSAL = "R"
    BASE = "B"
    UP = "U"


class QuantumState(str, Enum):
    """States of the fused probability vector, in tie-break order."""

    DOWN = "Down"
    BASE = "Base"
    REVERSAL = "Reversal"
    UP = "Up"


STATE_FROM_REGIME: dict[Regime, QuantumState] = {
    Regime.DOWN: QuantumState.DOWN,
    Regime.REVERSAL: QuantumState.REVERSAL,
    Regime.BASE: QuantumState.BASE,
    Regime.UP: QuantumState.UP,
}
