"""Indicator-bias heuristic: averaged readings to a state probability vector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from heatmap_core.vectors import ProbabilityVector, clamp, normalize_vector, sigmoid

MACD_STD_EPSILON = 1e-6
MACD_FLAT_EPSILON = 1e-3


@dataclass(frozen=True)
class IndicatorReadings:
    """Indicator values averaged across timeframes.

    Any field may be None when no timeframe produced it.
    """

    rsi: Optional[float] = None
    stoch_k: Optional[float] = None
    macd_histogram: Optional[float] = None
    macd_histogram_std: Optional[float] = None
    macd_line: Optional[float] = None
    macd_signal: Optional[float] = None
    adx: Optional[float] = None
    ema_fast: Optional[float] = None
    ema_slow: Optional[float] = None
    ma_long: Optional[float] = None
    ema_diff: Optional[float] = None
    signal_strength: Optional[float] = None
    atr_pct: Optional[float] = None

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.rsi,
                self.stoch_k,
                self.macd_histogram,
                self.adx,
                self.ema_diff,
            )
        )


def macd_z(histogram: Optional[float], histogram_std: Optional[float]) -> float:
    """Histogram in units of its std-dev; raw histogram when the std-dev is ~0."""
    if histogram is None:
        return 0.0
    if histogram_std is not None and histogram_std > MACD_STD_EPSILON:
        return histogram / histogram_std
    return histogram


def structure_alignment(readings: IndicatorReadings) -> int:
    """+1 for fast > slow > long, -1 for fast < slow < long, else 0."""
    fast, slow, long_ma = readings.ema_fast, readings.ema_slow, readings.ma_long
    if fast is None or slow is None or long_ma is None:
        return 0
    if fast > slow > long_ma:
        return 1
    if fast < slow < long_ma:
        return -1
    return 0


def stoch_cross_probability(stoch_k: Optional[float], z: float) -> float:
    """Higher when %K sits near 50 and the MACD impulse is small."""
    if stoch_k is None:
        return 0.0
    closeness = clamp(1.0 - abs(stoch_k - 50.0) / 50.0, 0.0, 1.0)
    return closeness / (1.0 + abs(z))


def build_bias_vector(readings: IndicatorReadings) -> ProbabilityVector:
    """
    Map averaged indicator readings to a probability vector.

    Args:
        readings: Averaged indicator readings

    Returns:
        Normalized vector over Down, Base, Reversal, Up
    """
    z = macd_z(readings.macd_histogram, readings.macd_histogram_std)
    rsi_term = (readings.rsi - 50.0) / 10.0 if readings.rsi is not None else 0.0
    alignment = structure_alignment(readings)

    up = sigmoid(z + rsi_term + (1.0 if alignment > 0 else 0.0))
    down = sigmoid(-z - rsi_term + (1.0 if alignment < 0 else 0.0))

    adx_term = max(0.0, 25.0 - readings.adx) / 10.0 if readings.adx is not None else 0.0
    base = sigmoid(adx_term)

    flat = (
        readings.macd_histogram is not None
        and abs(readings.macd_histogram) < MACD_FLAT_EPSILON
    )
    reversal = sigmoid((1.0 if flat else 0.0) + stoch_cross_probability(readings.stoch_k, z))

    if readings.ema_diff is not None:
        nudge = clamp(readings.ema_diff * 10.0, -1.0, 1.0) * 0.25
        if nudge > 0:
            up += nudge
        else:
            down += -nudge

    if readings.signal_strength is not None:
        strength = clamp(readings.signal_strength / 3.0, -1.0, 1.0)
        if strength > 0:
            up += strength * 0.2
        elif strength < 0:
            down += -strength * 0.2
        else:
            base += 0.1

    return normalize_vector({"Down": down, "Base": base, "Reversal": reversal, "Up": up})
