"""Per-bar market regime classification.

Each bar is labelled Down, Base, Reversal or Up from EMA/MA structure,
RSI and Stochastic %K. Cross detection looks back exactly one bar.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from heatmap_core.indicators import IndicatorSet
from heatmap_core.models.signal import Regime


def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def label_regime_bar(
    index: int,
    ema_fast: Sequence[Optional[float]],
    ema_slow: Sequence[Optional[float]],
    ma_long: Sequence[Optional[float]],
    rsi: Sequence[Optional[float]],
    stoch_k: Sequence[Optional[float]],
) -> Regime:
    """Label a single bar.

    Args:
        index: Bar index into every series
        ema_fast: EMA10 series
        ema_slow: EMA50 series
        ma_long: SMA200 series
        rsi: RSI series
        stoch_k: Stochastic RSI %K series

    Returns:
        Regime label for the bar
    """
    fast = ema_fast[index]
    slow = ema_slow[index]
    long_ma = ma_long[index]
    rsi_now = rsi[index]
    k = stoch_k[index]

    if not all(_finite(v) for v in (fast, slow, long_ma, rsi_now, k)):
        return Regime.BASE

    if fast > slow > long_ma:
        return Regime.UP if rsi_now > 60 and k > 60 else Regime.BASE

    if fast < slow < long_ma:
        return Regime.DOWN if rsi_now < 40 and k < 40 else Regime.BASE

    prev = max(0, index - 1)
    prev_fast = ema_fast[prev]
    prev_slow = ema_slow[prev]
    prev_rsi = rsi[prev]

    ema_cross = False
    if _finite(prev_fast) and _finite(prev_slow):
        ema_cross = (prev_fast <= prev_slow and fast > slow) or (
            prev_fast >= prev_slow and fast < slow
        )

    rsi_cross = False
    if _finite(prev_rsi):
        rsi_cross = (prev_rsi <= 50 < rsi_now) or (prev_rsi >= 50 > rsi_now)

    return Regime.REVERSAL if ema_cross or rsi_cross else Regime.BASE


def label_regimes(indicators: IndicatorSet, window: int) -> list[Regime]:
    """Label the trailing ``window`` bars of an indicator set."""
    length = len(indicators.ema10)
    start = max(0, length - window)
    return [
        label_regime_bar(
            i,
            indicators.ema10,
            indicators.ema50,
            indicators.ma200,
            indicators.rsi,
            indicators.stoch.k,
        )
        for i in range(start, length)
    ]
