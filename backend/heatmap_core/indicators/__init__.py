"""Technical indicators (pure math, no I/O)."""

from heatmap_core.indicators.indicators import (
    AdxResult,
    IndicatorCalculator,
    IndicatorSet,
    MacdResult,
    Series,
    StochRsiResult,
    adx,
    atr,
    average_recent,
    ema,
    ema_from_series,
    last_finite,
    macd,
    mean,
    previous_finite,
    rsi,
    sma,
    std_dev,
    stochastic_rsi,
    true_range,
)

__all__ = [
    "AdxResult",
    "IndicatorCalculator",
    "IndicatorSet",
    "MacdResult",
    "Series",
    "StochRsiResult",
    "adx",
    "atr",
    "average_recent",
    "ema",
    "ema_from_series",
    "last_finite",
    "macd",
    "mean",
    "previous_finite",
    "rsi",
    "sma",
    "std_dev",
    "stochastic_rsi",
    "true_range",
]
