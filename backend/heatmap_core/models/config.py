"""Timeframe and evaluation configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

ATR_PERIOD = 14
MAX_BAR_LIMIT = 500
BYBIT_REQUEST_LIMIT = 200
MARKOV_WINDOW_BARS = 400
COOLDOWN_BARS = 3

# ATR as a percentage of price; outside these bounds volatility is unusable
ATR_BOUNDS_MIN = 0.5
ATR_BOUNDS_MAX = 10.0

# Percent distance to MA200 below which price is considered on top of it
MA_DISTANCE_TOO_CLOSE_THRESHOLD = 0.25


class StochConfig(BaseModel):
    """Stochastic RSI parameters."""

    model_config = ConfigDict(frozen=True)

    rsi_length: int = 14
    stoch_length: int = 14
    k_smoothing: int = 3
    d_smoothing: int = 3


class TimeframeConfig(BaseModel):
    """Indicator settings for one evaluated timeframe.

    ``value`` is the exchange interval in minutes as a string ("5", "60"...).
    """

    model_config = ConfigDict(frozen=True)

    value: str
    label: str
    rsi_period: int = 14
    stoch: StochConfig = StochConfig()
    weight: float = 1.0

    @property
    def minutes(self) -> int:
        return int(self.value)


TIMEFRAME_CONFIGS: tuple[TimeframeConfig, ...] = (
    TimeframeConfig(
        value="5", label="5m", rsi_period=8, weight=0.5,
        stoch=StochConfig(rsi_length=7, stoch_length=7, k_smoothing=2, d_smoothing=2),
    ),
    TimeframeConfig(
        value="15", label="15m", rsi_period=11, weight=0.7,
        stoch=StochConfig(rsi_length=9, stoch_length=9, k_smoothing=2, d_smoothing=3),
    ),
    TimeframeConfig(
        value="30", label="30m", rsi_period=13, weight=1.0,
        stoch=StochConfig(rsi_length=12, stoch_length=12, k_smoothing=3, d_smoothing=3),
    ),
    TimeframeConfig(
        value="60", label="60m", rsi_period=15, weight=1.3,
        stoch=StochConfig(rsi_length=14, stoch_length=14, k_smoothing=3, d_smoothing=3),
    ),
    TimeframeConfig(
        value="120", label="120m", rsi_period=17, weight=1.5,
        stoch=StochConfig(rsi_length=16, stoch_length=16, k_smoothing=3, d_smoothing=3),
    ),
    TimeframeConfig(
        value="240", label="240m (4h)", rsi_period=20, weight=2.0,
        stoch=StochConfig(rsi_length=21, stoch_length=21, k_smoothing=4, d_smoothing=4),
    ),
    TimeframeConfig(
        value="360", label="360m (6h)", rsi_period=23, weight=2.5,
        stoch=StochConfig(rsi_length=24, stoch_length=24, k_smoothing=4, d_smoothing=4),
    ),
)

TIMEFRAME_WEIGHTS: dict[str, float] = {tf.value: tf.weight for tf in TIMEFRAME_CONFIGS}


def get_timeframe_config(value: str) -> TimeframeConfig | None:
    """Look up a built-in timeframe by its interval value."""
    for tf in TIMEFRAME_CONFIGS:
        if tf.value == value:
            return tf
    return None
