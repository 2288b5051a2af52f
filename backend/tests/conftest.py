"""Shared candle fixtures."""

import math

import pytest

from heatmap_core.models import Candle

START_TIME = 1_700_000_000_000
MINUTE_MS = 60_000


def make_candle(index: int, close: float, spread: float = 0.9, open_: float | None = None) -> Candle:
    """One-minute candle at ``index`` with high/low ``spread`` beyond the body."""
    open_price = close if open_ is None else open_
    open_time = START_TIME + index * MINUTE_MS
    return Candle(
        open_time=open_time,
        open=open_price,
        high=max(open_price, close) + spread,
        low=min(open_price, close) - spread,
        close=close,
        volume=1.0,
        close_time=open_time + MINUTE_MS - 1,
    )


def make_series(closes: list[float], spread: float = 0.9) -> list[Candle]:
    candles = []
    for i, close in enumerate(closes):
        open_ = closes[i - 1] if i > 0 else close
        candles.append(make_candle(i, close, spread, open_))
    return candles


def trending_closes(count: int = 300) -> list[float]:
    closes = []
    for i in range(count):
        base = 200 + i * 0.25 + math.sin(i / 5) * 2
        closes.append(base + math.sin(i / 3) * 0.6)
    return closes


@pytest.fixture
def trending_candles() -> list[Candle]:
    """300 one-minute candles on a noisy uptrend."""
    return make_series(trending_closes(300))


@pytest.fixture
def flat_candles() -> list[Candle]:
    """300 identical candles."""
    return make_series([100.0] * 300)
