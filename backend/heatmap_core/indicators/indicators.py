"""Technical indicators for heatmap snapshots.

Every function returns a list the same length as its input. Slots that
have not accumulated enough samples yet are ``None`` rather than NaN so
that callers can tell "no value yet" apart from a computed number.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from heatmap_core.models.candle import Candle

Series = list[Optional[float]]

DEFAULT_PERIOD = 14


def _is_finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _normalize_period(period: float) -> int:
    return max(1, int(math.floor(period)))


# =============================================================================
# Moving averages
# =============================================================================

def sma(values: Sequence[float], period: int) -> Series:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of price values
        period: SMA period

    Returns:
        List of SMA values, first valid value at index ``period - 1``
    """
    p = _normalize_period(period)
    result: Series = [None] * len(values)
    if len(values) < p:
        return result

    window_sum = 0.0
    for i, value in enumerate(values):
        window_sum += value
        if i >= p:
            window_sum -= values[i - p]
        if i >= p - 1:
            result[i] = window_sum / p

    return result


def ema(values: Sequence[float], period: int) -> Series:
    """
    Calculate Exponential Moving Average.

    The seed is the simple average of the first ``period`` values.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        List of EMA values (same length as input, None for warmup)
    """
    p = _normalize_period(period)
    result: Series = [None] * len(values)
    if len(values) < p:
        return result

    previous = float(np.mean(np.asarray(values[:p], dtype=np.float64)))
    result[p - 1] = previous

    multiplier = 2.0 / (p + 1)
    for i in range(p, len(values)):
        previous = (values[i] - previous) * multiplier + previous
        result[i] = previous

    return result


def ema_from_series(values: Sequence[Optional[float]], period: int) -> Series:
    """EMA over a gappy series.

    Missing slots are skipped; the seed is the mean of the first
    ``period`` present values.
    """
    p = _normalize_period(period)
    result: Series = [None] * len(values)
    multiplier = 2.0 / (p + 1)
    window: list[float] = []
    previous: Optional[float] = None

    for i, value in enumerate(values):
        if value is None:
            continue

        window.append(value)
        if len(window) > p:
            window.pop(0)
        if len(window) < p:
            continue

        if previous is None:
            previous = sum(window) / p
        else:
            previous = (value - previous) * multiplier + previous
        result[i] = previous

    return result


def _rolling_mean_resetting(values: Sequence[Optional[float]], period: int) -> Series:
    """Trailing mean that restarts its window whenever a slot is missing."""
    if period <= 1:
        return list(values)

    result: Series = [None] * len(values)
    window: list[float] = []

    for i, value in enumerate(values):
        if value is None:
            window.clear()
            continue

        window.append(value)
        if len(window) < period:
            continue
        if len(window) > period:
            window.pop(0)

        result[i] = sum(window) / period

    return result


# =============================================================================
# Oscillators
# =============================================================================

def _relative_strength(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    if avg_gain == 0:
        return 0.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(values: Sequence[float], period: int = DEFAULT_PERIOD) -> Series:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    Args:
        values: Sequence of close prices
        period: RSI period

    Returns:
        List of RSI values in [0, 100], first valid value at index ``period``
    """
    period = _normalize_period(period)
    result: Series = [None] * len(values)
    if len(values) <= period:
        return result

    diffs = np.diff(np.asarray(values[: period + 1], dtype=np.float64))
    avg_gain = float(diffs[diffs >= 0].sum()) / period
    avg_loss = float(-diffs[diffs < 0].sum()) / period
    result[period] = _relative_strength(avg_gain, avg_loss)

    for i in range(period + 1, len(values)):
        diff = values[i] - values[i - 1]
        gain = diff if diff > 0 else 0.0
        loss = -diff if diff < 0 else 0.0
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        result[i] = _relative_strength(avg_gain, avg_loss)

    return result


@dataclass(frozen=True)
class StochRsiResult:
    """Stochastic RSI series: smoothed %K, %D and the raw oscillator."""

    k: Series
    d: Series
    raw: Series


def stochastic_rsi(
    rsi_values: Sequence[Optional[float]],
    stoch_length: int = DEFAULT_PERIOD,
    k_smoothing: int = 3,
    d_smoothing: int = 3,
) -> StochRsiResult:
    """
    Calculate Stochastic RSI.

    Args:
        rsi_values: RSI series (may contain None during warmup)
        stoch_length: Trailing window for min/max normalization
        k_smoothing: SMA period applied to the raw value
        d_smoothing: SMA period applied to %K

    Returns:
        StochRsiResult with %K, %D and raw series
    """
    length = _normalize_period(stoch_length)
    k_period = _normalize_period(k_smoothing)
    d_period = _normalize_period(d_smoothing)

    raw: Series = [None] * len(rsi_values)
    for i, current in enumerate(rsi_values):
        if current is None:
            continue

        window = [v for v in rsi_values[max(0, i - length + 1) : i + 1] if v is not None]
        if len(window) < length:
            continue

        lowest = min(window)
        highest = max(window)
        if highest == lowest:
            raw[i] = 0.0
        else:
            raw[i] = (current - lowest) / (highest - lowest) * 100.0

    k = _rolling_mean_resetting(raw, k_period)
    d = _rolling_mean_resetting(k, d_period)
    return StochRsiResult(k=k, d=d, raw=raw)


@dataclass(frozen=True)
class MacdResult:
    """MACD line, signal line and histogram."""

    line: Series
    signal: Series
    histogram: Series


def macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MacdResult:
    """
    Calculate MACD.

    Args:
        values: Sequence of close prices
        fast_period: Fast EMA period
        slow_period: Slow EMA period
        signal_period: EMA period of the signal line

    Returns:
        MacdResult (line = fast EMA - slow EMA, histogram = line - signal)
    """
    fast = ema(values, fast_period)
    slow = ema(values, slow_period)

    line: Series = [
        f - s if f is not None and s is not None else None for f, s in zip(fast, slow)
    ]
    signal = ema_from_series(line, signal_period)
    histogram: Series = [
        m - s if m is not None and s is not None else None for m, s in zip(line, signal)
    ]
    return MacdResult(line=line, signal=signal, histogram=histogram)


@dataclass(frozen=True)
class AdxResult:
    """ADX line, its EMA signal line and the directional indicators."""

    adx: Series
    signal: Series
    plus_di: Series
    minus_di: Series


def adx(
    candles: Sequence[Candle],
    period: int = DEFAULT_PERIOD,
    signal_period: int = DEFAULT_PERIOD,
) -> AdxResult:
    """
    Calculate Average Directional Index with Wilder smoothing.

    +DI/-DI start at index ``period``; the first ADX value is the mean
    of the DX readings over ``[period, 2 * period - 1]``.

    Args:
        candles: Candle series in ascending time order
        period: ADX smoothing period
        signal_period: EMA period of the ADX signal line

    Returns:
        AdxResult
    """
    n = len(candles)
    p = _normalize_period(period)
    sp = _normalize_period(signal_period)

    adx_line: Series = [None] * n
    plus_di: Series = [None] * n
    minus_di: Series = [None] * n

    if n <= p:
        return AdxResult(adx=adx_line, signal=[None] * n, plus_di=plus_di, minus_di=minus_di)

    tr = np.zeros(n)
    plus_dm = np.zeros(n)
    minus_dm = np.zeros(n)

    for i in range(1, n):
        cur, prev = candles[i], candles[i - 1]
        up_move = cur.high - prev.high
        down_move = prev.low - cur.low
        plus_dm[i] = up_move if up_move > down_move and up_move > 0 else 0.0
        minus_dm[i] = down_move if down_move > up_move and down_move > 0 else 0.0
        tr[i] = max(cur.high - cur.low, abs(cur.high - prev.close), abs(cur.low - prev.close))

    smoothed_tr = float(tr[1 : p + 1].sum())
    smoothed_plus = float(plus_dm[1 : p + 1].sum())
    smoothed_minus = float(minus_dm[1 : p + 1].sum())

    if smoothed_tr == 0:
        return AdxResult(
            adx=adx_line, signal=ema_from_series(adx_line, sp), plus_di=plus_di, minus_di=minus_di
        )

    dx: Series = [None] * n

    def _record(i: int) -> None:
        pdi = smoothed_plus / smoothed_tr * 100.0
        mdi = smoothed_minus / smoothed_tr * 100.0
        plus_di[i] = pdi
        minus_di[i] = mdi
        di_sum = pdi + mdi
        if di_sum != 0:
            dx[i] = abs(pdi - mdi) / di_sum * 100.0

    _record(p)
    for i in range(p + 1, n):
        smoothed_tr = smoothed_tr - smoothed_tr / p + tr[i]
        smoothed_plus = smoothed_plus - smoothed_plus / p + plus_dm[i]
        smoothed_minus = smoothed_minus - smoothed_minus / p + minus_dm[i]
        if smoothed_tr == 0:
            continue
        _record(i)

    first_adx = p * 2 - 1
    if first_adx < n:
        seed = [v for v in dx[p : first_adx + 1] if v is not None]
        if seed:
            adx_line[first_adx] = sum(seed) / len(seed)
            for i in range(first_adx + 1, n):
                prev_adx = adx_line[i - 1]
                if dx[i] is None or prev_adx is None:
                    continue
                adx_line[i] = (prev_adx * (p - 1) + dx[i]) / p

    return AdxResult(
        adx=adx_line, signal=ema_from_series(adx_line, sp), plus_di=plus_di, minus_di=minus_di
    )


# =============================================================================
# Volatility
# =============================================================================

def true_range(candles: Sequence[Candle]) -> Series:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close));
    the first bar (or a bar without a finite previous close) uses high - low.
    """
    result: Series = [None] * len(candles)

    for i, candle in enumerate(candles):
        if not (_is_finite(candle.high) and _is_finite(candle.low) and _is_finite(candle.close)):
            continue

        high_low = candle.high - candle.low
        prev_close = candles[i - 1].close if i > 0 else None
        if not _is_finite(prev_close):
            result[i] = high_low
            continue

        result[i] = max(high_low, abs(candle.high - prev_close), abs(candle.low - prev_close))

    return result


def atr(candles: Sequence[Candle], period: int = DEFAULT_PERIOD) -> Series:
    """
    Calculate Average True Range.

    Uses RMA (Relative Moving Average) / Wilder's smoothing, seeded with
    the mean of the first ``period`` true ranges.

    Args:
        candles: Candle series in ascending time order
        period: ATR period

    Returns:
        List of ATR values, first valid value at index ``period - 1``
    """
    p = _normalize_period(period)
    result: Series = [None] * len(candles)
    if len(candles) < p:
        return result

    tr = true_range(candles)
    previous = sum(v if v is not None else 0.0 for v in tr[:p]) / p
    result[p - 1] = previous

    for i in range(p, len(candles)):
        if tr[i] is None:
            continue
        previous = (previous * (p - 1) + tr[i]) / p
        result[i] = previous

    return result


# =============================================================================
# Series helpers
# =============================================================================

def last_finite(series: Sequence[Optional[float]]) -> Optional[float]:
    """Return the most recent finite value, or None."""
    for value in reversed(series):
        if _is_finite(value):
            return value
    return None


def previous_finite(series: Sequence[Optional[float]]) -> Optional[float]:
    """Return the finite value preceding the most recent finite value."""
    seen = False
    for value in reversed(series):
        if _is_finite(value):
            if seen:
                return value
            seen = True
    return None


def average_recent(series: Sequence[Optional[float]], count: int) -> Optional[float]:
    """Average the most recent ``count`` finite values."""
    picked: list[float] = []
    for value in reversed(series):
        if len(picked) >= count:
            break
        if _is_finite(value):
            picked.append(value)
    if not picked:
        return None
    return sum(picked) / len(picked)


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, None for an empty sequence."""
    if len(values) == 0:
        return None
    return float(np.mean(np.asarray(values, dtype=np.float64)))


def std_dev(values: Sequence[float]) -> Optional[float]:
    """Population standard deviation, None for an empty sequence."""
    if len(values) == 0:
        return None
    return float(np.std(np.asarray(values, dtype=np.float64)))


# =============================================================================
# Calculator
# =============================================================================

@dataclass(frozen=True)
class IndicatorSet:
    """All indicator series computed for one timeframe."""

    ema10: Series
    ema50: Series
    ma200: Series
    rsi: Series
    stoch: StochRsiResult
    atr: Series
    macd: MacdResult
    adx: AdxResult


class IndicatorCalculator:
    """Calculator for all indicators needed by the snapshot builder."""

    def __init__(
        self,
        rsi_period: int = DEFAULT_PERIOD,
        stoch_length: int = DEFAULT_PERIOD,
        k_smoothing: int = 3,
        d_smoothing: int = 3,
        atr_period: int = DEFAULT_PERIOD,
    ):
        self.rsi_period = rsi_period
        self.stoch_length = stoch_length
        self.k_smoothing = k_smoothing
        self.d_smoothing = d_smoothing
        self.atr_period = atr_period

    def calculate_all(self, candles: Sequence[Candle]) -> IndicatorSet:
        """
        Calculate all indicators for a candle series.

        Args:
            candles: Candles in ascending time order

        Returns:
            IndicatorSet with every series aligned to ``candles``
        """
        closes = [c.close for c in candles]
        rsi_series = rsi(closes, self.rsi_period)

        return IndicatorSet(
            ema10=ema(closes, 10),
            ema50=ema(closes, 50),
            ma200=sma(closes, 200),
            rsi=rsi_series,
            stoch=stochastic_rsi(
                rsi_series, self.stoch_length, self.k_smoothing, self.d_smoothing
            ),
            atr=atr(candles, self.atr_period),
            macd=macd(closes),
            adx=adx(candles),
        )
