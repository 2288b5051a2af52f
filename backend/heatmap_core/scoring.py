"""Composite scoring for one timeframe.

Trend, momentum and bias votes resolve to a LONG/SHORT/NONE signal; the
cooldown and gating checks then place the timeframe in a stage. All
functions take plain readings (None when unavailable) and degrade to
neutral values instead of raising.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from heatmap_core.indicators import StochRsiResult
from heatmap_core.models.config import (
    ATR_BOUNDS_MAX,
    ATR_BOUNDS_MIN,
    COOLDOWN_BARS,
    MA_DISTANCE_TOO_CLOSE_THRESHOLD,
)
from heatmap_core.models.signal import Bias, Direction, Signal, Stage
from heatmap_core.models.snapshot import (
    Cooldown,
    Filters,
    Gating,
    MovingAverageCross,
    Risk,
    TimingGate,
    VoteEntry,
    Votes,
)
from heatmap_core.vectors import clamp

Reading = Optional[float]

BIAS_NEUTRAL_BAND = 0.001
STOCH_LONG_CEILING = 80.0
STOCH_SHORT_FLOOR = 20.0


# -----------------------------------------------------------------------------
# Directional reads
# -----------------------------------------------------------------------------

def resolve_bias(price: Reading, ma200: Reading) -> Bias:
    """Price vs MA200 with a 0.1% neutral band."""
    if price is None or ma200 is None:
        return Bias.NEUTRAL
    diff = price - ma200
    if abs(diff) < ma200 * BIAS_NEUTRAL_BAND:
        return Bias.NEUTRAL
    return Bias.BULL if diff > 0 else Bias.BEAR


def resolve_trend(ema10: Reading, ema50: Reading) -> Direction:
    if ema10 is None or ema50 is None:
        return Direction.NEUTRAL
    if ema10 > ema50:
        return Direction.BULLISH
    if ema10 < ema50:
        return Direction.BEARISH
    return Direction.NEUTRAL


def resolve_momentum(rsi: Reading, stoch_k: Reading, stoch_d: Reading) -> Direction:
    """RSI outside 48-52 plus %K vs %D; the sign of the sum wins."""
    if rsi is None or stoch_k is None or stoch_d is None:
        return Direction.NEUTRAL

    rsi_vote = 1 if rsi > 52 else -1 if rsi < 48 else 0
    stoch_vote = 1 if stoch_k > stoch_d else -1 if stoch_k < stoch_d else 0
    combined = rsi_vote + stoch_vote

    if combined > 0:
        return Direction.BULLISH
    if combined < 0:
        return Direction.BEARISH
    return Direction.NEUTRAL


def resolve_signal(trend: Direction, bias: Bias, momentum: Direction, stoch_raw: Reading) -> Signal:
    """
    Resolve the discrete signal.

    LONG needs bullish trend and momentum, a non-bearish bias and a raw
    Stoch RSI of at most 80 (or none); SHORT is the mirror with a floor
    of 20. Both or neither resolve to NONE.
    """
    long_setup = (
        trend == Direction.BULLISH
        and momentum == Direction.BULLISH
        and bias != Bias.BEAR
        and (stoch_raw is None or stoch_raw <= STOCH_LONG_CEILING)
    )
    short_setup = (
        trend == Direction.BEARISH
        and momentum == Direction.BEARISH
        and bias != Bias.BULL
        and (stoch_raw is None or stoch_raw >= STOCH_SHORT_FLOOR)
    )

    if long_setup and not short_setup:
        return Signal.LONG
    if short_setup and not long_setup:
        return Signal.SHORT
    return Signal.NONE


def resolve_strength_label(trend: Direction, momentum: Direction, bias: Bias) -> str:
    score = 0
    score += 1 if trend == Direction.BULLISH else -1 if trend == Direction.BEARISH else 0
    score += 1 if momentum == Direction.BULLISH else -1 if momentum == Direction.BEARISH else 0
    score += 1 if bias == Bias.BULL else -1 if bias == Bias.BEAR else 0

    magnitude = abs(score)
    if magnitude >= 3:
        return "strong"
    if magnitude == 2:
        return "standard"
    return "weak"


# -----------------------------------------------------------------------------
# Votes and events
# -----------------------------------------------------------------------------

def _direction_vote(direction: Direction) -> tuple[str, int]:
    if direction == Direction.BULLISH:
        return "bull", 1
    if direction == Direction.BEARISH:
        return "bear", -1
    return "neutral", 0


def resolve_votes(trend: Direction, momentum: Direction, bias: Bias, stoch_raw: Reading) -> Votes:
    """Vote breakdown; Stoch RSI votes bull at <= 40 and bear at >= 60."""
    trend_vote, trend_value = _direction_vote(trend)
    momentum_vote, momentum_value = _direction_vote(momentum)
    bias_vote = {Bias.BULL: "bull", Bias.BEAR: "bear"}.get(bias, "neutral")
    bias_value = {Bias.BULL: 1, Bias.BEAR: -1}.get(bias, 0)

    if stoch_raw is None:
        stoch_vote = "na"
    elif stoch_raw <= 40:
        stoch_vote = "bull"
    elif stoch_raw >= 60:
        stoch_vote = "bear"
    else:
        stoch_vote = "neutral"

    breakdown = [
        VoteEntry(timeframe="trend", label="Trend", value=trend_value, vote=trend_vote),
        VoteEntry(timeframe="momentum", label="Momentum", value=momentum_value, vote=momentum_vote),
        VoteEntry(timeframe="bias", label="Bias", value=bias_value, vote=bias_vote),
        VoteEntry(
            timeframe="stoch",
            label="Stoch RSI",
            value=stoch_raw if stoch_raw is not None else 0.0,
            vote=stoch_vote,
        ),
    ]

    counted = [entry for entry in breakdown if entry.vote != "na"]
    bull = sum(1 for entry in counted if entry.vote == "bull")
    bear = sum(1 for entry in counted if entry.vote == "bear")

    return Votes(
        bull=bull,
        bear=bear,
        total=len(counted),
        mode="all" if bull == bear else "majority",
        breakdown=breakdown,
    )


def resolve_stoch_event(
    raw: Reading,
    prev_raw: Reading,
    k: Reading,
    d: Reading,
    prev_k: Reading,
    prev_d: Reading,
) -> Optional[str]:
    if None in (raw, prev_raw, k, d, prev_k, prev_d):
        return None
    if prev_k <= prev_d and k > d and prev_raw <= 20 and raw > prev_raw:
        return "cross_up_from_oversold"
    if prev_k >= prev_d and k < d and prev_raw >= 80 and raw < prev_raw:
        return "cross_down_from_overbought"
    return None


def detect_cross(fast: Sequence[Reading], slow: Sequence[Reading]) -> Optional[str]:
    """Cross between the last two bars: ``cross_up``, ``cross_down`` or None."""
    length = min(len(fast), len(slow))
    if length < 2:
        return None

    cur_fast, cur_slow = fast[length - 1], slow[length - 1]
    prev_fast, prev_slow = fast[length - 2], slow[length - 2]
    if None in (cur_fast, cur_slow, prev_fast, prev_slow):
        return None

    prev_diff = prev_fast - prev_slow
    cur_diff = cur_fast - cur_slow
    if prev_diff <= 0 and cur_diff > 0:
        return "cross_up"
    if prev_diff >= 0 and cur_diff < 0:
        return "cross_down"
    return None


_CROSS_PAIRS = (
    ("ema10-ema50", "bullish", "bearish"),
    ("ema10-ma200", "bullish", "bearish"),
    ("ema50-ma200", "golden", "death"),
)


def resolve_moving_average_crosses(
    ema10: Sequence[Reading], ema50: Sequence[Reading], ma200: Sequence[Reading]
) -> list[MovingAverageCross]:
    series = {
        "ema10-ema50": (ema10, ema50),
        "ema10-ma200": (ema10, ma200),
        "ema50-ma200": (ema50, ma200),
    }
    crosses = []
    for pair, up_label, down_label in _CROSS_PAIRS:
        direction = detect_cross(*series[pair])
        if direction == "cross_up":
            crosses.append(MovingAverageCross(pair=pair, direction=up_label))
        elif direction == "cross_down":
            crosses.append(MovingAverageCross(pair=pair, direction=down_label))
    return crosses


# -----------------------------------------------------------------------------
# History, cooldown and gating
# -----------------------------------------------------------------------------

def evaluate_historical_signals(
    closes: Sequence[float],
    ema10: Sequence[Reading],
    ema50: Sequence[Reading],
    ma200: Sequence[Reading],
    rsi: Sequence[Reading],
    stoch: StochRsiResult,
) -> list[Signal]:
    """Signal per bar; NONE wherever any input is missing."""
    signals = []
    for i, price in enumerate(closes):
        readings = (price, ema10[i], ema50[i], ma200[i], rsi[i], stoch.k[i], stoch.d[i], stoch.raw[i])
        if any(v is None for v in readings):
            signals.append(Signal.NONE)
            continue

        bias = resolve_bias(price, ma200[i])
        trend = resolve_trend(ema10[i], ema50[i])
        momentum = resolve_momentum(rsi[i], stoch.k[i], stoch.d[i])
        signals.append(resolve_signal(trend, bias, momentum, stoch.raw[i]))
    return signals


def resolve_cooldown(signals: Sequence[Signal], required_bars: int = COOLDOWN_BARS) -> Cooldown:
    """Bars since the last non-NONE signal; ok once at least ``required_bars``."""
    bars_since: Optional[int] = None
    last_side: Optional[Signal] = None

    for i in range(len(signals) - 1, -1, -1):
        if signals[i] != Signal.NONE:
            bars_since = len(signals) - 1 - i
            last_side = signals[i]
            break

    return Cooldown(
        required_bars=required_bars,
        bars_since_signal=bars_since,
        ok=bars_since is None or bars_since >= required_bars,
        last_alert_side=last_side,
        last_extreme_marker=None,
    )


def resolve_gating(trend: Direction, momentum: Direction, bias: Bias) -> Gating:
    long_timing = trend == Direction.BULLISH and momentum == Direction.BULLISH and bias != Bias.BEAR
    short_timing = trend == Direction.BEARISH and momentum == Direction.BEARISH and bias != Bias.BULL

    long_blockers: list[str] = []
    short_blockers: list[str] = []

    if not long_timing:
        if trend != Direction.BULLISH:
            long_blockers.append("trend")
        if momentum != Direction.BULLISH:
            long_blockers.append("momentum")
        if bias != Bias.BULL:
            long_blockers.append("bias")

    if not short_timing:
        if trend != Direction.BEARISH:
            short_blockers.append("trend")
        if momentum != Direction.BEARISH:
            short_blockers.append("momentum")
        if bias != Bias.BEAR:
            short_blockers.append("bias")

    return Gating(
        long=TimingGate(timing=long_timing, blockers=list(dict.fromkeys(long_blockers))),
        short=TimingGate(timing=short_timing, blockers=list(dict.fromkeys(short_blockers))),
    )


def resolve_stage(signal: Signal, cooldown_ok: bool, long_timing: bool, short_timing: bool) -> Stage:
    """Priority order: triggered, cooldown, gated, ready."""
    if signal in (Signal.LONG, Signal.SHORT):
        return Stage.TRIGGERED
    if not cooldown_ok:
        return Stage.COOLDOWN
    if not long_timing and not short_timing:
        return Stage.GATED
    return Stage.READY


# -----------------------------------------------------------------------------
# Filters and risk
# -----------------------------------------------------------------------------

def resolve_atr_status(atr_pct: Reading) -> str:
    if atr_pct is None:
        return "missing"
    if atr_pct < ATR_BOUNDS_MIN:
        return "too-low"
    if atr_pct > ATR_BOUNDS_MAX:
        return "too-high"
    return "ok"


def resolve_ma_distance_status(dist_pct: Reading) -> str:
    if dist_pct is None:
        return "missing"
    if abs(dist_pct) < MA_DISTANCE_TOO_CLOSE_THRESHOLD:
        return "too-close"
    return "ok"


def resolve_filters(price: Reading, ma200: Reading, atr_value: Reading, bias: Bias) -> Filters:
    atr_pct = atr_value / price * 100.0 if price and atr_value is not None else None
    dist_pct = (price - ma200) / ma200 * 100.0 if price is not None and ma200 else None
    has_levels = price is not None and ma200 is not None

    return Filters(
        atr_pct=atr_pct,
        atr_status=resolve_atr_status(atr_pct),
        ma_side={Bias.BULL: "above", Bias.BEAR: "below"}.get(bias, "unknown"),
        ma_long_ok=bias != Bias.BEAR and has_levels and price >= ma200,
        ma_short_ok=bias != Bias.BULL and has_levels and price <= ma200,
        dist_pct_to_ma200=dist_pct,
        ma_distance_status=resolve_ma_distance_status(dist_pct),
        use_ma200_filter=True,
    )


def resolve_risk(price: Reading, atr_value: Reading) -> Risk:
    """ATR-based stop and targets; ATR is clamped to [0, price]."""
    if price is None or atr_value is None:
        return Risk()
    if not math.isfinite(price) or not math.isfinite(atr_value):
        return Risk()

    step = clamp(atr_value, 0.0, price)
    return Risk(
        atr=atr_value,
        sl_long=price - step,
        t1_long=price + step,
        t2_long=price + step * 2,
        sl_short=price + step,
        t1_short=price - step,
        t2_short=price - step * 2,
    )


def percent_change(current: Reading, previous: Reading) -> Optional[float]:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100.0
