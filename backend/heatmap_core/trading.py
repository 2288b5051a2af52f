"""Alert-ready trading signals with confluence reasons and scores."""

from __future__ import annotations

from typing import Sequence

from heatmap_core.models.combined import TradingSignal
from heatmap_core.models.signal import Bias, Direction, Signal
from heatmap_core.models.snapshot import TimeframeSnapshot

RSI_OVERSOLD = 35
RSI_OVERBOUGHT = 65
STOCH_LOW = 20
STOCH_HIGH = 80
MAX_SCORE = 100

_BULLISH_CROSSES = {"golden", "bullish", "cross_up", "up", "above", "long"}
_BEARISH_CROSSES = {"death", "bearish", "cross_down", "down", "below", "short"}

# (substring, points) awarded per matching reason
_REASON_POINTS = (
    ("EMA10 crossed", 20),
    ("Golden Cross", 25),
    ("Death Cross", 25),
    ("RSI over", 10),
    ("StochRSI", 10),
    ("Trend & momentum aligned", 25),
    ("ATR filter satisfied", 5),
)


def _cross_reasons(snapshot: TimeframeSnapshot, side: Direction) -> list[str]:
    reasons: list[str] = []
    bullish = side == Direction.BULLISH

    for cross in snapshot.moving_average_crosses:
        direction = cross.direction.strip().lower()
        matches = direction in (_BULLISH_CROSSES if bullish else _BEARISH_CROSSES)
        if not matches:
            continue

        if cross.pair == "ema10-ema50":
            reason = "EMA10 crossed above EMA50" if bullish else "EMA10 crossed below EMA50"
        elif cross.pair == "ema50-ma200":
            reason = "Golden Cross" if bullish else "Death Cross"
        else:
            continue

        if reason not in reasons:
            reasons.append(reason)

    return reasons


def build_reasons(snapshot: TimeframeSnapshot, side: Direction) -> list[str]:
    """Human-readable reasons supporting ``side`` on this snapshot."""
    reasons = _cross_reasons(snapshot, side)
    rsi = snapshot.rsi_ltf.value

    if side == Direction.BULLISH:
        if snapshot.gating.long.timing and snapshot.bias == Bias.BULL and snapshot.filters.ma_long_ok:
            reasons.append("Trend & momentum aligned above MA200")
        if rsi is not None and rsi <= RSI_OVERSOLD:
            reasons.append("RSI oversold")
        if snapshot.stoch_event == "cross_up_from_oversold":
            reasons.append("StochRSI K>D in lower band")
    else:
        if snapshot.gating.short.timing and snapshot.bias == Bias.BEAR and snapshot.filters.ma_short_ok:
            reasons.append("Trend & momentum aligned below MA200")
        if rsi is not None and rsi >= RSI_OVERBOUGHT:
            reasons.append("RSI overbought")
        if snapshot.stoch_event == "cross_down_from_overbought":
            reasons.append("StochRSI K<D in upper band")

    if snapshot.filters.atr_status == "ok":
        reasons.append("ATR filter satisfied")

    if not reasons:
        reasons.append("Confluence threshold met")

    return reasons


def score_signal(snapshot: TimeframeSnapshot, side: Direction, reasons: Sequence[str]) -> int:
    """Confluence score in [0, 100]."""
    bullish = side == Direction.BULLISH
    score = 0.0

    for reason in reasons:
        for needle, points in _REASON_POINTS:
            if needle in reason:
                score += points

    if (snapshot.bias == Bias.BULL and bullish) or (snapshot.bias == Bias.BEAR and not bullish):
        score += 10

    dist = snapshot.filters.dist_pct_to_ma200
    if dist is not None:
        if dist < 0.5:
            score += 8
        elif dist < 1:
            score += 5

    rsi = snapshot.rsi_ltf.value
    if rsi is not None and ((bullish and rsi > 50) or (not bullish and rsi < 50)):
        score += 8

    k, d = snapshot.stoch_rsi.k, snapshot.stoch_rsi.d
    if k is not None and d is not None:
        if (bullish and k > d) or (not bullish and k < d):
            score += 5
        if bullish and k <= STOCH_LOW and d <= STOCH_LOW:
            score += 5
        if not bullish and k >= STOCH_HIGH and d >= STOCH_HIGH:
            score += 5

    slope = snapshot.ma200.slope
    if slope is not None and ((bullish and slope > 0) or (not bullish and slope < 0)):
        score += 5

    return int(round(min(max(score, 0), MAX_SCORE)))


def bucket_signal(score: float) -> str:
    if score >= 80:
        return "Strong"
    if score >= 60:
        return "Medium"
    return "Weak"


def to_trading_signal(snapshot: TimeframeSnapshot) -> TradingSignal | None:
    """Trading signal for a triggered snapshot; None when the signal is NONE."""
    if snapshot.signal == Signal.NONE:
        return None

    is_long = snapshot.signal == Signal.LONG
    side = Direction.BULLISH if is_long else Direction.BEARISH
    reasons = build_reasons(snapshot, side)
    score = score_signal(snapshot, side, reasons)
    risk = snapshot.risk

    if is_long:
        stop, target = risk.sl_long, risk.t2_long if risk.t2_long is not None else risk.t1_long
    else:
        stop, target = risk.sl_short, risk.t2_short if risk.t2_short is not None else risk.t1_short

    return TradingSignal(
        symbol=snapshot.symbol,
        tf=snapshot.entry_timeframe,
        timeframe_label=snapshot.entry_label,
        side=side,
        reason=reasons,
        confluence_score=score,
        strength=bucket_signal(score),
        suggested_sl=stop,
        suggested_tp=target,
        dedupe_key=f"{snapshot.symbol}|{snapshot.entry_timeframe}|{side.value}",
        created_at=snapshot.closed_at if snapshot.closed_at is not None else snapshot.evaluated_at,
        price=snapshot.price,
        bias=snapshot.bias,
    )


def derive_trading_signals(snapshots: Sequence[TimeframeSnapshot]) -> list[TradingSignal]:
    """Trading signals for every triggered snapshot, newest first."""
    signals = [s for s in (to_trading_signal(snap) for snap in snapshots) if s is not None]
    return sorted(signals, key=lambda s: s.created_at or 0, reverse=True)
