"""Combined per-timeframe signal and the multi-timeframe model.

The combined signal blends EMA structure, MACD, momentum and ADX trend
strength into a raw score in [-3, 3], then mixes in the Markov prior to
produce a posterior score. The multi-timeframe model weights those
posteriors by timeframe and decides whether enough consecutive
timeframes agree to emit a trade.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Optional, Sequence

from heatmap_core.models.combined import (
    CombinedBias,
    CombinedBreakdown,
    CombinedSignal,
    MarkovPrior,
    MultiTimeframeContribution,
    MultiTimeframeModelSummary,
    MultiTimeframeSignal,
    TimeframeSignalSnapshot,
    TrendMatrixRow,
)
from heatmap_core.models.config import TIMEFRAME_WEIGHTS
from heatmap_core.models.signal import Bias, Direction, Signal, Stage
from heatmap_core.models.snapshot import TimeframeSnapshot
from heatmap_core.trading import bucket_signal, build_reasons, score_signal
from heatmap_core.vectors import clamp

logger = logging.getLogger(__name__)

MAX_SIGNAL_STRENGTH = 3
DEFAULT_TIMEFRAME_WEIGHT = 1.0
TOTAL_TIMEFRAME_WEIGHT = sum(TIMEFRAME_WEIGHTS.values())

ADX_STRONG_THRESHOLD = 25
ADX_FORMING_LO = 20
ADX_THRESHOLD_FLOOR = 10
ADX_STRONG_BOOST_BY_PRIOR = 5
ADX_FORMING_BOOST_BY_PRIOR = 3
PRIOR_WEIGHT = 0.35

RSI_BULL_MIN = 55
RSI_BEAR_MAX = 45
STOCH_BULL_MIN = 60
STOCH_BEAR_MAX = 40

SIGNAL_WEAK_THRESHOLD = 0.5
SIGNAL_FORMING_THRESHOLD = 1.5
SIGNAL_STRONG_THRESHOLD = 2.5
PRIOR_SUPPORT_THRESHOLD = 0.25
PRIOR_STRONG_OPPOSITION_THRESHOLD = 0.45

CONSECUTIVE_TIMEFRAMES_FOR_TRADE = 3


def _sign(value: float) -> int:
    return 1 if value > 0 else -1 if value < 0 else 0


# =============================================================================
# Per-timeframe combined signal
# =============================================================================

def ema_alignment(ema_fast: Optional[float], ema_slow: Optional[float], ma_long: Optional[float]) -> int:
    if ema_fast is None or ema_slow is None or ma_long is None:
        return 0
    if ema_fast > ema_slow > ma_long:
        return 1
    if ema_fast < ema_slow < ma_long:
        return -1
    return 0


def macd_alignment(value: Optional[float], signal: Optional[float], histogram: Optional[float]) -> float:
    """+/-1 for a full MACD agreement, +/-0.25 for a histogram-only lean."""
    if value is None or signal is None or histogram is None:
        return 0.0
    if histogram > 0 and value > signal and value > 0:
        return 1.0
    if histogram < 0 and value < signal and value < 0:
        return -1.0
    return _sign(histogram) * 0.25


def compute_trend_bias(
    ema_fast: Optional[float],
    ema_slow: Optional[float],
    ma_long: Optional[float],
    macd_value: Optional[float],
    macd_signal: Optional[float],
    macd_histogram: Optional[float],
) -> tuple[Direction, float]:
    """Blend EMA and MACD alignment; MACD leads when EMAs are mixed."""
    ema = ema_alignment(ema_fast, ema_slow, ma_long)
    macd = macd_alignment(macd_value, macd_signal, macd_histogram)

    if ema == 0:
        score = clamp(0.4 * ema + 0.6 * macd, -1.0, 1.0)
    else:
        score = clamp(0.6 * ema + 0.4 * macd, -1.0, 1.0)

    if score >= 0.2:
        return Direction.BULLISH, score
    if score <= -0.2:
        return Direction.BEARISH, score
    return Direction.NEUTRAL, score


def compute_momentum(bias: Direction, rsi: Optional[float], stoch_k: Optional[float]) -> str:
    if rsi is None or stoch_k is None:
        return "Weak"
    if bias == Direction.BULLISH and rsi > RSI_BULL_MIN and stoch_k > STOCH_BULL_MIN:
        return "StrongBullish"
    if bias == Direction.BEARISH and rsi < RSI_BEAR_MAX and stoch_k < STOCH_BEAR_MAX:
        return "StrongBearish"
    return "Weak"


def compute_trend_strength(adx_value: Optional[float], prior_score: float) -> str:
    """ADX thresholds, lowered when the Markov prior is bullish."""
    if adx_value is None:
        return "Weak"

    positive_prior = max(0.0, prior_score)
    strong = max(ADX_THRESHOLD_FLOOR, ADX_STRONG_THRESHOLD - ADX_STRONG_BOOST_BY_PRIOR * positive_prior)
    forming = max(ADX_THRESHOLD_FLOOR, ADX_FORMING_LO - ADX_FORMING_BOOST_BY_PRIOR * positive_prior)

    if adx_value >= strong:
        return "Strong"
    if adx_value >= forming:
        return "Forming"
    return "Weak"


def compute_adx_direction(bias: Direction, plus_di: Optional[float], minus_di: Optional[float]) -> str:
    if plus_di is None or minus_di is None:
        return "NoConfirm"
    if bias == Direction.BULLISH and plus_di > minus_di:
        return "ConfirmBull"
    if bias == Direction.BEARISH and minus_di > plus_di:
        return "ConfirmBear"
    return "NoConfirm"


def classify_signal_strength(
    bias: Direction,
    momentum: str,
    trend_strength: str,
    adx_direction: str,
    adx_is_rising: bool,
) -> int:
    """Raw strength in {-3, ..., 3}."""
    if (
        bias == Direction.BULLISH
        and momentum == "StrongBullish"
        and trend_strength == "Strong"
        and adx_direction == "ConfirmBull"
    ):
        return 3
    if (
        bias == Direction.BEARISH
        and momentum == "StrongBearish"
        and trend_strength == "Strong"
        and adx_direction == "ConfirmBear"
    ):
        return -3

    if trend_strength == "Forming" and adx_is_rising:
        if momentum == "StrongBullish" or bias == Direction.BULLISH:
            return 2
        if momentum == "StrongBearish" or bias == Direction.BEARISH:
            return -2

    if bias == Direction.BULLISH and (momentum == "StrongBullish" or adx_direction == "ConfirmBull"):
        return 1
    if bias == Direction.BEARISH and (momentum == "StrongBearish" or adx_direction == "ConfirmBear"):
        return -1
    return 0


def resolve_signal_label(score: float) -> str:
    if score >= 2.5:
        return "STRONG_BUY"
    if score >= 1.5:
        return "BUY_FORMING"
    if score >= 0.5:
        return "BUY_WEAK"
    if score > -0.5:
        return "NEUTRAL"
    if score > -1.5:
        return "SELL_WEAK"
    if score > -2.5:
        return "SELL_FORMING"
    return "STRONG_SELL"


def get_combined_signal(snapshot: TimeframeSnapshot) -> CombinedSignal:
    """
    Score one snapshot.

    Args:
        snapshot: Evaluated timeframe snapshot

    Returns:
        CombinedSignal with a posterior strength in [-3, 3]
    """
    prior = clamp(snapshot.markov.prior_score, -1.0, 1.0)
    macd = snapshot.macd
    adx = snapshot.adx

    bias, trend_score = compute_trend_bias(
        snapshot.ema.ema10, snapshot.ema.ema50, snapshot.ma200.value,
        macd.value, macd.signal, macd.histogram,
    )
    momentum = compute_momentum(bias, snapshot.rsi_ltf.value, snapshot.stoch_rsi.k)
    trend_strength = compute_trend_strength(adx.value, prior)
    adx_direction = compute_adx_direction(bias, adx.plus_di, adx.minus_di)
    adx_is_rising = adx.slope is not None and adx.slope > 0

    raw = classify_signal_strength(bias, momentum, trend_strength, adx_direction, adx_is_rising)
    base_scaled = clamp(raw / MAX_SIGNAL_STRENGTH, -1.0, 1.0)
    posterior = (1 - PRIOR_WEIGHT) * base_scaled + PRIOR_WEIGHT * prior
    strength = clamp(posterior * MAX_SIGNAL_STRENGTH, -MAX_SIGNAL_STRENGTH, MAX_SIGNAL_STRENGTH)

    direction = (
        Direction.BULLISH if strength > 0 else Direction.BEARISH if strength < 0 else Direction.NEUTRAL
    )

    return CombinedSignal(
        direction=direction,
        strength=int(round(clamp(abs(strength) / MAX_SIGNAL_STRENGTH, 0.0, 1.0) * 100)),
        breakdown=CombinedBreakdown(
            bias=bias,
            momentum=momentum,
            trend_strength=trend_strength,
            adx_direction=adx_direction,
            adx_is_rising=adx_is_rising,
            adx_value=adx.value,
            rsi_value=snapshot.rsi_ltf.value,
            stoch_k_value=snapshot.stoch_rsi.k,
            ema_fast=snapshot.ema.ema10,
            ema_slow=snapshot.ema.ema50,
            ma_long=snapshot.ma200.value,
            macd_value=macd.value,
            macd_signal=macd.signal,
            macd_histogram=macd.histogram,
            trend_score=round(trend_score, 2),
            markov=MarkovPrior(prior_score=prior, current_state=snapshot.markov.current_state),
            signal_strength=strength,
            signal_strength_raw=raw,
            label=resolve_signal_label(strength),
        ),
    )


# =============================================================================
# Dashboard snapshot
# =============================================================================

def _resolve_dashboard_stage(
    snapshot: TimeframeSnapshot, side: Optional[Direction]
) -> Stage:
    if snapshot.signal in (Signal.LONG, Signal.SHORT):
        return Stage.TRIGGERED
    if not snapshot.cooldown.ok:
        return Stage.COOLDOWN

    long_open = snapshot.gating.long.timing
    short_open = snapshot.gating.short.timing
    if not long_open and not short_open:
        return Stage.GATED
    if (side == Direction.BULLISH or snapshot.bias == Bias.BULL) and not long_open:
        return Stage.GATED
    if (side == Direction.BEARISH or snapshot.bias == Bias.BEAR) and not short_open:
        return Stage.GATED
    return Stage.READY


def to_signal_snapshot(snapshot: TimeframeSnapshot) -> TimeframeSignalSnapshot:
    """Dashboard view: combined signal, side, confluence score and stage."""
    combined = get_combined_signal(snapshot)
    trend = combined.breakdown.bias
    momentum = {
        "StrongBullish": Direction.BULLISH,
        "StrongBearish": Direction.BEARISH,
    }.get(combined.breakdown.momentum, Direction.NEUTRAL)

    if snapshot.signal == Signal.LONG:
        side: Optional[Direction] = Direction.BULLISH
    elif snapshot.signal == Signal.SHORT:
        side = Direction.BEARISH
    elif trend != Direction.NEUTRAL:
        side = trend
    else:
        side = None

    score = None
    if side is not None:
        score = score_signal(snapshot, side, build_reasons(snapshot, side))

    return TimeframeSignalSnapshot(
        timeframe=snapshot.entry_timeframe,
        timeframe_label=snapshot.entry_label,
        trend=trend,
        momentum=momentum,
        stage=_resolve_dashboard_stage(snapshot, side),
        confluence_score=score,
        strength=bucket_signal(score) if score is not None else None,
        price=snapshot.price,
        bias=snapshot.bias,
        slope_ma200=snapshot.ma200.slope,
        side=side,
        combined=combined,
    )


# =============================================================================
# Multi-timeframe aggregation
# =============================================================================

def resolve_timeframe_weight(timeframe: str) -> float:
    weight = TIMEFRAME_WEIGHTS.get(timeframe)
    if weight is not None:
        return weight
    try:
        numeric = float(timeframe)
    except ValueError:
        return DEFAULT_TIMEFRAME_WEIGHT
    if numeric > 0 and numeric.is_integer():
        return TIMEFRAME_WEIGHTS.get(str(int(numeric)), DEFAULT_TIMEFRAME_WEIGHT)
    return DEFAULT_TIMEFRAME_WEIGHT


def resolve_combined_bias(score: float) -> CombinedBias:
    if score > 8:
        return CombinedBias(dir=Direction.BULLISH, strength="Strong")
    if score > 4:
        return CombinedBias(dir=Direction.BULLISH, strength="Medium")
    if score > 1:
        return CombinedBias(dir=Direction.BULLISH, strength="Weak")
    if score < -8:
        return CombinedBias(dir=Direction.BEARISH, strength="Strong")
    if score < -4:
        return CombinedBias(dir=Direction.BEARISH, strength="Medium")
    if score < -1:
        return CombinedBias(dir=Direction.BEARISH, strength="Weak")
    return CombinedBias(dir=Direction.NEUTRAL, strength="Sideways")


def get_multi_timeframe_signal(
    snapshots: Sequence[TimeframeSignalSnapshot],
) -> MultiTimeframeSignal | None:
    """Weighted sum of posterior strengths across timeframes."""
    if not snapshots:
        return None

    contributions: list[MultiTimeframeContribution] = []
    combined_score = 0.0
    total_weight = 0.0

    for snap in snapshots:
        weight = resolve_timeframe_weight(snap.timeframe)
        if weight <= 0:
            continue
        score = snap.combined.breakdown.signal_strength
        contributions.append(
            MultiTimeframeContribution(
                timeframe=snap.timeframe,
                timeframe_label=snap.timeframe_label,
                weight=weight,
                score=score,
                weighted_score=score * weight,
            )
        )
        combined_score += score * weight
        total_weight += weight

    if total_weight == 0:
        return MultiTimeframeSignal(
            direction=Direction.NEUTRAL,
            strength=0,
            combined_score=0.0,
            normalized_score=0.0,
            combined_bias=CombinedBias(dir=Direction.NEUTRAL, strength="Sideways"),
            contributions=contributions,
        )

    normalized = round(combined_score / total_weight, 1) + 0.0
    combined_bias = resolve_combined_bias(combined_score)
    strength = clamp(abs(combined_score) / (MAX_SIGNAL_STRENGTH * TOTAL_TIMEFRAME_WEIGHT), 0.0, 1.0)

    return MultiTimeframeSignal(
        direction=combined_bias.dir,
        strength=int(round(strength * 100)),
        combined_score=combined_score,
        normalized_score=normalized,
        combined_bias=combined_bias,
        contributions=sorted(contributions, key=lambda c: (c.weight, c.timeframe)),
    )


def _timeframe_minutes(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        pass
    match = re.fullmatch(r"(\d+)([SMHDW])", value.strip().upper())
    if not match:
        return math.inf
    multiplier = {"S": 1 / 60, "M": 1, "H": 60, "D": 60 * 24, "W": 60 * 24 * 7}[match.group(2)]
    return int(match.group(1)) * multiplier


def order_timeframes(timeframes: Sequence[str]) -> list[str]:
    """Known timeframes in ascending order, then unknown ones by duration."""
    known = sorted((tf for tf in timeframes if tf in TIMEFRAME_WEIGHTS), key=int)
    extras = sorted((tf for tf in timeframes if tf not in TIMEFRAME_WEIGHTS), key=_timeframe_minutes)
    return known + extras


def qualifies_for_trade(signal_strength: float, prior_score: float) -> bool:
    """Whether a posterior is strong enough given how the prior leans."""
    if not math.isfinite(signal_strength) or signal_strength == 0:
        return False

    magnitude = abs(signal_strength)
    prior_magnitude = abs(prior_score)
    aligned = prior_score != 0 and _sign(prior_score) == _sign(signal_strength)

    if magnitude >= SIGNAL_STRONG_THRESHOLD:
        return aligned or prior_magnitude < PRIOR_STRONG_OPPOSITION_THRESHOLD
    if magnitude >= SIGNAL_FORMING_THRESHOLD:
        return aligned or prior_magnitude < PRIOR_SUPPORT_THRESHOLD
    if magnitude >= SIGNAL_WEAK_THRESHOLD:
        return aligned and prior_magnitude >= PRIOR_SUPPORT_THRESHOLD
    return False


def has_consecutive_timeframes(qualified: Sequence[str], n: int, ordered: Sequence[str]) -> bool:
    """True when ``n`` adjacent entries of ``ordered`` are all in ``qualified``."""
    if n <= 1:
        return len(qualified) > 0
    if not qualified:
        return False

    wanted = set(qualified)
    streak = 0
    for timeframe in ordered:
        if timeframe in wanted:
            streak += 1
            if streak >= n:
                return True
        else:
            streak = 0
    return False


def run_multi_timeframe_model(
    snapshots: Sequence[TimeframeSignalSnapshot],
) -> MultiTimeframeModelSummary:
    """
    Trend matrix, weighted score and trade decision across timeframes.

    A trade is emitted when at least three consecutive timeframes
    qualify individually.
    """
    by_timeframe = {snap.timeframe: snap for snap in snapshots}
    ordered = order_timeframes(list(by_timeframe))

    rows: list[TrendMatrixRow] = []
    combined_score = 0.0
    qualified: list[str] = []

    for timeframe in ordered:
        breakdown = by_timeframe[timeframe].combined.breakdown
        prior = breakdown.markov.prior_score

        rows.append(
            TrendMatrixRow(
                timeframe=timeframe,
                timeframe_label=by_timeframe[timeframe].timeframe_label,
                bias=breakdown.bias,
                rsi=round(breakdown.rsi_value, 1) if breakdown.rsi_value is not None else None,
                stoch_k=round(breakdown.stoch_k_value, 1) if breakdown.stoch_k_value is not None else None,
                adx=round(breakdown.adx_value, 1) if breakdown.adx_value is not None else None,
                trend=breakdown.trend_strength,
                adx_direction=breakdown.adx_direction,
                prior=round(prior, 2),
                label=breakdown.label,
                score_raw=float(breakdown.signal_strength_raw),
                score=round(breakdown.signal_strength, 2),
            )
        )

        weight = resolve_timeframe_weight(timeframe)
        if weight > 0:
            combined_score += breakdown.signal_strength * weight

        if qualifies_for_trade(breakdown.signal_strength, prior):
            qualified.append(timeframe)

    emit = has_consecutive_timeframes(qualified, CONSECUTIVE_TIMEFRAMES_FOR_TRADE, ordered)
    if emit:
        logger.info("Multi-timeframe trade signal: qualified=%s score=%.2f", qualified, combined_score)

    return MultiTimeframeModelSummary(
        trend_matrix=rows,
        combined_score=combined_score,
        combined_bias=resolve_combined_bias(combined_score),
        qualified_timeframes=qualified,
        emit_trade_signal=emit,
    )
