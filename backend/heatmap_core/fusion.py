"""Multi-model fusion across timeframes.

Snapshots from every evaluated timeframe are reduced to averaged
indicator readings and a cross-timeframe Markov vector. Three models
(Markov, quantum walk, indicator bias) plus optional news-sentiment and
volatility-entropy terms are blended into one probability vector over
Down, Base, Reversal and Up.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, model_validator

from heatmap_core.bias import IndicatorReadings, build_bias_vector
from heatmap_core.combined import get_combined_signal
from heatmap_core.indicators import mean, std_dev
from heatmap_core.models.fused import (
    FusedSignal,
    FusionComponent,
    FusionDebug,
    IndicatorAverages,
    PhaseDiagnostic,
    StateProbability,
)
from heatmap_core.models.signal import STATE_FROM_REGIME, QuantumState
from heatmap_core.models.snapshot import TimeframeSnapshot
from heatmap_core.quantum import DEFAULT_QUANTUM_CONFIG, QuantumConfig, simulate_quantum_walk
from heatmap_core.quantum.walk import MACD_STD_EPSILON
from heatmap_core.vectors import (
    STATES,
    ProbabilityVector,
    clamp,
    confidence,
    dominant_state,
    normalize_vector,
    one_hot,
    uniform_vector,
    zero_vector,
)

logger = logging.getLogger(__name__)

EMA_SLOW_EPSILON = 1e-6
ATR_PCT_SATURATION = 10.0
MAX_INSIGHTS = 4


class FusionWeights(BaseModel):
    """Blend weights for the fused vector.

    ``news`` only takes part when a sentiment score is given. ``volatility``
    is off by default and takes part when its weight is positive and ATR%
    readings are available.
    With ``normalize`` the active weights are rescaled to sum to 1.
    """

    model_config = ConfigDict(frozen=True)

    markov: float = 0.35
    quantum: float = 0.40
    bias: float = 0.25
    news: float = 0.10
    volatility: float = 0.0
    normalize: bool = True

    @model_validator(mode="after")
    def validate_weights(self) -> "FusionWeights":
        for name in ("markov", "quantum", "bias", "news", "volatility"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"Fusion weight '{name}' must be a non-negative number, got {value}")
        if self.markov + self.quantum + self.bias <= 0:
            raise ValueError("At least one of markov/quantum/bias weights must be positive")
        return self

    def active(self, news: bool = False, volatility: bool = False) -> dict[str, float]:
        """Weights of the components that take part, keyed by component."""
        weights = {"markov": self.markov, "quantum": self.quantum, "bias": self.bias}
        if news:
            weights["news"] = self.news
        if volatility and self.volatility > 0:
            weights["volatility"] = self.volatility

        if self.normalize:
            total = sum(weights.values())
            weights = {key: value / total for key, value in weights.items()}
        return weights


DEFAULT_FUSION_WEIGHTS = FusionWeights()

COMPONENT_LABELS = {
    "markov": "Markov prior",
    "quantum": "Quantum walk",
    "bias": "Indicator bias",
    "news": "News sentiment",
    "volatility": "Volatility entropy",
}


# =============================================================================
# Input collection
# =============================================================================

class FusionInputs:
    """Per-timeframe values gathered from evaluated snapshots."""

    def __init__(self) -> None:
        self.prior_scores: list[float] = []
        self.state_counts: dict[str, int] = {state: 0 for state in STATES}
        self.macd_histograms: list[float] = []
        self.macd_lines: list[float] = []
        self.macd_signals: list[float] = []
        self.rsi_values: list[float] = []
        self.stoch_values: list[float] = []
        self.adx_values: list[float] = []
        self.ema_fast_values: list[float] = []
        self.ema_slow_values: list[float] = []
        self.ma_long_values: list[float] = []
        self.ema_diffs: list[float] = []
        self.signal_strengths: list[float] = []
        self.atr_pcts: list[float] = []
        self.sample_count = 0

    def has_coverage(self) -> bool:
        return bool(
            self.prior_scores
            or self.macd_histograms
            or self.rsi_values
            or self.stoch_values
            or self.adx_values
            or self.ema_diffs
        )

    def readings(self) -> IndicatorReadings:
        return IndicatorReadings(
            rsi=mean(self.rsi_values),
            stoch_k=mean(self.stoch_values),
            macd_histogram=mean(self.macd_histograms),
            macd_histogram_std=std_dev(self.macd_histograms),
            macd_line=mean(self.macd_lines),
            macd_signal=mean(self.macd_signals),
            adx=mean(self.adx_values),
            ema_fast=mean(self.ema_fast_values),
            ema_slow=mean(self.ema_slow_values),
            ma_long=mean(self.ma_long_values),
            ema_diff=mean(self.ema_diffs),
            signal_strength=mean(self.signal_strengths),
            atr_pct=mean(self.atr_pcts),
        )


def _append_finite(target: list[float], value: Optional[float]) -> None:
    if value is not None and math.isfinite(value):
        target.append(value)


def collect_inputs(snapshots: Sequence[TimeframeSnapshot]) -> FusionInputs:
    """Gather per-timeframe values; snapshots never evaluated are skipped."""
    inputs = FusionInputs()

    for snapshot in snapshots:
        if snapshot.evaluated_at is None:
            continue
        inputs.sample_count += 1
        breakdown = get_combined_signal(snapshot).breakdown

        _append_finite(inputs.prior_scores, snapshot.markov.prior_score)
        if snapshot.markov.current_state is not None:
            inputs.state_counts[STATE_FROM_REGIME[snapshot.markov.current_state].value] += 1

        _append_finite(inputs.macd_histograms, breakdown.macd_histogram)
        _append_finite(inputs.macd_lines, breakdown.macd_value)
        _append_finite(inputs.macd_signals, breakdown.macd_signal)
        _append_finite(inputs.rsi_values, breakdown.rsi_value)
        _append_finite(inputs.stoch_values, breakdown.stoch_k_value)
        _append_finite(inputs.adx_values, breakdown.adx_value)
        _append_finite(inputs.ema_fast_values, breakdown.ema_fast)
        _append_finite(inputs.ema_slow_values, breakdown.ema_slow)
        _append_finite(inputs.ma_long_values, breakdown.ma_long)
        _append_finite(inputs.signal_strengths, float(breakdown.signal_strength_raw))
        _append_finite(inputs.atr_pcts, snapshot.filters.atr_pct)

        fast, slow = breakdown.ema_fast, breakdown.ema_slow
        if fast is not None and slow is not None and abs(slow) > EMA_SLOW_EPSILON:
            _append_finite(inputs.ema_diffs, (fast - slow) / abs(slow))

    return inputs


# =============================================================================
# Component vectors
# =============================================================================

def build_markov_vector(
    prior_scores: Sequence[float],
    state_counts: dict[str, int],
) -> tuple[ProbabilityVector, Optional[float]]:
    """
    Cross-timeframe Markov vector.

    Returns:
        (vector, mean prior score). Uniform with a None prior when there
        is nothing to aggregate.
    """
    total_states = sum(state_counts.values())
    if not prior_scores and total_states == 0:
        return uniform_vector(), None

    prior_average = mean(prior_scores)
    vector = zero_vector()

    if prior_average is not None:
        neutral = clamp(1.0 - abs(prior_average), 0.0, 1.0)
        vector["Up"] += 0.7 * clamp(0.5 + prior_average / 2.0, 0.0, 1.0)
        vector["Down"] += 0.7 * clamp(0.5 - prior_average / 2.0, 0.0, 1.0)
        vector["Base"] += 0.45 * neutral
        vector["Reversal"] += 0.35 * neutral

    if total_states > 0:
        for state in STATES:
            vector[state] += 0.6 * state_counts.get(state, 0) / total_states

    return normalize_vector(vector), prior_average


def news_sentiment_vector(sentiment: float) -> ProbabilityVector:
    """Sentiment in [-1, 1] to a vector leaning Up (positive) or Down."""
    s = clamp(sentiment, -1.0, 1.0)
    return normalize_vector({
        "Down": max(0.0, -s),
        "Base": 0.6 * (1.0 - abs(s)),
        "Reversal": 0.4 * (1.0 - abs(s)),
        "Up": max(0.0, s),
    })


def volatility_entropy_vector(atr_pct: float) -> ProbabilityVector:
    """Calm markets concentrate on Base; high ATR% spreads toward uniform."""
    v = clamp(atr_pct / ATR_PCT_SATURATION, 0.0, 1.0)
    base = one_hot(QuantumState.BASE.value)
    uniform = uniform_vector()
    return normalize_vector({state: (1.0 - v) * base[state] + v * uniform[state] for state in STATES})


def peer_coupling(snapshots: Sequence[TimeframeSnapshot]) -> Optional[float]:
    """Mean combined signal strength of evaluated timeframes, scaled to [-1, 1]."""
    strengths = [
        get_combined_signal(snapshot).breakdown.signal_strength
        for snapshot in snapshots
        if snapshot.evaluated_at is not None
    ]
    average = mean([s for s in strengths if math.isfinite(s)])
    if average is None:
        return None
    return clamp(average / 3.0, -1.0, 1.0)


def fuse_vectors(
    vectors: dict[str, ProbabilityVector], weights: dict[str, float]
) -> ProbabilityVector:
    fused = zero_vector()
    for key, vector in vectors.items():
        weight = weights.get(key, 0.0)
        for state in STATES:
            fused[state] += weight * vector[state]
    return normalize_vector(fused)


# =============================================================================
# Diagnostics
# =============================================================================

def _phase_direction(reading: Optional[float], bullish: float, bearish: float) -> str:
    if reading is None:
        return "neutral"
    if reading >= bullish:
        return "bullish"
    if reading <= bearish:
        return "bearish"
    return "neutral"


def build_phase_diagnostics(
    readings: IndicatorReadings, shifts: dict[str, float]
) -> list[PhaseDiagnostic]:
    rsi, stoch, hist, adx = readings.rsi, readings.stoch_k, readings.macd_histogram, readings.adx
    hist_std = readings.macd_histogram_std

    if hist is None or hist_std is None or hist_std < MACD_STD_EPSILON:
        macd_magnitude = 0.0
    else:
        macd_magnitude = clamp(abs(hist) / (2.0 * hist_std), 0.0, 1.0)

    return [
        PhaseDiagnostic(
            key="rsi",
            label="RSI phase",
            shift=shifts["rsi"],
            reading=rsi,
            direction=_phase_direction(rsi, 55, 45),
            magnitude=min(1.0, abs(rsi - 50) / 25) if rsi is not None else 0.0,
        ),
        PhaseDiagnostic(
            key="stoch",
            label="Stoch RSI phase",
            shift=shifts["stoch"],
            reading=stoch,
            direction=_phase_direction(stoch, 60, 40),
            magnitude=min(1.0, abs(stoch - 50) / 25) if stoch is not None else 0.0,
        ),
        PhaseDiagnostic(
            key="macd",
            label="MACD histogram phase",
            shift=shifts["macd"],
            reading=hist,
            direction="bullish" if hist is not None and hist > 0 else "bearish" if hist is not None and hist < 0 else "neutral",
            magnitude=macd_magnitude,
        ),
        PhaseDiagnostic(
            key="adx",
            label="ADX phase",
            shift=shifts["adx"],
            reading=adx,
            direction="bullish" if adx is not None and adx >= 25 else "neutral",
            magnitude=clamp(adx / 50, 0.0, 1.0) if adx is not None else 0.0,
        ),
    ]


def build_insights(dominant: str, fused: ProbabilityVector, readings: IndicatorReadings) -> list[str]:
    """Short human-readable notes on the fused outcome."""
    insights: list[str] = []
    strong = fused[dominant] > 0.45

    if dominant == "Up":
        insights.append(
            "Fusion favours upside continuation with constructive interference."
            if strong
            else "Upside regime forming, but interference leaves room for hesitation."
        )
    elif dominant == "Down":
        insights.append(
            "Downside path reinforced as destructive interference dampens bullish attempts."
            if strong
            else "Bearish bias emerging as the model weights lean defensive."
        )
    elif dominant == "Reversal":
        insights.append("Reversal probabilities elevated; watch for regime transition setups.")
    else:
        insights.append("Base probabilities dominant; expect consolidation and mean reversion.")

    if readings.rsi is not None:
        if readings.rsi >= 60:
            insights.append(f"RSI elevated at {readings.rsi:.1f}, momentum skewed bullish.")
        elif readings.rsi <= 40:
            insights.append(f"RSI depressed at {readings.rsi:.1f}, bearish momentum dominates.")
        else:
            insights.append(f"RSI balanced at {readings.rsi:.1f}, momentum neutral.")

    if readings.macd_histogram is not None:
        if abs(readings.macd_histogram) < 1e-3:
            insights.append("MACD histogram near equilibrium; interference can flip quickly.")
        elif readings.macd_histogram > 0:
            insights.append("MACD impulse positive, constructive with bullish trend states.")
        else:
            insights.append("MACD impulse negative, reinforces bearish amplitude.")

    if readings.adx is not None:
        if readings.adx >= 25:
            insights.append(f"ADX {readings.adx:.1f}: trend strength amplifies the dominant state.")
        else:
            insights.append(f"ADX {readings.adx:.1f}: low energy regime, expect range-bound moves.")

    if readings.ema_diff is not None:
        if abs(readings.ema_diff) < 0.05:
            insights.append("Moving averages compressed; bias susceptible to reversal noise.")
        elif readings.ema_diff > 0:
            insights.append("Fast EMA above slow, structural bias supports bullish outcomes.")
        else:
            insights.append("Fast EMA below slow, structural bias supports bearish outcomes.")

    return insights[:MAX_INSIGHTS]


# =============================================================================
# Entry point
# =============================================================================

def derive_quantum_composite_signal(
    snapshots: Sequence[TimeframeSnapshot],
    weights: FusionWeights = DEFAULT_FUSION_WEIGHTS,
    quantum_config: QuantumConfig = DEFAULT_QUANTUM_CONFIG,
    news_sentiment: Optional[float] = None,
    coupling: Optional[float] = None,
) -> FusedSignal | None:
    """
    Fuse every timeframe of one symbol into a single state estimate.

    Args:
        snapshots: Timeframe snapshots of one symbol
        weights: Component blend weights
        quantum_config: Quantum-walk parameters
        news_sentiment: Optional sentiment score in [-1, 1]
        coupling: Optional peer-coupling signal for entanglement

    Returns:
        FusedSignal, or None when no snapshot carries usable data
    """
    inputs = collect_inputs(snapshots)
    if not inputs.has_coverage():
        return None

    readings = inputs.readings()
    markov_vector, prior_average = build_markov_vector(inputs.prior_scores, inputs.state_counts)
    walk = simulate_quantum_walk(readings, quantum_config, coupling)
    bias_vector = build_bias_vector(readings)

    vectors: dict[str, ProbabilityVector] = {
        "markov": markov_vector,
        "quantum": walk.probabilities,
        "bias": bias_vector,
    }
    news_vector = None
    if news_sentiment is not None and math.isfinite(news_sentiment):
        news_vector = news_sentiment_vector(news_sentiment)
        vectors["news"] = news_vector
    volatility_vector = None
    if weights.volatility > 0 and readings.atr_pct is not None:
        volatility_vector = volatility_entropy_vector(readings.atr_pct)
        vectors["volatility"] = volatility_vector

    active = weights.active(news=news_vector is not None, volatility=volatility_vector is not None)
    fused = fuse_vectors(vectors, active)
    dominant = dominant_state(fused)
    conf = confidence(fused)

    logger.debug(
        "Fused %d timeframes: state=%s confidence=%.3f prior=%s",
        inputs.sample_count, dominant, conf, prior_average,
    )

    return FusedSignal(
        state=QuantumState(dominant),
        confidence=conf,
        probabilities=[
            StateProbability(
                state=QuantumState(state),
                probability=fused[state],
                amplitude=math.sqrt(max(0.0, fused[state])),
            )
            for state in STATES
        ],
        components=[
            FusionComponent(
                key=key,
                label=COMPONENT_LABELS[key],
                weight=weight,
                value=vectors[key][dominant],
            )
            for key, weight in active.items()
        ],
        phases=build_phase_diagnostics(readings, walk.shifts),
        insights=build_insights(dominant, fused, readings),
        debug=FusionDebug(
            markov_vector=markov_vector,
            quantum_vector=walk.probabilities,
            bias_vector=bias_vector,
            news_vector=news_vector,
            volatility_vector=volatility_vector,
            markov_prior_average=prior_average,
            indicator_averages=IndicatorAverages(
                rsi=readings.rsi,
                stoch=readings.stoch_k,
                macd_histogram=readings.macd_histogram,
                macd_histogram_std=readings.macd_histogram_std,
                macd_line=readings.macd_line,
                macd_signal=readings.macd_signal,
                adx=readings.adx,
                ema_fast=readings.ema_fast,
                ema_slow=readings.ema_slow,
                ma_long=readings.ma_long,
                ema_diff=readings.ema_diff,
                signal_strength=readings.signal_strength,
                atr_pct=readings.atr_pct,
            ),
            sample_count=inputs.sample_count,
        ),
    )
