"""Fused (multi-model) signal models."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from heatmap_core.models.signal import QuantumState
from heatmap_core.models.snapshot import CamelModel


class StateProbability(CamelModel):
    state: QuantumState
    probability: float
    amplitude: float


class FusionComponent(CamelModel):
    key: str  # markov, quantum, bias, news, volatility
    label: str
    weight: float
    value: float


class PhaseDiagnostic(CamelModel):
    key: str
    label: str
    shift: float
    reading: Optional[float] = None
    direction: str = "neutral"
    magnitude: float = 0.0


class IndicatorAverages(CamelModel):
    rsi: Optional[float] = None
    stoch: Optional[float] = None
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


class FusionDebug(CamelModel):
    markov_vector: dict[str, float]
    quantum_vector: dict[str, float]
    bias_vector: dict[str, float]
    news_vector: Optional[dict[str, float]] = None
    volatility_vector: Optional[dict[str, float]] = None
    markov_prior_average: Optional[float] = None
    indicator_averages: IndicatorAverages = Field(default_factory=IndicatorAverages)
    sample_count: int = 0


class FusedSignal(CamelModel):
    """Result of fusing Markov, quantum-walk and indicator-bias vectors."""

    state: QuantumState
    confidence: float
    probabilities: list[StateProbability]
    components: list[FusionComponent]
    phases: list[PhaseDiagnostic]
    insights: list[str]
    debug: FusionDebug
