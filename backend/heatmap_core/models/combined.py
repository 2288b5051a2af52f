"""Combined-signal, multi-timeframe and trading-signal models."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from heatmap_core.models.signal import Bias, Direction, Regime, Stage
from heatmap_core.models.snapshot import CamelModel


class MarkovPrior(CamelModel):
    prior_score: float = 0.0
    current_state: Optional[Regime] = None


class CombinedBreakdown(CamelModel):
    """Inputs and intermediate classifications behind a combined signal."""

    bias: Direction
    momentum: str  # StrongBullish, StrongBearish, Weak
    trend_strength: str  # Strong, Forming, Weak
    adx_direction: str  # ConfirmBull, ConfirmBear, NoConfirm
    adx_is_rising: bool
    adx_value: Optional[float] = None
    rsi_value: Optional[float] = None
    stoch_k_value: Optional[float] = None
    ema_fast: Optional[float] = None
    ema_slow: Optional[float] = None
    ma_long: Optional[float] = None
    macd_value: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    trend_score: float = 0.0
    markov: MarkovPrior = Field(default_factory=MarkovPrior)
    signal_strength: float = 0.0
    signal_strength_raw: int = 0
    label: str = "NEUTRAL"


class CombinedSignal(CamelModel):
    direction: Direction
    strength: int  # 0-100
    breakdown: CombinedBreakdown


class TimeframeSignalSnapshot(CamelModel):
    """Dashboard view of a timeframe: combined signal plus confluence."""

    timeframe: str
    timeframe_label: str
    trend: Direction
    momentum: Direction
    stage: Stage
    confluence_score: Optional[int] = None
    strength: Optional[str] = None
    price: Optional[float] = None
    bias: Bias
    slope_ma200: Optional[float] = Field(default=None, alias="slopeMa200")
    side: Optional[Direction] = None
    combined: CombinedSignal


class CombinedBias(CamelModel):
    dir: Direction
    strength: str  # Strong, Medium, Weak, Sideways


class MultiTimeframeContribution(CamelModel):
    timeframe: str
    timeframe_label: str
    weight: float
    score: float
    weighted_score: float


class MultiTimeframeSignal(CamelModel):
    direction: Direction
    strength: int
    combined_score: float
    normalized_score: float
    combined_bias: CombinedBias
    contributions: list[MultiTimeframeContribution] = Field(default_factory=list)


class TrendMatrixRow(CamelModel):
    timeframe: str
    timeframe_label: str
    bias: Direction
    rsi: Optional[float] = None
    stoch_k: Optional[float] = None
    adx: Optional[float] = None
    trend: str
    adx_direction: str
    prior: Optional[float] = None
    label: str
    score_raw: float
    score: float


class MultiTimeframeModelSummary(CamelModel):
    trend_matrix: list[TrendMatrixRow]
    combined_score: float
    combined_bias: CombinedBias
    qualified_timeframes: list[str]
    emit_trade_signal: bool


class TradingSignal(CamelModel):
    """Alert-ready signal derived from a triggered snapshot."""

    symbol: str
    tf: str
    timeframe_label: str
    side: Direction
    reason: list[str]
    confluence_score: int
    strength: str  # Strong, Medium, Weak
    suggested_sl: Optional[float] = Field(default=None, alias="suggestedSL")
    suggested_tp: Optional[float] = Field(default=None, alias="suggestedTP")
    dedupe_key: str
    created_at: Optional[int] = None
    price: Optional[float] = None
    bias: Bias
