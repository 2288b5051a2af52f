"""Per-timeframe snapshot models.

Field names serialize in camelCase; consumers (alerting, dashboard) read
them by those names.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from heatmap_core.models.config import ATR_BOUNDS_MAX, ATR_BOUNDS_MIN, COOLDOWN_BARS
from heatmap_core.models.signal import Bias, Regime, Signal, Stage


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class EmaReading(CamelModel):
    ema10: Optional[float] = None
    ema50: Optional[float] = None


class MovingAverageCross(CamelModel):
    pair: str  # ema10-ema50 / ema10-ma200 / ema50-ma200
    direction: str  # bullish, bearish, golden, death


class VoteEntry(CamelModel):
    timeframe: str  # vote source: trend / momentum / bias / stoch
    label: str
    value: float
    vote: str  # bull, bear, neutral, na


class Votes(CamelModel):
    bull: int = 0
    bear: int = 0
    total: int = 0
    mode: str = "all"
    breakdown: list[VoteEntry] = Field(default_factory=list)


class StochRsiReading(CamelModel):
    k: Optional[float] = None
    d: Optional[float] = None
    raw_normalized: Optional[float] = None


class RsiReading(CamelModel):
    value: Optional[float] = None
    sma5: Optional[float] = None
    ok_long: bool = False
    ok_short: bool = False


class AtrBounds(CamelModel):
    min: float = ATR_BOUNDS_MIN
    max: float = ATR_BOUNDS_MAX


class Filters(CamelModel):
    atr_pct: Optional[float] = None
    atr_bounds: AtrBounds = Field(default_factory=AtrBounds)
    atr_status: str = "missing"
    ma_side: str = "unknown"
    ma_long_ok: bool = False
    ma_short_ok: bool = False
    dist_pct_to_ma200: Optional[float] = Field(default=None, alias="distPctToMa200")
    ma_distance_status: str = "missing"
    use_ma200_filter: bool = Field(default=True, alias="useMa200Filter")


class TimingGate(CamelModel):
    timing: bool = False
    blockers: list[str] = Field(default_factory=list)


class Gating(CamelModel):
    long: TimingGate = Field(default_factory=TimingGate)
    short: TimingGate = Field(default_factory=TimingGate)


class Cooldown(CamelModel):
    required_bars: int = COOLDOWN_BARS
    bars_since_signal: Optional[int] = None
    ok: bool = True
    last_alert_side: Optional[Signal] = None
    last_extreme_marker: Optional[str] = None


class Risk(CamelModel):
    atr: Optional[float] = None
    sl_long: Optional[float] = None
    t1_long: Optional[float] = None
    t2_long: Optional[float] = None
    sl_short: Optional[float] = None
    t1_short: Optional[float] = None
    t2_short: Optional[float] = None


class Ma200Reading(CamelModel):
    value: Optional[float] = None
    slope: Optional[float] = None


class MacdReading(CamelModel):
    value: Optional[float] = None
    signal: Optional[float] = None
    histogram: Optional[float] = None


class AdxReading(CamelModel):
    value: Optional[float] = None
    plus_di: Optional[float] = Field(default=None, alias="plusDI")
    minus_di: Optional[float] = Field(default=None, alias="minusDI")
    slope: Optional[float] = None


class MarkovReading(CamelModel):
    prior_score: float = 0.0
    current_state: Optional[Regime] = None
    # Rows/columns in Regime order D, R, B, U
    transition_matrix: Optional[list[list[float]]] = None
    # Blended forward distribution keyed by QuantumState name
    distribution: Optional[dict[str, float]] = None


class TimeframeSnapshot(CamelModel):
    """Everything evaluated for one (symbol, timeframe) pair."""

    entry_timeframe: str
    entry_label: str
    symbol: str
    evaluated_at: Optional[int] = None
    closed_at: Optional[int] = None
    bias: Bias = Bias.NEUTRAL
    strength: str = "weak"
    signal: Signal = Signal.NONE
    stage: Stage = Stage.GATED
    stoch_event: Optional[str] = None
    ema: EmaReading = Field(default_factory=EmaReading)
    moving_average_crosses: list[MovingAverageCross] = Field(default_factory=list)
    votes: Votes = Field(default_factory=Votes)
    stoch_rsi: StochRsiReading = Field(default_factory=StochRsiReading)
    rsi_ltf: RsiReading = Field(default_factory=RsiReading)
    filters: Filters = Field(default_factory=Filters)
    gating: Gating = Field(default_factory=Gating)
    cooldown: Cooldown = Field(default_factory=Cooldown)
    risk: Risk = Field(default_factory=Risk)
    price: Optional[float] = None
    ma200: Ma200Reading = Field(default_factory=Ma200Reading)
    macd: MacdReading = Field(default_factory=MacdReading)
    adx: AdxReading = Field(default_factory=AdxReading)
    markov: MarkovReading = Field(default_factory=MarkovReading)
