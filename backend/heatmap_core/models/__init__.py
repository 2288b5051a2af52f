"""Data models shared by the core and the application layer."""

from heatmap_core.models.candle import Candle
from heatmap_core.models.combined import (
    CombinedBias,
    CombinedBreakdown,
    CombinedSignal,
    MarkovPrior,
    MultiTimeframeContribution,
    MultiTimeframeModelSummary,
    MultiTimeframeSignal,
    TimeframeSignalSnapshot,
    TradingSignal,
    TrendMatrixRow,
)
from heatmap_core.models.config import (
    TIMEFRAME_CONFIGS,
    TIMEFRAME_WEIGHTS,
    StochConfig,
    TimeframeConfig,
    get_timeframe_config,
)
from heatmap_core.models.fused import (
    FusedSignal,
    FusionComponent,
    FusionDebug,
    IndicatorAverages,
    PhaseDiagnostic,
    StateProbability,
)
from heatmap_core.models.signal import (
    STATE_FROM_REGIME,
    Bias,
    Direction,
    QuantumState,
    Regime,
    Signal,
    Stage,
)
from heatmap_core.models.snapshot import (
    AdxReading,
    Cooldown,
    EmaReading,
    Filters,
    Gating,
    Ma200Reading,
    MacdReading,
    MarkovReading,
    MovingAverageCross,
    Risk,
    RsiReading,
    StochRsiReading,
    TimeframeSnapshot,
    TimingGate,
    VoteEntry,
    Votes,
)

__all__ = [
    "AdxReading",
    "Bias",
    "Candle",
    "CombinedBias",
    "CombinedBreakdown",
    "CombinedSignal",
    "Cooldown",
    "Direction",
    "EmaReading",
    "Filters",
    "FusedSignal",
    "FusionComponent",
    "FusionDebug",
    "Gating",
    "IndicatorAverages",
    "Ma200Reading",
    "MacdReading",
    "MarkovPrior",
    "MarkovReading",
    "MovingAverageCross",
    "MultiTimeframeContribution",
    "MultiTimeframeModelSummary",
    "MultiTimeframeSignal",
    "PhaseDiagnostic",
    "QuantumState",
    "Regime",
    "Risk",
    "RsiReading",
    "STATE_FROM_REGIME",
    "Signal",
    "Stage",
    "StateProbability",
    "StochConfig",
    "StochRsiReading",
    "TIMEFRAME_CONFIGS",
    "TIMEFRAME_WEIGHTS",
    "TimeframeConfig",
    "TimeframeSignalSnapshot",
    "TimeframeSnapshot",
    "TimingGate",
    "TradingSignal",
    "TrendMatrixRow",
    "VoteEntry",
    "Votes",
    "get_timeframe_config",
]
