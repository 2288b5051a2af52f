"""Parameter objects for the quantum walk.

All defaults live here as immutable values; callers pass a modified copy
(``dataclasses.replace``) rather than mutating module state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional

from heatmap_core.bias import IndicatorReadings

# Signed interference weights, rows/columns in Down, Base, Reversal, Up order
InterferenceWeights = tuple[tuple[float, float, float, float], ...]

DEFAULT_INTERFERENCE: InterferenceWeights = (
    (0.55, 0.20, 0.10, -0.15),
    (0.15, 0.50, 0.20, 0.15),
    (0.15, 0.20, 0.45, 0.20),
    (-0.15, 0.10, 0.20, 0.55),
)


@dataclass(frozen=True)
class IndicatorPhase:
    """Linear phase map for one indicator: ``(value - center) * scale``.

    A ``scale`` of None means "derive at runtime" (used for MACD, whose
    scale depends on the histogram std-dev).
    """

    center: float
    scale: Optional[float]


@dataclass(frozen=True)
class PhaseMap:
    rsi: IndicatorPhase = IndicatorPhase(50.0, math.pi / 50.0)
    stoch: IndicatorPhase = IndicatorPhase(50.0, math.pi / 50.0)
    macd: IndicatorPhase = IndicatorPhase(0.0, None)
    adx: IndicatorPhase = IndicatorPhase(25.0, math.pi / 100.0)

    # Directional (Up/Down) phase weights
    rsi_weight: float = 0.35
    stoch_weight: float = 0.25
    macd_weight: float = 0.40
    adx_weight: float = 0.10

    # Base follows ADX inversely; Reversal follows MACD and RSI/Stoch divergence
    base_weight: float = 0.5
    reversal_macd_weight: float = 0.5
    reversal_divergence_weight: float = 0.25


RulePredicate = Callable[[IndicatorReadings], bool]
RuleTransform = Callable[[InterferenceWeights, PhaseMap], tuple[InterferenceWeights, PhaseMap]]


@dataclass(frozen=True)
class RegimeRule:
    """Conditional rewrite of the interference weights and phase map.

    Rules are evaluated in order; each matching rule sees the output of
    the previous one.
    """

    name: str
    predicate: RulePredicate
    transform: RuleTransform


@dataclass(frozen=True)
class EntanglementConfig:
    enabled: bool = False
    strength: float = 0.5


@dataclass(frozen=True)
class QuantumConfig:
    steps: int = 3
    interference: InterferenceWeights = DEFAULT_INTERFERENCE
    phase_map: PhaseMap = field(default_factory=PhaseMap)
    rules: tuple[RegimeRule, ...] = ()
    entanglement: EntanglementConfig = field(default_factory=EntanglementConfig)


DEFAULT_QUANTUM_CONFIG = QuantumConfig()
