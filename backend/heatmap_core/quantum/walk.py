"""Discrete quantum-walk simulation over the four market states.

The walk is a deterministic feature combiner, not a physical model:

1. indicator readings become one phase angle per state;
2. the signed interference weights become a row-normalized complex
   mixing matrix, right-multiplied by ``diag(exp(i * phase))``;
3. an equal superposition is evolved through ``steps`` applications of
   that operator, renormalizing after every step;
4. squared amplitude magnitudes give the probability vector.

The arithmetic is a fixed contract shared with other consumers; keep it
exact rather than "physically" correct.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from heatmap_core.bias import IndicatorReadings
from heatmap_core.quantum.complex import (
    Complex,
    ComplexMatrix,
    ComplexVector,
    diagonal,
    expi,
    mat_mul,
    mat_vec,
    normalize,
)
from heatmap_core.quantum.config import (
    DEFAULT_QUANTUM_CONFIG,
    InterferenceWeights,
    PhaseMap,
    QuantumConfig,
)
from heatmap_core.vectors import STATES, ProbabilityVector, clamp, normalize_vector

logger = logging.getLogger(__name__)

_DOWN, _BASE, _REVERSAL, _UP = range(4)

ANGLE_PER_WEIGHT = math.pi / 8.0
MACD_STD_EPSILON = 1e-6


def equal_superposition() -> ComplexVector:
    amplitude = 1.0 / math.sqrt(len(STATES))
    return [Complex(amplitude, 0.0) for _ in STATES]


# -----------------------------------------------------------------------------
# Phases
# -----------------------------------------------------------------------------

def phase_shift(value: Optional[float], center: float, scale: float) -> float:
    if value is None:
        return 0.0
    return clamp((value - center) * scale, -math.pi, math.pi)


def macd_phase_scale(phase_map: PhaseMap, histogram_std: Optional[float]) -> float:
    if phase_map.macd.scale is not None:
        return phase_map.macd.scale
    if histogram_std is not None and histogram_std > MACD_STD_EPSILON:
        return (math.pi / 3.0) / histogram_std
    return math.pi / 3.0


def indicator_shifts(readings: IndicatorReadings, phase_map: PhaseMap) -> dict[str, float]:
    """Per-indicator phase shifts in [-pi, pi]; 0 for missing readings."""
    return {
        "rsi": phase_shift(readings.rsi, phase_map.rsi.center, phase_map.rsi.scale),
        "stoch": phase_shift(readings.stoch_k, phase_map.stoch.center, phase_map.stoch.scale),
        "macd": phase_shift(
            readings.macd_histogram,
            phase_map.macd.center,
            macd_phase_scale(phase_map, readings.macd_histogram_std),
        ),
        "adx": phase_shift(readings.adx, phase_map.adx.center, phase_map.adx.scale),
    }


def _reversal_sign(readings: IndicatorReadings) -> float:
    if readings.macd_line is not None and readings.macd_signal is not None:
        diff = readings.macd_line - readings.macd_signal
        if diff != 0:
            return 1.0 if diff > 0 else -1.0
    if readings.macd_histogram is not None and readings.macd_histogram != 0:
        return 1.0 if readings.macd_histogram > 0 else -1.0
    return 1.0


def compute_phases(readings: IndicatorReadings, phase_map: PhaseMap) -> dict[str, float]:
    """
    One phase angle per state.

    Args:
        readings: Averaged indicator readings
        phase_map: Centers, scales and per-state weights

    Returns:
        Mapping state -> phase in [-pi, pi] (Base limited to [-pi/2, pi/2])
    """
    shifts = indicator_shifts(readings, phase_map)

    directional = (
        phase_map.rsi_weight * shifts["rsi"]
        + phase_map.stoch_weight * shifts["stoch"]
        + phase_map.macd_weight * shifts["macd"]
    )
    trend = phase_map.adx_weight * shifts["adx"]

    reversal_magnitude = phase_map.reversal_macd_weight * abs(shifts["macd"]) + (
        phase_map.reversal_divergence_weight * abs(shifts["rsi"] - shifts["stoch"])
    )

    return {
        "Down": clamp(-directional + trend, -math.pi, math.pi),
        "Base": clamp(-phase_map.base_weight * shifts["adx"], -math.pi / 2.0, math.pi / 2.0),
        "Reversal": clamp(_reversal_sign(readings) * reversal_magnitude, -math.pi, math.pi),
        "Up": clamp(directional + trend, -math.pi, math.pi),
    }


# -----------------------------------------------------------------------------
# Operators
# -----------------------------------------------------------------------------

def _softmax(values: list[float]) -> list[float]:
    peak = max(values)
    exps = [math.exp(v - peak) for v in values]
    total = sum(exps)
    return [e / total for e in exps]


def build_mixing_matrix(weights: InterferenceWeights) -> ComplexMatrix:
    """
    Complex mixing matrix from signed interference weights.

    Each cell gets magnitude ``softmax(|row|)[j]`` and angle
    ``weight * pi / 8``; every row is then scaled to unit L2 norm. A row
    that cannot be normalized becomes the identity row.
    """
    matrix: ComplexMatrix = []
    for r, row in enumerate(weights):
        magnitudes = _softmax([abs(w) for w in row])
        complex_row = [expi(w * ANGLE_PER_WEIGHT).scale(m) for w, m in zip(row, magnitudes)]
        identity_row = [Complex(1.0 if c == r else 0.0, 0.0) for c in range(len(row))]
        matrix.append(normalize(complex_row, identity_row))
    return matrix


def build_evolution_operator(mixing: ComplexMatrix, phases: dict[str, float]) -> ComplexMatrix:
    """``mixing @ diag(exp(i * phase))``."""
    rotation = diagonal([expi(phases[state]) for state in STATES])
    return mat_mul(mixing, rotation)


def apply_rules(
    readings: IndicatorReadings, config: QuantumConfig
) -> tuple[InterferenceWeights, PhaseMap]:
    weights, phase_map = config.interference, config.phase_map
    for rule in config.rules:
        if rule.predicate(readings):
            logger.debug("Quantum rule %s applied", rule.name)
            weights, phase_map = rule.transform(weights, phase_map)
    return weights, phase_map


# -----------------------------------------------------------------------------
# Evolution and measurement
# -----------------------------------------------------------------------------

def _givens(a: Complex, b: Complex, theta: float) -> tuple[Complex, Complex]:
    c, s = math.cos(theta), math.sin(theta)
    return a.scale(c).add(b.scale(-s)), a.scale(s).add(b.scale(c))


def entangle(amplitudes: ComplexVector, coupling: float, strength: float) -> ComplexVector:
    """
    Rotate Up/Down by ``theta`` and Base/Reversal by ``theta / 2``.

    ``theta = strength * clamp(coupling, -1, 1) * pi / 4``. The result is
    renormalized.
    """
    theta = strength * clamp(coupling, -1.0, 1.0) * math.pi / 4.0
    out = list(amplitudes)
    out[_UP], out[_DOWN] = _givens(amplitudes[_UP], amplitudes[_DOWN], theta)
    out[_BASE], out[_REVERSAL] = _givens(amplitudes[_BASE], amplitudes[_REVERSAL], theta / 2.0)
    return normalize(out, equal_superposition())


def evolve(operator: ComplexMatrix, amplitudes: ComplexVector, steps: int) -> ComplexVector:
    """Apply ``operator`` ``steps`` times, renormalizing after each step."""
    state = normalize(amplitudes, equal_superposition())
    for _ in range(max(0, steps)):
        state = normalize(mat_vec(operator, state), equal_superposition())
    return state


def measure(amplitudes: ComplexVector) -> ProbabilityVector:
    """Squared magnitudes, renormalized (uniform fallback)."""
    return normalize_vector(
        {state: amp.magnitude_squared() for state, amp in zip(STATES, amplitudes)}
    )


@dataclass(frozen=True)
class QuantumWalkResult:
    probabilities: ProbabilityVector
    phases: dict[str, float]
    shifts: dict[str, float]
    amplitudes: ComplexVector


def simulate_quantum_walk(
    readings: IndicatorReadings,
    config: QuantumConfig = DEFAULT_QUANTUM_CONFIG,
    coupling: Optional[float] = None,
) -> QuantumWalkResult:
    """
    Run the walk for one set of averaged readings.

    Args:
        readings: Averaged indicator readings
        config: Walk parameters
        coupling: Aggregated peer-coupling signal in [-1, 1]; only used
            when entanglement is enabled

    Returns:
        QuantumWalkResult with the measured probability vector
    """
    weights, phase_map = apply_rules(readings, config)
    phases = compute_phases(readings, phase_map)
    operator = build_evolution_operator(build_mixing_matrix(weights), phases)

    amplitudes = equal_superposition()
    if config.entanglement.enabled and coupling is not None:
        amplitudes = entangle(amplitudes, coupling, config.entanglement.strength)

    amplitudes = evolve(operator, amplitudes, config.steps)

    return QuantumWalkResult(
        probabilities=measure(amplitudes),
        phases=phases,
        shifts=indicator_shifts(readings, phase_map),
        amplitudes=amplitudes,
    )
