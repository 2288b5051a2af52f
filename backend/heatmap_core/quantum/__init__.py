"""Quantum-walk feature combiner."""

from heatmap_core.quantum.complex import Complex, expi, mat_mul, mat_vec, norm
from heatmap_core.quantum.config import (
    DEFAULT_INTERFERENCE,
    DEFAULT_QUANTUM_CONFIG,
    EntanglementConfig,
    IndicatorPhase,
    PhaseMap,
    QuantumConfig,
    RegimeRule,
)
from heatmap_core.quantum.walk import (
    QuantumWalkResult,
    build_evolution_operator,
    build_mixing_matrix,
    compute_phases,
    entangle,
    equal_superposition,
    evolve,
    indicator_shifts,
    measure,
    simulate_quantum_walk,
)

__all__ = [
    "Complex",
    "DEFAULT_INTERFERENCE",
    "DEFAULT_QUANTUM_CONFIG",
    "EntanglementConfig",
    "IndicatorPhase",
    "PhaseMap",
    "QuantumConfig",
    "QuantumWalkResult",
    "RegimeRule",
    "build_evolution_operator",
    "build_mixing_matrix",
    "compute_phases",
    "entangle",
    "equal_superposition",
    "evolve",
    "expi",
    "indicator_shifts",
    "mat_mul",
    "mat_vec",
    "measure",
    "norm",
    "simulate_quantum_walk",
]
