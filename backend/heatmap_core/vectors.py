"""Probability vectors over the four market states.

A vector is a plain ``dict`` keyed by state name in ``STATES`` order
(Down, Base, Reversal, Up). Normalized vectors are non-negative and sum
to 1; degenerate inputs fall back to the uniform distribution.
"""

from __future__ import annotations

import math
from typing import Mapping, Optional

from heatmap_core.models.signal import QuantumState

ProbabilityVector = dict[str, float]

STATES: tuple[str, ...] = tuple(state.value for state in QuantumState)

_LN_STATES = math.log(len(STATES))


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into ``[lo, hi]``; NaN maps to ``lo``."""
    if math.isnan(value):
        return lo
    return min(max(value, lo), hi)


def sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def zero_vector() -> ProbabilityVector:
    return {state: 0.0 for state in STATES}


def uniform_vector() -> ProbabilityVector:
    return {state: 1.0 / len(STATES) for state in STATES}


def one_hot(state: Optional[str]) -> ProbabilityVector:
    """One-hot vector on ``state``; uniform when there is no state."""
    if state not in STATES:
        return uniform_vector()
    vector = zero_vector()
    vector[state] = 1.0
    return vector


def normalize_vector(vector: Mapping[str, float]) -> ProbabilityVector:
    """Clamp negatives to zero and rescale to sum to 1."""
    clipped = {}
    for state in STATES:
        value = vector.get(state, 0.0)
        clipped[state] = value if math.isfinite(value) and value > 0 else 0.0

    total = sum(clipped.values())
    if not math.isfinite(total) or total <= 0:
        return uniform_vector()
    return {state: clipped[state] / total for state in STATES}


def entropy(vector: Mapping[str, float]) -> float:
    """Shannon entropy (natural log) of a normalized vector."""
    return -sum(p * math.log(p) for p in (vector[s] for s in STATES) if p > 0)


def dominant_state(vector: Mapping[str, float]) -> str:
    """Argmax; ties go to the state listed first in ``STATES``."""
    best = STATES[0]
    for state in STATES:
        if vector[state] > vector[best]:
            best = state
    return best


def confidence(vector: Mapping[str, float]) -> float:
    """Blend of top-two margin and certainty (1 - normalized entropy)."""
    ranked = sorted((vector[s] for s in STATES), reverse=True)
    margin = ranked[0] - ranked[1]
    certainty = 1.0 - entropy(vector) / _LN_STATES
    return clamp(0.6 * margin + 0.4 * certainty, 0.0, 1.0)
