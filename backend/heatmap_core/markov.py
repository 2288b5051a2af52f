"""Markov transition prior over regime labels.

The transition matrix is estimated from consecutive regime labels with
Laplace smoothing, so every row sums to 1 and no cell is zero. The
current state is projected 1, 2 and 3 steps ahead; each horizon yields a
directional score, and the scores are blended into one prior in [-1, 1].
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from heatmap_core.models.signal import STATE_FROM_REGIME, Regime
from heatmap_core.vectors import ProbabilityVector, clamp, normalize_vector, one_hot

logger = logging.getLogger(__name__)

# Matrix row/column order
MARKOV_STATES: tuple[Regime, ...] = (Regime.DOWN, Regime.REVERSAL, Regime.BASE, Regime.UP)
_INDEX = {state: i for i, state in enumerate(MARKOV_STATES)}

# (steps, weight)
HORIZONS: tuple[tuple[int, float], ...] = ((1, 0.5), (2, 0.3), (3, 0.2))

WEIGHT_REVERSAL = 0.6
WEIGHT_BASE = 0.25


@dataclass(frozen=True)
class MarkovContext:
    """Prior score plus the matrix and distribution it came from."""

    prior_score: float
    current_state: Optional[Regime]
    transition_matrix: list[list[float]]
    distribution: ProbabilityVector


def identity_matrix(size: int = len(MARKOV_STATES)) -> list[list[float]]:
    return np.eye(size).tolist()


def estimate_transition_matrix(regimes: Sequence[Regime]) -> np.ndarray:
    """Laplace-smoothed transition matrix: ``(count + 1) / (row_sum + 4)``."""
    size = len(MARKOV_STATES)
    counts = np.zeros((size, size), dtype=np.float64)

    for prev, nxt in zip(regimes, regimes[1:]):
        i = _INDEX.get(prev)
        j = _INDEX.get(nxt)
        if i is None or j is None:
            continue
        counts[i, j] += 1

    row_sums = counts.sum(axis=1, keepdims=True) + size
    return (counts + 1.0) / row_sums


def project_distribution(matrix: np.ndarray, state: Regime, steps: int) -> np.ndarray:
    """Distribution ``steps`` transitions after starting in ``state``."""
    vector = np.zeros(len(MARKOV_STATES))
    vector[_INDEX[state]] = 1.0
    for _ in range(steps):
        vector = vector @ matrix
    return vector


def directional_prior_score(probabilities: np.ndarray) -> float:
    """``P(U) + 0.6 P(R) - (P(D) + 0.25 P(B))`` clamped to [-1, 1]."""
    p_bull = probabilities[_INDEX[Regime.UP]] + WEIGHT_REVERSAL * probabilities[_INDEX[Regime.REVERSAL]]
    p_bear = probabilities[_INDEX[Regime.DOWN]] + WEIGHT_BASE * probabilities[_INDEX[Regime.BASE]]
    return clamp(float(p_bull - p_bear), -1.0, 1.0)


def to_probability_vector(probabilities: np.ndarray) -> ProbabilityVector:
    """Re-key a D/R/B/U array by fused-state name."""
    return normalize_vector(
        {STATE_FROM_REGIME[state].value: float(probabilities[i]) for i, state in enumerate(MARKOV_STATES)}
    )


def blend_horizons(matrix: np.ndarray, state: Regime) -> tuple[float, ProbabilityVector]:
    """Weighted prior score and weighted forward distribution over all horizons."""
    score = 0.0
    blended = np.zeros(len(MARKOV_STATES))
    for steps, weight in HORIZONS:
        probabilities = project_distribution(matrix, state, steps)
        score += weight * directional_prior_score(probabilities)
        blended += weight * probabilities
    return score, to_probability_vector(blended)


def resolve_markov_context(regimes: Sequence[Regime]) -> MarkovContext:
    """
    Build the Markov context for a window of regime labels.

    Args:
        regimes: Labels in chronological order

    Returns:
        MarkovContext. With fewer than two valid labels the prior is 0,
        the matrix is the identity and the distribution is one-hot on the
        last label (uniform when there is none).
    """
    valid = [r for r in regimes if r in _INDEX]
    current = valid[-1] if valid else None

    if current is None or len(valid) < 2:
        return MarkovContext(
            prior_score=0.0,
            current_state=current,
            transition_matrix=identity_matrix(),
            distribution=one_hot(STATE_FROM_REGIME[current].value if current else None),
        )

    matrix = estimate_transition_matrix(valid)
    score, distribution = blend_horizons(matrix, current)
    logger.debug("Markov prior %.4f from %d labels (current=%s)", score, len(valid), current.value)

    return MarkovContext(
        prior_score=score,
        current_state=current,
        transition_matrix=matrix.tolist(),
        distribution=distribution,
    )
