"""Minimal complex value type and 4x4 helpers for the quantum walk.

Arithmetic is spelled out term by term; results must match other
implementations of the same walk bit for bit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

ComplexVector = list["Complex"]
ComplexMatrix = list[list["Complex"]]


@dataclass(frozen=True)
class Complex:
    re: float = 0.0
    im: float = 0.0

    def add(self, other: "Complex") -> "Complex":
        return Complex(self.re + other.re, self.im + other.im)

    def mul(self, other: "Complex") -> "Complex":
        return Complex(
            self.re * other.re - self.im * other.im,
            self.re * other.im + self.im * other.re,
        )

    def scale(self, factor: float) -> "Complex":
        return Complex(self.re * factor, self.im * factor)

    def magnitude_squared(self) -> float:
        return self.re * self.re + self.im * self.im

    def magnitude(self) -> float:
        return math.sqrt(self.magnitude_squared())

    def rotate(self, theta: float) -> "Complex":
        """Multiply by ``exp(i * theta)``."""
        return self.mul(expi(theta))

    def is_finite(self) -> bool:
        return math.isfinite(self.re) and math.isfinite(self.im)


ZERO = Complex(0.0, 0.0)
ONE = Complex(1.0, 0.0)


def expi(theta: float) -> Complex:
    """``exp(i * theta)`` as a unit complex number."""
    return Complex(math.cos(theta), math.sin(theta))


def identity(size: int = 4) -> ComplexMatrix:
    return [[ONE if r == c else ZERO for c in range(size)] for r in range(size)]


def diagonal(values: Sequence[Complex]) -> ComplexMatrix:
    size = len(values)
    return [[values[r] if r == c else ZERO for c in range(size)] for r in range(size)]


def mat_vec(matrix: ComplexMatrix, vector: Sequence[Complex]) -> ComplexVector:
    """Matrix times column vector."""
    result = []
    for row in matrix:
        acc = ZERO
        for coefficient, amplitude in zip(row, vector):
            acc = acc.add(coefficient.mul(amplitude))
        result.append(acc)
    return result


def mat_mul(a: ComplexMatrix, b: ComplexMatrix) -> ComplexMatrix:
    """Matrix product ``a @ b``."""
    size = len(b)
    cols = len(b[0]) if b else 0
    result = []
    for row in a:
        out_row = []
        for c in range(cols):
            acc = ZERO
            for k in range(size):
                acc = acc.add(row[k].mul(b[k][c]))
            out_row.append(acc)
        result.append(out_row)
    return result


def norm(vector: Sequence[Complex]) -> float:
    """L2 norm of a complex vector."""
    return math.sqrt(sum(v.magnitude_squared() for v in vector))


def normalize(vector: Sequence[Complex], fallback: Sequence[Complex]) -> ComplexVector:
    """Scale to unit L2 norm; return ``fallback`` for zero or non-finite input."""
    total = norm(vector)
    if not math.isfinite(total) or total <= 0:
        return list(fallback)
    return [v.scale(1.0 / total) for v in vector]
