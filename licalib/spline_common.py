"""Common helpers for uniform B-spline evaluation."""

from __future__ import annotations

import math

import numpy as np

SPLINE_ORDER = 4
"""Default spline order used throughout the package (cubic B-spline)."""


def c_n_k(n: int, k: int) -> int:
    """Return the binomial coefficient "n choose k", or 0 when k > n."""
    if n < 0 or k < 0:
        raise ValueError("binomial coefficient needs non-negative arguments")
    if k > n:
        return 0
    return math.comb(n, k)


def compute_blending_matrix(n: int, cumulative: bool = False) -> np.ndarray:
    """Blending matrix of a uniform B-spline of order ``n``.

    Row ``j`` belongs to knot ``j`` of the segment, column ``i`` to the
    power ``u**i`` of the normalised segment time.  With ``cumulative`` set,
    each row holds the sum of itself and all rows below it.
    """
    if n < 1:
        raise ValueError("spline order must be at least 1")

    def entry(j: int, i: int) -> float:
        total = sum(
            (-1.0) ** (s - j) * c_n_k(n, s - j) * (n - s - 1.0) ** (n - 1.0 - i)
            for s in range(j, n)
        )
        return c_n_k(n - 1, n - 1 - i) * total

    m = np.array([[entry(j, i) for i in range(n)] for j in range(n)], dtype=float)

    if cumulative:
        m = np.cumsum(m[::-1], axis=0)[::-1].copy()

    return m / math.factorial(n - 1)


def compute_base_coefficients(n: int) -> np.ndarray:
    """Derivative coefficients of the polynomial ``[1, t, ..., t**(n-1)]``.

    Row ``d`` holds the factors that appear in the ``d``-th time derivative.
    """
    if n < 1:
        raise ValueError("polynomial size must be at least 1")
    return np.array(
        [[float(math.perm(i, d)) for i in range(n)] for d in range(n)], dtype=float
    )