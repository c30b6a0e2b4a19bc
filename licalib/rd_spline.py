"""Uniform B-spline over euclidean vectors."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

import numpy as np

from licalib.spline_common import (
    SPLINE_ORDER,
    compute_base_coefficients,
    compute_blending_matrix,
)


@dataclass(frozen=True)
class SplineJacobian:
    """Non-zero part of the Jacobian of a spline value w.r.t. its knots."""

    start_idx: int
    d_val_d_knot: np.ndarray


class RdSpline:
    """Uniform B-spline of a given order whose knots are vectors of size ``dim``."""

    def __init__(
        self,
        dim: int,
        order: int = SPLINE_ORDER,
        time_interval: float = 1.0,
        start_time: float = 0.0,
    ) -> None:
        if dim < 1:
            raise ValueError("dimension must be at least 1")
        if order < 1:
            raise ValueError("spline order must be at least 1")
        if time_interval <= 0:
            raise ValueError("time interval must be positive")
        self.dim = dim
        self.order = order
        self._dt = float(time_interval)
        self._start_t = float(start_time)
        self._knots: deque[np.ndarray] = deque()
        self._blending = compute_blending_matrix(order)
        self._base = compute_base_coefficients(order)

    def _as_knot(self, knot) -> np.ndarray:
        arr = np.asarray(knot, dtype=float).reshape(-1)
        if arr.shape != (self.dim,):
            raise ValueError(f"knot must have {self.dim} components, got {arr.size}")
        return arr.copy()

    def compute_t_index(self, timestamp: float) -> tuple[float, int]:
        """Return ``(u, s)``: the segment fraction and the first knot index."""
        if timestamp < self._start_t:
            raise ValueError(
                f"timestamp {timestamp} is before spline start {self._start_t}"
            )
        st = timestamp - self._start_t
        s = math.floor(st / self._dt)
        u = (st - s * self._dt) / self._dt
        if s + self.order > len(self._knots):
            raise ValueError(
                f"timestamp {timestamp} needs knots up to {s + self.order}, "
                f"spline has {len(self._knots)}"
            )
        return u, s

    def set_start_time(self, start_time: float) -> None:
        self._start_t = float(start_time)

    def max_time(self) -> float:
        """Upper (exclusive) bound of the time range the spline covers."""
        return self._start_t + (len(self._knots) - self.order + 1) * self._dt

    def min_time(self) -> float:
        return self._start_t

    def gen_random_trajectory(
        self, n: int, static_init: bool = False, rng: np.random.Generator | None = None
    ) -> None:
        """Append ``n`` random knots in [-5, 5]; with ``static_init`` the first
        ``order`` knots are identical."""
        rng = np.random.default_rng() if rng is None else rng
        if static_init:
            first = rng.uniform(-5.0, 5.0, self.dim)
            self._knots.extend(first.copy() for _ in range(self.order))
            remaining = n - self.order
        else:
            remaining = n
        self._knots.extend(rng.uniform(-5.0, 5.0, self.dim) for _ in range(max(remaining, 0)))

    def knots_push_back(self, knot) -> None:
        self._knots.append(self._as_knot(knot))

    def knots_pop_back(self) -> np.ndarray:
        return self._knots.pop()

    def knots_front(self) -> np.ndarray:
        if not self._knots:
            raise IndexError("spline has no knots")
        return self._knots[0].copy()

    def knots_pop_front(self) -> np.ndarray:
        """Drop the first knot and move the start time forward by one interval."""
        knot = self._knots.popleft()
        self._start_t += self._dt
        return knot

    def resize(self, n: int) -> None:
        """Truncate to ``n`` knots or pad with zero knots."""
        if n < 0:
            raise ValueError("number of knots cannot be negative")
        while len(self._knots) > n:
            self._knots.pop()
        while len(self._knots) < n:
            self._knots.append(np.zeros(self.dim))

    def get_knot(self, i: int) -> np.ndarray:
        return self._knots[i].copy()

    def set_knot(self, i: int, knot) -> None:
        self._knots[i] = self._as_knot(knot)

    def knots(self) -> list[np.ndarray]:
        return [k.copy() for k in self._knots]

    def time_interval(self) -> float:
        return self._dt

    def _coefficients(self, time: float, derivative: int) -> tuple[int, np.ndarray]:
        if derivative < 0:
            raise ValueError("derivative order cannot be negative")
        u, s = self.compute_t_index(time)
        p = np.zeros(self.order)
        if derivative < self.order:
            powers = np.arange(self.order - derivative)
            p[derivative:] = self._base[derivative, derivative:] * u**powers
        coeff = (1.0 / self._dt) ** derivative * (self._blending @ p)
        return s, coeff

    def evaluate(self, time: float, derivative: int = 0) -> np.ndarray:
        """Value (``derivative=0``) or time derivative of the spline at ``time``."""
        s, coeff = self._coefficients(time, derivative)
        segment = np.stack([self._knots[s + i] for i in range(self.order)])
        return coeff @ segment

    def jacobian(self, time: float, derivative: int = 0) -> SplineJacobian:
        """Jacobian of :meth:`evaluate` with respect to the supporting knots."""
        s, coeff = self._coefficients(time, derivative)
        return SplineJacobian(start_idx=s, d_val_d_knot=coeff)

    def velocity(self, time: float) -> np.ndarray:
        return self.evaluate(time, 1)

    def acceleration(self, time: float) -> np.ndarray:
        return self.evaluate(time, 2)