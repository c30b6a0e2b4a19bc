"""Static calibration of accelerometer and gyroscope: bias, scale, misalignment."""

from __future__ import annotations

import numpy as np


def _params(values, size: int) -> np.ndarray:
    if values is None:
        return np.zeros(size)
    arr = np.array(values, dtype=float).reshape(-1)
    if arr.shape != (size,):
        raise ValueError(f"expected {size} parameters, got {arr.size}")
    return arr


def _vector3(v) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"measurement must have 3 components, got shape {arr.shape}")
    return arr


def _random_params(size: int, rng: np.random.Generator | None) -> np.ndarray:
    rng = np.random.default_rng() if rng is None else rng
    values = rng.uniform(-1.0, 1.0, size)
    values[:3] /= 10.0
    values[3:] /= 100.0
    return values


def _apply(bias: np.ndarray, scale: np.ndarray, raw_measurement) -> np.ndarray:
    raw = _vector3(raw_measurement)
    return raw + scale @ raw - bias


def _invert(bias: np.ndarray, scale: np.ndarray, calibrated_measurement) -> np.ndarray:
    calibrated = _vector3(calibrated_measurement)
    return np.linalg.solve(np.eye(3) + scale, calibrated + bias)


class CalibAccelBias:
    """Accelerometer calibration with 9 parameters ``[b(3), s1..s6]``.

    The scale matrix is lower triangular: its first column is ``s1..s3``,
    then ``s4`` at (1, 1), ``s5`` at (2, 1) and ``s6`` at (2, 2).
    """

    SIZE = 9

    def __init__(self, params=None) -> None:
        self._param = _params(params, self.SIZE)

    def set_random(self, rng: np.random.Generator | None = None) -> None:
        """Fill with small random values: biases within 0.1, scales within 0.01."""
        self._param = _random_params(self.SIZE, rng)

    def param(self) -> np.ndarray:
        """The parameter vector itself; changes to it change the calibration."""
        return self._param

    def __iadd__(self, inc):
        self._param += _params(inc, self.SIZE)
        return self

    def bias_and_scale(self) -> tuple[np.ndarray, np.ndarray]:
        p = self._param
        scale = np.zeros((3, 3))
        scale[:, 0] = p[3:6]
        scale[1, 1] = p[6]
        scale[2, 1] = p[7]
        scale[2, 2] = p[8]
        return p[:3].copy(), scale

    def calibrate(self, raw_measurement) -> np.ndarray:
        """Calibrated value ``(I + S) raw - b``."""
        bias, scale = self.bias_and_scale()
        return _apply(bias, scale, raw_measurement)

    def invert_calibration(self, calibrated_measurement) -> np.ndarray:
        """Raw value that :meth:`calibrate` maps to ``calibrated_measurement``."""
        bias, scale = self.bias_and_scale()
        return _invert(bias, scale, calibrated_measurement)


class CalibGyroBias:
    """Gyroscope calibration with 12 parameters ``[b(3), s1..s9]``.

    The full 3x3 scale matrix is filled column by column from ``s1..s9``.
    """

    SIZE = 12

    def __init__(self, params=None) -> None:
        self._param = _params(params, self.SIZE)

    def set_random(self, rng: np.random.Generator | None = None) -> None:
        """Fill with small random values: biases within 0.1, scales within 0.01."""
        self._param = _random_params(self.SIZE, rng)

    def param(self) -> np.ndarray:
        """The parameter vector itself; changes to it change the calibration."""
        return self._param

    def __iadd__(self, inc):
        self._param += _params(inc, self.SIZE)
        return self

    def bias_and_scale(self) -> tuple[np.ndarray, np.ndarray]:
        p = self._param
        return p[:3].copy(), p[3:].reshape(3, 3).T.copy()

    def calibrate(self, raw_measurement) -> np.ndarray:
        """Calibrated value ``(I + S) raw - b``."""
        bias, scale = self.bias_and_scale()
        return _apply(bias, scale, raw_measurement)

    def invert_calibration(self, calibrated_measurement) -> np.ndarray:
        """Raw value that :meth:`calibrate` maps to ``calibrated_measurement``."""
        bias, scale = self.bias_and_scale()
        return _invert(bias, scale, calibrated_measurement)