"""SO(3), SE(3) and Sim(3) helpers: exponential and logarithm maps and Jacobians.

Rotations are 3x3 numpy arrays.  SE(3) and Sim(3) use the *decoupled*
tangent layout: translation first, rotation second, then (for Sim(3)) the
log of the scale.
"""

from __future__ import annotations

import math

import numpy as np

from licalib.transforms import matrix_to_quaternion

_EPS = 1e-10
_SMALL_ANGLE = 1e-5


def _vector(v, size: int, name: str) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    if arr.shape != (size,):
        raise ValueError(f"{name} must be a vector of size {size}, got shape {arr.shape}")
    return arr


def _matrix3(m, name: str) -> np.ndarray:
    arr = np.asarray(m, dtype=float)
    if arr.shape != (3, 3):
        raise ValueError(f"{name} must be a 3x3 matrix, got shape {arr.shape}")
    return arr


def hat(v) -> np.ndarray:
    """Skew-symmetric matrix such that ``hat(a) @ b == cross(a, b)``."""
    x, y, z = _vector(v, 3, "v")
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def so3_exp(omega) -> np.ndarray:
    """Rotation matrix for the axis-angle vector ``omega``."""
    w = _vector(omega, 3, "omega")
    theta2 = float(w @ w)
    theta = math.sqrt(theta2)
    k = hat(w)
    if theta < _SMALL_ANGLE:
        a = 1.0 - theta2 / 6.0
        b = 0.5 - theta2 / 24.0
    else:
        a = math.sin(theta) / theta
        b = (1.0 - math.cos(theta)) / theta2
    return np.eye(3) + a * k + b * (k @ k)


def so3_log(rotation) -> np.ndarray:
    """Axis-angle vector of a rotation matrix, with angle in [0, pi]."""
    q = matrix_to_quaternion(_matrix3(rotation, "rotation"))
    vec, w = q[:3], q[3]
    n = float(np.linalg.norm(vec))
    if n < _EPS:
        factor = 2.0 / w - (2.0 / 3.0) * n * n / (w**3)
    else:
        factor = 2.0 * math.atan2(n, w) / n
    return factor * vec


def se3_logd(rotation, translation) -> np.ndarray:
    """Decoupled SE(3) log: ``[translation, log(rotation)]``."""
    t = _vector(translation, 3, "translation")
    return np.concatenate([t, so3_log(rotation)])


def se3_expd(upsilon_omega) -> tuple[np.ndarray, np.ndarray]:
    """Decoupled SE(3) exp: returns ``(rotation, translation)``."""
    v = _vector(upsilon_omega, 6, "upsilon_omega")
    return so3_exp(v[3:]), v[:3].copy()


def sim3_logd(scale: float, rotation, translation) -> np.ndarray:
    """Decoupled Sim(3) log: ``[translation, log(rotation), log(scale)]``."""
    if scale <= 0:
        raise ValueError("scale must be positive")
    t = _vector(translation, 3, "translation")
    return np.concatenate([t, so3_log(rotation), [math.log(scale)]])


def sim3_expd(upsilon_omega_sigma) -> tuple[float, np.ndarray, np.ndarray]:
    """Decoupled Sim(3) exp: returns ``(scale, rotation, translation)``."""
    v = _vector(upsilon_omega_sigma, 7, "upsilon_omega_sigma")
    return math.exp(v[6]), so3_exp(v[3:6]), v[:3].copy()


def right_jacobian_so3(phi) -> np.ndarray:
    """Right Jacobian: ``exp(phi + e) ~ exp(phi) exp(J e)``."""
    p = _vector(phi, 3, "phi")
    norm2 = float(p @ p)
    k = hat(p)
    k2 = k @ k
    j = np.eye(3)
    if norm2 > _EPS:
        norm = math.sqrt(norm2)
        j -= k * (1.0 - math.cos(norm)) / norm2
        j += k2 * (norm - math.sin(norm)) / (norm2 * norm)
    else:
        j -= k / 2.0
        j += k2 / 6.0
    return j


def right_jacobian_inv_so3(phi) -> np.ndarray:
    """Inverse right Jacobian: ``log(exp(phi) exp(e)) ~ phi + J e``."""
    p = _vector(phi, 3, "phi")
    norm2 = float(p @ p)
    k = hat(p)
    k2 = k @ k
    j = np.eye(3) + k / 2.0
    if norm2 > _EPS:
        norm = math.sqrt(norm2)
        j += k2 * (1.0 / norm2 - (1.0 + math.cos(norm)) / (2.0 * norm * math.sin(norm)))
    else:
        j += k2 / 12.0
    return j


def left_jacobian_so3(phi) -> np.ndarray:
    """Left Jacobian: ``exp(phi + e) ~ exp(J e) exp(phi)``."""
    p = _vector(phi, 3, "phi")
    norm2 = float(p @ p)
    k = hat(p)
    k2 = k @ k
    j = np.eye(3)
    if norm2 > _EPS:
        norm = math.sqrt(norm2)
        j += k * (1.0 - math.cos(norm)) / norm2
        j += k2 * (norm - math.sin(norm)) / (norm2 * norm)
    else:
        j += k / 2.0
        j += k2 / 6.0
    return j


def left_jacobian_inv_so3(phi) -> np.ndarray:
    """Inverse left Jacobian: ``log(exp(e) exp(phi)) ~ phi + J e``."""
    p = _vector(phi, 3, "phi")
    norm2 = float(p @ p)
    k = hat(p)
    k2 = k @ k
    j = np.eye(3) - k / 2.0
    if norm2 > _EPS:
        norm = math.sqrt(norm2)
        j += k2 * (1.0 / norm2 - (1.0 + math.cos(norm)) / (2.0 * norm * math.sin(norm)))
    else:
        j += k2 / 12.0
    return j


def right_jacobian_se3_decoupled(phi) -> np.ndarray:
    """6x6 right Jacobian of the decoupled SE(3) exponential."""
    p = _vector(phi, 6, "phi")
    omega = p[3:]
    j = np.zeros((6, 6))
    j[3:, 3:] = right_jacobian_so3(omega)
    j[:3, :3] = so3_exp(omega).T
    return j


def right_jacobian_inv_se3_decoupled(phi) -> np.ndarray:
    """6x6 inverse right Jacobian of the decoupled SE(3) logarithm."""
    p = _vector(phi, 6, "phi")
    omega = p[3:]
    j = np.zeros((6, 6))
    j[3:, 3:] = right_jacobian_inv_so3(omega)
    j[:3, :3] = so3_exp(omega)
    return j


def right_jacobian_sim3_decoupled(phi) -> np.ndarray:
    """7x7 right Jacobian of the decoupled Sim(3) exponential."""
    p = _vector(phi, 7, "phi")
    omega, sigma = p[3:6], p[6]
    j = np.zeros((7, 7))
    j[3:6, 3:6] = right_jacobian_so3(omega)
    j[:3, :3] = math.exp(-sigma) * so3_exp(omega).T
    j[6, 6] = 1.0
    return j


def right_jacobian_inv_sim3_decoupled(phi) -> np.ndarray:
    """7x7 inverse right Jacobian of the decoupled Sim(3) logarithm."""
    p = _vector(phi, 7, "phi")
    omega, sigma = p[3:6], p[6]
    j = np.zeros((7, 7))
    j[3:6, 3:6] = right_jacobian_inv_so3(omega)
    j[:3, :3] = math.exp(sigma) * so3_exp(omega)
    j[6, 6] = 1.0
    return j