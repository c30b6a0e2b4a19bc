"""Quaternion, rotation-matrix and homogeneous-transform helpers.

Quaternions are numpy arrays in ``(x, y, z, w)`` order.
"""

from __future__ import annotations

import math

import numpy as np


def _quaternion(q) -> np.ndarray:
    arr = np.asarray(q, dtype=float)
    if arr.shape != (4,):
        raise ValueError(f"quaternion must have 4 components, got shape {arr.shape}")
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        raise ValueError("quaternion has zero norm")
    return arr / norm


def _vector3(v, name: str) -> np.ndarray:
    arr = np.asarray(v, dtype=float)
    if arr.shape != (3,):
        raise ValueError(f"{name} must be a vector of size 3, got shape {arr.shape}")
    return arr


def _rotation(r) -> np.ndarray:
    arr = np.asarray(r, dtype=float)
    if arr.shape != (3, 3):
        raise ValueError(f"rotation must be a 3x3 matrix, got shape {arr.shape}")
    return arr


def quaternion_to_matrix(q) -> np.ndarray:
    """Rotation matrix of an ``(x, y, z, w)`` quaternion (normalised first)."""
    x, y, z, w = _quaternion(q)
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - z * w), 2 * (x * z + y * w)],
            [2 * (x * y + z * w), 1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
            [2 * (x * z - y * w), 2 * (y * z + x * w), 1 - 2 * (x * x + y * y)],
        ]
    )


def matrix_to_quaternion(rotation) -> np.ndarray:
    """Unit ``(x, y, z, w)`` quaternion of a rotation matrix, with ``w >= 0``."""
    m = _rotation(rotation)
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0:
        s = math.sqrt(trace + 1.0) * 2.0
        w = 0.25 * s
        x = (m[2, 1] - m[1, 2]) / s
        y = (m[0, 2] - m[2, 0]) / s
        z = (m[1, 0] - m[0, 1]) / s
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2]) * 2.0
        w = (m[2, 1] - m[1, 2]) / s
        x = 0.25 * s
        y = (m[0, 1] + m[1, 0]) / s
        z = (m[0, 2] + m[2, 0]) / s
    elif m[1, 1] > m[2, 2]:
        s = math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2]) * 2.0
        w = (m[0, 2] - m[2, 0]) / s
        x = (m[0, 1] + m[1, 0]) / s
        y = 0.25 * s
        z = (m[1, 2] + m[2, 1]) / s
    else:
        s = math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1]) * 2.0
        w = (m[1, 0] - m[0, 1]) / s
        x = (m[0, 2] + m[2, 0]) / s
        y = (m[1, 2] + m[2, 1]) / s
        z = 0.25 * s
    q = np.array([x, y, z, w])
    if w < 0:
        q = -q
    return q / np.linalg.norm(q)


def make_transform(rotation, translation) -> np.ndarray:
    """4x4 homogeneous transform from a rotation matrix and a translation."""
    t = np.eye(4)
    t[:3, :3] = _rotation(rotation)
    t[:3, 3] = _vector3(translation, "translation")
    return t


def get_trans_between(trans_start, rot_start, trans_end, rot_end) -> np.ndarray:
    """Relative transform ``start^-1 * end`` of two poses given as
    translation and ``(x, y, z, w)`` quaternion."""
    r_s = quaternion_to_matrix(rot_start)
    t_s = _vector3(trans_start, "trans_start")
    end = make_transform(quaternion_to_matrix(rot_end), trans_end)
    start_inv = make_transform(r_s.T, -r_s.T @ t_s)
    return start_inv @ end