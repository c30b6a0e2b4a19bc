"""LiDAR scan containers, point correspondences and the 16-beam intrinsic model."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np

from licalib.cloud import PointCloud

NUM_LASERS = 16
NUM_LASER_PARAMS = 6


class LidarModelType(IntEnum):
    VLP_16_PACKET = 0
    VLP_16_SIMU = 1
    VLP_16_POINTS = 2
    VLP_32E_POINTS = 3
    VLS_128_POINTS = 4
    OUSTER = 5
    OUSTER_16_POINTS = 6
    OUSTER_32_POINTS = 7
    OUSTER_64_POINTS = 8
    OUSTER_128_POINTS = 9
    HESAI_XT32 = 10
    LIVOX_HORIZON = 11
    RS_16 = 12
    RS_M1 = 13


@dataclass
class LiDARFeature:
    """One scan: its start time, latest point time, points and raw measurements."""

    timestamp: float = 0.0
    time_max: float = 0.0
    full_features: PointCloud = field(default_factory=PointCloud)
    raw_data: PointCloud = field(default_factory=PointCloud)

    def clear(self) -> None:
        self.timestamp = 0.0
        self.time_max = 0.0
        self.full_features = PointCloud()
        self.raw_data = PointCloud()

    def copy(self) -> "LiDARFeature":
        """Deep copy: the clouds of the copy are independent of this one."""
        return LiDARFeature(
            self.timestamp,
            self.time_max,
            self.full_features.copy(),
            self.raw_data.copy(),
        )


class GeometryType(IntEnum):
    LINE = 0
    PLANE = 1


def _zeros(n: int):
    return field(default_factory=lambda: np.zeros(n))


@dataclass
class PointCorrespondence:
    """A LiDAR point matched with a line or plane of the map."""

    t_point: float = 0.0
    t_map: float = 0.0
    point: np.ndarray = _zeros(3)
    point_raw: np.ndarray = _zeros(3)
    geo_type: GeometryType = GeometryType.LINE
    geo_plane: np.ndarray = _zeros(4)
    geo_normal: np.ndarray = _zeros(3)
    geo_point: np.ndarray = _zeros(3)


_RING_CASE_DESCRIPTIONS = (
    "lidar [ring] field in the order of firing time",
    "lidar [ring] in the order of decreasing vertical angle",
    "lidar [ring] in the order of incremental vertical angle",
)


class LiDARIntrinsic:
    """Per-laser intrinsic parameters of a 16-beam spinning LiDAR.

    Each laser has six parameters: distance scale, distance offset, vertical
    offset, horizontal offset, vertical angle (rad) and horizontal angle
    correction (rad).  Parameters are stored in firing order (ring case 0);
    ``ring_case`` selects how a laser id in the data maps onto that order.
    """

    VERT_CORRECTION = (-15, 1, -13, 3, -11, 5, -9, 7, -7, 9, -5, 11, -3, 13, -1, 15)

    RING_MAP = (
        (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15),
        (15, 13, 11, 9, 7, 5, 3, 1, 14, 12, 10, 8, 6, 4, 2, 0),
        (0, 2, 4, 6, 8, 10, 12, 14, 1, 3, 5, 7, 9, 11, 13, 15),
    )

    def __init__(self, ring_case: int = 0) -> None:
        self._check_ring_case(ring_case)
        self.ring_case = ring_case
        self._params = []
        for degrees in self.VERT_CORRECTION:
            param = np.zeros(NUM_LASER_PARAMS)
            param[0] = 1.0
            param[4] = degrees * math.pi / 180.0
            self._params.append(param)

    @staticmethod
    def _check_ring_case(ring_case: int) -> None:
        if not 0 <= ring_case <= 2:
            raise ValueError(f"ring case {ring_case} not in range 0..2")

    def set_ring_case(self, ring_case: int) -> None:
        self._check_ring_case(ring_case)
        self.ring_case = ring_case

    @property
    def ring_case_description(self) -> str:
        return _RING_CASE_DESCRIPTIONS[self.ring_case]

    def _storage_index(self, laser_id: int) -> int:
        if not 0 <= laser_id < NUM_LASERS:
            raise IndexError(f"laser id {laser_id} not in range 0..{NUM_LASERS - 1}")
        return self.RING_MAP[self.ring_case][laser_id]

    def calibrate(self, laser_id: int, point_raw) -> np.ndarray:
        """Calibrated xyz of a raw ``(laser_id, angle, range)`` measurement."""
        return self.calibrate_with(self._params[self._storage_index(laser_id)], point_raw)

    @staticmethod
    def calibrate_with(laser_param, point_raw) -> np.ndarray:
        """Apply six laser parameters to a raw ``(laser_id, angle, range)`` point.

        The result uses the ROS convention: x forward, y left, z up.
        """
        param = np.asarray(laser_param, dtype=float)
        if param.shape != (NUM_LASER_PARAMS,):
            raise ValueError("laser parameters must have six entries")
        (dist_scale, dist_offset, vert_offset, horiz_offset, vert_rad,
         delta_horiz_rad) = param
        _, rot_measure, distance = np.asarray(point_raw, dtype=float)

        rho = dist_scale * distance + dist_offset
        xy_dist = rho * math.cos(vert_rad)
        azimuth = rot_measure - delta_horiz_rad

        x = xy_dist * math.sin(azimuth) + horiz_offset * math.cos(azimuth)
        y = xy_dist * math.cos(azimuth) + horiz_offset * math.sin(azimuth)
        z = rho * math.sin(vert_rad) + vert_offset
        return np.array([y, -x, z])

    @staticmethod
    def _check_param_index(idx: int) -> None:
        if not 0 < idx < NUM_LASER_PARAMS:
            raise IndexError(f"parameter index {idx} not in range 1..5")

    def get_laser_param(self, laser_id: int, idx: int) -> float:
        """Parameter ``idx`` (1..5; the scale is not addressable) of a laser."""
        self._check_param_index(idx)
        return float(self._params[self._storage_index(laser_id)][idx])

    def set_laser_param(self, laser_id: int, idx: int, value: float) -> None:
        self._check_param_index(idx)
        self._params[self._storage_index(laser_id)][idx] = float(value)

    def laser_params(self) -> list[np.ndarray]:
        """Copies of all parameter vectors in storage (firing) order."""
        return [p.copy() for p in self._params]

    def format_laser_params(self) -> str:
        """Table of parameters in decreasing vertical angle order, with offsets
        in millimetres and angles in degrees."""
        lines = [
            "dist_scale, dist_offset_mm, vert_offset_mm, horiz_offset_mm, "
            "vert_degree, delta_horiz_degree"
        ]
        for storage in self.RING_MAP[1]:
            v = self._params[storage]
            values = (
                v[0],
                v[1] * 1000,
                v[2] * 1000,
                v[3] * 1000,
                v[4] * 180 / math.pi,
                v[5] * 180 / math.pi,
            )
            lines.append(", ".join(f"{x:15.5f}" for x in values))
        return "\n".join(lines) + "\n"