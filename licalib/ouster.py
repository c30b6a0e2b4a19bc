"""Organising Ouster LiDAR clouds into fixed ring x firing grids."""

from __future__ import annotations

from enum import IntEnum

import numpy as np

from licalib.cloud import PointCloud
from licalib.lidar_feature import LiDARFeature


class OusterRingNo(IntEnum):
    RING128 = 128
    RING64 = 64
    RING32 = 32
    RING16 = 16


class OusterLiDAR:
    """Selects ``ring_no`` evenly spaced rings of an Ouster scan of 2048 firings."""

    NUM_FIRING = 2048
    MAX_DEPTH = 60.0

    def __init__(self, ring_no) -> None:
        self.ring_no = OusterRingNo(ring_no)
        self.num_firing = self.NUM_FIRING

    def organize(self, timestamp: float, points, rings, offsets_ns, height: int, width: int) -> LiDARFeature:
        """Build the organised scan.

        ``points`` is ``(height * width, 3)``, ``rings`` the ring number and
        ``offsets_ns`` the time offset in nanoseconds of each point.  Points
        farther than 60 m become NaN.  The raw data holds
        ``(ring, offset_ns, range)`` with the offset in seconds as timestamp.
        """
        ring_number = int(self.ring_no)
        ring_step = height // ring_number
        if ring_step < 1:
            raise ValueError(f"cloud of {height} rows has fewer than {ring_number} rings")
        if width < self.num_firing:
            raise ValueError(f"cloud width {width} is less than {self.num_firing} firings")
        count = height * width
        pts = np.asarray(points, dtype=float)
        ring_ids = np.asarray(rings, dtype=float)
        offsets = np.asarray(offsets_ns, dtype=float)
        if pts.size != count * 3 or ring_ids.size != count or offsets.size != count:
            raise ValueError("input sizes do not match height x width")

        rows = np.arange(ring_number) * ring_step
        cols = slice(0, self.num_firing)
        sel = pts.reshape(height, width, 3)[rows, cols]
        sel_rings = ring_ids.reshape(height, width)[rows, cols]
        sel_offsets = offsets.reshape(height, width)[rows, cols]

        depth = np.sqrt((sel**2).sum(axis=-1))
        keep = ~(depth > self.MAX_DEPTH)
        offset_s = sel_offsets * 1e-9

        full_xyz = np.where(keep[..., None], sel, np.nan)
        full_ts = np.where(keep, timestamp + offset_s, timestamp)
        raw_values = np.stack([sel_rings, sel_offsets, depth], axis=-1)
        raw_xyz = np.where(keep[..., None], raw_values, np.nan)
        raw_ts = np.where(keep, offset_s, timestamp)

        full = PointCloud(full_xyz.reshape(-1, 3), full_ts.reshape(-1), ring_number, self.num_firing)
        raw = PointCloud(raw_xyz.reshape(-1, 3), raw_ts.reshape(-1), ring_number, self.num_firing)
        return LiDARFeature(timestamp=timestamp, full_features=full, raw_data=raw)