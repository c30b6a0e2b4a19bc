"""Decoding of 16-beam spinning LiDAR scans into organised clouds."""

from __future__ import annotations

import math

import numpy as np

from licalib.cloud import PointCloud
from licalib.lidar_feature import LiDARFeature

NUM_LASERS = 16
BLOCKS_PER_PACKET = 12
FIRINGS_PER_BLOCK = 2
RAW_SCAN_SIZE = 3
SCANS_PER_BLOCK = 32
BLOCK_SIZE = 4 + SCANS_PER_BLOCK * RAW_SCAN_SIZE
PACKET_BLOCKS_SIZE = BLOCKS_PER_PACKET * BLOCK_SIZE
ROTATION_RESOLUTION = 0.01
ROTATION_MAX_UNITS = 36000
DISTANCE_RESOLUTION = 0.002
BLOCK_TDURATION = 110.592
DSR_TOFFSET = 2.304
FIRING_TOFFSET = 55.296
MAX_FIRINGS = 1824

VERT_CORRECTION = (
    -0.2617993877991494, 0.017453292519943295, -0.22689280275926285,
    0.05235987755982989, -0.19198621771937624, 0.08726646259971647,
    -0.15707963267948966, 0.12217304763960307, -0.12217304763960307,
    0.15707963267948966, -0.08726646259971647, 0.19198621771937624,
    -0.05235987755982989, 0.22689280275926285, -0.017453292519943295,
    0.2617993877991494,
)

SCAN_MAPPING = (15, 7, 14, 6, 13, 5, 12, 4, 11, 3, 10, 2, 9, 1, 8, 0)
"""Output row of each laser id, ordered by decreasing vertical angle."""


def _time_offset(dsr, firing):
    return dsr * DSR_TOFFSET * 1e-6 + firing * FIRING_TOFFSET * 1e-6


class Velodyne16:
    """Decoder for 16-laser scans; outputs points and raw ``(id, angle, range)``."""

    def __init__(self) -> None:
        self.max_range = 150.0
        self.min_range = 1.0
        self.min_angle = 0
        self.max_angle = 36000
        vert = np.array(VERT_CORRECTION)
        self._cos_vert = np.cos(vert)
        self._sin_vert = np.sin(vert)
        self._mapping = np.array(SCAN_MAPPING)

    def exact_time(self, dsr: int, firing: int) -> float:
        """Time offset of laser ``dsr`` in firing sequence ``firing`` from scan start."""
        if not 0 <= dsr < NUM_LASERS:
            raise IndexError(f"laser id {dsr} not in range 0..{NUM_LASERS - 1}")
        if not 0 <= firing < MAX_FIRINGS:
            raise IndexError(f"firing {firing} not in range 0..{MAX_FIRINGS - 1}")
        return _time_offset(dsr, firing)

    def _in_window(self, azimuth: np.ndarray) -> np.ndarray:
        lo, hi = self.min_angle, self.max_angle
        if lo < hi:
            return (azimuth >= lo) & (azimuth <= hi)
        if lo > hi:
            return (azimuth <= hi) | (azimuth >= lo)
        return np.zeros(azimuth.shape, dtype=bool)

    @staticmethod
    def _parse_packet(packet) -> tuple[np.ndarray, np.ndarray]:
        data = bytes(packet)
        if len(data) < PACKET_BLOCKS_SIZE:
            raise ValueError(
                f"packet holds {len(data)} bytes, need at least {PACKET_BLOCKS_SIZE}"
            )
        blocks = np.frombuffer(data[:PACKET_BLOCKS_SIZE], dtype=np.uint8)
        blocks = blocks.reshape(BLOCKS_PER_PACKET, BLOCK_SIZE).astype(np.int64)
        rotation = blocks[:, 2] | (blocks[:, 3] << 8)
        meas = blocks[:, 4:].reshape(BLOCKS_PER_PACKET, SCANS_PER_BLOCK, RAW_SCAN_SIZE)
        distance = (meas[..., 0] | (meas[..., 1] << 8)).reshape(
            BLOCKS_PER_PACKET, FIRINGS_PER_BLOCK, NUM_LASERS
        )
        return rotation, distance

    def unpack_scan(self, timestamp: float, packets) -> LiDARFeature:
        """Decode raw packets (at least 1200 bytes each) of one revolution."""
        packets = list(packets)
        width = BLOCKS_PER_PACKET * FIRINGS_PER_BLOCK * len(packets)
        if width > MAX_FIRINGS:
            raise ValueError(f"scan of {len(packets)} packets exceeds {MAX_FIRINGS} firings")
        full = PointCloud.nan_filled(NUM_LASERS, width, timestamp)
        raw = PointCloud.nan_filled(NUM_LASERS, width, timestamp)

        dsr = np.arange(NUM_LASERS)[None, None, :]
        firing = np.arange(FIRINGS_PER_BLOCK)[None, :, None]
        block = np.arange(BLOCKS_PER_PACKET)[:, None, None]
        shape = (BLOCKS_PER_PACKET, FIRINGS_PER_BLOCK, NUM_LASERS)
        dsr_full = np.broadcast_to(dsr, shape)
        rows = self._mapping[dsr_full]
        deg2rad = ROTATION_RESOLUTION / 180.0 * math.pi

        for i, packet in enumerate(packets):
            rotation, dist_units = self._parse_packet(packet)
            diff = (ROTATION_MAX_UNITS + rotation[1:] - rotation[:-1]) % ROTATION_MAX_UNITS
            diff = np.append(diff, diff[-1]).astype(float)

            az_f = rotation[:, None, None] + diff[:, None, None] * (
                dsr * DSR_TOFFSET + firing * FIRING_TOFFSET
            ) / BLOCK_TDURATION
            az = np.floor(az_f + 0.5).astype(np.int64) % ROTATION_MAX_UNITS
            selected = self._in_window(az)

            distance = np.broadcast_to(dist_units * DISTANCE_RESOLUTION, shape)
            rot = np.radians(az * ROTATION_RESOLUTION)
            cos_v = self._cos_vert[dsr_full]
            sin_v = self._sin_vert[dsr_full]
            x = distance * cos_v * np.sin(rot)
            y = distance * cos_v * np.cos(rot)
            z = distance * sin_v

            columns = np.broadcast_to(
                FIRINGS_PER_BLOCK * (BLOCKS_PER_PACKET * i + block) + firing, shape
            )
            stamps = timestamp + _time_offset(dsr_full, columns)
            in_range = (distance >= self.min_range) & (distance <= self.max_range)

            xyz = np.stack([y, -x, z], axis=-1)
            meas = np.stack(
                [dsr_full.astype(float), np.broadcast_to(az_f * deg2rad, shape), distance],
                axis=-1,
            )
            xyz[~in_range] = np.nan
            meas[~in_range] = np.nan

            index = (rows * width + columns)[selected]
            full.xyz[index] = xyz[selected]
            full.timestamps[index] = stamps[selected]
            raw.xyz[index] = meas[selected]
            raw.timestamps[index] = stamps[selected]

        return LiDARFeature(timestamp=timestamp, full_features=full, raw_data=raw)

    def unpack_points(self, timestamp: float, xyz, intensity, height: int, width: int) -> LiDARFeature:
        """Reorder an already decoded organised cloud (laser id = input row).

        The raw data gets the laser id, the azimuth implied by the firing time
        and, in place of the range, the intensity.
        """
        if height != NUM_LASERS:
            raise ValueError(f"cloud must have {NUM_LASERS} rows, got {height}")
        if not 0 <= width <= MAX_FIRINGS:
            raise ValueError(f"cloud width {width} not in range 0..{MAX_FIRINGS}")
        pts = np.asarray(xyz, dtype=float)
        inten = np.asarray(intensity, dtype=float)
        if pts.size != height * width * 3 or inten.size != height * width:
            raise ValueError("point and intensity counts do not match height x width")
        pts = pts.reshape(height, width, 3)
        inten = inten.reshape(height, width)

        dsr = np.broadcast_to(np.arange(height)[:, None], (height, width))
        delta = _time_offset(dsr, np.arange(width)[None, :])
        stamps = timestamp + delta

        out_xyz = np.empty((height, width, 3))
        out_raw = np.empty((height, width, 3))
        out_ts = np.empty((height, width))
        raw_values = np.stack(
            [dsr.astype(float), 2 * math.pi * (delta / 0.100800), inten], axis=-1
        )
        out_xyz[self._mapping] = pts
        out_raw[self._mapping] = raw_values
        out_ts[self._mapping] = stamps

        full = PointCloud(out_xyz.reshape(-1, 3), out_ts.reshape(-1), height, width)
        raw = PointCloud(out_raw.reshape(-1, 3), out_ts.reshape(-1).copy(), height, width)
        return LiDARFeature(timestamp=timestamp, full_features=full, raw_data=raw)