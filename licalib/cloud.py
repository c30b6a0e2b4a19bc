"""Point clouds whose points carry a position and a timestamp.

A cloud is stored as an ``(N, 3)`` array of positions and an ``(N,)`` array of
timestamps.  An organised cloud has ``height`` rows of ``width`` points; the
point at column ``w`` and row ``h`` sits at index ``h * width + w``.  An
unorganised cloud has ``height == 1``.  Missing points hold NaN coordinates.
"""

from __future__ import annotations

import numpy as np


class PointCloud:
    """Timestamped point cloud, optionally organised as a height x width grid."""

    def __init__(self, xyz=None, timestamps=None, height=None, width=None) -> None:
        points = np.zeros((0, 3)) if xyz is None else np.array(xyz, dtype=float)
        if points.size == 0:
            points = points.reshape(0, 3)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"xyz must have shape (N, 3), got {points.shape}")
        count = points.shape[0]

        if timestamps is None:
            stamps = np.zeros(count)
        else:
            stamps = np.array(timestamps, dtype=float).reshape(-1)
            if stamps.shape != (count,):
                raise ValueError(
                    f"expected {count} timestamps, got {stamps.size}"
                )

        if height is None and width is None:
            height, width = 1, count
        elif height is None:
            if width == 0 or count % width:
                raise ValueError("width does not divide the number of points")
            height = count // width
        elif width is None:
            if height == 0 or count % height:
                raise ValueError("height does not divide the number of points")
            width = count // height
        if height < 0 or width < 0 or height * width != count:
            raise ValueError(
                f"height {height} x width {width} does not match {count} points"
            )

        self.xyz = points
        self.timestamps = stamps
        self.height = int(height)
        self.width = int(width)

    @classmethod
    def nan_filled(cls, height: int, width: int, timestamp: float = 0.0) -> "PointCloud":
        """Organised cloud in which every point is NaN with the given timestamp."""
        if height < 0 or width < 0:
            raise ValueError("cloud dimensions cannot be negative")
        count = height * width
        return cls(
            np.full((count, 3), np.nan),
            np.full(count, float(timestamp)),
            height,
            width,
        )

    def __len__(self) -> int:
        return self.xyz.shape[0]

    @property
    def is_organized(self) -> bool:
        return self.height > 1

    def _index(self, w: int, h: int) -> int:
        if not (0 <= w < self.width and 0 <= h < self.height):
            raise IndexError(
                f"point ({w}, {h}) outside cloud of {self.width} x {self.height}"
            )
        return h * self.width + w

    def at(self, w: int, h: int = 0) -> tuple[np.ndarray, float]:
        """Position and timestamp of the point at column ``w``, row ``h``."""
        i = self._index(w, h)
        return self.xyz[i].copy(), float(self.timestamps[i])

    def set_point(self, w: int, h: int, xyz, timestamp: float) -> None:
        i = self._index(w, h)
        point = np.asarray(xyz, dtype=float)
        if point.shape != (3,):
            raise ValueError("a point needs three coordinates")
        self.xyz[i] = point
        self.timestamps[i] = float(timestamp)

    def concatenate(self, other: "PointCloud") -> "PointCloud":
        """Unorganised cloud holding the points of ``self`` followed by ``other``."""
        return PointCloud(
            np.vstack([self.xyz, other.xyz]),
            np.concatenate([self.timestamps, other.timestamps]),
        )

    def transformed(self, pose) -> "PointCloud":
        """Copy of the cloud with every point moved by a 4x4 homogeneous transform."""
        t = np.asarray(pose, dtype=float)
        if t.shape != (4, 4):
            raise ValueError(f"pose must be a 4x4 matrix, got shape {t.shape}")
        moved = self.xyz @ t[:3, :3].T + t[:3, 3]
        return PointCloud(moved, self.timestamps.copy(), self.height, self.width)

    def finite(self) -> "PointCloud":
        """Unorganised cloud of the points whose coordinates are all finite."""
        mask = np.isfinite(self.xyz).all(axis=1)
        return PointCloud(self.xyz[mask], self.timestamps[mask])

    def bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Minimum and maximum corner of the finite points."""
        pts = self.finite().xyz
        if len(pts) == 0:
            raise ValueError("cloud has no finite points")
        return pts.min(axis=0), pts.max(axis=0)

    def copy(self) -> "PointCloud":
        return PointCloud(
            self.xyz.copy(), self.timestamps.copy(), self.height, self.width
        )

    def __repr__(self) -> str:
        return f"PointCloud(points={len(self)}, height={self.height}, width={self.width})"


def voxel_downsample(cloud: PointCloud, leaf_size: float) -> PointCloud:
    """Replace the points in each cubic voxel by their centroid.

    Positions and timestamps are averaged; non-finite points are dropped.
    Output points are ordered by voxel index (x fastest, then y, then z).
    """
    if leaf_size <= 0:
        raise ValueError("leaf size must be positive")
    finite = cloud.finite()
    if len(finite) == 0:
        return PointCloud()

    keys = np.floor(finite.xyz / leaf_size).astype(np.int64)
    rel = keys - keys.min(axis=0)
    dims = rel.max(axis=0) + 1
    linear = rel[:, 0] + rel[:, 1] * dims[0] + rel[:, 2] * dims[0] * dims[1]
    _, inverse = np.unique(linear, return_inverse=True)
    inverse = inverse.reshape(-1)

    counts = np.bincount(inverse).astype(float)
    centroids = np.column_stack(
        [np.bincount(inverse, weights=finite.xyz[:, k]) / counts for k in range(3)]
    )
    stamps = np.bincount(inverse, weights=finite.timestamps) / counts
    return PointCloud(centroids, stamps)