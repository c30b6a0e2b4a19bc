"""Association of LiDAR points with planar surfels extracted from a voxel map."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from licalib.cloud import PointCloud

MIN_POINTS_PER_VOXEL = 6
"""Voxels with fewer points get no covariance."""

MIN_COVAR_EIGVALUE_MULT = 0.01
"""Small covariance eigenvalues are raised to this fraction of the largest."""

MIN_LEAF_POINTS = 10
MIN_PLANE_INLIERS = 20
MIN_SURFEL_POINTS = 20
PLANE_DISTANCE_THRESHOLD = 0.05
RANSAC_MAX_ITERATIONS = 50

COLOR_LIST = (0xFF0000, 0xFF00FF, 0x436EEE, 0xBF3EFF, 0xB4EEB4, 0xFFE7BA)
"""Colours cycled over the surfels of the visualisation map."""


def _zeros3() -> np.ndarray:
    return np.zeros(3)


@dataclass
class SurfelPoint:
    """A scan point associated with a surfel."""

    timestamp: float = 0.0
    point_raw: np.ndarray = field(default_factory=_zeros3)
    point: np.ndarray = field(default_factory=_zeros3)
    point_in_map: np.ndarray = field(default_factory=_zeros3)
    plane_id: int = 0


@dataclass
class SurfelPlane:
    """A fitted plane ``p4 = (n, d)`` with its closest point ``pi`` and bounding box."""

    p4: np.ndarray
    pi: np.ndarray
    box_min: np.ndarray
    box_max: np.ndarray
    cloud: PointCloud
    cloud_inlier: PointCloud


@dataclass
class VoxelLeaf:
    """Points of one voxel with the eigen decomposition of their covariance.

    ``evals`` are ascending; column ``i`` of ``evecs`` belongs to ``evals[i]``.
    """

    cloud: PointCloud
    evals: np.ndarray
    evecs: np.ndarray

    @property
    def nr_points(self) -> int:
        return len(self.cloud)


def _leaf_statistics(xyz: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    if len(xyz) < MIN_POINTS_PER_VOXEL:
        return np.zeros(3), np.eye(3)
    cov = np.cov(xyz, rowvar=False)
    evals, evecs = np.linalg.eigh(cov)
    floor = MIN_COVAR_EIGVALUE_MULT * evals[2]
    evals = np.where(evals < floor, floor, evals)
    return evals, evecs


def build_voxel_leaves(cloud: PointCloud, resolution: float) -> list[VoxelLeaf]:
    """Split the finite points of ``cloud`` into cubic voxels of side ``resolution``."""
    if resolution <= 0:
        raise ValueError("voxel resolution must be positive")
    finite = cloud.finite()
    if len(finite) == 0:
        return []
    keys = np.floor(finite.xyz / resolution).astype(np.int64)
    _, inverse = np.unique(keys, axis=0, return_inverse=True)
    inverse = inverse.reshape(-1)
    leaves = []
    for voxel in range(inverse.max() + 1):
        mask = inverse == voxel
        xyz = finite.xyz[mask]
        evals, evecs = _leaf_statistics(xyz)
        leaves.append(VoxelLeaf(PointCloud(xyz, finite.timestamps[mask]), evals, evecs))
    return leaves


def _sort_descending(values: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    order = np.argsort(-values, kind="stable")
    return values[order], order


def check_plane_type(eigen_value, eigen_vector, p_lambda: float) -> int:
    """Plane type of a voxel, or -1 when its points are not planar enough.

    Planarity is ``2 (l1 - l2) / (l0 + l1 + l2)`` with eigenvalues sorted in
    decreasing order.  The type is the axis index of the smallest absolute
    component of the plane normal.
    """
    evals = np.asarray(eigen_value, dtype=float)
    evecs = np.asarray(eigen_vector, dtype=float)
    if evals.shape != (3,) or evecs.shape != (3, 3):
        raise ValueError("expected 3 eigenvalues and a 3x3 eigenvector matrix")
    sorted_vals, order = _sort_descending(evals)
    total = sorted_vals.sum()
    if total == 0:
        return -1
    planarity = 2 * (sorted_vals[1] - sorted_vals[2]) / total
    if planarity < p_lambda:
        return -1
    normal = np.abs(evecs[:, order[2]])
    _, normal_order = _sort_descending(normal)
    return int(normal_order[2])


def _plane_through(points: np.ndarray) -> np.ndarray | None:
    normal = np.cross(points[1] - points[0], points[2] - points[0])
    norm = np.linalg.norm(normal)
    if norm < 1e-12:
        return None
    normal /= norm
    return np.append(normal, -normal @ points[0])


def _within(points: np.ndarray, coeffs: np.ndarray, threshold: float) -> np.ndarray:
    return np.flatnonzero(np.abs(points @ coeffs[:3] + coeffs[3]) <= threshold)


def fit_plane(points, rng: np.random.Generator | None = None):
    """RANSAC plane fit refined by least squares.

    Returns ``(coeffs, inlier_indices)`` with ``coeffs = (a, b, c, d)`` and a
    unit normal, or ``None`` when fewer than 20 points lie within 5 cm.
    """
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"points must have shape (N, 3), got {pts.shape}")
    if len(pts) < 3:
        return None
    rng = np.random.default_rng() if rng is None else rng

    best: np.ndarray | None = None
    best_inliers = np.empty(0, dtype=np.int64)
    for _ in range(RANSAC_MAX_ITERATIONS):
        sample = rng.choice(len(pts), size=3, replace=False)
        model = _plane_through(pts[sample])
        if model is None:
            continue
        inliers = _within(pts, model, PLANE_DISTANCE_THRESHOLD)
        if len(inliers) > len(best_inliers):
            best, best_inliers = model, inliers
    if best is None or len(best_inliers) < 3:
        return None

    inlier_pts = pts[best_inliers]
    centroid = inlier_pts.mean(axis=0)
    _, _, vh = np.linalg.svd(inlier_pts - centroid)
    normal = vh[-1]
    coeffs = np.append(normal, -normal @ centroid)
    inliers = _within(pts, coeffs, PLANE_DISTANCE_THRESHOLD)
    if len(inliers) < MIN_PLANE_INLIERS:
        return None
    return coeffs, inliers


def point_to_plane_distance(pt, plane_coeff) -> float:
    """Absolute distance of ``pt`` from the plane ``n . x + d = 0``."""
    p = np.asarray(pt, dtype=float)
    c = np.asarray(plane_coeff, dtype=float)
    return float(abs(p @ c[:3] + c[3]))


class SurfelAssociation:
    """Extracts planar surfels from voxel leaves and associates scan points with them."""

    def __init__(
        self,
        associated_radius: float = 0.05,
        plane_lambda: float = 0.7,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.associated_radius = float(associated_radius)
        self.plane_lambda = float(plane_lambda)
        self._rng = np.random.default_rng() if rng is None else rng
        self._map_timestamp = 0.0
        self.plane_type_counts = (0, 0, 0)
        self._clear()

    def _clear(self) -> None:
        self._planes: list[SurfelPlane] = []
        self._per_surfel: list[list[SurfelPoint]] = []
        self._all_points: list[SurfelPoint] = []
        self._downsampled: list[SurfelPoint] = []
        self._map_xyz = np.zeros((0, 3))
        self._map_colors = np.zeros(0, dtype=np.uint32)

    def set_plane_lambda(self, plane_lambda: float) -> None:
        self.plane_lambda = float(plane_lambda)

    def set_surfel_map(self, leaves, timestamp: float = 0.0) -> None:
        """Fit surfels to the planar leaves; clears previous associations."""
        self._clear()
        self._map_timestamp = float(timestamp)
        counter = [0, 0, 0]
        for leaf in leaves:
            if leaf.nr_points < MIN_LEAF_POINTS:
                continue
            plane_type = check_plane_type(leaf.evals, leaf.evecs, self.plane_lambda)
            if plane_type < 0:
                continue
            fitted = fit_plane(leaf.cloud.xyz, self._rng)
            if fitted is None:
                continue
            coeffs, inliers = fitted
            counter[plane_type] += 1
            box_min, box_max = leaf.cloud.bounds()
            self._planes.append(
                SurfelPlane(
                    p4=coeffs,
                    pi=-coeffs[3] * coeffs[:3],
                    box_min=box_min,
                    box_max=box_max,
                    cloud=leaf.cloud.copy(),
                    cloud_inlier=PointCloud(
                        leaf.cloud.xyz[inliers], leaf.cloud.timestamps[inliers]
                    ),
                )
            )
        self.plane_type_counts = tuple(counter)
        self._per_surfel = [[] for _ in self._planes]

        if self._planes:
            self._map_xyz = np.vstack([p.cloud_inlier.xyz for p in self._planes])
            self._map_colors = np.concatenate(
                [
                    np.full(len(p.cloud_inlier), COLOR_LIST[i % len(COLOR_LIST)], dtype=np.uint32)
                    for i, p in enumerate(self._planes)
                ]
            )

    def _ring_masks(self, plane: SurfelPlane, scan: PointCloud) -> list[np.ndarray]:
        xyz = scan.xyz.reshape(scan.height, scan.width, 3)
        inside = (
            np.isfinite(xyz[..., 0])
            & (xyz > plane.box_min).all(axis=-1)
            & (xyz < plane.box_max).all(axis=-1)
        )
        with np.errstate(invalid="ignore"):
            near = np.abs(xyz @ plane.p4[:3] + plane.p4[3]) <= self.associated_radius
        mask = inside & near
        return [np.flatnonzero(row) for row in mask]

    def get_association(
        self,
        scan_in_map: PointCloud,
        scan_raw_xyz: PointCloud,
        scan_raw_measure: PointCloud | None = None,
        selected_num_per_ring: int = 2,
    ) -> None:
        """Pick up to ``selected_num_per_ring`` evenly spaced points per ring and
        surfel, and record them in chronological (column-major) order."""
        height, width = scan_raw_xyz.height, scan_raw_xyz.width
        for other in (scan_in_map, scan_raw_measure):
            if other is not None and (other.height, other.width) != (height, width):
                raise ValueError("scans must share the same height and width")

        flags = np.full((height, width), -1, dtype=np.int64)
        for plane_id, plane in enumerate(self._planes):
            for h, ring in enumerate(self._ring_masks(plane, scan_in_map)):
                if len(ring) < selected_num_per_ring * 2:
                    continue
                step = max(len(ring) // (selected_num_per_ring + 1), 1)
                for selected in range(selected_num_per_ring):
                    flags[h, ring[step * (selected + 1) - 1]] = plane_id

        for w, h in np.argwhere(flags.T != -1):
            i = h * width + w
            timestamp = float(scan_raw_xyz.timestamps[i])
            if timestamp == 0:
                continue
            spoint = SurfelPoint(
                timestamp=timestamp,
                point=scan_raw_xyz.xyz[i].copy(),
                point_in_map=scan_in_map.xyz[i].copy(),
                plane_id=int(flags[h, w]),
            )
            if scan_raw_measure is not None:
                spoint.point_raw = scan_raw_measure.xyz[i].copy()
            self._per_surfel[spoint.plane_id].append(spoint)
            self._all_points.append(spoint)

    def random_down_sample(self, num_points_max: int = 5) -> None:
        """Draw ``num_points_max`` random points from every surfel holding at least 20."""
        for points in self._per_surfel:
            if len(points) < MIN_SURFEL_POINTS:
                continue
            for idx in self._rng.integers(0, len(points), size=num_points_max):
                self._downsampled.append(points[idx])

    def average_down_sample(self, num_points_max: int = 5) -> None:
        """Take evenly spaced points from every surfel holding at least 20."""
        for points in self._per_surfel:
            if len(points) < MIN_SURFEL_POINTS:
                continue
            step = max(len(points) // num_points_max, 1)
            self._downsampled.extend(points[::step])

    def average_time_down_sample(self, step: int = 10) -> None:
        """Take every ``step``-th associated point in chronological order."""
        if step < 1:
            raise ValueError("step must be at least 1")
        self._downsampled.extend(self._all_points[::step])

    def surfel_planes(self) -> list[SurfelPlane]:
        return list(self._planes)

    def surfel_points(self) -> list[SurfelPoint]:
        """The down-sampled associated points."""
        return list(self._downsampled)

    def map_timestamp(self) -> float:
        return self._map_timestamp

    def surfels_map(self) -> tuple[np.ndarray, np.ndarray]:
        """Inlier points of all surfels and their RGB colours."""
        return self._map_xyz.copy(), self._map_colors.copy()