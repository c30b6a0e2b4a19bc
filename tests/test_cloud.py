import numpy as np
import pytest

from licalib.cloud import PointCloud, voxel_downsample


def _grid_cloud():
    xyz = np.arange(18, dtype=float).reshape(6, 3)
    return PointCloud(xyz, np.arange(6, dtype=float), height=2, width=3)


def test_default_cloud_is_unorganised():
    cloud = PointCloud(np.ones((4, 3)))
    assert len(cloud) == 4
    assert (cloud.height, cloud.width) == (1, 4)
    assert np.all(cloud.timestamps == 0.0)


def test_dimension_mismatch_raises():
    with pytest.raises(ValueError):
        PointCloud(np.ones((5, 3)), height=2, width=3)


def test_bad_shape_raises():
    with pytest.raises(ValueError):
        PointCloud(np.ones((4, 2)))


def test_at_uses_row_major_layout():
    cloud = _grid_cloud()
    xyz, stamp = cloud.at(2, 1)
    assert np.array_equal(xyz, cloud.xyz[1 * 3 + 2])
    assert stamp == cloud.timestamps[5]


def test_at_out_of_range_raises():
    with pytest.raises(IndexError):
        _grid_cloud().at(3, 0)


def test_set_point_round_trip():
    cloud = PointCloud.nan_filled(2, 3)
    cloud.set_point(1, 1, [1.5, -2.0, 3.0], 7.25)
    xyz, stamp = cloud.at(1, 1)
    assert np.array_equal(xyz, [1.5, -2.0, 3.0])
    assert stamp == 7.25


def test_nan_filled():
    cloud = PointCloud.nan_filled(4, 5, timestamp=2.5)
    assert len(cloud) == 20
    assert np.all(np.isnan(cloud.xyz))
    assert np.all(cloud.timestamps == 2.5)
    assert len(cloud.finite()) == 0


def test_concatenate_keeps_order():
    a = _grid_cloud()
    b = PointCloud(np.full((2, 3), -1.0), [10.0, 11.0])
    joined = a.concatenate(b)
    assert len(joined) == len(a) + len(b)
    assert joined.height == 1
    assert np.array_equal(joined.xyz[-2:], b.xyz)
    assert np.array_equal(joined.timestamps[: len(a)], a.timestamps)


def test_transform_round_trip():
    cloud = _grid_cloud()
    angle = 0.4
    pose = np.eye(4)
    pose[:3, :3] = [
        [np.cos(angle), -np.sin(angle), 0.0],
        [np.sin(angle), np.cos(angle), 0.0],
        [0.0, 0.0, 1.0],
    ]
    pose[:3, 3] = [1.0, 2.0, -3.0]
    back = cloud.transformed(pose).transformed(np.linalg.inv(pose))
    assert np.allclose(back.xyz, cloud.xyz)
    assert (back.height, back.width) == (cloud.height, cloud.width)
    assert np.array_equal(back.timestamps, cloud.timestamps)


def test_transform_keeps_nan():
    cloud = PointCloud.nan_filled(1, 2)
    cloud.set_point(0, 0, [1.0, 2.0, 3.0], 0.5)
    pose = np.eye(4)
    pose[:3, 3] = 1.0
    out = cloud.transformed(pose)
    assert out.xyz.shape == (2, 3)
    assert np.allclose(out.xyz[0], [2.0, 3.0, 4.0])
    assert np.isnan(out.xyz[1]).all()
    assert out.timestamps[0] == 0.5


def test_transform_bad_pose_raises():
    with pytest.raises(ValueError):
        _grid_cloud().transformed(np.eye(3))


def test_finite_and_bounds():
    cloud = PointCloud.nan_filled(1, 3)
    cloud.set_point(0, 0, [1.0, 5.0, -2.0], 0.0)
    cloud.set_point(2, 0, [-1.0, 4.0, 3.0], 0.0)
    assert len(cloud.finite()) == 2
    lo, hi = cloud.bounds()
    assert np.array_equal(lo, [-1.0, 4.0, -2.0])
    assert np.array_equal(hi, [1.0, 5.0, 3.0])


def test_bounds_of_empty_cloud_raises():
    with pytest.raises(ValueError):
        PointCloud.nan_filled(2, 2).bounds()


def test_voxel_downsample_merges_points_in_one_voxel():
    cloud = PointCloud([[0.1, 0.1, 0.1], [0.3, 0.3, 0.3]], [1.0, 3.0])
    out = voxel_downsample(cloud, 1.0)
    assert len(out) == 1
    assert np.allclose(out.xyz[0], cloud.xyz.mean(axis=0))
    assert out.timestamps[0] == pytest.approx(2.0)


def test_voxel_downsample_keeps_separate_voxels():
    cloud = PointCloud([[0.5, 0.5, 0.5], [5.5, 0.5, 0.5], [np.nan, 0.0, 0.0]])
    out = voxel_downsample(cloud, 1.0)
    assert len(out) == 2
    assert np.allclose(out.xyz, cloud.xyz[:2])


def test_voxel_downsample_bad_leaf_raises():
    with pytest.raises(ValueError):
        voxel_downsample(_grid_cloud(), 0.0)