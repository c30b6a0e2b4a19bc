# licalib

Building blocks for LiDAR-IMU calibration, written in plain Python on top of
NumPy.

## What is inside

- `licalib.spline_common`: binomial coefficients (`c_n_k`), blending matrices
  (`compute_blending_matrix`, optionally cumulative) and time-polynomial
  derivative coefficients (`compute_base_coefficients`) for uniform B-splines.
  `SPLINE_ORDER` is the default order, 4.
- `licalib.rd_spline`: `RdSpline`, a uniform B-spline over vectors of a given
  dimension. Knots are added and removed with `knots_push_back`,
  `knots_pop_back`, `knots_pop_front` and `resize`; `evaluate` gives the value
  or any time derivative, `velocity` and `acceleration` are shortcuts, and
  `jacobian` returns a `SplineJacobian` (first supporting knot index and the
  per-knot weights). Times outside the covered range raise `ValueError`.
- `licalib.lie_groups`: `hat`, `so3_exp`, `so3_log`, the decoupled SE(3) and
  Sim(3) maps (`se3_expd`, `se3_logd`, `sim3_expd`, `sim3_logd`), and the left
  and right Jacobians of SO(3) with their inverses, plus the right Jacobians
  (and inverses) of decoupled SE(3) and Sim(3).
- `licalib.transforms`: `quaternion_to_matrix` and `matrix_to_quaternion`
  (quaternions in `(x, y, z, w)` order), `make_transform` for 4x4 homogeneous
  transforms, and `get_trans_between`, the relative transform of two poses.
- `licalib.cloud`: `PointCloud`, a cloud of positions with per-point
  timestamps that may be organised as a height x width grid (NaN marks missing
  points). It supports `at`, `set_point`, `concatenate`, `transformed`,
  `finite`, `bounds`, `copy` and `nan_filled`. `voxel_downsample` replaces the
  points of each voxel by their centroid.
- `licalib.lidar_feature`: `LiDARFeature` (one scan with its points and raw
  measurements), `PointCorrespondence`, the `LidarModelType` and
  `GeometryType` enums, and `LiDARIntrinsic`, the six-parameter per-laser
  correction of a 16-beam LiDAR with three ring orderings.
- `licalib.calib_bias`: static accelerometer (`CalibAccelBias`, 9 parameters)
  and gyroscope (`CalibGyroBias`, 12 parameters) calibration with bias, scale
  and misalignment, including `invert_calibration`.
- `licalib.velodyne16`: `Velodyne16`, which decodes raw 16-laser packets
  (`unpack_scan`, 1200 bytes of firing blocks per packet) or already decoded
  point arrays (`unpack_points`) into organised clouds with exact per-point
  timing (`exact_time`).
- `licalib.ouster`: `OusterLiDAR`, which picks evenly spaced rings
  (`OusterRingNo`) of an Ouster scan of 2048 firings and drops points farther
  than 60 m.
- `licalib.surfel_association`: `build_voxel_leaves` splits a cloud into
  voxels with covariance eigen decompositions; `SurfelAssociation` fits planar
  surfels to them (`check_plane_type`, RANSAC `fit_plane`), associates scan
  points with the surfels ring by ring, and down-samples the associations
  randomly, evenly per surfel, or evenly in time. `point_to_plane_distance`
  is exposed as well.
- `licalib.estimator_options`: `TrajectoryEstimatorOptions`, a dataclass of
  flags that say which states a trajectory estimator keeps fixed.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Example

```python
import numpy as np
from licalib.rd_spline import RdSpline

spline = RdSpline(dim=3, order=4, time_interval=0.1, start_time=0.0)
for k in range(6):
    spline.knots_push_back(np.array([k, 0.0, 0.0]))

print(spline.min_time(), spline.max_time())  # 0.0 0.3
print(spline.evaluate(0.15, 0))
print(spline.velocity(0.15))
```

```python
import numpy as np
from licalib.lie_groups import so3_exp, so3_log

rotation = so3_exp(np.array([0.1, -0.2, 0.3]))
print(so3_log(rotation))  # back to [0.1, -0.2, 0.3]
```

## What it does not do

licalib is a library of parts, not a calibration program. It has no command
line tool and no trajectory optimiser: `TrajectoryEstimatorOptions` only holds
settings. It does not map timestamps across multi-segment splines, has no IMU
measurement records or IMU intrinsic model, does not perform scan matching,
and does not read or write point-cloud, bag or trajectory files. Sensor data
must be handed to it as bytes or NumPy arrays.