"""Building blocks for LiDAR-IMU calibration: B-splines, Lie groups, point clouds, LiDAR and IMU bias models, and surfel association."""

__version__ = "0.1.0"