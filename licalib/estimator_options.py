"""Switches controlling which states the trajectory estimator optimises."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TrajectoryEstimatorOptions:
    """Which parts of the state are held fixed during optimisation."""

    lock_traj: bool = False

    lock_P: bool = True
    lock_R: bool = True
    lock_t_offset: bool = True

    t_offset_padding: float = 0.02

    lock_ab: bool = True
    lock_wb: bool = True
    lock_g: bool = True

    lock_LiDAR_intrinsic: bool = True
    lock_IMU_intrinsic: bool = True