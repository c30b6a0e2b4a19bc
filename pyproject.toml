[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "licalib"
version = "0.1.0"
description = "LiDAR-IMU calibration building blocks: uniform B-splines, Lie group utilities, LiDAR and IMU sensor models and surfel association."
requires-python = ">=3.10"
keywords = [
    "lidar",
    "imu",
    "calibration",
    "b-spline",
    "lie-group",
    "point-cloud",
    "surfel",
    "velodyne",
    "ouster",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["licalib"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
