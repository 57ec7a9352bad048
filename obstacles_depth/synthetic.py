"""
Synthetic depth frames for demos and tests.

The camera looks straight ahead with image rows growing downwards, so a flat
floor ``camera_height`` millimetres below the optical axis fills the rows
under the principal point. Rows at or above the horizon have no return.
"""

from typing import Tuple

import numpy as np

from obstacles_depth.models import CameraIntrinsics, DepthMap


def floor_depth(
    width: int = 80,
    height: int = 60,
    focal: float = 100.0,
    camera_height: float = 500.0,
) -> Tuple[np.ndarray, CameraIntrinsics]:
    intrinsics = CameraIntrinsics(
        fx=focal,
        fy=focal,
        cx=width / 2.0,
        cy=height / 2.0,
        width=width,
        height=height,
    )
    dv = np.arange(height, dtype=np.float64) - intrinsics.cy
    with np.errstate(divide="ignore"):
        rows = np.where(dv > 0, camera_height * focal / dv, 0.0)
    depth = np.repeat(rows[:, None], width, axis=1)
    return depth, intrinsics


def add_box(
    depth: np.ndarray,
    u0: int,
    v0: int,
    cols: int,
    rows: int,
    distance: float,
) -> np.ndarray:
    """Paint a camera-facing rectangle at a fixed distance over a copy of depth."""
    out = np.array(depth, dtype=np.float64)
    out[v0:v0 + rows, u0:u0 + cols] = distance
    return out


def floor_with_box(
    cols: int = 10,
    rows: int = 5,
    u0: int = 35,
    v0: int = 46,
    distance: float = 1500.0,
    **floor_kwargs,
) -> Tuple[DepthMap, CameraIntrinsics]:
    """
    Floor plus one box face. With the defaults the box face spans 15 mm per
    pixel and its lowest row sits 200 mm above the floor.
    """
    depth, intrinsics = floor_depth(**floor_kwargs)
    return DepthMap(add_box(depth, u0, v0, cols, rows, distance)), intrinsics
