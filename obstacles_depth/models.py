"""Data carried between the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from obstacles_depth.geometry import BoundingBox, Point3D


@dataclass(frozen=True)
class DepthMap:
    """One sensor frame: HxW distances in millimetres, 0 meaning no return."""

    data: np.ndarray

    def __post_init__(self) -> None:
        arr = np.array(self.data, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError(f"Depth map must be 2-D, got shape {arr.shape}")
        arr.setflags(write=False)
        object.__setattr__(self, "data", arr)

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def size(self) -> int:
        return int(self.data.size)

    def valid_mask(self) -> np.ndarray:
        with np.errstate(invalid="ignore"):
            return np.isfinite(self.data) & (self.data > 0)

    def valid_depths(self) -> np.ndarray:
        """Valid readings in row-major order."""
        return self.data[self.valid_mask()]


@dataclass(frozen=True)
class CameraIntrinsics:
    fx: float
    fy: float
    cx: float
    cy: float
    width: int = 0
    height: int = 0
    distortion: Tuple[float, ...] = ()

    def is_well_formed(self) -> bool:
        values = (self.fx, self.fy, self.cx, self.cy)
        if not all(np.isfinite(v) for v in values):
            return False
        return self.fx > 0 and self.fy > 0


@dataclass(frozen=True)
class PointCloud:
    """
    Projected points with their source pixels.

    ``points`` is (N, 3) in camera-frame millimetres, ``pixels`` is (N, 2) as
    (u, v). ``shape`` is the (height, width) of the source grid, or None when
    the cloud was not built from a depth map.
    """

    points: np.ndarray
    pixels: Optional[np.ndarray] = None
    shape: Optional[Tuple[int, int]] = None

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @classmethod
    def from_points(cls, points) -> "PointCloud":
        xyz = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return cls(points=xyz)

    @property
    def is_organized(self) -> bool:
        return self.pixels is not None and self.shape is not None

    def subset(self, mask: np.ndarray) -> "PointCloud":
        pixels = self.pixels[mask] if self.pixels is not None else None
        return PointCloud(points=self.points[mask], pixels=pixels, shape=self.shape)

    def organized(self) -> np.ndarray:
        """Rebuild the (H, W, 3) grid, NaN where no point exists."""
        if not self.is_organized:
            raise ValueError("Point cloud has no pixel layout")
        h, w = self.shape
        grid = np.full((h, w, 3), np.nan, dtype=np.float64)
        grid[self.pixels[:, 1], self.pixels[:, 0]] = self.points
        return grid


@dataclass(frozen=True)
class Obstacle:
    center: Point3D
    bounding_box: BoundingBox
    num_points: int
    cluster_id: int = 0

    @classmethod
    def from_points(cls, points: np.ndarray, cluster_id: int) -> "Obstacle":
        centroid = points[:, :3].mean(axis=0)
        return cls(
            center=Point3D(float(centroid[0]), float(centroid[1]), float(centroid[2])),
            bounding_box=BoundingBox.from_points(points),
            num_points=int(len(points)),
            cluster_id=cluster_id,
        )

    @classmethod
    def single_point(cls, point: Point3D) -> "Obstacle":
        return cls(center=point, bounding_box=BoundingBox.from_point(point), num_points=1)


@dataclass
class Properties:
    object_clusters_supported: bool = True
    detection_supported: bool = False
    classification_supported: bool = False


@dataclass
class Capture:
    depth_map: Optional[DepthMap] = None
    obstacles: list = field(default_factory=list)
    detections: list = field(default_factory=list)
    classifications: list = field(default_factory=list)
