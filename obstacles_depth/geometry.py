from dataclasses import dataclass
from typing import NamedTuple

import numpy as np


class Point3D(NamedTuple):
    """Camera-frame point in millimetres."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    min_y: float
    min_z: float
    max_x: float
    max_y: float
    max_z: float

    @classmethod
    def from_points(cls, points: np.ndarray) -> "BoundingBox":
        xyz = points[:, :3]
        lo = xyz.min(axis=0)
        hi = xyz.max(axis=0)
        return cls(
            float(lo[0]), float(lo[1]), float(lo[2]),
            float(hi[0]), float(hi[1]), float(hi[2]),
        )

    @classmethod
    def from_point(cls, point: Point3D) -> "BoundingBox":
        return cls(point.x, point.y, point.z, point.x, point.y, point.z)

    @property
    def dims(self) -> tuple:
        return (
            self.max_x - self.min_x,
            self.max_y - self.min_y,
            self.max_z - self.min_z,
        )


@dataclass
class PlaneModel:
    """
    Represents a 3D plane: normal * point + d = 0
    """
    # Unit vector with distance parameter to represent plane
    normal: np.ndarray
    d: float

    def signed_distance(self, points: np.ndarray) -> np.ndarray:
        return np.dot(points[:, :3], self.normal) + self.d

    def distance_to_points(self, points: np.ndarray) -> np.ndarray:
        return np.abs(self.signed_distance(points))

    def oriented_towards(self, direction: np.ndarray) -> "PlaneModel":
        """Flip the plane so its normal agrees with ``direction``."""
        if np.dot(self.normal, direction) < 0:
            return PlaneModel(normal=-self.normal, d=-self.d)
        return self

    @property
    def equation_string(self) -> str:
        return f"{self.normal[0]:.4f}x + {self.normal[1]:.4f}y + {self.normal[2]:.4f}z + {self.d:.4f} = 0"
