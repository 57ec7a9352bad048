"""Configuration for the obstacle pipeline and the service that wraps it."""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np
import yaml

from obstacles_depth.errors import ConfigValidationError

DEFAULT_GROUND_NORMAL = (0.0, -1.0, 0.0)


def _require_int(name: str, value: object, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ConfigValidationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigValidationError(f"{name} must be >= {minimum}, got {value}")


def _require_float(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ConfigValidationError(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ConfigValidationError(f"{name} must be finite, got {value}")
    return value


@dataclass(frozen=True)
class ClusterConfig:
    """Validated clustering parameters. Construction fails on any bad field."""

    min_pts_in_plane: int
    min_pts_in_segment: int
    max_dist_from_plane: float
    clustering_radius: int
    clustering_strictness: float
    angle_tolerance: float
    ground_normal: Tuple[float, float, float] = DEFAULT_GROUND_NORMAL

    def __post_init__(self) -> None:
        _require_int("min_pts_in_plane", self.min_pts_in_plane, 1)
        _require_int("min_pts_in_segment", self.min_pts_in_segment, 1)
        _require_int("clustering_radius", self.clustering_radius, 1)

        max_dist = _require_float("max_dist_from_plane", self.max_dist_from_plane)
        if max_dist <= 0:
            raise ConfigValidationError(f"max_dist_from_plane must be > 0, got {max_dist}")

        strictness = _require_float("clustering_strictness", self.clustering_strictness)
        if not 0.0 < strictness <= 1.0:
            raise ConfigValidationError(f"clustering_strictness must be in (0, 1], got {strictness}")

        angle = _require_float("angle_tolerance", self.angle_tolerance)
        if not 0.0 <= angle <= 180.0:
            raise ConfigValidationError(f"angle_tolerance must be in [0, 180] degrees, got {angle}")

        normal = np.asarray(self.ground_normal, dtype=np.float64).reshape(-1)
        if normal.shape != (3,) or not np.all(np.isfinite(normal)):
            raise ConfigValidationError(f"ground_normal must be a finite 3-vector, got {self.ground_normal!r}")
        norm = float(np.linalg.norm(normal))
        if norm < 1e-10:
            raise ConfigValidationError("ground_normal must be non-zero")

        object.__setattr__(self, "max_dist_from_plane", max_dist)
        object.__setattr__(self, "clustering_strictness", strictness)
        object.__setattr__(self, "angle_tolerance", angle)
        object.__setattr__(self, "ground_normal", tuple(float(v) for v in normal / norm))

    @property
    def effective_radius(self) -> float:
        return self.clustering_radius * self.clustering_strictness

    @property
    def ground_normal_array(self) -> np.ndarray:
        return np.array(self.ground_normal, dtype=np.float64)


@dataclass(frozen=True)
class ObstaclesDepthConfig:
    """Attributes accepted by the obstacles depth service."""

    min_points_in_plane: int = 500
    min_points_in_segment: int = 10
    max_dist_from_plane_mm: float = 100.0
    clustering_radius: int = 100
    clustering_strictness: float = 1.0
    ground_angle_tolerance_degs: float = 30.0
    camera_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, object]]) -> "ObstaclesDepthConfig":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigValidationError(f"Expected a mapping of attributes, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigValidationError(f"Unknown obstacles depth attributes: {', '.join(unknown)}")
        camera_name = data.get("camera_name")
        return cls(
            **{k: v for k, v in data.items() if k != "camera_name"},
            camera_name=str(camera_name) if camera_name else None,
        )

    def to_cluster_config(self) -> ClusterConfig:
        return ClusterConfig(
            min_pts_in_plane=self.min_points_in_plane,
            min_pts_in_segment=self.min_points_in_segment,
            max_dist_from_plane=self.max_dist_from_plane_mm,
            clustering_radius=self.clustering_radius,
            clustering_strictness=self.clustering_strictness,
            angle_tolerance=self.ground_angle_tolerance_degs,
            ground_normal=DEFAULT_GROUND_NORMAL,
        )


def load_config(path: Union[str, Path], overrides: Optional[Dict[str, str]] = None) -> ObstaclesDepthConfig:
    """Load service attributes from a YAML file."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as stream:
        data = yaml.safe_load(stream)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Expected YAML mapping at root of {path}")
    if overrides:
        _apply_overrides(data, overrides)
    return ObstaclesDepthConfig.from_dict(data)


def _apply_overrides(root: Dict[str, object], overrides: Dict[str, str]) -> None:
    for dotted_key, raw_value in overrides.items():
        keys = dotted_key.split(".")
        target = root
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]  # type: ignore[assignment]
        target[keys[-1]] = _parse_override_value(raw_value)


def _parse_override_value(raw: str) -> object:
    lowered = raw.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    try:
        if "." in raw or "e" in lowered:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw
