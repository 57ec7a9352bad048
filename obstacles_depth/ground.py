from typing import Optional, Tuple

import numpy as np

from obstacles_depth.config import ClusterConfig
from obstacles_depth.errors import InsufficientPlaneDataError
from obstacles_depth.geometry import PlaneModel
from obstacles_depth.models import PointCloud


def estimate_normals(cloud: PointCloud) -> Optional[np.ndarray]:
    """
    Per-point surface normals from the organized grid.

    The normal at a pixel is the cross product of the steps to its right and
    lower neighbours. Rows are NaN where either neighbour is missing.
    Returns None for clouds without a pixel layout.
    """
    if not cloud.is_organized:
        return None

    grid = cloud.organized()
    h, w = cloud.shape

    right = np.full((h, w, 3), np.nan)
    down = np.full((h, w, 3), np.nan)
    right[:, :-1] = grid[:, 1:] - grid[:, :-1]
    down[:-1, :] = grid[1:, :] - grid[:-1, :]

    normals = np.cross(right, down)
    norms = np.linalg.norm(normals, axis=-1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        normals = np.where(norms > 1e-10, normals / norms, np.nan)

    return normals[cloud.pixels[:, 1], cloud.pixels[:, 0]]


def ground_candidates(
    normals: Optional[np.ndarray],
    n_points: int,
    ground_normal: np.ndarray,
    angle_tolerance: float,
) -> np.ndarray:
    """
    Points whose normal lies within angle_tolerance degrees of ground_normal.
    The sign of the normal is ignored. Without normals every point qualifies.
    """
    if normals is None:
        return np.ones(n_points, dtype=bool)

    cos_angle = np.abs(normals @ ground_normal)
    cos_angle[np.isnan(cos_angle)] = -1.0
    # Small slack so an exact tolerance boundary still counts
    return cos_angle >= np.cos(np.radians(angle_tolerance)) - 1e-12


def fit_plane(
    points: np.ndarray,
    ground_normal: np.ndarray,
    angle_tolerance: float = 180.0,
) -> PlaneModel:
    """
    Least-squares plane through points (centroid + smallest singular vector).

    Falls back to the assumed ground normal through the centroid when the
    points are collinear or the fitted normal is outside angle_tolerance.
    """
    xyz = points[:, :3]
    if len(xyz) == 0:
        raise InsufficientPlaneDataError("Cannot fit a plane to zero points")

    centroid = xyz.mean(axis=0)
    normal = ground_normal

    if len(xyz) >= 3:
        _, s, vt = np.linalg.svd(xyz - centroid, full_matrices=False)
        if len(s) == 3 and s[1] > 1e-9 * max(s[0], 1.0):
            fitted = vt[2] / np.linalg.norm(vt[2])
            cos_angle = abs(float(np.dot(fitted, ground_normal)))
            if cos_angle >= np.cos(np.radians(angle_tolerance)) - 1e-12:
                normal = fitted

    plane = PlaneModel(normal=np.asarray(normal, dtype=np.float64), d=float(-np.dot(normal, centroid)))
    return plane.oriented_towards(ground_normal)


def find_ground_plane(cloud: PointCloud, config: ClusterConfig) -> Tuple[PlaneModel, np.ndarray]:
    """
    Fit the ground plane around the assumed ground normal.
    Deterministic: no random sampling, so a frame always gives the same plane.
    """
    xyz = cloud.points
    ground_normal = config.ground_normal_array

    normals = estimate_normals(cloud)
    candidates = ground_candidates(normals, len(xyz), ground_normal, config.angle_tolerance)
    n_candidates = int(candidates.sum())

    if n_candidates < config.min_pts_in_plane:
        raise InsufficientPlaneDataError(
            f"Found {n_candidates} ground candidates, need at least {config.min_pts_in_plane}"
        )

    plane = fit_plane(xyz[candidates], ground_normal, config.angle_tolerance)

    # One refit on the candidates that actually sit on the first plane
    inliers = candidates & (plane.distance_to_points(xyz) <= config.max_dist_from_plane)
    n_inliers = int(inliers.sum())
    if config.min_pts_in_plane <= n_inliers < n_candidates:
        plane = fit_plane(xyz[inliers], ground_normal, config.angle_tolerance)

    return plane, candidates


def remove_ground(
    cloud: PointCloud,
    plane: PlaneModel,
    max_dist_from_plane: float,
) -> Tuple[PointCloud, np.ndarray]:
    """
    Split a cloud by distance to plane. Returns the non-ground points in their
    original order and the ground mask over the input.
    """
    if len(cloud) == 0:
        return cloud, np.zeros(0, dtype=bool)

    ground_mask = plane.distance_to_points(cloud.points) <= max_dist_from_plane
    return cloud.subset(~ground_mask), ground_mask


def segment_ground(cloud: PointCloud, config: ClusterConfig) -> Tuple[PlaneModel, np.ndarray]:
    """
    Detect the ground plane and classify every point against it.
    Returns the plane and the ground mask over the full cloud.
    """
    plane, _ = find_ground_plane(cloud, config)
    _, ground_mask = remove_ground(cloud, plane, config.max_dist_from_plane)
    return plane, ground_mask
