from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from obstacles_depth.clustering import extract_obstacles, region_grow
from obstacles_depth.config import ClusterConfig
from obstacles_depth.errors import InvalidConfigError
from obstacles_depth.fallback import median_depth_obstacle
from obstacles_depth.geometry import PlaneModel
from obstacles_depth.ground import segment_ground
from obstacles_depth.models import CameraIntrinsics, DepthMap, Obstacle, PointCloud
from obstacles_depth.projection import project_depth_map

MODE_INTRINSICS = "intrinsics"
MODE_MEDIAN_DEPTH = "median_depth"


@dataclass
class FrameResult:
    """Result of processing a single depth frame."""
    mode: str
    valid_count: int

    # Projection
    cloud: Optional[PointCloud] = None

    # Ground segmentation
    plane_model: Optional[PlaneModel] = None
    ground_points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    obstacle_points: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))

    # Clustering
    cluster_labels: np.ndarray = field(default_factory=lambda: np.array([], dtype=int))
    num_clusters: int = 0
    cluster_sizes: list = field(default_factory=list)
    noise_count: int = 0

    obstacles: List[Obstacle] = field(default_factory=list)


def has_usable_intrinsics(intrinsics: Optional[CameraIntrinsics]) -> bool:
    return intrinsics is not None and intrinsics.is_well_formed()


def run_frame_pipeline(
    depth_map: DepthMap,
    config: ClusterConfig,
    intrinsics: Optional[CameraIntrinsics] = None,
) -> FrameResult:
    """
    Run the full pipeline on a single frame.
    Missing or malformed intrinsics switch to the median depth estimate.
    """
    if not isinstance(config, ClusterConfig):
        raise InvalidConfigError(f"Expected a ClusterConfig, got {type(config).__name__}")

    valid_count = int(depth_map.valid_mask().sum())

    if not has_usable_intrinsics(intrinsics):
        obstacles = median_depth_obstacle(depth_map)
        return FrameResult(
            mode=MODE_MEDIAN_DEPTH,
            valid_count=valid_count,
            num_clusters=len(obstacles),
            cluster_sizes=[o.num_points for o in obstacles],
            obstacles=obstacles,
        )

    # Project
    cloud = project_depth_map(depth_map, intrinsics)
    if len(cloud) == 0:
        return FrameResult(mode=MODE_INTRINSICS, valid_count=valid_count, cloud=cloud)

    # Ground segmentation
    plane, ground_mask = segment_ground(cloud, config)
    ground_points = cloud.points[ground_mask]
    obstacle_points = cloud.points[~ground_mask]

    # Clustering
    cluster_result = region_grow(
        obstacle_points,
        radius=config.clustering_radius,
        strictness=config.clustering_strictness,
        min_cluster_size=config.min_pts_in_segment,
    )

    return FrameResult(
        mode=MODE_INTRINSICS,
        valid_count=valid_count,
        cloud=cloud,
        plane_model=plane,
        ground_points=ground_points,
        obstacle_points=obstacle_points,
        cluster_labels=cluster_result.labels,
        num_clusters=cluster_result.num_clusters,
        cluster_sizes=cluster_result.cluster_sizes,
        noise_count=cluster_result.noise_count,
        obstacles=extract_obstacles(obstacle_points, cluster_result),
    )


def detect_obstacles(
    depth_map: DepthMap,
    config: ClusterConfig,
    intrinsics: Optional[CameraIntrinsics] = None,
) -> List[Obstacle]:
    return run_frame_pipeline(depth_map, config, intrinsics).obstacles
