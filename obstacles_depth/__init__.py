"""
Obstacles Depth: ground plane removal and obstacle clustering from depth camera frames.
"""

from .models import DepthMap, CameraIntrinsics, PointCloud, Obstacle
from .config import ClusterConfig, ObstaclesDepthConfig, load_config
from .projection import project_depth_map
from .geometry import Point3D, BoundingBox, PlaneModel
from .ground import segment_ground, remove_ground
from .clustering import region_grow, cluster_obstacles, ClusterResult
from .fallback import median_depth_obstacle
from .pipeline import run_frame_pipeline, detect_obstacles, FrameResult
from .service import ObstaclesDepthService, DepthSource

__version__ = "1.1.0"
