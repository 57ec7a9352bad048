from typing import List

import numpy as np

from obstacles_depth.errors import EmptyDepthDataError
from obstacles_depth.geometry import Point3D
from obstacles_depth.models import DepthMap, Obstacle


def median_depth(depth_map: DepthMap) -> float:
    """
    Median of the valid readings, taken as sorted[floor(0.5 * count)].
    """
    depths = np.sort(depth_map.valid_depths())
    if len(depths) == 0:
        raise EmptyDepthDataError("Depth map has no valid readings")
    return float(depths[int(0.5 * len(depths))])


def median_depth_obstacle(depth_map: DepthMap) -> List[Obstacle]:
    """
    Without intrinsics there is no pixel -> ray mapping, so the whole frame
    collapses to one point straight ahead at the median depth.
    """
    return [Obstacle.single_point(Point3D(0.0, 0.0, median_depth(depth_map)))]
