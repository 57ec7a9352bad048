import numpy as np

from obstacles_depth.errors import ProjectionError
from obstacles_depth.models import CameraIntrinsics, DepthMap, PointCloud


def project_depth_map(depth_map: DepthMap, intrinsics: CameraIntrinsics) -> PointCloud:
    """
    Back-project every valid depth cell through a pinhole camera.
    Cells with no return are skipped, so an all-invalid map gives an empty cloud.
    """
    if intrinsics is None or not intrinsics.is_well_formed():
        raise ProjectionError(f"Malformed camera intrinsics: {intrinsics!r}")

    if depth_map.size == 0:
        raise ProjectionError("Depth map is empty")

    h, w = depth_map.height, depth_map.width
    if intrinsics.width > 0 and intrinsics.height > 0 and (intrinsics.width, intrinsics.height) != (w, h):
        raise ProjectionError(
            f"Intrinsics are for {intrinsics.width}x{intrinsics.height} "
            f"but depth map is {w}x{h}"
        )

    # Row-major order keeps the pixel -> point correspondence stable
    valid = depth_map.valid_mask()
    vs, us = np.nonzero(valid)
    z = depth_map.data[vs, us]

    x = (us - intrinsics.cx) * z / intrinsics.fx
    y = (vs - intrinsics.cy) * z / intrinsics.fy

    points = np.stack([x, y, z], axis=-1).astype(np.float64, copy=False).reshape(-1, 3)
    pixels = np.stack([us, vs], axis=-1).astype(np.int64, copy=False).reshape(-1, 2)

    return PointCloud(points=points, pixels=pixels, shape=(h, w))
