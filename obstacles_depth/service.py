"""
Vision-service facade over the obstacle pipeline.

The service pulls a frame from a depth source, picks the calibrated or the
median-depth path depending on the camera's intrinsics and returns the
obstacle list. Only obstacle clusters are supported; detection and
classification calls raise UnsupportedError.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from obstacles_depth.config import ClusterConfig, ObstaclesDepthConfig
from obstacles_depth.errors import DepthSourceError, UnsupportedError
from obstacles_depth.models import CameraIntrinsics, Capture, DepthMap, Obstacle, Properties
from obstacles_depth.od_logging import get_logger
from obstacles_depth.pipeline import FrameResult, has_usable_intrinsics, run_frame_pipeline


@runtime_checkable
class DepthSource(Protocol):
    """Anything that can hand out depth frames, e.g. a depth camera."""

    name: str

    async def get_depth_map(self) -> DepthMap:
        ...

    async def get_intrinsics(self) -> Optional[CameraIntrinsics]:
        ...


CameraResolver = Callable[[str], Optional[DepthSource]]


class ObstaclesDepthService:
    """Turns depth frames from a camera into obstacle clusters."""

    def __init__(
        self,
        cluster_config: ClusterConfig,
        *,
        resolve_camera: Optional[CameraResolver] = None,
        default_camera: Optional[DepthSource] = None,
        name: str = "obstacles_depth",
        logger=None,
    ) -> None:
        self.cluster_config = cluster_config
        self.name = name
        self._resolve_camera = resolve_camera
        self._default_camera = default_camera
        self._log = logger if logger is not None else get_logger(name)

    @classmethod
    def from_config(
        cls,
        config: ObstaclesDepthConfig,
        resolve_camera: Optional[CameraResolver] = None,
        *,
        name: str = "obstacles_depth",
        logger=None,
    ) -> "ObstaclesDepthService":
        """Validate the attributes and resolve the default camera, if one is named."""
        cluster_config = config.to_cluster_config()
        service = cls(cluster_config, resolve_camera=resolve_camera, name=name, logger=logger)
        if config.camera_name:
            service._default_camera = service._lookup(config.camera_name)
        return service

    def _lookup(self, camera_name: str) -> DepthSource:
        if self._resolve_camera is None:
            raise DepthSourceError(f"could not find camera {camera_name!r}: no camera lookup configured")
        try:
            camera = self._resolve_camera(camera_name)
        except LookupError as err:
            raise DepthSourceError(f"could not find camera {camera_name!r}") from err
        if camera is None:
            raise DepthSourceError(f"could not find camera {camera_name!r}")
        return camera

    def _camera(self, camera_name: Optional[str]) -> DepthSource:
        if camera_name:
            return self._lookup(camera_name)
        if self._default_camera is not None:
            return self._default_camera
        raise DepthSourceError("no camera specified")

    async def _intrinsics(self, camera: DepthSource) -> Optional[CameraIntrinsics]:
        try:
            intrinsics = await camera.get_intrinsics()
        except Exception as err:
            self._log.warning(
                "could not find camera properties, using median depth",
                camera=camera.name,
                error=str(err),
            )
            return None
        if not has_usable_intrinsics(intrinsics):
            self._log.warning(
                "camera has no usable intrinsic parameters, using median depth",
                camera=camera.name,
                intrinsics=repr(intrinsics),
            )
            return None
        return intrinsics

    async def _depth_map(self, camera: DepthSource) -> DepthMap:
        try:
            return await camera.get_depth_map()
        except DepthSourceError:
            raise
        except Exception as err:
            raise DepthSourceError(f"could not get depth map from {camera.name}") from err

    async def _run(self, depth_map: DepthMap, intrinsics: Optional[CameraIntrinsics]) -> FrameResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(run_frame_pipeline, depth_map, self.cluster_config, intrinsics),
        )

    async def get_obstacles(self, camera_name: Optional[str] = None) -> List[Obstacle]:
        camera = self._camera(camera_name)
        intrinsics = await self._intrinsics(camera)
        depth_map = await self._depth_map(camera)
        result = await self._run(depth_map, intrinsics)
        self._log.debug(
            "obstacles computed",
            camera=camera.name,
            mode=result.mode,
            valid_points=result.valid_count,
            non_ground_points=len(result.obstacle_points),
            obstacles=len(result.obstacles),
        )
        return list(result.obstacles)

    def get_properties(self) -> Properties:
        return Properties(
            object_clusters_supported=True,
            detection_supported=False,
            classification_supported=False,
        )

    async def capture_all(
        self,
        camera_name: Optional[str] = None,
        *,
        return_depth_map: bool = False,
        return_obstacles: bool = False,
    ) -> Capture:
        """One frame, optionally with its obstacles. Detections and classifications stay empty."""
        camera = self._camera(camera_name)
        capture = Capture()
        if not (return_depth_map or return_obstacles):
            return capture

        intrinsics = await self._intrinsics(camera) if return_obstacles else None
        depth_map = await self._depth_map(camera)

        if return_depth_map:
            capture.depth_map = depth_map
        if return_obstacles:
            result = await self._run(depth_map, intrinsics)
            capture.obstacles = list(result.obstacles)
        return capture

    async def detections_from_camera(self, camera_name: Optional[str] = None):
        raise UnsupportedError("detections_from_camera")

    async def detections(self, image):
        raise UnsupportedError("detections")

    async def classifications_from_camera(self, camera_name: Optional[str] = None, n: int = 1):
        raise UnsupportedError("classifications_from_camera")

    async def classifications(self, image, n: int = 1):
        raise UnsupportedError("classifications")

    async def do_command(self, command: Dict[str, object]) -> Dict[str, object]:
        raise UnsupportedError("do_command")

    async def close(self) -> None:
        return None
