"""Shared fixtures for the obstacle pipeline tests."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from obstacles_depth.config import ClusterConfig
from obstacles_depth.models import CameraIntrinsics, DepthMap


@pytest.fixture
def cluster_config() -> ClusterConfig:
    return ClusterConfig(
        min_pts_in_plane=100,
        min_pts_in_segment=20,
        max_dist_from_plane=50.0,
        clustering_radius=50,
        clustering_strictness=1.0,
        angle_tolerance=15.0,
    )


class FakeDepthSource:
    """In-memory depth source with optional failures."""

    def __init__(
        self,
        name: str,
        depth_map: DepthMap,
        intrinsics: Optional[CameraIntrinsics] = None,
        depth_error: Optional[Exception] = None,
        intrinsics_error: Optional[Exception] = None,
    ) -> None:
        self.name = name
        self.depth_map = depth_map
        self.intrinsics = intrinsics
        self.depth_error = depth_error
        self.intrinsics_error = intrinsics_error
        self.depth_calls = 0

    async def get_depth_map(self) -> DepthMap:
        self.depth_calls += 1
        await asyncio.sleep(0)
        if self.depth_error is not None:
            raise self.depth_error
        return self.depth_map

    async def get_intrinsics(self) -> Optional[CameraIntrinsics]:
        if self.intrinsics_error is not None:
            raise self.intrinsics_error
        return self.intrinsics


class BlockingDepthSource:
    """Depth source whose frame never arrives; must be built inside a running loop."""

    def __init__(self, name: str, intrinsics: Optional[CameraIntrinsics] = None) -> None:
        self.name = name
        self.intrinsics = intrinsics
        self.started = asyncio.Event()

    async def get_depth_map(self) -> DepthMap:
        self.started.set()
        await asyncio.Event().wait()
        raise AssertionError("unreachable")

    async def get_intrinsics(self) -> Optional[CameraIntrinsics]:
        return self.intrinsics
