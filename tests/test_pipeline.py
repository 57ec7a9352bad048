"""End-to-end tests for the frame pipeline."""

from __future__ import annotations

import dataclasses
import time

import numpy as np
import pytest

from obstacles_depth.config import ObstaclesDepthConfig
from obstacles_depth.errors import InsufficientPlaneDataError, InvalidConfigError
from obstacles_depth.models import CameraIntrinsics, DepthMap
from obstacles_depth.pipeline import (
    MODE_INTRINSICS,
    MODE_MEDIAN_DEPTH,
    detect_obstacles,
    run_frame_pipeline,
)
from obstacles_depth.synthetic import add_box, floor_depth, floor_with_box


def test_box_above_floor_is_one_obstacle(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box(cols=10, rows=5)
    result = run_frame_pipeline(depth_map, cluster_config, intrinsics)

    assert result.mode == MODE_INTRINSICS
    assert len(result.obstacles) == 1
    obstacle = result.obstacles[0]
    assert obstacle.num_points == 50
    assert obstacle.center.z == pytest.approx(1500.0)
    assert obstacle.center.y == pytest.approx(270.0)
    assert obstacle.bounding_box.dims == pytest.approx((135.0, 60.0, 0.0))
    assert len(result.ground_points) + len(result.obstacle_points) == result.valid_count


def test_small_box_is_filtered_as_noise(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box(cols=5, rows=2, u0=38, v0=49)
    result = run_frame_pipeline(depth_map, cluster_config, intrinsics)

    assert len(result.obstacle_points) == 10
    assert result.obstacles == []
    assert result.noise_count == 10


def test_two_boxes_are_reported_in_discovery_order(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box(cols=6, rows=5, u0=10, v0=46)
    data = np.array(depth_map.data)
    data[40:45, 60:66] = 1200.0
    result = run_frame_pipeline(DepthMap(data), cluster_config, intrinsics)

    assert [o.num_points for o in result.obstacles] == [30, 30]
    # The upper box starts on an earlier image row, so it is found first
    assert result.obstacles[0].center.z == pytest.approx(1200.0)
    assert result.obstacles[1].center.z == pytest.approx(1500.0)


def test_repeated_runs_are_identical(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box()
    first = detect_obstacles(depth_map, cluster_config, intrinsics)
    second = detect_obstacles(depth_map, cluster_config, intrinsics)
    assert first == second


@pytest.mark.parametrize("min_segment", [1, 20, 50, 51])
def test_no_obstacle_below_minimum_segment(cluster_config, min_segment: int) -> None:
    depth_map, intrinsics = floor_with_box()
    config = dataclasses.replace(cluster_config, min_pts_in_segment=min_segment)
    obstacles = detect_obstacles(depth_map, config, intrinsics)

    assert all(o.num_points >= min_segment for o in obstacles)
    assert len(obstacles) == (1 if min_segment <= 50 else 0)


def test_all_invalid_frame_gives_no_obstacles(cluster_config) -> None:
    intrinsics = CameraIntrinsics(fx=100.0, fy=100.0, cx=40.0, cy=30.0)
    result = run_frame_pipeline(DepthMap(np.zeros((60, 80))), cluster_config, intrinsics)

    assert result.mode == MODE_INTRINSICS
    assert result.obstacles == []
    assert result.plane_model is None


@pytest.mark.parametrize(
    "intrinsics",
    [None, CameraIntrinsics(fx=0.0, fy=100.0, cx=40.0, cy=30.0)],
)
def test_missing_intrinsics_fall_back_to_median_depth(cluster_config, intrinsics) -> None:
    depth_map = DepthMap(np.array([[10.0, 20.0, 30.0, 40.0, 50.0]]))
    result = run_frame_pipeline(depth_map, cluster_config, intrinsics)

    assert result.mode == MODE_MEDIAN_DEPTH
    assert len(result.obstacles) == 1
    assert result.obstacles[0].center == (0.0, 0.0, 30.0)


def test_frame_without_ground_propagates(cluster_config) -> None:
    intrinsics = CameraIntrinsics(fx=100.0, fy=100.0, cx=40.0, cy=30.0)
    with pytest.raises(InsufficientPlaneDataError):
        run_frame_pipeline(DepthMap(np.full((60, 80), 900.0)), cluster_config, intrinsics)


def test_unvalidated_config_is_rejected() -> None:
    depth_map, intrinsics = floor_with_box()
    with pytest.raises(InvalidConfigError):
        run_frame_pipeline(depth_map, {"clustering_strictness": 0.5}, intrinsics)


def test_vga_frame_with_wall_stays_within_budget() -> None:
    # Floor below a wall that fills the upper rows, with the service defaults
    depth, intrinsics = floor_depth(width=640, height=480, focal=500.0)
    depth = add_box(depth, u0=0, v0=0, cols=640, rows=300, distance=3000.0)
    config = ObstaclesDepthConfig().to_cluster_config()

    start = time.perf_counter()
    result = run_frame_pipeline(DepthMap(depth), config, intrinsics)
    elapsed = time.perf_counter() - start

    assert len(result.obstacles) == 1
    assert result.obstacles[0].num_points == 640 * 300
    assert result.obstacles[0].center.z == pytest.approx(3000.0)
    assert elapsed < 10.0
