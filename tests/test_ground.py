"""Tests for ground plane estimation and removal."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

from obstacles_depth.errors import InsufficientPlaneDataError
from obstacles_depth.ground import (
    estimate_normals,
    find_ground_plane,
    fit_plane,
    ground_candidates,
    remove_ground,
    segment_ground,
)
from obstacles_depth.models import CameraIntrinsics, DepthMap, PointCloud
from obstacles_depth.projection import project_depth_map
from obstacles_depth.synthetic import floor_depth, floor_with_box

DOWN = np.array([0.0, -1.0, 0.0])


def _floor_cloud():
    depth, intrinsics = floor_depth()
    return project_depth_map(DepthMap(depth), intrinsics)


def test_floor_normals_point_along_vertical_axis() -> None:
    normals = estimate_normals(_floor_cloud())
    have_normal = ~np.isnan(normals).any(axis=1)

    assert have_normal.sum() > 1000
    np.testing.assert_allclose(np.abs(normals[have_normal, 1]), 1.0, atol=1e-9)


def test_unorganized_cloud_has_no_normals_and_every_point_is_a_candidate() -> None:
    cloud = PointCloud.from_points(np.zeros((7, 3)))
    assert estimate_normals(cloud) is None
    assert ground_candidates(None, len(cloud), DOWN, 10.0).all()


def test_candidates_respect_angle_tolerance() -> None:
    tilted = np.radians(20.0)
    normals = np.array([
        [0.0, 1.0, 0.0],
        [0.0, -np.cos(tilted), np.sin(tilted)],
        [0.0, 0.0, 1.0],
        [np.nan, np.nan, np.nan],
    ])
    np.testing.assert_array_equal(ground_candidates(normals, 4, DOWN, 15.0), [True, False, False, False])
    np.testing.assert_array_equal(ground_candidates(normals, 4, DOWN, 20.0), [True, True, False, False])


def test_floor_plane_is_found_below_camera(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box()
    cloud = project_depth_map(depth_map, intrinsics)
    plane, candidates = find_ground_plane(cloud, cluster_config)

    np.testing.assert_allclose(plane.normal, DOWN, atol=1e-6)
    assert plane.d == pytest.approx(500.0, abs=1e-3)
    assert candidates.sum() >= cluster_config.min_pts_in_plane


def test_segmentation_leaves_only_the_box(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box()
    cloud = project_depth_map(depth_map, intrinsics)
    plane, ground_mask = segment_ground(cloud, cluster_config)
    non_ground = cloud.points[~ground_mask]

    assert len(non_ground) == 50
    np.testing.assert_allclose(non_ground[:, 2], 1500.0)
    assert (plane.distance_to_points(non_ground) >= 200.0 - 1e-6).all()


def test_remove_ground_preserves_order(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box()
    cloud = project_depth_map(depth_map, intrinsics)
    plane, ground_mask = segment_ground(cloud, cluster_config)
    non_ground, mask = remove_ground(cloud, plane, cluster_config.max_dist_from_plane)

    np.testing.assert_array_equal(mask, ground_mask)
    np.testing.assert_array_equal(non_ground.points, cloud.points[~ground_mask])
    np.testing.assert_array_equal(non_ground.pixels, cloud.pixels[~ground_mask])


def test_ground_removal_is_idempotent(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box()
    cloud = project_depth_map(depth_map, intrinsics)
    plane, _ = find_ground_plane(cloud, cluster_config)

    once, _ = remove_ground(cloud, plane, cluster_config.max_dist_from_plane)
    twice, second_mask = remove_ground(once, plane, cluster_config.max_dist_from_plane)

    assert not second_mask.any()
    np.testing.assert_array_equal(twice.points, once.points)


def test_segmentation_is_deterministic(cluster_config) -> None:
    depth_map, intrinsics = floor_with_box()
    cloud = project_depth_map(depth_map, intrinsics)
    first_plane, first_mask = segment_ground(cloud, cluster_config)
    second_plane, second_mask = segment_ground(cloud, cluster_config)

    np.testing.assert_array_equal(first_plane.normal, second_plane.normal)
    assert first_plane.d == second_plane.d
    np.testing.assert_array_equal(first_mask, second_mask)


def test_wall_only_frame_has_no_ground(cluster_config) -> None:
    intrinsics = CameraIntrinsics(fx=100.0, fy=100.0, cx=20.0, cy=15.0)
    cloud = project_depth_map(DepthMap(np.full((30, 40), 1000.0)), intrinsics)

    with pytest.raises(InsufficientPlaneDataError):
        find_ground_plane(cloud, cluster_config)


def test_too_few_candidates_raises(cluster_config) -> None:
    strict = dataclasses.replace(cluster_config, min_pts_in_plane=100_000)
    with pytest.raises(InsufficientPlaneDataError, match="100000"):
        find_ground_plane(_floor_cloud(), strict)


def test_fit_plane_through_collinear_points_uses_assumed_normal() -> None:
    points = np.array([[0.0, 300.0, 1000.0], [10.0, 300.0, 1000.0], [20.0, 300.0, 1000.0]])
    plane = fit_plane(points, DOWN)

    np.testing.assert_allclose(plane.normal, DOWN)
    np.testing.assert_allclose(plane.distance_to_points(points), 0.0, atol=1e-9)


def test_fit_plane_outside_tolerance_uses_assumed_normal() -> None:
    # A wall: least squares normal is +z, far from the ground normal
    xs, ys = np.meshgrid(np.arange(5.0), np.arange(5.0))
    wall = np.stack([xs.ravel(), ys.ravel(), np.full(25, 800.0)], axis=1)
    plane = fit_plane(wall, DOWN, angle_tolerance=30.0)

    np.testing.assert_allclose(plane.normal, DOWN)


def test_remove_ground_on_empty_cloud() -> None:
    plane = fit_plane(np.array([[0.0, 500.0, 1000.0]]), DOWN)
    empty = PointCloud.from_points(np.zeros((0, 3)))
    non_ground, mask = remove_ground(empty, plane, 10.0)

    assert len(non_ground) == 0
    assert mask.shape == (0,)
