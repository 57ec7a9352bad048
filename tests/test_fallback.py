"""Tests for the median depth estimate used without intrinsics."""

from __future__ import annotations

import numpy as np
import pytest

from obstacles_depth.errors import EmptyDepthDataError
from obstacles_depth.fallback import median_depth, median_depth_obstacle
from obstacles_depth.models import DepthMap


def test_single_obstacle_at_median_depth() -> None:
    depth_map = DepthMap(np.array([[10.0, 20.0, 30.0, 40.0, 50.0]]))
    obstacles = median_depth_obstacle(depth_map)

    assert len(obstacles) == 1
    assert obstacles[0].center == (0.0, 0.0, 30.0)
    assert obstacles[0].num_points == 1
    assert obstacles[0].bounding_box.dims == (0.0, 0.0, 0.0)


@pytest.mark.parametrize(
    "data, expected",
    [
        ([[50, 0, 10], [40, 30, 20]], 30.0),
        ([[40, 10, 30, 20]], 30.0),
        ([[7]], 7.0),
        ([[0, np.nan, 12, 8]], 12.0),
    ],
)
def test_median_uses_only_valid_readings(data, expected: float) -> None:
    assert median_depth(DepthMap(np.array(data, dtype=float))) == expected


def test_no_valid_readings_raises() -> None:
    with pytest.raises(EmptyDepthDataError):
        median_depth_obstacle(DepthMap(np.zeros((4, 4))))
