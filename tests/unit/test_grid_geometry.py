"""Square-grid geometry: distances, bearings and line of sight."""

import math

import numpy as np
import pytest

from config.settings import DistanceMetric
from core.grid import (
    GridMap,
    Point,
    bearing,
    bresenham,
    distance,
    distances,
    neighbor_offsets,
    radial_distance,
    signed_degrees,
)


@pytest.mark.parametrize(
    "metric, expected",
    [
        (DistanceMetric.CHEBYSHEV, 4),
        (DistanceMetric.EUCLIDEAN, 5),
        (DistanceMetric.MANHATTAN, 7),
    ],
)
def test_distance_metrics(metric, expected):
    assert distance(Point(0, 0), Point(3, 4), metric) == pytest.approx(expected)


def test_distances_vectorised():
    result = distances(Point(1, 1), [Point(1, 1), Point(2, 3), Point(0, 0)], DistanceMetric.MANHATTAN)
    assert isinstance(result, np.ndarray)
    assert result.tolist() == [0, 3, 2]


def test_bearing_follows_host_rotation_convention():
    origin = Point(5, 5)
    assert bearing(origin, Point(5, 6)) == 0
    assert bearing(origin, Point(4, 5)) == pytest.approx(90)
    assert bearing(origin, Point(5, 4)) == pytest.approx(180)
    assert bearing(origin, Point(6, 5)) == pytest.approx(270)


def test_radial_distance_is_smallest_signed_turn():
    origin = Point(0, 0)
    assert radial_distance(origin, Point(1, 0), 0) == pytest.approx(-90)
    assert radial_distance(origin, Point(0, 1), 270) == pytest.approx(90)
    assert radial_distance(origin, origin, 123) == 0
    assert signed_degrees(540) == 180


def test_neighbor_is_relative_to_rotation():
    p = Point(3, 3)
    assert p.neighbor(0) == Point(3, 4)
    assert p.neighbor(90) == Point(2, 3)
    assert p.neighbor(45) == Point(2, 4)
    assert p.neighbor(0, rotation=180) == Point(3, 2)


def test_neighbor_offsets_forbid_diagonals_on_manhattan():
    assert len(neighbor_offsets(DistanceMetric.MANHATTAN)) == 4
    assert len(neighbor_offsets(DistanceMetric.CHEBYSHEV)) == 8
    assert len(neighbor_offsets(DistanceMetric.EUCLIDEAN)) == 8


def test_bresenham_endpoints_inclusive():
    line = list(bresenham((0, 0), (3, 1)))
    assert line[0] == (0, 0)
    assert line[-1] == (3, 1)
    assert len(line) == 4


def test_walls_block_movement_and_sight():
    grid = GridMap(5, 5, walls=[(2, 0), (2, 1), (2, 2)])
    assert not grid.is_walkable(Point(2, 1))
    assert not grid.is_walkable(Point(-1, 0))
    assert grid.is_walkable(Point(2, 3))
    assert not grid.has_los(Point(0, 1), Point(4, 1))
    assert grid.has_los(Point(0, 4), Point(4, 4))


def test_visible_from_mask_matches_has_los():
    grid = GridMap(4, 3, walls=[(1, 1)])
    mask = grid.visible_from(Point(0, 1))
    assert mask.shape == (3, 4)
    assert not mask[1, 2]
    assert mask[0, 0]


def test_grid_rejects_bad_dimensions_and_out_of_bounds_walls():
    with pytest.raises(ValueError):
        GridMap(0, 3)
    with pytest.raises(IndexError):
        GridMap(2, 2, walls=[(5, 5)])


def test_point_of_accepts_sequences():
    assert Point.of((2, 7)) == Point(2, 7)
    p = Point(1, 1)
    assert Point.of(p) is p
    assert math.isclose(distance(p, p, DistanceMetric.EUCLIDEAN), 0)
