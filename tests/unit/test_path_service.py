"""A* routing, budget truncation and the cached grid path service."""

import math

import pytest

from config.settings import DistanceMetric
from core.grid import GridMap, Point
from core.pathfinding import GridPathService, Path, PathOptions, find_path, truncate

M = DistanceMetric.MANHATTAN


def _points(*coords):
    return [Point(x, y) for x, y in coords]


def test_find_path_straight_line():
    grid = GridMap(6, 3)
    path = find_path(Point(0, 1), Point(4, 1), grid, M)
    assert path == _points((0, 1), (1, 1), (2, 1), (3, 1), (4, 1))


def test_find_path_goes_around_walls():
    grid = GridMap(5, 5, walls=[(2, 0), (2, 1), (2, 2), (2, 3)])
    path = find_path(Point(0, 0), Point(4, 0), grid, M)
    assert path[0] == Point(0, 0) and path[-1] == Point(4, 0)
    assert Point(2, 4) in path
    assert all(grid.is_walkable(p) for p in path)
    assert all(abs(a.x - b.x) + abs(a.y - b.y) == 1 for a, b in zip(path, path[1:]))


def test_goal_may_be_occupied_but_other_tokens_block():
    grid = GridMap(3, 3)
    blocked = _points((1, 0), (1, 1))
    path = find_path(Point(0, 0), Point(2, 0), grid, M, blocked=blocked + [Point(2, 0)])
    assert path[-1] == Point(2, 0)
    assert not set(blocked) & set(path)


def test_unreachable_goal_returns_empty():
    grid = GridMap(3, 3, walls=[(1, 0), (1, 1), (1, 2)])
    assert find_path(Point(0, 0), Point(2, 2), grid, M) == []
    assert find_path(Point(0, 0), Point(9, 9), grid, M) == []


def test_chebyshev_allows_diagonals():
    path = find_path(Point(0, 0), Point(3, 3), GridMap(4, 4), DistanceMetric.CHEBYSHEV)
    assert len(path) == 4


def test_truncate_respects_budget():
    points = _points((0, 0), (1, 0), (2, 0), (3, 0))
    assert truncate(points, 2, M) == tuple(points[:3])
    assert truncate(points, 10, M) == tuple(points)
    assert truncate([], 3, M) == ()


def test_truncate_counts_euclidean_diagonals_as_root_two():
    points = _points((0, 0), (1, 1), (2, 2))
    assert truncate(points, 2, DistanceMetric.EUCLIDEAN) == tuple(points[:2])
    assert truncate(points, 2 * math.sqrt(2), DistanceMetric.EUCLIDEAN) == tuple(points)


def test_path_within_returns_prefix_up_to_range():
    path = Path(Point(0, 0), Point(4, 0), tuple(_points((0, 0), (1, 0), (2, 0), (3, 0), (4, 0))), M)
    assert path.within(1) == _points((0, 0), (1, 0), (2, 0), (3, 0))
    assert path.within(10) == [Point(0, 0)]
    assert path.terminal_distance_to_dest == 0


def test_truncated_path_within_returns_whole_path():
    path = Path(Point(0, 0), Point(9, 0), tuple(_points((0, 0), (1, 0), (2, 0))), M)
    assert path.within(1) == _points((0, 0), (1, 0), (2, 0))
    assert path.terminal_distance_to_dest == 7


def test_invalid_path():
    path = Path.invalid(Point(0, 0))
    assert not path.valid
    assert len(path) == 0
    assert path.within(3) == []
    assert path.terminal_distance_to_dest == math.inf


class TestGridPathService:
    @pytest.fixture
    def positions(self):
        return {"mover": Point(0, 0), "target": Point(4, 0), "ally": Point(2, 0)}

    @pytest.fixture
    def service(self, positions):
        return GridPathService(GridMap(5, 3), M, lambda: positions)

    def test_other_tokens_block_but_whitelist_does_not(self, service):
        service.compute_paths("mover", ["target"], 20)
        assert Point(2, 0) not in service.path_to("mover", "target").points

        service.compute_paths("mover", ["target"], 20, PathOptions(whitelist=frozenset({"ally"})))
        assert Point(2, 0) in service.path_to("mover", "target").points

    def test_budget_limits_reachable_distance(self, service):
        service.compute_paths("mover", ["target"], 2, PathOptions(whitelist=frozenset({"ally"})))
        assert len(service.path_to("mover", "target")) == 3
        assert service.reachable_distance("mover", "target") == 2

    def test_unknown_target_and_clear(self, service):
        service.compute_paths("mover", ["ghost"], 5)
        assert not service.path_to("mover", "ghost").valid
        service.clear("mover")
        assert service.reachable_distance("mover", "target") == math.inf

    def test_unknown_mover_raises(self, service):
        with pytest.raises(KeyError):
            service.compute_paths("nobody", ["target"], 5)

    def test_constrain_vision_keeps_search_in_sight(self):
        grid = GridMap(5, 5, walls=[(2, 0), (2, 1), (2, 2), (2, 3)])
        positions = {"mover": Point(0, 0), "target": Point(4, 0)}
        service = GridPathService(grid, M, lambda: positions)

        service.compute_paths("mover", ["target"], 20)
        assert service.path_to("mover", "target").valid

        service.compute_paths("mover", ["target"], 20, PathOptions(constrain_vision=True))
        assert not service.path_to("mover", "target").valid
