"""Reference path service over a :class:`core.grid.GridMap`.

The controllers only ever talk to a path service through
:class:`interface.ports.PathService`; this module provides the in-memory
implementation used by the sandbox host and the tests.
"""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from config.settings import DistanceMetric
from core.grid import GridCoord, GridMap, Point, distance, distances, neighbor_offsets
from utils.logger import get_logger

logger = get_logger(__name__)


class MovementError(RuntimeError):
    """Raised by hosts when a token move is rejected."""


@dataclass(frozen=True, slots=True)
class PathOptions:
    """Knobs forwarded by the controller on every ``compute_paths`` call."""

    constrain_vision: bool = False
    whitelist: FrozenSet[str] = frozenset()


@dataclass(frozen=True, slots=True)
class Path:
    """A route from ``origin`` towards ``destination``, truncated to the mover's budget.

    ``points`` starts with ``origin``; an empty ``points`` tuple means no route
    exists.
    """

    origin: Optional[Point]
    destination: Optional[Point]
    points: Tuple[Point, ...] = ()
    metric: DistanceMetric = DistanceMetric.MANHATTAN

    @classmethod
    def invalid(cls, origin: Optional[Point] = None, destination: Optional[Point] = None) -> "Path":
        return cls(origin, destination, ())

    @property
    def valid(self) -> bool:
        return bool(self.points)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def terminal_distance_to_dest(self) -> float:
        if not self.points or self.destination is None:
            return math.inf
        return distance(self.points[-1], self.destination, self.metric)

    def within(self, dist: float) -> List[Point]:
        """Prefix of the path ending at the first point within ``dist`` of the destination.

        When no point gets close enough the whole (truncated) path is returned.
        """

        if not self.points or self.destination is None:
            return []
        gaps = distances(self.destination, self.points, self.metric)
        close = np.nonzero(gaps <= dist)[0]
        end = int(close[0]) if len(close) else len(self.points) - 1
        return list(self.points[: end + 1])


@dataclass
class _MoverCache:
    origin: Point
    paths: Dict[str, Path] = field(default_factory=dict)


def _step_cost(delta: GridCoord, metric: DistanceMetric) -> float:
    if metric == DistanceMetric.EUCLIDEAN and delta[0] and delta[1]:
        return math.sqrt(2.0)
    return 1.0


def find_path(
    start: Point,
    goal: Point,
    grid: GridMap,
    metric: DistanceMetric,
    blocked: Iterable[Point] = (),
    allowed: Optional[np.ndarray] = None,
) -> List[Point]:
    """A* search from ``start`` to ``goal``.

    ``blocked`` tiles (other tokens) cannot be entered except for ``goal``
    itself; ``allowed`` optionally masks the tiles the search may use.
    Returns ``[]`` when the goal cannot be reached.
    """

    if not grid.in_bounds(start) or not grid.in_bounds(goal):
        return []

    blocked_set: Set[Point] = set(blocked)
    open_set: List[Tuple[float, int, Point]] = []
    counter = 0
    heapq.heappush(open_set, (0.0, counter, start))

    came_from: Dict[Point, Point] = {}
    g_score: Dict[Point, float] = {start: 0.0}
    visited: Set[Point] = set()

    while open_set:
        _, _, current = heapq.heappop(open_set)

        if current == goal:
            path = [current]
            while current in came_from:
                current = came_from[current]
                path.append(current)
            path.reverse()
            return path

        if current in visited:
            continue
        visited.add(current)

        for delta in neighbor_offsets(metric):
            neighbor = current.offset(*delta)
            if neighbor in visited or not grid.is_walkable(neighbor):
                continue
            if neighbor != goal and neighbor in blocked_set:
                continue
            if allowed is not None and neighbor != goal and not allowed[neighbor.y, neighbor.x]:
                continue

            tentative_g = g_score[current] + _step_cost(delta, metric)
            if tentative_g < g_score.get(neighbor, math.inf):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                counter += 1
                heapq.heappush(open_set, (tentative_g + distance(neighbor, goal, metric), counter, neighbor))

    return []


def truncate(points: Sequence[Point], budget: float, metric: DistanceMetric) -> Tuple[Point, ...]:
    """Keep the longest prefix whose movement cost fits within ``budget``."""

    if not points:
        return ()
    kept = [points[0]]
    spent = 0.0
    for prev, point in zip(points, points[1:]):
        spent += _step_cost((point.x - prev.x, point.y - prev.y), metric)
        if spent > budget + 1e-9:
            break
        kept.append(point)
    return tuple(kept)


class GridPathService:
    """Path service caching one path per (mover, target) pair.

    ``positions`` is queried on every :meth:`compute_paths` call and returns
    the current tile of every token on the map; tokens other than the mover,
    the target and whitelisted ids block movement.
    """

    def __init__(
        self,
        grid: GridMap,
        metric: DistanceMetric,
        positions: Callable[[], Mapping[str, Point]],
    ) -> None:
        self.grid = grid
        self.metric = metric
        self._positions = positions
        self._cache: Dict[str, _MoverCache] = {}

    def compute_paths(
        self,
        mover_id: str,
        target_ids: Sequence[str],
        budget: float,
        options: PathOptions = PathOptions(),
    ) -> None:
        positions = dict(self._positions())
        origin = positions.get(mover_id)
        if origin is None:
            raise KeyError(f"unknown mover {mover_id!r}")

        allowed = self.grid.visible_from(origin) if options.constrain_vision else None
        entry = self._cache.setdefault(mover_id, _MoverCache(origin))
        entry.origin = origin

        for target_id in target_ids:
            dest = positions.get(target_id)
            if dest is None:
                entry.paths[target_id] = Path.invalid(origin)
                continue
            skip = {mover_id, target_id} | set(options.whitelist)
            blocked = [p for tid, p in positions.items() if tid not in skip]
            full = find_path(origin, dest, self.grid, self.metric, blocked, allowed)
            entry.paths[target_id] = Path(origin, dest, truncate(full, budget, self.metric), self.metric)
            logger.debug(
                "Path %s -> %s: %d of %d points within budget %.1f",
                mover_id,
                target_id,
                len(entry.paths[target_id]),
                len(full),
                budget,
            )

    def path_to(self, mover_id: str, target_id: str) -> Path:
        entry = self._cache.get(mover_id)
        if entry is None:
            return Path.invalid()
        return entry.paths.get(target_id, Path.invalid(entry.origin))

    def reachable_distance(self, mover_id: str, target_id: str) -> float:
        return self.path_to(mover_id, target_id).terminal_distance_to_dest

    def clear(self, mover_id: Optional[str] = None) -> None:
        if mover_id is None:
            self._cache.clear()
        else:
            self._cache.pop(mover_id, None)


__all__ = [
    "GridPathService",
    "MovementError",
    "Path",
    "PathOptions",
    "find_path",
    "truncate",
]
