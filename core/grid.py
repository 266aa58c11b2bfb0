"""Square-grid geometry shared by the path service and the controllers.

Coordinates are tile indices with ``y`` growing downwards (screen space).
Token rotation follows the host convention: ``0`` degrees faces ``+y`` and
angles grow clockwise on screen, so ``90`` faces ``-x``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from config.settings import DistanceMetric

GridCoord = Tuple[int, int]

# Relative angles of the eight neighbouring tiles, in degrees.
SQUARE_NEIGHBOR_ANGLES: Tuple[int, ...] = (0, 45, 90, 135, 180, 225, 270, 315)


@dataclass(frozen=True, slots=True)
class Point:
    """A single tile on the grid."""

    x: int
    y: int

    @classmethod
    def of(cls, value: "Point | Sequence[int]") -> "Point":
        if isinstance(value, Point):
            return value
        return cls(int(value[0]), int(value[1]))

    def as_tuple(self) -> GridCoord:
        return (self.x, self.y)

    def offset(self, dx: int, dy: int) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def neighbor(self, angle: float, rotation: float = 0.0) -> "Point":
        """Return the adjacent tile at ``angle`` degrees relative to ``rotation``."""

        heading = math.radians(normalize_degrees(rotation + angle))
        dx = int(round(-math.sin(heading)))
        dy = int(round(math.cos(heading)))
        return self.offset(dx, dy)


def normalize_degrees(angle: float) -> float:
    """Map ``angle`` onto ``[0, 360)``."""

    return angle % 360.0


def signed_degrees(angle: float) -> float:
    """Map ``angle`` onto ``(-180, 180]``."""

    value = normalize_degrees(angle)
    return value - 360.0 if value > 180.0 else value


def bearing(origin: Point, dest: Point) -> float:
    """Absolute rotation (host convention) a token at ``origin`` needs to face ``dest``."""

    dx = dest.x - origin.x
    dy = dest.y - origin.y
    if dx == 0 and dy == 0:
        return 0.0
    return normalize_degrees(math.degrees(math.atan2(-dx, dy)))


def radial_distance(origin: Point, dest: Point, rotation: float) -> float:
    """Smallest signed turn, in degrees, from ``rotation`` to face ``dest``."""

    if origin == dest:
        return 0.0
    return signed_degrees(bearing(origin, dest) - rotation)


def distance(a: Point, b: Point, metric: DistanceMetric) -> float:
    """Distance between two tiles under ``metric``."""

    return float(distances(a, [b], metric)[0])


def distances(origin: Point, points: Iterable[Point], metric: DistanceMetric) -> np.ndarray:
    """Vectorised distance from ``origin`` to every point in ``points``."""

    coords = np.array([p.as_tuple() for p in points], dtype=float).reshape(-1, 2)
    delta = np.abs(coords - np.array(origin.as_tuple(), dtype=float))
    if metric == DistanceMetric.CHEBYSHEV:
        return delta.max(axis=1) if len(delta) else np.zeros(0)
    if metric == DistanceMetric.EUCLIDEAN:
        return np.hypot(delta[:, 0], delta[:, 1])
    return delta.sum(axis=1)


def neighbor_offsets(metric: DistanceMetric) -> Tuple[GridCoord, ...]:
    """Moves allowed in one step; Manhattan grids forbid diagonals."""

    orthogonal = ((1, 0), (-1, 0), (0, 1), (0, -1))
    if metric == DistanceMetric.MANHATTAN:
        return orthogonal
    return orthogonal + ((1, 1), (1, -1), (-1, 1), (-1, -1))


def bresenham(start: GridCoord, end: GridCoord) -> Iterator[GridCoord]:
    """Yield integer coordinates between ``start`` and ``end`` (inclusive)."""

    x0, y0 = start
    x1, y1 = end
    dx = abs(x1 - x0)
    sx = 1 if x0 < x1 else -1
    dy = -abs(y1 - y0)
    sy = 1 if y0 < y1 else -1
    err = dx + dy

    while True:
        yield x0, y0
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


class GridMap:
    """Walls and opaque tiles of a rectangular battle map."""

    def __init__(
        self,
        width: int,
        height: int,
        *,
        walls: Iterable[GridCoord] = (),
        opaque: Optional[Iterable[GridCoord]] = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("grid dimensions must be positive")
        self.width = int(width)
        self.height = int(height)
        self.blocked = np.zeros((self.height, self.width), dtype=bool)
        self.opaque = np.zeros((self.height, self.width), dtype=bool)
        for x, y in walls:
            self.add_wall(Point(x, y))
        for x, y in opaque or ():
            self.opaque[y, x] = True

    def in_bounds(self, point: Point) -> bool:
        return 0 <= point.x < self.width and 0 <= point.y < self.height

    def add_wall(self, point: Point, *, blocks_sight: bool = True) -> None:
        if not self.in_bounds(point):
            raise IndexError(f"coordinates ({point.x}, {point.y}) are outside the grid bounds")
        self.blocked[point.y, point.x] = True
        if blocks_sight:
            self.opaque[point.y, point.x] = True

    def is_walkable(self, point: Point) -> bool:
        return self.in_bounds(point) and not bool(self.blocked[point.y, point.x])

    def has_los(self, start: Point, end: Point) -> bool:
        """True when no opaque tile lies strictly between ``start`` and ``end``."""

        for x, y in bresenham(start.as_tuple(), end.as_tuple()):
            if (x, y) in (start.as_tuple(), end.as_tuple()):
                continue
            if self.opaque[y, x]:
                return False
        return True

    def visible_from(self, origin: Point) -> np.ndarray:
        """Boolean mask of every tile with line of sight from ``origin``."""

        mask = np.zeros((self.height, self.width), dtype=bool)
        for y in range(self.height):
            for x in range(self.width):
                mask[y, x] = self.has_los(origin, Point(x, y))
        return mask


__all__ = [
    "GridCoord",
    "GridMap",
    "Point",
    "SQUARE_NEIGHBOR_ANGLES",
    "bearing",
    "bresenham",
    "distance",
    "distances",
    "neighbor_offsets",
    "normalize_degrees",
    "radial_distance",
    "signed_degrees",
]
