"""Cheap board estimates used many times per decision cycle."""

import math
from typing import Optional

from botcore.schemas import BoardSnapshot, Position
from botcore.services.gridmap import BLOCKED, GridMap, ObstacleIndex

# Obstacle-dense rectangles stretch the estimate up to 3x the grid distance
OBSTACLE_STRETCH = 2.0


def walkability_grid(snapshot: BoardSnapshot) -> GridMap:
    grid = GridMap(snapshot.width, snapshot.height)
    for i in range(snapshot.size):
        if not snapshot.is_walkable(i):
            grid.set(snapshot.col(i), snapshot.row(i), BLOCKED)
    return grid


class DistanceEstimator:
    """
    Path-length estimate without a search: Manhattan distance scaled by
    ``1 + 2 * obstacle_fraction`` of the bounding rectangle of both tiles.
    Setup is O(tiles); each estimate is O(1).
    """

    def __init__(self, snapshot: BoardSnapshot, grid: GridMap | None = None):
        self.snapshot = snapshot
        self.grid = grid if grid is not None else walkability_grid(snapshot)
        self._obstacles = ObstacleIndex(self.grid)
        width = snapshot.width
        # tile index -> (x, y)
        self.coords: list[tuple[int, int]] = [(i % width, i // width) for i in range(snapshot.size)]

    def obstacle_fraction(self, a: int, b: int) -> float:
        ax, ay = self.coords[a]
        bx, by = self.coords[b]
        area = (abs(ax - bx) + 1) * (abs(ay - by) + 1)
        return self._obstacles.count_xy(ax, ay, bx, by) / area

    def estimate(self, a: int, b: int) -> float:
        if a == b:
            return 0.0
        ax, ay = self.coords[a]
        bx, by = self.coords[b]
        dx = abs(ax - bx)
        dy = abs(ay - by)
        blocked = self._obstacles.count_xy(ax, ay, bx, by)
        return (dx + dy) * (1.0 + OBSTACLE_STRETCH * blocked / ((dx + 1) * (dy + 1)))

    __call__ = estimate


def heuristic_distance(snapshot: BoardSnapshot, a: int, b: int) -> float:
    """One-off estimate that scans the rectangle directly."""
    if a == b:
        return 0.0
    pa = snapshot.position(a)
    pb = snapshot.position(b)
    blocked = 0
    area = 0
    for row in range(min(pa.y, pb.y), max(pa.y, pb.y) + 1):
        for col in range(min(pa.x, pb.x), max(pa.x, pb.x) + 1):
            area += 1
            blocked += 0 if snapshot.is_walkable(snapshot.index(row, col)) else 1
    return pa.manhattan_distance(pb) * (1.0 + OBSTACLE_STRETCH * blocked / area)


def center_of_mass(snapshot: BoardSnapshot) -> Optional[int]:
    """Army-weighted centroid of the visible enemy tiles, or None when there is none."""
    total = 0
    row_sum = 0
    col_sum = 0
    for i, tile in enumerate(snapshot.tiles):
        if not snapshot.is_enemy(tile.faction):
            continue
        total += tile.armies
        row_sum += tile.armies * snapshot.row(i)
        col_sum += tile.armies * snapshot.col(i)
    if total <= 0:
        return None
    row = min(snapshot.height - 1, math.floor(row_sum / total + 0.5))
    col = min(snapshot.width - 1, math.floor(col_sum / total + 0.5))
    return snapshot.index(row, col)


def front_vector(snapshot: BoardSnapshot, origin: Optional[int], target: Optional[int]) -> Optional[Position]:
    """(dx, dy) from origin to target as a Position, or None if either end is unknown."""
    if origin is None or target is None:
        return None
    a = snapshot.position(origin)
    b = snapshot.position(target)
    return Position(x=b.x - a.x, y=b.y - a.y)
