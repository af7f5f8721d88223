from typing import Iterator

from botcore.schemas import BoardSnapshot, BotConfig, TILE_EMPTY
from botcore.services.gridmap import BLOCKED, WALKABLE, GridMap
from botcore.utils.audit import _dbg


class BotError(Exception):
    """Base of every failure the decision core raises."""


class DegenerateMoveError(BotError):
    """A move whose source and target are the same tile reached a planner."""

    def __init__(self, tile: int):
        super().__init__(f"source and target are the same tile: {tile}")
        self.tile = tile


class PathfindingError(BotError):
    """No walkable route exists between source and target under the current mask."""

    def __init__(self, source: int, target: int):
        super().__init__(f"no route from {source} to {target}")
        self.source = source
        self.target = target


class ImpossibleTiles:
    """Targets proven unreachable during one game. Grows until reset() at game start."""

    def __init__(self, tiles=()):
        self._tiles: set[int] = set(tiles)

    def add(self, tile: int) -> bool:
        """Returns True when tile was not known yet."""
        if tile in self._tiles:
            return False
        self._tiles.add(tile)
        return True

    def reset(self) -> None:
        self._tiles.clear()

    def __contains__(self, tile: object) -> bool:
        return tile in self._tiles

    def __len__(self) -> int:
        return len(self._tiles)

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._tiles))

    def __repr__(self) -> str:
        return f"ImpossibleTiles({sorted(self._tiles)})"


def _blocks_route(snapshot: BoardSnapshot, i: int, config: BotConfig) -> bool:
    """Cities we do not hold would be attacked on the way through."""
    tile = snapshot.tiles[i]
    if tile.kind != "city":
        return False
    if snapshot.is_enemy(tile.faction):
        return True
    return config.avoid_foreign_cities and tile.faction == TILE_EMPTY


def obstacle_mask(snapshot: BoardSnapshot, impossible: ImpossibleTiles, target: int | None = None,
                  config: BotConfig | None = None) -> GridMap:
    """Routing mask: obstacles, foreign cities other than target, and impossible tiles are blocked."""
    config = config or BotConfig()
    grid = GridMap(snapshot.width, snapshot.height)
    for i in range(snapshot.size):
        blocked = (
            not snapshot.is_walkable(i)
            or i in impossible
            or (i != target and _blocks_route(snapshot, i, config))
        )
        if blocked:
            grid.set(snapshot.col(i), snapshot.row(i), BLOCKED)
    return grid


class PathPlanner:
    """
    Resolves (source, target) to a route of tile indices on one snapshot.

    The base mask is built once; the target's cell is opened for the duration
    of a search when it is only blocked for being a foreign city.
    """

    def __init__(self, snapshot: BoardSnapshot, impossible: ImpossibleTiles, config: BotConfig | None = None,
                 *, log_id: str | None = None):
        self.snapshot = snapshot
        self.impossible = impossible
        self.config = config or BotConfig()
        self.log_id = log_id
        self._mask = obstacle_mask(snapshot, impossible, None, self.config)

    def mask_for(self, target: int) -> GridMap:
        """Copy of the mask a search towards target runs on."""
        grid = GridMap(self.snapshot.width, self.snapshot.height)
        grid.set_map(self._mask.copy_as_list())
        if self._opens_for_target(target):
            grid.set(self.snapshot.col(target), self.snapshot.row(target), WALKABLE)
        return grid

    def _opens_for_target(self, target: int) -> bool:
        return (
            self.snapshot.is_walkable(target)
            and target not in self.impossible
            and _blocks_route(self.snapshot, target, self.config)
        )

    def find_route(self, source: int, target: int) -> list[int]:
        """Route source..target inclusive, or [] when none exists. Does not record failures."""
        if source == target:
            raise DegenerateMoveError(source)
        snap = self.snapshot
        if not (0 <= source < snap.size and 0 <= target < snap.size):
            raise IndexError(f"tile out of bounds: {source} -> {target}")
        tx, ty = snap.col(target), snap.row(target)
        opened = self._opens_for_target(target)
        if opened:
            self._mask.set(tx, ty, WALKABLE)
        try:
            path = self._mask.find_path(snap.position(source), snap.position(target))
        finally:
            if opened:
                self._mask.set(tx, ty, BLOCKED)
        if not path:
            return []
        return [snap.index_of(p) for p in path]

    def route(self, source: int, target: int, *, record: bool = True) -> list[int]:
        """
        Like find_route, but an unreachable target is reported with
        PathfindingError and, when record is set, registered as impossible.
        """
        path = self.find_route(source, target)
        if path:
            return path
        if record and self.impossible.add(target):
            _dbg(self.log_id, f"Registering impossible tile: {self.snapshot.coord_string(target)}")
            self._mask.set(self.snapshot.col(target), self.snapshot.row(target), BLOCKED)
        raise PathfindingError(source, target)
