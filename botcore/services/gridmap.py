import heapq
from botcore.schemas import Position

WALKABLE = 0
BLOCKED = 1

# (dx, dy) in the same order as Position.offset_neighbors
_STEPS = ((0, -1), (+1, 0), (0, +1), (-1, 0))


class GridMap:
    """
    Obstacle mask of a rectangular board as a 2-D list.
    Each cell is WALKABLE (0) or BLOCKED (non-zero); rows are y, columns x.
    """
    def __init__(self, width: int, height: int):
        self.__map = [[WALKABLE for _ in range(width)] for __ in range(height)]
        self.__W = width
        self.__H = height

    def set_map(self, values: list[list[int]]):
        if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
            raise ValueError("values must be a 2D list")
        H = len(values)
        W = len(values[0]) if H > 0 else 0
        if any(len(row) != W for row in values):
            raise ValueError("All rows in values must have the same length")
        self.__map = values
        self.__W = W
        self.__H = H

    @property
    def W(self) -> int:
        return self.__W

    @property
    def H(self) -> int:
        return self.__H

    @property
    def shape(self) -> tuple[int, int]:
        return (self.W, self.H)

    def copy_as_list(self) -> list[list[int]]:
        return [row[:] for row in self.__map]

    def get(self, x: int, y: int) -> int:
        if not (0 <= x < self.W and 0 <= y < self.H):
            raise IndexError("Coordinates out of bounds")
        return self.__map[y][x]

    def set(self, x: int, y: int, value: int) -> None:
        if not (0 <= x < self.W and 0 <= y < self.H):
            raise IndexError("Coordinates out of bounds")
        self.__map[y][x] = value

    def __getitem__(self, pos: Position) -> int:
        if not isinstance(pos, Position):
            raise TypeError(f"GridMap indices must be Position, not {type(pos).__name__}")
        if not (0 <= pos.x < self.W and 0 <= pos.y < self.H):
            raise IndexError("Coordinates out of bounds")
        return self.__map[pos.y][pos.x]

    def passable(self, pos: Position) -> bool:
        return pos.in_bounds(self.W, self.H) and self.__map[pos.y][pos.x] == WALKABLE

    def find_path(self, start: Position, goal: Position) -> list[Position] | None:
        """
        A* over 4-connected cells with unit cost and the Manhattan heuristic.
        start is expanded even when blocked (armies always leave their own tile);
        goal must be passable. Returns start..goal inclusive, or None.

        The search runs on plain (x, y) tuples; Positions are only built for
        the returned path.
        """
        W, H, grid = self.__W, self.__H, self.__map
        if W == 0 or H == 0:
            return None
        if not start.in_bounds(W, H) or not self.passable(goal):
            return None
        if start == goal:
            return [start]
        gx, gy = goal.x, goal.y
        origin = (start.x, start.y)
        # (f, g, y, x) keeps pops deterministic on ties
        open_heap: list[tuple[int, int, int, int]] = [(start.manhattan_distance(goal), 0, start.y, start.x)]
        came_from: dict[tuple[int, int], tuple[int, int] | None] = {origin: None}
        g_score = {origin: 0}
        closed: set[tuple[int, int]] = set()
        while open_heap:
            _, g, y, x = heapq.heappop(open_heap)
            cell = (x, y)
            if cell in closed:
                continue
            closed.add(cell)
            if x == gx and y == gy:
                path = []
                cur: tuple[int, int] | None = cell
                while cur is not None:
                    path.append(Position(x=cur[0], y=cur[1]))
                    cur = came_from[cur]
                path.reverse()
                return path
            tentative = g + 1
            for dx, dy in _STEPS:
                nx, ny = x + dx, y + dy
                if not (0 <= nx < W and 0 <= ny < H) or grid[ny][nx] != WALKABLE:
                    continue
                nxt = (nx, ny)
                if tentative < g_score.get(nxt, W * H + 1):
                    g_score[nxt] = tentative
                    came_from[nxt] = cell
                    heapq.heappush(open_heap, (tentative + abs(nx - gx) + abs(ny - gy), tentative, ny, nx))
        return None

    def dump(self) -> list[str]:
        """Character view of the mask: '.' walkable, '#' blocked."""
        lines = ["    " + "".join(f"{x % 10}" for x in range(self.W))]
        for y, row in enumerate(self.__map):
            lines.append(f"{y:2d}: " + "".join("." if cell == WALKABLE else "#" for cell in row))
        return lines


class ObstacleIndex:
    """Summed-area table over a GridMap: blocked-cell counts of any rectangle in O(1)."""

    def __init__(self, grid: GridMap):
        W, H = grid.W, grid.H
        table = [[0] * (W + 1) for _ in range(H + 1)]
        for y in range(H):
            run = 0
            for x in range(W):
                run += 1 if grid.get(x, y) != WALKABLE else 0
                table[y + 1][x + 1] = table[y][x + 1] + run
        self._table = table

    def count_xy(self, ax: int, ay: int, bx: int, by: int) -> int:
        """Blocked cells in the inclusive rectangle spanned by (ax, ay) and (bx, by)."""
        x0, x1 = (ax, bx) if ax <= bx else (bx, ax)
        y0, y1 = (ay, by) if ay <= by else (by, ay)
        t = self._table
        return t[y1 + 1][x1 + 1] - t[y0][x1 + 1] - t[y1 + 1][x0] + t[y0][x0]

    def count(self, a: Position, b: Position) -> int:
        return self.count_xy(a.x, a.y, b.x, b.y)

    @staticmethod
    def area(a: Position, b: Position) -> int:
        return (abs(a.x - b.x) + 1) * (abs(a.y - b.y) + 1)
