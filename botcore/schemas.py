from typing import Dict, Iterator, List, Literal, Optional
from pydantic import BaseModel, Field, model_validator

# Faction sentinels (player factions are >= 0)
TILE_EMPTY = -1
TILE_MOUNTAIN = -2
TILE_FOG = -3
TILE_FOG_OBSTACLE = -4

NO_GENERAL = -1

# Turn loop timing (seconds)
POLL_INTERVAL = 0.1
START_DELAY = 1.0

TileKind = Literal["plain", "city", "general", "obstacle"]


class Position(BaseModel, frozen=True):
    """Grid coordinate: x is the column, y is the row."""

    x: int
    y: int

    def __hash__(self):
        return hash((self.x, self.y))

    def __eq__(self, other):
        if isinstance(other, Position):
            return self.x == other.x and self.y == other.y
        return False

    def in_bounds(self, w: int, h: int) -> bool:
        return 0 <= self.x < w and 0 <= self.y < h

    def manhattan_distance(self, other: 'Position') -> int:
        if not isinstance(other, Position):
            raise TypeError("Other must be a Position")
        return abs(self.x - other.x) + abs(self.y - other.y)

    def offset_neighbors(self) -> Iterator['Position']:
        """4-connected neighbours, unbounded."""
        for dx, dy in ((0, -1), (+1, 0), (0, +1), (-1, 0)):
            yield Position(x=self.x + dx, y=self.y + dy)


class Tile(BaseModel, frozen=True):
    faction: int = TILE_EMPTY
    armies: int = Field(default=0, ge=0)
    kind: TileKind = "plain"


class Score(BaseModel, frozen=True):
    index: int
    tiles: int = 0
    armies: int = 0


class BoardSnapshot(BaseModel, frozen=True):
    """One turn's view of the board, row-major.

    Replaced wholesale by the feed every tick; the core only reads it.
    """

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    player_index: int = Field(ge=0)
    turn: int = 0
    tiles: List[Tile]
    generals: Dict[int, int] = {}
    scores: List[Score] = []
    teams: Dict[int, int] = {}

    @model_validator(mode="after")
    def _check_shape(self) -> 'BoardSnapshot':
        if len(self.tiles) != self.width * self.height:
            raise ValueError(f"expected {self.width * self.height} tiles, got {len(self.tiles)}")
        for faction, idx in self.generals.items():
            if idx != NO_GENERAL and not 0 <= idx < len(self.tiles):
                raise ValueError(f"general of faction {faction} out of bounds: {idx}")
        return self

    @property
    def size(self) -> int:
        return self.width * self.height

    def index(self, row: int, col: int) -> int:
        return row * self.width + col

    def row(self, i: int) -> int:
        return i // self.width

    def col(self, i: int) -> int:
        return i % self.width

    def position(self, i: int) -> Position:
        return Position(x=i % self.width, y=i // self.width)

    def index_of(self, pos: Position) -> int:
        return pos.y * self.width + pos.x

    def coord_string(self, i: int | None) -> str:
        if i is None or not 0 <= i < self.size:
            return "(?)"
        return f"({self.row(i)},{self.col(i)})"

    def neighbors(self, i: int) -> list[int]:
        return [self.index_of(p) for p in self.position(i).offset_neighbors() if p.in_bounds(self.width, self.height)]

    def is_walkable(self, i: int) -> bool:
        tile = self.tiles[i]
        return tile.kind != "obstacle" and tile.faction not in (TILE_MOUNTAIN, TILE_FOG_OBSTACLE)

    def team_of(self, faction: int) -> int:
        return self.teams.get(faction, faction)

    def is_ally(self, faction: int) -> bool:
        return faction >= 0 and self.team_of(faction) == self.team_of(self.player_index)

    def is_enemy(self, faction: int) -> bool:
        return faction >= 0 and not self.is_ally(faction)

    @property
    def my_general(self) -> Optional[int]:
        idx = self.generals.get(self.player_index, NO_GENERAL)
        return idx if idx != NO_GENERAL else None

    @property
    def center(self) -> int:
        return self.index(self.height // 2, self.width // 2)

    def owned_tiles(self) -> list[int]:
        return [i for i, t in enumerate(self.tiles) if t.faction == self.player_index]


class BotConfig(BaseModel):
    """Tunable weights and thresholds. Defaults are the tuned values of the live bot."""

    # turn loop
    max_planned_moves: int = Field(default=6, ge=1)
    warmup_turns: int = Field(default=30, ge=0)
    army_cycle_turns: int = Field(default=50, gt=0)

    # move scorer
    outnumber_scale: float = 200.0
    outnumber_cap: float = 0.3
    outnumbered_penalty: float = -0.2
    safety_margin: int = 1
    general_threat_weight: float = 0.2
    general_threat_exponent: float = -0.7
    threat_army_scale: float = 10.0
    distance_weight: float = -0.5
    distance_scale: float = 30.0
    distance_floor: float = -0.3
    overextension_penalty: float = -0.2
    hostile_bonus: float = 0.05
    city_weight: float = 0.15
    city_exponent: float = -0.5
    enemy_general_bonus: float = 0.15
    empty_bonus: float = 0.08
    centerness_weight: float = 0.03
    alignment_weight: float = 0.1
    isolation_weight: float = 0.05
    city_safety_margin: int = 2

    # consolidation
    consolidation_trigger: Literal["cycle", "inequality"] = "cycle"
    consolidation_weight: float = 0.35
    consolidation_exponent: float = 6.0
    consolidation_min_tiles: int = 10
    gini_offset: float = 0.65
    gini_army_scale: float = 500.0

    # path planner
    avoid_foreign_cities: bool = True


class ScoreBreakdown(BaseModel):
    """Named scoring factors in evaluation order."""

    outnumber: float = 0.0
    outnumbered: float = 0.0
    general_threat: float = 0.0
    distance: float = 0.0
    overextension: float = 0.0
    hostile: float = 0.0
    city: float = 0.0
    enemy_general: float = 0.0
    empty: float = 0.0
    centerness: float = 0.0
    alignment: float = 0.0
    isolation: float = 0.0

    @property
    def total(self) -> float:
        return sum(v for _, v in self.items())

    def items(self) -> Iterator[tuple[str, float]]:
        for name in type(self).model_fields:
            yield name, getattr(self, name)


class CandidateMove(BaseModel):
    source: int
    target: int
    score: float
    breakdown: Optional[ScoreBreakdown] = None


class MoveCommand(BaseModel, frozen=True):
    source: int
    target: int
    move_half: bool = False


# === HTTP surface ===
CycleKind = Literal["attack", "consolidate", "none"]


class SessionCreateRequest(BaseModel):
    config: Optional[BotConfig] = None
    log_id: Optional[str] = None


class SessionCreateResponse(BaseModel):
    session_id: str
    config: BotConfig


class PlanRequest(BaseModel):
    snapshot: BoardSnapshot


class PlanResponse(BaseModel):
    session_id: str
    turn: int
    kind: CycleKind = "none"
    moves: List[MoveCommand] = []
    candidate: Optional[CandidateMove] = None
    impossible_tiles: List[int] = []
    logs: List[str] = []
