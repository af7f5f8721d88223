"""
Attack scoring.

Every (source, target) pair is rated by named factors whose order is the
field order of ScoreBreakdown; the pair with the highest positive total wins.

Most factors only look at the target. Those are summed once per target into
TargetInfo.base, so the pair loop evaluates just the five factors that depend
on the attacking tile.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Optional

from botcore.schemas import BoardSnapshot, BotConfig, CandidateMove, ScoreBreakdown, TILE_EMPTY
from botcore.services.heuristics import DistanceEstimator, center_of_mass, front_vector
from botcore.services.pathing import ImpossibleTiles
from botcore.utils.audit import _dbg


def truncate(val: float, lo: float, hi: float) -> float:
    return min(max(val, lo), hi)


@dataclass
class TargetInfo:
    """Per-target quantities shared by every source."""
    index: int
    x: int
    y: int
    armies: int
    is_enemy: bool
    is_empty: bool
    is_city: bool
    is_general: bool
    dist_from_general: Optional[float]
    centerness: float
    isolation: float
    base: float = 0.0     # sum of the target-only factors
    ceiling: float = 0.0  # no pair on this target can score above this


def _general_threat(t: TargetInfo, c: BotConfig) -> float:
    if not t.is_enemy or t.dist_from_general is None:
        return 0.0
    strength = truncate(t.armies / c.threat_army_scale, 0.0, 1.0)
    return c.general_threat_weight * max(t.dist_from_general, 1.0) ** c.general_threat_exponent * strength


def _hostile(t: TargetInfo, c: BotConfig) -> float:
    return c.hostile_bonus if t.is_enemy else 0.0


def _city(t: TargetInfo, c: BotConfig) -> float:
    if not t.is_city or t.dist_from_general is None:
        return 0.0
    return c.city_weight * max(t.dist_from_general, 1.0) ** c.city_exponent


def _enemy_general(t: TargetInfo, c: BotConfig) -> float:
    return c.enemy_general_bonus if t.is_general and t.is_enemy else 0.0


def _empty(t: TargetInfo, c: BotConfig) -> float:
    return c.empty_bonus if t.is_empty else 0.0


def _centerness(t: TargetInfo, c: BotConfig) -> float:
    return c.centerness_weight * t.centerness


def _isolation(t: TargetInfo, c: BotConfig) -> float:
    return c.isolation_weight * t.isolation


TARGET_FACTORS: list[tuple[str, Callable[[TargetInfo, BotConfig], float]]] = [
    ("general_threat", _general_threat),
    ("hostile", _hostile),
    ("city", _city),
    ("enemy_general", _enemy_general),
    ("empty", _empty),
    ("centerness", _centerness),
    ("isolation", _isolation),
]

# computed by MoveScorer.pair_values, in this order
PAIR_FACTORS = ("outnumber", "outnumbered", "distance", "overextension", "alignment")


def format_breakdown(breakdown: ScoreBreakdown | None) -> list[str]:
    if breakdown is None:
        return []
    return [f"{name:>20}: {value:.3f}" for name, value in breakdown.items()]


class MoveScorer:
    """Rates every legal attack on one snapshot."""

    def __init__(self, snapshot: BoardSnapshot, impossible: ImpossibleTiles, config: BotConfig | None = None,
                 *, estimator: DistanceEstimator | None = None, hostile_center: Optional[int] = None,
                 log_id: str | None = None):
        self.snapshot = snapshot
        self.impossible = impossible
        self.config = config or BotConfig()
        self.estimator = estimator or DistanceEstimator(snapshot)
        self.hostile_center = hostile_center if hostile_center is not None else center_of_mass(snapshot)
        self.log_id = log_id
        front = front_vector(snapshot, snapshot.my_general, self.hostile_center)
        self._front = (front.x, front.y) if front is not None else None
        self._front_norm = front.x * front.x + front.y * front.y if front is not None else 0
        self._targets: dict[int, TargetInfo] = {}

    def sources(self) -> list[int]:
        """Own tiles that can attack without emptying themselves."""
        snap = self.snapshot
        return [i for i, t in enumerate(snap.tiles) if t.faction == snap.player_index and t.armies >= 2]

    def targets(self) -> list[int]:
        """Unclaimed or enemy tiles not known to be unreachable."""
        snap = self.snapshot
        return [
            i for i, t in enumerate(snap.tiles)
            if (t.faction == TILE_EMPTY or snap.is_enemy(t.faction))
            and snap.is_walkable(i)
            and i not in self.impossible
        ]

    def target_info(self, target: int) -> TargetInfo:
        info = self._targets.get(target)
        if info is None:
            info = self._build_target(target)
            self._targets[target] = info
        return info

    def _build_target(self, target: int) -> TargetInfo:
        snap = self.snapshot
        c = self.config
        tile = snap.tiles[target]
        general = snap.my_general
        x, y = self.estimator.coords[target]
        half = max(snap.width, snap.height) / 2
        centerness = 1.0 - self.estimator(snap.center, target) / half

        in_board = 0
        allied = 0
        for ny in range(max(y - 1, 0), min(y + 2, snap.height)):
            for nx in range(max(x - 1, 0), min(x + 2, snap.width)):
                if nx == x and ny == y:
                    continue
                in_board += 1
                if snap.is_ally(snap.tiles[snap.index(ny, nx)].faction):
                    allied += 1
        isolation = 1.0 - allied / in_board if in_board else 0.0

        info = TargetInfo(
            index=target,
            x=x,
            y=y,
            armies=tile.armies,
            is_enemy=snap.is_enemy(tile.faction),
            is_empty=tile.faction == TILE_EMPTY,
            is_city=tile.kind == "city",
            is_general=tile.kind == "general",
            dist_from_general=self.estimator(general, target) if general is not None else None,
            centerness=centerness,
            isolation=isolation,
        )
        info.base = sum(fn(info, c) for _, fn in TARGET_FACTORS)
        # outnumber <= cap, distance <= 0, alignment in [0, 1]
        info.ceiling = (
            info.base
            + (c.outnumber_cap if info.is_enemy else 0.0)
            + max(c.outnumbered_penalty, 0.0)
            + max(c.overextension_penalty, 0.0)
            + max(c.alignment_weight, 0.0)
        )
        return info

    def _alignment(self, sx: int, sy: int, target: TargetInfo) -> float:
        """Projection of the move onto the own-general -> enemy-mass vector, as a fraction of it."""
        if self._front is None or self._front_norm == 0:
            return 0.0
        fx, fy = self._front
        dot = (target.x - sx) * fx + (target.y - sy) * fy
        return truncate(dot / self._front_norm, 0.0, 1.0)

    def _vetoed(self, source_armies: int, target: TargetInfo) -> bool:
        # A failed neutral-city siege donates the whole stack for nothing
        return target.is_city and target.is_empty and source_armies <= target.armies + self.config.city_safety_margin

    def pair_values(self, source: int, armies: int, target: TargetInfo) -> tuple[float, float, float, float, float]:
        """The PAIR_FACTORS values of one attack."""
        c = self.config
        sx, sy = self.estimator.coords[source]
        margin = armies - target.armies
        dist = self.estimator(source, target.index)
        return (
            truncate(margin / c.outnumber_scale, 0.0, c.outnumber_cap) if target.is_enemy else 0.0,
            c.outnumbered_penalty if margin <= c.safety_margin else 0.0,
            truncate(c.distance_weight * dist / c.distance_scale, c.distance_floor, 0.0),
            c.overextension_penalty if armies < int(dist) else 0.0,
            c.alignment_weight * self._alignment(sx, sy, target),
        )

    def breakdown(self, source: int, target: int) -> ScoreBreakdown:
        info = self.target_info(target)
        values = {name: fn(info, self.config) for name, fn in TARGET_FACTORS}
        values.update(zip(PAIR_FACTORS, self.pair_values(source, self.snapshot.tiles[source].armies, info)))
        return ScoreBreakdown(**values)

    def best_move(self) -> Optional[CandidateMove]:
        best_total = 0.0
        best: tuple[int, int] | None = None
        infos = [self.target_info(t) for t in self.targets()]
        tiles = self.snapshot.tiles
        for source in self.sources():
            armies = tiles[source].armies
            for info in infos:
                if info.ceiling <= best_total or self._vetoed(armies, info):
                    continue
                total = info.base + sum(self.pair_values(source, armies, info))
                if total > best_total:
                    best_total = total
                    best = (source, info.index)
        if best is None:
            _dbg(self.log_id, "Attack score: none")
            return None
        source, target = best
        breakdown = self.breakdown(source, target)
        for line in format_breakdown(breakdown):
            _dbg(self.log_id, line)
        _dbg(self.log_id, f"Attack score: {best_total:.2f}")
        _dbg(self.log_id, f"From:{self.snapshot.coord_string(source)} To:{self.snapshot.coord_string(target)}")
        return CandidateMove(source=source, target=target, score=best_total, breakdown=breakdown)


def best_move(snapshot: BoardSnapshot, impossible: ImpossibleTiles, config: BotConfig | None = None) -> Optional[CandidateMove]:
    return MoveScorer(snapshot, impossible, config).best_move()
