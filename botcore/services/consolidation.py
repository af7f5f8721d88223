"""
Consolidation: instead of attacking, walk a smaller own stack onto the largest one.

Armies regrow on a fixed cycle, so regrouping pays most right after the
regrowth tick and is worth nothing by mid-cycle.
"""

from __future__ import annotations
from typing import Optional, Sequence

from botcore.schemas import BoardSnapshot, BotConfig, CandidateMove
from botcore.services.heuristics import DistanceEstimator
from botcore.services.pathing import PathPlanner
from botcore.utils.audit import _dbg


def gini_coefficient(nums: Sequence[int]) -> float:
    """Gini coefficient via the sorted-rank formula; 0.0 for empty or all-zero input."""
    values = sorted(nums)
    n = len(values)
    total = sum(values)
    if n == 0 or total == 0:
        return 0.0
    numer = 2 * sum((i + 1) * v for i, v in enumerate(values))
    return numer / (n * total) - (n + 1) / n


def army_cycle(turn: int, cycle_turns: int) -> float:
    """Fraction [0, 1) of the regrowth cycle that has passed."""
    return (turn % cycle_turns) / cycle_turns


def cycle_score(turn: int, config: BotConfig) -> float:
    return config.consolidation_weight * (1.0 - army_cycle(turn, config.army_cycle_turns)) ** config.consolidation_exponent


def inequality_score(snapshot: BoardSnapshot, config: BotConfig) -> tuple[float, float]:
    """(score, gini): positive while own armies are spread evenly, scaled by total army size."""
    movable = [t.armies - 1 for t in snapshot.tiles if t.faction == snapshot.player_index]
    gini = gini_coefficient(movable)
    total = next((s.armies for s in snapshot.scores if s.index == snapshot.player_index), None)
    if total is None:
        total = sum(t.armies for t in snapshot.tiles if t.faction == snapshot.player_index)
    scale = min(max(total / config.gini_army_scale, 0.5), 2.0)
    return (config.gini_offset - gini) * scale, gini


class ConsolidationPlanner:
    def __init__(self, snapshot: BoardSnapshot, planner: PathPlanner, config: BotConfig | None = None,
                 *, estimator: DistanceEstimator | None = None, hostile_center: Optional[int] = None,
                 log_id: str | None = None):
        self.snapshot = snapshot
        self.planner = planner
        self.config = config or BotConfig()
        self.estimator = estimator or DistanceEstimator(snapshot)
        self.hostile_center = hostile_center
        self.log_id = log_id

    def score(self) -> float:
        by_inequality, gini = inequality_score(self.snapshot, self.config)
        _dbg(self.log_id, f"Gini coefficient: {gini:.2f}")
        if self.config.consolidation_trigger == "inequality":
            score = by_inequality
        else:
            score = cycle_score(self.snapshot.turn, self.config)
        _dbg(self.log_id, f"Consolidation score: {score:.2f}")
        return score

    def ranked_tiles(self) -> list[int]:
        """Own tiles, largest army first; equal armies keep board order."""
        snap = self.snapshot
        return sorted(snap.owned_tiles(), key=lambda i: -snap.tiles[i].armies)

    def plan(self, attack_score: float) -> Optional[CandidateMove]:
        """A consolidation move that beats attack_score, or None."""
        score = self.score()
        tiles = self.ranked_tiles()
        if len(tiles) <= self.config.consolidation_min_tiles or score <= attack_score:
            return None
        snap = self.snapshot
        largest = tiles[0]
        for tile in tiles[:5]:
            _dbg(self.log_id, f"Army ranked: {snap.tiles[tile].armies}")

        best_source: Optional[int] = None
        highest = 0.0
        for source in tiles[1:]:
            if snap.tiles[source].armies < 2:
                continue
            path = self.planner.find_route(source, largest)
            if not path:
                continue
            armies = sum(snap.tiles[i].armies for i in path[:-1])
            average = armies / (len(path) - 1)
            if average > highest:
                highest = average
                best_source = source
        if best_source is None:
            return None

        source, target = best_source, largest
        # the merged stack must end up nearer the enemy mass, never farther
        if self.hostile_center is not None:
            if self.estimator(target, self.hostile_center) > self.estimator(source, self.hostile_center):
                source, target = target, source
        _dbg(self.log_id, f"Consolidating, with average army: {highest:.2f}")
        return CandidateMove(source=source, target=target, score=score)
