"""
Turn orchestration: one decision cycle per eligible turn.

IDLE -> PLANNING -> ROUTING -> EXECUTING -> IDLE, strictly in order. Only a
short head of the route is committed; the rest is re-planned next cycle on the
fresh board.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import threading
from typing import Optional, Protocol

from botcore.schemas import BoardSnapshot, BotConfig, CandidateMove, CycleKind, MoveCommand
from botcore.services.consolidation import ConsolidationPlanner
from botcore.services.heuristics import DistanceEstimator, center_of_mass
from botcore.services.pathing import BotError, DegenerateMoveError, ImpossibleTiles, PathPlanner, PathfindingError
from botcore.services.scorer import MoveScorer
from botcore.utils.audit import _dbg, audit_write


class TurnState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    ROUTING = "routing"
    EXECUTING = "executing"
    TERMINATED = "terminated"


class GameFeed(Protocol):
    """The game-session collaborator, updated by its own worker."""

    @property
    def turn(self) -> int: ...

    def snapshot(self) -> BoardSnapshot: ...

    def queue_length(self) -> int: ...

    def attack(self, source: int, target: int, move_half: bool = False) -> None: ...


@dataclass
class CycleResult:
    kind: CycleKind = "none"
    candidate: Optional[CandidateMove] = None
    route: list[int] = field(default_factory=list)
    moves: list[MoveCommand] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)


class TurnOrchestrator:
    """Owns one game's Impossible-Tile Set and runs decision cycles against it."""

    def __init__(self, config: BotConfig | None = None, impossible: ImpossibleTiles | None = None,
                 *, log_id: str | None = None):
        self.config = config or BotConfig()
        self.impossible = impossible if impossible is not None else ImpossibleTiles()
        self.log_id = log_id
        self.state = TurnState.IDLE
        self.done = threading.Event()

    # --- lifecycle ---
    def reset(self) -> None:
        """Game start: forget unreachable targets and accept cycles again."""
        self.impossible.reset()
        self.done.clear()
        self.state = TurnState.IDLE

    def terminate(self) -> None:
        """Session over (won/lost). No move is submitted after this."""
        self.done.set()
        self.state = TurnState.TERMINATED

    def is_terminated(self) -> bool:
        return self.done.is_set()

    # --- guards ---
    def ready(self, feed: GameFeed) -> bool:
        if self.done.is_set():
            self.state = TurnState.TERMINATED
            return False
        # a pending update could leave the board half applied
        if feed.queue_length() > 0:
            return False
        return self.warmed_up(feed.turn)

    def warmed_up(self, turn: int) -> bool:
        """The first turns carry too little army to act on."""
        return turn >= self.config.warmup_turns

    def _log(self, result: CycleResult, msg: str) -> None:
        result.logs.append(msg)
        _dbg(self.log_id, msg)

    def _aborted(self, result: CycleResult) -> bool:
        if self.done.is_set():
            self.state = TurnState.TERMINATED
            self._log(result, "Session ended, abandoning cycle")
            result.moves = []
            return True
        return False

    def _turn_summary(self, snapshot: BoardSnapshot, result: CycleResult) -> None:
        self._log(result, f"Turn: {snapshot.turn} (UI Turn: {snapshot.turn / 2})")
        for s in snapshot.scores:
            name = "Me" if s.index == snapshot.player_index else f"Opponent {s.index}"
            self._log(result, f"{name:>10}: Tiles: {s.tiles}, Army: {s.armies}")
        if snapshot.turn < 10:
            self._log(result, f"My General at: {snapshot.coord_string(snapshot.my_general)}")

    # --- one cycle ---
    def decide(self, snapshot: BoardSnapshot) -> CycleResult:
        """
        Plan, route and cut one cycle's moves for snapshot. Never raises for
        core failures; a failed cycle yields no moves.
        """
        result = CycleResult()
        if self._aborted(result):
            return result
        self._turn_summary(snapshot, result)

        self.state = TurnState.PLANNING
        estimator = DistanceEstimator(snapshot)
        hostile_center = center_of_mass(snapshot)
        planner = PathPlanner(snapshot, self.impossible, self.config, log_id=self.log_id)
        attack = MoveScorer(snapshot, self.impossible, self.config, estimator=estimator,
                            hostile_center=hostile_center, log_id=self.log_id).best_move()
        consolidation = ConsolidationPlanner(snapshot, planner, self.config, estimator=estimator,
                                             hostile_center=hostile_center, log_id=self.log_id)
        regroup = consolidation.plan(attack.score if attack is not None else 0.0)
        if regroup is not None:
            result.kind, result.candidate = "consolidate", regroup
        elif attack is not None:
            result.kind, result.candidate = "attack", attack
        else:
            self._log(result, "No candidate move this cycle")
            self.state = TurnState.IDLE
            return result
        candidate = result.candidate
        self._log(result, f"{result.kind}: {snapshot.coord_string(candidate.source)} -> "
                          f"{snapshot.coord_string(candidate.target)} score {candidate.score:.3f}")
        if self._aborted(result):
            return result

        self.state = TurnState.ROUTING
        try:
            result.route = planner.route(candidate.source, candidate.target, record=result.kind == "attack")
        except PathfindingError as e:
            self._log(result, f"No route {snapshot.coord_string(e.source)} -> {snapshot.coord_string(e.target)}")
            self.state = TurnState.IDLE
            return result
        except DegenerateMoveError as e:
            self._log(result, f"Rejected move: {e}")
            self.state = TurnState.IDLE
            return result
        if self._aborted(result):
            return result

        self.state = TurnState.EXECUTING
        route = result.route
        count = min(len(route) - 1, self.config.max_planned_moves)
        for i in range(count):
            result.moves.append(MoveCommand(source=route[i], target=route[i + 1]))
            self._log(result, f"Move army: {snapshot.coord_string(route[i])} -> {snapshot.coord_string(route[i + 1])}"
                              f"  (Armies: {snapshot.tiles[route[i]].armies} -> {snapshot.tiles[route[i + 1]].armies})")
        audit_write(self.log_id, {
            "type": "cycle",
            "turn": snapshot.turn,
            "kind": result.kind,
            "candidate": candidate.model_dump(),
            "route": route,
        })
        self.state = TurnState.TERMINATED if self.done.is_set() else TurnState.IDLE
        return result

    def tick(self, feed: GameFeed) -> list[MoveCommand]:
        """Guarded cycle against the live feed; returns the commands actually submitted."""
        if not self.ready(feed):
            return []
        try:
            result = self.decide(feed.snapshot())
        except BotError as e:
            # a single bad cycle must not end the session
            _dbg(self.log_id, f"Cycle failed: {e}")
            self.state = TurnState.IDLE
            return []
        submitted: list[MoveCommand] = []
        for move in result.moves:
            if self.done.is_set():
                self.state = TurnState.TERMINATED
                break
            feed.attack(move.source, move.target, move.move_half)
            submitted.append(move)
        return submitted
