import uuid
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict

from botcore.schemas import (
    BotConfig,
    PlanRequest,
    PlanResponse,
    SessionCreateRequest,
    SessionCreateResponse,
)
from botcore.services.orchestrator import TurnOrchestrator
from botcore.utils.audit import _dbg, forget


@dataclass
class BotSession:
    session_id: str
    orchestrator: TurnOrchestrator
    lock: Lock = field(default_factory=Lock, repr=False)


class BotSessionStore:
    """Independent games in one process; each session owns its Impossible-Tile Set."""

    def __init__(self) -> None:
        self._sessions: Dict[str, BotSession] = {}
        self._lock = Lock()

    def create(self, req: SessionCreateRequest) -> SessionCreateResponse:
        sid = str(uuid.uuid4())
        config = req.config or BotConfig()
        orch = TurnOrchestrator(config, log_id=req.log_id)
        with self._lock:
            self._sessions[sid] = BotSession(session_id=sid, orchestrator=orch)
        _dbg(req.log_id, f"session {sid} created")
        return SessionCreateResponse(session_id=sid, config=config)

    def get(self, session_id: str) -> BotSession:
        with self._lock:
            return self._sessions[session_id]

    def plan(self, session_id: str, req: PlanRequest) -> PlanResponse:
        s = self.get(session_id)
        snapshot = req.snapshot
        with s.lock:
            orch = s.orchestrator
            if not orch.warmed_up(snapshot.turn):
                return PlanResponse(
                    session_id=session_id,
                    turn=snapshot.turn,
                    impossible_tiles=list(orch.impossible),
                    logs=[f"Waiting for turn {orch.config.warmup_turns}"],
                )
            result = orch.decide(snapshot)
            return PlanResponse(
                session_id=session_id,
                turn=snapshot.turn,
                kind=result.kind,
                moves=result.moves,
                candidate=result.candidate,
                impossible_tiles=list(orch.impossible),
                logs=result.logs,
            )

    def reset(self, session_id: str) -> None:
        s = self.get(session_id)
        with s.lock:
            s.orchestrator.reset()

    def delete(self, session_id: str) -> None:
        with self._lock:
            s = self._sessions.pop(session_id)
        s.orchestrator.terminate()
        forget(s.orchestrator.log_id)


store = BotSessionStore()
