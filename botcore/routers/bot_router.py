from fastapi import APIRouter, HTTPException

from botcore.schemas import (
    PlanRequest,
    PlanResponse,
    SessionCreateRequest,
    SessionCreateResponse,
)
from botcore.services.session import store


router = APIRouter()


@router.post("/sessions", response_model=SessionCreateResponse)
def create_session(req: SessionCreateRequest) -> SessionCreateResponse:
    return store.create(req)


@router.post("/sessions/{session_id}/plan", response_model=PlanResponse)
def plan_cycle(session_id: str, req: PlanRequest) -> PlanResponse:
    try:
        return store.plan(session_id, req)
    except KeyError:
        raise HTTPException(status_code=404, detail="session not found")


@router.post("/sessions/{session_id}/reset")
def reset_session(session_id: str) -> dict:
    try:
        store.reset(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="session not found")
    return {"status": "ok"}


@router.delete("/sessions/{session_id}")
def delete_session(session_id: str) -> dict:
    try:
        store.delete(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="session not found")
    return {"status": "ok"}
