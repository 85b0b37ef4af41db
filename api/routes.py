"""FastAPI routes for interview session control and feedback."""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from api.schemas import (
    AnswerReq,
    AnswerResp,
    EndResp,
    RoleInfo,
    SessionList,
    SessionReq,
    StartReq,
    StartResp,
)
from flow_manager.agents import EvaluationOutput
from flow_manager.coordinator import Coordinator, build_coordinator
from flow_manager.errors import InterviewError, InvariantViolation, NoResponses, SessionNotFound
from flow_manager.models import ENGINEERING_ROLES, InterviewState, Role


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/interview")
feedback_router = APIRouter(prefix="/api/feedback")

_COORDINATOR: Optional[Coordinator] = None
_COORDINATOR_GUARD = threading.Lock()


def get_coordinator() -> Coordinator:
    global _COORDINATOR
    with _COORDINATOR_GUARD:
        if _COORDINATOR is None:
            _COORDINATOR = build_coordinator()
    return _COORDINATOR


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, SessionNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, NoResponses):
        return HTTPException(status_code=400, detail="Answer at least one question before requesting feedback.")
    if isinstance(exc, InvariantViolation):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=400, detail=str(exc))
    logger.exception("Unhandled interview error", exc_info=exc)
    return HTTPException(status_code=500, detail="Unable to process interview request")


@router.post("/start", response_model=StartResp)
def start(req: StartReq, coordinator: Coordinator = Depends(get_coordinator)) -> StartResp:
    started = coordinator.start_session(req.role, req.seniority, req.interaction_mode)
    return StartResp(
        session_id=started.session_id,
        role=started.role,
        seniority=started.seniority,
        message=started.message,
        phase=started.phase,
    )


@router.post("/next", response_model=AnswerResp)
@router.post("/respond", response_model=AnswerResp)
def next_turn(req: AnswerReq, coordinator: Coordinator = Depends(get_coordinator)) -> AnswerResp:
    try:
        result = coordinator.submit_answer(req.session_id, req.message)
    except (InterviewError, ValueError) as exc:
        raise _http_error(exc) from exc
    return AnswerResp(
        session_id=result.session_id,
        message=result.message,
        phase=result.phase,
        question_count=result.question_count,
        should_end=result.should_end,
        analytics=result.analytics,
    )


@router.get("/sessions", response_model=SessionList)
def list_sessions(coordinator: Coordinator = Depends(get_coordinator)) -> SessionList:
    ids = coordinator.session_ids()
    return SessionList(count=len(ids), session_ids=ids)


@router.get("/session/{session_id}", response_model=InterviewState)
def fetch_session(session_id: str, coordinator: Coordinator = Depends(get_coordinator)) -> InterviewState:
    try:
        return coordinator.get_session(session_id)
    except InterviewError as exc:
        raise _http_error(exc) from exc


@router.post("/end", response_model=EndResp)
def end(req: SessionReq, coordinator: Coordinator = Depends(get_coordinator)) -> EndResp:
    try:
        state = coordinator.end_session(req.session_id)
    except InterviewError as exc:
        raise _http_error(exc) from exc
    return EndResp(
        session_id=state.session_id,
        phase=state.phase,
        question_count=state.question_count,
        end_time=state.end_time,
    )


@router.delete("/session/{session_id}", status_code=204)
def abort(session_id: str, coordinator: Coordinator = Depends(get_coordinator)) -> Response:
    try:
        coordinator.abort_session(session_id)
    except InterviewError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=204)


@feedback_router.post("/generate", response_model=EvaluationOutput, response_model_by_alias=True)
def generate_feedback(req: SessionReq, coordinator: Coordinator = Depends(get_coordinator)) -> EvaluationOutput:
    try:
        return coordinator.generate_evaluation(req.session_id)
    except InterviewError as exc:
        raise _http_error(exc) from exc


@feedback_router.get("/roles", response_model=List[RoleInfo])
def available_roles() -> List[RoleInfo]:
    return [RoleInfo(value=role, label=role.label, engineering=role in ENGINEERING_ROLES) for role in Role]


__all__ = ["feedback_router", "get_coordinator", "router"]
