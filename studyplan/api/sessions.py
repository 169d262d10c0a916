"""
Session API endpoints.

Status classification and the done/skip lifecycle.
"""

from fastapi import APIRouter, HTTPException, status

from studyplan.api.schemas import SessionActionRequest, SessionStatusRequest, SessionStatusResponse
from studyplan.core.exceptions import NotFoundError
from studyplan.models import SessionUpdateResult
from studyplan.services import classify_session_status
from studyplan.services.session_lifecycle import (
    mark_session_done,
    skip_session,
    undo_session_done,
    unskip_session,
)

router = APIRouter()


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=str(e),
    )


@router.post("/status", response_model=SessionStatusResponse)
async def session_status(payload: SessionStatusRequest):
    return SessionStatusResponse(
        status=classify_session_status(payload.session, payload.plan_date, payload.now)
    )


@router.post("/complete", response_model=SessionUpdateResult)
async def complete_session(payload: SessionActionRequest):
    try:
        return mark_session_done(
            payload.plans,
            payload.tasks,
            payload.plan_date,
            payload.task_id,
            payload.session_number,
            actual_hours=payload.actual_hours,
            now=payload.now,
        )
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/undo", response_model=SessionUpdateResult)
async def undo_session(payload: SessionActionRequest):
    try:
        return undo_session_done(
            payload.plans, payload.tasks, payload.plan_date, payload.task_id, payload.session_number
        )
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/skip", response_model=SessionUpdateResult)
async def skip(payload: SessionActionRequest):
    try:
        return skip_session(
            payload.plans,
            payload.tasks,
            payload.plan_date,
            payload.task_id,
            payload.session_number,
            now=payload.now,
        )
    except NotFoundError as e:
        raise _not_found(e)


@router.post("/unskip", response_model=SessionUpdateResult)
async def unskip(payload: SessionActionRequest):
    try:
        return unskip_session(
            payload.plans, payload.tasks, payload.plan_date, payload.task_id, payload.session_number
        )
    except NotFoundError as e:
        raise _not_found(e)
