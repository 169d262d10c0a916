"""
Commitment API endpoints.
"""

from fastapi import APIRouter, HTTPException, status

from studyplan.api.schemas import CommitmentAddRequest, CommitmentCheckRequest
from studyplan.models import CommitmentChange, CommitmentConflictResult
from studyplan.services import check_commitment_conflicts
from studyplan.services.commitment_service import add_commitment

router = APIRouter()


@router.post("/conflicts", response_model=CommitmentConflictResult)
async def check_conflicts(payload: CommitmentCheckRequest):
    return check_commitment_conflicts(payload.candidate, payload.existing, payload.exclude_id)


@router.post("/add", response_model=CommitmentChange)
async def add(payload: CommitmentAddRequest):
    change = add_commitment(payload.commitment, payload.existing)
    if not change.applied:
        existing = change.conflict.conflicting_commitment
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Commitment overlaps '{existing.title if existing else 'an existing commitment'}'",
        )
    return change
