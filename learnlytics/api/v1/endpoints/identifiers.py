"""
Identifier Routes

Endpoints issuing watch IDs and role-scoped IDs to players.
"""

from fastapi import APIRouter

from learnlytics.schemas.identifiers import (
    BatchIdsRequest,
    BatchIdsResponse,
    GenerateIdsRequest,
    LearningRecordIds,
)
from learnlytics.services import id_service


router = APIRouter(prefix="/learning-records", tags=["Identifiers"])


@router.post(
    "/generate-ids",
    response_model=LearningRecordIds,
    summary="Generate session identifiers",
)
async def generate_ids(data: GenerateIdsRequest) -> LearningRecordIds:
    """
    Issue a fresh watch ID and the learner's role-scoped ID.
    
    Called by the player before it creates a learning record.
    Unknown roles are rejected with 400.
    """
    return id_service.generate_learning_record_ids(data.user_id, data.role)


@router.post(
    "/ids/batch",
    response_model=BatchIdsResponse,
    summary="Generate identifiers in bulk",
)
async def generate_batch(data: BatchIdsRequest) -> BatchIdsResponse:
    """Generate `count` distinct identifiers of one family."""
    return BatchIdsResponse(
        family=data.family,
        ids=id_service.generate_batch(data.count, data.family),
    )
