"""
Learning Record Routes

Endpoints for viewing-session ingestion, lookup, summary, and export.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse

from learnlytics.api.deps import get_session_filter, get_session_store
from learnlytics.core.config import settings
from learnlytics.schemas.query import ExportRow, SessionFilter, SessionSummary
from learnlytics.schemas.scoring import SessionAssessment
from learnlytics.schemas.session import SessionCreate, SessionRecord, SessionUpdate
from learnlytics.services import query_service, scoring_service, session_service
from learnlytics.services.session_store import SessionStore


router = APIRouter(prefix="/learning-records", tags=["Learning Records"])


@router.post(
    "",
    response_model=SessionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create a learning record",
)
async def create_learning_record(
    data: SessionCreate,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionRecord:
    """
    Record a new viewing session.
    
    Both the watch ID and the role-scoped ID must pass validation (400).
    A reused watch ID is rejected with 409.
    """
    return await session_service.create_session(data, store)


@router.get(
    "",
    response_model=list[SessionRecord],
    summary="List learning records",
)
async def list_learning_records(
    filters: Annotated[SessionFilter, Depends(get_session_filter)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> list[SessionRecord]:
    """All sessions matching the query filters (AND-combined)."""
    return await session_service.list_sessions_filtered(filters, store)


@router.get(
    "/export",
    response_model=list[ExportRow],
    summary="Export learning records",
)
async def export_learning_records(
    filters: Annotated[SessionFilter, Depends(get_session_filter)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> list[ExportRow]:
    """One flattened row per matching session."""
    return await query_service.export(filters, store)


@router.get(
    "/export.csv",
    response_class=PlainTextResponse,
    summary="Export learning records as CSV",
)
async def export_learning_records_csv(
    filters: Annotated[SessionFilter, Depends(get_session_filter)],
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> PlainTextResponse:
    rows = await query_service.export(filters, store)
    return PlainTextResponse(
        query_service.export_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=learning-records.csv"},
    )


@router.get(
    "/analytics/summary",
    response_model=SessionSummary,
    summary="Summarize learning records",
)
async def summarize_learning_records(
    filters: Annotated[SessionFilter, Depends(get_session_filter)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    timeframe: str = Query(settings.DEFAULT_SUMMARY_TIMEFRAME, description="7d, 30d, 90d or 1y"),
) -> SessionSummary:
    """
    Summary statistics over the sessions matching the query filters.
    
    Without date_from or date_to the trailing timeframe applies.
    """
    filters = query_service.timeframe_filter(timeframe, filters)
    return await query_service.summarize(filters, store)


@router.get(
    "/user/{user_id}",
    response_model=list[SessionRecord],
    summary="List a learner's records",
)
async def list_user_records(
    user_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
    role_id: Optional[str] = None,
) -> list[SessionRecord]:
    return await session_service.list_sessions_by_user(user_id, store, user_role_id=role_id)


@router.get(
    "/video/{video_id}",
    response_model=list[SessionRecord],
    summary="List a video's records",
)
async def list_video_records(
    video_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> list[SessionRecord]:
    return await session_service.list_sessions_by_video(video_id, store)


@router.get(
    "/{session_id}",
    response_model=SessionRecord,
    summary="Get a learning record",
)
async def get_learning_record(
    session_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionRecord:
    return await session_service.get_session(session_id, store)


@router.put(
    "/{session_id}",
    response_model=SessionRecord,
    summary="Update a learning record",
)
async def update_learning_record(
    session_id: str,
    data: SessionUpdate,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionRecord:
    """
    Partially update a session (heartbeat).
    
    Only fields present in the body are changed. Once the session has an
    end time, only engagement score, skill level and learning path can
    change (409 otherwise).
    """
    return await session_service.update_session(session_id, data, store)


@router.get(
    "/{session_id}/assessment",
    response_model=SessionAssessment,
    summary="Score a learning record",
)
async def assess_learning_record(
    session_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> SessionAssessment:
    """Skill scores and proficiency band for one session."""
    session = await session_service.get_session(session_id, store)
    return scoring_service.assess_session(session)
