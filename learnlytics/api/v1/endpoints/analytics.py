"""
Analytics Routes

Endpoints for per-video and per-learner aggregates.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from learnlytics.api.deps import get_session_store
from learnlytics.schemas.analytics import UserAnalyticsRecord, VideoPerformanceRecord
from learnlytics.services import aggregation_service
from learnlytics.services.session_store import SessionStore


router = APIRouter(tags=["Analytics"])


@router.get(
    "/video-performance/{video_id}",
    response_model=VideoPerformanceRecord,
    summary="Get video performance",
)
async def get_video_performance(
    video_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> VideoPerformanceRecord:
    return await aggregation_service.get_video_aggregate(video_id, store)


@router.post(
    "/video-performance/{video_id}/recompute",
    response_model=VideoPerformanceRecord,
    summary="Recompute video performance",
)
async def recompute_video_performance(
    video_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> VideoPerformanceRecord:
    """Rebuild the aggregate from every session of the video (404 if none)."""
    return await aggregation_service.recompute_video_aggregate(video_id, store)


@router.get(
    "/user-analytics/{user_id}",
    response_model=UserAnalyticsRecord,
    summary="Get learner analytics",
)
async def get_user_analytics(
    user_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> UserAnalyticsRecord:
    return await aggregation_service.get_user_aggregate(user_id, store)


@router.post(
    "/user-analytics/{user_id}/recompute",
    response_model=UserAnalyticsRecord,
    summary="Recompute learner analytics",
)
async def recompute_user_analytics(
    user_id: str,
    store: Annotated[SessionStore, Depends(get_session_store)],
) -> UserAnalyticsRecord:
    """Rebuild the learner's aggregate from their full history (404 if none)."""
    return await aggregation_service.recompute_user_aggregate(user_id, store)


@router.get(
    "/popular-content",
    response_model=list[VideoPerformanceRecord],
    summary="Most viewed videos",
)
async def popular_content(
    store: Annotated[SessionStore, Depends(get_session_store)],
    limit: int = Query(10, ge=1, le=100),
) -> list[VideoPerformanceRecord]:
    return await aggregation_service.get_popular_videos(limit, store)
