"""
Aggregation Service

Rebuilds the per-video performance aggregate and the per-learner
analytics aggregate from the entity's full session history.

Aggregates hold nothing that cannot be recomputed from sessions. Each
recomputation reads every session of the entity and replaces the stored
row wholesale. Recomputations of the same entity are serialized through
a per-key lock, so the read and the replace of one call never interleave
with another call for that entity.
"""

import logging
import statistics
from datetime import datetime
from typing import Optional, Sequence

from learnlytics.core.exceptions import EmptyAggregationError, NotFoundError
from learnlytics.core.locks import aggregate_locks
from learnlytics.models.enums import EngagementTrend
from learnlytics.schemas.analytics import (
    LearningTrends,
    SkillProgressPoint,
    UserAnalyticsRecord,
    VideoPerformanceRecord,
)
from learnlytics.schemas.query import SessionFilter
from learnlytics.schemas.session import SessionRecord, utc_now
from learnlytics.services.scoring_service import clamp, proficiency_level, score_session
from learnlytics.services.session_store import SessionStore


logger = logging.getLogger(__name__)

# Watch time earning full engagement credit (10 minutes)
WATCH_TIME_NORMALIZER_SECONDS = 600.0

# Engagement difference (points) below which a trend is "stable"
ENGAGEMENT_TREND_DEAD_BAND = 5.0


def safe_mean(total: float, count: int) -> float:
    """Mean that is 0 for an empty set."""
    return total / count if count else 0.0


def percentage(part: int, whole: int) -> float:
    """Percentage that is 0 for an empty whole."""
    return part / whole * 100.0 if whole else 0.0


def video_engagement_score(
    completion_rate: float,
    average_watch_time: float,
    average_pause_count: float,
    replay_rate: float,
) -> float:
    """
    Engagement of a video across all its sessions, clamped to [0, 100].
    
    40% of the completion rate, up to 30 points for watch time
    (full credit at 600 s), 20 points minus 2 per average pause
    (floored at 0), and 10% of the replay rate.
    """
    score = (
        0.4 * completion_rate
        + 30.0 * min(average_watch_time / WATCH_TIME_NORMALIZER_SECONDS, 1.0)
        + max(0.0, 20.0 - 2.0 * average_pause_count)
        + 0.1 * replay_rate
    )
    return clamp(score)


# ============== Video Aggregate ==============

def compute_video_performance(
    video_id: str,
    sessions: Sequence[SessionRecord],
    now: Optional[datetime] = None,
) -> VideoPerformanceRecord:
    """
    Derive a video's performance aggregate from its sessions.
    
    Args:
        video_id: Video being summarized.
        sessions: Every session of that video.
        now: Timestamp recorded as last_updated.
        
    Returns:
        VideoPerformanceRecord: The full aggregate.
        
    Raises:
        EmptyAggregationError: If there are no sessions.
    """
    total_views = len(sessions)
    if total_views == 0:
        raise EmptyAggregationError(f"No sessions recorded for video {video_id}")

    average_watch_time = safe_mean(sum(s.watch_duration for s in sessions), total_views)
    completion_rate = percentage(sum(1 for s in sessions if s.is_completed), total_views)
    average_pause_count = safe_mean(sum(s.pause_count for s in sessions), total_views)
    average_seek_count = safe_mean(sum(s.seek_count for s in sessions), total_views)
    replay_rate = percentage(sum(1 for s in sessions if s.replay_count > 0), total_views)

    return VideoPerformanceRecord(
        video_id=video_id,
        total_views=total_views,
        unique_viewers=len({s.user_id for s in sessions}),
        average_watch_time=average_watch_time,
        completion_rate=completion_rate,
        average_pause_count=average_pause_count,
        average_seek_count=average_seek_count,
        replay_rate=replay_rate,
        engagement_score=video_engagement_score(
            completion_rate, average_watch_time, average_pause_count, replay_rate
        ),
        last_updated=now or utc_now(),
    )


async def recompute_video_aggregate(video_id: str, store: SessionStore) -> VideoPerformanceRecord:
    """
    Rebuild and store a video's performance aggregate.
    
    Raises:
        EmptyAggregationError: If the video has no sessions; the stored
            aggregate is left untouched.
    """
    async with aggregate_locks.hold(f"video:{video_id}"):
        sessions = await store.list_sessions(SessionFilter(video_id=video_id))
        if not sessions:
            logger.warning(f"Skipping aggregate for video {video_id}: no sessions")
            raise EmptyAggregationError(f"No sessions recorded for video {video_id}")

        record = compute_video_performance(video_id, sessions)
        await store.replace_video_aggregate(record)

    logger.info(
        f"Recomputed video {video_id}: {record.total_views} views, "
        f"engagement {record.engagement_score:.1f}"
    )
    return record


async def get_video_aggregate(video_id: str, store: SessionStore) -> VideoPerformanceRecord:
    """
    Raises:
        NotFoundError: If no aggregate has been computed for the video.
    """
    record = await store.get_video_aggregate(video_id)
    if record is None:
        raise NotFoundError(f"No performance data for video {video_id}")
    return record


async def get_popular_videos(limit: int, store: SessionStore) -> list[VideoPerformanceRecord]:
    """Most viewed videos, ties broken by engagement."""
    return await store.list_video_aggregates(limit)


# ============== User Aggregate ==============

def _engagement_trend(sessions: Sequence[SessionRecord]) -> EngagementTrend:
    if len(sessions) < 2:
        return EngagementTrend.STABLE
    values = [s.engagement_score or 0.0 for s in sessions]
    half = len(values) // 2
    delta = statistics.fmean(values[half:]) - statistics.fmean(values[:half])
    if delta > ENGAGEMENT_TREND_DEAD_BAND:
        return EngagementTrend.IMPROVING
    if delta < -ENGAGEMENT_TREND_DEAD_BAND:
        return EngagementTrend.DECLINING
    return EngagementTrend.STABLE


def compute_user_analytics(
    user_id: str,
    sessions: Sequence[SessionRecord],
    now: Optional[datetime] = None,
) -> UserAnalyticsRecord:
    """
    Derive a learner's analytics aggregate from their sessions.
    
    Sessions are read in start-time order; the progression marks a
    milestone at the first point and wherever the proficiency band
    changes.
    
    Raises:
        EmptyAggregationError: If there are no sessions.
    """
    total_sessions = len(sessions)
    if total_sessions == 0:
        raise EmptyAggregationError(f"No sessions recorded for user {user_id}")

    ordered = sorted(sessions, key=lambda s: (s.session_start_time, s.session_id))
    scores = [score_session(s).skill_score for s in ordered]

    progression = []
    previous_level = None
    for session, score in zip(ordered, scores):
        level = proficiency_level(score)
        progression.append(SkillProgressPoint(
            date=session.session_start_time,
            score=score,
            video_id=session.video_id,
            milestone=level if level != previous_level else None,
        ))
        previous_level = level

    if total_sessions > 1:
        improvement_rate = (scores[-1] - scores[0]) / (total_sessions - 1)
    else:
        improvement_rate = 0.0

    trends = LearningTrends(
        improvement_rate=round(improvement_rate, 2),
        consistency_score=round(max(0.0, 100.0 - statistics.pstdev(scores)), 2),
        engagement_trend=_engagement_trend(ordered),
    )

    return UserAnalyticsRecord(
        user_id=user_id,
        total_sessions=total_sessions,
        total_watch_time=sum(s.watch_duration for s in ordered),
        videos_completed=len({s.video_id for s in ordered if s.is_completed}),
        average_completion_rate=safe_mean(
            sum(s.completion_percentage for s in ordered), total_sessions
        ),
        average_engagement_score=safe_mean(
            sum(s.engagement_score or 0.0 for s in ordered), total_sessions
        ),
        average_skill_score=safe_mean(sum(scores), total_sessions),
        skill_progression=progression,
        learning_trends=trends,
        last_updated=now or utc_now(),
    )


async def recompute_user_aggregate(user_id: str, store: SessionStore) -> UserAnalyticsRecord:
    """
    Rebuild and store a learner's analytics aggregate.
    
    Raises:
        EmptyAggregationError: If the learner has no sessions.
    """
    async with aggregate_locks.hold(f"user:{user_id}"):
        sessions = await store.list_sessions(SessionFilter(user_id=user_id))
        if not sessions:
            logger.warning(f"Skipping aggregate for user {user_id}: no sessions")
            raise EmptyAggregationError(f"No sessions recorded for user {user_id}")

        record = compute_user_analytics(user_id, sessions)
        await store.replace_user_aggregate(record)

    logger.info(f"Recomputed user {user_id}: {record.total_sessions} sessions")
    return record


async def get_user_aggregate(user_id: str, store: SessionStore) -> UserAnalyticsRecord:
    """
    Raises:
        NotFoundError: If no aggregate has been computed for the learner.
    """
    record = await store.get_user_aggregate(user_id)
    if record is None:
        raise NotFoundError(f"No analytics for user {user_id}")
    return record
