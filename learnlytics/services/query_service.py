"""
Query Service

Filtered views over the session history: summary statistics and flat
export rows. The whole filtered result set is materialized.
"""

import csv
import io
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, Sequence

from learnlytics.schemas.query import OPEN_SESSION, ExportRow, SessionFilter, SessionSummary
from learnlytics.schemas.session import SessionRecord, utc_now
from learnlytics.services.aggregation_service import safe_mean
from learnlytics.services.id_service import parse_role_from_role_id
from learnlytics.services.session_store import SessionStore


TIMEFRAME_DAYS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_TIMEFRAME_DAYS = 365


def timeframe_filter(
    timeframe: str,
    filters: Optional[SessionFilter] = None,
    now: Optional[datetime] = None,
) -> SessionFilter:
    """
    Narrow `filters` to the trailing window named by `timeframe`.
    
    "7d", "30d" and "90d" map to their day counts; anything else
    means one year. Filters that already carry a date bound are
    returned unchanged.
    
    Args:
        timeframe: Window name, e.g. "30d".
        filters: Other criteria to keep; defaults to no criteria.
        now: End of the window.
    """
    filters = filters or SessionFilter()
    if filters.date_from is not None or filters.date_to is not None:
        return filters
    end = now or utc_now()
    days = TIMEFRAME_DAYS.get(timeframe, DEFAULT_TIMEFRAME_DAYS)
    return filters.model_copy(update={"date_from": end - timedelta(days=days), "date_to": end})


def summarize_sessions(sessions: Sequence[SessionRecord]) -> SessionSummary:
    """
    Reduce sessions into summary statistics.
    
    Averages are 0 for an empty set. Sessions without a skill level are
    left out of the skill histogram; every session counts toward the
    device histogram.
    """
    total = len(sessions)
    return SessionSummary(
        total_sessions=total,
        total_watch_time=sum(s.watch_duration for s in sessions),
        completed_sessions=sum(1 for s in sessions if s.is_completed),
        average_completion_rate=safe_mean(sum(s.completion_percentage for s in sessions), total),
        average_engagement_score=safe_mean(sum(s.engagement_score or 0.0 for s in sessions), total),
        unique_videos=len({s.video_id for s in sessions}),
        skill_levels=dict(Counter(s.skill_level for s in sessions if s.skill_level)),
        device_types=dict(Counter(s.device_type for s in sessions)),
    )


def to_export_row(session: SessionRecord) -> ExportRow:
    """Flatten one session; open sessions get the OPEN_SESSION duration."""
    if session.session_end_time is not None:
        duration = (session.session_end_time - session.session_start_time).total_seconds()
    else:
        duration = OPEN_SESSION

    return ExportRow(
        session_id=session.session_id,
        user_id=session.user_id,
        user_role_id=session.user_role_id,
        role=parse_role_from_role_id(session.user_role_id),
        video_id=session.video_id,
        session_start_time=session.session_start_time,
        session_end_time=session.session_end_time,
        session_duration=duration,
        watch_duration=session.watch_duration,
        video_duration=session.video_duration,
        completion_percentage=session.completion_percentage,
        is_completed=session.is_completed,
        pause_count=session.pause_count,
        seek_count=session.seek_count,
        replay_count=session.replay_count,
        playback_speed=session.playback_speed,
        max_progress_reached=session.max_progress_reached,
        engagement_score=session.engagement_score,
        skill_level=session.skill_level,
        learning_path=session.learning_path,
        device_type=session.device_type,
        access_method=session.access_method,
    )


def export_csv(rows: Sequence[ExportRow]) -> str:
    """Render export rows as CSV text with a header line."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(ExportRow.model_fields), lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({
            key: "" if value is None else value
            for key, value in row.model_dump(mode="json").items()
        })
    return buffer.getvalue()


async def summarize(filters: SessionFilter, store: SessionStore) -> SessionSummary:
    """Summary statistics for the sessions matching `filters`."""
    return summarize_sessions(await store.list_sessions(filters))


async def export(filters: SessionFilter, store: SessionStore) -> list[ExportRow]:
    """Export rows for the sessions matching `filters`."""
    return [to_export_row(s) for s in await store.list_sessions(filters)]
