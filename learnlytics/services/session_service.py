"""
Session Service

Ingestion of viewing sessions: creation, partial updates, and lookups.

Every create, and every update that touches watch time or completion,
refreshes the owning video's performance aggregate. The refresh is
best-effort: the aggregate is a derived cache, so a failure there is
logged and never undoes the session write.
"""

import logging
from typing import Optional

from learnlytics.core.config import settings
from learnlytics.core.exceptions import FormatError, InvalidSessionError, SessionClosedError
from learnlytics.core.locks import session_locks
from learnlytics.schemas.query import SessionFilter
from learnlytics.schemas.session import (
    ANALYTICS_FIELDS,
    SessionCreate,
    SessionRecord,
    SessionUpdate,
)
from learnlytics.services import aggregation_service
from learnlytics.services.id_service import validate_role_scoped_id, validate_session_id
from learnlytics.services.session_store import SessionStore


logger = logging.getLogger(__name__)

# Updates touching any of these refresh the video aggregate
AGGREGATE_TRIGGER_FIELDS = frozenset({"watch_duration", "completion_percentage", "is_completed"})


def _require_session_id(session_id: str) -> None:
    if not validate_session_id(session_id):
        raise FormatError(f"Invalid watch ID format: {session_id}")


async def _refresh_video_aggregate(video_id: str, store: SessionStore) -> None:
    if not settings.AGGREGATE_ON_WRITE:
        return
    try:
        await aggregation_service.recompute_video_aggregate(video_id, store)
    except Exception:
        logger.exception(f"Aggregate refresh failed for video {video_id}")


async def create_session(data: SessionCreate, store: SessionStore) -> SessionRecord:
    """
    Record a new viewing session.
    
    Args:
        data: Session payload with a watch ID and role-scoped ID.
        store: Session store.
        
    Returns:
        SessionRecord: The stored session.
        
    Raises:
        FormatError: If either identifier fails validation.
        DuplicateSessionError: If the watch ID is already used.
    """
    _require_session_id(data.session_id)
    if not validate_role_scoped_id(data.user_role_id):
        raise FormatError(f"Invalid user role ID format: {data.user_role_id}")

    record = await store.create_session(data)
    logger.info(f"Session {record.session_id} created for video {record.video_id}")

    await _refresh_video_aggregate(record.video_id, store)
    return record


async def update_session(
    session_id: str,
    data: SessionUpdate,
    store: SessionStore,
) -> SessionRecord:
    """
    Apply a partial update to a session.
    
    Max progress never moves backwards and always covers the current
    completion. After the end time is set only the analytics fields
    (engagement score, skill level, learning path) can change. Updates to
    one session are serialized, so concurrent heartbeats see each other's
    writes.
    
    Raises:
        FormatError: If the watch ID is malformed.
        NotFoundError: If the session does not exist.
        SessionClosedError: If a closed session's telemetry is changed.
        InvalidSessionError: If the new end time precedes the start time.
    """
    _require_session_id(session_id)
    changes = data.changes()

    async with session_locks.hold(f"session:{session_id}"):
        current = await store.get_session(session_id)

        if current.is_closed:
            frozen = sorted(set(changes) - ANALYTICS_FIELDS)
            if frozen:
                raise SessionClosedError(
                    f"Session {session_id} has ended; cannot change {', '.join(frozen)}"
                )

        end_time = changes.get("session_end_time")
        if end_time is not None and end_time < current.session_start_time:
            raise InvalidSessionError(
                f"Session {session_id} cannot end before it starts"
            )

        if "completion_percentage" in changes or "max_progress_reached" in changes:
            changes["max_progress_reached"] = max(
                current.max_progress_reached,
                changes.get("max_progress_reached", 0.0),
                changes.get("completion_percentage", current.completion_percentage),
            )

        if not changes:
            return current

        record = await store.update_session(session_id, changes)

    if AGGREGATE_TRIGGER_FIELDS & changes.keys():
        await _refresh_video_aggregate(record.video_id, store)
    return record


async def get_session(session_id: str, store: SessionStore) -> SessionRecord:
    """
    Raises:
        FormatError: If the watch ID is malformed.
        NotFoundError: If the session does not exist.
    """
    _require_session_id(session_id)
    return await store.get_session(session_id)


async def list_sessions_by_video(video_id: str, store: SessionStore) -> list[SessionRecord]:
    return await store.list_sessions(SessionFilter(video_id=video_id))


async def list_sessions_by_user(
    user_id: str,
    store: SessionStore,
    user_role_id: Optional[str] = None,
) -> list[SessionRecord]:
    """A learner's sessions, optionally narrowed to one role-scoped ID."""
    return await store.list_sessions(SessionFilter(user_id=user_id, user_role_id=user_role_id))


async def list_sessions_filtered(filters: SessionFilter, store: SessionStore) -> list[SessionRecord]:
    return await store.list_sessions(filters)
