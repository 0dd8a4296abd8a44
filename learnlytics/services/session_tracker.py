"""
Session Tracker

Handle a video player uses to report playback events for one session.
The player receives the tracker explicitly and calls its track_* methods;
the tracker accumulates telemetry locally and writes it through the
session service on flush() and close().
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from learnlytics.core.exceptions import SessionClosedError
from learnlytics.models.enums import UserRole
from learnlytics.schemas.session import SessionCreate, SessionRecord, SessionUpdate, utc_now
from learnlytics.services import session_service
from learnlytics.services.id_service import generate_learning_record_ids
from learnlytics.services.scoring_service import round_half_up, session_engagement_score
from learnlytics.services.session_store import SessionStore


logger = logging.getLogger(__name__)

COMPLETION_THRESHOLD_PERCENT = 90
# Longest stretch credited per progress tick, so seeks don't count as watching
MAX_WATCH_DELTA_SECONDS = 2.0
# Seeking back further than this counts as a replay
REPLAY_SEEK_BACK_SECONDS = 10.0

_TRACKED_FIELDS = (
    "watch_duration",
    "completion_percentage",
    "is_completed",
    "pause_count",
    "seek_count",
    "replay_count",
    "playback_speed",
    "max_progress_reached",
)


class SessionTracker:
    """
    Accumulates playback telemetry for one viewing session.
    
    Usage:
        tracker = await SessionTracker.start(store, "user-1", "learner", video_id, 600)
        tracker.track_progress(1.5)
        tracker.track_pause()
        await tracker.flush()
        await tracker.close()
    """

    def __init__(self, store: SessionStore, record: SessionRecord):
        self._store = store
        self._record = record
        self._telemetry: Dict[str, Any] = {f: getattr(record, f) for f in _TRACKED_FIELDS}
        self._dirty: set[str] = set()
        self._last_position = 0.0

    @classmethod
    async def start(
        cls,
        store: SessionStore,
        user_id: str,
        role: Union[str, UserRole],
        video_id: str,
        video_duration: float,
        skill_level: Optional[str] = None,
        learning_path: Optional[str] = None,
        device_type: str = "desktop",
        access_method: str = "direct",
    ) -> "SessionTracker":
        """Issue identifiers, create the session, and return its tracker."""
        ids = generate_learning_record_ids(user_id, role)
        record = await session_service.create_session(
            SessionCreate(
                session_id=ids.watch_id,
                user_id=user_id,
                user_role_id=ids.user_role_id,
                video_id=video_id,
                video_duration=video_duration,
                session_start_time=ids.timestamp,
                skill_level=skill_level,
                learning_path=learning_path,
                device_type=device_type,
                access_method=access_method,
                engagement_score=0.0,
            ),
            store,
        )
        return cls(store, record)

    # ============== Properties ==============

    @property
    def session_id(self) -> str:
        return self._record.session_id

    @property
    def record(self) -> SessionRecord:
        """Last state confirmed by the store."""
        return self._record

    @property
    def is_closed(self) -> bool:
        return self._record.is_closed

    @property
    def has_pending_changes(self) -> bool:
        return bool(self._dirty)

    def telemetry(self) -> Dict[str, Any]:
        """Current local telemetry, including unflushed events."""
        return dict(self._telemetry)

    @property
    def engagement_score(self) -> float:
        return session_engagement_score(
            completion_percentage=self._telemetry["completion_percentage"],
            watch_duration=self._telemetry["watch_duration"],
            video_duration=self._record.video_duration,
            pause_count=self._telemetry["pause_count"],
            max_progress_reached=self._telemetry["max_progress_reached"],
        )

    # ============== Event Tracking ==============

    def _set(self, field: str, value: Any) -> None:
        if self.is_closed:
            raise SessionClosedError(f"Session {self.session_id} has ended")
        self._telemetry[field] = value
        self._dirty.add(field)

    def track_progress(self, current_time: float) -> None:
        """Playback position update, in seconds from the start of the video."""
        duration = self._record.video_duration
        progress = max(0, min(100, round_half_up(current_time / duration * 100)))
        watch_delta = min(current_time - self._last_position, MAX_WATCH_DELTA_SECONDS)

        if watch_delta > 0:
            self._set("watch_duration", self._telemetry["watch_duration"] + watch_delta)
            self._set("completion_percentage", float(progress))
            self._set(
                "max_progress_reached",
                max(self._telemetry["max_progress_reached"], float(progress)),
            )
            self._set("is_completed", progress >= COMPLETION_THRESHOLD_PERCENT)

        self._last_position = current_time

    def track_pause(self) -> None:
        self._set("pause_count", self._telemetry["pause_count"] + 1)

    def track_seek(self, from_time: float, to_time: float) -> None:
        """A jump in the playback position; long backward jumps are replays."""
        self._set("seek_count", self._telemetry["seek_count"] + 1)
        if to_time < from_time - REPLAY_SEEK_BACK_SECONDS:
            self._set("replay_count", self._telemetry["replay_count"] + 1)
        self._last_position = to_time

    def track_playback_speed(self, speed: float) -> None:
        if speed <= 0:
            raise ValueError("playback speed must be positive")
        self._set("playback_speed", speed)

    # ============== Persistence ==============

    async def flush(self, end_time: Optional[datetime] = None) -> SessionRecord:
        """
        Write pending telemetry and the current engagement score.
        
        Args:
            end_time: When given, also closes the session.
        
        Returns:
            SessionRecord: The stored session.
        """
        if not self._dirty and end_time is None:
            return self._record

        changes: Dict[str, Any] = {f: self._telemetry[f] for f in self._dirty}
        changes["engagement_score"] = self.engagement_score
        if end_time is not None:
            changes["session_end_time"] = end_time

        self._record = await session_service.update_session(
            self.session_id, SessionUpdate(**changes), self._store
        )
        self._dirty.clear()
        return self._record

    async def close(self, end_time: Optional[datetime] = None) -> SessionRecord:
        """Flush remaining telemetry and set the session end time."""
        if self.is_closed:
            return self._record
        record = await self.flush(end_time=end_time or utc_now())
        logger.info(f"Session {self.session_id} closed after {record.watch_duration:.0f}s watched")
        return record
