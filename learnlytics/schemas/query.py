"""
Query Schemas

Filter, summary, and export models for the session history.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

from learnlytics.schemas.session import SessionRecord, ensure_utc


class SessionFilter(BaseModel):
    """
    Criteria for selecting sessions.
    
    Every field is optional; supplied fields are AND-combined.
    The date range applies to the session start time, both ends inclusive.
    """

    user_id: Optional[str] = None
    user_role_id: Optional[str] = None
    video_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    skill_level: Optional[str] = None
    is_completed: Optional[bool] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def normalize_dates(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    def matches(self, session: SessionRecord) -> bool:
        """Check a single session against the criteria."""
        if self.user_id is not None and session.user_id != self.user_id:
            return False
        if self.user_role_id is not None and session.user_role_id != self.user_role_id:
            return False
        if self.video_id is not None and session.video_id != self.video_id:
            return False
        if self.date_from is not None and session.session_start_time < self.date_from:
            return False
        if self.date_to is not None and session.session_start_time > self.date_to:
            return False
        if self.skill_level is not None and session.skill_level != self.skill_level:
            return False
        if self.is_completed is not None and session.is_completed != self.is_completed:
            return False
        return True


class SessionSummary(BaseModel):
    """Summary statistics over a filtered set of sessions."""

    total_sessions: int
    total_watch_time: float
    completed_sessions: int
    average_completion_rate: float
    average_engagement_score: float
    unique_videos: int
    skill_levels: dict[str, int] = Field(default_factory=dict)
    device_types: dict[str, int] = Field(default_factory=dict)


# Marks a session without an end time in export rows
OPEN_SESSION = "ongoing"


class ExportRow(BaseModel):
    """One flattened session, ready for columnar output."""

    session_id: str
    user_id: str
    user_role_id: str
    role: str
    video_id: str
    session_start_time: datetime
    session_end_time: Optional[datetime] = None
    session_duration: Union[float, str] = Field(
        ..., description=f"End minus start in seconds, or '{OPEN_SESSION}'"
    )
    watch_duration: float
    video_duration: float
    completion_percentage: float
    is_completed: bool
    pause_count: int
    seek_count: int
    replay_count: int
    playback_speed: float
    max_progress_reached: float
    engagement_score: Optional[float] = None
    skill_level: Optional[str] = None
    learning_path: Optional[str] = None
    device_type: str
    access_method: str
