"""
Session Schemas

Pydantic models for viewing-session ingestion and responses.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return `value` as an aware UTC datetime (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionTelemetry(BaseModel):
    """Fields the player reports while a session is running."""

    watch_duration: float = Field(default=0.0, ge=0, description="Seconds watched")
    completion_percentage: float = Field(default=0.0, ge=0, le=100)
    is_completed: bool = False
    pause_count: int = Field(default=0, ge=0)
    seek_count: int = Field(default=0, ge=0)
    replay_count: int = Field(default=0, ge=0)
    playback_speed: float = Field(default=1.0, gt=0)
    max_progress_reached: float = Field(default=0.0, ge=0, le=100)

    device_type: str = Field(default="desktop", description="desktop, mobile, tablet")
    access_method: str = Field(default="direct", description="direct, search, recommendation, assignment")
    browser_info: Optional[str] = None
    screen_resolution: Optional[str] = None
    referrer_page: Optional[str] = None

    engagement_score: Optional[float] = Field(default=None, ge=0, le=100)
    skill_level: Optional[str] = None
    learning_path: Optional[str] = None


class SessionCreate(SessionTelemetry):
    """Schema for creating a viewing session."""

    session_id: str = Field(..., description="Watch identifier, e.g. W...")
    user_id: str = Field(..., min_length=1)
    user_role_id: str = Field(..., description="Role-scoped identifier, e.g. 1L...")
    video_id: str = Field(..., min_length=1)
    session_start_time: datetime = Field(default_factory=utc_now)
    session_end_time: Optional[datetime] = None
    video_duration: float = Field(..., gt=0, description="Video length in seconds")

    @field_validator("session_start_time", "session_end_time")
    @classmethod
    def normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def progress_covers_completion(self) -> "SessionCreate":
        self.max_progress_reached = max(self.max_progress_reached, self.completion_percentage)
        return self

    @model_validator(mode="after")
    def ends_after_start(self) -> "SessionCreate":
        if self.session_end_time is not None and self.session_end_time < self.session_start_time:
            raise ValueError("session_end_time cannot precede session_start_time")
        return self


# Columns that may legitimately be cleared by an update
NULLABLE_UPDATE_FIELDS = frozenset({
    "session_end_time",
    "browser_info",
    "screen_resolution",
    "referrer_page",
    "engagement_score",
    "skill_level",
    "learning_path",
})

# Columns that stay writable after the session has ended
ANALYTICS_FIELDS = frozenset({"engagement_score", "skill_level", "learning_path"})


class SessionUpdate(BaseModel):
    """
    Schema for a partial session update.
    
    Only fields explicitly present in the payload are applied.
    """

    session_end_time: Optional[datetime] = None
    watch_duration: Optional[float] = Field(default=None, ge=0)
    video_duration: Optional[float] = Field(default=None, gt=0)
    completion_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    is_completed: Optional[bool] = None
    pause_count: Optional[int] = Field(default=None, ge=0)
    seek_count: Optional[int] = Field(default=None, ge=0)
    replay_count: Optional[int] = Field(default=None, ge=0)
    playback_speed: Optional[float] = Field(default=None, gt=0)
    max_progress_reached: Optional[float] = Field(default=None, ge=0, le=100)
    device_type: Optional[str] = None
    access_method: Optional[str] = None
    browser_info: Optional[str] = None
    screen_resolution: Optional[str] = None
    referrer_page: Optional[str] = None
    engagement_score: Optional[float] = Field(default=None, ge=0, le=100)
    skill_level: Optional[str] = None
    learning_path: Optional[str] = None

    @field_validator("session_end_time")
    @classmethod
    def normalize_end_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @model_validator(mode="after")
    def reject_null_telemetry(self) -> "SessionUpdate":
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in NULLABLE_UPDATE_FIELDS:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Fields supplied by the caller."""
        return self.model_dump(exclude_unset=True)


class SessionRecord(SessionTelemetry):
    """Schema for a stored viewing session."""

    session_id: str
    user_id: str
    user_role_id: str
    video_id: str
    session_start_time: datetime
    session_end_time: Optional[datetime] = None
    video_duration: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("session_start_time", "session_end_time", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    model_config = {"from_attributes": True}

    @property
    def is_closed(self) -> bool:
        return self.session_end_time is not None
