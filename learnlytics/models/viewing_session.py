"""
Viewing Session Model

One learner's interaction with one video: the atomic unit of telemetry.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from learnlytics.core.database import Base


class ViewingSession(Base):
    """
    Viewing session model.
    
    Counters are mutated additively by the player while the session is
    open; once `session_end_time` is set only the analytics fields
    (engagement score, skill level, learning path) may change.
    
    Attributes:
        session_id: Watch identifier ("W..."), primary key.
        user_id: Learner's primary identifier.
        user_role_id: Role-scoped learner identifier ("1L...").
        video_id: Watched video.
        watch_duration: Seconds actually watched (may exceed the video length).
        completion_percentage: Current position as a percentage of the video.
        max_progress_reached: Furthest completion percentage seen so far.
        engagement_score: Derived 0-100 score, null until computed.
    """
    
    __tablename__ = "viewing_sessions"

    session_id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    user_role_id: Mapped[str] = mapped_column(
        String(16),
        index=True,
        nullable=False,
    )
    video_id: Mapped[str] = mapped_column(
        String(64),
        index=True,
        nullable=False,
    )
    session_start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        index=True,
        nullable=False,
    )
    session_end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Telemetry
    watch_duration: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    video_duration: Mapped[float] = mapped_column(Float, nullable=False)
    completion_percentage: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    pause_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seek_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    replay_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    playback_speed: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    max_progress_reached: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    # Context
    device_type: Mapped[str] = mapped_column(String(32), default="desktop", nullable=False)
    access_method: Mapped[str] = mapped_column(String(32), default="direct", nullable=False)
    browser_info: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    screen_resolution: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    referrer_page: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # Analytics
    engagement_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    skill_level: Mapped[Optional[str]] = mapped_column(String(32), index=True, nullable=True)
    learning_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ViewingSession(session_id={self.session_id}, video_id={self.video_id})>"
