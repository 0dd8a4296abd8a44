"""
User Analytics Model

Per-learner aggregate with progression and trend payloads.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from learnlytics.core.database import Base


class UserAnalytics(Base):
    """
    User analytics aggregate.
    
    Attributes:
        skill_progression: Chronological list of per-session skill points.
        learning_trends: Improvement rate, consistency, and engagement trend.
    """
    
    __tablename__ = "user_analytics"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False)
    total_watch_time: Mapped[float] = mapped_column(Float, nullable=False)
    videos_completed: Mapped[int] = mapped_column(Integer, nullable=False)
    average_completion_rate: Mapped[float] = mapped_column(Float, nullable=False)
    average_engagement_score: Mapped[float] = mapped_column(Float, nullable=False)
    average_skill_score: Mapped[float] = mapped_column(Float, nullable=False)
    skill_progression: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    learning_trends: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<UserAnalytics(user_id={self.user_id}, sessions={self.total_sessions})>"
