"""
Video Performance Model

Per-video aggregate, fully derived from the video's sessions.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from learnlytics.core.database import Base


class VideoPerformance(Base):
    """
    Video performance aggregate.
    
    Never partially updated: every recomputation replaces the whole row.
    """
    
    __tablename__ = "video_performance"

    video_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    total_views: Mapped[int] = mapped_column(Integer, nullable=False)
    unique_viewers: Mapped[int] = mapped_column(Integer, nullable=False)
    average_watch_time: Mapped[float] = mapped_column(Float, nullable=False)
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False)
    average_pause_count: Mapped[float] = mapped_column(Float, nullable=False)
    average_seek_count: Mapped[float] = mapped_column(Float, nullable=False)
    replay_rate: Mapped[float] = mapped_column(Float, nullable=False)
    engagement_score: Mapped[float] = mapped_column(Float, index=True, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<VideoPerformance(video_id={self.video_id}, views={self.total_views})>"
