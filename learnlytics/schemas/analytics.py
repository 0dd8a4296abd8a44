"""
Analytics Schemas

Pydantic models for the per-video and per-learner aggregates.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from learnlytics.models.enums import EngagementTrend, ProficiencyLevel
from learnlytics.schemas.session import ensure_utc


class VideoPerformanceRecord(BaseModel):
    """Schema for a video performance aggregate."""

    video_id: str
    total_views: int = Field(..., ge=0, description="Session count")
    unique_viewers: int = Field(..., ge=0, description="Distinct learners")
    average_watch_time: float = Field(..., description="Mean seconds watched per session")
    completion_rate: float = Field(..., description="Percentage of completed sessions")
    average_pause_count: float
    average_seek_count: float
    replay_rate: float = Field(..., description="Percentage of sessions with at least one replay")
    engagement_score: float = Field(..., ge=0, le=100)
    last_updated: datetime

    model_config = {"from_attributes": True}

    @field_validator("last_updated")
    @classmethod
    def normalize_last_updated(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class SkillProgressPoint(BaseModel):
    """One session's skill score in a learner's progression."""

    date: datetime
    score: int
    video_id: str
    milestone: Optional[ProficiencyLevel] = Field(
        default=None,
        description="Set when the proficiency band changes at this point",
    )


class LearningTrends(BaseModel):
    """Trend indicators over a learner's session history."""

    improvement_rate: float = Field(..., description="Skill points gained per session")
    consistency_score: float = Field(..., ge=0, le=100)
    engagement_trend: EngagementTrend


class UserAnalyticsRecord(BaseModel):
    """Schema for a learner analytics aggregate."""

    user_id: str
    total_sessions: int
    total_watch_time: float
    videos_completed: int
    average_completion_rate: float
    average_engagement_score: float
    average_skill_score: float
    skill_progression: list[SkillProgressPoint]
    learning_trends: LearningTrends
    last_updated: datetime

    model_config = {"from_attributes": True}

    @field_validator("last_updated")
    @classmethod
    def normalize_last_updated(cls, value: datetime) -> datetime:
        return ensure_utc(value)
