"""
Scoring Schemas

Pydantic models for per-session skill scores.
"""

from pydantic import BaseModel, Field

from learnlytics.models.enums import ProficiencyLevel


class SkillScores(BaseModel):
    """Integer scores derived from one session's telemetry."""

    skill_score: int = Field(..., ge=0, le=100)
    technical_score: int = Field(..., ge=0, le=100)
    speed_score: int = Field(..., ge=0, le=100)
    accuracy_score: int = Field(..., ge=0, le=100)

    model_config = {"frozen": True}


class SessionAssessment(BaseModel):
    """Scores plus proficiency band, handed to the feedback generator."""

    session_id: str
    user_id: str
    user_role_id: str
    video_id: str
    scores: SkillScores
    proficiency: ProficiencyLevel
