"""
Identifier Schemas

Request/response models for identifier generation.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from learnlytics.models.enums import IdFamily


class GenerateIdsRequest(BaseModel):
    """Schema for requesting a fresh session id bundle."""

    user_id: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1, description="learner, evaluator, researcher, admin")


class LearningRecordIds(BaseModel):
    """Identifiers a player needs before it creates a session."""

    watch_id: str
    user_role_id: str
    timestamp: datetime


class BatchIdsRequest(BaseModel):
    """Schema for bulk identifier generation."""

    count: int = Field(..., ge=1, le=1000)
    family: IdFamily = IdFamily.SESSION


class BatchIdsResponse(BaseModel):
    """Schema for bulk identifier generation result."""

    family: IdFamily
    ids: list[str]
