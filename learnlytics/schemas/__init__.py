"""
Learnlytics - Schemas Module

Pydantic models for request/response validation.
"""

from learnlytics.schemas.session import SessionCreate, SessionUpdate, SessionRecord
from learnlytics.schemas.analytics import (
    VideoPerformanceRecord,
    UserAnalyticsRecord,
    SkillProgressPoint,
    LearningTrends,
)
from learnlytics.schemas.scoring import SkillScores, SessionAssessment
from learnlytics.schemas.query import SessionFilter, SessionSummary, ExportRow, OPEN_SESSION
from learnlytics.schemas.identifiers import (
    GenerateIdsRequest,
    LearningRecordIds,
    BatchIdsRequest,
    BatchIdsResponse,
)

__all__ = [
    # Session
    "SessionCreate",
    "SessionUpdate",
    "SessionRecord",
    # Analytics
    "VideoPerformanceRecord",
    "UserAnalyticsRecord",
    "SkillProgressPoint",
    "LearningTrends",
    # Scoring
    "SkillScores",
    "SessionAssessment",
    # Query
    "SessionFilter",
    "SessionSummary",
    "ExportRow",
    "OPEN_SESSION",
    # Identifiers
    "GenerateIdsRequest",
    "LearningRecordIds",
    "BatchIdsRequest",
    "BatchIdsResponse",
]
