"""
Learnlytics - Models Module

This module exports all SQLAlchemy models for the application.
"""

from learnlytics.core.database import Base

# Enums
from learnlytics.models.enums import (
    UserRole,
    IdFamily,
    ProficiencyLevel,
    EngagementTrend,
)

# Models
from learnlytics.models.viewing_session import ViewingSession
from learnlytics.models.video_performance import VideoPerformance
from learnlytics.models.user_analytics import UserAnalytics

__all__ = [
    # Base
    "Base",
    # Enums
    "UserRole",
    "IdFamily",
    "ProficiencyLevel",
    "EngagementTrend",
    # Models
    "ViewingSession",
    "VideoPerformance",
    "UserAnalytics",
]
