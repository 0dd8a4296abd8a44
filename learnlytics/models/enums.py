"""
Domain Enums

Python Enums shared by models, schemas, and services.
"""

import enum


class UserRole(str, enum.Enum):
    """Platform role enumeration."""
    LEARNER = "learner"
    EVALUATOR = "evaluator"
    RESEARCHER = "researcher"
    ADMIN = "admin"


class IdFamily(str, enum.Enum):
    """Generated identifier families."""
    SESSION = "session"
    VIDEO = "video"


class ProficiencyLevel(str, enum.Enum):
    """Skill proficiency bands, lowest first."""
    NOVICE = "novice"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class EngagementTrend(str, enum.Enum):
    """Direction of a learner's engagement over their session history."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
