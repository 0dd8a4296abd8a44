"""
Learnlytics - Services Module

Business logic layer.
"""

from learnlytics.services import id_service
from learnlytics.services import scoring_service
from learnlytics.services import aggregation_service
from learnlytics.services import session_service
from learnlytics.services import query_service

__all__ = [
    "id_service",
    "scoring_service",
    "aggregation_service",
    "session_service",
    "query_service",
]
