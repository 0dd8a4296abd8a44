"""
API v1 Router

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from learnlytics.api.v1.endpoints import identifiers, learning_records, analytics

router = APIRouter()

# Include identifier routes (before the /{session_id} routes)
router.include_router(identifiers.router)

# Include learning record routes
router.include_router(learning_records.router)

# Include aggregate routes
router.include_router(analytics.router)
