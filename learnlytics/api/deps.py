"""
API Dependencies

Reusable dependencies for API routes.
"""

from datetime import datetime
from typing import Optional

from fastapi import Query

from learnlytics.core.database import get_session_maker
from learnlytics.schemas.query import SessionFilter
from learnlytics.services.session_store import SessionStore, SQLAlchemySessionStore


def get_session_store() -> SessionStore:
    """
    Dependency that provides the session store.
    
    Usage in FastAPI:
        @router.get("/items")
        async def get_items(store: SessionStore = Depends(get_session_store)):
            ...
    """
    return SQLAlchemySessionStore(get_session_maker())


def get_session_filter(
    user_id: Optional[str] = Query(None, description="Learner identifier"),
    role_id: Optional[str] = Query(None, description="Role-scoped identifier"),
    video_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None, description="Earliest session start (inclusive)"),
    date_to: Optional[datetime] = Query(None, description="Latest session start (inclusive)"),
    skill_level: Optional[str] = Query(None),
    is_completed: Optional[bool] = Query(None),
) -> SessionFilter:
    """Build a SessionFilter from query parameters."""
    return SessionFilter(
        user_id=user_id,
        user_role_id=role_id,
        video_id=video_id,
        date_from=date_from,
        date_to=date_to,
        skill_level=skill_level,
        is_completed=is_completed,
    )
