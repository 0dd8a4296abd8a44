"""
Session Store

Persistence contract for viewing sessions and their aggregates, with an
async SQLAlchemy implementation and an in-memory one.

The store is deliberately thin: it creates, reads, updates and scans.
Business rules (identifier checks, closed sessions, progress
monotonicity, aggregate triggering) live in the services that use it.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnlytics.core.exceptions import DuplicateSessionError, NotFoundError
from learnlytics.models.user_analytics import UserAnalytics
from learnlytics.models.video_performance import VideoPerformance
from learnlytics.models.viewing_session import ViewingSession
from learnlytics.schemas.analytics import UserAnalyticsRecord, VideoPerformanceRecord
from learnlytics.schemas.query import SessionFilter
from learnlytics.schemas.session import SessionCreate, SessionRecord, utc_now


class SessionStore(ABC):
    """Storage primitives over the ViewingSession shape and its aggregates."""

    @abstractmethod
    async def create_session(self, data: SessionCreate) -> SessionRecord:
        """
        Insert a new session.
        
        Raises:
            DuplicateSessionError: If the session identifier is taken.
        """

    @abstractmethod
    async def get_session(self, session_id: str) -> SessionRecord:
        """
        Fetch a session by identifier.
        
        Raises:
            NotFoundError: If no session has this identifier.
        """

    @abstractmethod
    async def update_session(self, session_id: str, changes: Dict[str, Any]) -> SessionRecord:
        """
        Apply column changes to a session.
        
        Raises:
            NotFoundError: If no session has this identifier.
        """

    @abstractmethod
    async def list_sessions(self, filters: SessionFilter) -> list[SessionRecord]:
        """All sessions matching the filter, oldest start time first."""

    @abstractmethod
    async def get_video_aggregate(self, video_id: str) -> Optional[VideoPerformanceRecord]:
        ...

    @abstractmethod
    async def replace_video_aggregate(self, record: VideoPerformanceRecord) -> VideoPerformanceRecord:
        ...

    @abstractmethod
    async def list_video_aggregates(self, limit: int) -> list[VideoPerformanceRecord]:
        """Aggregates ordered by total views, then engagement, highest first."""

    @abstractmethod
    async def get_user_aggregate(self, user_id: str) -> Optional[UserAnalyticsRecord]:
        ...

    @abstractmethod
    async def replace_user_aggregate(self, record: UserAnalyticsRecord) -> UserAnalyticsRecord:
        ...


def _popularity_key(record: VideoPerformanceRecord) -> tuple:
    return (-record.total_views, -record.engagement_score, record.video_id)


# ============== In-Memory Store ==============

class InMemorySessionStore(SessionStore):
    """
    Dict-backed store.
    
    Yields to the event loop on every scan so that concurrent callers
    interleave the way they would against a real database.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, SessionRecord] = {}
        self._video_aggregates: Dict[str, VideoPerformanceRecord] = {}
        self._user_aggregates: Dict[str, UserAnalyticsRecord] = {}

    async def create_session(self, data: SessionCreate) -> SessionRecord:
        if data.session_id in self._sessions:
            raise DuplicateSessionError(f"Session {data.session_id} already exists")
        now = utc_now()
        record = SessionRecord(**data.model_dump(), created_at=now, updated_at=now)
        self._sessions[record.session_id] = record
        return record.model_copy()

    async def get_session(self, session_id: str) -> SessionRecord:
        record = self._sessions.get(session_id)
        if record is None:
            raise NotFoundError(f"Session {session_id} not found")
        return record.model_copy()

    async def update_session(self, session_id: str, changes: Dict[str, Any]) -> SessionRecord:
        current = await self.get_session(session_id)
        updated = SessionRecord.model_validate(
            {**current.model_dump(), **changes, "updated_at": utc_now()}
        )
        self._sessions[session_id] = updated
        return updated.model_copy()

    async def list_sessions(self, filters: SessionFilter) -> list[SessionRecord]:
        await asyncio.sleep(0)
        matched = [s.model_copy() for s in self._sessions.values() if filters.matches(s)]
        return sorted(matched, key=lambda s: (s.session_start_time, s.session_id))

    async def get_video_aggregate(self, video_id: str) -> Optional[VideoPerformanceRecord]:
        record = self._video_aggregates.get(video_id)
        return record.model_copy() if record is not None else None

    async def replace_video_aggregate(self, record: VideoPerformanceRecord) -> VideoPerformanceRecord:
        self._video_aggregates[record.video_id] = record.model_copy()
        return record

    async def list_video_aggregates(self, limit: int) -> list[VideoPerformanceRecord]:
        ranked = sorted(self._video_aggregates.values(), key=_popularity_key)
        return [r.model_copy() for r in ranked[:limit]]

    async def get_user_aggregate(self, user_id: str) -> Optional[UserAnalyticsRecord]:
        record = self._user_aggregates.get(user_id)
        return record.model_copy(deep=True) if record is not None else None

    async def replace_user_aggregate(self, record: UserAnalyticsRecord) -> UserAnalyticsRecord:
        self._user_aggregates[record.user_id] = record.model_copy(deep=True)
        return record


# ============== SQLAlchemy Store ==============

class SQLAlchemySessionStore(SessionStore):
    """
    Async SQLAlchemy store.
    
    Opens one AsyncSession per operation so the store can be shared by
    concurrent tasks.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def create_session(self, data: SessionCreate) -> SessionRecord:
        async with self._session_maker() as db:
            if await db.get(ViewingSession, data.session_id) is not None:
                raise DuplicateSessionError(f"Session {data.session_id} already exists")

            row = ViewingSession(**data.model_dump())
            db.add(row)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise DuplicateSessionError(f"Session {data.session_id} already exists")
            await db.refresh(row)
            return SessionRecord.model_validate(row)

    async def get_session(self, session_id: str) -> SessionRecord:
        async with self._session_maker() as db:
            row = await db.get(ViewingSession, session_id)
            if row is None:
                raise NotFoundError(f"Session {session_id} not found")
            return SessionRecord.model_validate(row)

    async def update_session(self, session_id: str, changes: Dict[str, Any]) -> SessionRecord:
        async with self._session_maker() as db:
            row = await db.get(ViewingSession, session_id)
            if row is None:
                raise NotFoundError(f"Session {session_id} not found")

            for field, value in changes.items():
                setattr(row, field, value)

            await db.commit()
            await db.refresh(row)
            return SessionRecord.model_validate(row)

    async def list_sessions(self, filters: SessionFilter) -> list[SessionRecord]:
        stmt = select(ViewingSession)
        if filters.user_id is not None:
            stmt = stmt.where(ViewingSession.user_id == filters.user_id)
        if filters.user_role_id is not None:
            stmt = stmt.where(ViewingSession.user_role_id == filters.user_role_id)
        if filters.video_id is not None:
            stmt = stmt.where(ViewingSession.video_id == filters.video_id)
        if filters.date_from is not None:
            stmt = stmt.where(ViewingSession.session_start_time >= filters.date_from)
        if filters.date_to is not None:
            stmt = stmt.where(ViewingSession.session_start_time <= filters.date_to)
        if filters.skill_level is not None:
            stmt = stmt.where(ViewingSession.skill_level == filters.skill_level)
        if filters.is_completed is not None:
            stmt = stmt.where(ViewingSession.is_completed == filters.is_completed)
        stmt = stmt.order_by(ViewingSession.session_start_time, ViewingSession.session_id)

        async with self._session_maker() as db:
            result = await db.execute(stmt)
            return [SessionRecord.model_validate(row) for row in result.scalars().all()]

    async def get_video_aggregate(self, video_id: str) -> Optional[VideoPerformanceRecord]:
        async with self._session_maker() as db:
            row = await db.get(VideoPerformance, video_id)
            return VideoPerformanceRecord.model_validate(row) if row is not None else None

    async def replace_video_aggregate(self, record: VideoPerformanceRecord) -> VideoPerformanceRecord:
        async with self._session_maker() as db:
            await db.merge(VideoPerformance(**record.model_dump()))
            await db.commit()
        return record

    async def list_video_aggregates(self, limit: int) -> list[VideoPerformanceRecord]:
        stmt = (
            select(VideoPerformance)
            .order_by(
                VideoPerformance.total_views.desc(),
                VideoPerformance.engagement_score.desc(),
                VideoPerformance.video_id,
            )
            .limit(limit)
        )
        async with self._session_maker() as db:
            result = await db.execute(stmt)
            return [VideoPerformanceRecord.model_validate(row) for row in result.scalars().all()]

    async def get_user_aggregate(self, user_id: str) -> Optional[UserAnalyticsRecord]:
        async with self._session_maker() as db:
            row = await db.get(UserAnalytics, user_id)
            return UserAnalyticsRecord.model_validate(row) if row is not None else None

    async def replace_user_aggregate(self, record: UserAnalyticsRecord) -> UserAnalyticsRecord:
        # JSON columns need plain JSON types (ISO dates, enum values)
        payload = record.model_dump(mode="json")
        payload["last_updated"] = record.last_updated
        async with self._session_maker() as db:
            await db.merge(UserAnalytics(**payload))
            await db.commit()
        return record
