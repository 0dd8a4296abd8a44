"""
Session Service Unit Tests

Tests for session ingestion, partial updates, and aggregate triggering.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from learnlytics.core.config import settings
from learnlytics.core.exceptions import (
    DuplicateSessionError,
    FormatError,
    InvalidSessionError,
    NotFoundError,
    SessionClosedError,
)
from learnlytics.core.locks import session_locks
from learnlytics.schemas.query import SessionFilter
from learnlytics.schemas.session import SessionUpdate
from learnlytics.services import aggregation_service, session_service


END_TIME = datetime(2026, 10, 1, 13, 0, tzinfo=timezone.utc)


# ==================== Create ====================

class TestCreateSession:
    """Tests for recording new sessions."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, store, make_session):
        data = make_session(watch_duration=42.0)

        created = await session_service.create_session(data, store)
        fetched = await session_service.get_session(data.session_id, store)

        assert created.session_id == data.session_id
        assert fetched.watch_duration == 42.0
        assert fetched.created_at is not None

    @pytest.mark.asyncio
    async def test_create_refreshes_video_aggregate(self, store, make_session):
        await session_service.create_session(make_session(), store)
        await session_service.create_session(make_session(user_id="user-2"), store)

        aggregate = await store.get_video_aggregate("video-1")
        assert aggregate.total_views == 2
        assert aggregate.unique_viewers == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"session_id": "W123"},
            {"session_id": "not-a-watch-id"},
            {"user_role_id": "1UABCDE"},
            {"user_role_id": "1L1234"},
        ],
    )
    async def test_rejects_malformed_identifiers(self, store, make_session, overrides):
        with pytest.raises(FormatError):
            await session_service.create_session(make_session(**overrides), store)
        assert await store.list_sessions(SessionFilter()) == []

    @pytest.mark.asyncio
    async def test_rejects_duplicate_watch_id(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)

        with pytest.raises(DuplicateSessionError):
            await session_service.create_session(data, store)

    @pytest.mark.asyncio
    async def test_aggregate_failure_does_not_undo_write(self, store, make_session):
        """Verify a failing refresh is logged and the session is kept."""
        failing = AsyncMock(side_effect=RuntimeError("aggregate store down"))
        data = make_session()

        with patch.object(aggregation_service, "recompute_video_aggregate", failing):
            record = await session_service.create_session(data, store)

        failing.assert_awaited_once()
        assert (await store.get_session(data.session_id)) == record

    @pytest.mark.asyncio
    async def test_aggregate_on_write_disabled(self, store, make_session):
        recompute = AsyncMock()
        with patch.object(settings, "AGGREGATE_ON_WRITE", False), \
                patch.object(aggregation_service, "recompute_video_aggregate", recompute):
            await session_service.create_session(make_session(), store)

        recompute.assert_not_awaited()


# ==================== Update ====================

class TestUpdateSession:
    """Tests for partial updates."""

    @pytest.mark.asyncio
    async def test_partial_update_changes_only_given_fields(self, store, make_session):
        data = make_session(pause_count=2, skill_level="beginner")
        await session_service.create_session(data, store)

        updated = await session_service.update_session(
            data.session_id, SessionUpdate(seek_count=4), store
        )

        assert updated.seek_count == 4
        assert updated.pause_count == 2
        assert updated.skill_level == "beginner"

    @pytest.mark.asyncio
    async def test_max_progress_never_decreases(self, store, make_session):
        data = make_session(completion_percentage=70.0)
        await session_service.create_session(data, store)

        updated = await session_service.update_session(
            data.session_id,
            SessionUpdate(completion_percentage=30.0, max_progress_reached=10.0),
            store,
        )

        assert updated.completion_percentage == 30.0
        assert updated.max_progress_reached == 70.0

    @pytest.mark.asyncio
    async def test_max_progress_covers_new_completion(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)

        updated = await session_service.update_session(
            data.session_id, SessionUpdate(completion_percentage=55.0), store
        )

        assert updated.max_progress_reached == 55.0

    @pytest.mark.asyncio
    async def test_closed_session_rejects_telemetry(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)
        await session_service.update_session(
            data.session_id, SessionUpdate(session_end_time=END_TIME), store
        )

        with pytest.raises(SessionClosedError):
            await session_service.update_session(
                data.session_id, SessionUpdate(watch_duration=99.0), store
            )

    @pytest.mark.asyncio
    async def test_closed_session_accepts_analytics_fields(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)
        await session_service.update_session(
            data.session_id, SessionUpdate(session_end_time=END_TIME), store
        )

        updated = await session_service.update_session(
            data.session_id,
            SessionUpdate(engagement_score=55.0, skill_level="advanced", learning_path="ml-101"),
            store,
        )

        assert updated.engagement_score == 55.0
        assert updated.skill_level == "advanced"
        assert updated.session_end_time == END_TIME

    @pytest.mark.asyncio
    async def test_empty_update_returns_current(self, store, make_session):
        data = make_session()
        created = await session_service.create_session(data, store)

        assert await session_service.update_session(data.session_id, SessionUpdate(), store) == created

    @pytest.mark.asyncio
    async def test_unknown_session(self, store):
        with pytest.raises(NotFoundError):
            await session_service.update_session("WZZZZZZZZZZZZ", SessionUpdate(pause_count=1), store)

    @pytest.mark.asyncio
    async def test_malformed_session_id(self, store):
        with pytest.raises(FormatError):
            await session_service.update_session("bad", SessionUpdate(pause_count=1), store)
        with pytest.raises(FormatError):
            await session_service.get_session("bad", store)

    @pytest.mark.asyncio
    async def test_trigger_fields_refresh_aggregate(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)

        recompute = AsyncMock()
        with patch.object(aggregation_service, "recompute_video_aggregate", recompute):
            await session_service.update_session(
                data.session_id, SessionUpdate(watch_duration=120.0), store
            )
            await session_service.update_session(
                data.session_id, SessionUpdate(is_completed=True), store
            )

        assert recompute.await_count == 2
        recompute.assert_awaited_with("video-1", store)

    @pytest.mark.asyncio
    async def test_other_fields_do_not_refresh_aggregate(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)

        recompute = AsyncMock()
        with patch.object(aggregation_service, "recompute_video_aggregate", recompute):
            await session_service.update_session(
                data.session_id, SessionUpdate(pause_count=3, device_type="mobile"), store
            )

        recompute.assert_not_awaited()


class TestSessionUpdateSchema:
    """Tests for update payload validation."""

    def test_explicit_null_rejected_for_telemetry(self):
        with pytest.raises(ValidationError):
            SessionUpdate(watch_duration=None)

    def test_explicit_null_allowed_for_analytics(self):
        assert SessionUpdate(skill_level=None).changes() == {"skill_level": None}

    def test_naive_end_time_taken_as_utc(self):
        update = SessionUpdate(session_end_time=datetime(2026, 10, 1, 13, 0))
        assert update.session_end_time == END_TIME


# ==================== Listing ====================

class TestListSessions:
    """Tests for the lookup helpers."""

    @pytest.mark.asyncio
    async def test_by_video_and_user(self, store, make_session):
        await session_service.create_session(make_session(video_id="video-1"), store)
        await session_service.create_session(make_session(video_id="video-2"), store)
        await session_service.create_session(
            make_session(user_id="user-2", user_role_id="1E00ABC"), store
        )

        by_video = await session_service.list_sessions_by_video("video-2", store)
        by_user = await session_service.list_sessions_by_user("user-1", store)
        by_role = await session_service.list_sessions_by_user(
            "user-2", store, user_role_id="1L00ABC"
        )

        assert [s.video_id for s in by_video] == ["video-2"]
        assert len(by_user) == 2
        assert by_role == []

    @pytest.mark.asyncio
    async def test_results_ordered_by_start_time(self, store, make_session):
        first = make_session()
        second = make_session()
        await session_service.create_session(second, store)
        await session_service.create_session(first, store)

        sessions = await session_service.list_sessions_by_user("user-1", store)

        assert [s.session_id for s in sessions] == [first.session_id, second.session_id]


# ==================== Session Timing ====================

class TestSessionEndTime:
    """Tests for end times that precede the start."""

    def test_create_rejects_end_before_start(self, make_session):
        with pytest.raises(ValidationError):
            make_session(session_end_time=datetime(2026, 10, 1, 11, 0, tzinfo=timezone.utc))

    def test_create_accepts_zero_length_session(self, make_session):
        data = make_session(session_end_time=datetime(2026, 10, 1, 12, 1, tzinfo=timezone.utc))
        assert data.session_end_time == data.session_start_time

    @pytest.mark.asyncio
    async def test_update_rejects_end_before_start(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)

        with pytest.raises(InvalidSessionError):
            await session_service.update_session(
                data.session_id,
                SessionUpdate(session_end_time=data.session_start_time - timedelta(seconds=1)),
                store,
            )
        assert not (await store.get_session(data.session_id)).is_closed


# ==================== Concurrent Updates ====================

class TestConcurrentUpdates:
    """Tests for overlapping updates to one session."""

    @pytest.mark.asyncio
    async def test_max_progress_survives_concurrent_heartbeats(self, sql_store, make_session):
        """
        Verify two heartbeats racing on one session keep the higher progress.
        
        Without per-session serialization the second write is computed from
        a stale read and moves max progress backwards.
        """
        data = make_session(completion_percentage=50.0)
        await sql_store.create_session(data)

        await asyncio.gather(
            session_service.update_session(
                data.session_id, SessionUpdate(completion_percentage=80.0), sql_store
            ),
            session_service.update_session(
                data.session_id, SessionUpdate(completion_percentage=60.0), sql_store
            ),
        )

        stored = await sql_store.get_session(data.session_id)
        assert stored.completion_percentage == 60.0
        assert stored.max_progress_reached == 80.0

    @pytest.mark.asyncio
    async def test_telemetry_racing_a_close_is_rejected(self, sql_store, make_session):
        data = make_session(watch_duration=10.0)
        await sql_store.create_session(data)

        results = await asyncio.gather(
            session_service.update_session(
                data.session_id, SessionUpdate(session_end_time=END_TIME), sql_store
            ),
            session_service.update_session(
                data.session_id, SessionUpdate(watch_duration=500.0), sql_store
            ),
            return_exceptions=True,
        )

        assert isinstance(results[1], SessionClosedError)
        stored = await sql_store.get_session(data.session_id)
        assert stored.watch_duration == 10.0
        assert stored.session_end_time == END_TIME

    @pytest.mark.asyncio
    async def test_session_lock_registry_drains(self, store, make_session):
        data = make_session()
        await session_service.create_session(data, store)

        await asyncio.gather(*[
            session_service.update_session(data.session_id, SessionUpdate(pause_count=n), store)
            for n in range(5)
        ])

        assert len(session_locks) == 0
