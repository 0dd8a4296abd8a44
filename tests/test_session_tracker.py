"""
Session Tracker Unit Tests

Tests for player-side event accumulation and write-through.
"""

import pytest

from learnlytics.core.exceptions import FormatError, SessionClosedError
from learnlytics.services.id_service import validate_role_scoped_id, validate_session_id
from learnlytics.services.scoring_service import session_engagement_score
from learnlytics.services.session_tracker import SessionTracker


@pytest.fixture
def start_tracker(store):
    """Start a tracker for a 100-second video."""
    async def _start(**kwargs) -> SessionTracker:
        return await SessionTracker.start(store, "user-1", "learner", "video-1", 100.0, **kwargs)
    return _start


class TestStart:
    """Tests for opening a tracked session."""

    @pytest.mark.asyncio
    async def test_start_creates_session(self, store, start_tracker):
        tracker = await start_tracker(skill_level="beginner")

        stored = await store.get_session(tracker.session_id)

        assert validate_session_id(stored.session_id)
        assert validate_role_scoped_id(stored.user_role_id)
        assert stored.engagement_score == 0.0
        assert stored.skill_level == "beginner"
        assert not tracker.is_closed

    @pytest.mark.asyncio
    async def test_start_rejects_unknown_role(self, store):
        with pytest.raises(FormatError):
            await SessionTracker.start(store, "user-1", "guest", "video-1", 100.0)


class TestTracking:
    """Tests for playback event handling."""

    @pytest.mark.asyncio
    async def test_progress_credits_at_most_two_seconds(self, start_tracker):
        tracker = await start_tracker()

        tracker.track_progress(1.0)
        tracker.track_progress(10.0)

        telemetry = tracker.telemetry()
        assert telemetry["watch_duration"] == pytest.approx(3.0)
        assert telemetry["completion_percentage"] == 10.0
        assert telemetry["max_progress_reached"] == 10.0
        assert tracker.has_pending_changes

    @pytest.mark.asyncio
    async def test_backward_progress_is_not_watch_time(self, start_tracker):
        tracker = await start_tracker()
        tracker.track_progress(2.0)
        tracker.track_progress(1.0)

        assert tracker.telemetry()["watch_duration"] == pytest.approx(2.0)
        assert tracker.telemetry()["completion_percentage"] == 2.0

    @pytest.mark.asyncio
    async def test_completion_threshold(self, start_tracker):
        tracker = await start_tracker()
        tracker.track_seek(0.0, 88.0)
        tracker.track_progress(89.0)
        assert tracker.telemetry()["is_completed"] is False

        tracker.track_progress(90.0)
        assert tracker.telemetry()["is_completed"] is True

    @pytest.mark.asyncio
    async def test_long_backward_seek_is_replay(self, start_tracker):
        tracker = await start_tracker()
        tracker.track_seek(50.0, 45.0)
        tracker.track_seek(50.0, 30.0)
        tracker.track_seek(30.0, 80.0)

        telemetry = tracker.telemetry()
        assert telemetry["seek_count"] == 3
        assert telemetry["replay_count"] == 1

    @pytest.mark.asyncio
    async def test_pause_and_speed(self, start_tracker):
        tracker = await start_tracker()
        tracker.track_pause()
        tracker.track_pause()
        tracker.track_playback_speed(1.5)

        assert tracker.telemetry()["pause_count"] == 2
        assert tracker.telemetry()["playback_speed"] == 1.5

        with pytest.raises(ValueError):
            tracker.track_playback_speed(0)


class TestPersistence:
    """Tests for flush and close."""

    @pytest.mark.asyncio
    async def test_flush_writes_telemetry_and_engagement(self, store, start_tracker):
        tracker = await start_tracker()
        tracker.track_progress(1.0)
        tracker.track_progress(3.0)
        tracker.track_seek(3.0, 90.0)
        tracker.track_progress(91.0)
        tracker.track_pause()

        record = await tracker.flush()
        stored = await store.get_session(tracker.session_id)

        assert stored == record
        assert stored.watch_duration == pytest.approx(4.0)
        assert stored.completion_percentage == 91.0
        assert stored.is_completed is True
        assert stored.pause_count == 1
        assert stored.seek_count == 1
        assert stored.engagement_score == pytest.approx(
            session_engagement_score(91.0, 4.0, 100.0, 1, 91.0)
        )
        assert not tracker.has_pending_changes

    @pytest.mark.asyncio
    async def test_flush_persists_everything_tracked(self, store, start_tracker):
        """Verify no tracked state is left only on the tracker after a flush."""
        tracker = await start_tracker()
        tracker.track_progress(2.0)
        tracker.track_pause()
        tracker.track_seek(2.0, 60.0)
        tracker.track_seek(60.0, 10.0)
        tracker.track_playback_speed(1.25)

        await tracker.flush()
        stored = await store.get_session(tracker.session_id)

        for field, value in tracker.telemetry().items():
            assert getattr(stored, field) == value

    @pytest.mark.asyncio
    async def test_flush_without_changes_is_noop(self, start_tracker):
        tracker = await start_tracker()
        assert await tracker.flush() is tracker.record

    @pytest.mark.asyncio
    async def test_close_sets_end_time_and_refreshes_aggregate(self, store, start_tracker):
        tracker = await start_tracker()
        tracker.track_progress(2.0)

        record = await tracker.close()

        assert record.session_end_time is not None
        assert tracker.is_closed
        aggregate = await store.get_video_aggregate("video-1")
        assert aggregate.average_watch_time == pytest.approx(2.0)

    @pytest.mark.asyncio
    async def test_closed_tracker_rejects_events(self, start_tracker):
        tracker = await start_tracker()
        first = await tracker.close()

        with pytest.raises(SessionClosedError):
            tracker.track_pause()
        assert await tracker.close() is first
