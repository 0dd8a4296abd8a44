"""
Domain Errors

Raised by the services layer and translated to HTTP responses in main.py.
"""


class LearnlyticsError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class FormatError(LearnlyticsError):
    """An identifier (or role) failed its format check."""

    status_code = 400


class NotFoundError(LearnlyticsError):
    """A lookup by identifier had no match."""

    status_code = 404


class EmptyAggregationError(LearnlyticsError):
    """Recomputation was requested for an entity with zero sessions."""

    status_code = 404


class ConflictError(LearnlyticsError):
    """The write conflicts with the current state of the record."""

    status_code = 409


class DuplicateSessionError(ConflictError):
    """A session with the same identifier already exists."""


class SessionClosedError(ConflictError):
    """The session has an end time and its telemetry is frozen."""


class InvalidSessionError(LearnlyticsError):
    """The session's fields contradict each other (e.g. it ends before it starts)."""

    status_code = 422
