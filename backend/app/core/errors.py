"""Typed errors raised by the time-tracking engine.

Every error carries a stable ``code``, the HTTP status the API renders it
with, and a ``context`` dict (user/session/project IDs) so callers can build
a precise message without parsing strings.
"""

from __future__ import annotations

from typing import Any, Optional


class TrackerError(Exception):
    """Base exception for engine errors"""

    code = "tracker_error"
    http_status = 500

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, "context": self.context}


class NotFoundError(TrackerError):
    code = "not_found"
    http_status = 404


class ConflictError(TrackerError):
    code = "conflict"
    http_status = 409


class InvalidArgumentError(TrackerError):
    code = "invalid_argument"
    http_status = 400


class InvalidStateError(TrackerError):
    code = "invalid_state"
    http_status = 409


class UpstreamUnavailableError(TrackerError):
    code = "upstream_unavailable"
    http_status = 502


class InconsistentStateError(TrackerError):
    """Pointer and session records disagree. Reported, never repaired."""

    code = "inconsistent_state"
    http_status = 500


class SwitchIncompleteError(TrackerError):
    """The previous session was closed but the new one could not be started.

    The user is left without an active session and has to start one again.
    """

    code = "switch_incomplete"
    http_status = 409

    def __init__(
        self,
        message: str,
        *,
        closed_session_id: int,
        cause: Optional[TrackerError] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message,
            closed_session_id=closed_session_id,
            reason=cause.code if cause is not None else None,
            **context,
        )
        self.closed_session_id = closed_session_id
        self.cause = cause
