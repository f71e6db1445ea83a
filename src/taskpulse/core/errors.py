# src/taskpulse/core/errors.py

from __future__ import annotations


class TaskPulseError(Exception):
    """Base class for all errors raised by taskpulse components."""


class TransientFetchError(TaskPulseError):
    """A task or completion-log query failed; the next tick retries it."""


class AuthorizationError(TaskPulseError):
    """The external calendar is not connected (or the token was rejected)."""


class ExternalApiError(TaskPulseError):
    """A calendar API call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermissionDenied(TaskPulseError):
    """OS-level notifications are not permitted for this session."""
