"""Typed errors raised by services and mapped to HTTP responses in `taskapi.main`."""

from __future__ import annotations

from typing import Any


class TaskApiError(Exception):
    """Base class for errors that carry an HTTP status and a JSON envelope."""

    status_code: int = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        """Return the `{message, ...}` envelope sent to clients."""
        return {"message": self.message, **self.details}


class ValidationError(TaskApiError):
    """Bad input shape, malformed identifier or invalid enumeration value."""

    status_code = 400


class AuthenticationError(TaskApiError):
    """Request requires an authenticated GitHub session."""

    status_code = 401

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message, **self.details}


class NotFoundError(TaskApiError):
    """No record matches the identifier."""

    status_code = 404


class ConflictError(TaskApiError):
    """Unique key already taken (e.g. duplicate email)."""

    status_code = 400


class StorageError(TaskApiError):
    """Database connectivity or driver failure."""

    status_code = 500


__all__ = [
    "TaskApiError",
    "ValidationError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
]
