"""
Custom exception hierarchy for the Interview Coach service.

Every error raised by the session pipeline carries a stable ``kind`` and the
HTTP status the API layer renders it with.
"""

from typing import Dict, Any


class CoachException(Exception):
    """Base exception for the Interview Coach service."""
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, context: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.kind, "message": self.message}
        if self.context:
            payload["details"] = self.context
        return payload


class ValidationError(CoachException):
    """Raised when input is malformed or out of range."""
    kind = "validation_error"
    status_code = 400


class NotFoundError(CoachException):
    """Raised when a requested resource does not exist."""
    kind = "not_found"
    status_code = 404


class ForbiddenError(CoachException):
    """Raised when the requester does not own the resource."""
    kind = "forbidden"
    status_code = 403


class InvalidStateError(CoachException):
    """Raised when an operation is not valid for the current lifecycle state."""
    kind = "invalid_state"
    status_code = 409


class ConflictError(CoachException):
    """Raised on duplicate sessions, duplicate feedback and similar conflicts."""
    kind = "conflict"
    status_code = 409


class StaleWriteError(ConflictError):
    """Raised when a save is based on an outdated version of a document. Retryable."""
    kind = "stale_write"


class UpstreamError(CoachException):
    """Raised when the analysis collaborator fails or returns a bad response."""
    kind = "upstream_error"
    status_code = 502


class RateLimitError(UpstreamError):
    """Raised when the analysis collaborator rejects the call with a rate limit."""
    kind = "rate_limited"
    status_code = 429


class UpstreamAuthError(UpstreamError):
    """Raised when the analysis collaborator rejects our credentials."""
    kind = "upstream_auth"
    status_code = 502


class ConfigurationError(CoachException):
    """Raised when there are configuration issues."""
    kind = "configuration_error"
    status_code = 500


class StorageError(CoachException):
    """Raised when the backing store fails. Engine details stay in the logs."""
    kind = "storage_error"
    status_code = 500
