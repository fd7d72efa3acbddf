"""Error taxonomy shared by the services and the HTTP boundary."""
from typing import Any, Dict, Optional


class AssistantError(Exception):
    """Base exception for the assistant backend."""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AssistantError):
    """Raised when input is malformed or out of range."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(AssistantError):
    """Raised when a conversation, property or agent does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: str):
        message = f"{resource} with identifier '{identifier}' not found"
        super().__init__(message, "NOT_FOUND", {"resource": resource, "identifier": identifier})


class PersistenceError(AssistantError):
    """Raised when the database is unreachable or a statement fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PERSISTENCE_ERROR", details)


class UpstreamServiceError(AssistantError):
    """Raised when an external service call fails."""

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "UPSTREAM_SERVICE_ERROR", details)


class RateLimitError(AssistantError):
    """Raised when a client exceeds its request window."""

    status_code = 429

    def __init__(self, message: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(message, "RATE_LIMIT_EXCEEDED", {"retryAfter": retry_after})
