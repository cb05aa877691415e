"""
Base exception types for the Flock backend.

Every error the API can return is an AppError tagged with an ErrorKind.
The kind fixes the HTTP status, the default machine-readable code and the
default translation key. Modules define their own exceptions by subclassing
AppError for domain conditions (expired token, already verified email, ...).
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """Closed set of error kinds: (HTTP status, default code, translation key)."""

    BAD_REQUEST = (400, "BAD_REQUEST", "common:BAD_REQUEST")
    UNAUTHORIZED = (401, "UNAUTHORIZED", "common:UNAUTHORIZED")
    FORBIDDEN = (403, "FORBIDDEN", "common:FORBIDDEN")
    NOT_FOUND = (404, "NOT_FOUND", "common:NOT_FOUND")
    CONFLICT = (409, "CONFLICT", "common:CONFLICT")
    GONE = (410, "GONE", "common:GONE")
    UNSUPPORTED_MEDIA_TYPE = (415, "UNSUPPORTED_MEDIA_TYPE", "common:UNSUPPORTED_MEDIA_TYPE")
    UNPROCESSABLE_ENTITY = (422, "VALIDATION_ERROR", "validation:VALIDATION_ERROR")
    TOO_EARLY = (425, "TOO_EARLY", "common:TOO_EARLY")
    RATE_LIMITED = (429, "RATE_LIMIT_EXCEEDED", "common:RATE_LIMIT_EXCEEDED")
    INTERNAL_SERVER = (500, "INTERNAL_SERVER_ERROR", "common:INTERNAL_SERVER_ERROR")
    NOT_IMPLEMENTED = (501, "NOT_IMPLEMENTED", "common:NOT_IMPLEMENTED")
    BAD_GATEWAY = (502, "BAD_GATEWAY", "common:BAD_GATEWAY")
    SERVICE_UNAVAILABLE = (503, "SERVICE_UNAVAILABLE", "common:SERVICE_UNAVAILABLE")
    GATEWAY_TIMEOUT = (504, "GATEWAY_TIMEOUT", "common:GATEWAY_TIMEOUT")
    INSUFFICIENT_STORAGE = (507, "INSUFFICIENT_STORAGE", "common:INSUFFICIENT_STORAGE")

    def __init__(self, status: int, code: str, translation_key: str):
        self.status = status
        self.code = code
        self.translation_key = translation_key

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    @classmethod
    def from_status(cls, status: int) -> "ErrorKind":
        """
        Find the kind bound to an HTTP status code.

        Unknown 4xx statuses map to BAD_REQUEST, anything else to INTERNAL_SERVER.
        """
        for kind in cls:
            if kind.status == status:
                return kind
        return cls.BAD_REQUEST if 400 <= status < 500 else cls.INTERNAL_SERVER


class AppError(Exception):
    """
    Base exception for all Flock errors.

    Args:
        message: Human-readable fallback message
        kind: Error kind (status and defaults)
        code: Machine code, defaults to the kind's code
        translation_key: Localization key, defaults to the kind's key
        metadata: Structured context (failed fields, missing resource id, ...)
        request_id: Correlation id of the request that failed
        prioritize_message: Use `message` verbatim instead of translating
        interpolation: Values substituted into the translated message
    """

    kind: ErrorKind = ErrorKind.INTERNAL_SERVER

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        code: Optional[str] = None,
        translation_key: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        request_id: Optional[str] = None,
        prioritize_message: bool = False,
        interpolation: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message
        self.code = code or self.kind.code
        self.translation_key = translation_key or self.kind.translation_key
        self.metadata = metadata or {}
        self.request_id = request_id
        self.prioritize_message = prioritize_message
        self.interpolation = interpolation or {}

    @property
    def status_code(self) -> int:
        return self.kind.status

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for logging."""
        return {
            "kind": self.kind.name,
            "status": self.status_code,
            "code": self.code,
            "message": self.message,
            "translation_key": self.translation_key,
            "metadata": self.metadata,
            "request_id": self.request_id,
        }


class BadRequestError(AppError):
    """Malformed or semantically invalid request."""

    kind = ErrorKind.BAD_REQUEST


class AuthenticationError(AppError):
    """Authentication failed (invalid or missing credentials)."""

    kind = ErrorKind.UNAUTHORIZED


class AuthorizationError(AppError):
    """Authorization failed (insufficient permissions)."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(AppError):
    """Resource not found."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    """Resource already exists or state conflicts with the request."""

    kind = ErrorKind.CONFLICT


class ValidationError(AppError):
    """Input validation failed. Field details live in metadata["errors"]."""

    kind = ErrorKind.UNPROCESSABLE_ENTITY


class GatewayTimeoutError(AppError):
    """An operation did not complete within its time bound."""

    kind = ErrorKind.GATEWAY_TIMEOUT

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Operation timed out: {operation}",
            metadata={"operation": operation, "timeout_seconds": timeout},
        )
