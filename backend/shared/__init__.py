"""
Shared infrastructure for the Flock backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: MongoDB client factory and index bootstrap
- exceptions: Error kinds and base exception classes
- i18n: Translation catalogs
- validation: Request validation engine

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import close_client, get_database, get_mongo_client, reset_client_cache
from .exceptions import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    ErrorKind,
    GatewayTimeoutError,
    NotFoundError,
    ValidationError,
)
from .i18n import Translator
from .models import ErrorResponse, PyObjectId, SuccessResponse
from .validation import RuleContext, RuleViolation, ValidationEngine, ValidationOptions

__all__ = [
    "Settings",
    "get_settings",
    "close_client",
    "get_database",
    "get_mongo_client",
    "reset_client_cache",
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "BadRequestError",
    "ConflictError",
    "ErrorKind",
    "GatewayTimeoutError",
    "NotFoundError",
    "ValidationError",
    "Translator",
    "ErrorResponse",
    "PyObjectId",
    "SuccessResponse",
    "RuleContext",
    "RuleViolation",
    "ValidationEngine",
    "ValidationOptions",
]
