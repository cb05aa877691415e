"""
Authentication module.

Handles token issuance, verification, rotation and revocation, plus
password hashing.

Public API:
- ITokenService: Interface for token operations
- TokenType, TokenPayload, TokenPair: Token models
- Token exceptions: TokenExpiredError, TokenRevokedError, etc.
"""

from .interfaces import ITokenService
from .models import (
    IssueOptions,
    RefreshTokenDocument,
    TokenPair,
    TokenPayload,
    TokenType,
    UserVerifyStatus,
)
from .exceptions import (
    MissingTokenError,
    TokenError,
    TokenExpiredError,
    TokenMalformedError,
    TokenNotYetValidError,
    TokenRevokedError,
)

__all__ = [
    # Interface
    "ITokenService",
    # Models
    "IssueOptions",
    "RefreshTokenDocument",
    "TokenPair",
    "TokenPayload",
    "TokenType",
    "UserVerifyStatus",
    # Exceptions
    "MissingTokenError",
    "TokenError",
    "TokenExpiredError",
    "TokenMalformedError",
    "TokenNotYetValidError",
    "TokenRevokedError",
]
