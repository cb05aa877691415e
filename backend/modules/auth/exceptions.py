"""
Authentication module exceptions.

Every token failure is an AuthenticationError (401) with its own code, so
clients can tell an expired token from a revoked one. Failure details
(expiry time, not-before time) travel in metadata.
"""

from datetime import datetime
from typing import Optional

from shared.exceptions import AuthenticationError

from .models import TokenType


class TokenError(AuthenticationError):
    """Base class for token verification failures."""

    def __init__(
        self,
        message: str,
        token_type: TokenType,
        code: str,
        translation_key: str,
        metadata: Optional[dict] = None,
    ):
        super().__init__(
            message,
            code=code,
            translation_key=translation_key,
            metadata={"token_type": token_type.name, **(metadata or {})},
            interpolation={"token_type": token_type.label},
        )
        self.token_type = token_type


class TokenExpiredError(TokenError):
    """Raised when a token's exp is in the past."""

    def __init__(self, token_type: TokenType, expired_at: datetime):
        super().__init__(
            f"{token_type.label} has expired.",
            token_type,
            code="TOKEN_EXPIRED",
            translation_key="auth:TOKEN.EXPIRED",
            metadata={"expired_at": expired_at.isoformat()},
        )
        self.expired_at = expired_at


class TokenNotYetValidError(TokenError):
    """Raised when a token's nbf is in the future."""

    def __init__(self, token_type: TokenType, not_before: Optional[datetime]):
        super().__init__(
            f"{token_type.label} is not active yet.",
            token_type,
            code="TOKEN_NOT_YET_VALID",
            translation_key="auth:TOKEN.NOT_ACTIVATED",
            metadata={"not_before": not_before.isoformat() if not_before else None},
        )
        self.not_before = not_before


class TokenMalformedError(TokenError):
    """Raised when a token is invalid, badly signed, or of the wrong kind."""

    def __init__(self, token_type: TokenType, reason: str = "Invalid token"):
        super().__init__(
            f"{token_type.label} is invalid.",
            token_type,
            code="TOKEN_MALFORMED",
            translation_key="auth:TOKEN.INVALID",
            metadata={"reason": reason},
        )


class TokenRevokedError(TokenError):
    """Raised when a valid token no longer has its backing record."""

    def __init__(self, token_type: TokenType):
        super().__init__(
            f"{token_type.label} has been used or does not exist.",
            token_type,
            code="TOKEN_REVOKED",
            translation_key="auth:TOKEN.USED_OR_NOT_EXIST",
        )


class MissingTokenError(TokenError):
    """Raised when no token was provided."""

    def __init__(
        self,
        token_type: TokenType = TokenType.ACCESS,
        translation_key: str = "auth:TOKEN.IS_REQUIRED",
    ):
        super().__init__(
            f"{token_type.label} is required.",
            token_type,
            code="TOKEN_MISSING",
            translation_key=translation_key,
        )
