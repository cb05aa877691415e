"""
JWT Authentication middleware.

Validates access tokens issued by the token service and exposes the
decoded payload to route handlers.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from modules.auth.exceptions import MissingTokenError
from modules.auth.interfaces import ITokenService
from modules.auth.models import TokenPayload, TokenType, UserVerifyStatus
from modules.users.exceptions import UserNotVerifiedError

from ..dependencies import get_token_service

# Raw Authorization header; the scheme is checked here so each failure
# gets its own message.
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header value.

    Raises:
        MissingTokenError: If the header is absent, not Bearer, or empty
    """
    if not authorization or not authorization.strip():
        raise MissingTokenError(translation_key="auth:AUTHORIZATION_IS_REQUIRED")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        raise MissingTokenError(translation_key="auth:AUTHORIZATION_MUST_START_WITH_BEARER")

    token = token.strip()
    if not token:
        raise MissingTokenError(translation_key="auth:ACCESS_TOKEN_MISSING")
    return token


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    tokens: ITokenService = Depends(get_token_service),
) -> TokenPayload:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenPayload = Depends(get_current_user)):
            return {"user_id": user.user_id}
    """
    payload = await tokens.verify(TokenType.ACCESS, extract_bearer_token(authorization))
    request.state.user_id = payload.user_id
    return payload


async def get_verified_user(user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    """
    Dependency that requires a logged-in user with a verified email.

    Raises:
        UserNotVerifiedError: If the access token was issued before verification
    """
    if user.verify_status != UserVerifyStatus.VERIFIED:
        raise UserNotVerifiedError(user.user_id)
    return user

