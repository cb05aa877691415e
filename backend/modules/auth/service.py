"""
Token service implementation.

Issues and verifies the four token kinds with PyJWT. Every kind has its own
secret and default expiry; refresh tokens are additionally backed by a
persisted record so they can be revoked.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from shared.config import AuthSettings
from shared.exceptions import GatewayTimeoutError

from .exceptions import (
    MissingTokenError,
    TokenExpiredError,
    TokenMalformedError,
    TokenNotYetValidError,
    TokenRevokedError,
)
from .interfaces import ITokenService
from .models import IssueOptions, TokenPair, TokenPayload, TokenType, UserVerifyStatus
from .repository import RefreshTokenRepository

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["user_id", "token_type", "jti", "iat", "exp"]


class TokenService(ITokenService):
    """
    Implementation of the token service.

    Args:
        settings: Secrets, expiries and algorithm
        repository: Refresh token records
        timeout_seconds: Upper bound for one verify() call
    """

    def __init__(
        self,
        settings: AuthSettings,
        repository: RefreshTokenRepository,
        timeout_seconds: float = 10.0,
    ):
        self._settings = settings
        self._repository = repository
        self._timeout = timeout_seconds

    def _secret(self, kind: TokenType) -> str:
        return {
            TokenType.ACCESS: self._settings.jwt_access_token_secret,
            TokenType.REFRESH: self._settings.jwt_refresh_token_secret,
            TokenType.EMAIL_VERIFY: self._settings.jwt_email_verify_token_secret,
            TokenType.FORGOT_PASSWORD: self._settings.jwt_forgot_password_token_secret,
        }[kind]

    def _default_expiry(self, kind: TokenType) -> timedelta:
        return {
            TokenType.ACCESS: self._settings.access_token_expires_in,
            TokenType.REFRESH: self._settings.refresh_token_expires_in,
            TokenType.EMAIL_VERIFY: self._settings.email_verify_token_expires_in,
            TokenType.FORGOT_PASSWORD: self._settings.forgot_password_token_expires_in,
        }[kind]

    async def issue(
        self,
        kind: TokenType,
        user_id: str,
        verify_status: Optional[UserVerifyStatus] = None,
        options: Optional[IssueOptions] = None,
    ) -> str:
        options = options or IssueOptions()
        now = datetime.now(timezone.utc)
        claims: dict[str, Any] = {
            "user_id": str(user_id),
            "token_type": int(kind),
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + (options.expires_in or self._default_expiry(kind)),
        }
        if verify_status is not None:
            claims["verify_status"] = UserVerifyStatus(verify_status).value
        if options.not_before is not None:
            not_before = options.not_before
            claims["nbf"] = now + not_before if isinstance(not_before, timedelta) else not_before

        return jwt.encode(claims, self._secret(kind), algorithm=self._settings.jwt_algorithm)

    async def verify(self, kind: TokenType, token: Optional[str]) -> TokenPayload:
        if not token:
            raise MissingTokenError(kind)
        try:
            return await asyncio.wait_for(self._verify(kind, token), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("%s verification timed out after %ss", kind.label, self._timeout)
            raise GatewayTimeoutError(f"verify:{kind.name.lower()}", self._timeout) from None

    async def _verify(self, kind: TokenType, token: str) -> TokenPayload:
        claims = self._decode(kind, token)
        try:
            payload = TokenPayload.model_validate(claims)
        except PydanticValidationError as exc:
            raise TokenMalformedError(kind, f"Invalid claims: {exc.error_count()} error(s)") from None

        if payload.token_type != kind:
            raise TokenMalformedError(kind, f"Expected {kind.name} token, got {payload.token_type.name}")

        if kind == TokenType.REFRESH and not await self._repository.exists(payload.user_id, token):
            raise TokenRevokedError(kind)

        return payload

    def _decode(self, kind: TokenType, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret(kind),
                algorithms=[self._settings.jwt_algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            # Signature was verified before the expiry check failed.
            claims = jwt.decode(token, options={"verify_signature": False})
            raise TokenExpiredError(kind, datetime.fromtimestamp(claims["exp"], tz=timezone.utc)) from None
        except jwt.ImmatureSignatureError:
            claims = jwt.decode(token, options={"verify_signature": False})
            raw = claims.get("nbf", claims.get("iat"))
            not_before = datetime.fromtimestamp(raw, tz=timezone.utc) if raw is not None else None
            raise TokenNotYetValidError(kind, not_before) from None
        except jwt.InvalidTokenError as e:
            raise TokenMalformedError(kind, str(e)) from None

    async def revoke(self, user_id: str, token: str) -> bool:
        deleted = await self._repository.delete(user_id, token)
        if not deleted:
            logger.debug("Refresh token for user %s already revoked", user_id)
        return deleted

    async def revoke_all(self, user_id: str) -> int:
        return await self._repository.delete_all_for_user(user_id)

    async def rotate(self, user_id: str, old_token: str) -> str:
        """
        Swap a refresh token for a new one.

        The old record is deleted before the new one is written. A delete that
        removes nothing means another request already used the token.
        """
        payload = await self.verify(TokenType.REFRESH, old_token)
        if payload.user_id != str(user_id):
            raise TokenMalformedError(TokenType.REFRESH, "Token does not belong to this user")

        if not await self._repository.delete(payload.user_id, old_token):
            logger.warning("Refresh token reuse detected for user %s", payload.user_id)
            raise TokenRevokedError(TokenType.REFRESH)

        new_token = await self.issue(TokenType.REFRESH, payload.user_id, payload.verify_status)
        await self._repository.create(payload.user_id, new_token)
        return new_token

    async def issue_pair(self, user_id: str, verify_status: UserVerifyStatus) -> TokenPair:
        access_token, refresh_token = await asyncio.gather(
            self.issue(TokenType.ACCESS, user_id, verify_status),
            self.issue(TokenType.REFRESH, user_id, verify_status),
        )
        await self._repository.create(str(user_id), refresh_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)
