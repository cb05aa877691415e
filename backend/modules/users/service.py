"""
User service implementation.

Orchestrates accounts, credentials and follow relationships on top of the
token service. Inputs arrive already validated; this layer owns the
business rules (one-time tokens, verification state, follow invariants).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from modules.auth.exceptions import TokenMalformedError, TokenRevokedError
from modules.auth.interfaces import ITokenService
from modules.auth.models import TokenPair, TokenType, UserVerifyStatus
from modules.auth.passwords import PasswordService
from shared.config import AuthSettings

from .exceptions import (
    CannotFollowSelfError,
    EmailAlreadyExistsError,
    EmailAlreadyVerifiedError,
    EmailNotRegisteredError,
    InvalidCredentialsError,
    InvalidUserIdError,
    UserBannedError,
    UserNotFoundError,
    UserNotVerifiedError,
    UsernameAlreadyExistsError,
)
from .interfaces import IUserService
from .models import RegisterRequest, UpdateMeRequest, User
from .repository import FollowerRepository, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    """A freshly registered user and their first token pair."""

    user: User
    tokens: TokenPair


class UserService(IUserService):
    """
    Implementation of the user service.

    Args:
        users: User documents
        followers: Follow edges
        tokens: Token issuance and verification
        passwords: Password hashing
        settings: Auth settings (session revocation policy)
    """

    def __init__(
        self,
        users: UserRepository,
        followers: FollowerRepository,
        tokens: ITokenService,
        passwords: PasswordService,
        settings: AuthSettings,
    ):
        self._users = users
        self._followers = followers
        self._tokens = tokens
        self._passwords = passwords
        self._settings = settings

    async def _require_user(self, user_id: str) -> User:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    # -------------------------------------------------------------------------
    # Credentials
    # -------------------------------------------------------------------------

    async def email_exists(self, email: str) -> bool:
        return await self._users.email_exists(email)

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check email and password.

        Raises:
            InvalidCredentialsError: If either does not match
            UserBannedError: If the account is banned
        """
        user = await self._users.get_by_email(email)
        if user is None or not await self._passwords.verify(user.password, password):
            raise InvalidCredentialsError()
        if user.verify_status == UserVerifyStatus.BANNED:
            raise UserBannedError(str(user.id))
        if self._passwords.needs_rehash(user.password):
            user.password = await self._passwords.hash(password)
            await self._users.update_fields(user.id, {"password": user.password})
            logger.info("Rehashed password for user %s", user.id)
        return user

    async def register(self, data: RegisterRequest) -> RegistrationResult:
        user_id = ObjectId()
        email_verify_token = await self._tokens.issue(
            TokenType.EMAIL_VERIFY, str(user_id), UserVerifyStatus.UNVERIFIED
        )
        user = User(
            id=user_id,
            name=data.name,
            email=data.email,
            password=await self._passwords.hash(data.password),
            date_of_birth=data.date_of_birth,
            verify_status=UserVerifyStatus.UNVERIFIED,
            email_verify_token=email_verify_token,
        )
        try:
            user = await self._users.create(user)
        except DuplicateKeyError:
            raise EmailAlreadyExistsError(data.email) from None

        tokens = await self._tokens.issue_pair(str(user_id), user.verify_status)
        logger.info("Registered user %s; verification email queued for %s", user_id, user.email)
        return RegistrationResult(user=user, tokens=tokens)

    async def login(self, user: User) -> TokenPair:
        tokens = await self._tokens.issue_pair(str(user.id), user.verify_status)
        logger.info("User %s logged in", user.id)
        return tokens

    async def logout(self, user_id: str, refresh_token: str) -> None:
        payload = await self._tokens.verify(TokenType.REFRESH, refresh_token)
        if payload.user_id != user_id:
            raise TokenMalformedError(TokenType.REFRESH, "Token does not belong to this user")
        await self._tokens.revoke(user_id, refresh_token)
        logger.info("User %s logged out", user_id)

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        payload = await self._tokens.verify(TokenType.REFRESH, refresh_token)
        user = await self._require_user(payload.user_id)
        new_refresh_token = await self._tokens.rotate(payload.user_id, refresh_token)
        access_token = await self._tokens.issue(TokenType.ACCESS, payload.user_id, user.verify_status)
        return TokenPair(access_token=access_token, refresh_token=new_refresh_token)

    # -------------------------------------------------------------------------
    # Email verification
    # -------------------------------------------------------------------------

    async def verify_email(self, user_id: str, token: Optional[str] = None) -> TokenPair:
        """
        Consume the email-verify token and mark the user verified.

        When `token` is given it must equal the stored one; a newer token
        from resend_verify_email() supersedes older ones.

        Raises:
            EmailAlreadyVerifiedError: If the stored token is already empty
        """
        user = await self._require_user(user_id)
        if not user.email_verify_token:
            raise EmailAlreadyVerifiedError(user_id)
        if token is not None and token != user.email_verify_token:
            raise TokenRevokedError(TokenType.EMAIL_VERIFY)

        await self._users.update_fields(
            user.id,
            {"email_verify_token": "", "verify_status": UserVerifyStatus.VERIFIED.value},
        )
        logger.info("User %s verified their email", user_id)
        return await self._tokens.issue_pair(user_id, UserVerifyStatus.VERIFIED)

    async def verify_email_token(self, token: str) -> TokenPair:
        payload = await self._tokens.verify(TokenType.EMAIL_VERIFY, token)
        return await self.verify_email(payload.user_id, token)

    async def resend_verify_email(self, user_id: str) -> None:
        user = await self._require_user(user_id)
        if user.is_verified:
            raise EmailAlreadyVerifiedError(user_id)

        token = await self._tokens.issue(TokenType.EMAIL_VERIFY, user_id, user.verify_status)
        await self._users.update_fields(user.id, {"email_verify_token": token})
        logger.info("Verification email re-queued for %s", user.email)

    # -------------------------------------------------------------------------
    # Password reset
    # -------------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        user = await self._users.get_by_email(email)
        if user is None:
            raise EmailNotRegisteredError(email)

        token = await self._tokens.issue(TokenType.FORGOT_PASSWORD, str(user.id), user.verify_status)
        await self._users.update_fields(user.id, {"forgot_password_token": token})
        logger.info("Password reset email queued for %s", email)

    async def verify_forgot_password(self, token: str) -> User:
        """
        Check a forgot-password token against the user it names.

        Raises:
            TokenError: If the token fails verification
            UserNotFoundError: If the user in the token is gone
            TokenRevokedError: If the token is not the one currently stored
        """
        payload = await self._tokens.verify(TokenType.FORGOT_PASSWORD, token)
        user = await self._require_user(payload.user_id)
        if not user.forgot_password_token or user.forgot_password_token != token:
            raise TokenRevokedError(TokenType.FORGOT_PASSWORD)
        return user

    async def reset_password(self, token: str, password: str) -> None:
        user = await self.verify_forgot_password(token)
        await self._users.update_fields(
            user.id,
            {"password": await self._passwords.hash(password), "forgot_password_token": ""},
        )
        if self._settings.revoke_sessions_on_password_reset:
            revoked = await self._tokens.revoke_all(str(user.id))
            logger.info("Password reset for user %s; revoked %d session(s)", user.id, revoked)
        else:
            logger.info("Password reset for user %s", user.id)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def get_me(self, user_id: str) -> User:
        return await self._require_user(user_id)

    async def update_me(self, user_id: str, data: UpdateMeRequest) -> User:
        user = await self._require_user(user_id)
        if not user.is_verified:
            raise UserNotVerifiedError(user_id)

        changes = data.changes()

        username = changes.get("username")
        if username and await self._users.username_taken(username, exclude_user_id=user.id):
            raise UsernameAlreadyExistsError(username)
        if not changes:
            return user

        try:
            updated = await self._users.update_fields(user.id, changes)
        except DuplicateKeyError:
            raise UsernameAlreadyExistsError(username or "") from None
        return updated or user

    async def get_user_profile(self, username: str) -> User:
        user = await self._users.get_by_username(username)
        if user is None:
            raise UserNotFoundError(username)
        return user

    # -------------------------------------------------------------------------
    # Follow relationships
    # -------------------------------------------------------------------------

    async def _resolve_target(self, user_id: str, followed_user_id: str) -> tuple[ObjectId, ObjectId]:
        target_id = self._users.to_object_id(followed_user_id)
        if target_id is None:
            raise InvalidUserIdError(followed_user_id)
        source_id = self._users.to_object_id(user_id)
        if source_id is None:
            raise InvalidUserIdError(user_id)
        if source_id == target_id:
            raise CannotFollowSelfError(user_id)
        if await self._users.get_by_id(target_id) is None:
            raise UserNotFoundError(followed_user_id)
        return source_id, target_id

    async def follow_user(self, user_id: str, followed_user_id: str) -> bool:
        """
        Follow another user.

        Returns:
            True if a new edge was created, False if already following.
        """
        source_id, target_id = await self._resolve_target(user_id, followed_user_id)
        created = await self._followers.follow(source_id, target_id)
        if created:
            await self._users.increment_counter(source_id, "following_count", 1)
            await self._users.increment_counter(target_id, "followers_count", 1)
            logger.info("User %s followed %s", user_id, followed_user_id)
        return created

    async def unfollow_user(self, user_id: str, followed_user_id: str) -> bool:
        """
        Unfollow a user. Removing a missing edge is not an error.

        Returns:
            True if an edge was removed.
        """
        source_id, target_id = await self._resolve_target(user_id, followed_user_id)
        removed = await self._followers.unfollow(source_id, target_id)
        if removed:
            await self._users.increment_counter(source_id, "following_count", -1)
            await self._users.increment_counter(target_id, "followers_count", -1)
            logger.info("User %s unfollowed %s", user_id, followed_user_id)
        return removed
