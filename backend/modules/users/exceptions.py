"""
Users module exceptions.
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
)


class EmailAlreadyExistsError(ConflictError):
    """Raised when registering with an email that is already taken."""

    def __init__(self, email: str):
        super().__init__(
            f"Email already exists: {email}",
            translation_key="user:EMAIL_ALREADY_EXISTS",
            metadata={"email": email},
        )


class UsernameAlreadyExistsError(ConflictError):
    """Raised when a profile update picks a username someone else has."""

    def __init__(self, username: str):
        super().__init__(
            f"Username already exists: {username}",
            code="USERNAME_ALREADY_EXISTS",
            translation_key="user:USERNAME_ALREADY_EXISTS",
            metadata={"username": username},
        )


class EmailAlreadyVerifiedError(ConflictError):
    """Raised when verifying (or re-sending verification for) a verified account."""

    def __init__(self, user_id: str):
        super().__init__(
            "Email has already been verified.",
            code="EMAIL_ALREADY_VERIFIED",
            translation_key="auth:EMAIL_ALREADY_VERIFIED",
            metadata={"user_id": user_id},
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user id or username does not exist."""

    def __init__(self, identifier: str):
        super().__init__(
            f"User not found: {identifier}",
            code="USER_NOT_FOUND",
            translation_key="user:USER_NOT_FOUND",
            metadata={"user": identifier},
        )


class InvalidUserIdError(NotFoundError):
    """Raised when a user id is not a valid ObjectId."""

    def __init__(self, user_id: str):
        super().__init__(
            f"Invalid user id: {user_id}",
            code="USER_NOT_FOUND",
            translation_key="user:INVALID_USER_ID",
            metadata={"user_id": user_id},
        )


class EmailNotRegisteredError(NotFoundError):
    """Raised when asking for a password reset on an unknown email."""

    def __init__(self, email: str):
        super().__init__(
            f"Email is not registered: {email}",
            code="EMAIL_NOT_REGISTERED",
            translation_key="user:EMAIL_IS_NOT_REGISTERED",
            metadata={"email": email},
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when email or password do not match."""

    def __init__(self):
        super().__init__(
            "Email or password is incorrect.",
            code="INVALID_CREDENTIALS",
            translation_key="auth:PASSWORD_IS_INCORRECT",
        )


class UserNotVerifiedError(AuthorizationError):
    """Raised when an action requires a verified account."""

    def __init__(self, user_id: str):
        super().__init__(
            "User has not verified account yet.",
            code="USER_NOT_VERIFIED",
            translation_key="auth:USER_NOT_VERIFIED",
            metadata={"user_id": user_id},
        )


class UserBannedError(AuthorizationError):
    """Raised when a banned account tries to sign in."""

    def __init__(self, user_id: str):
        super().__init__(
            "This account has been banned.",
            code="ACCOUNT_BANNED",
            translation_key="auth:ACCOUNT_BANNED",
            metadata={"user_id": user_id},
        )


class CannotFollowSelfError(BadRequestError):
    """Raised when a user tries to follow themselves."""

    def __init__(self, user_id: str):
        super().__init__(
            "You cannot follow yourself.",
            code="CANNOT_FOLLOW_SELF",
            translation_key="user:CANNOT_FOLLOW_SELF",
            metadata={"user_id": user_id},
        )
