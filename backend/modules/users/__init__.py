"""
Users module.

Accounts, credentials, email verification, password reset and follow
relationships.

Public API:
- IUserService: Interface for user operations
- User, request schemas: Data models
- User exceptions: EmailAlreadyExistsError, UserNotFoundError, etc.
"""

from .interfaces import IUserService
from .models import (
    Follower,
    FollowRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UnfollowParams,
    UpdateMeRequest,
    User,
    VerifyEmailRequest,
    VerifyForgotPasswordRequest,
)
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

__all__ = [
    # Interface
    "IUserService",
    # Models
    "Follower",
    "FollowRequest",
    "ForgotPasswordRequest",
    "LoginRequest",
    "RefreshTokenRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "UnfollowParams",
    "UpdateMeRequest",
    "User",
    "VerifyEmailRequest",
    "VerifyForgotPasswordRequest",
    # Exceptions
    "CannotFollowSelfError",
    "EmailAlreadyExistsError",
    "EmailAlreadyVerifiedError",
    "EmailNotRegisteredError",
    "InvalidCredentialsError",
    "InvalidUserIdError",
    "UserBannedError",
    "UserNotFoundError",
    "UserNotVerifiedError",
    "UsernameAlreadyExistsError",
]
