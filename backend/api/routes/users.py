"""
User-related endpoints.

Provides endpoints for registration, sessions, email verification,
password reset, profiles and follow relationships.

Request bodies go through the validation engine before a handler runs;
errors raised by services are rendered by the global exception handlers.
"""

from fastapi import APIRouter, Depends, Request

from modules.auth.models import TokenPayload
from modules.users.interfaces import IUserService
from modules.users.models import (
    FollowRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UnfollowParams,
    UpdateMeRequest,
    VerifyEmailRequest,
    VerifyForgotPasswordRequest,
)
from modules.users.rules import email_available, email_registered, valid_credentials
from shared.models import SuccessResponse

from ..dependencies import get_user_service
from ..middleware.auth import get_current_user, get_verified_user
from ..middleware.validation import get_validation_state, validated_body, validated_params
from ..responses import success

router = APIRouter()


# -----------------------------------------------------------------------------
# Registration and sessions
# -----------------------------------------------------------------------------


@router.post("/register")
async def register(
    request: Request,
    data: RegisterRequest = Depends(validated_body(RegisterRequest, email_available)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """
    Create an account.

    The new user is unverified; the response carries their first token pair.
    """
    registration = await users.register(data)
    return success(request, "auth:REGISTER_SUCCESS", registration.tokens.model_dump(by_alias=True))


@router.post("/login")
async def login(
    request: Request,
    data: LoginRequest = Depends(validated_body(LoginRequest, valid_credentials)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """
    Exchange email and password for a token pair.

    The credentials were checked by the validation rule, which left the
    authenticated user in the validation state.
    """
    user = get_validation_state(request)["user"]
    tokens = await users.login(user)
    return success(request, "auth:LOGIN_SUCCESS", tokens.model_dump(by_alias=True))


@router.post("/logout")
async def logout(
    request: Request,
    current_user: TokenPayload = Depends(get_current_user),
    data: RefreshTokenRequest = Depends(validated_body(RefreshTokenRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """Revoke the given refresh token of the current user."""
    await users.logout(current_user.user_id, data.refresh_token)
    return success(request, "auth:LOGOUT_SUCCESS")


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    data: RefreshTokenRequest = Depends(validated_body(RefreshTokenRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """Rotate a refresh token. The old token stops working immediately."""
    tokens = await users.refresh_token(data.refresh_token)
    return success(request, "auth:REFRESH_TOKEN_SUCCESS", tokens.model_dump(by_alias=True))


# -----------------------------------------------------------------------------
# Email verification
# -----------------------------------------------------------------------------


@router.post("/verify-email")
async def verify_email(
    request: Request,
    data: VerifyEmailRequest = Depends(validated_body(VerifyEmailRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """Consume an email-verify token and return a pair carrying the verified status."""
    tokens = await users.verify_email_token(data.email_verify_token)
    return success(request, "auth:EMAIL_VERIFY_SUCCESS", tokens.model_dump(by_alias=True))


@router.post("/resend-verify-email")
async def resend_verify_email(
    request: Request,
    current_user: TokenPayload = Depends(get_current_user),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    await users.resend_verify_email(current_user.user_id)
    return success(request, "auth:RESEND_VERIFY_EMAIL_SUCCESS")


# -----------------------------------------------------------------------------
# Password reset
# -----------------------------------------------------------------------------


@router.post("/forgot-password")
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest = Depends(validated_body(ForgotPasswordRequest, email_registered)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    await users.forgot_password(data.email)
    return success(request, "auth:CHECK_EMAIL_TO_RESET_PASSWORD")


@router.post("/verify-forgot-password")
async def verify_forgot_password(
    request: Request,
    data: VerifyForgotPasswordRequest = Depends(validated_body(VerifyForgotPasswordRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    await users.verify_forgot_password(data.forgot_password_token)
    return success(request, "auth:VERIFY_FORGOT_PASSWORD_SUCCESS")


@router.post("/reset-password")
async def reset_password(
    request: Request,
    data: ResetPasswordRequest = Depends(validated_body(ResetPasswordRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """Set a new password using a forgot-password token."""
    await users.reset_password(data.forgot_password_token, data.password)
    return success(request, "auth:RESET_PASSWORD_SUCCESS")


# -----------------------------------------------------------------------------
# Profiles
# -----------------------------------------------------------------------------


@router.get("/me")
async def get_me(
    request: Request,
    current_user: TokenPayload = Depends(get_current_user),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """
    Get the current user's profile.

    Requires authentication.
    """
    user = await users.get_me(current_user.user_id)
    return success(request, "user:GET_ME_SUCCESS", user.to_public())


@router.patch("/me")
async def update_me(
    request: Request,
    current_user: TokenPayload = Depends(get_verified_user),
    data: UpdateMeRequest = Depends(validated_body(UpdateMeRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """
    Update profile fields of the current user.

    Requires a verified account.
    """
    user = await users.update_me(current_user.user_id, data)
    return success(request, "user:UPDATE_ME_SUCCESS", user.to_public())


# -----------------------------------------------------------------------------
# Follow relationships
# -----------------------------------------------------------------------------


@router.post("/follow")
async def follow(
    request: Request,
    current_user: TokenPayload = Depends(get_verified_user),
    data: FollowRequest = Depends(validated_body(FollowRequest)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    created = await users.follow_user(current_user.user_id, data.followed_user_id)
    return success(request, "user:FOLLOW_SUCCESS" if created else "user:ALREADY_FOLLOWING")


@router.delete("/follow/{user_id}")
async def unfollow(
    request: Request,
    current_user: TokenPayload = Depends(get_verified_user),
    params: UnfollowParams = Depends(validated_params(UnfollowParams)),
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """Unfollow a user. Unfollowing someone you do not follow still succeeds."""
    removed = await users.unfollow_user(current_user.user_id, params.user_id)
    return success(request, "user:UNFOLLOW_SUCCESS" if removed else "user:NOT_FOLLOWING")


@router.get("/{username}")
async def get_user_profile(
    request: Request,
    username: str,
    users: IUserService = Depends(get_user_service),
) -> SuccessResponse:
    """Public profile of any user by username."""
    user = await users.get_user_profile(username)
    return success(request, "user:GET_USER_PROFILE_SUCCESS", user.to_public())
