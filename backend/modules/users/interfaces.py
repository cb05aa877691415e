"""
Users module interface.

The API layer depends on IUserService for all account operations.
"""

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from modules.auth.models import TokenPair

from .models import RegisterRequest, UpdateMeRequest, User

if TYPE_CHECKING:
    from .service import RegistrationResult


@runtime_checkable
class IUserService(Protocol):
    """
    Interface for account, credential and follow operations.

    Callers are expected to have validated request bodies already.
    """

    async def email_exists(self, email: str) -> bool:
        ...

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check a user's credentials.

        Raises:
            InvalidCredentialsError: If email or password do not match
        """
        ...

    async def register(self, data: RegisterRequest) -> "RegistrationResult":
        """
        Create an unverified user with an email-verify token and sign them in.

        Raises:
            EmailAlreadyExistsError: If the email is taken
        """
        ...

    async def login(self, user: User) -> TokenPair:
        """Issue and persist a token pair for an authenticated user."""
        ...

    async def logout(self, user_id: str, refresh_token: str) -> None:
        ...

    async def refresh_token(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token and issue a fresh access token."""
        ...

    async def verify_email(self, user_id: str, token: Optional[str] = None) -> TokenPair:
        ...

    async def verify_email_token(self, token: str) -> TokenPair:
        ...

    async def resend_verify_email(self, user_id: str) -> None:
        ...

    async def forgot_password(self, email: str) -> None:
        ...

    async def verify_forgot_password(self, token: str) -> User:
        ...

    async def reset_password(self, token: str, password: str) -> None:
        ...

    async def get_me(self, user_id: str) -> User:
        ...

    async def update_me(self, user_id: str, data: UpdateMeRequest) -> User:
        ...

    async def get_user_profile(self, username: str) -> User:
        ...

    async def follow_user(self, user_id: str, followed_user_id: str) -> bool:
        ...

    async def unfollow_user(self, user_id: str, followed_user_id: str) -> bool:
        ...
