"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

One container lives on `app.state.container`; the lifespan handler builds
it from the settings and the motor database, and tests hand in their own.
"""

from typing import TYPE_CHECKING, Optional

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from shared.config import Settings
from shared.i18n import Translator
from shared.validation import ValidationEngine

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import ITokenService
    from modules.auth.passwords import PasswordService
    from modules.auth.repository import RefreshTokenRepository
    from modules.users.interfaces import IUserService
    from modules.users.repository import FollowerRepository, UserRepository


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.

    Args:
        settings: Application configuration
        database: motor database handle
        translator: Message catalogs (loaded from the bundled locales if omitted)
    """

    def __init__(
        self,
        settings: Settings,
        database: AsyncIOMotorDatabase,
        translator: Optional[Translator] = None,
    ) -> None:
        self.settings = settings
        self.database = database
        self._translator = translator
        self._validation: Optional[ValidationEngine] = None
        self._passwords: "PasswordService | None" = None
        self._refresh_tokens: "RefreshTokenRepository | None" = None
        self._token_service: "ITokenService | None" = None
        self._user_repository: "UserRepository | None" = None
        self._follower_repository: "FollowerRepository | None" = None
        self._user_service: "IUserService | None" = None

    @property
    def translator(self) -> Translator:
        """Get the translator instance."""
        if self._translator is None:
            self._translator = Translator.from_directory(
                default_language=self.settings.app.default_language
            )
        return self._translator

    @property
    def validation(self) -> ValidationEngine:
        """Get the validation engine instance."""
        if self._validation is None:
            self._validation = ValidationEngine(
                self.translator,
                timeout_seconds=self.settings.app.operation_timeout_seconds,
            )
        return self._validation

    @property
    def passwords(self) -> "PasswordService":
        """Get the password hashing service."""
        if self._passwords is None:
            from modules.auth.passwords import PasswordService
            self._passwords = PasswordService()
        return self._passwords

    @property
    def refresh_tokens(self) -> "RefreshTokenRepository":
        """Get the refresh token repository instance."""
        if self._refresh_tokens is None:
            from modules.auth.repository import RefreshTokenRepository
            self._refresh_tokens = RefreshTokenRepository(
                self.database, self.settings.database.mongodb_refresh_tokens_collection
            )
        return self._refresh_tokens

    @property
    def tokens(self) -> "ITokenService":
        """Get the token service instance."""
        if self._token_service is None:
            from modules.auth.service import TokenService
            self._token_service = TokenService(
                settings=self.settings.auth,
                repository=self.refresh_tokens,
                timeout_seconds=self.settings.app.operation_timeout_seconds,
            )
        return self._token_service

    @property
    def user_repository(self) -> "UserRepository":
        """Get the user repository instance."""
        if self._user_repository is None:
            from modules.users.repository import UserRepository
            self._user_repository = UserRepository(
                self.database, self.settings.database.mongodb_users_collection
            )
        return self._user_repository

    @property
    def follower_repository(self) -> "FollowerRepository":
        """Get the follower repository instance."""
        if self._follower_repository is None:
            from modules.users.repository import FollowerRepository
            self._follower_repository = FollowerRepository(
                self.database, self.settings.database.mongodb_followers_collection
            )
        return self._follower_repository

    @property
    def users(self) -> "IUserService":
        """Get the user service instance."""
        if self._user_service is None:
            from modules.users.service import UserService
            self._user_service = UserService(
                users=self.user_repository,
                followers=self.follower_repository,
                tokens=self.tokens,
                passwords=self.passwords,
                settings=self.settings.auth,
            )
        return self._user_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._validation = None
        self._passwords = None
        self._refresh_tokens = None
        self._token_service = None
        self._user_repository = None
        self._follower_repository = None
        self._user_service = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency for the application's service container."""
    return request.app.state.container


def get_translator(container: ServiceContainer = Depends(get_container)) -> Translator:
    """FastAPI dependency for the translator."""
    return container.translator


def get_validation_engine(container: ServiceContainer = Depends(get_container)) -> ValidationEngine:
    """FastAPI dependency for the validation engine."""
    return container.validation


def get_token_service(container: ServiceContainer = Depends(get_container)) -> "ITokenService":
    """FastAPI dependency for token service."""
    return container.tokens


def get_user_service(container: ServiceContainer = Depends(get_container)) -> "IUserService":
    """FastAPI dependency for user service."""
    return container.users
