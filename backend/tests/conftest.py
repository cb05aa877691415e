"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import os

# Required settings must exist before the api package builds its module-level app.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_ACCESS_TOKEN_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_TOKEN_SECRET", "test-refresh-secret")
os.environ.setdefault("JWT_EMAIL_VERIFY_TOKEN_SECRET", "test-email-verify-secret")
os.environ.setdefault("JWT_FORGOT_PASSWORD_TOKEN_SECRET", "test-forgot-password-secret")

import asyncio

import pytest
from argon2 import PasswordHasher
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from api import create_app
from api.dependencies import ServiceContainer
from modules.auth.passwords import PasswordService
from shared.config import (
    AppSettings,
    AuthSettings,
    CloudStorageSettings,
    DatabaseSettings,
    OAuthSettings,
    Settings,
)
from shared.i18n import Translator
from tests.helpers import API, VALID_REGISTRATION


def fast_password_service() -> PasswordService:
    """Argon2 with minimal cost so tests stay quick."""
    return PasswordService(PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(
        jwt_access_token_secret="test-access-secret",
        jwt_refresh_token_secret="test-refresh-secret",
        jwt_email_verify_token_secret="test-email-verify-secret",
        jwt_forgot_password_token_secret="test-forgot-password-secret",
    )


@pytest.fixture
def settings(auth_settings: AuthSettings) -> Settings:
    """Settings isolated from the process environment."""
    return Settings(
        app=AppSettings(environment="test", log_level="WARNING"),
        auth=auth_settings,
        database=DatabaseSettings(mongodb_name="flock_test"),
        oauth=OAuthSettings(),
        storage=CloudStorageSettings(),
    )


@pytest.fixture(scope="session")
def translator() -> Translator:
    return Translator.from_directory()


@pytest.fixture
def database():
    """A fresh in-memory MongoDB database per test."""
    return AsyncMongoMockClient()["flock_test"]


@pytest.fixture
def container(settings: Settings, database, translator: Translator) -> ServiceContainer:
    container = ServiceContainer(settings, database, translator)
    container._passwords = fast_password_service()
    return container


@pytest.fixture
def app(settings: Settings, container: ServiceContainer):
    return create_app(settings=settings, container=container)


@pytest.fixture
def client(app):
    """Test client with the lifespan running (indexes created)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def run():
    """Run a coroutine to completion from a synchronous test."""
    return asyncio.run


@pytest.fixture
def registered(client: TestClient) -> dict:
    """Register the default user and return their token pair."""
    response = client.post(f"{API}/users/register", json=VALID_REGISTRATION)
    assert response.status_code == 200
    return response.json()["result"]


@pytest.fixture
def verified(client: TestClient, container: ServiceContainer, registered: dict, run) -> dict:
    """Register and verify the default user; returns the verified token pair."""
    user = run(container.user_repository.get_by_email(VALID_REGISTRATION["email"]))
    response = client.post(
        f"{API}/users/verify-email",
        json={"email_verify_token": user.email_verify_token},
    )
    assert response.status_code == 200
    return response.json()["result"]
