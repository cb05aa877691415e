"""
Centralized configuration for the Flock backend.

All settings are loaded from environment variables (and an optional .env file)
and validated once at startup. Settings are grouped by concern:

- AppSettings: server, CORS, rate limiting, logging, languages
- AuthSettings: per-token-kind JWT secrets and expiries
- DatabaseSettings: MongoDB connection and collection names
- OAuthSettings: Google OAuth2 client credentials
- CloudStorageSettings: Cloudinary credentials

The aggregated Settings object is frozen; consumers receive it through
their constructors and never mutate it.
"""

import re
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Literal, Optional
from urllib.parse import quote_plus

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: object) -> timedelta:
    """
    Parse a duration such as "15m", "30d" or "3600" into a timedelta.

    Plain numbers are seconds. Accepts timedelta and int values unchanged.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    match = _DURATION_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def _split_csv(value: object) -> object:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


Duration = Annotated[timedelta, BeforeValidator(parse_duration)]
CsvList = Annotated[list[str], NoDecode, BeforeValidator(_split_csv)]


_BASE_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",
    str_strip_whitespace=True,
    frozen=True,
)


class AppSettings(BaseSettings):
    """Server and application-wide settings."""

    model_config = _BASE_CONFIG

    environment: Literal["development", "production", "test"] = "development"
    app_name: str = "Flock API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=4000, gt=0)
    reload: bool = False
    api_prefix: str = "/v1/api"

    # CORS settings
    cors_origins: CsvList = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: CsvList = ["*"]
    cors_allow_headers: CsvList = ["*"]

    # Rate limiting
    rate_limit_window_seconds: int = Field(default=60, gt=0)
    rate_limit_max: int = Field(default=100, gt=0)

    # Logging
    log_level: str = "INFO"

    # Languages
    default_language: str = "en"
    supported_languages: CsvList = ["en", "vi"]

    # Upper bound for validation and token verification
    operation_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("api_prefix")
    @classmethod
    def normalize_prefix(cls, value: str) -> str:
        value = "/" + value.strip("/")
        return "" if value == "/" else value

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class AuthSettings(BaseSettings):
    """JWT settings. Every token kind has its own secret and expiry."""

    model_config = _BASE_CONFIG

    jwt_access_token_secret: str = Field(..., min_length=5)
    access_token_expires_in: Duration = timedelta(minutes=15)

    jwt_refresh_token_secret: str = Field(..., min_length=5)
    refresh_token_expires_in: Duration = timedelta(days=30)

    jwt_email_verify_token_secret: str = Field(..., min_length=5)
    email_verify_token_expires_in: Duration = timedelta(days=7)

    jwt_forgot_password_token_secret: str = Field(..., min_length=5)
    forgot_password_token_expires_in: Duration = timedelta(days=1)

    jwt_algorithm: str = "HS256"

    # Drop every refresh token of a user once their password is reset
    revoke_sessions_on_password_reset: bool = True


class DatabaseSettings(BaseSettings):
    """MongoDB connection settings."""

    model_config = _BASE_CONFIG

    mongodb_uri: Optional[str] = None
    mongodb_host: str = "localhost"
    mongodb_username: Optional[str] = None
    mongodb_password: Optional[str] = None
    mongodb_uri_options: Optional[str] = None
    mongodb_name: str = "flock"

    mongodb_users_collection: str = "users"
    mongodb_refresh_tokens_collection: str = "refresh_tokens"
    mongodb_followers_collection: str = "followers"

    @property
    def connection_uri(self) -> str:
        """Explicit MONGODB_URI if set, otherwise assembled from the parts."""
        if self.mongodb_uri:
            return self.mongodb_uri

        credentials = ""
        if self.mongodb_username and self.mongodb_password:
            credentials = (
                f"{quote_plus(self.mongodb_username)}:"
                f"{quote_plus(self.mongodb_password)}@"
            )
        uri = f"mongodb://{credentials}{self.mongodb_host}/"
        if self.mongodb_uri_options:
            uri += f"?{self.mongodb_uri_options.lstrip('?')}"
        return uri


class OAuthSettings(BaseSettings):
    """Google OAuth2 client credentials."""

    model_config = _BASE_CONFIG

    google_oauth2_client_id: str = ""
    google_oauth2_client_secret: str = ""
    google_oauth2_project_id: str = ""
    google_oauth2_redirect_uris: CsvList = []
    google_oauth2_auth_uri: str = "https://accounts.google.com/o/oauth2/auth"
    google_oauth2_token_uri: str = "https://oauth2.googleapis.com/token"
    google_oauth2_refresh_token: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.google_oauth2_client_id and self.google_oauth2_client_secret)


class CloudStorageSettings(BaseSettings):
    """Cloudinary credentials for media uploads."""

    model_config = _BASE_CONFIG

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_upload_preset: str = ""
    cloudinary_asset_folder: str = ""

    @property
    def enabled(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )


class Settings(BaseModel):
    """Aggregated, immutable application configuration."""

    model_config = ConfigDict(frozen=True)

    app: AppSettings
    auth: AuthSettings
    database: DatabaseSettings
    oauth: OAuthSettings
    storage: CloudStorageSettings


def load_settings() -> Settings:
    """
    Build and validate every settings group from the environment.

    Raises:
        pydantic.ValidationError: If any variable is missing or invalid
    """
    return Settings(
        app=AppSettings(),
        auth=AuthSettings(),
        database=DatabaseSettings(),
        oauth=OAuthSettings(),
        storage=CloudStorageSettings(),
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return load_settings()
