"""
Authentication module data models.

These models define the token claims, the persisted refresh token record
and the token pair handed back to clients.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from shared.models import PyObjectId


class TokenType(IntEnum):
    """Token kinds. Each kind has its own secret and expiry."""

    ACCESS = 0
    REFRESH = 1
    FORGOT_PASSWORD = 2
    EMAIL_VERIFY = 3

    @property
    def label(self) -> str:
        """Human name used in messages ("Access token")."""
        return self.name.replace("_", " ").capitalize() + " token"


class UserVerifyStatus(str, Enum):
    """Account verification state carried in tokens and on the user."""

    UNVERIFIED = "Unverified"
    VERIFIED = "Verified"
    BANNED = "Banned"


class TokenPayload(BaseModel):
    """
    Decoded token claims.

    Reconstructed from the signed token on every authenticated request;
    never persisted.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: str = Field(..., description="Owner user id (ObjectId hex)")
    token_type: TokenType = Field(..., description="Token kind")
    verify_status: Optional[UserVerifyStatus] = Field(None, description="Verify status at issue time")
    jti: str = Field(..., description="Unique token id")
    iat: int = Field(..., description="Issued at timestamp")
    exp: int = Field(..., description="Expiration timestamp")
    nbf: Optional[int] = Field(None, description="Not-before timestamp")

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


class IssueOptions(BaseModel):
    """Per-call overrides for issue()."""

    expires_in: Optional[timedelta] = Field(None, description="Override the kind's default expiry")
    not_before: Optional[Union[datetime, timedelta]] = Field(
        None, description="Absolute time, or delay from now, before which the token is invalid"
    )


class RefreshTokenDocument(BaseModel):
    """A persisted refresh token (refresh_tokens collection)."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[PyObjectId] = Field(None, alias="_id")
    user_id: PyObjectId
    token: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TokenPair(BaseModel):
    """Access and refresh tokens returned by login, register and refresh."""

    access_token: str = Field(..., serialization_alias="accessToken")
    refresh_token: str = Field(..., serialization_alias="refreshToken")
