"""
Users module data models.

Document models for the users and followers collections, plus the request
schemas the validation engine checks before any handler runs.
"""

import re
from datetime import date, datetime, time, timezone
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_serializer,
)
from pydantic_core import PydanticCustomError

from modules.auth.models import UserVerifyStatus
from shared.models import PyObjectId

PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{6,}$"
)
USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MIN_AGE = 13
MAX_AGE = 120

# Fields a user may change through PATCH /me.
UPDATABLE_PROFILE_FIELDS = frozenset(
    {"name", "date_of_birth", "bio", "location", "website", "username", "avatar", "cover_photo"}
)
PRIVATE_FIELDS = frozenset({"password", "email_verify_token", "forgot_password_token"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_age(born: date, today: Optional[date] = None) -> int:
    """Whole years between born and today."""
    today = today or _utcnow().date()
    return today.year - born.year - ((today.month, today.day) < (born.month, born.day))


def to_datetime(value: date) -> datetime:
    """Midnight UTC of a date; BSON has no date-only type."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class User(BaseModel):
    """A user document (users collection)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[PyObjectId] = Field(None, alias="_id")
    name: str
    email: str
    password: str = ""
    date_of_birth: datetime
    verify_status: UserVerifyStatus = UserVerifyStatus.UNVERIFIED
    email_verify_token: str = ""
    forgot_password_token: str = ""
    bio: str = ""
    location: str = ""
    website: str = ""
    username: Optional[str] = None
    avatar: str = ""
    cover_photo: str = ""
    followers_count: int = 0
    following_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_serializer("verify_status")
    def serialize_verify_status(self, value: UserVerifyStatus) -> str:
        return UserVerifyStatus(value).value

    @property
    def is_verified(self) -> bool:
        return self.verify_status == UserVerifyStatus.VERIFIED

    def to_document(self) -> dict[str, Any]:
        """Mongo document. Unset optional fields are left out."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_public(self) -> dict[str, Any]:
        """JSON-safe view without credentials or one-time tokens."""
        return self.model_dump(mode="json", by_alias=True, exclude=set(PRIVATE_FIELDS))


class Follower(BaseModel):
    """A follow edge (followers collection)."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[PyObjectId] = Field(None, alias="_id")
    user_id: PyObjectId
    followed_user_id: PyObjectId
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True, extra="ignore")


def _check_password_complexity(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise PydanticCustomError(
            "password_complexity",
            "Password must contain an uppercase letter, a lowercase letter, "
            "a number and a special character",
        )
    return value


def _check_passwords_match(value: str, info: ValidationInfo) -> str:
    password = info.data.get("password")
    if password is not None and value != password:
        raise PydanticCustomError(
            "password_mismatch",
            "Password confirmation does not match password",
        )
    return value


def _parse_birth_date(value: Any) -> Any:
    """Date-only input is midnight UTC; full ISO 8601 timestamps are kept as sent."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return to_datetime(value)
    if isinstance(value, str) and DATE_ONLY_PATTERN.match(value.strip()):
        try:
            return to_datetime(date.fromisoformat(value.strip()))
        except ValueError:
            return value
    return value


def _check_age(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    age = calculate_age(value.date())
    if age < MIN_AGE:
        raise PydanticCustomError(
            "too_young",
            "You must be at least {min_age} years old",
            {"min_age": MIN_AGE},
        )
    if age > MAX_AGE:
        raise PydanticCustomError(
            "too_old",
            "Date of birth must be within the last {max_age} years",
            {"max_age": MAX_AGE},
        )
    return value


Password = Annotated[
    str,
    Field(min_length=6, max_length=50),
    AfterValidator(_check_password_complexity),
]
PasswordConfirmation = Annotated[
    str,
    Field(min_length=6, max_length=50),
    AfterValidator(_check_passwords_match),
]
BirthDate = Annotated[
    datetime,
    BeforeValidator(_parse_birth_date),
    AfterValidator(_check_age),
]


class RegisterRequest(_Request):
    """POST /register body."""

    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: Password
    confirm_password: PasswordConfirmation = Field(
        ...,
        validation_alias=AliasChoices("confirmPassword", "confirm_password"),
    )
    date_of_birth: BirthDate


class LoginRequest(_Request):
    """POST /login body."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=50)


class RefreshTokenRequest(_Request):
    """POST /logout and POST /refresh-token body."""

    refresh_token: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("refresh_token", "refreshToken"),
    )


class VerifyEmailRequest(_Request):
    """POST /verify-email body."""

    email_verify_token: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("email_verify_token", "emailVerifyToken"),
    )


class ForgotPasswordRequest(_Request):
    """POST /forgot-password body."""

    email: EmailStr


class VerifyForgotPasswordRequest(_Request):
    """POST /verify-forgot-password body."""

    forgot_password_token: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("forgot_password_token", "forgotPasswordToken"),
    )


class ResetPasswordRequest(VerifyForgotPasswordRequest):
    """POST /reset-password body."""

    password: Password
    confirm_password: PasswordConfirmation = Field(
        ...,
        validation_alias=AliasChoices("confirmPassword", "confirm_password"),
    )


class UpdateMeRequest(_Request):
    """
    PATCH /me body.

    Only profile fields are accepted; anything else is dropped.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    date_of_birth: Optional[BirthDate] = None
    bio: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    website: Optional[str] = Field(None, max_length=200)
    username: Optional[str] = Field(None, min_length=4, max_length=15, pattern=USERNAME_PATTERN)
    avatar: Optional[str] = Field(None, max_length=400)
    cover_photo: Optional[str] = Field(None, max_length=400)

    def changes(self) -> dict[str, Any]:
        """Explicitly provided, non-null profile fields."""
        fields = self.model_dump(exclude_unset=True, exclude_none=True)
        return {key: value for key, value in fields.items() if key in UPDATABLE_PROFILE_FIELDS}


class FollowRequest(_Request):
    """POST /follow body."""

    followed_user_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("followed_user_id", "followedUserId"),
    )


class UnfollowParams(_Request):
    """DELETE /follow/{user_id} path parameters."""

    user_id: str = Field(..., min_length=1)
