import pytest
from datetime import datetime, timezone

from bson import ObjectId

from modules.auth.models import (
    RefreshTokenDocument,
    TokenPair,
    TokenPayload,
    TokenType,
    UserVerifyStatus,
)


class TestTokenType:
    def test_wire_values(self):
        """Token kinds should keep their numeric claim values."""
        assert TokenType.ACCESS == 0
        assert TokenType.REFRESH == 1
        assert TokenType.FORGOT_PASSWORD == 2
        assert TokenType.EMAIL_VERIFY == 3

    def test_label(self):
        """Labels are used in user-facing messages."""
        assert TokenType.ACCESS.label == "Access token"
        assert TokenType.FORGOT_PASSWORD.label == "Forgot password token"


class TestTokenPayload:
    def test_parse_claims(self):
        """Should build a payload from decoded claims."""
        payload = TokenPayload.model_validate(
            {
                "user_id": "65f1c0ffee0ddba11ad0beef",
                "token_type": 3,
                "verify_status": "Unverified",
                "jti": "abc",
                "iat": 1700000000,
                "exp": 1700003600,
            }
        )
        assert payload.token_type is TokenType.EMAIL_VERIFY
        assert payload.verify_status is UserVerifyStatus.UNVERIFIED
        assert payload.nbf is None
        assert payload.expires_at == datetime.fromtimestamp(1700003600, tz=timezone.utc)

    def test_payload_is_immutable(self):
        """TokenPayload should be immutable."""
        payload = TokenPayload(user_id="u", token_type=TokenType.ACCESS, jti="j", iat=1, exp=2)
        with pytest.raises(Exception):  # Pydantic ValidationError
            payload.user_id = "other"

    def test_unknown_kind_is_rejected(self):
        """An unknown token_type value should fail validation."""
        with pytest.raises(Exception):
            TokenPayload(user_id="u", token_type=9, jti="j", iat=1, exp=2)


class TestTokenPair:
    def test_camel_case_serialization(self):
        """Token pairs are returned to clients in camelCase."""
        pair = TokenPair(access_token="a", refresh_token="r")
        assert pair.model_dump(by_alias=True) == {"accessToken": "a", "refreshToken": "r"}


class TestRefreshTokenDocument:
    def test_document_shape(self):
        """Documents store ObjectIds and use _id."""
        user_id = ObjectId()
        document = RefreshTokenDocument(user_id=str(user_id), token="t")
        dumped = document.model_dump(by_alias=True, exclude_none=True)
        assert dumped["user_id"] == user_id
        assert "_id" not in dumped
        assert dumped["created_at"].tzinfo is not None
