"""
Tests for JWT authentication middleware.
"""

from datetime import timedelta

import pytest
from bson import ObjectId

from api.middleware.auth import extract_bearer_token
from modules.auth.exceptions import MissingTokenError
from modules.auth.models import IssueOptions, TokenType, UserVerifyStatus
from tests.helpers import API, bearer

ME = f"{API}/users/me"


class TestExtractBearerToken:
    def test_valid_header(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_token("bearer abc") == "abc"

    @pytest.mark.parametrize(
        "header, key",
        [
            (None, "auth:AUTHORIZATION_IS_REQUIRED"),
            ("   ", "auth:AUTHORIZATION_IS_REQUIRED"),
            ("Token abc", "auth:AUTHORIZATION_MUST_START_WITH_BEARER"),
            ("Bearer", "auth:ACCESS_TOKEN_MISSING"),
        ],
    )
    def test_rejected_headers(self, header, key):
        with pytest.raises(MissingTokenError) as exc_info:
            extract_bearer_token(header)
        assert exc_info.value.translation_key == key


class TestAuthentication:
    def test_missing_header(self, client):
        response = client.get(ME)
        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "TOKEN_MISSING"
        assert body["message"] == "Authorization is required."

    def test_wrong_scheme(self, client):
        response = client.get(ME, headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert response.status_code == 401
        assert response.json()["message"] == 'Authorization must start with "Bearer".'

    def test_empty_token(self, client):
        response = client.get(ME, headers={"Authorization": "Bearer"})
        assert response.status_code == 401
        assert response.json()["message"] == 'Access token is missing after "Bearer".'

    def test_garbage_token(self, client):
        response = client.get(ME, headers=bearer("not-a-jwt"))
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_MALFORMED"

    def test_expired_token(self, client, container, run):
        token = run(
            container.tokens.issue(
                TokenType.ACCESS,
                str(ObjectId()),
                UserVerifyStatus.VERIFIED,
                options=IssueOptions(expires_in=timedelta(seconds=-30)),
            )
        )

        response = client.get(ME, headers=bearer(token))

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "TOKEN_EXPIRED"
        assert "expired_at" in body["metadata"]

    def test_refresh_token_is_not_an_access_token(self, client, registered):
        response = client.get(ME, headers=bearer(registered["refreshToken"]))
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_MALFORMED"

    def test_unverified_user_can_read_profile(self, client, registered):
        response = client.get(ME, headers=bearer(registered["accessToken"]))
        assert response.status_code == 200

    def test_unverified_user_cannot_update_profile(self, client, registered):
        response = client.patch(ME, headers=bearer(registered["accessToken"]), json={"bio": "Hi"})
        assert response.status_code == 403
        assert response.json()["code"] == "USER_NOT_VERIFIED"
