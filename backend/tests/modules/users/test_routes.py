"""End-to-end tests for the /users endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

from modules.auth.models import IssueOptions, TokenType, UserVerifyStatus
from tests.helpers import API, VALID_REGISTRATION, bearer

USERS = f"{API}/users"

NEW_PASSWORD = {"password": "Newpass1!", "confirmPassword": "Newpass1!"}


def body_errors(response) -> set:
    return set(response.json()["metadata"]["errors"])


@pytest.fixture
def get_user(container, run):
    """Read a user straight from the repository."""

    def get(email: str = VALID_REGISTRATION["email"]):
        return run(container.user_repository.get_by_email(email))

    return get


@pytest.fixture
def bob(client, get_user):
    """A second registered user."""
    payload = {**VALID_REGISTRATION, "name": "Bob Tran", "email": "bob@example.com"}
    assert client.post(f"{USERS}/register", json=payload).status_code == 200
    return get_user("bob@example.com")


class TestRegister:
    def test_register(self, client, get_user):
        response = client.post(f"{USERS}/register", json=VALID_REGISTRATION)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Registration successful."
        assert set(body["result"]) == {"accessToken", "refreshToken"}

        user = get_user()
        assert user.verify_status == UserVerifyStatus.UNVERIFIED
        assert user.email_verify_token
        assert user.password != VALID_REGISTRATION["password"]

    def test_duplicate_email(self, client, registered):
        response = client.post(f"{USERS}/register", json=VALID_REGISTRATION)

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "CONFLICT"
        assert body["message"] == "Email already exists."

    def test_reports_every_invalid_field(self, client):
        response = client.post(
            f"{USERS}/register",
            json={**VALID_REGISTRATION, "name": "A", "email": "not-an-email"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert set(body["metadata"]["errors"]) == {"name", "email"}
        assert body["metadata"]["summary"]["total_errors"] == 2

    def test_empty_body(self, client):
        response = client.post(f"{USERS}/register")
        assert response.status_code == 422
        assert body_errors(response) >= {"name", "email", "password", "date_of_birth"}

    def test_timestamp_birth_date(self, client, get_user):
        """Browsers send the birth date as a full UTC timestamp."""
        response = client.post(
            f"{USERS}/register",
            json={**VALID_REGISTRATION, "date_of_birth": "1995-04-11T17:00:00.000Z"},
        )

        assert response.status_code == 200
        stored = get_user().date_of_birth
        assert stored.replace(tzinfo=None) == datetime(1995, 4, 11, 17, 0)

    def test_unparseable_birth_date(self, client):
        response = client.post(
            f"{USERS}/register", json={**VALID_REGISTRATION, "date_of_birth": "11/04/1995"}
        )

        assert response.status_code == 422
        detail = response.json()["metadata"]["errors"]["date_of_birth"]
        assert detail["translation_key"] == "validation:FIELDS.DATE_OF_BIRTH.INVALID_FORMAT"


class TestSessions:
    def test_login(self, client, registered):
        response = client.post(
            f"{USERS}/login",
            json={"email": VALID_REGISTRATION["email"], "password": VALID_REGISTRATION["password"]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful."
        assert body["result"]["accessToken"]
        assert body["result"]["refreshToken"] != registered["refreshToken"]

    def test_login_wrong_password(self, client, registered):
        response = client.post(
            f"{USERS}/login",
            json={"email": VALID_REGISTRATION["email"], "password": "Wrong1!!"},
        )

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "INVALID_CREDENTIALS"
        assert body["message"] == "Email or password is incorrect."

    def test_login_unknown_email(self, client):
        response = client.post(
            f"{USERS}/login", json={"email": "nobody@example.com", "password": "Secret1!"}
        )
        assert response.status_code == 401

    def test_logout(self, client, registered):
        response = client.post(
            f"{USERS}/logout",
            headers=bearer(registered["accessToken"]),
            json={"refresh_token": registered["refreshToken"]},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Logout successful.", "result": None}

        response = client.post(
            f"{USERS}/refresh-token", json={"refresh_token": registered["refreshToken"]}
        )
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_REVOKED"

    def test_logout_requires_access_token(self, client, registered):
        response = client.post(
            f"{USERS}/logout", json={"refresh_token": registered["refreshToken"]}
        )
        assert response.status_code == 401

    def test_refresh_token_rotates(self, client, registered):
        response = client.post(
            f"{USERS}/refresh-token", json={"refreshToken": registered["refreshToken"]}
        )

        assert response.status_code == 200
        rotated = response.json()["result"]
        assert rotated["refreshToken"] != registered["refreshToken"]

        replay = client.post(
            f"{USERS}/refresh-token", json={"refresh_token": registered["refreshToken"]}
        )
        assert replay.status_code == 401

        again = client.post(
            f"{USERS}/refresh-token", json={"refresh_token": rotated["refreshToken"]}
        )
        assert again.status_code == 200


class TestEmailVerification:
    def test_verify_email(self, client, registered, get_user):
        token = get_user().email_verify_token

        response = client.post(f"{USERS}/verify-email", json={"email_verify_token": token})

        assert response.status_code == 200
        assert response.json()["message"] == "Email verified successfully."
        user = get_user()
        assert user.verify_status == UserVerifyStatus.VERIFIED
        assert user.email_verify_token == ""

    def test_verify_twice(self, client, registered, get_user):
        token = get_user().email_verify_token
        client.post(f"{USERS}/verify-email", json={"email_verify_token": token})

        response = client.post(f"{USERS}/verify-email", json={"email_verify_token": token})

        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_ALREADY_VERIFIED"

    def test_verified_pair_unlocks_profile_updates(self, client, verified):
        response = client.patch(
            f"{USERS}/me", headers=bearer(verified["accessToken"]), json={"bio": "Hello"}
        )
        assert response.status_code == 200
        assert response.json()["result"]["bio"] == "Hello"

    def test_resend_replaces_token(self, client, registered, get_user):
        old_token = get_user().email_verify_token

        response = client.post(
            f"{USERS}/resend-verify-email", headers=bearer(registered["accessToken"])
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Verification email sent again."
        assert get_user().email_verify_token != old_token

        stale = client.post(f"{USERS}/verify-email", json={"email_verify_token": old_token})
        assert stale.status_code == 401
        assert stale.json()["code"] == "TOKEN_REVOKED"

    def test_resend_after_verification(self, client, verified):
        response = client.post(
            f"{USERS}/resend-verify-email", headers=bearer(verified["accessToken"])
        )
        assert response.status_code == 409


class TestPasswordReset:
    def test_unknown_email(self, client):
        response = client.post(f"{USERS}/forgot-password", json={"email": "nobody@example.com"})

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "EMAIL_NOT_REGISTERED"
        assert body["message"] == "Email is not registered."

    def test_full_reset_flow(self, client, registered, get_user):
        response = client.post(
            f"{USERS}/forgot-password", json={"email": VALID_REGISTRATION["email"]}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Check your email to reset your password."
        token = get_user().forgot_password_token
        assert token

        response = client.post(
            f"{USERS}/verify-forgot-password", json={"forgot_password_token": token}
        )
        assert response.status_code == 200

        response = client.post(
            f"{USERS}/reset-password", json={"forgot_password_token": token, **NEW_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successfully."
        assert get_user().forgot_password_token == ""

        login = client.post(
            f"{USERS}/login",
            json={"email": VALID_REGISTRATION["email"], "password": NEW_PASSWORD["password"]},
        )
        assert login.status_code == 200

        # Existing sessions end with the reset.
        refresh = client.post(
            f"{USERS}/refresh-token", json={"refresh_token": registered["refreshToken"]}
        )
        assert refresh.status_code == 401

        reuse = client.post(
            f"{USERS}/reset-password", json={"forgot_password_token": token, **NEW_PASSWORD}
        )
        assert reuse.status_code == 401
        assert reuse.json()["code"] == "TOKEN_REVOKED"

    def test_expired_token(self, client, container, registered, get_user, run):
        user = get_user()
        token = run(
            container.tokens.issue(
                TokenType.FORGOT_PASSWORD,
                str(user.id),
                user.verify_status,
                options=IssueOptions(expires_in=timedelta(seconds=-30)),
            )
        )

        response = client.post(
            f"{USERS}/reset-password", json={"forgot_password_token": token, **NEW_PASSWORD}
        )

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "TOKEN_EXPIRED"
        assert "expired_at" in body["metadata"]

    def test_mismatched_confirmation(self, client):
        response = client.post(
            f"{USERS}/reset-password",
            json={
                "forgot_password_token": "whatever",
                "password": "Newpass1!",
                "confirmPassword": "Other1!!",
            },
        )
        assert response.status_code == 422
        assert body_errors(response) == {"confirmPassword"}


class TestProfiles:
    def test_get_me(self, client, registered):
        response = client.get(f"{USERS}/me", headers=bearer(registered["accessToken"]))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile retrieved successfully."
        profile = body["result"]
        assert profile["email"] == VALID_REGISTRATION["email"]
        assert profile["verify_status"] == "Unverified"
        assert "password" not in profile
        assert "email_verify_token" not in profile

    def test_update_me_and_public_profile(self, client, verified):
        response = client.patch(
            f"{USERS}/me",
            headers=bearer(verified["accessToken"]),
            json={"username": "alice_n", "location": "Hanoi", "verify_status": "Banned"},
        )
        assert response.status_code == 200
        profile = response.json()["result"]
        assert profile["username"] == "alice_n"
        assert profile["verify_status"] == "Verified"

        response = client.get(f"{USERS}/alice_n")
        assert response.status_code == 200
        assert response.json()["result"]["location"] == "Hanoi"

    def test_update_birth_date_with_timestamp(self, client, verified, get_user):
        response = client.patch(
            f"{USERS}/me",
            headers=bearer(verified["accessToken"]),
            json={"date_of_birth": "1990-01-01T23:30:00+07:00"},
        )

        assert response.status_code == 200
        stored = get_user().date_of_birth
        if stored.tzinfo is None:
            stored = stored.replace(tzinfo=timezone.utc)
        assert stored == datetime(1990, 1, 1, 16, 30, tzinfo=timezone.utc)

    def test_username_taken(self, client, verified, bob, container, run):
        run(container.user_repository.update_fields(bob.id, {"username": "bobby"}))

        response = client.patch(
            f"{USERS}/me", headers=bearer(verified["accessToken"]), json={"username": "bobby"}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "USERNAME_ALREADY_EXISTS"

    def test_invalid_update(self, client, verified):
        response = client.patch(
            f"{USERS}/me",
            headers=bearer(verified["accessToken"]),
            json={"username": "no spaces!", "bio": "x" * 201},
        )
        assert response.status_code == 422
        assert body_errors(response) == {"username", "bio"}

    def test_unknown_username(self, client):
        response = client.get(f"{USERS}/ghost")
        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"


class TestFollow:
    def test_follow_and_unfollow(self, client, verified, bob, get_user):
        headers = bearer(verified["accessToken"])

        response = client.post(
            f"{USERS}/follow", headers=headers, json={"followedUserId": str(bob.id)}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "You have successfully followed the user."
        assert get_user("bob@example.com").followers_count == 1

        response = client.post(
            f"{USERS}/follow", headers=headers, json={"followed_user_id": str(bob.id)}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "You are already following this user."
        assert get_user("bob@example.com").followers_count == 1

        response = client.delete(f"{USERS}/follow/{bob.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Unfollowed user successfully."

        response = client.delete(f"{USERS}/follow/{bob.id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == (
            "You are either not following this user or have already unfollowed them."
        )
        assert get_user("bob@example.com").followers_count == 0
        assert get_user().following_count == 0

    def test_follow_self(self, client, verified, get_user):
        response = client.post(
            f"{USERS}/follow",
            headers=bearer(verified["accessToken"]),
            json={"followed_user_id": str(get_user().id)},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "CANNOT_FOLLOW_SELF"

    def test_follow_invalid_id(self, client, verified):
        response = client.post(
            f"{USERS}/follow",
            headers=bearer(verified["accessToken"]),
            json={"followed_user_id": "not-an-id"},
        )
        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_follow_requires_verified_account(self, client, registered, bob):
        response = client.post(
            f"{USERS}/follow",
            headers=bearer(registered["accessToken"]),
            json={"followed_user_id": str(bob.id)},
        )
        assert response.status_code == 403
