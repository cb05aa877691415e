import pytest
from argon2 import PasswordHasher
from bson import ObjectId

from modules.auth.exceptions import TokenMalformedError, TokenRevokedError
from modules.auth.models import TokenType, UserVerifyStatus
from modules.auth.passwords import PasswordService
from modules.users.exceptions import (
    CannotFollowSelfError,
    EmailAlreadyExistsError,
    EmailAlreadyVerifiedError,
    EmailNotRegisteredError,
    InvalidCredentialsError,
    InvalidUserIdError,
    UserBannedError,
    UserNotFoundError,
    UserNotVerifiedError,
    UsernameAlreadyExistsError,
)
from modules.users.models import RegisterRequest, UpdateMeRequest
from shared.database import ensure_indexes
from tests.helpers import VALID_REGISTRATION


def registration(**overrides) -> RegisterRequest:
    return RegisterRequest.model_validate({**VALID_REGISTRATION, **overrides})


@pytest.fixture
def service(container):
    return container.users


@pytest.fixture
def users(container):
    return container.user_repository


@pytest.fixture
def tokens(container):
    return container.tokens


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_creates_unverified_user(self, service, users):
        """A new user is unverified, has a verify token and a hashed password."""
        result = await service.register(registration())

        stored = await users.get_by_email("alice@example.com")
        assert stored is not None
        assert stored.id == result.user.id
        assert stored.verify_status == UserVerifyStatus.UNVERIFIED
        assert stored.email_verify_token
        assert stored.password != "Secret1!"
        assert stored.password.startswith("$argon2")
        assert result.tokens.access_token and result.tokens.refresh_token

    @pytest.mark.asyncio
    async def test_email_verify_token_names_the_user(self, service, tokens):
        """The stored verify token should verify to the new user's id."""
        result = await service.register(registration())
        payload = await tokens.verify(TokenType.EMAIL_VERIFY, result.user.email_verify_token)
        assert payload.user_id == str(result.user.id)

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, container, service):
        """The unique email index turns a second registration into a conflict."""
        await ensure_indexes(container.database, container.settings.database)
        await service.register(registration())

        with pytest.raises(EmailAlreadyExistsError) as exc_info:
            await service.register(registration(name="Someone Else"))

        assert exc_info.value.status_code == 409
        assert exc_info.value.code == "CONFLICT"

    @pytest.mark.asyncio
    async def test_email_exists(self, service):
        assert await service.email_exists("alice@example.com") is False
        await service.register(registration())
        assert await service.email_exists("alice@example.com") is True


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_correct_credentials(self, service):
        """Should return the user for matching credentials."""
        result = await service.register(registration())
        user = await service.authenticate("alice@example.com", "Secret1!")
        assert user.id == result.user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        await service.register(registration())
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.authenticate("alice@example.com", "Wrong1!!")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        """Unknown emails fail exactly like wrong passwords."""
        with pytest.raises(InvalidCredentialsError):
            await service.authenticate("nobody@example.com", "Secret1!")

    @pytest.mark.asyncio
    async def test_banned_user(self, service, users):
        result = await service.register(registration())
        await users.update_fields(result.user.id, {"verify_status": UserVerifyStatus.BANNED.value})

        with pytest.raises(UserBannedError) as exc_info:
            await service.authenticate("alice@example.com", "Secret1!")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_outdated_hash_is_upgraded(self, service, users):
        """A hash made with other argon2 parameters is replaced on login."""
        result = await service.register(registration())
        older = PasswordService(PasswordHasher(time_cost=2, memory_cost=8, parallelism=1))
        old_hash = await older.hash("Secret1!")
        await users.update_fields(result.user.id, {"password": old_hash})

        user = await service.authenticate("alice@example.com", "Secret1!")

        stored = await users.get_by_id(result.user.id)
        assert stored.password != old_hash
        assert stored.password == user.password
        assert await service.authenticate("alice@example.com", "Secret1!")

    @pytest.mark.asyncio
    async def test_current_hash_is_kept(self, service, users):
        result = await service.register(registration())
        await service.authenticate("alice@example.com", "Secret1!")
        stored = await users.get_by_id(result.user.id)
        assert stored.password == result.user.password


class TestSessions:
    @pytest.mark.asyncio
    async def test_logout_revokes_refresh_token(self, service, tokens):
        result = await service.register(registration())
        user_id = str(result.user.id)

        await service.logout(user_id, result.tokens.refresh_token)

        with pytest.raises(TokenRevokedError):
            await tokens.verify(TokenType.REFRESH, result.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_logout_with_someone_elses_token(self, service):
        alice = await service.register(registration())
        bob = await service.register(registration(email="bob@example.com"))

        with pytest.raises(TokenMalformedError):
            await service.logout(str(alice.user.id), bob.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_refresh_token_rotates(self, service, tokens):
        """Refreshing returns a new pair and retires the old refresh token."""
        result = await service.register(registration())

        pair = await service.refresh_token(result.tokens.refresh_token)

        assert pair.refresh_token != result.tokens.refresh_token
        await tokens.verify(TokenType.REFRESH, pair.refresh_token)
        access = await tokens.verify(TokenType.ACCESS, pair.access_token)
        assert access.user_id == str(result.user.id)
        with pytest.raises(TokenRevokedError):
            await service.refresh_token(result.tokens.refresh_token)


class TestEmailVerification:
    @pytest.mark.asyncio
    async def test_verify_email(self, service, users, tokens):
        """Verification clears the token, marks the user and issues a verified pair."""
        result = await service.register(registration())

        pair = await service.verify_email_token(result.user.email_verify_token)

        stored = await users.get_by_id(result.user.id)
        assert stored.verify_status == UserVerifyStatus.VERIFIED
        assert stored.email_verify_token == ""
        access = await tokens.verify(TokenType.ACCESS, pair.access_token)
        assert access.verify_status == UserVerifyStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_verify_email_twice(self, service):
        """The second verification reports the email as already verified."""
        result = await service.register(registration())
        await service.verify_email(str(result.user.id))

        with pytest.raises(EmailAlreadyVerifiedError) as exc_info:
            await service.verify_email(str(result.user.id))
        assert exc_info.value.code == "EMAIL_ALREADY_VERIFIED"

    @pytest.mark.asyncio
    async def test_superseded_verify_token(self, service):
        """After a resend only the newest verify token works."""
        result = await service.register(registration())
        await service.resend_verify_email(str(result.user.id))

        with pytest.raises(TokenRevokedError):
            await service.verify_email_token(result.user.email_verify_token)

    @pytest.mark.asyncio
    async def test_resend_replaces_token(self, service, users):
        result = await service.register(registration())
        await service.resend_verify_email(str(result.user.id))

        stored = await users.get_by_id(result.user.id)
        assert stored.email_verify_token
        assert stored.email_verify_token != result.user.email_verify_token

    @pytest.mark.asyncio
    async def test_resend_after_verification(self, service):
        result = await service.register(registration())
        await service.verify_email(str(result.user.id))

        with pytest.raises(EmailAlreadyVerifiedError):
            await service.resend_verify_email(str(result.user.id))


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_forgot_password_unknown_email(self, service):
        with pytest.raises(EmailNotRegisteredError) as exc_info:
            await service.forgot_password("nobody@example.com")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_forgot_password_stores_token(self, service, users):
        await service.register(registration())
        await service.forgot_password("alice@example.com")

        stored = await users.get_by_email("alice@example.com")
        assert stored.forgot_password_token
        user = await service.verify_forgot_password(stored.forgot_password_token)
        assert user.id == stored.id

    @pytest.mark.asyncio
    async def test_stale_forgot_password_token(self, service, users):
        """Requesting a new reset retires the previous token."""
        await service.register(registration())
        await service.forgot_password("alice@example.com")
        first = (await users.get_by_email("alice@example.com")).forgot_password_token
        await service.forgot_password("alice@example.com")

        with pytest.raises(TokenRevokedError):
            await service.verify_forgot_password(first)

    @pytest.mark.asyncio
    async def test_reset_password(self, service, users, tokens):
        """Reset changes the password, clears the token and ends every session."""
        result = await service.register(registration())
        await service.forgot_password("alice@example.com")
        token = (await users.get_by_email("alice@example.com")).forgot_password_token

        await service.reset_password(token, "NewSecret2@")

        stored = await users.get_by_email("alice@example.com")
        assert stored.forgot_password_token == ""
        assert (await service.authenticate("alice@example.com", "NewSecret2@")).id == stored.id
        with pytest.raises(InvalidCredentialsError):
            await service.authenticate("alice@example.com", "Secret1!")
        with pytest.raises(TokenRevokedError):
            await tokens.verify(TokenType.REFRESH, result.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_reset_token_is_single_use(self, service, users):
        await service.register(registration())
        await service.forgot_password("alice@example.com")
        token = (await users.get_by_email("alice@example.com")).forgot_password_token
        await service.reset_password(token, "NewSecret2@")

        with pytest.raises(TokenRevokedError):
            await service.reset_password(token, "Another3#")


class TestProfiles:
    @pytest.mark.asyncio
    async def test_update_me_requires_verified(self, service):
        result = await service.register(registration())
        with pytest.raises(UserNotVerifiedError) as exc_info:
            await service.update_me(str(result.user.id), UpdateMeRequest(bio="hi"))
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_update_me(self, service):
        """Only provided profile fields change."""
        result = await service.register(registration())
        await service.verify_email(str(result.user.id))

        user = await service.update_me(
            str(result.user.id),
            UpdateMeRequest.model_validate(
                {"bio": "Hello", "username": "alice_n", "email": "evil@example.com"}
            ),
        )

        assert user.bio == "Hello"
        assert user.username == "alice_n"
        assert user.email == "alice@example.com"
        assert user.name == "Alice Nguyen"

    @pytest.mark.asyncio
    async def test_update_me_taken_username(self, service, users):
        alice = await service.register(registration())
        bob = await service.register(registration(email="bob@example.com"))
        await users.update_fields(bob.user.id, {"username": "taken_name"})
        await service.verify_email(str(alice.user.id))

        with pytest.raises(UsernameAlreadyExistsError) as exc_info:
            await service.update_me(str(alice.user.id), UpdateMeRequest(username="taken_name"))
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_get_user_profile(self, service, users):
        result = await service.register(registration())
        await users.update_fields(result.user.id, {"username": "alice_n"})

        user = await service.get_user_profile("alice_n")
        assert user.id == result.user.id
        with pytest.raises(UserNotFoundError):
            await service.get_user_profile("nobody")

    @pytest.mark.asyncio
    async def test_get_me_unknown_user(self, service):
        with pytest.raises(UserNotFoundError):
            await service.get_me(str(ObjectId()))


class TestFollow:
    @pytest.mark.asyncio
    async def test_follow_is_idempotent(self, service, users, container):
        """Following twice keeps a single edge and counts it once."""
        alice = await service.register(registration())
        bob = await service.register(registration(email="bob@example.com"))
        alice_id, bob_id = str(alice.user.id), str(bob.user.id)

        assert await service.follow_user(alice_id, bob_id) is True
        assert await service.follow_user(alice_id, bob_id) is False

        assert await container.follower_repository.count_edges(alice.user.id) == 1
        assert (await users.get_by_id(alice_id)).following_count == 1
        assert (await users.get_by_id(bob_id)).followers_count == 1

    @pytest.mark.asyncio
    async def test_unfollow_is_idempotent(self, service, users):
        """Unfollowing twice succeeds and leaves counters at zero."""
        alice = await service.register(registration())
        bob = await service.register(registration(email="bob@example.com"))
        alice_id, bob_id = str(alice.user.id), str(bob.user.id)
        await service.follow_user(alice_id, bob_id)

        assert await service.unfollow_user(alice_id, bob_id) is True
        assert await service.unfollow_user(alice_id, bob_id) is False

        assert (await users.get_by_id(alice_id)).following_count == 0
        assert (await users.get_by_id(bob_id)).followers_count == 0

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, service):
        alice = await service.register(registration())
        with pytest.raises(CannotFollowSelfError) as exc_info:
            await service.follow_user(str(alice.user.id), str(alice.user.id))
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_follow_invalid_id(self, service):
        alice = await service.register(registration())
        with pytest.raises(InvalidUserIdError) as exc_info:
            await service.follow_user(str(alice.user.id), "not-an-id")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_follow_missing_user(self, service):
        alice = await service.register(registration())
        with pytest.raises(UserNotFoundError):
            await service.follow_user(str(alice.user.id), str(ObjectId()))
