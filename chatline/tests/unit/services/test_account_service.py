"""
Tests for the account service against an in-memory database.
"""

import pytest

from chatline.auth.argon2_utils import is_argon2_hash
from chatline.exceptions import ResourceConflictError, WeakInputError
from chatline.schemas.auth import RegisterRequest, UpdateProfileRequest
from chatline.services import account_service
from chatline.services.account_service import AccountService


@pytest.fixture
def accounts(db_session, token_service) -> AccountService:
    return AccountService(db_session, token_service)


def register_request(email="alice@example.com", username="alice", password="password123") -> RegisterRequest:
    return RegisterRequest(email=email, username=username, password=password)


class TestRegister:
    async def test_register_stores_hash_not_password(self, accounts):
        user = await accounts.register(register_request())

        assert user.email == "alice@example.com"
        assert user.username == "alice"
        assert user.hashed_password != "password123"
        assert is_argon2_hash(user.hashed_password)
        assert user.is_active

    async def test_email_is_normalized(self, accounts):
        user = await accounts.register(register_request(email="Alice@Example.COM"))
        assert user.email == "alice@example.com"

    async def test_short_password_rejected(self, accounts):
        with pytest.raises(WeakInputError):
            await accounts.register(register_request(password="short"))

    async def test_duplicate_email_conflict(self, accounts):
        await accounts.register(register_request())

        with pytest.raises(ResourceConflictError) as exc_info:
            await accounts.register(register_request(username="alice2"))
        assert exc_info.value.field == "email"

    async def test_duplicate_username_conflict_is_case_insensitive(self, accounts):
        await accounts.register(register_request())

        with pytest.raises(ResourceConflictError) as exc_info:
            await accounts.register(register_request(email="other@example.com", username="ALICE"))
        assert exc_info.value.field == "username"


class TestAuthenticate:
    async def test_valid_credentials(self, accounts):
        registered = await accounts.register(register_request())

        user = await accounts.authenticate("alice@example.com", "password123")

        assert user is not None
        assert user.id == registered.id

    async def test_email_lookup_ignores_case(self, accounts):
        await accounts.register(register_request())
        assert await accounts.authenticate("  ALICE@example.com ", "password123") is not None

    async def test_wrong_password(self, accounts):
        await accounts.register(register_request())
        assert await accounts.authenticate("alice@example.com", "password124") is None

    async def test_unknown_email(self, accounts):
        assert await accounts.authenticate("nobody@example.com", "password123") is None

    async def test_unknown_email_still_runs_one_verify(self, accounts, mocker):
        verify = mocker.spy(account_service, "verify_password")

        assert await accounts.authenticate("nobody@example.com", "password123") is None

        verify.assert_called_once()
        assert is_argon2_hash(verify.call_args.args[1])

    async def test_wrong_password_runs_one_verify(self, accounts, mocker):
        await accounts.register(register_request())
        verify = mocker.spy(account_service, "verify_password")

        assert await accounts.authenticate("alice@example.com", "password124") is None

        verify.assert_called_once()

    async def test_inactive_account(self, accounts):
        user = await accounts.register(register_request())
        await accounts.user_db.update(user, {"is_active": False})

        assert await accounts.authenticate("alice@example.com", "password123") is None

    async def test_issued_token_identifies_user(self, accounts, token_service):
        user = await accounts.register(register_request())

        claims = token_service.verify(accounts.issue_token(user))

        assert claims.identity.id == str(user.id)
        assert claims.identity.email == "alice@example.com"


class TestProfile:
    async def test_get_user_by_string_id(self, accounts):
        user = await accounts.register(register_request())
        assert (await accounts.get_user(str(user.id))).id == user.id

    async def test_get_user_malformed_id(self, accounts):
        assert await accounts.get_user("not-a-uuid") is None

    async def test_update_username_and_picture(self, accounts):
        user = await accounts.register(register_request())

        updated = await accounts.update_profile(
            user, UpdateProfileRequest(username="alice_new", profile_pic="https://img.example/a.png")
        )

        assert updated.username == "alice_new"
        assert updated.profile_pic == "https://img.example/a.png"

    async def test_update_to_taken_username_conflicts(self, accounts):
        await accounts.register(register_request(email="bob@example.com", username="bob"))
        alice = await accounts.register(register_request())

        with pytest.raises(ResourceConflictError):
            await accounts.update_profile(alice, UpdateProfileRequest(username="bob"))

    async def test_empty_update_is_noop(self, accounts):
        user = await accounts.register(register_request())
        assert (await accounts.update_profile(user, UpdateProfileRequest())).username == "alice"
