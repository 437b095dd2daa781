"""
Unit tests for authentication, tokens and password reset.
"""

from datetime import datetime, timedelta

import pytest

from gameorganizer.exceptions import (
    EmailNotFoundError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidTokenError,
    UnauthenticatedError,
    ValidationError,
)
from gameorganizer.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from gameorganizer.services import AccountService, AuthService
from gameorganizer.storage.account_repository import AccountRepository


@pytest.fixture
def auth(db_session, test_settings):
    return AuthService(db_session, test_settings)


class TestSecurityHelpers:

    def test_password_hash_roundtrip(self):
        hashed = get_password_hash("hunter22")

        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_token_subject(self):
        token = create_access_token({"sub": "someone@example.com"}, "secret")

        assert decode_access_token(token, "secret") == "someone@example.com"

    def test_wrong_key_is_rejected(self):
        token = create_access_token({"sub": "someone@example.com"}, "secret")

        assert decode_access_token(token, "other-secret") is None

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": "someone@example.com"}, "secret", expires_delta=timedelta(seconds=-5))

        assert decode_access_token(token, "secret") is None

    def test_garbage_token(self):
        assert decode_access_token("not-a-jwt", "secret") is None


class TestLogin:

    def test_login_returns_token_for_account(self, auth, borrower):
        result = auth.login("borrower@example.com", "password123")

        assert result.account.id == borrower.id
        assert decode_access_token(result.access_token, "test-secret-key") == "borrower@example.com"
        # Session cookie unless remember-me
        assert result.max_age is None

    def test_remember_me_sets_max_age(self, auth, borrower, test_settings):
        result = auth.login("borrower@example.com", "password123", remember_me=True)

        assert result.max_age == test_settings.remember_me_days * 24 * 60 * 60

    @pytest.mark.parametrize("email, password", [
        ("borrower@example.com", "wrong-password"),
        ("nobody@example.com", "password123"),
    ])
    def test_bad_credentials(self, auth, borrower, email, password):
        with pytest.raises(InvalidCredentialsError):
            auth.login(email, password)

    def test_authenticate_token(self, auth, owner):
        token = auth.login("owner@example.com", "password123").access_token

        caller = auth.authenticate_token(token)

        assert caller.id == owner.id
        assert caller.is_game_owner is True

    def test_missing_token(self, auth):
        with pytest.raises(UnauthenticatedError):
            auth.authenticate_token(None)

    def test_token_for_deleted_account(self, db_session, auth, borrower):
        token = auth.login("borrower@example.com", "password123").access_token
        AccountService(db_session).delete_account(borrower, borrower.email)

        with pytest.raises(UnauthenticatedError):
            auth.authenticate_token(token)


class TestPasswordReset:

    def test_reset_flow(self, db_session, auth, borrower):
        token = auth.request_password_reset("borrower@example.com")

        auth.perform_password_reset(token, "new-password-1")

        assert auth.login("borrower@example.com", "new-password-1").account.id == borrower.id
        with pytest.raises(InvalidCredentialsError):
            auth.login("borrower@example.com", "password123")

        account = AccountRepository(db_session).get(borrower.id)
        assert account.reset_password_token is None

    def test_token_is_single_use(self, auth, borrower):
        token = auth.request_password_reset("borrower@example.com")
        auth.perform_password_reset(token, "new-password-1")

        with pytest.raises(InvalidTokenError):
            auth.perform_password_reset(token, "new-password-2")

    def test_unknown_email(self, auth):
        with pytest.raises(EmailNotFoundError):
            auth.request_password_reset("nobody@example.com")

    def test_expired_token_is_cleared(self, db_session, auth, borrower):
        token = auth.request_password_reset("borrower@example.com")
        account = AccountRepository(db_session).get(borrower.id)
        account.reset_password_token_expiry = datetime.utcnow() - timedelta(minutes=1)
        db_session.commit()

        with pytest.raises(InvalidTokenError) as exc_info:
            auth.perform_password_reset(token, "new-password-1")

        assert "expired" in exc_info.value.message
        db_session.refresh(account)
        assert account.reset_password_token is None
        assert account.reset_password_token_expiry is None

    def test_short_password(self, auth, borrower):
        token = auth.request_password_reset("borrower@example.com")

        with pytest.raises(InvalidPasswordError):
            auth.perform_password_reset(token, "short")

        # Token survives a rejected password
        auth.perform_password_reset(token, "long-enough")


class TestAccounts:

    def test_duplicate_email(self, db_session, borrower):
        with pytest.raises(ValidationError):
            AccountService(db_session).create_account("borrower@example.com", "someone-else", "password123")

    def test_duplicate_username(self, db_session, borrower):
        with pytest.raises(ValidationError):
            AccountService(db_session).create_account("new@example.com", "borrower", "password123")

    def test_update_requires_current_password(self, db_session, borrower):
        service = AccountService(db_session)

        with pytest.raises(InvalidPasswordError):
            service.update_account(borrower, borrower.email, "renamed", "wrong", "new-password-1")

        account = service.update_account(borrower, borrower.email, "renamed", "password123", "new-password-1")
        assert account.name == "renamed"

    def test_promote_to_game_owner(self, db_session, borrower):
        account = AccountService(db_session).promote_to_game_owner(borrower, borrower.email)

        assert account.is_game_owner is True
