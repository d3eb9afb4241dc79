"""
Tests for SigninService.
"""

import pytest

from authentication.services.signin import InvalidCredentialsError, UnverifiedAccountError
from authentication.tests.factories import DEFAULT_PASSWORD, ProfileFactory, UserFactory
from authentication.tokens import TokenKind
from core.exceptions import ValidationError


@pytest.mark.django_db
class TestSignin:
    def test_verified_user_gets_token_pair(self, signin_service, codec, verified_user):
        result = signin_service.sign_in("verified@example.com", DEFAULT_PASSWORD)

        assert result.user == verified_user
        access = codec.verify(result.tokens.access_token, TokenKind.ACCESS)
        refresh = codec.verify(result.tokens.refresh_token, TokenKind.REFRESH)
        assert access == refresh
        assert access.user_id == verified_user.pk
        assert access.username == "verified_user"
        assert access.email == "verified@example.com"

    def test_email_is_case_insensitive(self, signin_service, verified_user):
        result = signin_service.sign_in("  VERIFIED@example.com", DEFAULT_PASSWORD)

        assert result.user == verified_user

    def test_wrong_password(self, signin_service, verified_user):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            signin_service.sign_in("verified@example.com", "wrong")

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid email or password"

    def test_unknown_email_looks_like_wrong_password(self, signin_service, db):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            signin_service.sign_in("ghost@example.com", DEFAULT_PASSWORD)

        assert exc_info.value.message == "Invalid email or password"

    def test_google_only_account_cannot_use_password(self, signin_service, db):
        user = UserFactory(email="g@example.com", password=None, email_verified=True)
        ProfileFactory(user=user, username="googler")

        with pytest.raises(InvalidCredentialsError):
            signin_service.sign_in("g@example.com", "anything")

    def test_inactive_account_is_rejected(self, signin_service, db):
        UserFactory(
            email="off@example.com",
            password=DEFAULT_PASSWORD,
            is_active=False,
            email_verified=True,
        )

        with pytest.raises(InvalidCredentialsError):
            signin_service.sign_in("off@example.com", DEFAULT_PASSWORD)

    def test_unverified_account_is_forbidden(self, signin_service, unverified_user):
        with pytest.raises(UnverifiedAccountError) as exc_info:
            signin_service.sign_in("pending@example.com", DEFAULT_PASSWORD)

        error = exc_info.value
        assert error.status_code == 403
        assert error.error_code == "EMAIL_NOT_VERIFIED"
        assert error.details == {
            "unverified": True,
            "email": "pending@example.com",
            "userId": unverified_user.pk,
            "username": "pending_user",
        }

    def test_unverified_with_wrong_password_is_invalid_credentials(
        self, signin_service, unverified_user
    ):
        with pytest.raises(InvalidCredentialsError):
            signin_service.sign_in("pending@example.com", "wrong")

    def test_missing_fields(self, signin_service, db):
        with pytest.raises(ValidationError):
            signin_service.sign_in("", DEFAULT_PASSWORD)
        with pytest.raises(ValidationError):
            signin_service.sign_in("verified@example.com", "")
