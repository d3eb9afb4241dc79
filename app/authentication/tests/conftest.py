"""
Test configuration and fixtures for authentication tests.

This module provides:
- Identity settings applied to every test (secrets, sender, client id)
- Services wired directly with a fake email sender and no-op sleep
- Accounts in the common states (verified, unverified with token)
- API client for endpoint tests

Usage:
    def test_example(signup_service, fake_sender):
        result = signup_service.sign_up("foo", "a@x.com", "p")
        assert fake_sender.sent[0]["to"] == "a@x.com"
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from authentication.adapters import ExternalIdentity
from authentication.config import AuthConfig
from authentication.services import (
    IdentityLinkService,
    SigninService,
    SignupService,
    VerificationTokenManager,
)
from authentication.store import CredentialStore
from authentication.tests.fakes import FakeEmailSender, SleepRecorder
from authentication.tests.factories import DEFAULT_PASSWORD, ProfileFactory, UserFactory
from authentication.tokens import TokenCodec

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"
DEFAULT_AVATAR = "https://cdn.example.com/avatars/default.png"
FRONTEND_URL = "https://app.example.com"
GOOGLE_CLIENT_ID = "test-client.apps.googleusercontent.com"


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def identity_settings(settings):
    """Known identity settings so endpoint tests can verify issued tokens."""
    settings.JWT_ACCESS_SECRET = ACCESS_SECRET
    settings.JWT_REFRESH_SECRET = REFRESH_SECRET
    settings.DEFAULT_FROM_EMAIL = "no-reply@example.com"
    settings.FRONTEND_URL = FRONTEND_URL
    settings.DEFAULT_AVATAR_URL = DEFAULT_AVATAR
    settings.GOOGLE_CLIENT_ID = GOOGLE_CLIENT_ID
    return settings


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def auth_config():
    return AuthConfig(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        from_email="no-reply@example.com",
        frontend_url=FRONTEND_URL,
        default_avatar_url=DEFAULT_AVATAR,
        google_client_id=GOOGLE_CLIENT_ID,
    )


@pytest.fixture
def store():
    return CredentialStore()


@pytest.fixture
def codec():
    return TokenCodec(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def fake_sender():
    return FakeEmailSender()


@pytest.fixture
def failing_sender():
    return FakeEmailSender(success=False)


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def verification(store, fake_sender, auth_config):
    return VerificationTokenManager(store, fake_sender, auth_config)


@pytest.fixture
def signup_service(store, verification, auth_config, sleep_recorder):
    return SignupService(store, verification, auth_config, sleep=sleep_recorder)


@pytest.fixture
def signin_service(codec):
    return SigninService(codec)


@pytest.fixture
def linker(store, codec, auth_config):
    return IdentityLinkService(store, codec, auth_config)


# =============================================================================
# Accounts
# =============================================================================


@pytest.fixture
def verified_user(db):
    """Verified password account with username 'verified_user'."""
    user = UserFactory(
        email="verified@example.com", email_verified=True, password=DEFAULT_PASSWORD
    )
    ProfileFactory(user=user, username="verified_user")
    return user


@pytest.fixture
def unverified_user(db):
    """Unverified password account holding a fresh verification token."""
    user = UserFactory(
        email="pending@example.com",
        email_verified=False,
        password=DEFAULT_PASSWORD,
        verification_token="pending-token",
        verification_token_expires_at=timezone.now() + timedelta(hours=24),
    )
    ProfileFactory(user=user, username="pending_user")
    return user


@pytest.fixture
def google_identity():
    return ExternalIdentity(
        subject_id="google-sub-123",
        email="newcomer@example.com",
        email_verified=True,
        name="New Comer",
        picture="https://lh3.googleusercontent.com/a/photo.jpg",
    )


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()
