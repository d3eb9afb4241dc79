"""
Tests for IdentityLinkService (Google account linking).

Test Organization:
    - TestNewIdentity: first sign-in with an unknown Google account
    - TestExistingAccount: email or subject id already known locally
    - TestUsernameRace: the username is claimed between check and insert
    - TestConcurrentLink: two threads link with the same username at once

Testing Philosophy:
    A link either commits an Account with its Profile or commits nothing.
    "Username required" and "username taken" outcomes leave no trace.
"""

import dataclasses
import random
import threading
import time

import pytest
from django.db import OperationalError, connection

from authentication.models import Profile, User
from authentication.services import LinkStatus
from authentication.tests.factories import ProfileFactory, UserFactory
from authentication.tokens import TokenKind
from core.exceptions import ConflictError, TransientStoreError, ValidationError


def account_counts():
    return User.objects.count(), Profile.objects.count()


# =============================================================================
# New identity
# =============================================================================


@pytest.mark.django_db
class TestNewIdentity:
    def test_without_username_requires_one_and_stores_nothing(self, linker, google_identity):
        outcome = linker.link(google_identity)

        assert outcome.status == LinkStatus.USERNAME_REQUIRED
        assert outcome.identity == google_identity
        assert outcome.tokens is None
        assert account_counts() == (0, 0)

    def test_blank_username_counts_as_missing(self, linker, google_identity):
        outcome = linker.link(google_identity, username="   ")

        assert outcome.status == LinkStatus.USERNAME_REQUIRED

    def test_with_username_creates_verified_account(self, linker, codec, google_identity):
        outcome = linker.link(google_identity, username="NewComer")

        assert outcome.status == LinkStatus.AUTHENTICATED
        user = User.objects.get(email="newcomer@example.com")
        assert user.google_id == "google-sub-123"
        assert user.email_verified is True
        assert not user.has_usable_password()
        assert user.profile.username == "newcomer"
        assert user.profile.avatar_url == google_identity.picture

        claims = codec.verify(outcome.tokens.access_token, TokenKind.ACCESS)
        assert claims.user_id == user.pk
        assert claims.username == "newcomer"
        assert claims.avatar_url == google_identity.picture

    def test_default_avatar_when_provider_has_none(
        self, linker, google_identity, auth_config
    ):
        identity = dataclasses.replace(google_identity, picture="")

        linker.link(identity, username="newcomer")

        assert Profile.objects.get(username="newcomer").avatar_url == (
            auth_config.default_avatar_url
        )

    def test_taken_username(self, linker, google_identity):
        ProfileFactory(user=UserFactory(email="other@example.com"), username="newcomer")

        outcome = linker.link(google_identity, username="NEWCOMER")

        assert outcome.status == LinkStatus.USERNAME_TAKEN
        assert outcome.username == "newcomer"
        assert account_counts() == (1, 1)

    def test_malformed_username_rejected_and_nothing_stored(self, linker, google_identity):
        with pytest.raises(ValidationError) as exc_info:
            linker.link(google_identity, username="no spaces allowed")

        assert exc_info.value.error_code == "INVALID_USERNAME"
        assert account_counts() == (0, 0)


# =============================================================================
# Existing account
# =============================================================================


@pytest.mark.django_db
class TestExistingAccount:
    def test_password_account_is_bound_and_signed_in(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com", email_verified=False)
        ProfileFactory(user=user, username="already_here")

        outcome = linker.link(google_identity)

        user.refresh_from_db()
        assert outcome.status == LinkStatus.AUTHENTICATED
        assert outcome.user == user
        assert outcome.username == "already_here"
        assert user.google_id == "google-sub-123"
        assert user.email_verified is True
        assert user.has_usable_password()

    def test_supplied_username_ignored_when_profile_complete(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com")
        ProfileFactory(user=user, username="already_here")

        outcome = linker.link(google_identity, username="something_else")

        assert outcome.username == "already_here"
        assert Profile.objects.get(user=user).username == "already_here"

    def test_malformed_username_ignored_when_profile_complete(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com", google_id="google-sub-123")
        ProfileFactory(user=user, username="already_set")

        outcome = linker.link(google_identity, username="x!")

        assert outcome.status == LinkStatus.AUTHENTICATED
        assert outcome.username == "already_set"

    def test_verified_flag_is_never_downgraded(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com", email_verified=True)
        ProfileFactory(user=user, username="already_here")
        identity = dataclasses.replace(google_identity, email_verified=False)

        linker.link(identity)

        user.refresh_from_db()
        assert user.email_verified is True

    def test_returning_google_user(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com", password=None, google_id="google-sub-123")
        ProfileFactory(user=user, username="returning")

        outcome = linker.link(google_identity)

        assert outcome.status == LinkStatus.AUTHENTICATED
        assert outcome.user == user
        assert account_counts() == (1, 1)

    def test_subject_match_wins_over_email_match(self, linker, google_identity):
        """The Google account's email changed to one another local account uses."""
        bound = UserFactory(email="old-address@example.com", google_id="google-sub-123")
        ProfileFactory(user=bound, username="bound_user")
        ProfileFactory(user=UserFactory(email="newcomer@example.com"), username="email_user")

        outcome = linker.link(google_identity)

        assert outcome.user == bound
        assert outcome.username == "bound_user"

    def test_account_bound_to_other_subject_is_conflict(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com", google_id="someone-else")
        ProfileFactory(user=user, username="taken_over")

        with pytest.raises(ConflictError) as exc_info:
            linker.link(google_identity)

        assert exc_info.value.error_code == "GOOGLE_ACCOUNT_MISMATCH"
        user.refresh_from_db()
        assert user.google_id == "someone-else"

    def test_account_mismatch_not_masked_by_taken_username(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com", google_id="other-sub")
        ProfileFactory(user=user, username=None)
        ProfileFactory(user=UserFactory(email="owner@example.com"), username="taken_name")

        with pytest.raises(ConflictError) as exc_info:
            linker.link(google_identity, username="taken_name")

        assert exc_info.value.error_code == "GOOGLE_ACCOUNT_MISMATCH"
        user.refresh_from_db()
        assert user.google_id == "other-sub"

    def test_incomplete_profile_requires_username_and_rolls_back_binding(
        self, linker, google_identity
    ):
        user = UserFactory(email="newcomer@example.com", email_verified=False)
        ProfileFactory(user=user, username=None)

        outcome = linker.link(google_identity)

        user.refresh_from_db()
        assert outcome.status == LinkStatus.USERNAME_REQUIRED
        assert user.google_id is None
        assert user.email_verified is False

    def test_incomplete_profile_completed_with_username(self, linker, google_identity):
        user = UserFactory(email="newcomer@example.com")
        ProfileFactory(user=user, username=None, avatar_url="")

        outcome = linker.link(google_identity, username="finisher")

        profile = Profile.objects.get(user=user)
        assert outcome.status == LinkStatus.AUTHENTICATED
        assert profile.username == "finisher"
        assert profile.avatar_url == google_identity.picture
        assert account_counts() == (1, 1)


# =============================================================================
# Username race
# =============================================================================


@pytest.mark.django_db
class TestUsernameRace:
    def test_username_claimed_after_check_reports_taken(
        self, linker, google_identity, monkeypatch
    ):
        """
        Another request commits the same username between our uniqueness
        check and our insert. The insert fails on the unique index, the
        whole link rolls back, and the caller is told the name is taken.
        """
        ProfileFactory(user=UserFactory(email="winner@example.com"), username="contested")
        monkeypatch.setattr(linker, "_username_taken", lambda username, user: False)

        outcome = linker.link(google_identity, username="contested")

        assert outcome.status == LinkStatus.USERNAME_TAKEN
        assert not User.objects.filter(email="newcomer@example.com").exists()
        assert account_counts() == (1, 1)

    def test_two_identities_same_username_only_one_wins(self, linker, google_identity):
        second = dataclasses.replace(
            google_identity, subject_id="google-sub-456", email="second@example.com"
        )

        first_outcome = linker.link(google_identity, username="contested")
        second_outcome = linker.link(second, username="contested")

        assert first_outcome.status == LinkStatus.AUTHENTICATED
        assert second_outcome.status == LinkStatus.USERNAME_TAKEN
        assert not User.objects.filter(email="second@example.com").exists()
        assert account_counts() == (1, 1)


@pytest.mark.django_db(transaction=True)
class TestConcurrentLink:
    def test_simultaneous_links_claim_username_once(self, linker, google_identity):
        """
        Two first-time sign-ins race for the same username on separate
        connections. Exactly one commits; the other reports the name taken
        and leaves no account behind.
        """
        identities = [
            google_identity,
            dataclasses.replace(
                google_identity, subject_id="google-sub-456", email="second@example.com"
            ),
        ]
        barrier = threading.Barrier(len(identities))
        outcomes = []

        def sign_in(identity):
            try:
                barrier.wait()
                for _ in range(50):
                    try:
                        outcomes.append(linker.link(identity, username="contested"))
                        return
                    except (TransientStoreError, OperationalError):
                        # SQLite shared-cache table locks surface immediately
                        time.sleep(random.uniform(0.005, 0.02))
            finally:
                connection.close()

        threads = [threading.Thread(target=sign_in, args=(i,)) for i in identities]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcome.status for outcome in outcomes) == sorted(
            [LinkStatus.AUTHENTICATED, LinkStatus.USERNAME_TAKEN]
        )
        assert Profile.objects.filter(username="contested").count() == 1
        assert not User.objects.filter(profile__isnull=True).exists()
        assert account_counts() == (1, 1)
