"""
Tests for authentication models and managers.
"""

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from authentication.models import (
    Profile,
    User,
    validate_username_format,
    validate_username_not_reserved,
)
from authentication.tests.factories import ProfileFactory, UserFactory


@pytest.mark.django_db
class TestUserManager:
    def test_create_user_normalizes_email(self):
        user = User.objects.create_user(email="  Mixed.Case@Example.COM ", password="p")

        assert user.email == "mixed.case@example.com"

    def test_create_user_hashes_password(self):
        user = User.objects.create_user(email="a@x.com", password="p")

        assert user.password != "p"
        assert user.check_password("p")

    def test_create_user_without_password_is_unusable(self):
        user = User.objects.create_user(email="g@x.com", password=None)

        assert not user.has_usable_password()
        assert not user.check_password("")

    def test_create_user_requires_email(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email="", password="p")

    def test_create_user_writes_no_profile(self):
        user = User.objects.create_user(email="a@x.com", password="p")

        assert not Profile.objects.filter(user=user).exists()
        assert user.username is None

    def test_create_superuser(self):
        user = User.objects.create_superuser(email="root@x.com", password="p")

        assert user.is_staff is True
        assert user.is_superuser is True
        assert user.email_verified is True
        assert Profile.objects.filter(user=user).exists()

    def test_create_superuser_rejects_non_staff(self):
        with pytest.raises(ValueError):
            User.objects.create_superuser(email="root@x.com", password="p", is_staff=False)

    def test_normalize_email_handles_none(self):
        assert User.objects.normalize_email(None) == ""


@pytest.mark.django_db
class TestUserModel:
    def test_email_is_unique(self):
        UserFactory(email="a@x.com")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                User.objects.create(email="a@x.com")

    def test_google_id_is_unique_when_present(self):
        UserFactory(google_id="sub-1")
        UserFactory(google_id=None)
        UserFactory(google_id=None)

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                UserFactory(google_id="sub-1")

    def test_username_comes_from_profile(self):
        user = UserFactory()
        ProfileFactory(user=user, username="foo")

        assert User.objects.get(pk=user.pk).username == "foo"

    def test_str(self):
        assert str(UserFactory(email="a@x.com")) == "a@x.com"


@pytest.mark.django_db
class TestProfileModel:
    def test_save_lowercases_username(self):
        profile = ProfileFactory(username="  MixedCase ")

        profile.refresh_from_db()
        assert profile.username == "mixedcase"

    def test_username_unique_case_insensitive(self):
        ProfileFactory(username="taken")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Profile.objects.bulk_create(
                    [Profile(user=UserFactory(), username="TAKEN")]
                )

    def test_many_profiles_without_username(self):
        ProfileFactory(username=None)
        ProfileFactory(username=None)

        assert Profile.objects.filter(username__isnull=True).count() == 2

    def test_one_profile_per_user(self):
        user = UserFactory()
        Profile.objects.create(user=user, username="first")

        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Profile.objects.create(user=user, username="second")

    def test_deleting_user_deletes_profile(self):
        profile = ProfileFactory(username="gone")

        profile.user.delete()

        assert not Profile.objects.filter(username="gone").exists()

    def test_str_falls_back_to_user(self):
        profile = ProfileFactory(user=UserFactory(email="a@x.com"), username=None)

        assert str(profile) == "a@x.com"


class TestUsernameValidators:
    @pytest.mark.parametrize("value", ["abc", "a_b-c", "A" * 30, "user123"])
    def test_valid_format(self, value):
        validate_username_format(value)

    @pytest.mark.parametrize("value", ["ab", "a" * 31, "has space", "dot.ted", "émile"])
    def test_invalid_format(self, value):
        with pytest.raises(ValidationError):
            validate_username_format(value)

    @pytest.mark.parametrize("value", ["admin", "Support", "NULL"])
    def test_reserved(self, value):
        with pytest.raises(ValidationError):
            validate_username_not_reserved(value)

    def test_not_reserved(self):
        validate_username_not_reserved("jiujitsu")
