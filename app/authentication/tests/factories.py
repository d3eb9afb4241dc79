"""
Factory Boy factories for authentication models.

Provides test data for:
- User: email-based account (unverified by default)
- Profile: username and avatar bound 1:1 to a User

Usage:
    from authentication.tests.factories import UserFactory, ProfileFactory

    user = UserFactory(email_verified=True)
    ProfileFactory(user=user, username="testuser")

    # Account with a pending verification token
    user = UserFactory(
        verification_token="abc",
        verification_token_expires_at=timezone.now() + timedelta(hours=24),
    )
"""

import factory

from authentication.models import Profile, User

DEFAULT_PASSWORD = "TestPass123!"


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for User model.

    Created through UserManager.create_user() so the password is hashed.
    Pass password=None for a Google-only account.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    email_verified = False
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use UserManager.create_user()."""
        password = kwargs.pop("password", DEFAULT_PASSWORD)
        return model_class.objects.create_user(
            email=kwargs.pop("email"), password=password, **kwargs
        )


class ProfileFactory(factory.django.DjangoModelFactory):
    """
    Factory for Profile model.

    Examples:
        profile = ProfileFactory(user=existing_user, username="testuser")

        # Google account that never picked a username
        profile = ProfileFactory(user=existing_user, username=None)
    """

    class Meta:
        model = Profile
        django_get_or_create = ("user",)

    user = factory.SubFactory(UserFactory)
    username = factory.Sequence(lambda n: f"username{n}")
    avatar_url = "https://cdn.example.com/avatars/default.png"
