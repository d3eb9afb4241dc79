"""
Serializers for the identity API.

Request serializers validate presence and shape only; business rules
(uniqueness, token state) live in the services. Response serializers
document the payloads for drf-spectacular.

Field names are camelCase to match the public API.
"""

from rest_framework import serializers


# =============================================================================
# Requests
# =============================================================================


class SignupSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=30)
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class SigninSerializer(serializers.Serializer):
    email = serializers.CharField(max_length=254)
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class GoogleSigninSerializer(serializers.Serializer):
    idToken = serializers.CharField()
    username = serializers.CharField(
        max_length=30,
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="Required when a previous call answered needsUsername",
    )


class EmailSerializer(serializers.Serializer):
    """Body of resend-verification and forgot-password."""

    email = serializers.CharField(max_length=254)


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField()
    newPassword = serializers.CharField(write_only=True, trim_whitespace=False)


class RefreshTokenSerializer(serializers.Serializer):
    refreshToken = serializers.CharField(
        required=False,
        help_text="Refresh token; may be sent as a Bearer header instead",
    )


# =============================================================================
# Responses
# =============================================================================


class MessageSerializer(serializers.Serializer):
    message = serializers.CharField()


class SignupResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    email = serializers.EmailField()
    userId = serializers.IntegerField()
    requiresVerification = serializers.BooleanField()
    verificationSent = serializers.BooleanField()
    verificationExpiry = serializers.DateTimeField()


class TokenPairResponseSerializer(serializers.Serializer):
    accessToken = serializers.CharField()
    refreshToken = serializers.CharField()
    userId = serializers.IntegerField()
    username = serializers.CharField(allow_null=True)
    email = serializers.EmailField()
    email_verified = serializers.BooleanField()


class NeedsUsernameResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    needsUsername = serializers.BooleanField()
    googleId = serializers.CharField()
    email = serializers.EmailField()
    emailVerified = serializers.BooleanField()


class AccessTokenResponseSerializer(serializers.Serializer):
    accessToken = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    error_code = serializers.CharField()
    details = serializers.DictField(required=False)
