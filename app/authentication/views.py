"""
Authentication views.

This module provides the identity API:
- Signup, sign-in and token refresh
- Email verification and resending the verification email
- Forgot/reset password
- Google sign-in with username completion

Related files:
    - serializers.py: Request/response serialization
    - services/: Business logic
    - dependencies.py: Service container used by every view
    - urls.py: URL routing

Note:
    These endpoints are public: they authenticate with credentials in the
    request body (or a refresh token) rather than an access token, so DRF
    authentication and permission classes are disabled on all of them.
    Application errors are rendered by core.views.api_exception_handler
    unless a view needs a specific body shape.
"""

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.dependencies import get_auth_services
from authentication.serializers import (
    AccessTokenResponseSerializer,
    EmailSerializer,
    ErrorResponseSerializer,
    GoogleSigninSerializer,
    MessageSerializer,
    NeedsUsernameResponseSerializer,
    RefreshTokenSerializer,
    ResetPasswordSerializer,
    SigninSerializer,
    SignupResponseSerializer,
    SignupSerializer,
    TokenPairResponseSerializer,
)
from authentication.services import LinkStatus, VerificationOutcome
from authentication.services.signin import InvalidCredentialsError, UnverifiedAccountError
from core.exceptions import (
    AuthError,
    BaseApplicationError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from core.helpers import get_bearer_token, get_client_ip

logger = logging.getLogger(__name__)


def validated_data(serializer_class, data):
    """Validate request data, raising the application ValidationError on failure."""
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationError(
            "Missing or invalid fields",
            error_code="INVALID_INPUT",
            details=serializer.errors,
        )
    return serializer.validated_data


def flat_error(exc: BaseApplicationError, status_code: int | None = None) -> Response:
    """Render an error with its details merged into the top level of the body."""
    body = {**exc.details, "error": exc.message, "error_code": exc.error_code}
    return Response(body, status=status_code or exc.status_code)


class PublicAPIView(APIView):
    """Base for endpoints that take credentials in the request itself."""

    authentication_classes = []
    permission_classes = []


# =============================================================================
# Signup / Sign-in / Refresh
# =============================================================================


class SignupView(PublicAPIView):
    """
    Register with username, email and password.

    POST: Create an unverified account and send the verification email

    URL: /api/v1/auth/signup/

    Returns:
        201 with the new account id and whether the email went out.
        verificationSent=false means the client should offer a resend.
        409 when the email (checked first) or the username is taken.
    """

    @extend_schema(
        summary="Sign up",
        request=SignupSerializer,
        responses={
            201: SignupResponseSerializer,
            400: ErrorResponseSerializer,
            409: ErrorResponseSerializer,
        },
        tags=["Auth"],
    )
    def post(self, request):
        data = validated_data(SignupSerializer, request.data)
        result = get_auth_services().signup.sign_up(
            username=data["username"],
            email=data["email"],
            password=data["password"],
        )

        body = {
            "message": "User created successfully. Please check your email to verify your account.",
            "email": result.email,
            "userId": result.user_id,
            "requiresVerification": True,
            "verificationSent": result.verification_sent,
            "verificationExpiry": result.verification_expires_at,
        }
        if settings.DEBUG:
            body["verificationToken"] = result.verification_token
        return Response(body, status=status.HTTP_201_CREATED)


class SigninView(PublicAPIView):
    """
    Sign in with email and password.

    POST: Exchange credentials for an access/refresh token pair

    URL: /api/v1/auth/signin/

    Returns:
        200 with accessToken and refreshToken.
        400 on bad credentials.
        403 with unverified=true when the email is not verified yet.
    """

    @extend_schema(
        summary="Sign in",
        request=SigninSerializer,
        responses={
            200: TokenPairResponseSerializer,
            400: ErrorResponseSerializer,
            403: ErrorResponseSerializer,
        },
        tags=["Auth"],
    )
    def post(self, request):
        data = validated_data(SigninSerializer, request.data)
        try:
            result = get_auth_services().signin.sign_in(
                email=data["email"], password=data["password"]
            )
        except UnverifiedAccountError as exc:
            return flat_error(exc)
        except InvalidCredentialsError:
            logger.info(f"Failed sign-in from {get_client_ip(request)}")
            raise

        user = result.user
        return Response(
            {
                "accessToken": result.tokens.access_token,
                "refreshToken": result.tokens.refresh_token,
                "userId": user.pk,
                "username": user.username,
                "email": user.email,
                "email_verified": user.email_verified,
            }
        )


class RefreshTokenView(PublicAPIView):
    """
    Mint a new access token.

    POST: Present a refresh token as ``Authorization: Bearer <refresh>``
    or in the body as refreshToken.

    URL: /api/v1/auth/refresh-token/

    Note:
        The new access token carries the refresh token's claims as they
        were at sign-in; profile changes appear after the next sign-in.
    """

    @extend_schema(
        summary="Refresh access token",
        request=RefreshTokenSerializer,
        responses={
            200: AccessTokenResponseSerializer,
            400: ErrorResponseSerializer,
            403: ErrorResponseSerializer,
        },
        tags=["Auth"],
    )
    def post(self, request):
        token = get_bearer_token(request) or request.data.get("refreshToken")
        if not token:
            raise ValidationError(
                "Refresh token is required", error_code="MISSING_REFRESH_TOKEN"
            )

        try:
            access_token = get_auth_services().codec.refresh(token)
        except AuthError as exc:
            return Response(
                {"error": "Invalid refresh token", "error_code": exc.error_code},
                status=status.HTTP_403_FORBIDDEN,
            )
        return Response({"accessToken": access_token})


# =============================================================================
# Google Sign-in
# =============================================================================


class GoogleSigninView(PublicAPIView):
    """
    Sign in with a Google ID token.

    POST: Verify the ID token and link it to a local account

    URL: /api/v1/auth/google-signin/

    Request body:
        {
            "idToken": "google_id_token",
            "username": "optional_username"
        }

    Returns:
        200 with tokens when the account is linked and has a username.
        428 with needsUsername=true when a username must be chosen; call
            again with the same idToken and a username.
        409 with needsUsername=true when the chosen username is taken.
        401 when Google rejects the ID token.
    """

    @extend_schema(
        summary="Sign in with Google",
        request=GoogleSigninSerializer,
        responses={
            200: TokenPairResponseSerializer,
            401: ErrorResponseSerializer,
            409: NeedsUsernameResponseSerializer,
            428: NeedsUsernameResponseSerializer,
        },
        tags=["Auth"],
    )
    def post(self, request):
        data = validated_data(GoogleSigninSerializer, request.data)
        services = get_auth_services()

        identity = services.google.verify(data["idToken"])
        outcome = services.linker.link(identity, username=data.get("username"))

        if outcome.status == LinkStatus.AUTHENTICATED:
            return Response(
                {
                    "accessToken": outcome.tokens.access_token,
                    "refreshToken": outcome.tokens.refresh_token,
                    "userId": outcome.user.pk,
                    "username": outcome.username,
                    "email": outcome.user.email,
                    "email_verified": outcome.user.email_verified,
                }
            )

        if outcome.status == LinkStatus.USERNAME_TAKEN:
            message, status_code = "Username already taken", status.HTTP_409_CONFLICT
        else:
            message, status_code = (
                "Username required",
                status.HTTP_428_PRECONDITION_REQUIRED,
            )
        return Response(
            {
                "error": message,
                "needsUsername": True,
                "googleId": identity.subject_id,
                "email": identity.email,
                "emailVerified": identity.email_verified,
            },
            status=status_code,
        )


# =============================================================================
# Email Verification
# =============================================================================


class VerifyEmailView(PublicAPIView):
    """
    Redeem an email verification token.

    GET: /api/v1/auth/verify-email/?token=<token>

    Returns:
        200 verified (or already verified).
        400 for a missing or unknown token.
        410 with expired=true, userId and email for an expired token.
    """

    @extend_schema(
        summary="Verify email",
        parameters=[OpenApiParameter("token", str, required=True)],
        responses={
            200: MessageSerializer,
            400: ErrorResponseSerializer,
            410: ErrorResponseSerializer,
        },
        tags=["Auth"],
    )
    def get(self, request):
        token = request.query_params.get("token", "")
        try:
            outcome = get_auth_services().verification.redeem_verification(token)
        except NotFoundError as exc:
            return flat_error(exc, status.HTTP_400_BAD_REQUEST)
        except ExpiredError as exc:
            return flat_error(exc)

        if outcome == VerificationOutcome.ALREADY_VERIFIED:
            message = "Email already verified!"
        else:
            message = "Email verified successfully!"
        return Response({"message": message, "verified": True})


class ResendVerificationView(PublicAPIView):
    """
    Send a fresh verification email.

    POST: /api/v1/auth/resend-verification/

    The previous token stops working as soon as the new one is issued.
    """

    @extend_schema(
        summary="Resend verification email",
        request=EmailSerializer,
        responses={
            200: MessageSerializer,
            404: ErrorResponseSerializer,
        },
        tags=["Auth"],
    )
    def post(self, request):
        data = validated_data(EmailSerializer, request.data)
        result = get_auth_services().verification.reissue_verification(data["email"])

        if result.already_verified:
            return Response({"message": "Email already verified"})

        body = {
            "message": "Verification email sent"
            if result.email_sent
            else "Verification token created but the email could not be sent",
            "emailSent": result.email_sent,
            "verificationExpiry": result.token.expires_at,
        }
        if settings.DEBUG:
            body["verificationToken"] = result.token.token
        return Response(body)


# =============================================================================
# Password Reset
# =============================================================================


class ForgotPasswordView(PublicAPIView):
    """
    Email a password reset link.

    POST: /api/v1/auth/forgot-password/

    Note:
        Outside DEBUG the response is the same whether or not the email
        belongs to an account, so the endpoint cannot be used to discover
        registered addresses.
    """

    GENERIC_MESSAGE = "If an account exists for this email, a reset link has been sent"

    @extend_schema(
        summary="Request password reset",
        request=EmailSerializer,
        responses={
            200: MessageSerializer,
            404: ErrorResponseSerializer,
        },
        tags=["Auth"],
    )
    def post(self, request):
        data = validated_data(EmailSerializer, request.data)
        try:
            result = get_auth_services().verification.request_password_reset(
                data["email"]
            )
        except NotFoundError:
            if settings.DEBUG:
                raise
            return Response({"message": self.GENERIC_MESSAGE})

        body = {"message": self.GENERIC_MESSAGE}
        if settings.DEBUG:
            body["emailFailure"] = not result.email_sent
            body["resetToken"] = result.token.token
        return Response(body)


class ResetPasswordView(PublicAPIView):
    """
    Set a new password with a reset token.

    POST: /api/v1/auth/reset-password/

    Returns:
        200 on success; the token cannot be used again.
        400 for a missing, unknown, used or expired token.
    """

    @extend_schema(
        summary="Reset password",
        request=ResetPasswordSerializer,
        responses={
            200: MessageSerializer,
            400: OpenApiResponse(ErrorResponseSerializer, "Invalid or expired token"),
        },
        tags=["Auth"],
    )
    def post(self, request):
        data = validated_data(ResetPasswordSerializer, request.data)
        try:
            get_auth_services().verification.reset_password(
                token=data["token"], new_password=data["newPassword"]
            )
        except NotFoundError as exc:
            return flat_error(exc, status.HTTP_400_BAD_REQUEST)
        except ExpiredError as exc:
            return Response(
                {"error": exc.message, "error_code": exc.error_code, "expired": True},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({"message": "Password has been reset successfully"})
