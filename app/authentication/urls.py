"""
URL configuration for authentication app.

URL structure (all under /api/v1/auth/):
    signup/                 - Password signup (POST)
    signin/                 - Password sign-in (POST)
    google-signin/          - Google sign-in and username completion (POST)
    verify-email/           - Redeem verification token (GET ?token=)
    resend-verification/    - New verification email (POST)
    forgot-password/        - Request reset link (POST)
    reset-password/         - Set new password with reset token (POST)
    refresh-token/          - New access token from a refresh token (POST)
"""

from django.urls import path

from authentication.views import (
    ForgotPasswordView,
    GoogleSigninView,
    RefreshTokenView,
    ResendVerificationView,
    ResetPasswordView,
    SigninView,
    SignupView,
    VerifyEmailView,
)

app_name = "authentication"

urlpatterns = [
    path("signup/", SignupView.as_view(), name="signup"),
    path("signin/", SigninView.as_view(), name="signin"),
    path("google-signin/", GoogleSigninView.as_view(), name="google-signin"),
    path("refresh-token/", RefreshTokenView.as_view(), name="refresh-token"),
    # Email verification
    path("verify-email/", VerifyEmailView.as_view(), name="verify-email"),
    path(
        "resend-verification/",
        ResendVerificationView.as_view(),
        name="resend-verification",
    ),
    # Password reset
    path("forgot-password/", ForgotPasswordView.as_view(), name="forgot-password"),
    path("reset-password/", ResetPasswordView.as_view(), name="reset-password"),
]
