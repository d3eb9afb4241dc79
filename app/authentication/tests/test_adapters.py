"""
Tests for the Google ID token verifier.

google.oauth2.id_token.verify_oauth2_token is patched; no network access.
"""

from unittest.mock import patch

import pytest

from authentication.adapters import ExternalIdentity, GoogleIdentityVerifier
from core.exceptions import AuthError, ConfigurationError

VERIFY_PATH = "google.oauth2.id_token.verify_oauth2_token"

ID_INFO = {
    "iss": "https://accounts.google.com",
    "sub": "google-sub-123",
    "email": "NewComer@Example.com",
    "email_verified": True,
    "name": "New Comer",
    "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
}


class TestGoogleIdentityVerifier:
    def test_valid_token_yields_identity(self):
        verifier = GoogleIdentityVerifier("client-id")

        with patch(VERIFY_PATH, return_value=ID_INFO) as mock_verify:
            identity = verifier.verify("id-token")

        assert identity == ExternalIdentity(
            subject_id="google-sub-123",
            email="newcomer@example.com",
            email_verified=True,
            name="New Comer",
            picture="https://lh3.googleusercontent.com/a/photo.jpg",
        )
        args = mock_verify.call_args.args
        assert args[0] == "id-token"
        assert args[2] == "client-id"

    def test_missing_optional_fields_default(self):
        verifier = GoogleIdentityVerifier("client-id")
        info = {"sub": "abc", "email": "a@x.com"}

        with patch(VERIFY_PATH, return_value=info):
            identity = verifier.verify("id-token")

        assert identity.email_verified is False
        assert identity.picture == ""

    def test_rejected_token_is_auth_error(self):
        verifier = GoogleIdentityVerifier("client-id")

        with patch(VERIFY_PATH, side_effect=ValueError("Token expired")):
            with pytest.raises(AuthError) as exc_info:
                verifier.verify("id-token")

        assert exc_info.value.error_code == "INVALID_GOOGLE_TOKEN"
        assert exc_info.value.status_code == 401

    def test_token_without_email_is_rejected(self):
        verifier = GoogleIdentityVerifier("client-id")

        with patch(VERIFY_PATH, return_value={"sub": "abc"}):
            with pytest.raises(AuthError):
                verifier.verify("id-token")

    def test_missing_client_id_is_configuration_error(self):
        verifier = GoogleIdentityVerifier("")

        with patch(VERIFY_PATH) as mock_verify:
            with pytest.raises(ConfigurationError):
                verifier.verify("id-token")

        mock_verify.assert_not_called()
