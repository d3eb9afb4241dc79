"""
Tests for AccessTokenAuthentication.
"""

import pytest
from rest_framework import exceptions
from rest_framework.request import Request
from rest_framework.test import APIRequestFactory

from authentication.backends import AccessTokenAuthentication, TokenUser
from authentication.tokens import TokenClaims

CLAIMS = TokenClaims(
    user_id=42,
    username="foo",
    email="a@x.com",
    avatar_url="https://cdn.example.com/a.png",
)


def make_request(authorization=None):
    factory = APIRequestFactory()
    headers = {"HTTP_AUTHORIZATION": authorization} if authorization else {}
    return Request(factory.get("/", **headers))


class TestAccessTokenAuthentication:
    def test_valid_access_token(self, codec):
        token = codec.issue_access_token(CLAIMS)

        user, auth = AccessTokenAuthentication().authenticate(
            make_request(f"Bearer {token}")
        )

        assert isinstance(user, TokenUser)
        assert user.pk == 42
        assert user.username == "foo"
        assert user.is_authenticated is True
        assert auth == CLAIMS

    def test_no_header_is_anonymous(self):
        assert AccessTokenAuthentication().authenticate(make_request()) is None

    def test_other_scheme_is_ignored(self):
        request = make_request("Basic dXNlcjpwYXNz")

        assert AccessTokenAuthentication().authenticate(request) is None

    def test_refresh_token_is_rejected(self, codec):
        token = codec.issue_refresh_token(CLAIMS)

        with pytest.raises(exceptions.AuthenticationFailed):
            AccessTokenAuthentication().authenticate(make_request(f"Bearer {token}"))

    def test_garbage_token_is_rejected(self):
        with pytest.raises(exceptions.AuthenticationFailed) as exc_info:
            AccessTokenAuthentication().authenticate(make_request("Bearer not-a-jwt"))

        assert exc_info.value.get_codes() == "TOKEN_MALFORMED"

    def test_authenticate_header(self):
        assert AccessTokenAuthentication().authenticate_header(make_request()) == "Bearer"
