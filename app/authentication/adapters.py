"""
Google Sign-In adapter.

Verifies a Google ID token (from the Google Sign-In SDK on web or mobile)
and turns it into an ExternalIdentity for the identity linker.

Google's signing certificates are fetched over a shared requests session
wrapped in cachecontrol, so certificate downloads are cached between
requests. The session is created once, under a lock, on first use.

Related files:
    - services/linking.py: IdentityLinkService consumes ExternalIdentity
    - views.py: GoogleSigninView
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock

import cachecontrol
import google.auth.transport.requests
import google.oauth2.id_token
import requests

from core.exceptions import AuthError, ConfigurationError

logger = logging.getLogger(__name__)

_session = None
_lock = RLock()


@contextmanager
def locked_session():
    """Yield the shared certificate-caching session, creating it once."""
    global _session
    with _lock:
        if _session is None:
            _session = cachecontrol.CacheControl(requests.session())
        yield _session


@dataclass(frozen=True)
class ExternalIdentity:
    """
    A verified identity from an external provider.

    Also the payload of a "username required" outcome: the client sends
    the ID token again together with a username, no state is kept here.
    """

    subject_id: str
    email: str
    email_verified: bool
    name: str = ""
    picture: str = ""


class GoogleIdentityVerifier:
    """
    Verify Google ID tokens for one OAuth client id.

    Args:
        client_id: The OAuth client id the token must be issued for
    """

    def __init__(self, client_id: str):
        self.client_id = client_id

    def verify(self, id_token: str) -> ExternalIdentity:
        """
        Verify ``id_token`` and return the identity it asserts.

        Raises:
            ConfigurationError: no Google client id configured
            AuthError: signature, audience, issuer or expiry check failed,
                or the token has no email
        """
        if not self.client_id:
            raise ConfigurationError(
                "Google sign-in is not configured",
                error_code="MISSING_CONFIGURATION",
                details={"missing": ["GOOGLE_CLIENT_ID"]},
            )
        try:
            with locked_session() as session:
                request = google.auth.transport.requests.Request(session=session)
                idinfo = google.oauth2.id_token.verify_oauth2_token(
                    id_token, request, self.client_id
                )
        except ValueError as e:
            logger.info(f"Rejected Google ID token: {e}")
            raise AuthError("Invalid Google token", error_code="INVALID_GOOGLE_TOKEN") from e

        if not idinfo or not idinfo.get("sub") or not idinfo.get("email"):
            raise AuthError("Invalid Google token", error_code="INVALID_GOOGLE_TOKEN")

        return ExternalIdentity(
            subject_id=idinfo["sub"],
            email=idinfo["email"].strip().lower(),
            email_verified=bool(idinfo.get("email_verified", False)),
            name=idinfo.get("name", ""),
            picture=idinfo.get("picture", ""),
        )
