"""
Service container for the identity API.

Views call get_auth_services() to obtain fully wired services. The
container is built once per process on first use, under a lock, so
threads racing on a cold start build it exactly once. Configuration
errors surface when it is built (and again on every later call until
the settings are fixed), never at import time.

Tests build services directly with fakes, or call
reset_auth_services() after changing settings (done automatically on
Django's setting_changed signal, see signals.py).
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from django.conf import settings

from authentication.adapters import GoogleIdentityVerifier
from authentication.config import AuthConfig
from authentication.services import (
    IdentityLinkService,
    SigninService,
    SignupService,
    VerificationTokenManager,
)
from authentication.store import CredentialStore
from authentication.tokens import TokenCodec
from toolkit.protocols import EmailSender
from toolkit.services.email import EmailService


@dataclass(frozen=True)
class AuthServices:
    config: AuthConfig
    store: CredentialStore
    codec: TokenCodec
    sender: EmailSender
    verification: VerificationTokenManager
    signup: SignupService
    signin: SigninService
    linker: IdentityLinkService
    google: GoogleIdentityVerifier


_services: AuthServices | None = None
_lock = threading.Lock()


def build_auth_services(config: AuthConfig) -> AuthServices:
    """Wire every identity service from one configuration."""
    store = CredentialStore()
    codec = TokenCodec(
        access_secret=config.access_secret,
        refresh_secret=config.refresh_secret,
        access_lifetime=config.access_token_lifetime,
        refresh_lifetime=config.refresh_token_lifetime,
    )
    sender = EmailService(from_email=config.from_email)
    verification = VerificationTokenManager(store, sender, config)
    return AuthServices(
        config=config,
        store=store,
        codec=codec,
        sender=sender,
        verification=verification,
        signup=SignupService(store, verification, config),
        signin=SigninService(codec),
        linker=IdentityLinkService(store, codec, config),
        google=GoogleIdentityVerifier(config.google_client_id),
    )


def get_auth_services() -> AuthServices:
    """
    Return the process-wide services, building them on first call.

    Raises:
        ConfigurationError: required settings are missing
    """
    global _services
    services = _services
    if services is not None:
        return services
    with _lock:
        if _services is None:
            _services = build_auth_services(AuthConfig.from_settings(settings))
        return _services


def reset_auth_services() -> None:
    """Drop the cached services so the next call rebuilds them."""
    global _services
    with _lock:
        _services = None
