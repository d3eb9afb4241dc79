"""
Google account linking.

Reconciles a verified Google identity with local accounts:

1. In one transaction, find the account bound to the Google subject id,
   or failing that the account with the same email.
2. Found: bind the subject id and refresh the verified flag. If its
   profile already has a username, sign in.
3. Not found: create a verified account without a password.
4. No username yet and none supplied: roll back and report
   USERNAME_REQUIRED with the Google identity, so the client can repeat
   the call with a username. Nothing is stored in between.
5. Username supplied: check it again inside the transaction and roll back
   with USERNAME_TAKEN on a collision; otherwise attach the profile.
6. Commit, then issue tokens.

Account and profile are created in the same transaction, so a committed
account always has its profile.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from django.db.models import Q

from authentication.adapters import ExternalIdentity
from authentication.config import AuthConfig
from authentication.models import Profile, User
from authentication.services.signup import normalize_username
from authentication.store import CredentialStore
from authentication.tokens import IssuedTokens, TokenClaims, TokenCodec
from core.exceptions import ConflictError
from core.services import BaseService

logger = logging.getLogger(__name__)


class LinkStatus(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    USERNAME_REQUIRED = "username_required"
    USERNAME_TAKEN = "username_taken"


@dataclass(frozen=True)
class LinkOutcome:
    status: LinkStatus
    identity: ExternalIdentity
    user: User | None = None
    username: str | None = None
    tokens: IssuedTokens | None = None


class IdentityLinkService(BaseService):
    """
    Find or create the local account for a Google identity.

    Args:
        store: Credential store
        codec: Token codec used once linking succeeds
        config: Identity configuration (default avatar)
    """

    def __init__(self, store: CredentialStore, codec: TokenCodec, config: AuthConfig):
        self.store = store
        self.codec = codec
        self.config = config

    def link(self, identity: ExternalIdentity, username: str | None = None) -> LinkOutcome:
        """
        Link ``identity`` and sign in, or report what the client must supply.

        Raises:
            ValidationError: a username is needed and the supplied one is
                malformed or reserved (ignored when the profile has one)
            ConflictError: the matching account is bound to another Google
                subject id, or a concurrent write claimed the email
        """
        if username is not None and not username.strip():
            username = None

        try:
            with self.store.transaction() as tx:
                user = self._find_account(identity)
                if user is None:
                    user = User.objects.create_user(
                        email=identity.email,
                        password=None,
                        google_id=identity.subject_id,
                        email_verified=True,
                    )
                    profile = None
                    logger.info(f"Created account {user.pk} from Google sign-in")
                else:
                    self._bind(user, identity)
                    profile = Profile.objects.filter(user=user).first()

                if profile is None or not profile.username:
                    if username is None:
                        tx.rollback()
                        return LinkOutcome(LinkStatus.USERNAME_REQUIRED, identity)
                    username = normalize_username(username)
                    if self._username_taken(username, user):
                        tx.rollback()
                        return LinkOutcome(
                            LinkStatus.USERNAME_TAKEN, identity, username=username
                        )
                    profile = self._attach_profile(user, profile, username, identity)
        except ConflictError as e:
            # A concurrent link or signup committed the same username first
            if e.error_code != "UNIQUE_VIOLATION" or username is None:
                raise
            username = username.strip().lower()
            if not Profile.objects.filter(username=username).exists():
                raise
            return LinkOutcome(LinkStatus.USERNAME_TAKEN, identity, username=username)

        tokens = self.codec.issue_pair(
            TokenClaims(
                user_id=user.pk,
                username=profile.username,
                email=user.email,
                avatar_url=profile.avatar_url,
            )
        )
        logger.info(f"User {user.pk} signed in with Google", extra={"user_id": user.pk})
        return LinkOutcome(
            LinkStatus.AUTHENTICATED,
            identity,
            user=user,
            username=profile.username,
            tokens=tokens,
        )

    def _find_account(self, identity: ExternalIdentity) -> User | None:
        candidates = list(
            User.objects.select_for_update().filter(
                Q(google_id=identity.subject_id) | Q(email=identity.email)
            )
        )
        for candidate in candidates:
            if candidate.google_id == identity.subject_id:
                return candidate
        return candidates[0] if candidates else None

    def _bind(self, user: User, identity: ExternalIdentity) -> None:
        if user.google_id and user.google_id != identity.subject_id:
            raise ConflictError(
                "This account is linked to a different Google account",
                error_code="GOOGLE_ACCOUNT_MISMATCH",
            )
        user.google_id = identity.subject_id
        # Never downgrade an address the user already proved
        user.email_verified = user.email_verified or identity.email_verified
        user.save(update_fields=["google_id", "email_verified", "updated_at"])

    def _username_taken(self, username: str, user: User) -> bool:
        return Profile.objects.filter(username=username).exclude(user=user).exists()

    def _attach_profile(
        self,
        user: User,
        profile: Profile | None,
        username: str,
        identity: ExternalIdentity,
    ) -> Profile:
        avatar_url = identity.picture or self.config.default_avatar_url
        if profile is None:
            return Profile.objects.create(user=user, username=username, avatar_url=avatar_url)
        profile.username = username
        if not profile.avatar_url:
            profile.avatar_url = avatar_url
        profile.save(update_fields=["username", "avatar_url", "updated_at"])
        return profile
