"""Authorization broker for the single-password OAuth flow.

A login attempt is a two-phase ticket: it is first stored under a login id
(shown on the password page), and once the password matches it is moved,
unchanged, under a freshly minted authorization code. Wrong passwords leave
the login ticket in place so the user can retry until it expires. Login ids
and codes live in separate stores, so a code that has been redirected can
never be submitted as a login id.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from oauth.errors import (
    ExpiredOrUnknownAuthorization,
    InvalidRedirectUri,
    UnsupportedResponseType,
    WrongPassword,
)
from oauth.stores import PENDING_AUTH_LIFETIME, PendingAuthorization, PendingAuthorizationStore

logger = logging.getLogger(__name__)


class CredentialStore:
    """Holds the one shared secret."""

    def __init__(self, secret: str):
        self._secret = secret

    def check(self, supplied: str) -> bool:
        if not supplied or not self._secret:
            return False
        return secrets.compare_digest(supplied.encode(), self._secret.encode())


@dataclass(frozen=True)
class AuthorizationCode:
    """Result of a successful login: the code and where to deliver it."""

    code: str
    redirect_url: str


def _append_query(url: str, params: dict) -> str:
    """Set query params on url, keeping any it already has."""
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def _is_absolute_uri(uri: str) -> bool:
    parts = urlsplit(uri or "")
    return parts.scheme in ("http", "https") and bool(parts.netloc)


class AuthorizationBroker:
    """Issues login tickets and one-time authorization codes."""

    def __init__(self, credentials: CredentialStore, clock: Callable[[], float] = time.time,
                 lifetime: float = PENDING_AUTH_LIFETIME):
        self.credentials = credentials
        self.lifetime = lifetime
        self._clock = clock
        # login id -> ticket, then authorization code -> same ticket
        self.logins = PendingAuthorizationStore(clock)
        self.codes = PendingAuthorizationStore(clock)

    def begin_authorization(self, response_type: str, redirect_uri: str,
                            code_challenge: str = "") -> str:
        """Start a login attempt. Returns the login id for the password page.

        The client's ``state`` is not stored here; the login page carries
        it back to ``submit_credentials`` opaquely.
        """
        if response_type != "code":
            raise UnsupportedResponseType("Invalid response_type")
        if not _is_absolute_uri(redirect_uri):
            raise InvalidRedirectUri("redirect_uri must be an absolute http(s) URI")

        auth_id = secrets.token_urlsafe(32)
        self.logins.put(auth_id, PendingAuthorization(
            code_challenge=code_challenge or "",
            redirect_uri=redirect_uri,
            expires_at=self._clock() + self.lifetime,
        ))
        logger.info(f"[AUTH] Authorization started (pkce={'yes' if code_challenge else 'no'})")
        return auth_id

    def login(self, auth_id: str, password: str) -> str:
        """Move a login ticket under a new authorization code.

        Raises WrongPassword without touching the ticket, or
        ExpiredOrUnknownAuthorization if the ticket is gone or stale.
        """
        if not self.credentials.check(password):
            raise WrongPassword("Wrong password")

        pending = self.logins.take(auth_id or "")
        if pending is None or pending.is_expired(self._clock()):
            raise ExpiredOrUnknownAuthorization("Authorization expired. Please try again.")

        code = secrets.token_urlsafe(32)
        self.codes.put(code, pending)
        return code

    def submit_credentials(self, auth_id: str, password: str, state: str = "") -> AuthorizationCode:
        """Check the password and build the redirect that delivers the code."""
        try:
            code = self.login(auth_id, password)
        except WrongPassword:
            logger.warning("[AUTH] Login rejected: wrong password")
            raise

        pending = self.codes.get(code)
        params = {"code": code}
        if state:
            params["state"] = state

        logger.info("[AUTH] User authenticated")
        return AuthorizationCode(code=code, redirect_url=_append_query(pending.redirect_uri, params))

    def take_code(self, code: str) -> Optional[PendingAuthorization]:
        """Consume the ticket stored under an authorization code.

        Returns None when the code is unknown or expired; either way the
        code cannot be used again.
        """
        pending = self.codes.take(code or "")
        if pending is None or pending.is_expired(self._clock()):
            return None
        return pending

    def sweep_expired(self) -> int:
        removed = self.logins.sweep() + self.codes.sweep()
        if removed:
            logger.info(f"[SWEEP] Removed {removed} expired pending authorization(s)")
        return removed
