"""Bearer token registry.

Tokens are opaque random strings held in memory only; a restart invalidates
them all. Each token is removed by a loop timer when its lifetime ends, so
the registry only ever holds recently issued tokens.
"""

import asyncio
import base64
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict

from oauth.broker import AuthorizationBroker
from oauth.errors import InvalidGrant, UnsupportedGrantType

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_SECONDS = 24 * 60 * 60  # 24 hours


def s256_challenge(code_verifier: str) -> str:
    """PKCE S256: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_in: int
    token_type: str = "Bearer"

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


class TokenRegistry:
    """Exchanges authorization codes for bearer tokens and validates them."""

    def __init__(self, broker: AuthorizationBroker, clock: Callable[[], float] = time.time,
                 lifetime: int = ACCESS_TOKEN_EXPIRE_SECONDS):
        self.broker = broker
        self.lifetime = lifetime
        self._clock = clock
        self._tokens: Dict[str, float] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def redeem(self, grant_type: str, code: str, code_verifier: str = None) -> IssuedToken:
        """Exchange a one-time authorization code for a bearer token.

        Must be called from a running event loop (the expiry timer lives on it).
        """
        if grant_type != "authorization_code":
            raise UnsupportedGrantType()

        # The code is consumed whether or not the rest of the checks pass.
        pending = self.broker.take_code(code)
        if pending is None:
            logger.info("[TOKEN] Rejected: invalid or expired authorization code")
            raise InvalidGrant("Invalid or expired authorization code")

        if pending.code_challenge:
            if not code_verifier or s256_challenge(code_verifier) != pending.code_challenge:
                logger.info("[TOKEN] Rejected: PKCE verification failed")
                raise InvalidGrant("Invalid code_verifier")

        access_token = secrets.token_urlsafe(32)
        self._tokens[access_token] = self._clock() + self.lifetime
        loop = asyncio.get_running_loop()
        self._timers[access_token] = loop.call_later(self.lifetime, self._expire, access_token)

        logger.info("[TOKEN] Token issued")
        return IssuedToken(access_token=access_token, expires_in=self.lifetime)

    def is_valid(self, token: str) -> bool:
        expires_at = self._tokens.get(token)
        return expires_at is not None and self._clock() <= expires_at

    def _expire(self, token: str) -> None:
        self._tokens.pop(token, None)
        self._timers.pop(token, None)
        logger.info("[TOKEN] Token expired")

    def close(self) -> None:
        """Cancel expiry timers and forget every token."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
        self._tokens.clear()

    def __len__(self) -> int:
        return len(self._tokens)
