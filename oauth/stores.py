"""In-memory stores for OAuth state.

Nothing here survives a restart. The pending-authorization table, the
bearer-token registry (oauth/tokens.py) and the session map (sessions.py)
are kept separate because their keys and lifetimes differ.

All mutations happen on the event loop thread without awaiting between the
existence check and the delete, so take() is an atomic consume.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional


PENDING_AUTH_LIFETIME = 10 * 60  # 10 minutes


@dataclass(frozen=True)
class PendingAuthorization:
    """An authorization request waiting for a password or for redemption."""

    code_challenge: str
    redirect_uri: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class PendingAuthorizationStore:
    """Pending authorizations keyed by login id or by authorization code."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._records: Dict[str, PendingAuthorization] = {}

    def put(self, key: str, record: PendingAuthorization) -> None:
        self._records[key] = record

    def get(self, key: str) -> Optional[PendingAuthorization]:
        return self._records.get(key)

    def take(self, key: str) -> Optional[PendingAuthorization]:
        """Remove and return the record under key, or None."""
        return self._records.pop(key, None)

    def sweep(self) -> int:
        """Drop expired records. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, record in self._records.items() if record.is_expired(now)]
        for key in expired:
            del self._records[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))
