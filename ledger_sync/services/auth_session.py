"""Cached verified identity. Replaced or cleared as a whole, never partially updated."""

import time
from typing import Callable, Optional

from pydantic import TypeAdapter, ValidationError

from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import AuthSession
from ledger_sync.core.shared_types import AuthStatus, StorageKey
from ledger_sync.db.repository import KeyValueStore

logger = get_logger(__name__)

DEFAULT_ROLE = "editor"
DEFAULT_TTL_SECONDS = 24 * 60 * 60

_SESSION_ADAPTER = TypeAdapter(AuthSession)


class AuthSessionCache:
    """
    The single active identity of this client.

    A session is trusted for `ttl_seconds` after the ledger confirmed access; after that (or after the ledger rejects
    the identity on any call) it has to be verified again.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def get(self) -> Optional[AuthSession]:
        raw = self.store.get(StorageKey.AUTH_SESSION)
        if raw is None:
            return None
        try:
            return _SESSION_ADAPTER.validate_json(raw)
        except ValidationError:
            logger.error("Discarding unreadable cached session")
            return None

    def save(self, identity: str, role: Optional[str] = None) -> AuthSession:
        """Store a freshly verified identity; restarts the TTL."""
        session = AuthSession(
            email=identity,
            role=role or DEFAULT_ROLE,
            verified_at_epoch_ms=self._now_ms(),
            status=AuthStatus.AUTHORIZED,
        )
        self.store.set(StorageKey.AUTH_SESSION, _SESSION_ADAPTER.dump_json(session).decode())
        return session

    def clear(self) -> None:
        self.store.remove(StorageKey.AUTH_SESSION)

    def is_valid(self) -> bool:
        session = self.get()
        if session is None or session.status != AuthStatus.AUTHORIZED or not session.email:
            return False
        elapsed_ms = self._now_ms() - session.verified_at_epoch_ms
        return elapsed_ms < self.ttl_seconds * 1000

    def identity(self) -> Optional[str]:
        """Email of the session while it is valid."""
        if not self.is_valid():
            return None
        session = self.get()
        return session.email if session else None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
