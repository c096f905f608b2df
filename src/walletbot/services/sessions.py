# This project was developed with assistance from AI tools.
"""Per-identity conversation session store.

Sessions live in memory keyed by identity. Access to one identity is
serialized through a fixed pool of striped locks (identity hash -> stripe),
so handlers for different identities run concurrently while two messages
from the same identity never interleave their read-modify-write.

Idle sessions older than ``SESSION_TTL_SECONDS`` are treated as expired:
the next contact starts a fresh conversation. Creating a session also
sweeps every expired one out of the table, at most once per
``SESSION_PURGE_INTERVAL_SECONDS``, so identities that never return do
not accumulate.
"""

import logging
import threading
import zlib
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

from ..core.config import settings
from ..enums import Region
from ..schemas.session import Session

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory session table with striped per-identity locking."""

    def __init__(
        self,
        *,
        ttl_seconds: int | None = None,
        stripes: int | None = None,
        purge_interval_seconds: int | None = None,
    ) -> None:
        ttl = settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._ttl = timedelta(seconds=ttl) if ttl > 0 else None
        self._stripes = [threading.Lock() for _ in range(stripes or settings.SESSION_LOCK_STRIPES)]
        self._table_lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        interval = (
            settings.SESSION_PURGE_INTERVAL_SECONDS
            if purge_interval_seconds is None
            else purge_interval_seconds
        )
        self._purge_interval = timedelta(seconds=interval)
        self._last_purge = datetime.now(UTC)

    def _stripe(self, identity: str) -> threading.Lock:
        return self._stripes[zlib.crc32(identity.encode("utf-8")) % len(self._stripes)]

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return self._ttl is not None and now - session.last_seen > self._ttl

    def _purge_locked(self, now: datetime) -> int:
        """Drop expired sessions. Caller holds ``_table_lock``."""
        self._last_purge = now
        expired = [i for i, s in self._sessions.items() if self._is_expired(s, now)]
        for identity in expired:
            del self._sessions[identity]
        if expired:
            logger.info("Purged %d expired sessions", len(expired))
        return len(expired)

    @staticmethod
    def _new_session(identity: str) -> Session:
        return Session(
            identity=identity,
            balance=settings.SEED_BALANCE,
            language=settings.DEFAULT_LANGUAGE,
            region=Region(settings.DEFAULT_REGION),
        )

    def get(self, identity: str) -> Session | None:
        with self._table_lock:
            return self._sessions.get(identity)

    def get_or_create(self, identity: str) -> tuple[Session, bool]:
        """Return ``(session, created)``, marking an existing session as seen.

        Callers that mutate the session must hold ``locked(identity)``;
        ``locked`` calls this for them.
        """
        now = datetime.now(UTC)
        with self._table_lock:
            session = self._sessions.get(identity)
            if session is not None and self._is_expired(session, now):
                logger.info("Session for %s expired after idle timeout", identity)
                session = None
            if session is None:
                if self._ttl is not None and now - self._last_purge >= self._purge_interval:
                    self._purge_locked(now)
                session = self._new_session(identity)
                self._sessions[identity] = session
                logger.info("Session created for %s", identity)
                return session, True
            session.last_seen = now
        return session, False

    def delete(self, identity: str) -> None:
        with self._table_lock:
            if self._sessions.pop(identity, None) is not None:
                logger.info("Session deleted for %s", identity)

    def purge_expired(self) -> int:
        """Drop every idle-expired session; returns how many were removed."""
        with self._table_lock:
            return self._purge_locked(datetime.now(UTC))

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._sessions)

    @contextmanager
    def locked(self, identity: str) -> Iterator[tuple[Session, bool]]:
        """Serialize access to one identity and yield ``(session, created)``.

        ``last_seen`` is refreshed again when the block exits.
        """
        with self._stripe(identity):
            session, created = self.get_or_create(identity)
            try:
                yield session, created
            finally:
                session.last_seen = datetime.now(UTC)


# Module-level singleton
_store = SessionStore()


def get_session_store() -> SessionStore:
    """Return the module-level SessionStore singleton."""
    return _store
