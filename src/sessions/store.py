"""In-memory conversation sessions with a bounded sliding window."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from src.errors import SessionNotFound

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 20


@dataclass
class Message:
    """A single conversation turn."""

    role: str  # "user" or "assistant"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class Session:
    """Conversation history for a single visitor."""

    id: str
    messages: list[Message] = field(default_factory=list)
    last_active: float = 0.0


class SessionStore:
    """Owns every session, keyed by an unguessable random id.

    Possession of the id is the only credential. ``idle_ttl`` (seconds)
    enables idle expiry; ``None`` keeps sessions for the process lifetime.
    All access goes through one lock so append-then-trim is atomic.
    """

    def __init__(
        self,
        max_history: int = DEFAULT_MAX_HISTORY,
        idle_ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_history = max_history
        self.idle_ttl = idle_ttl
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # -- Internal helpers ------------------------------------------------------

    def _expired(self, session: Session, now: float) -> bool:
        return self.idle_ttl is not None and now - session.last_active >= self.idle_ttl

    def _lookup(self, session_id: str) -> Session:
        """Return a live session and mark it active. Caller holds the lock."""
        session = self._sessions.get(session_id)
        now = self._clock()
        if session is None:
            raise SessionNotFound
        if self._expired(session, now):
            del self._sessions[session_id]
            logger.info("Session %s expired on access", session_id)
            raise SessionNotFound
        session.last_active = now
        return session

    # -- Public API ------------------------------------------------------------

    def create(self) -> str:
        """Allocate a fresh empty session and return its id."""
        session_id = str(uuid.uuid4())
        with self._lock:
            self._sessions[session_id] = Session(id=session_id, last_active=self._clock())
        logger.debug("Created session %s", session_id)
        return session_id

    def exists(self, session_id: str) -> bool:
        try:
            self.get(session_id)
        except SessionNotFound:
            return False
        return True

    def get(self, session_id: str) -> list[dict[str, str]]:
        """Return a copy of the ordered history for ``session_id``."""
        with self._lock:
            session = self._lookup(session_id)
            return [m.to_dict() for m in session.messages]

    def append(self, session_id: str, user_message: str, assistant_message: str) -> None:
        """Append a user/assistant pair and trim to the sliding window."""
        with self._lock:
            session = self._lookup(session_id)
            session.messages.append(Message(role="user", content=user_message))
            session.messages.append(Message(role="assistant", content=assistant_message))
            if len(session.messages) > self.max_history:
                session.messages = session.messages[-self.max_history :]

    def evict_idle(self) -> int:
        """Drop sessions idle for at least ``idle_ttl``. Returns the count removed."""
        if self.idle_ttl is None:
            return 0
        now = self._clock()
        with self._lock:
            stale = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.info("Evicted %d idle session(s)", len(stale))
        return len(stale)
