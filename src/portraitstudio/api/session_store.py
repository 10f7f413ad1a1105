"""In-memory session registry for the Portrait Studio API.

Sessions hold uploads and generated images in memory only; nothing is
written to disk unless ``save_outputs`` is enabled.  The store keeps at most
``max_sessions`` entries and evicts the least recently updated one when full,
so an abandoned browser tab cannot grow the process without bound.

All methods are thread-safe.  Route handlers hand blocking API calls to worker
threads, and those threads update sessions while other requests read them.
"""

from __future__ import annotations

import logging
import threading

from portraitstudio.core.session import StudioSession

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 64


class SessionStore:
    """Thread-safe registry of :class:`StudioSession` objects."""

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        self._sessions: dict[str, StudioSession] = {}
        self._max_sessions = max_sessions
        self.lock = threading.RLock()

    def create(self) -> StudioSession:
        """Create, register and return a new empty session."""
        with self.lock:
            if len(self._sessions) >= self._max_sessions:
                self._evict_oldest()
            session = StudioSession()
            self._sessions[session.session_id] = session
            return session

    def get(self, session_id: str) -> StudioSession | None:
        with self.lock:
            return self._sessions.get(session_id)

    def clear(self) -> None:
        with self.lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self.lock:
            return session_id in self._sessions

    def _evict_oldest(self) -> None:
        # Sessions that are mid-generation are never evicted.
        candidates = [s for s in self._sessions.values() if s.can_reset]
        if not candidates:
            return
        oldest = min(candidates, key=lambda s: s.updated_at)
        del self._sessions[oldest.session_id]
        logger.info("Evicted session %s (store full).", oldest.session_id)
