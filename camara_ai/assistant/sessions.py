"""
Conversation memory.

SessionStore is the interface the orchestrator talks to; InMemorySessionStore
keeps everything in this process. A Redis or database backed store only has
to implement the same five methods.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List

from camara_ai.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ConversationSession:
    session_id: str
    turns: List[Dict[str, str]] = field(default_factory=list)
    last_active: float = field(default_factory=time.monotonic)


class SessionStore(ABC):
    @abstractmethod
    async def get(self, session_id: str) -> List[Dict[str, str]]:
        """Turns of a session, oldest first. Unknown sessions are empty."""

    @abstractmethod
    async def append(self, session_id: str, turns: List[Dict[str, str]]) -> None:
        """Append turns atomically and trim the session to its maximum size."""

    @abstractmethod
    async def clear(self, session_id: str) -> bool:
        """Forget a session. Returns whether it existed."""

    @abstractmethod
    async def evict_stale(self) -> int:
        """Drop sessions idle for too long. Returns how many were dropped."""

    @abstractmethod
    def lock(self, session_id: str):
        """Async context manager serializing work on one session."""


class InMemorySessionStore(SessionStore):
    """
    Process-local store.

    Sessions keep their most recent ``max_turns`` turns. At most
    ``max_sessions`` sessions are held; the least recently active one goes
    first. ``evict_stale`` drops sessions idle for more than ``ttl_seconds``.
    """

    def __init__(
        self,
        max_turns: int = settings.SESSION_MAX_TURNS,
        max_sessions: int = settings.MAX_SESSIONS,
        ttl_seconds: float = settings.SESSION_TTL_MINUTES * 60,
        clock=time.monotonic,
    ):
        self.max_turns = max_turns
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: "OrderedDict[str, ConversationSession]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}
        # Holders plus waiters per lock
        self._lock_users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                # Cleared or never-created sessions keep no lock behind
                if session_id not in self._sessions:
                    self._locks.pop(session_id, None)

    async def get(self, session_id: str) -> List[Dict[str, str]]:
        session = self._sessions.get(session_id)
        if session is None:
            return []
        return list(session.turns)

    async def append(self, session_id: str, turns: List[Dict[str, str]]) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            session = ConversationSession(session_id=session_id)
            self._sessions[session_id] = session

        session.turns.extend(turns)
        if len(session.turns) > self.max_turns:
            del session.turns[: len(session.turns) - self.max_turns]
        session.last_active = self._clock()
        self._sessions.move_to_end(session_id)

        while len(self._sessions) > self.max_sessions:
            oldest_id, _ = self._sessions.popitem(last=False)
            self._drop_lock(oldest_id)
            logger.info(f"Session {oldest_id} evicted (capacity {self.max_sessions})")

    async def clear(self, session_id: str) -> bool:
        existed = self._sessions.pop(session_id, None) is not None
        self._drop_lock(session_id)
        return existed

    async def evict_stale(self) -> int:
        now = self._clock()
        stale = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_active > self.ttl_seconds
        ]
        for session_id in stale:
            del self._sessions[session_id]
            self._drop_lock(session_id)
        if stale:
            logger.info(f"Evicted {len(stale)} idle sessions")
        return len(stale)

    def _drop_lock(self, session_id: str) -> None:
        # A lock someone holds or waits on is dropped when they leave
        if session_id not in self._lock_users:
            self._locks.pop(session_id, None)


async def sweep_sessions(store: SessionStore, interval_seconds: float) -> None:
    """Background task: evict idle sessions forever."""
    while True:
        await asyncio.sleep(interval_seconds)
        await store.evict_stale()
