"""
Homebrain Session Store

Keeps conversation sessions between utterances.

- Sessions awaiting a slot expire after the clarification timeout
- Sessions in a terminal state are discarded
- Each session has a lock so its utterances are processed one at a time
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional

from homebrain.core.state_machine import (
    ConversationSession,
    ConversationStateMachine,
    StateTransition,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """In-memory store of conversation sessions keyed by session id."""

    def __init__(self, clarification_timeout_seconds: float = 60.0) -> None:
        self.clarification_timeout_seconds = clarification_timeout_seconds
        self._sessions: Dict[str, ConversationSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # Tasks holding or waiting on each lock
        self._lock_users: Dict[str, int] = {}

    def lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, session_id: str) -> AsyncIterator[None]:
        """
        Holds the session lock for one utterance.

        The lock is dropped once no task uses it and the session is gone.
        """
        lock = self.lock_for(session_id)
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            self._drop_idle_lock(session_id)

    def get_or_create(self, session_id: str) -> ConversationSession:
        """
        Returns the live session, or a new one in MATCHING state.

        An expired clarification is closed before a new session is created.
        """
        session = self._sessions.get(session_id)

        if session is not None and session.is_awaiting_slot and self._is_expired(session):
            logger.info(f"Clarification expired for session {session_id}")
            session.state_machine.transition(StateTransition.EXPIRE)

        if session is None or session.state_machine.is_terminal:
            session = ConversationSession(
                session_id=session_id,
                state_machine=ConversationStateMachine(session_id=session_id),
            )
            self._sessions[session_id] = session

        return session

    def get(self, session_id: str) -> Optional[ConversationSession]:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._drop_idle_lock(session_id)

    def release(self, session: ConversationSession) -> None:
        """Drops a session once it reached a terminal state."""
        if session.state_machine.is_terminal:
            self._sessions.pop(session.session_id, None)

    def purge_expired(self) -> int:
        """Drops all expired clarifications; returns how many."""
        expired = [
            sid for sid, s in self._sessions.items()
            if s.is_awaiting_slot and self._is_expired(s)
        ]
        for sid in expired:
            self._sessions[sid].state_machine.transition(StateTransition.EXPIRE)
            self.discard(sid)
        return len(expired)

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    def __len__(self) -> int:
        return len(self._sessions)

    def _drop_idle_lock(self, session_id: str) -> None:
        if session_id in self._sessions or self._lock_users.get(session_id, 0) > 0:
            return
        self._locks.pop(session_id, None)
        self._lock_users.pop(session_id, None)

    def _is_expired(self, session: ConversationSession) -> bool:
        return session.age_seconds(datetime.now(timezone.utc)) > self.clarification_timeout_seconds
