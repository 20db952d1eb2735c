"""In-memory session store with a sliding TTL.

Sessions live in a plain dict for the lifetime of the process.  Expiry
is checked lazily on every access against an injectable clock, so tests
can advance time without sleeping.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from newsrag.interfaces.session_store import ISessionStore
from newsrag.models.conversation import ConversationTurn
from newsrag.utils.logging import get_logger


@dataclass
class _SessionRecord:
    expires_at: float
    turns: list[ConversationTurn] = field(default_factory=list)


class InMemorySessionStore(ISessionStore):
    """Dict-backed :class:`ISessionStore`.

    Parameters
    ----------
    ttl_seconds:
        Sliding time-to-live applied on every append or touch.
    clock:
        Zero-argument callable returning the current time in seconds.
    """

    def __init__(
        self,
        ttl_seconds: int = 7 * 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, _SessionRecord] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def _live(self, session_id: str) -> _SessionRecord | None:
        record = self._sessions.get(session_id)
        if record is None:
            return None
        if record.expires_at <= self._clock():
            del self._sessions[session_id]
            self._logger.debug("session_expired", session_id=session_id)
            return None
        return record

    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        record = self._live(session_id)
        if record is None:
            record = self._sessions[session_id] = _SessionRecord(expires_at=0.0)
        record.turns.append(turn)
        record.expires_at = self._clock() + self._ttl

    async def get(self, session_id: str) -> list[ConversationTurn]:
        record = self._live(session_id)
        return list(record.turns) if record else []

    async def clear(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    async def touch(self, session_id: str) -> bool:
        record = self._live(session_id)
        if record is None:
            return False
        record.expires_at = self._clock() + self._ttl
        return True

    def get_provider_name(self) -> str:
        return "memory_session_store"
