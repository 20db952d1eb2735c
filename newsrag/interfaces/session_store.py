"""Abstract base class for conversation session stores.

A session is an ordered, append-only list of
:class:`~newsrag.models.conversation.ConversationTurn` objects with a
sliding time-to-live.  Every ``append`` or ``touch`` restarts the expiry
countdown.  After expiry a session reads exactly like one that never
existed: an empty list.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from newsrag.models.conversation import ConversationTurn


# Concrete implementations (newsrag/providers/session/):
#   InMemorySessionStore  -- dict + injectable clock
#   SQLiteSessionStore    -- sqlite3 file, expiry column
#   RedisSessionStore     -- redis list per session + EXPIRE
class ISessionStore(ABC):
    """Contract for TTL-bounded conversation history storage.

    Sessions are independent keys; implementations need no cross-session
    locking.  A backend outage surfaces as
    :class:`~newsrag.utils.errors.ProviderUnavailableError`.
    """

    async def initialize(self) -> None:
        """Prepare the backing store (create tables, prune expired rows)."""

    @abstractmethod
    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        """Append *turn*, creating the session if absent and refreshing its TTL."""

    @abstractmethod
    async def get(self, session_id: str) -> list[ConversationTurn]:
        """Return the session's turns in insertion order, or ``[]``."""

    @abstractmethod
    async def clear(self, session_id: str) -> bool:
        """Delete the session immediately; return ``True`` if it existed."""

    @abstractmethod
    async def touch(self, session_id: str) -> bool:
        """Refresh the TTL without appending; return ``False`` if absent or expired."""

    async def close(self) -> None:
        """Release connections held by the store."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this session store."""
