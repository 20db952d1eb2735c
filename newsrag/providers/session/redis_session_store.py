"""Redis-backed session store.

Each session is one Redis list at ``session:{id}`` holding JSON-encoded
turns in insertion order.  ``EXPIRE`` provides the sliding TTL: every
append and touch resets it, and Redis drops the key when it lapses, so an
expired session reads as an empty list with no extra bookkeeping.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator

import redis.asyncio as redis
import structlog
from pydantic import ValidationError

from newsrag.interfaces.session_store import ISessionStore
from newsrag.models.conversation import ConversationTurn
from newsrag.utils.errors import ProviderUnavailableError
from newsrag.utils.logging import get_logger

_KEY_PREFIX = "session:"


class RedisSessionStore(ISessionStore):
    """:class:`ISessionStore` on top of ``redis.asyncio``.

    Parameters
    ----------
    redis_url:
        Connection URL, e.g. ``redis://localhost:6379/0``.
    ttl_seconds:
        Sliding time-to-live applied on every append or touch.
    client:
        Pre-built client; when given, *redis_url* is ignored.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        ttl_seconds: int = 7 * 24 * 60 * 60,
        client: redis.Redis | None = None,
    ) -> None:
        self._ttl = ttl_seconds
        self._client = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{_KEY_PREFIX}{session_id}"

    @contextlib.contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except redis.RedisError as exc:
            raise ProviderUnavailableError(
                message=f"Redis session {operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def initialize(self) -> None:
        with self._guard("ping"):
            await self._client.ping()
        self._logger.info("session_store_initialized", backend="redis", ttl_s=self._ttl)

    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        key = self._key(session_id)
        # RPUSH and EXPIRE go out in one MULTI/EXEC so a turn is never
        # stored without a TTL.
        with self._guard("append"):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, turn.model_dump_json())
                pipe.expire(key, self._ttl)
                await pipe.execute()

    async def get(self, session_id: str) -> list[ConversationTurn]:
        with self._guard("get"):
            raw_turns = await self._client.lrange(self._key(session_id), 0, -1)
        turns: list[ConversationTurn] = []
        for raw in raw_turns:
            try:
                turns.append(ConversationTurn.model_validate_json(raw))
            except ValidationError as exc:
                self._logger.warning(
                    "session_turn_deserialize_failed",
                    session_id=session_id,
                    error=str(exc)[:200],
                )
        return turns

    async def clear(self, session_id: str) -> bool:
        with self._guard("clear"):
            result = await self._client.delete(self._key(session_id))
        return result > 0

    async def touch(self, session_id: str) -> bool:
        with self._guard("touch"):
            return bool(await self._client.expire(self._key(session_id), self._ttl))

    async def close(self) -> None:
        await self._client.aclose()

    def get_provider_name(self) -> str:
        return "redis_session_store"
