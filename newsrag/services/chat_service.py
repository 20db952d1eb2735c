"""Retrieve-then-generate chat service over the news knowledge base.

Answers a user message by embedding it, pulling the most similar chunks
from the vector store, and handing them to the LLM together with a short
summary of the session's recent turns.

Request flow (both the batched and the streamed path):
  1. SESSION    -- reuse the caller's session id or mint a fresh uuid4.
  2. HISTORY    -- load prior turns; an unknown or expired session is empty.
  3. RETRIEVE   -- embed the message and query the top-K chunks.
  4. PROMPT     -- numbered context block plus the last N turns.
  5. GENERATE   -- ILLMProvider.complete() or ILLMProvider.stream().
  6. RECORD     -- append the user turn, then the assistant turn.

Failure policy
--------------
- Embedding and vector-store errors (:class:`RAGError`) propagate: the
  caller gets a service error, not an invented answer.
- A :class:`GenerationError` (the whole fallback chain is exhausted) is
  logged and replaced by a fixed apology with no citations.  The chat
  still succeeds and both turns are recorded.

Streaming
---------
A producer task drains the LLM stream into a bounded ``asyncio.Queue``;
the consumer (the async generator returned by :meth:`stream_message`)
forwards each fragment as a ``token`` event.  If the consumer stops early
(client disconnect) the producer is cancelled, which closes the provider's
stream.  Streamed and batched answers go through the same recording step,
so the persisted turns never differ between the two paths.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass

import structlog

from newsrag.interfaces.embedding_provider import IEmbeddingProvider
from newsrag.interfaces.llm_provider import ILLMProvider
from newsrag.interfaces.session_store import ISessionStore
from newsrag.interfaces.vector_store_provider import IVectorStoreProvider
from newsrag.models.conversation import (
    ChatResponse,
    ConversationTurn,
    SourceCitation,
    StreamEvent,
)
from newsrag.models.rag import RetrievedChunk
from newsrag.utils.concurrency import call_with_timeout
from newsrag.utils.errors import EmbeddingError, GenerationError, VectorIndexError
from newsrag.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error while processing your request. "
    "Please try again."
)
NO_CONTEXT_MESSAGE = "No relevant context found in the knowledge base."

_SYSTEM_PROMPT_TEMPLATE = (
    "You are a helpful assistant that answers questions using a knowledge base "
    "of recent news articles and research papers.\n\n"
    "KNOWLEDGE BASE CONTEXT:\n"
    "{context}\n"
    "INSTRUCTIONS:\n"
    "1. Ground your answer in the context above whenever it is relevant.\n"
    "2. Refer to sources by their bracketed number, e.g. [1].\n"
    "3. If the context does not cover the question, say so plainly, then answer "
    "from general knowledge and mark that part as such.\n"
    "4. Keep answers concise and well organised.\n"
    "5. Use the previous conversation to resolve follow-up questions.\n"
    "6. Do not invent article titles, dates, or URLs."
)


@dataclass(frozen=True)
class _Prepared:
    """Everything resolved before generation starts."""

    session_id: str
    user_turn: ConversationTurn
    system_prompt: str
    user_prompt: str
    citations: list[SourceCitation]


class _StreamEnd:
    """Terminal marker placed on the queue after the last fragment."""


@dataclass(frozen=True)
class _StreamFailure:
    error: Exception


_END = _StreamEnd()


class ChatService:
    """Answers chat messages with retrieved context and session memory.

    Parameters
    ----------
    embedding_provider:
        Embeds the user message for retrieval.  Must be the same backend
        and model the index was built with.
    vector_store:
        Source of the top-K chunks.
    llm_provider:
        Text generator; usually a
        :class:`~newsrag.providers.llm.fallback_provider.FallbackLLMProvider`,
        which also enforces the per-call and per-fragment timeouts.
    session_store:
        Conversation history with a sliding TTL.
    top_k:
        Number of chunks to retrieve per message.
    history_turns:
        How many of the most recent turns go into the prompt.
    timeout:
        Timeout in seconds for the embedding and query calls.
    stream_queue_size:
        Capacity of the fragment queue between producer and consumer.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        llm_provider: ILLMProvider,
        session_store: ISessionStore,
        top_k: int = 5,
        history_turns: int = 5,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        stream_queue_size: int = 64,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._llm = llm_provider
        self._session_store = session_store
        self._top_k = top_k
        self._history_turns = history_turns
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._stream_queue_size = stream_queue_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send_message(self, message: str, session_id: str | None = None) -> ChatResponse:
        """Answer *message* in one call and record the exchange.

        Raises
        ------
        RAGError
            If embedding the message or querying the index fails.
        """
        prepared = await self._prepare(message, session_id)

        degraded = False
        citations = prepared.citations
        try:
            answer = await self._llm.complete(
                system_prompt=prepared.system_prompt,
                user_prompt=prepared.user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except GenerationError as exc:
            logger.error(
                "chat_generation_failed",
                session_id=prepared.session_id,
                provider=exc.provider_name,
                error=str(exc),
            )
            answer, citations, degraded = APOLOGY_MESSAGE, [], True

        assistant_turn = await self._record(prepared, answer, citations)
        logger.info(
            "chat_answered",
            session_id=prepared.session_id,
            sources=len(citations),
            answer_length=len(answer),
            degraded=degraded,
        )
        return ChatResponse(
            session_id=prepared.session_id,
            answer=answer,
            sources=citations,
            timestamp=assistant_turn.timestamp,
            degraded=degraded,
        )

    async def stream_message(
        self, message: str, session_id: str | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Answer *message* as a stream of events.

        Yields ``token`` events in generation order, then exactly one
        terminal event: ``done`` with the citations and session id, or
        ``error`` with the apology text if generation failed.  Retrieval
        errors are raised before the first event.
        """
        prepared = await self._prepare(message, session_id)

        queue: asyncio.Queue[str | _StreamEnd | _StreamFailure] = asyncio.Queue(
            maxsize=self._stream_queue_size
        )
        producer = asyncio.create_task(self._produce(prepared, queue))
        fragments: list[str] = []
        try:
            while True:
                item = await queue.get()
                if isinstance(item, _StreamEnd):
                    await producer
                    break
                if isinstance(item, _StreamFailure):
                    await producer
                    if not isinstance(item.error, GenerationError):
                        raise item.error
                    logger.error(
                        "chat_stream_failed",
                        session_id=prepared.session_id,
                        fragments_sent=len(fragments),
                        error=str(item.error),
                    )
                    await self._record(prepared, APOLOGY_MESSAGE, [])
                    yield StreamEvent(
                        type="error",
                        content=APOLOGY_MESSAGE,
                        session_id=prepared.session_id,
                    )
                    return
                fragments.append(item)
                yield StreamEvent(type="token", content=item)

            answer = "".join(fragments)
            await self._record(prepared, answer, prepared.citations)
            logger.info(
                "chat_streamed",
                session_id=prepared.session_id,
                fragments=len(fragments),
                sources=len(prepared.citations),
            )
            yield StreamEvent(
                type="done",
                session_id=prepared.session_id,
                sources=prepared.citations,
            )
        finally:
            if not producer.done():
                producer.cancel()
                logger.info("chat_stream_cancelled", session_id=prepared.session_id)
                with contextlib.suppress(asyncio.CancelledError):
                    await producer

    async def get_history(self, session_id: str) -> list[ConversationTurn]:
        """Return the session's turns in order; ``[]`` when unknown or expired."""
        return await self._session_store.get(session_id)

    async def reset_session(self, session_id: str) -> bool:
        """Delete the session's history immediately."""
        existed = await self._session_store.clear(session_id)
        logger.info("session_reset", session_id=session_id, existed=existed)
        return existed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _prepare(self, message: str, session_id: str | None) -> _Prepared:
        resolved_id = session_id or str(uuid.uuid4())
        user_turn = ConversationTurn(role="user", content=message)
        history = await self._session_store.get(resolved_id)
        matches = await self._retrieve(message)

        return _Prepared(
            session_id=resolved_id,
            user_turn=user_turn,
            system_prompt=_SYSTEM_PROMPT_TEMPLATE.format(
                context=self.build_context(matches)
            ),
            user_prompt=self.build_user_prompt(message, history, self._history_turns),
            citations=[
                SourceCitation(
                    title=match.chunk.title,
                    url=match.chunk.url,
                    relevance=match.similarity_score,
                )
                for match in matches
            ],
        )

    async def _retrieve(self, message: str) -> list[RetrievedChunk]:
        vector = await call_with_timeout(
            lambda: self._embedding_provider.embed_single(message),
            self._timeout,
            EmbeddingError,
            self._embedding_provider.get_provider_name(),
            "embed query",
        )
        matches = await call_with_timeout(
            lambda: self._vector_store.query(vector, top_k=self._top_k),
            self._timeout,
            VectorIndexError,
            self._vector_store.get_provider_name(),
            "vector query",
        )
        logger.debug(
            "chat_context_retrieved",
            matches=len(matches),
            top_score=matches[0].similarity_score if matches else None,
        )
        return matches

    async def _produce(
        self,
        prepared: _Prepared,
        queue: asyncio.Queue[str | _StreamEnd | _StreamFailure],
    ) -> None:
        """Copy LLM fragments onto *queue*, ending with a marker or a failure."""
        source = self._llm.stream(
            prepared.system_prompt,
            prepared.user_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        try:
            # Closed on every exit, including cancellation inside queue.put.
            async with contextlib.aclosing(source) as fragments:
                async for fragment in fragments:
                    if fragment:
                        await queue.put(fragment)
        except Exception as exc:
            await queue.put(_StreamFailure(exc))
            return
        await queue.put(_END)

    async def _record(
        self,
        prepared: _Prepared,
        answer: str,
        citations: list[SourceCitation],
    ) -> ConversationTurn:
        assistant_turn = ConversationTurn(role="assistant", content=answer, sources=citations)
        await self._session_store.append(prepared.session_id, prepared.user_turn)
        await self._session_store.append(prepared.session_id, assistant_turn)
        return assistant_turn

    # ------------------------------------------------------------------
    # Prompt construction
    # ------------------------------------------------------------------

    @staticmethod
    def build_context(matches: list[RetrievedChunk]) -> str:
        """Number *matches* in the order given (descending relevance)."""
        if not matches:
            return NO_CONTEXT_MESSAGE
        return "\n".join(
            f"[{index}] {match.chunk.title}\n{match.chunk.text}\n"
            for index, match in enumerate(matches, start=1)
        )

    @staticmethod
    def build_user_prompt(
        message: str, history: list[ConversationTurn], history_turns: int
    ) -> str:
        recent = history[-history_turns:] if history_turns > 0 else []
        if not recent:
            return message
        lines = [
            f"{'User' if turn.role == 'user' else 'Assistant'}: {turn.content}"
            for turn in recent
        ]
        return "Previous conversation:\n" + "\n".join(lines) + f"\n\nCurrent message: {message}"
