"""Transport-facing orchestrator for the news RAG system.

:class:`RAGOrchestrator` is the single object an outer layer (the CLI, or
an HTTP app) talks to.  It routes chat operations to the
:class:`~newsrag.services.chat_service.ChatService` and ingestion runs to
the :class:`~newsrag.services.ingestion.ingestion_service.IngestionService`,
and it answers the health probe.

The orchestrator owns no state of its own: every collaborator is built
once at startup by the factories in :mod:`newsrag.main` and injected here
already validated.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import httpx
import structlog

from newsrag.models.conversation import (
    ChatResponse,
    ConversationTurn,
    HealthReport,
    StreamEvent,
)
from newsrag.models.rag import IngestionReport
from newsrag.utils.concurrency import call_with_timeout
from newsrag.utils.errors import VectorIndexError
from newsrag.utils.logging import get_logger

if TYPE_CHECKING:
    from newsrag.interfaces.embedding_provider import IEmbeddingProvider
    from newsrag.interfaces.llm_provider import ILLMProvider
    from newsrag.interfaces.session_store import ISessionStore
    from newsrag.interfaces.vector_store_provider import IVectorStoreProvider
    from newsrag.services.chat_service import ChatService
    from newsrag.services.ingestion.ingestion_service import IngestionService

_HEALTH_PROBE_SESSION = "__health_probe__"


class RAGOrchestrator:
    """Entry point for chat, history, ingestion, and health operations.

    Parameters
    ----------
    chat_service:
        Query pipeline (retrieve, generate, record).
    ingestion_service:
        Fetch, chunk, embed, and upsert pipeline.
    embedding_provider / llm_provider / vector_store / session_store:
        The same instances the services use; the orchestrator needs them
        for startup, the health probe, and index maintenance.
    http_client:
        Shared client used by the article providers, closed on shutdown.
    timeout:
        Timeout in seconds for index maintenance calls.
    """

    def __init__(
        self,
        chat_service: ChatService,
        ingestion_service: IngestionService,
        embedding_provider: IEmbeddingProvider,
        llm_provider: ILLMProvider,
        vector_store: IVectorStoreProvider,
        session_store: ISessionStore,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._chat_service = chat_service
        self._ingestion_service = ingestion_service
        self._embedding_provider = embedding_provider
        self._llm_provider = llm_provider
        self._vector_store = vector_store
        self._session_store = session_store
        self._http_client = http_client
        self._timeout = timeout
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Prepare the session store and the vector collection.

        Raises
        ------
        ProviderUnavailableError
            If the session backend cannot be reached.
        VectorIndexError
            If the collection exists with a different embedding dimension.
        """
        await self._session_store.initialize()
        dimension = self._embedding_provider.get_dimension()
        await call_with_timeout(
            lambda: self._vector_store.ensure_collection(dimension),
            self._timeout,
            VectorIndexError,
            self._vector_store.get_provider_name(),
            "ensure collection",
        )
        self._logger.info(
            "orchestrator_initialized",
            embedding=self._embedding_provider.get_provider_name(),
            llm=self._llm_provider.get_provider_name(),
            vector_store=self._vector_store.get_provider_name(),
            session_store=self._session_store.get_provider_name(),
            dimension=dimension,
        )

    async def close(self) -> None:
        await self._session_store.close()
        if self._http_client is not None:
            await self._http_client.aclose()
        self._logger.info("orchestrator_closed")

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def send_message(self, message: str, session_id: str | None = None) -> ChatResponse:
        return await self._chat_service.send_message(message, session_id)

    def stream_message(
        self, message: str, session_id: str | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Return the event stream for *message*; see ChatService.stream_message."""
        return self._chat_service.stream_message(message, session_id)

    async def get_history(self, session_id: str) -> list[ConversationTurn]:
        return await self._chat_service.get_history(session_id)

    async def reset_session(self, session_id: str) -> bool:
        return await self._chat_service.reset_session(session_id)

    # ------------------------------------------------------------------
    # Ingestion and index maintenance
    # ------------------------------------------------------------------

    async def trigger_ingestion(self) -> IngestionReport:
        """Run one ingestion pass and return its report.

        Raises
        ------
        IngestionError
            If the run aborted; ``exc.report`` holds the partial counts.
        """
        report = await self._ingestion_service.run()
        self._logger.info(
            "ingestion_triggered",
            documents_added=report.documents_added,
            articles_indexed=report.articles_indexed,
        )
        return report

    async def clear_index(self) -> int:
        """Drop every indexed chunk; return how many were removed."""
        removed = await call_with_timeout(
            self._vector_store.count,
            self._timeout,
            VectorIndexError,
            self._vector_store.get_provider_name(),
            "count",
        )
        await call_with_timeout(
            self._vector_store.clear,
            self._timeout,
            VectorIndexError,
            self._vector_store.get_provider_name(),
            "clear collection",
        )
        self._logger.warning("index_cleared", chunks_removed=removed)
        return removed

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> HealthReport:
        """Report per-component availability and the index size.

        Never raises: a failing component is reported as unavailable and
        the overall status becomes ``"degraded"``.
        """
        components: dict[str, bool] = {
            "embedding": self._embedding_provider.is_available(),
            "llm": self._llm_provider.is_available(),
            "vector_store": self._vector_store.is_available(),
        }

        indexed_chunks = 0
        try:
            indexed_chunks = await call_with_timeout(
                self._vector_store.count,
                self._timeout,
                VectorIndexError,
                self._vector_store.get_provider_name(),
                "count",
            )
        except VectorIndexError as exc:
            components["vector_store"] = False
            self._logger.warning("health_vector_store_failed", error=str(exc))

        try:
            await self._session_store.touch(_HEALTH_PROBE_SESSION)
            components["session_store"] = True
        except Exception as exc:
            components["session_store"] = False
            self._logger.warning("health_session_store_failed", error=str(exc))

        status = "ok" if all(components.values()) else "degraded"
        self._logger.info("health_checked", status=status, **components)
        return HealthReport(
            status=status,
            components=components,
            indexed_chunks=indexed_chunks,
        )
