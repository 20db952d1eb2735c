"""Conversation models: session turns, chat responses, and stream events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceCitation(BaseModel):
    """A retrieved article cited by an assistant answer."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    relevance: float = Field(description="Raw similarity score of the match, in [0, 1].")


class ConversationTurn(BaseModel):
    """One message in a session, stored in insertion order."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    sources: list[SourceCitation] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Result of one batched chat exchange.

    ``degraded`` is ``True`` when every generator failed and ``answer`` is
    the fixed apology text.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    answer: str
    sources: list[SourceCitation] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_utcnow)
    degraded: bool = False


class StreamEvent(BaseModel):
    """One event of a streamed chat exchange.

    ``token`` events carry answer fragments in order; exactly one ``done``
    (or ``error``) event closes the stream and carries the citations and the
    resolved session id.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["token", "done", "error"]
    content: str = ""
    session_id: str | None = None
    sources: list[SourceCitation] = Field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.type != "token"


class HealthReport(BaseModel):
    """Availability snapshot for the health probe."""

    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "degraded"]
    components: dict[str, bool] = Field(default_factory=dict)
    indexed_chunks: int = 0
    timestamp: datetime = Field(default_factory=_utcnow)
