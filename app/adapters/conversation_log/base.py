"""Conversation log sink interfaces.

Sinks are best-effort: the chat route schedules appends after the response
is sent, and a failing sink must never affect the client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ConversationTurn:
    """One admitted user message and the assistant reply it produced.

    Attributes:
        user_message: Content of the last user message in the request.
        assistant_message: Content of the first completion choice ('' if none).
        model: Model reported by the upstream provider.
        client_hash: Truncated hash of the client identity (never the raw IP).
        request_id: Correlation id of the HTTP request, when known.
        created_at: ISO-8601 UTC timestamp.
    """

    user_message: str
    assistant_message: str
    model: str | None = None
    client_hash: str | None = None
    request_id: str | None = None
    created_at: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AbstractConversationLogSink(ABC):
    """Interface for conversation log sinks."""

    @abstractmethod
    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        """Append a turn to the session's log.

        Args:
            session_id: Widget session identifier ("anonymous" when absent).
            turn: Conversation turn to persist.
        """
        raise NotImplementedError


class NullConversationLogSink(AbstractConversationLogSink):
    """Sink used when conversation logging is disabled."""

    async def append(self, session_id: str, turn: ConversationTurn) -> None:
        return None
