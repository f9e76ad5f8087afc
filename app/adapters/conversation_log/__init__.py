"""Conversation log sinks (best-effort persistence of chat turns)."""

from app.adapters.conversation_log.base import (
    AbstractConversationLogSink,
    ConversationTurn,
    NullConversationLogSink,
)
from app.adapters.conversation_log.jsonl_file import JsonlFileConversationLogSink
from app.core.config import settings


def create_conversation_log_sink() -> AbstractConversationLogSink:
    """Build the sink selected by configuration."""
    if settings.app.conversation_log_enabled:
        return JsonlFileConversationLogSink(settings.app.conversation_log_path)
    return NullConversationLogSink()


__all__ = [
    "AbstractConversationLogSink",
    "ConversationTurn",
    "JsonlFileConversationLogSink",
    "NullConversationLogSink",
    "create_conversation_log_sink",
]
