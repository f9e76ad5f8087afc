"""Chat relay service: prompt injection, upstream call, turn extraction."""

from __future__ import annotations

import logging
import time
from typing import Any

from app.adapters.conversation_log.base import ConversationTurn
from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import ValidationAppError
from app.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)


def build_messages(messages: list[ChatMessage], system_prompt: str | None) -> list[dict[str, str]]:
    """Build the upstream message list.

    Client-supplied system messages are dropped so the configured prompt is
    the only system instruction; it is prepended when non-empty.

    Args:
        messages: Validated messages from the request body.
        system_prompt: Configured system prompt ('' or None disables it).

    Returns:
        Ordered list of ``{"role", "content"}`` dicts.
    """
    upstream: list[dict[str, str]] = []
    if system_prompt:
        upstream.append({"role": "system", "content": system_prompt})
    upstream.extend(
        {"role": m.role, "content": m.content} for m in messages if m.role != "system"
    )
    return upstream


def extract_reply(completion: dict[str, Any]) -> str:
    """Return the content of the first completion choice, or '' if absent."""
    choices = completion.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return message.get("content") or ""


class ChatService:
    """Relay conversations to the upstream completion API.

    Attributes:
        llm: Upstream chat completion client.
        system_prompt: Prompt injected in front of every conversation.
        max_messages: Upper bound on messages accepted per request.
    """

    def __init__(
        self,
        llm: AbstractLLMClient,
        *,
        system_prompt: str | None,
        max_messages: int,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.llm = llm
        self.system_prompt = system_prompt
        self.max_messages = max_messages
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _validate(self, messages: list[ChatMessage]) -> None:
        if len(messages) > self.max_messages:
            raise ValidationAppError(
                code="too_many_messages",
                message=f"Too many messages (maximum {self.max_messages}).",
                details={"max_value": self.max_messages, "actual_value": len(messages)},
            )
        if not any(m.role == "user" for m in messages):
            raise ValidationAppError(
                code="no_user_message",
                message="Invalid messages format",
                details={"hint": "At least one message must have role 'user'."},
            )

    async def complete(self, messages: list[ChatMessage]) -> dict[str, Any]:
        """Validate, inject the system prompt and call the upstream API.

        Args:
            messages: Validated request messages.

        Returns:
            The upstream completion payload, unchanged.

        Raises:
            ValidationAppError: If the conversation is not acceptable.
            LLMAppError: If the upstream call fails.
        """
        self._validate(messages)
        upstream_messages = build_messages(messages, self.system_prompt)

        start = time.perf_counter()
        completion = await self.llm.complete(
            upstream_messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        logger.info(
            "chat.upstream_call",
            extra={
                "model": self.llm.model,
                "message_count": len(upstream_messages),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                "finish_reason": (completion.get("choices") or [{}])[0].get("finish_reason"),
            },
        )
        return completion

    @staticmethod
    def build_turn(
        messages: list[ChatMessage],
        completion: dict[str, Any],
        *,
        client_hash: str | None = None,
        request_id: str | None = None,
    ) -> ConversationTurn:
        """Summarize an exchange as a loggable conversation turn."""
        last_user = next((m.content for m in reversed(messages) if m.role == "user"), "")
        return ConversationTurn(
            user_message=last_user,
            assistant_message=extract_reply(completion),
            model=completion.get("model"),
            client_hash=client_hash,
            request_id=request_id,
        )
