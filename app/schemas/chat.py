"""Pydantic schemas for the chat relay endpoint."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A single role-tagged message as sent by the widget."""

    role: Literal["system", "user", "assistant"] = Field(
        ...,
        description="Author of the message. Client-supplied system messages are ignored.",
    )
    content: str = Field(
        ...,
        description="Message text.",
    )


class ChatRequest(BaseModel):
    """Chat request body posted by the browser widget."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(
        ...,
        min_length=1,
        description="Conversation so far, oldest first. The last user message is the new turn.",
    )
    session_id: str | None = Field(
        default=None,
        alias="sessionId",
        max_length=128,
        description="Opaque widget session id used to group logged turns.",
    )
