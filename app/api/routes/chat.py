import logging
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from app.adapters.conversation_log import (
    AbstractConversationLogSink,
    ConversationTurn,
    create_conversation_log_sink,
)
from app.adapters.llm.factory import create_llm_client
from app.core.client_identity import hash_client_identity
from app.core.config import settings
from app.core.logging import get_request_id
from app.core.rate_limit import enforce_rate_limit
from app.schemas.chat import ChatRequest
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

ANONYMOUS_SESSION = "anonymous"


async def get_chat_service(request: Request) -> ChatService:
    """Return the application's ChatService, building it on first use.

    Built lazily so a missing upstream key surfaces as a per-request
    configuration error instead of preventing startup.
    """
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        service = ChatService(
            create_llm_client(),
            system_prompt=settings.app.system_prompt,
            max_messages=settings.app.max_messages,
            temperature=settings.llm.temperature,
            max_tokens=settings.llm.max_tokens,
        )
        request.app.state.chat_service = service
    return service


async def get_conversation_log_sink(request: Request) -> AbstractConversationLogSink:
    """Return the application's conversation log sink, building it on first use."""
    sink = getattr(request.app.state, "conversation_log_sink", None)
    if sink is None:
        sink = create_conversation_log_sink()
        request.app.state.conversation_log_sink = sink
    return sink


async def append_turn(
    sink: AbstractConversationLogSink,
    session_id: str,
    turn: ConversationTurn,
) -> None:
    """Best-effort append; failures are logged and never reach the client."""
    try:
        await sink.append(session_id, turn)
    except Exception as exc:
        logger.warning(
            "conversation_log.append_failed",
            extra={
                "error_type": type(exc).__name__,
                "error_msg": str(exc),
                "request_id": turn.request_id,
            },
        )


@router.post(
    "/chat",
    dependencies=[Depends(enforce_rate_limit)],
)
async def chat(
    body: ChatRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: Annotated[ChatService, Depends(get_chat_service)],
    sink: Annotated[AbstractConversationLogSink, Depends(get_conversation_log_sink)],
) -> dict[str, Any]:
    """Relay a conversation to the upstream completion API.

    The configured system prompt is injected, the upstream completion is
    returned unchanged, and the turn is logged after the response is sent.

    Raises:
        RateLimitAppError: 429 when the client exhausted its window (raised by
            the rate limit dependency before this body runs).
        ValidationAppError: 400 for unacceptable conversations.
        ConfigurationAppError: 500 when the upstream key is not configured.
        LLMAppError: 502 when the upstream call fails.
    """
    completion = await service.complete(body.messages)

    identity = getattr(request.state, "client_identity", None)
    turn = service.build_turn(
        body.messages,
        completion,
        client_hash=hash_client_identity(identity) if identity else None,
        request_id=get_request_id(),
    )
    background_tasks.add_task(append_turn, sink, body.session_id or ANONYMOUS_SESSION, turn)

    return completion
