"""OpenAI-compatible chat completion client adapter."""

import logging
from typing import Any

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from app.adapters.llm.base import AbstractLLMClient
from app.core.errors import LLMAppError

logger = logging.getLogger(__name__)


class OpenAIClient(AbstractLLMClient):
    """Client for OpenAI-compatible chat completions (OpenAI, DeepSeek, ...).

    Uses the official OpenAI Python SDK with async support.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: API key for authentication.
            model: Model name (e.g., "deepseek-chat", "gpt-4o-mini").
            base_url: Optional custom base URL for an OpenAI-compatible API.
            timeout_seconds: Timeout for requests in seconds.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model

    async def complete(
        self,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Call chat completions and return the raw completion payload.

        Args:
            messages: Ordered role-tagged messages, system prompt included.
            **kwargs: Provider options (temperature, max_tokens, top_p, etc.).

        Returns:
            dict[str, Any]: Completion object as returned by the provider.

        Raises:
            LLMAppError: If the provider answers with an error status or
                cannot be reached.
        """
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
        }

        # Pass through sampling parameters if provided
        allowed_params = {
            "temperature",
            "max_tokens",
            "top_p",
            "frequency_penalty",
            "presence_penalty",
            "seed",
        }
        for param in allowed_params:
            if kwargs.get(param) is not None:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except APIStatusError as exc:
            logger.warning(
                "chat.upstream_error",
                extra={"http_status": exc.status_code, "model": self.model},
            )
            raise LLMAppError(
                code="upstream_error",
                message="Upstream completion request failed",
                details={"http_status": exc.status_code, "model": self.model},
            ) from exc
        except APIConnectionError as exc:
            logger.warning(
                "chat.upstream_unreachable",
                extra={"error_type": type(exc).__name__, "model": self.model},
            )
            raise LLMAppError(
                code="upstream_unreachable",
                message="Upstream completion service is unreachable",
                details={"model": self.model},
            ) from exc
        except APIError as exc:
            raise LLMAppError(
                code="upstream_error",
                message="Upstream completion request failed",
                details={"model": self.model},
            ) from exc

        # Fields the provider sent, explicit nulls included; nothing added
        return response.model_dump(mode="json", exclude_unset=True)
