"""Factory pattern for creating LLM client instances."""

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.openai_client import OpenAIClient
from app.core.config import settings
from app.core.errors import ConfigurationAppError

# Providers served through the OpenAI-compatible chat completions API
OPENAI_COMPATIBLE_PROVIDERS = {"openai", "deepseek"}


def create_llm_client() -> AbstractLLMClient:
    """Factory function to instantiate LLM clients based on provider.

    Reads configuration from app.core.config.settings (Pydantic Settings).
    Validates provider-specific requirements and routes to appropriate client.

    Returns:
        AbstractLLMClient: Configured LLM client instance.

    Raises:
        ConfigurationAppError: If provider-specific requirements are not met.
    """
    provider = settings.llm.provider.lower()

    if provider in OPENAI_COMPATIBLE_PROVIDERS:
        if not settings.llm.api_key:
            raise ConfigurationAppError(
                code="llm_missing_api_key",
                message="Server configuration error",
                details={"hint": f"The {provider} provider requires LLM_API_KEY"},
            )
        return OpenAIClient(
            api_key=settings.llm.api_key,
            model=settings.llm.model,
            base_url=settings.llm.base_url,
            timeout_seconds=settings.llm.timeout_seconds,
        )

    raise ConfigurationAppError(
        code="llm_unknown_provider",
        message="Server configuration error",
        details={
            "hint": (
                f"Unknown LLM provider: '{provider}'. "
                f"Supported providers: {', '.join(sorted(OPENAI_COMPATIBLE_PROVIDERS))}"
            )
        },
    )
