from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
	"""Interface for upstream chat completion clients."""

	model: str

	@abstractmethod
	async def complete(
		self,
		messages: list[dict[str, str]],
		**kwargs: Any,
	) -> dict[str, Any]:
		"""Request a chat completion for an ordered list of messages.

		Args:
			messages: Role-tagged messages (``{"role": ..., "content": ...}``).
			**kwargs: Sampling options (e.g., temperature, max_tokens).

		Returns:
			dict[str, Any]: The provider's completion payload, as JSON-ready data.

		Raises:
			LLMAppError: If the provider call fails.
		"""
		...
