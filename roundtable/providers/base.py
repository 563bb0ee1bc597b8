"""Abstract base for all AI model providers."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

from roundtable.models import ModelResponse, Participant

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the backend can currently serve requests."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, round_number: int) -> ModelResponse:
        """Generate a response for the given prompt.

        Args:
            prompt: The full prompt text to send.
            round_number: The discussion round number (1-indexed).

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        ...

    @property
    def supports_streaming(self) -> bool:
        return False

    async def generate_stream(
        self,
        prompt: str,
        round_number: int,
        on_chunk: ChunkCallback,
    ) -> ModelResponse:
        """Generate a response, calling ``on_chunk(delta)`` for each text delta.

        Providers without incremental output fall back to a single chunk.

        Raises:
            ProviderError: On API failure, timeout, or invalid response.
        """
        response = await self.generate(prompt, round_number)
        on_chunk(response.content)
        return response


async def call_provider(
    provider: AIProvider,
    prompt: str,
    round_number: int,
    on_chunk: ChunkCallback | None = None,
) -> ModelResponse | ProviderError:
    """Call a single provider once, streaming when ``on_chunk`` is given.

    Never raises: returns ProviderError on failure. There is no retry.
    """
    try:
        if on_chunk is not None and provider.supports_streaming:
            return await provider.generate_stream(prompt, round_number, on_chunk)
        return await provider.generate(prompt, round_number)
    except ProviderError as exc:
        logger.warning("Provider %s failed in round %d: %s", provider.name(), round_number, exc)
        return exc
    except Exception as exc:
        logger.warning("Provider %s unexpected failure in round %d: %s", provider.name(), round_number, exc)
        return ProviderError(provider.name(), f"Unexpected error: {exc}")


BackendFactory = Callable[[Participant], AIProvider]
