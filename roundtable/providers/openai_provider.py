"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible APIs (xAI, DeepSeek, ...) when ``base_url`` is set.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from roundtable.models import ModelResponse
from roundtable.providers.base import AIProvider, ChunkCallback, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK."""

    def __init__(self, config: ModelConfig, model: str | None = None) -> None:
        self._config = config
        self._model = model or config.model
        api_key = os.environ.get(config.api_key_env, "").strip()
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._model

    async def is_available(self) -> bool:
        return self._client is not None

    @property
    def supports_streaming(self) -> bool:
        return True

    def _require_client(self) -> AsyncOpenAI:
        if self._client is None:
            raise ProviderError(self._config.name, f"Missing API key: {self._config.api_key_env}")
        return self._client

    async def generate(self, prompt: str, round_number: int) -> ModelResponse:
        client = self._require_client()
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self._model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("OpenAI round %d: %.2fs, %s tokens", round_number, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )

    async def generate_stream(
        self,
        prompt: str,
        round_number: int,
        on_chunk: ChunkCallback,
    ) -> ModelResponse:
        client = self._require_client()
        start = time.monotonic()
        parts: list[str] = []

        async def _consume() -> None:
            stream = await client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self._config.max_tokens,
                stream=True,
            )
            async for event in stream:
                if not event.choices:
                    continue
                delta = event.choices[0].delta.content
                if delta:
                    parts.append(delta)
                    on_chunk(delta)

        try:
            await asyncio.wait_for(_consume(), timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = "".join(parts)
        if not content:
            raise ProviderError(self._config.name, "Empty response content")

        logger.info("OpenAI stream round %d: %.2fs", round_number, latency)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=content,
            latency_sec=latency,
            token_count=None,
        )
