"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from roundtable.models import ModelResponse
from roundtable.providers.base import AIProvider, ChunkCallback, ProviderError

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig, model: str | None = None) -> None:
        self._config = config
        self._model = model or config.model
        api_key = os.environ.get(config.api_key_env, "").strip()
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key) if api_key else None

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._model

    async def is_available(self) -> bool:
        return self._client is not None

    @property
    def supports_streaming(self) -> bool:
        return True

    def _require_client(self) -> anthropic_sdk.AsyncAnthropic:
        if self._client is None:
            raise ProviderError(self._config.name, f"Missing API key: {self._config.api_key_env}")
        return self._client

    async def generate(self, prompt: str, round_number: int) -> ModelResponse:
        client = self._require_client()
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.messages.create(
                    model=self._model,
                    max_tokens=self._config.max_tokens,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.content:
            raise ProviderError(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise ProviderError(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic round %d: %.2fs, %s tokens", round_number, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content="\n".join(text_blocks),
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

        async def _consume() -> int | None:
            async with client.messages.stream(
                model=self._model,
                max_tokens=self._config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    parts.append(text)
                    on_chunk(text)
                final = await stream.get_final_message()
            if final.usage:
                return final.usage.input_tokens + final.usage.output_tokens
            return None

        try:
            token_count = await asyncio.wait_for(_consume(), timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = "".join(parts)
        if not content:
            raise ProviderError(self._config.name, "Empty response content")

        logger.info("Anthropic stream round %d: %.2fs, %s tokens", round_number, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
