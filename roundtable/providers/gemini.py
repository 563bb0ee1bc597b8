"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from roundtable.models import ModelResponse
from roundtable.providers.base import AIProvider, ChunkCallback, ProviderError

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig, model: str | None = None) -> None:
        self._config = config
        self._model = model or config.model
        api_key = os.environ.get(config.api_key_env, "").strip()
        self._client = genai.Client(api_key=api_key) if api_key else None

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._model

    async def is_available(self) -> bool:
        return self._client is not None

    @property
    def supports_streaming(self) -> bool:
        return True

    def _require_client(self) -> genai.Client:
        if self._client is None:
            raise ProviderError(self._config.name, f"Missing API key: {self._config.api_key_env}")
        return self._client

    def _generation_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(max_output_tokens=self._config.max_tokens)

    async def generate(self, prompt: str, round_number: int) -> ModelResponse:
        client = self._require_client()
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self._model,
                    contents=prompt,
                    config=self._generation_config(),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini round %d: %.2fs, %s tokens", round_number, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=response.text,
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
            stream = await client.aio.models.generate_content_stream(
                model=self._model,
                contents=prompt,
                config=self._generation_config(),
            )
            async for piece in stream:
                if piece.text:
                    parts.append(piece.text)
                    on_chunk(piece.text)

        try:
            await asyncio.wait_for(_consume(), timeout=self._config.timeout_sec)
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = "".join(parts)
        if not content:
            raise ProviderError(self._config.name, "Empty response text")

        logger.info("Gemini stream round %d: %.2fs", round_number, latency)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=content,
            latency_sec=latency,
            token_count=None,
        )
