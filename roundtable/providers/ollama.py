"""Ollama provider for local models over the Ollama HTTP API (httpx)."""

import json
import logging
import time

import httpx

from config.config_loader import ModelConfig
from roundtable.models import ModelResponse
from roundtable.providers.base import AIProvider, ChunkCallback, ProviderError

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"
_PING_TIMEOUT_SEC = 5.0


class OllamaProvider(AIProvider):
    """Local Ollama server. Available when ``/api/tags`` answers."""

    def __init__(
        self,
        config: ModelConfig,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._model = model or config.model
        self._base_url = (config.base_url or _DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._model

    @property
    def supports_streaming(self) -> bool:
        return True

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=timeout, transport=self._transport)

    async def is_available(self) -> bool:
        try:
            async with self._client(_PING_TIMEOUT_SEC) as client:
                response = await client.get("/api/tags")
            return response.is_success
        except httpx.HTTPError as exc:
            logger.debug("Ollama not reachable at %s: %s", self._base_url, exc)
            return False

    async def generate(self, prompt: str, round_number: int) -> ModelResponse:
        start = time.monotonic()
        try:
            async with self._client(self._config.timeout_sec) as client:
                response = await client.post(
                    "/api/generate",
                    json={"model": self._model, "prompt": prompt, "stream": False},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = data.get("response") or ""
        if not content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if "eval_count" in data:
            token_count = int(data.get("prompt_eval_count", 0)) + int(data["eval_count"])

        logger.info("Ollama round %d: %.2fs, %s tokens", round_number, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )

    async def generate_stream(
        self,
        prompt: str,
        round_number: int,
        on_chunk: ChunkCallback,
    ) -> ModelResponse:
        start = time.monotonic()
        parts: list[str] = []
        token_count: int | None = None
        try:
            async with self._client(self._config.timeout_sec) as client:
                async with client.stream(
                    "POST",
                    "/api/generate",
                    json={"model": self._model, "prompt": prompt, "stream": True},
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        data = json.loads(line)
                        delta = data.get("response") or ""
                        if delta:
                            parts.append(delta)
                            on_chunk(delta)
                        if data.get("done") and "eval_count" in data:
                            token_count = int(data.get("prompt_eval_count", 0)) + int(data["eval_count"])
        except httpx.TimeoutException as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start
        content = "".join(parts)
        if not content:
            raise ProviderError(self._config.name, "Empty response content")

        logger.info("Ollama stream round %d: %.2fs, %s tokens", round_number, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._model,
            round_number=round_number,
            content=content,
            latency_sec=latency,
            token_count=token_count,
        )
