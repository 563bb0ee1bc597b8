"""Shared pytest fixtures."""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig, SearchSettings
from roundtable.models import Message, ModelResponse, Participant
from roundtable.providers.base import AIProvider, ChunkCallback


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        first_round="{context}\nTopic: {topic}\nAnswer in {word_count}.",
        next_round="{context}\nTopic: {topic}\n\nSo far:\n{history}\n\nRespond in {word_count}.",
        summary="{context}\nTopic: {topic}\n\n{history}\n{votes}\nSummarize:",
        followup="Topic: {topic}\nAnswer: {final_answer}\n{tech_level}Suggest follow-up questions as JSON.",
        search_request="\nTo search the web, write {{SEARCH:your query}}.",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        rounds=2,
        max_rounds=5,
        output_dir=tmp_path / "output",
        snapshot_dir=tmp_path / "snapshots",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"claude": model_cfg},
        prompts=sample_prompts_config,
        search=SearchSettings(base_url="http://searx.test"),
        available_providers={"claude"},
    )


@pytest.fixture
def sample_response() -> ModelResponse:
    return ModelResponse(
        provider="claude",
        model="claude-sonnet-4-20250514",
        round_number=1,
        content="Use YAML for human-editable config, JSON for machine interchange.",
        latency_sec=1.5,
        token_count=42,
    )


def make_message(
    msg_id: str,
    participant_id: str,
    content: str,
    round_number: int = 1,
    display_name: str | None = None,
) -> Message:
    return Message(
        id=msg_id,
        participant_id=participant_id,
        provider="mock",
        model="mock-model",
        content=content,
        round=round_number,
        timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        prompt="prompt",
        display_name=display_name or participant_id,
    )


def make_response(content: str, provider: str = "mock", round_number: int = 1) -> ModelResponse:
    return ModelResponse(provider, "mock-model", round_number, content, 0.1, 10)


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(
        self,
        provider_name: str = "mock",
        response_content: str = "Mock response",
        available: bool = True,
    ) -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class methods with AsyncMocks at the instance level.
        # ABC check passes because they are defined in the class body below.
        self.is_available = AsyncMock(return_value=available)  # type: ignore[method-assign]
        self.generate = AsyncMock(  # type: ignore[method-assign]
            return_value=make_response(response_content, provider_name)
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def is_available(self) -> bool:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return True

    async def generate(self, prompt: str, round_number: int) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self._response_content, self._name, round_number)


class StreamingMockProvider(MockProvider):
    """Mock that emits its response in fixed chunks."""

    def __init__(self, provider_name: str = "streamer", chunks: list[str] | None = None) -> None:
        self.chunks = chunks or ["Hello ", "from ", "stream"]
        super().__init__(provider_name, "".join(self.chunks))

    @property
    def supports_streaming(self) -> bool:
        return True

    async def generate_stream(self, prompt: str, round_number: int, on_chunk: ChunkCallback) -> ModelResponse:
        for chunk in self.chunks:
            on_chunk(chunk)
        return make_response("".join(self.chunks), self._name, round_number)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def three_participants() -> list[Participant]:
    return [
        Participant(id="a", provider="mock", display_name="Alice"),
        Participant(id="b", provider="mock", display_name="Bob"),
        Participant(id="c", provider="mock", display_name="Carol"),
    ]


@pytest.fixture
def two_participants() -> list[Participant]:
    return [
        Participant(id="a", provider="mock", display_name="Alice"),
        Participant(id="b", provider="mock", display_name="Bob"),
    ]
