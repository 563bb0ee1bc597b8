"""Integration tests: real API calls, no mocks. Requires .env with 2+ API keys."""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

load_dotenv()

# Skip entire module if fewer than 2 API keys are set
_AVAILABLE_KEYS = [
    k for k in ["ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"]
    if os.environ.get(k, "").strip()
]
pytestmark = pytest.mark.integration

if len(_AVAILABLE_KEYS) < 2:
    pytestmark = pytest.mark.skip(reason=f"Need 2+ API keys, found {len(_AVAILABLE_KEYS)}")


async def test_full_discussion_pipeline(tmp_path: Path):
    """Run a real 1-round discussion with available providers, verify no crash."""
    from config.config_loader import ParticipantSpec, load_config
    from roundtable.cli import _build_backend_factory, build_participants
    from roundtable.discussion import run_discussion
    from roundtable.events import EventType
    from roundtable.models import DiscussionRequest
    from roundtable.output import Transcript, save_to_file

    config = load_config()
    cloud = [name for name in ("claude", "openai", "gemini") if name in config.available_providers]
    assert len(cloud) >= 2, f"Need 2+ providers, got {cloud}"

    participants = build_participants([ParticipantSpec(name) for name in cloud[:2]])
    request = DiscussionRequest(
        topic="Should a small team use a monorepo or separate repos for a Python microservices project?",
        participants=participants,
        rounds=1,
        depth=1,
    )
    transcript = Transcript(topic=request.topic, participants=participants)

    async for event in run_discussion(request, _build_backend_factory(config), config.prompts):
        transcript.record(event)

    assert len(transcript.messages) >= 1
    for message in transcript.messages:
        assert message.content, f"Empty content from {message.provider}"
    assert transcript.final_answer, "Summary content is empty"

    saved = save_to_file(transcript, tmp_path / "output")
    content = saved.read_text(encoding="utf-8")
    assert "AI Roundtable" in content
    assert "**Participants:**" in content
    assert EventType.SUMMARY.value not in transcript.errors
