"""Tests for roster parsing, backend selection and the click entry point in roundtable/cli.py."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from config.config_loader import ModelConfig, ParticipantSpec
from roundtable import cli
from roundtable.events import EventType, ProgressEvent
from roundtable.models import Participant, ResumeSnapshot, SearchResult
from roundtable.providers.anthropic import AnthropicProvider
from roundtable.providers.base import ProviderError
from roundtable.providers.ollama import OllamaProvider
from roundtable.snapshot import save_snapshot
from tests.conftest import make_message


def test_parse_participants_full_forms():
    specs = cli.parse_participants("claude, openai:gpt-4o@critic ,ollama:gpt-oss:20b@expert,gemini@")
    assert [(s.provider, s.model, s.role) for s in specs] == [
        ("claude", None, None),
        ("openai", "gpt-4o", "critic"),
        ("ollama", "gpt-oss:20b", "expert"),
        ("gemini", None, None),
    ]


def test_parse_participants_skips_empty_items():
    assert len(cli.parse_participants("claude,,openai,")) == 2


def test_build_participants_assigns_ids_and_colors():
    participants = cli.build_participants([ParticipantSpec("claude"), ParticipantSpec("claude", role="critic")])
    assert [p.id for p in participants] == ["claude-1", "claude-2"]
    assert participants[0].color != participants[1].color
    assert participants[1].role == "critic"
    assert participants[1].custom_role_prompt is None


def test_build_participants_custom_role():
    [p] = cli.build_participants([ParticipantSpec("openai", role="security auditor")])
    assert p.display_role_name == "security auditor"
    assert "security auditor" in p.custom_role_prompt


def test_backend_factory_builds_and_caches(sample_app_config):
    sample_app_config.models["ollama"] = ModelConfig("ollama", "ollama", "llama3", "", 60, 1024)
    backend_for = cli._build_backend_factory(sample_app_config)

    claude = backend_for(Participant(id="x", provider="claude"))
    assert isinstance(claude, AnthropicProvider)
    assert backend_for(Participant(id="y", provider="claude")) is claude

    ollama = backend_for(Participant(id="z", provider="ollama", model="qwen"))
    assert isinstance(ollama, OllamaProvider)
    assert ollama.model_string() == "qwen"


def test_backend_factory_rejects_unknown_provider(sample_app_config):
    backend_for = cli._build_backend_factory(sample_app_config)
    with pytest.raises(ProviderError, match="Unknown provider"):
        backend_for(Participant(id="x", provider="grok"))
    with pytest.raises(ProviderError):
        backend_for(Participant(id="x", provider="openai"))  # class known, not configured


@pytest.fixture
def fake_run(monkeypatch, sample_app_config):
    """Replace config loading and the engine with canned behaviour."""
    calls = {}

    async def fake_discussion(request, backend_for, prompts, search=None):
        calls["request"] = request
        yield ProgressEvent.new_message(make_message("msg-1", "claude-1", "Hi", display_name="Claude"))
        yield ProgressEvent.summary("Done.", "prompt")
        yield ProgressEvent.complete()

    monkeypatch.setattr(cli, "load_config", lambda: sample_app_config)
    monkeypatch.setattr(cli, "run_discussion", fake_discussion)
    monkeypatch.setattr(cli, "_setup_logging", lambda verbose: None)
    return calls


def test_main_jsonl_output(fake_run, tmp_path: Path):
    result = CliRunner().invoke(
        cli.main,
        [
            "YAML or JSON?",
            "--participants", "claude@critic",
            "--termination", "keyword",
            "--keyword", "FINAL",
            "--search-on-demand",
            "--skip-health-check",
            "--jsonl",
            "--output", str(tmp_path),
        ],
    )

    assert result.exit_code == 0, result.output
    lines = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
    assert [line["type"] for line in lines] == ["message", "summary", "complete"]

    request = fake_run["request"]
    assert request.topic == "YAML or JSON?"
    assert request.termination.condition == "keyword"
    assert request.termination.keywords == ["FINAL"]
    assert request.search_config.timing.on_demand is True
    assert request.search_config.timing.on_start is False
    assert list(tmp_path.glob("*.md"))


def test_main_uses_config_defaults(fake_run, tmp_path: Path, sample_app_config):
    sample_app_config.defaults.participants = [ParticipantSpec("claude", role="expert")]
    result = CliRunner().invoke(cli.main, ["Topic", "--skip-health-check", "--jsonl", "--output", str(tmp_path)])

    assert result.exit_code == 0, result.output
    request = fake_run["request"]
    assert request.rounds == sample_app_config.defaults.rounds
    assert [p.role for p in request.participants] == ["expert"]
    assert request.search_config is None


def test_main_exits_nonzero_on_fatal_error(monkeypatch, sample_app_config, tmp_path: Path):
    async def failing(request, backend_for, prompts, search=None):
        yield ProgressEvent.failure("No messages were generated.", fatal=True)

    sample_app_config.defaults.participants = [ParticipantSpec("claude")]
    monkeypatch.setattr(cli, "load_config", lambda: sample_app_config)
    monkeypatch.setattr(cli, "run_discussion", failing)
    monkeypatch.setattr(cli, "_setup_logging", lambda verbose: None)

    result = CliRunner().invoke(cli.main, ["Topic", "--skip-health-check", "--jsonl", "--output", str(tmp_path)])

    assert result.exit_code == 1
    assert EventType.ERROR.value in result.output
    assert not list(tmp_path.glob("*.md"))


def test_main_config_error(monkeypatch):
    def missing():
        raise FileNotFoundError("Settings file not found: x")

    monkeypatch.setattr(cli, "load_config", missing)
    monkeypatch.setattr(cli, "_setup_logging", lambda verbose: None)

    result = CliRunner().invoke(cli.main, ["Topic"])

    assert result.exit_code == 1
    assert "Config error" in result.output


def test_main_resume_carries_search_results(fake_run, tmp_path: Path, sample_app_config):
    sample_app_config.defaults.participants = [ParticipantSpec("claude")]
    snapshot = ResumeSnapshot(
        messages=[make_message("msg-1", "claude-1", "Earlier", display_name="Claude")],
        current_round=2,
        current_participant_index=0,
        total_rounds=3,
        search_results=[SearchResult(title="YAML", url="https://yaml.org")],
    )
    path = save_snapshot(snapshot, tmp_path / "snap.json")
    out_dir = tmp_path / "out"

    result = CliRunner().invoke(
        cli.main,
        ["Topic", "--resume", str(path), "--skip-health-check", "--jsonl", "--output", str(out_dir)],
    )

    assert result.exit_code == 0, result.output
    resume = fake_run["request"].resume
    assert [r.url for r in resume.search_results] == ["https://yaml.org"]
    [saved] = out_dir.glob("*.md")
    assert "https://yaml.org" in saved.read_text(encoding="utf-8")
