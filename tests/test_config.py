"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import AppConfig, ModelConfig, PromptsConfig, load_config


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    settings = {
        "defaults": {
            "rounds": 2,
            "max_rounds": 3,
            "output_dir": "./output",
            "participants": [
                {"provider": "claude", "role": "critic"},
                {"provider": "ollama", "model": "llama3"},
            ],
            "termination": {"condition": "consensus", "consensus_threshold": 0.8},
        },
        "models": {
            "claude": {
                "sdk": "anthropic",
                "model": "claude-sonnet-4-20250514",
                "api_key_env": "TEST_CLAUDE_KEY",
                "timeout_sec": 120,
                "max_tokens": 8192,
            },
            "ollama": {
                "sdk": "ollama",
                "model": "gpt-oss:20b",
                "api_key_env": "",
                "base_url": "http://localhost:11434",
                "timeout_sec": 180,
                "max_tokens": 2048,
            },
        },
        "search": {"base_url": "http://searx.local", "max_results": 3},
        "prompts": {
            "first_round": "{context}{topic}{word_count}",
            "next_round": "{context}{topic}{history}{word_count}",
            "summary": "{context}{topic}{history}{votes}",
            "followup": "{topic}{final_answer}{tech_level}",
        },
    }
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.rounds == 2
    assert config.defaults.max_rounds == 3
    assert isinstance(config.defaults.output_dir, Path)
    assert config.defaults.snapshot_dir == Path("./snapshots")


def test_load_config_participants(minimal_settings):
    config = load_config(minimal_settings)
    specs = config.defaults.participants
    assert [(s.provider, s.model, s.role) for s in specs] == [("claude", None, "critic"), ("ollama", "llama3", None)]


def test_load_config_termination_inherits_max_rounds(minimal_settings):
    termination = load_config(minimal_settings).defaults.termination
    assert termination.condition == "consensus"
    assert termination.consensus_threshold == 0.8
    assert termination.max_rounds == 3
    assert termination.keywords == []


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.models["claude"], ModelConfig)
    assert config.models["claude"].base_url is None
    assert config.models["ollama"].base_url == "http://localhost:11434"


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert "{history}" in config.prompts.next_round
    assert config.prompts.search_request == ""


def test_load_config_search(minimal_settings, monkeypatch):
    monkeypatch.delenv("SEARXNG_BASE_URL", raising=False)
    config = load_config(minimal_settings)
    assert config.search.base_url == "http://searx.local"
    assert config.search.max_results == 3
    assert config.search.language == "en"


def test_searxng_url_from_environment(minimal_settings, monkeypatch):
    monkeypatch.setenv("SEARXNG_BASE_URL", "http://search.internal:8888")
    assert load_config(minimal_settings).search.base_url == "http://search.internal:8888"


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test-key")
    config = load_config(minimal_settings)
    assert "claude" in config.available_providers


def test_local_provider_needs_no_key(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_CLAUDE_KEY", raising=False)
    config = load_config(minimal_settings)
    assert config.available_providers == {"ollama"}


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_bundled_settings_load():
    config = load_config()
    assert {"claude", "openai", "gemini", "ollama"} <= set(config.models)
    assert config.defaults.termination.consensus_threshold == 0.7
    assert "{{SEARCH:" in config.prompts.search_request
