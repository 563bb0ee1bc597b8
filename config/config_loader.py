"""Load settings.yaml into typed dataclasses. Reports API key availability at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from roundtable.models import TerminationConfig

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    first_round: str
    next_round: str
    summary: str
    followup: str
    search_request: str = ""


@dataclass
class SearchSettings:
    base_url: str
    timeout_sec: float = 15.0
    max_results: int = 5
    category: str = "general"
    language: str = "en"
    engines: list[str] = field(default_factory=list)


@dataclass
class ParticipantSpec:
    provider: str
    model: str | None = None
    role: str | None = None


@dataclass
class DefaultsConfig:
    rounds: int
    max_rounds: int
    output_dir: Path
    snapshot_dir: Path = Path("./snapshots")
    participants: list[ParticipantSpec] = field(default_factory=list)
    termination: TerminationConfig = field(default_factory=TerminationConfig)


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    search: SearchSettings
    available_providers: set[str] = field(default_factory=set)


def _load_termination(raw: dict, max_rounds: int) -> TerminationConfig:
    threshold = raw.get("consensus_threshold")
    return TerminationConfig(
        condition=str(raw.get("condition", "rounds")),
        max_rounds=int(raw.get("max_rounds", max_rounds)),
        consensus_threshold=float(threshold) if threshold is not None else None,
        keywords=[str(k) for k in raw.get("keywords", [])],
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; such providers report
    themselves unavailable and the engine skips their turns.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    max_rounds = int(defaults_raw["max_rounds"])
    defaults = DefaultsConfig(
        rounds=int(defaults_raw["rounds"]),
        max_rounds=max_rounds,
        output_dir=Path(defaults_raw["output_dir"]),
        snapshot_dir=Path(defaults_raw.get("snapshot_dir", "./snapshots")),
        participants=[
            ParticipantSpec(
                provider=str(p["provider"]),
                model=p.get("model"),
                role=p.get("role"),
            )
            for p in defaults_raw.get("participants", [])
        ],
        termination=_load_termination(defaults_raw.get("termination", {}), max_rounds),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        first_round=prompts_raw["first_round"],
        next_round=prompts_raw["next_round"],
        summary=prompts_raw["summary"],
        followup=prompts_raw["followup"],
        search_request=prompts_raw.get("search_request", ""),
    )

    search_raw = raw.get("search", {})
    search = SearchSettings(
        base_url=os.environ.get("SEARXNG_BASE_URL", search_raw.get("base_url", "http://localhost:8080")),
        timeout_sec=float(search_raw.get("timeout_sec", 15.0)),
        max_results=int(search_raw.get("max_results", 5)),
        category=str(search_raw.get("category", "general")),
        language=str(search_raw.get("language", "en")),
        engines=list(search_raw.get("engines", [])),
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw.get("api_key_env") or "",
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        if not model_cfg.api_key_env:
            # Local backends need no key; reachability is checked at run time
            available_providers.add(provider_name)
            logger.info("Provider configured (local): %s", provider_name)
            continue

        api_key = os.environ.get(model_cfg.api_key_env, "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                model_cfg.api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        search=search,
        available_providers=available_providers,
    )
