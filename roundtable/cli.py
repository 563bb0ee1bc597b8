"""Click CLI: orchestrates config loading, participant setup, discussion, and output."""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, ParticipantSpec, load_config
from roundtable.discussion import run_discussion
from roundtable.events import EventType, ProgressEvent
from roundtable.healthcheck import run_health_checks
from roundtable.models import (
    DiscussionRequest,
    Participant,
    ResumeSnapshot,
    SearchConfig,
    SearchTiming,
    TerminationConfig,
)
from roundtable.output import Transcript, event_to_json_line, print_event, save_to_file
from roundtable.presets import DISCUSSION_MODES, ROLE_PRESETS
from roundtable.prompts import participant_label
from roundtable.providers.anthropic import AnthropicProvider
from roundtable.providers.base import AIProvider, BackendFactory, ProviderError
from roundtable.providers.gemini import GeminiProvider
from roundtable.providers.ollama import OllamaProvider
from roundtable.providers.openai_provider import OpenAIProvider
from roundtable.search import SearXNGSearch
from roundtable.snapshot import SnapshotRecorder, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "claude": AnthropicProvider,
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}

_COLORS = ["cyan", "magenta", "green", "yellow", "blue", "red"]


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def parse_participants(value: str) -> list[ParticipantSpec]:
    """Parse ``provider[:model][@role]`` entries separated by commas.

    The model may itself contain colons (``ollama:gpt-oss:20b@critic``).
    """
    specs: list[ParticipantSpec] = []
    for item in (part.strip() for part in value.split(",")):
        if not item:
            continue
        item, _, role = item.partition("@")
        provider, _, model = item.partition(":")
        specs.append(ParticipantSpec(provider=provider.strip(), model=model.strip() or None, role=role.strip() or None))
    return specs


def build_participants(specs: list[ParticipantSpec]) -> list[Participant]:
    """Turn roster specs into participants with unique ids and cycling colors."""
    participants = []
    for i, spec in enumerate(specs):
        role = spec.role
        custom_prompt = None
        if role and role not in ROLE_PRESETS:
            # Roles outside the presets become a custom role named after the given text
            custom_prompt = f"Take the role of {role} in this discussion."
        participants.append(
            Participant(
                id=f"{spec.provider}-{i + 1}",
                provider=spec.provider,
                model=spec.model,
                color=_COLORS[i % len(_COLORS)],
                role=role,
                display_role_name=role if custom_prompt else None,
                custom_role_prompt=custom_prompt,
            )
        )
    return participants


def _build_backend_factory(config: AppConfig) -> BackendFactory:
    """Backends are created lazily, one per (provider, model) pair."""
    cache: dict[tuple[str, str | None], AIProvider] = {}

    def backend_for(participant: Participant) -> AIProvider:
        key = (participant.provider, participant.model)
        if key in cache:
            return cache[key]
        cls = PROVIDER_CLASSES.get(participant.provider)
        model_cfg = config.models.get(participant.provider)
        if cls is None or model_cfg is None:
            raise ProviderError(participant.provider, "Unknown provider")
        cache[key] = cls(model_cfg, participant.model)
        return cache[key]

    return backend_for


def _check_and_filter_participants(
    participants: list[Participant],
    backend_for: BackendFactory,
) -> list[Participant]:
    """Run health checks, print results, and ask user what to do on failures.

    Returns the participants whose backend passed. Exits if the user
    declines to continue or nobody passes.
    """
    console.print("\n[bold]Checking providers...[/bold]")
    backends: dict[str, AIProvider] = {}
    failed: dict[str, str] = {}
    for p in participants:
        try:
            backends[participant_label(p)] = backend_for(p)
        except ProviderError as exc:
            failed[participant_label(p)] = str(exc)

    results = asyncio.run(run_health_checks(backends))
    for name, (ok, err) in results.items():
        if not ok:
            failed[name] = err

    for name in sorted({participant_label(p) for p in participants}):
        if name in failed:
            short_err = failed[name].splitlines()[0][:120] if failed[name] else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
        else:
            console.print(f"  [green]OK  [/green] {name}")

    if not failed:
        console.print()
        return participants

    working = [p for p in participants if participant_label(p) not in failed]
    if not working:
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed)} participant(s) failed:[/yellow] {', '.join(sorted(failed))}")
    if not click.confirm("Continue with working participants only?", default=True):
        sys.exit(0)

    console.print()
    return working


async def _run(
    request: DiscussionRequest,
    config: AppConfig,
    backend_for: BackendFactory,
    recorder: SnapshotRecorder,
    transcript: Transcript,
    jsonl: bool,
    streamed: bool,
) -> bool:
    """Drive one discussion to completion. Returns False on a fatal error."""
    search = SearXNGSearch(config.search.base_url, config.search.timeout_sec)
    ok = True
    async for event in run_discussion(request, backend_for, config.prompts, search):
        recorder.observe(event)
        transcript.record(event)
        if event.type is EventType.ERROR and event.fatal:
            ok = False
        if jsonl:
            click.echo(event_to_json_line(event))
        else:
            print_event(event, console, streamed=streamed)
    return ok


def _chunk_printer(jsonl: bool):
    def on_chunk(event: ProgressEvent) -> None:
        if jsonl:
            click.echo(event_to_json_line(event))
        else:
            console.print(event.chunk, end="", markup=False, highlight=False)

    return on_chunk


@click.command()
@click.argument("topic")
@click.option("--rounds", default=None, type=int, help="Number of rounds (default: from config)")
@click.option("--participants", "participants_arg", default=None,
              help="Comma-separated provider[:model][@role] list, e.g. claude@critic,ollama:gpt-oss:20b")
@click.option("--mode", type=click.Choice(sorted(DISCUSSION_MODES)), default=None, help="Discussion mode")
@click.option("--depth", type=click.IntRange(1, 5), default=None, help="Answer depth, 1 (brief) to 5 (deep)")
@click.option("--termination", "condition",
              type=click.Choice(["rounds", "consensus", "keyword", "manual"]), default=None,
              help="When to stop early (default: from config)")
@click.option("--max-rounds", default=None, type=int, help="Hard round cap (default: from config)")
@click.option("--threshold", default=None, type=click.FloatRange(0.0, 1.0),
              help="Consensus threshold for --termination consensus")
@click.option("--keyword", "keywords", multiple=True, help="Termination keyword (repeatable)")
@click.option("--search", "search_enabled", is_flag=True, help="Search the web before the first round")
@click.option("--search-each-round", is_flag=True, help="Search again before every round after the first")
@click.option("--search-on-demand", is_flag=True, help="Let participants request searches inline")
@click.option("--search-before-summary", is_flag=True, help="Search again before the summary")
@click.option("--search-query", default=None, help="Query for scheduled searches (default: the topic)")
@click.option("--resume", "resume_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Continue from a saved snapshot file")
@click.option("--skip-summary", is_flag=True, help="Stop after the last round without summarizing")
@click.option("--stream", is_flag=True, help="Print message text as it is generated")
@click.option("--jsonl", is_flag=True, help="Print events as JSON lines instead of rich output")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the provider availability check at startup")
def main(
    topic: str,
    rounds: int | None,
    participants_arg: str | None,
    mode: str | None,
    depth: int | None,
    condition: str | None,
    max_rounds: int | None,
    threshold: float | None,
    keywords: tuple[str, ...],
    search_enabled: bool,
    search_each_round: bool,
    search_on_demand: bool,
    search_before_summary: bool,
    search_query: str | None,
    resume_path: str | None,
    skip_summary: bool,
    stream: bool,
    jsonl: bool,
    output_path: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """AI Roundtable -- multi-model round-robin discussion tool.

    \b
    Examples:
      roundtable "Should we use REST or GraphQL?" --rounds 2
      roundtable "Monorepo vs polyrepo?" --participants claude@advocate,openai@critic
      roundtable "Is Rust worth it?" --termination consensus --threshold 0.7
      roundtable "Latest LLM releases?" --search --search-on-demand
      roundtable "SQL or NoSQL?" --resume snapshots/20250101_120000.json
    """
    # Model responses may contain characters the Windows console code page can't encode
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    resume: ResumeSnapshot | None = None
    if resume_path:
        try:
            resume = load_snapshot(Path(resume_path))
        except ValueError as exc:
            console.print(f"[bold red]Resume error:[/bold red] {exc}")
            sys.exit(1)

    specs = parse_participants(participants_arg) if participants_arg else config.defaults.participants
    participants = build_participants(specs)
    if not participants:
        console.print("[bold red]Error:[/bold red] No participants configured.")
        sys.exit(1)

    backend_for = _build_backend_factory(config)
    if not skip_health_check:
        participants = _check_and_filter_participants(participants, backend_for)

    base_termination = config.defaults.termination
    termination = TerminationConfig(
        condition=condition or base_termination.condition,
        max_rounds=max_rounds if max_rounds is not None else base_termination.max_rounds,
        consensus_threshold=threshold if threshold is not None else base_termination.consensus_threshold,
        keywords=list(keywords) or base_termination.keywords,
    )

    search_config = None
    if search_enabled or search_each_round or search_on_demand or search_before_summary:
        search_config = SearchConfig(
            enabled=True,
            max_results=config.search.max_results,
            category=config.search.category,
            language=config.search.language,
            query=search_query,
            engines=config.search.engines,
            timing=SearchTiming(
                on_start=search_enabled,
                each_round=search_each_round,
                on_demand=search_on_demand,
                before_summary=search_before_summary,
            ),
        )

    effective_rounds = rounds if rounds is not None else config.defaults.rounds
    streamed = stream and not jsonl
    request = DiscussionRequest(
        topic=topic,
        participants=participants,
        rounds=effective_rounds,
        search_config=search_config,
        mode=mode,
        depth=depth,
        termination=termination,
        resume=resume,
        skip_summary=skip_summary,
        on_message_chunk=_chunk_printer(jsonl) if stream else None,
    )

    if not jsonl:
        names = ", ".join(participant_label(p) for p in participants)
        console.print(f"\n[bold cyan]AI Roundtable[/bold cyan] {len(participants)} participants, {effective_rounds} rounds")
        console.print(f"Participants: {names}")
        console.print(f"Topic: [italic]{topic[:80]}{'...' if len(topic) > 80 else ''}[/italic]\n")

    if resume:
        recorder = SnapshotRecorder.resuming(resume, len(participants))
    else:
        recorder = SnapshotRecorder(effective_rounds, len(participants))
    transcript = Transcript(topic=topic, participants=participants)
    if resume:
        transcript.messages = list(resume.messages)
        transcript.search_results = list(resume.search_results)

    try:
        ok = asyncio.run(_run(request, config, backend_for, recorder, transcript, jsonl, streamed))
    except KeyboardInterrupt:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = save_snapshot(recorder.snapshot(), config.defaults.snapshot_dir / f"{stamp}.json")
        console.print(f"\n[yellow]Interrupted.[/yellow] Resume with: --resume {path}")
        sys.exit(130)

    effective_output = Path(output_path) if output_path else config.defaults.output_dir
    if transcript.messages:
        saved_path = save_to_file(transcript, effective_output)
        if not jsonl:
            console.print(f"\n[dim]Saved to: {saved_path}[/dim]")

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
