"""Rich console rendering, JSON-lines output and markdown transcript save."""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from roundtable.events import EventType, ProgressEvent
from roundtable.models import FollowUpQuestion, Message, Participant, SearchResult
from roundtable.prompts import participant_label

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _speaker(message: Message) -> str:
    if message.display_role_name:
        return f"{message.display_name} [{message.display_role_name}]"
    return message.display_name


@dataclass
class Transcript:
    """Everything a finished run produced, gathered from its events."""

    topic: str
    participants: list[Participant]
    messages: list[Message] = field(default_factory=list)
    search_results: list[SearchResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    termination_reason: str | None = None
    final_answer: str | None = None
    follow_ups: list[FollowUpQuestion] = field(default_factory=list)

    def record(self, event: ProgressEvent) -> None:
        if event.type is EventType.MESSAGE and event.message is not None:
            self.messages.append(event.message)
        elif event.type is EventType.SEARCH_RESULTS:
            self.search_results = list(event.search_results)
        elif event.type is EventType.TERMINATED:
            self.termination_reason = event.termination_reason
        elif event.type is EventType.SUMMARY:
            self.final_answer = event.final_answer
        elif event.type is EventType.FOLLOWUPS:
            self.follow_ups = list(event.follow_ups)
        elif event.type is EventType.ERROR and event.error:
            self.errors.append(event.error)

    @property
    def rounds(self) -> int:
        return max((m.round for m in self.messages), default=0)


def event_to_json_line(event: ProgressEvent) -> str:
    return json.dumps(event.to_dict(), ensure_ascii=False)


def print_event(event: ProgressEvent, out: Console | None = None, streamed: bool = False) -> None:
    """Render one engine event to the console.

    With ``streamed`` set, message text has already been printed chunk by
    chunk, so a finished message only closes its line.
    """
    out = out or console
    if event.type is EventType.PROGRESS and event.progress is not None:
        p = event.progress
        if p.current_participant_index == 0:
            out.print(Rule(f"[bold cyan]Round {p.current_round}/{p.total_rounds}[/bold cyan]"))
        if streamed:
            out.print(f"[bold]{participant_label(p.current_participant)}[/bold]")
    elif event.type is EventType.MESSAGE and event.message is not None:
        msg = event.message
        if streamed:
            out.print()
            return
        out.print(
            Panel(
                Markdown(msg.content),
                title=f"[bold]{_speaker(msg)}[/bold]",
                subtitle=msg.model or "",
                border_style=msg.color or "dim",
            )
        )
    elif event.type is EventType.SEARCHING:
        out.print(Text("Searching the web...", style="dim"))
    elif event.type is EventType.SEARCH_RESULTS:
        out.print(Text(f"{len(event.search_results)} search results available", style="dim"))
    elif event.type is EventType.TERMINATED:
        out.print(f"[yellow]Discussion ended early:[/yellow] {event.termination_reason}")
    elif event.type is EventType.SUMMARY and event.final_answer is not None:
        out.print(Rule("[bold green]Summary[/bold green]"))
        out.print(Markdown(event.final_answer))
    elif event.type is EventType.FOLLOWUPS:
        out.print(Rule("[bold]Suggested follow-up questions[/bold]"))
        for q in event.follow_ups:
            out.print(f"  [dim]({q.category})[/dim] {q.question}")
    elif event.type is EventType.ERROR:
        style = "bold red" if event.fatal else "red"
        out.print(f"[{style}]Error:[/{style}] {event.error}")
    elif event.type is EventType.READY_FOR_SUMMARY:
        out.print(Text(f"Discussion finished with {len(event.messages)} messages; summary skipped", style="dim"))


def save_to_file(transcript: Transcript, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the discussion transcript as a markdown file.

    Args:
        transcript: The collected run output.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the topic.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(transcript.topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    panel_str = ", ".join(participant_label(p) for p in transcript.participants)

    lines: list[str] = [
        f"# AI Roundtable: {transcript.topic[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Participants:** {panel_str}",
        f"**Rounds:** {transcript.rounds}",
    ]
    if transcript.termination_reason:
        lines.append(f"**Ended early:** {transcript.termination_reason}")
    lines += ["", "---", ""]

    for round_number in range(1, transcript.rounds + 1):
        lines.append(f"## Round {round_number}")
        lines.append("")
        for msg in (m for m in transcript.messages if m.round == round_number):
            lines.append(f"### {_speaker(msg)}")
            lines.append("")
            lines.append(msg.content)
            lines.append("")

    if transcript.search_results:
        lines += ["## Sources", ""]
        lines += [f"- [{r.title or r.url}]({r.url})" for r in transcript.search_results]
        lines.append("")

    if transcript.final_answer is not None:
        lines += ["## Summary", "", transcript.final_answer, ""]

    if transcript.follow_ups:
        lines += ["## Follow-up questions", ""]
        lines += [f"- ({q.category}) {q.question}" for q in transcript.follow_ups]
        lines.append("")

    if transcript.errors:
        lines += ["## Errors", ""]
        lines += [f"- {e}" for e in transcript.errors]
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Discussion saved to: %s", filepath)
    return filepath
