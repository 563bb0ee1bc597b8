"""Prompt composition for discussion turns, summaries and follow-up questions.

Each ``*_fragment`` function is pure and returns an empty string when its
input is absent. The turn and summary prompts concatenate fragments in a
fixed order (``_turn_fragments`` / ``_summary_fragments``) and drop the
result into the ``{context}`` slot of the configured template.
"""

import json
import logging
import re
import time
from typing import NamedTuple

from config.config_loader import PromptsConfig
from roundtable.models import (
    DirectionGuide,
    DiscussionRequest,
    FollowUpQuestion,
    Message,
    MessageVote,
    Participant,
    PreviousTurnSummary,
    SearchResult,
    UserProfile,
)
from roundtable.presets import (
    DEFAULT_DEPTH,
    DEPTH_PRESETS,
    DISCUSSION_MODES,
    RESPONSE_STYLES,
    ROLE_PRESETS,
    TECH_LEVELS,
    provider_display_name,
)

logger = logging.getLogger(__name__)

MAX_PREVIOUS_TURNS = 5
FOLLOWUP_ANSWER_LIMIT = 1500
VOTE_PREVIEW_LIMIT = 50
DEFAULT_WORD_COUNT = "100-200 words"
FOLLOWUP_CATEGORIES = ("clarification", "expansion", "example", "alternative")

SEARCH_MARKER = re.compile(r"\{\{SEARCH:(.+?)\}\}")


class HistoryEntry(NamedTuple):
    speaker: str
    content: str
    role: str | None = None
    message_id: str | None = None


# --- roles -----------------------------------------------------------------

def role_instruction(participant: Participant) -> str | None:
    """Resolve a participant's role to its instruction text, or None.

    Neutral and unknown roles resolve to None, as does a custom role
    whose instruction text is blank.
    """
    role = participant.role
    if not role or role == "neutral":
        return None
    preset = ROLE_PRESETS.get(role)
    if preset is not None:
        return preset.prompt
    custom = (participant.custom_role_prompt or "").strip()
    return custom or None


def participant_label(participant: Participant) -> str:
    """Name shown for a participant: its display name, else provider (model)."""
    if participant.display_name:
        return participant.display_name
    base = provider_display_name(participant.provider)
    return f"{base} ({participant.model})" if participant.model else base


def role_display_name(participant: Participant) -> str | None:
    if participant.display_role_name:
        return participant.display_role_name
    preset = ROLE_PRESETS.get(participant.role or "")
    return preset.name if preset else None


def history_from_messages(messages: list[Message]) -> list[HistoryEntry]:
    return [
        HistoryEntry(speaker=m.display_name, content=m.content, role=m.display_role_name, message_id=m.id)
        for m in messages
    ]


# --- fragments -------------------------------------------------------------

def mode_fragment(mode: str | None, for_summary: bool = False) -> str:
    preset = DISCUSSION_MODES.get(mode or "free")
    if preset is None:
        return ""
    text = preset.summary_prompt if for_summary else preset.prompt
    return f"\n{text}\n" if text else ""


def depth_fragment(depth: int | None) -> str:
    if depth is None or depth == DEFAULT_DEPTH:
        return ""
    preset = DEPTH_PRESETS.get(depth)
    if preset is None or not preset.prompt:
        return ""
    return f"\n{preset.prompt}\nKeep the answer to about {preset.word_count}.\n"


def word_count_instruction(depth: int | None) -> str:
    preset = DEPTH_PRESETS.get(depth) if depth is not None else None
    return preset.word_count if preset else DEFAULT_WORD_COUNT


def direction_fragment(guide: DirectionGuide | None) -> str:
    if guide is None:
        return ""
    lines: list[str] = []
    if guide.keywords:
        lines.append(f"- Keywords to focus on: {', '.join(guide.keywords)}")
    if guide.focus_areas:
        lines.append(f"- Areas to dig into: {', '.join(guide.focus_areas)}")
    if guide.avoid_topics:
        lines.append(f"- Topics to avoid: {', '.join(guide.avoid_topics)}")
    if not lines:
        return ""
    body = "\n".join(lines)
    return f"\n[Direction guide]\n{body}\nTake these directions into account.\n"


def role_fragment(participant: Participant | None) -> str:
    if participant is None:
        return ""
    instruction = role_instruction(participant)
    return f"\n[Your role]\n{instruction}\n" if instruction else ""


def participants_fragment(participants: list[Participant], current: Participant | None = None) -> str:
    if not participants:
        return ""
    lines = []
    for p in participants:
        preset = ROLE_PRESETS.get(p.role or "")
        role_name = role_display_name(p) or "Neutral"
        role_desc = preset.description if preset else "Balanced, objective perspective"
        name = p.display_name or p.provider
        if current is not None and p.id == current.id:
            lines.append(f"- **You**: {name} [{role_name}] - {role_desc}")
        else:
            lines.append(f"- {name} [{role_name}] - {role_desc}")
    body = "\n".join(lines)
    return (
        f"\n[Planned participants]\n{body}\n"
        "Note: some participants may fail to speak. Only refer to participants "
        "who appear in the discussion so far.\n"
    )


def profile_fragment(profile: UserProfile | None) -> str:
    if profile is None:
        return ""
    lines: list[str] = []
    if profile.name:
        lines.append(f"- Name: {profile.name}")
    if profile.occupation:
        lines.append(f"- Occupation / field: {profile.occupation}")
    level = TECH_LEVELS.get(profile.tech_level or "")
    if level:
        lines.append(f"- Technical level: {level.name} ({level.description})")
    style = RESPONSE_STYLES.get(profile.response_style or "")
    if style:
        lines.append(f"- Preferred style: {style.name} ({style.description})")
    if profile.interests:
        lines.append(f"- Interests: {', '.join(profile.interests)}")
    if profile.custom_context:
        lines.append(f"- Other: {profile.custom_context}")
    if not lines:
        return ""
    body = "\n".join(lines)
    return f"\n[About the user]\n{body}\nTailor your answer to this user.\n"


def previous_turns_fragment(turns: list[PreviousTurnSummary]) -> str:
    recent = turns[-MAX_PREVIOUS_TURNS:]
    if not recent:
        return ""
    body = "\n\n".join(
        f"[Question {i}] {t.topic}\n[Answer {i}] {t.final_answer}" for i, t in enumerate(recent, start=1)
    )
    return f"\n[Earlier conversation]\n{body}\n"


def search_fragment(results: list[SearchResult]) -> str:
    if not results:
        return ""
    items = []
    for i, r in enumerate(results, start=1):
        text = f"{i}. {r.title}\n   URL: {r.url}"
        if r.content:
            text += f"\n   Content: {r.content}"
        if r.published_date:
            text += f"\n   Date: {r.published_date}"
        items.append(text)
    body = "\n\n".join(items)
    return f"\n[Latest search results]\nUse the following up-to-date information in the discussion.\n\n{body}\n"


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def votes_fragment(votes: list[MessageVote], history: list[HistoryEntry]) -> str:
    """Group the user's votes into agree / disagree / neutral sections."""
    if not votes or not history:
        return ""
    by_id = {h.message_id: h for h in history if h.message_id}
    groups: dict[str, list[str]] = {"agree": [], "disagree": [], "neutral": []}
    for vote in votes:
        entry = by_id.get(vote.message_id)
        if entry is None or vote.vote not in groups:
            continue
        groups[vote.vote].append(f'- {entry.speaker}: "{_preview(entry.content, VOTE_PREVIEW_LIMIT)}"')

    headings = {
        "agree": "Opinions the user agreed with",
        "disagree": "Opinions the user disagreed with",
        "neutral": "Opinions the user marked neutral",
    }
    lines: list[str] = []
    for kind, items in groups.items():
        if items:
            lines.append(f"[{headings[kind]}] ({len(items)})")
            lines.extend(items)
    if not lines:
        return ""
    body = "\n".join(lines)
    return (
        f"\n{body}\n\n"
        "Weigh the user's votes: favour opinions they agreed with, examine the ones they "
        "disagreed with critically, and treat neutral ones as reference only.\n"
    )


# --- prompts ---------------------------------------------------------------

def _turn_fragments(
    request: DiscussionRequest,
    participant: Participant,
    search_results: list[SearchResult],
) -> list[str]:
    return [
        mode_fragment(request.mode),
        depth_fragment(request.depth),
        direction_fragment(request.direction_guide),
        role_fragment(participant),
        participants_fragment(request.participants, participant),
        profile_fragment(request.user_profile),
        previous_turns_fragment(request.previous_turns),
        search_fragment(search_results),
    ]


def _summary_fragments(request: DiscussionRequest, search_results: list[SearchResult]) -> list[str]:
    return [
        mode_fragment(request.mode, for_summary=True),
        depth_fragment(request.depth),
        direction_fragment(request.direction_guide),
        profile_fragment(request.user_profile),
        previous_turns_fragment(request.previous_turns),
        search_fragment(search_results),
    ]


def build_turn_prompt(
    prompts: PromptsConfig,
    request: DiscussionRequest,
    participant: Participant,
    history: list[HistoryEntry],
    search_results: list[SearchResult],
    on_demand_search: bool = False,
) -> str:
    """Build the prompt for one participant's turn."""
    context = "".join(_turn_fragments(request, participant, search_results))
    word_count = word_count_instruction(request.depth)
    if not history:
        prompt = prompts.first_round.format(context=context, topic=request.topic, word_count=word_count)
    else:
        lines = []
        for h in history:
            label = f"{h.speaker} ({h.role})" if h.role else h.speaker
            lines.append(f"[{label}]: {h.content}")
        prompt = prompts.next_round.format(
            context=context,
            topic=request.topic,
            history="\n\n".join(lines),
            word_count=word_count,
        )
    if on_demand_search:
        prompt += prompts.search_request
    return prompt


def build_summary_prompt(
    prompts: PromptsConfig,
    request: DiscussionRequest,
    history: list[HistoryEntry],
    search_results: list[SearchResult],
) -> str:
    context = "".join(_summary_fragments(request, search_results))
    opinions = []
    for h in history:
        label = f"{h.speaker} ({h.role})" if h.role else h.speaker
        opinions.append(f"[Opinion of {label}]\n{h.content}")
    return prompts.summary.format(
        context=context,
        topic=request.topic,
        history="\n\n".join(opinions),
        votes=votes_fragment(request.votes, history),
    )


def build_followup_prompt(
    prompts: PromptsConfig,
    topic: str,
    final_answer: str,
    profile: UserProfile | None = None,
) -> str:
    level = TECH_LEVELS.get(profile.tech_level or "") if profile else None
    tech_hint = f"[User's technical level]\n{level.description}\n" if level else ""
    return prompts.followup.format(
        topic=topic,
        final_answer=_preview(final_answer, FOLLOWUP_ANSWER_LIMIT),
        tech_level=tech_hint,
    )


def parse_followup_response(text: str) -> list[FollowUpQuestion]:
    """Extract the JSON question array from a model response.

    Returns an empty list when no valid array is found. Items with an
    unknown category or a non-string question are dropped.
    """
    match = re.search(r"\[[\s\S]*\]", text)
    if not match:
        return []
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.debug("Follow-up response is not valid JSON")
        return []
    if not isinstance(parsed, list):
        return []

    stamp = int(time.time() * 1000)
    questions = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        category, question = item.get("category"), item.get("question")
        if category in FOLLOWUP_CATEGORIES and isinstance(question, str):
            questions.append(FollowUpQuestion(id=f"followup-{stamp}-{len(questions)}", category=category, question=question))
    return questions


# --- inline search markers -------------------------------------------------

def extract_search_queries(text: str) -> list[str]:
    return [q.strip() for q in SEARCH_MARKER.findall(text) if q.strip()]


def strip_search_markers(text: str) -> str:
    return SEARCH_MARKER.sub("", text).strip()
