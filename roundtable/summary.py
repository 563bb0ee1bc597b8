"""Final summary: cascade through speaking participants, then suggest follow-ups."""

import logging
from collections.abc import AsyncIterator

from config.config_loader import PromptsConfig
from roundtable.events import ProgressEvent
from roundtable.models import DiscussionRequest, Message, ModelResponse, Participant, SearchResult
from roundtable.prompts import (
    build_followup_prompt,
    build_summary_prompt,
    history_from_messages,
    parse_followup_response,
    participant_label,
)
from roundtable.providers.base import AIProvider, BackendFactory, ProviderError, call_provider

logger = logging.getLogger(__name__)


def summary_candidates(participants: list[Participant], messages: list[Message]) -> list[Participant]:
    """Participants that produced at least one message, in roster order."""
    spoke = {m.participant_id for m in messages}
    return [p for p in participants if p.id in spoke]


async def _suggest_followups(
    backend: AIProvider,
    request: DiscussionRequest,
    final_answer: str,
    prompts: PromptsConfig,
    round_number: int,
) -> ProgressEvent | None:
    prompt = build_followup_prompt(prompts, request.topic, final_answer, request.user_profile)
    result = await call_provider(backend, prompt, round_number)
    if not isinstance(result, ModelResponse):
        logger.debug("Follow-up generation failed: %s", result)
        return None
    questions = parse_followup_response(result.content)
    if not questions:
        logger.debug("Follow-up response contained no usable questions")
        return None
    return ProgressEvent.followups(questions)


async def generate_summary(
    request: DiscussionRequest,
    messages: list[Message],
    backend_for: BackendFactory,
    prompts: PromptsConfig,
    search_results: list[SearchResult],
) -> AsyncIterator[ProgressEvent]:
    """Produce the summary event stream for a finished discussion.

    Candidates are tried one at a time until one returns non-empty text;
    each failure is reported as a non-fatal error. The follow-up request
    goes to the first candidate only and its failures are never reported.

    Yields:
        Zero or more non-fatal errors, then either ``summary`` (optionally
        followed by ``followups``) or a fatal error, and always ``complete``.
    """
    candidates = summary_candidates(request.participants, messages)
    prompt = build_summary_prompt(prompts, request, history_from_messages(messages), search_results)
    round_number = max((m.round for m in messages), default=0) + 1

    final_answer: str | None = None
    for participant in candidates:
        label = participant_label(participant)
        try:
            backend = backend_for(participant)
        except ProviderError as exc:
            yield ProgressEvent.failure(f"Summary generation failed with {label}: {exc}")
            continue

        logger.info("Running summary via %s", label)
        result = await call_provider(backend, prompt, round_number)
        if not isinstance(result, ModelResponse):
            yield ProgressEvent.failure(f"Summary generation failed with {label}: {result}")
            continue
        if not result.content.strip():
            yield ProgressEvent.failure(f"Summary generation failed with {label}: empty response")
            continue

        final_answer = result.content
        break

    if final_answer is None:
        logger.error("Summary failed for all %d candidates", len(candidates))
        yield ProgressEvent.failure("Failed to generate summary with all available providers", fatal=True)
        yield ProgressEvent.complete()
        return

    yield ProgressEvent.summary(final_answer, prompt)

    try:
        followup_backend = backend_for(candidates[0])
    except ProviderError as exc:
        logger.debug("No backend for follow-up questions: %s", exc)
    else:
        event = await _suggest_followups(followup_backend, request, final_answer, prompts, round_number)
        if event is not None:
            yield event

    yield ProgressEvent.complete()
