"""Discussion orchestration: sequential round-robin turns, search, termination."""

import logging
from collections.abc import AsyncIterator, Callable
from datetime import datetime, timezone

from config.config_loader import PromptsConfig
from roundtable.events import ProgressEvent, TurnProgress
from roundtable.models import (
    DiscussionRequest,
    Message,
    ModelResponse,
    SearchConfig,
    SearchResult,
    TerminationConfig,
)
from roundtable.prompts import (
    build_turn_prompt,
    extract_search_queries,
    history_from_messages,
    participant_label,
    role_display_name,
    strip_search_markers,
)
from roundtable.providers.base import BackendFactory, ChunkCallback, ProviderError, call_provider
from roundtable.search import SearchBackend, SearchError, merge_search_results
from roundtable.summary import generate_summary
from roundtable.termination import effective_max_rounds, evaluate_termination

logger = logging.getLogger(__name__)


def _chunk_forwarder(sink: Callable[[ProgressEvent], None], message_id: str) -> ChunkCallback:
    """Wrap the caller's chunk sink so each delta carries the running text."""
    accumulated: list[str] = []

    def forward(delta: str) -> None:
        accumulated.append(delta)
        sink(ProgressEvent.message_chunk(message_id, delta, "".join(accumulated)))

    return forward


async def _run_search(
    search: SearchBackend,
    queries: list[str],
    config: SearchConfig,
    current: list[SearchResult],
) -> list[SearchResult]:
    """Run each query and merge into ``current``. Search failures add nothing."""
    merged = current
    for query in queries:
        try:
            found = await search.search(query, config)
        except SearchError as exc:
            logger.warning("Search for %r failed: %s", query, exc)
            continue
        except Exception as exc:
            logger.warning("Search backend error for %r: %s", query, exc, exc_info=True)
            continue
        merged = merge_search_results(merged, found)
    return merged


async def run_discussion(
    request: DiscussionRequest,
    backend_for: BackendFactory,
    prompts: PromptsConfig,
    search: SearchBackend | None = None,
) -> AsyncIterator[ProgressEvent]:
    """Run a discussion and yield its events in order.

    Args:
        request: Topic, roster and per-run options; may carry a resume snapshot.
        backend_for: Returns the backend serving a participant. May raise ProviderError.
        prompts: Prompt templates from config.
        search: Search backend used for scheduled and on-demand searches.

    Yields:
        ProgressEvent objects. The stream is finite and not restartable; to
        continue an abandoned run, build a ResumeSnapshot and call again.
    """
    participants = request.participants
    resume = request.resume
    rounds = resume.total_rounds if resume else request.rounds
    termination = request.termination or TerminationConfig(condition="rounds", max_rounds=rounds)
    max_round = effective_max_rounds(rounds, termination)

    messages: list[Message] = list(resume.messages) if resume else []
    start_round = (resume.current_round if resume else 0) or 1
    start_index = resume.current_participant_index if resume else 0
    # A snapshot carries the results gathered before the interruption
    search_results = merge_search_results(list(request.search_results), resume.search_results if resume else [])

    search_config = request.search_config
    search_on = search is not None and search_config is not None and search_config.enabled
    timing = search_config.timing if search_on else None
    on_demand = bool(timing and timing.on_demand)
    scheduled_query = (search_config.query if search_config else None) or request.topic

    if timing and timing.on_start and resume is None:
        yield ProgressEvent.searching(search_results)
        search_results = await _run_search(search, [scheduled_query], search_config, search_results)
        yield ProgressEvent.search_done(search_results)

    terminated = False
    for round_number in range(start_round, max_round + 1):
        first_index = start_index if round_number == start_round else 0
        logger.info("Starting round %d/%d with %d participants", round_number, max_round, len(participants))

        if timing and timing.each_round and round_number > 1 and first_index == 0:
            yield ProgressEvent.searching(search_results)
            search_results = await _run_search(search, [scheduled_query], search_config, search_results)
            yield ProgressEvent.search_done(search_results)

        for index in range(first_index, len(participants)):
            participant = participants[index]
            label = participant_label(participant)

            yield ProgressEvent.turn_started(
                TurnProgress(
                    current_round=round_number,
                    total_rounds=max_round,
                    current_participant_index=index,
                    total_participants=len(participants),
                    current_participant=participant,
                )
            )

            try:
                backend = backend_for(participant)
            except ProviderError as exc:
                logger.warning("No backend for %s: %s", label, exc)
                yield ProgressEvent.failure(f"{label}: {exc}")
                continue

            try:
                available = await backend.is_available()
            except Exception as exc:
                logger.warning("Availability check failed for %s: %s", label, exc)
                available = False
            if not available:
                logger.error("Provider not available: %s (%s/%s)", label, participant.provider, participant.model)
                yield ProgressEvent.failure(f"{label} is not available")
                continue

            prompt = build_turn_prompt(
                prompts,
                request,
                participant,
                history_from_messages(messages),
                search_results,
                on_demand_search=on_demand,
            )

            message_id = f"msg-{len(messages) + 1}"
            on_chunk: ChunkCallback | None = None
            if request.on_message_chunk is not None and backend.supports_streaming:
                on_chunk = _chunk_forwarder(request.on_message_chunk, message_id)

            result = await call_provider(backend, prompt, round_number, on_chunk)
            if not isinstance(result, ModelResponse):
                yield ProgressEvent.failure(f"{label}: {result}")
                continue

            content = result.content
            if on_demand:
                queries = extract_search_queries(content)
                if queries:
                    yield ProgressEvent.searching(search_results)
                    search_results = await _run_search(search, queries, search_config, search_results)
                    yield ProgressEvent.search_done(search_results)
                    content = strip_search_markers(content)

            message = Message(
                id=message_id,
                participant_id=participant.id,
                provider=participant.provider,
                model=participant.model or backend.model_string(),
                content=content,
                round=round_number,
                timestamp=datetime.now(timezone.utc),
                prompt=prompt,
                display_name=label,
                display_role_name=role_display_name(participant),
                color=participant.color,
            )
            messages.append(message)
            yield ProgressEvent.new_message(message)

            if index == len(participants) - 1:
                verdict = evaluate_termination(messages, message, termination)
                if verdict.terminated:
                    logger.info("Discussion terminated after round %d: %s", round_number, verdict.reason)
                    yield ProgressEvent.terminated(verdict.reason)
                    terminated = True
                    break

        if terminated:
            break

    if not messages:
        names = ", ".join(participant_label(p) for p in participants)
        logger.error("All providers failed. Attempted providers: %s", names)
        yield ProgressEvent.failure(f"No messages were generated. All providers failed ({names}).", fatal=True)
        return

    if request.skip_summary:
        yield ProgressEvent.ready_for_summary(messages)
        yield ProgressEvent.complete()
        return

    if timing and timing.before_summary:
        yield ProgressEvent.searching(search_results)
        search_results = await _run_search(search, [scheduled_query], search_config, search_results)
        yield ProgressEvent.search_done(search_results)

    async for event in generate_summary(request, messages, backend_for, prompts, search_results):
        yield event
