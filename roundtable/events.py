"""Progress events yielded by the discussion engine.

Events are the only observable output of a run. They are created once and
never mutated; transport adapters (console, JSON lines) read them through
``to_dict``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from roundtable.models import FollowUpQuestion, Message, Participant, SearchResult


class EventType(str, Enum):
    """Types of events emitted by the engine."""

    PROGRESS = "progress"
    MESSAGE = "message"
    MESSAGE_CHUNK = "message_chunk"
    SEARCHING = "searching"
    SEARCH_RESULTS = "search_results"
    TERMINATED = "terminated"
    SUMMARY = "summary"
    FOLLOWUPS = "followups"
    ERROR = "error"
    READY_FOR_SUMMARY = "ready_for_summary"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TurnProgress:
    """Position of the loop when a turn starts."""

    current_round: int
    total_rounds: int
    current_participant_index: int
    total_participants: int
    current_participant: Participant


@dataclass(frozen=True)
class ProgressEvent:
    """A single event in the ordered discussion stream."""

    type: EventType
    progress: TurnProgress | None = None
    message: Message | None = None
    message_id: str | None = None
    chunk: str | None = None
    accumulated_content: str | None = None
    search_results: tuple[SearchResult, ...] = ()
    termination_reason: str | None = None
    final_answer: str | None = None
    summary_prompt: str | None = None
    follow_ups: tuple[FollowUpQuestion, ...] = ()
    messages: tuple[Message, ...] = ()
    error: str | None = None
    fatal: bool = False

    @classmethod
    def turn_started(cls, progress: TurnProgress) -> "ProgressEvent":
        return cls(type=EventType.PROGRESS, progress=progress)

    @classmethod
    def new_message(cls, message: Message) -> "ProgressEvent":
        return cls(type=EventType.MESSAGE, message=message)

    @classmethod
    def message_chunk(cls, message_id: str, chunk: str, accumulated: str) -> "ProgressEvent":
        return cls(
            type=EventType.MESSAGE_CHUNK,
            message_id=message_id,
            chunk=chunk,
            accumulated_content=accumulated,
        )

    @classmethod
    def searching(cls, current: list[SearchResult]) -> "ProgressEvent":
        return cls(type=EventType.SEARCHING, search_results=tuple(current))

    @classmethod
    def search_done(cls, results: list[SearchResult]) -> "ProgressEvent":
        return cls(type=EventType.SEARCH_RESULTS, search_results=tuple(results))

    @classmethod
    def terminated(cls, reason: str) -> "ProgressEvent":
        return cls(type=EventType.TERMINATED, termination_reason=reason)

    @classmethod
    def summary(cls, final_answer: str, prompt: str) -> "ProgressEvent":
        return cls(type=EventType.SUMMARY, final_answer=final_answer, summary_prompt=prompt)

    @classmethod
    def followups(cls, questions: list[FollowUpQuestion]) -> "ProgressEvent":
        return cls(type=EventType.FOLLOWUPS, follow_ups=tuple(questions))

    @classmethod
    def failure(cls, error: str, *, fatal: bool = False) -> "ProgressEvent":
        return cls(type=EventType.ERROR, error=error, fatal=fatal)

    @classmethod
    def ready_for_summary(cls, messages: list[Message]) -> "ProgressEvent":
        return cls(type=EventType.READY_FOR_SUMMARY, messages=tuple(messages))

    @classmethod
    def complete(cls) -> "ProgressEvent":
        return cls(type=EventType.COMPLETE)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict, omitting empty fields."""
        data: dict[str, Any] = {"type": self.type.value}
        if self.progress is not None:
            data["progress"] = {
                "currentRound": self.progress.current_round,
                "totalRounds": self.progress.total_rounds,
                "currentParticipantIndex": self.progress.current_participant_index,
                "totalParticipants": self.progress.total_participants,
                "currentParticipant": _participant_dict(self.progress.current_participant),
            }
        if self.message is not None:
            data["message"] = message_to_dict(self.message)
        if self.message_id is not None:
            data["messageId"] = self.message_id
            data["chunk"] = self.chunk
            data["accumulatedContent"] = self.accumulated_content
        if self.type in (EventType.SEARCHING, EventType.SEARCH_RESULTS):
            data["searchResults"] = [search_result_to_dict(r) for r in self.search_results]
        if self.termination_reason is not None:
            data["terminationReason"] = self.termination_reason
        if self.final_answer is not None:
            data["finalAnswer"] = self.final_answer
            data["summaryPrompt"] = self.summary_prompt
        if self.follow_ups:
            data["suggestedFollowUps"] = [
                {"id": q.id, "category": q.category, "question": q.question} for q in self.follow_ups
            ]
        if self.type is EventType.READY_FOR_SUMMARY:
            data["messages"] = [message_to_dict(m) for m in self.messages]
        if self.error is not None:
            data["error"] = self.error
            data["fatal"] = self.fatal
        return data


def message_to_dict(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "participantId": message.participant_id,
        "provider": message.provider,
        "model": message.model,
        "content": message.content,
        "round": message.round,
        "timestamp": message.timestamp.isoformat(),
        "prompt": message.prompt,
        "displayName": message.display_name,
        "displayRoleName": message.display_role_name,
        "color": message.color,
    }


def _participant_dict(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "provider": participant.provider,
        "model": participant.model,
        "displayName": participant.display_name,
        "color": participant.color,
        "role": participant.role,
    }


def search_result_to_dict(result: SearchResult) -> dict[str, Any]:
    return {
        "title": result.title,
        "url": result.url,
        "content": result.content,
        "engine": result.engine,
        "publishedDate": result.published_date,
    }
