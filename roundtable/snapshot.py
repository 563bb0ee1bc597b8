"""Resume snapshots: record a running discussion and persist it as JSON."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from roundtable.events import EventType, ProgressEvent, message_to_dict, search_result_to_dict
from roundtable.models import Message, ResumeSnapshot, SearchResult

logger = logging.getLogger(__name__)


class SnapshotRecorder:
    """Follows the event stream and knows where an interrupted run should pick up.

    The resume point is the turn in progress, or the turn after the last
    message or failed turn once it has finished. Search results gathered so
    far travel with the snapshot so resumed prompts match.
    """

    def __init__(self, total_rounds: int, total_participants: int) -> None:
        self.messages: list[Message] = []
        self.search_results: list[SearchResult] = []
        self.total_rounds = total_rounds
        self._participants = total_participants
        self._round = 1
        self._index = 0
        self._turn_open = False

    @classmethod
    def resuming(cls, snapshot: ResumeSnapshot, total_participants: int) -> "SnapshotRecorder":
        recorder = cls(snapshot.total_rounds, total_participants)
        recorder.messages = list(snapshot.messages)
        recorder.search_results = list(snapshot.search_results)
        recorder._round = snapshot.current_round or 1
        recorder._index = snapshot.current_participant_index
        return recorder

    def _advance(self) -> None:
        self._turn_open = False
        self._index += 1
        if self._index >= self._participants:
            self._round += 1
            self._index = 0

    def observe(self, event: ProgressEvent) -> None:
        if event.type is EventType.PROGRESS and event.progress is not None:
            self._round = event.progress.current_round
            self._index = event.progress.current_participant_index
            self._participants = event.progress.total_participants
            self.total_rounds = event.progress.total_rounds
            self._turn_open = True
        elif event.type is EventType.MESSAGE and event.message is not None:
            self.messages.append(event.message)
            self._advance()
        elif event.type is EventType.ERROR and not event.fatal and self._turn_open:
            # The failed participant is not retried on resume
            self._advance()
        elif event.type is EventType.SEARCH_RESULTS:
            self.search_results = list(event.search_results)

    def snapshot(self) -> ResumeSnapshot:
        return ResumeSnapshot(
            messages=list(self.messages),
            current_round=self._round,
            current_participant_index=self._index,
            total_rounds=self.total_rounds,
            search_results=list(self.search_results),
        )


def _message_from_dict(data: dict[str, Any]) -> Message:
    return Message(
        id=data["id"],
        participant_id=data["participantId"],
        provider=data["provider"],
        model=data.get("model"),
        content=data["content"],
        round=int(data["round"]),
        timestamp=datetime.fromisoformat(data["timestamp"]),
        prompt=data.get("prompt", ""),
        display_name=data.get("displayName", ""),
        display_role_name=data.get("displayRoleName"),
        color=data.get("color"),
    )


def _search_result_from_dict(data: dict[str, Any]) -> SearchResult:
    return SearchResult(
        title=data.get("title", ""),
        url=data["url"],
        content=data.get("content") or "",
        engine=data.get("engine"),
        published_date=data.get("publishedDate"),
    )


def snapshot_to_dict(snapshot: ResumeSnapshot) -> dict[str, Any]:
    return {
        "messages": [message_to_dict(m) for m in snapshot.messages],
        "currentRound": snapshot.current_round,
        "currentParticipantIndex": snapshot.current_participant_index,
        "totalRounds": snapshot.total_rounds,
        "searchResults": [search_result_to_dict(r) for r in snapshot.search_results],
    }


def save_snapshot(snapshot: ResumeSnapshot, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Snapshot saved to: %s", path)
    return path


def load_snapshot(path: Path) -> ResumeSnapshot:
    """Read a snapshot written by ``save_snapshot``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a valid snapshot.
    """
    if not path.exists():
        raise FileNotFoundError(f"Snapshot not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return ResumeSnapshot(
            messages=[_message_from_dict(m) for m in raw["messages"]],
            current_round=int(raw["currentRound"]),
            current_participant_index=int(raw["currentParticipantIndex"]),
            total_rounds=int(raw["totalRounds"]),
            search_results=[_search_result_from_dict(r) for r in raw.get("searchResults", [])],
        )
    except (json.JSONDecodeError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid snapshot file {path}: {exc}") from exc
