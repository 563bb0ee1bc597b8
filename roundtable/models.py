"""Pure dataclasses for the roundtable discussion engine. No logic, no deps."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Participant:
    id: str                          # unique within one discussion
    provider: str                    # "claude", "openai", "gemini", "ollama", ...
    model: str | None = None         # None -> provider's configured default
    display_name: str = ""
    color: str = "cyan"
    role: str | None = None          # preset id or custom role reference
    display_role_name: str | None = None
    custom_role_prompt: str | None = None


@dataclass
class ModelResponse:
    provider: str
    model: str
    round_number: int
    content: str
    latency_sec: float
    token_count: int | None


@dataclass(frozen=True)
class Message:
    id: str
    participant_id: str
    provider: str
    model: str | None
    content: str
    round: int
    timestamp: datetime
    prompt: str
    # Presentation snapshot taken when the message was created
    display_name: str
    display_role_name: str | None = None
    color: str | None = None


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str                         # identity key for merging
    content: str = ""
    engine: str | None = None
    published_date: str | None = None


@dataclass
class SearchTiming:
    on_start: bool = True
    each_round: bool = False
    on_demand: bool = False
    before_summary: bool = False


@dataclass
class SearchConfig:
    enabled: bool = False
    max_results: int = 5
    category: str = "general"        # "general", "news", "images"
    language: str = "en"
    query: str | None = None         # overrides the topic for scheduled searches
    engines: list[str] = field(default_factory=list)
    timing: SearchTiming = field(default_factory=SearchTiming)


@dataclass
class TerminationConfig:
    condition: str = "rounds"        # "rounds", "consensus", "keyword", "manual"
    max_rounds: int = 10             # always enforced
    consensus_threshold: float | None = None
    keywords: list[str] = field(default_factory=list)


@dataclass
class UserProfile:
    name: str | None = None
    occupation: str | None = None
    tech_level: str | None = None    # "beginner", "intermediate", "advanced"
    interests: list[str] = field(default_factory=list)
    response_style: str | None = None
    custom_context: str | None = None


@dataclass
class DirectionGuide:
    keywords: list[str] = field(default_factory=list)
    focus_areas: list[str] = field(default_factory=list)
    avoid_topics: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MessageVote:
    message_id: str
    vote: str                        # "agree", "disagree", "neutral"


@dataclass(frozen=True)
class PreviousTurnSummary:
    topic: str
    final_answer: str


@dataclass(frozen=True)
class FollowUpQuestion:
    id: str
    category: str                    # "clarification", "expansion", "example", "alternative"
    question: str


@dataclass
class ResumeSnapshot:
    messages: list[Message]
    current_round: int
    current_participant_index: int
    total_rounds: int
    search_results: list[SearchResult] = field(default_factory=list)


@dataclass
class DiscussionRequest:
    topic: str
    participants: list[Participant]
    rounds: int
    previous_turns: list[PreviousTurnSummary] = field(default_factory=list)
    search_results: list[SearchResult] = field(default_factory=list)
    search_config: SearchConfig | None = None
    user_profile: UserProfile | None = None
    mode: str | None = None
    depth: int | None = None
    direction_guide: DirectionGuide | None = None
    termination: TerminationConfig | None = None
    resume: ResumeSnapshot | None = None
    votes: list[MessageVote] = field(default_factory=list)
    skip_summary: bool = False
    # Receives message_chunk events while a streaming backend is generating
    on_message_chunk: Callable[[Any], None] | None = None
