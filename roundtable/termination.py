"""Termination policies evaluated once per completed round.

The consensus check is a substring heuristic over fixed agreement phrases.
It does not understand negation: "I don't agree" still counts as agreement.
"""

from dataclasses import dataclass

from roundtable.models import Message, TerminationConfig

DEFAULT_CONSENSUS_THRESHOLD = 0.7

CONSENSUS_PHRASES = (
    "i agree",
    "agreed",
    "we all agree",
    "in agreement",
    "no objection",
    "same opinion",
    "to conclude",
    "in conclusion",
    "to sum up",
    "unanimous",
    # Japanese phrases kept for mixed-language panels
    "同意します",
    "賛成です",
    "合意です",
    "異論ありません",
    "同じ意見です",
    "同感です",
    "結論として",
    "まとめると",
    "全員一致",
)


@dataclass(frozen=True)
class TerminationResult:
    terminated: bool
    reason: str = ""


def effective_max_rounds(requested_rounds: int, config: TerminationConfig) -> int:
    """Round cap for the loop. ``manual`` uses max_rounds as the cutoff itself."""
    if config.condition == "manual":
        return config.max_rounds
    return min(requested_rounds, config.max_rounds)


def check_consensus(messages: list[Message], threshold: float) -> bool:
    """True if enough messages of the latest round contain an agreement phrase."""
    if len(messages) < 2:
        return False
    latest_round = max(m.round for m in messages)
    latest = [m for m in messages if m.round == latest_round]
    if len(latest) < 2:
        return False
    agreeing = sum(
        1 for m in latest
        if any(phrase in m.content.lower() for phrase in CONSENSUS_PHRASES)
    )
    # Thresholds are configured in 0.1 steps, so the ratio is compared at that precision
    return round(agreeing / len(latest), 1) >= threshold


def check_termination_keywords(content: str, keywords: list[str]) -> bool:
    lowered = content.lower()
    return any(kw.lower() in lowered for kw in keywords if kw)


def evaluate_termination(
    messages: list[Message],
    last_message: Message,
    config: TerminationConfig,
) -> TerminationResult:
    if config.condition == "consensus":
        threshold = config.consensus_threshold
        if threshold is None:
            threshold = DEFAULT_CONSENSUS_THRESHOLD
        if check_consensus(messages, threshold):
            return TerminationResult(True, "Participants reached consensus")
    elif config.condition == "keyword" and config.keywords:
        if check_termination_keywords(last_message.content, config.keywords):
            return TerminationResult(True, "Termination keyword detected")
    return TerminationResult(False)
