"""Tests for roundtable/termination.py."""

from roundtable.models import TerminationConfig
from roundtable.termination import (
    check_consensus,
    check_termination_keywords,
    effective_max_rounds,
    evaluate_termination,
)
from tests.conftest import make_message


def _round(round_number: int, *contents: str):
    return [make_message(f"m{round_number}-{i}", f"p{i}", c, round_number) for i, c in enumerate(contents)]


def test_consensus_two_of_three_meets_default_threshold():
    messages = _round(1, "I agree with that.", "Agreed.", "No, this is wrong.")
    assert check_consensus(messages, 0.7) is True


def test_consensus_ratio_compared_at_one_decimal():
    # 3 of 4 is 0.75, which counts as 0.8
    messages = _round(1, "I agree.", "Agreed.", "In conclusion, yes.", "No.")
    assert check_consensus(messages, 0.8) is True
    assert check_consensus(messages, 0.9) is False


def test_consensus_one_of_three_is_not_enough():
    messages = _round(1, "I agree with that.", "Hmm.", "No, this is wrong.")
    assert check_consensus(messages, 0.7) is False


def test_consensus_needs_two_messages_in_latest_round():
    messages = _round(1, "I agree", "Agreed") + _round(2, "I agree")
    assert check_consensus(messages, 0.5) is False


def test_consensus_only_looks_at_latest_round():
    messages = _round(1, "I agree", "Agreed") + _round(2, "I disagree strongly", "Not at all")
    assert check_consensus(messages, 0.7) is False


def test_consensus_is_case_insensitive_and_matches_japanese():
    messages = _round(1, "IN CONCLUSION we ship.", "同意します。")
    assert check_consensus(messages, 1.0) is True


def test_consensus_counts_negated_phrase():
    # Substring matching ignores negation
    messages = _round(1, "I agree? No, I don't.", "Agreed.")
    assert check_consensus(messages, 1.0) is True


def test_keywords_match_case_insensitively():
    assert check_termination_keywords("That settles it. FINAL.", ["final"]) is True
    assert check_termination_keywords("Keep going", ["final"]) is False
    assert check_termination_keywords("anything", []) is False


def test_effective_max_rounds():
    assert effective_max_rounds(5, TerminationConfig(condition="rounds", max_rounds=3)) == 3
    assert effective_max_rounds(2, TerminationConfig(condition="consensus", max_rounds=10)) == 2
    assert effective_max_rounds(1, TerminationConfig(condition="manual", max_rounds=4)) == 4


def test_evaluate_rounds_condition_never_terminates_early():
    messages = _round(1, "I agree", "Agreed")
    result = evaluate_termination(messages, messages[-1], TerminationConfig(condition="rounds"))
    assert result.terminated is False


def test_evaluate_consensus_uses_default_threshold():
    messages = _round(1, "I agree", "Agreed", "Hmm")
    result = evaluate_termination(messages, messages[-1], TerminationConfig(condition="consensus"))
    assert result.terminated is True
    assert result.reason == "Participants reached consensus"


def test_evaluate_keyword_checks_only_last_message():
    messages = _round(1, "STOP", "continue")
    config = TerminationConfig(condition="keyword", keywords=["stop"])
    assert evaluate_termination(messages, messages[-1], config).terminated is False
    assert evaluate_termination(messages, messages[0], config).reason == "Termination keyword detected"


def test_evaluate_keyword_without_keywords():
    messages = _round(1, "stop")
    result = evaluate_termination(messages, messages[-1], TerminationConfig(condition="keyword"))
    assert result.terminated is False
