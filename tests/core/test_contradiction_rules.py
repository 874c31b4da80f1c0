"""Contradiction Rules — tests for verdict extraction from oracle analyses."""

import pytest

from goodfaith.core.contradiction_rules import (
    CONTRADICTION_THRESHOLD, extract_conclusion, judge_analysis, lexical_score,
)
from goodfaith.core.domain_types import JudgeMethod


def test_explicit_yes_conclusion_wins():
    verdict = judge_analysis(
        "The answers are consistent in tone.\nConclusion: YES",
    )
    assert verdict.is_contradiction
    assert verdict.confidence == 1.0
    assert verdict.method == JudgeMethod.EXPLICIT


def test_explicit_no_conclusion():
    verdict = judge_analysis("They contradict on the surface.\n**Conclusion:** NO")
    assert not verdict.is_contradiction
    assert verdict.method == JudgeMethod.EXPLICIT


def test_last_conclusion_line_wins():
    text = 'End with "Conclusion: YES" or "Conclusion: NO".\n...\nConclusion: NO'
    assert extract_conclusion(text) is False


def test_there_is_statement_counts_as_conclusion():
    assert extract_conclusion("After reflection, there is a contradiction here.") is True
    assert extract_conclusion("Overall there is no contradiction between them.") is False


def test_no_conclusion_returns_none():
    assert extract_conclusion("The person values honesty.") is None


def test_lexical_fallback_detects_contradiction():
    verdict = judge_analysis(
        "Answer 2 is inconsistent with answer 1: the positions are mutually exclusive.",
    )
    assert verdict.method == JudgeMethod.LEXICAL
    assert verdict.is_contradiction
    assert verdict.score == pytest.approx(0.55)
    assert verdict.confidence == pytest.approx(0.55)


def test_lexical_fallback_consistency_phrases_clear():
    verdict = judge_analysis("These answers are consistent and compatible with each other.")
    assert not verdict.is_contradiction
    assert verdict.confidence == 0.0


def test_incompatible_does_not_count_as_compatible():
    score, matched = lexical_score("The two views are incompatible.")
    assert "compatible" not in matched
    assert score > CONTRADICTION_THRESHOLD


def test_each_rule_counts_once():
    score, matched = lexical_score("inconsistent, inconsistent, inconsistent")
    assert matched == ["inconsistent"]
    assert score == pytest.approx(0.25)


def test_consistency_phrase_outweighs_tension():
    verdict = judge_analysis("There is some tension between these, and they are complementary.")
    # 0.15 - 0.20 = -0.05
    assert not verdict.is_contradiction


def test_explanation_is_verbatim():
    text = "Conclusion: YES, stealing and never lying are in tension."
    assert judge_analysis(text).explanation == text
