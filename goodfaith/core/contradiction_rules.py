"""Contradiction Rules — versioned phrase table and verdict extraction for oracle analyses.

Invariants:
    - All functions are PURE: no IO, no async
    - An explicit conclusion always wins over the phrase table (confidence 1.0)
    - Each phrase rule contributes at most once per analysis
    - Lexical verdict is score > CONTRADICTION_THRESHOLD; confidence is the score clamped to [0, 1]
    - Phrases match on word boundaries: "incompatible" never counts as "compatible",
      "inconsistent" never counts as "consistent"

Design Decisions:
    - Rule table as data (PhraseRule tuples) with RULESET_VERSION: tunable and testable
      without touching the control flow in services/contradiction_judge.py
    - Low threshold (0.1) favours recall: a missed contradiction hides tension from the user
    - The last conclusion line wins: oracles sometimes restate the question's format first
"""

import re
from dataclasses import dataclass, field

from goodfaith.core.domain_types import JudgeMethod

RULESET_VERSION = "1.0"
CONTRADICTION_THRESHOLD = 0.1


@dataclass(frozen=True)
class PhraseRule:
    """A weighted phrase pattern. Positive = contradiction, negative = consistency."""
    label: str
    pattern: re.Pattern
    weight: float


def _rule(label: str, regex: str, weight: float) -> PhraseRule:
    return PhraseRule(label, re.compile(regex, re.IGNORECASE), weight)


CONTRADICTION_RULES: tuple[PhraseRule, ...] = (
    _rule("contradicts", r"\bcontradicts\b|\bcontradictions?\b", 0.30),
    _rule("inconsistent", r"\binconsisten(?:t|cy|cies)\b", 0.25),
    _rule("conflicts with", r"\bconflicts with\b|\bconflict between\b", 0.20),
    _rule("cannot be reconciled", r"\bcannot be reconciled\b", 0.30),
    _rule("mutually exclusive", r"\bmutually exclusive\b|\bincompatible\b", 0.30),
    _rule("tension between", r"\btension between\b|\bat odds with\b", 0.15),
    _rule("opposes", r"\bopposes\b|\bopposing\b", 0.20),
)

CONSISTENCY_RULES: tuple[PhraseRule, ...] = (
    _rule("no contradiction", r"\bno contradiction", -0.40),
    _rule("not contradictory", r"\bnot contradictory\b", -0.30),
    _rule("consistent", r"\bconsisten(?:t|cy)\b", -0.25),
    _rule("compatible", r"\bcompatible\b", -0.20),
    _rule("can be reconciled", r"\bcan be reconciled\b", -0.30),
    _rule("aligns with", r"\baligns? with\b", -0.15),
    _rule("complementary", r"\bcomplement(?:s|ary)?\b", -0.20),
)

PHRASE_RULES: tuple[PhraseRule, ...] = CONTRADICTION_RULES + CONSISTENCY_RULES

_CONCLUSION_LINE = re.compile(
    r"conclusion\W{0,3}\s*:\s*\W{0,3}(yes|no)\b", re.IGNORECASE,
)
_THERE_IS = re.compile(
    r"\bthere\s+(is\s+no|is\s+not|isn't|is)\s+a?\s*contradiction\b", re.IGNORECASE,
)


@dataclass(frozen=True)
class JudgeVerdict:
    """Outcome of judging one oracle analysis."""
    is_contradiction: bool
    confidence: float
    explanation: str
    method: JudgeMethod
    score: float | None = None
    matched_rules: tuple[str, ...] = field(default_factory=tuple)


def extract_conclusion(analysis: str) -> bool | None:
    """Explicit YES/NO conclusion, or None when the analysis has none."""
    lines = _CONCLUSION_LINE.findall(analysis)
    if lines:
        return lines[-1].lower() == "yes"

    statements = _THERE_IS.findall(analysis)
    if statements:
        return statements[-1].lower() == "is"
    return None


def lexical_score(
    analysis: str, rules: tuple[PhraseRule, ...] = PHRASE_RULES,
) -> tuple[float, list[str]]:
    """Sum the weights of every rule that matches (each at most once)."""
    matched = [rule for rule in rules if rule.pattern.search(analysis)]
    score = round(sum(rule.weight for rule in matched), 4)
    return score, [rule.label for rule in matched]


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def judge_analysis(analysis: str) -> JudgeVerdict:
    """Turn the oracle's free text into a verdict with confidence."""
    conclusion = extract_conclusion(analysis)
    if conclusion is not None:
        return JudgeVerdict(
            is_contradiction=conclusion,
            confidence=1.0,
            explanation=analysis,
            method=JudgeMethod.EXPLICIT,
        )

    score, matched = lexical_score(analysis)
    return JudgeVerdict(
        is_contradiction=score > CONTRADICTION_THRESHOLD,
        confidence=clamp(score, 0.0, 1.0),
        explanation=analysis,
        method=JudgeMethod.LEXICAL,
        score=score,
        matched_rules=tuple(matched),
    )
