"""Oracle Parsing — defensive extraction of structured data from free-text oracle output.

Invariants:
    - All functions are PURE: no IO, no logging
    - Never raise on malformed input — return None and let the caller fall back
    - Numbers are accepted only as real numbers (bools and numeric strings are rejected)

Design Decisions:
    - parse_json_object has 2 parse levels (direct, first {...} block); the third
      level (use the raw text) is the caller's fallback path, not a parse
    - camelCase and snake_case keys are both accepted: prompts ask for camelCase,
      models drift
"""

import json
import re
from dataclasses import dataclass, field

from goodfaith.core.consistency import is_valid_oracle_score

MAX_ORACLE_PRINCIPLES = 5
MAX_QUESTION_LENGTH = 500

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
_VERDICT_LINE = re.compile(r"verdict\W{0,3}\s*:\s*\W{0,3}(yes|no)\b", re.IGNORECASE)
_QUESTION_PREFIX = re.compile(r"^\s*(?:question\s*\d*\s*[:.-]\s*)", re.IGNORECASE)


@dataclass(frozen=True)
class OracleFrameworkAnalysis:
    """Structured part of the oracle's framework analysis; unusable fields are None/empty."""
    framework_alignment: dict[str, float] | None
    key_principles: list[str] = field(default_factory=list)
    consistency_score: float | None = None
    meta_principles: list[str] = field(default_factory=list)
    subtle_patterns: list[str] = field(default_factory=list)


def parse_json_object(text: str) -> dict | None:
    """Extract a JSON object from oracle output. Handles markdown wrapping.

    Levels:
    1. Direct json.loads
    2. Regex: first {...} block
    """
    text = text.strip()
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    match = _JSON_BLOCK.search(text)
    if match:
        try:
            parsed = json.loads(match.group())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
    return None


def _first_key(data: dict, *keys: str) -> object:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _string_list(value: object, limit: int | None = None) -> list[str]:
    if not isinstance(value, list):
        return []
    items = [str(v).strip() for v in value if isinstance(v, str) and v.strip()]
    return items[:limit] if limit else items


def _alignment_map(value: object) -> dict[str, float] | None:
    if not isinstance(value, dict) or not value:
        return None
    alignment: dict[str, float] = {}
    for key, raw in value.items():
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        alignment[str(key)] = float(raw)
    return alignment


def parse_framework_analysis(text: str) -> OracleFrameworkAnalysis | None:
    """Parse the framework-analysis response; None when no JSON object is present."""
    data = parse_json_object(text)
    if data is None:
        return None

    score = _first_key(data, "consistencyScore", "consistency_score")
    return OracleFrameworkAnalysis(
        framework_alignment=_alignment_map(
            _first_key(data, "frameworkAlignment", "framework_alignment"),
        ),
        key_principles=_string_list(
            _first_key(data, "keyPrinciples", "key_principles"), MAX_ORACLE_PRINCIPLES,
        ),
        consistency_score=float(score) if is_valid_oracle_score(score) else None,
        meta_principles=_string_list(_first_key(data, "metaPrinciples", "meta_principles")),
        subtle_patterns=_string_list(_first_key(data, "subtlePatterns", "subtle_patterns")),
    )


def parse_stage_verdict(text: str) -> bool | None:
    """Advisory stage check: True/False when the oracle is explicit, else None."""
    data = parse_json_object(text)
    if data is not None:
        value = _first_key(data, "demonstratesStage", "demonstrates_stage", "demonstrates")
        if isinstance(value, bool):
            return value

    lines = _VERDICT_LINE.findall(text)
    if lines:
        return lines[-1].lower() == "yes"
    return None


def parse_generated_question(text: str) -> str | None:
    """First non-empty line, stripped of a 'Question:' prefix and wrapping quotes."""
    for line in text.strip().splitlines():
        line = _QUESTION_PREFIX.sub("", line).strip().strip('"“”').strip()
        if line:
            return line[:MAX_QUESTION_LENGTH]
    return None
