"""Framework Alignment — heuristic percentage distribution over moral frameworks.

Invariants:
    - All functions are PURE: no IO, no async
    - Every declared framework gets a non-negative integer entry
    - Percentages sum to exactly 100 whenever at least one framework is declared
    - A zero raw total yields equal shares, never an all-zero distribution
    - Later answers weigh more: weight = 1 + 1.5 · index / total

Design Decisions:
    - Largest-remainder rounding: independent rounding of each share can sum to 99 or 101
    - Keyword hits are counted per occurrence in the lowercased answer corpus, doubled
    - Oracle distributions are re-normalised onto the declared framework ids so a
      replaced distribution keeps the same shape as the heuristic one
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from goodfaith.core.candidates import AnsweredPair
from goodfaith.core.graph_model import Framework

RECENCY_SLOPE = 1.5
KEYWORD_HIT_WEIGHT = 2
MAX_KEY_PRINCIPLES = 5

# Keyed by framework id; unknown ids simply have no keywords.
FRAMEWORK_KEYWORDS: dict[str, tuple[str, ...]] = {
    "deontological": ("duty", "obligation", "categorical"),
    "utilitarian": ("happiness", "utility", "consequences"),
    "virtueEthics": ("character", "virtue", "flourishing"),
    "careEthics": ("care", "empathy", "relationship"),
    "contractarianism": ("agreement", "consent", "fairness"),
}


@dataclass(frozen=True)
class HeuristicAlignment:
    """Heuristic analysis result before any oracle refinement."""
    framework_alignment: dict[str, int]
    key_principles: list[str]
    raw_scores: dict[str, float]


def recency_weight(index: int, total: int) -> float:
    if total <= 0:
        return 1.0
    return 1 + RECENCY_SLOPE * (index / total)


def weighted_tag_counts(pairs: Sequence[AnsweredPair]) -> dict[str, float]:
    """Sum recency weights per tag of each answer's question, in answer order."""
    counts: dict[str, float] = {}
    total = len(pairs)
    for index, pair in enumerate(pairs):
        weight = recency_weight(index, total)
        for tag in pair.question.tags:
            counts[tag] = counts.get(tag, 0.0) + weight
    return counts


def tag_matches_principle(tag: str, principle: str) -> bool:
    t, p = tag.lower(), principle.lower()
    return t in p or p in t


def keyword_hits(framework_id: str, corpus: str) -> int:
    return sum(corpus.count(keyword) for keyword in FRAMEWORK_KEYWORDS.get(framework_id, ()))


def raw_framework_scores(
    frameworks: Sequence[Framework], pairs: Sequence[AnsweredPair],
) -> dict[str, float]:
    tag_counts = weighted_tag_counts(pairs)
    corpus = " ".join(p.answer.text for p in pairs).lower()
    scores: dict[str, float] = {}
    for framework in frameworks:
        score = 0.0
        for principle in framework.principles:
            for tag, weight in tag_counts.items():
                if tag_matches_principle(tag, principle):
                    score += weight
        score += KEYWORD_HIT_WEIGHT * keyword_hits(framework.id, corpus)
        scores[framework.id] = score
    return scores


def normalize_percentages(raw: Mapping[str, float]) -> dict[str, int]:
    """Integer percentages summing to 100 (largest remainder); equal shares when empty."""
    if not raw:
        return {}
    keys = list(raw)
    values = [max(0.0, float(raw[k])) for k in keys]
    total = sum(values)
    if total <= 0:
        values = [1.0] * len(keys)
        total = float(len(keys))

    exact = [v * 100 / total for v in values]
    floors = [math.floor(x) for x in exact]
    shortfall = 100 - sum(floors)
    by_remainder = sorted(
        range(len(keys)), key=lambda i: (exact[i] - floors[i], -i), reverse=True,
    )
    for i in by_remainder[:shortfall]:
        floors[i] += 1
    return dict(zip(keys, floors))


def key_principles(pairs: Sequence[AnsweredPair], limit: int = MAX_KEY_PRINCIPLES) -> list[str]:
    """Most heavily weighted tags, ties keep first-seen order."""
    counts = weighted_tag_counts(pairs)
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [tag for tag, _ in ordered[:limit]]


def heuristic_alignment(
    frameworks: Sequence[Framework], pairs: Sequence[AnsweredPair],
) -> HeuristicAlignment:
    raw = raw_framework_scores(frameworks, pairs)
    return HeuristicAlignment(
        framework_alignment=normalize_percentages(raw),
        key_principles=key_principles(pairs),
        raw_scores=raw,
    )


def conform_oracle_alignment(
    frameworks: Sequence[Framework], oracle_alignment: Mapping[str, float],
) -> dict[str, int] | None:
    """Project an oracle distribution onto the declared ids; None if unusable.

    Keys are matched case-insensitively against framework id or name; ids the
    oracle omitted get 0. A distribution with no usable positive mass is rejected.
    """
    lookup: dict[str, str] = {}
    for framework in frameworks:
        lookup[framework.id.lower()] = framework.id
        lookup[framework.name.lower()] = framework.id

    projected = {framework.id: 0.0 for framework in frameworks}
    for key, value in oracle_alignment.items():
        fid = lookup.get(str(key).strip().lower())
        if fid is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            return None
        projected[fid] += float(value)

    if sum(projected.values()) <= 0:
        return None
    return normalize_percentages(projected)
