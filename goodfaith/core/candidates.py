"""Candidate Selection — pure ranking of prior answers worth checking for contradiction.

Invariants:
    - All functions are PURE: no IO, no async, no oracle calls
    - The current question is never its own candidate
    - Explicit links always survive the final cap (weight 1.0, most trusted)
    - Merge is by question id, first occurrence wins (signals are passed most-trusted first)
    - Result is sorted by weight descending, ties broken by signal trust

Design Decisions:
    - Embedding lookups live in the shell (services/candidate_generator.py); this module
      only receives neighbour ids and vectors, so every rule is testable without fakes
    - Tag candidates exclude explicit links before the top-3 cut so explicit links
      never consume a tag slot
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from goodfaith.core.domain_types import (
    MAX_CANDIDATES, MAX_TAG_CANDIDATES, CandidateSource,
)
from goodfaith.core.graph_model import Answer, MoralSession, Question

EXPLICIT_LINK_WEIGHT = 1.0
TAG_BASE_WEIGHT = 0.8
TAG_STEP_WEIGHT = 0.05
MIN_TAG_OVERLAP = 2
QUESTION_EMBEDDING_WEIGHT = 0.6
ANSWER_EMBEDDING_WEIGHT = 0.7
ANSWER_SIMILARITY_THRESHOLD = 0.75
MIN_ANSWER_LENGTH_FOR_SIMILARITY = 20
EMBEDDING_SEARCH_BELOW = 5
QUESTION_NEIGHBOURS = 10

_SOURCE_RANK = {source: rank for rank, source in enumerate(CandidateSource)}


@dataclass(frozen=True)
class AnsweredPair:
    """A previously answered question together with the user's answer."""
    question: Question
    answer: Answer

    @property
    def question_id(self) -> str:
        return self.question.id


@dataclass(frozen=True)
class Candidate:
    """A prior pair selected for contradiction evaluation."""
    pair: AnsweredPair
    weight: float
    source: CandidateSource
    overlap: int = 0

    @property
    def question_id(self) -> str:
        return self.pair.question_id


def session_pairs(
    session: MoralSession, questions: Mapping[str, Question],
) -> list[AnsweredPair]:
    """The session's answers joined to their questions, in answer order."""
    return [
        AnsweredPair(questions[a.question_id], a)
        for a in session.answers
        if a.question_id in questions
    ]


def prior_pairs(current: Question, pairs: Iterable[AnsweredPair]) -> list[AnsweredPair]:
    """Drop the current question from the prior set."""
    return [p for p in pairs if p.question_id != current.id]


# --- Rule 1: explicit links ---------------------------------------------------

def explicit_link_candidates(
    current: Question, priors: Sequence[AnsweredPair],
) -> list[Candidate]:
    """Every prior pair named in the current question's related ids."""
    related = set(current.related_question_ids)
    return [
        Candidate(p, EXPLICIT_LINK_WEIGHT, CandidateSource.EXPLICIT_LINK)
        for p in priors
        if p.question_id in related and p.question_id != current.id
    ]


# --- Rule 2: tag overlap ------------------------------------------------------

def tag_overlap_count(a: Question, b: Question) -> int:
    return len(set(a.tags) & set(b.tags))


def tag_weight(overlap: int) -> float:
    return TAG_BASE_WEIGHT + TAG_STEP_WEIGHT * overlap


def tag_overlap_candidates(
    current: Question,
    priors: Sequence[AnsweredPair],
    exclude: Iterable[str] = (),
    limit: int = MAX_TAG_CANDIDATES,
) -> list[Candidate]:
    """Pairs sharing >= 2 tags, top `limit` by overlap count."""
    excluded = set(exclude) | {current.id}
    scored = [
        (tag_overlap_count(current, p.question), p)
        for p in priors
        if p.question_id not in excluded
    ]
    scored = [(n, p) for n, p in scored if n >= MIN_TAG_OVERLAP]
    scored.sort(key=lambda item: item[0], reverse=True)
    return [
        Candidate(p, tag_weight(n), CandidateSource.TAG_OVERLAP, overlap=n)
        for n, p in scored[:limit]
    ]


# --- Rule 3: question embedding neighbours ------------------------------------

def needs_embedding_search(found: int) -> bool:
    return found < EMBEDDING_SEARCH_BELOW


def question_neighbour_candidates(
    current: Question,
    neighbour_ids: Sequence[str],
    priors: Sequence[AnsweredPair],
    exclude: Iterable[str] = (),
) -> list[Candidate]:
    """Answered neighbours from the nearest-neighbour index, in index order."""
    by_id = {p.question_id: p for p in priors}
    excluded = set(exclude) | {current.id}
    result: list[Candidate] = []
    for qid in neighbour_ids:
        if qid in excluded or qid not in by_id:
            continue
        excluded.add(qid)
        result.append(
            Candidate(by_id[qid], QUESTION_EMBEDDING_WEIGHT, CandidateSource.QUESTION_EMBEDDING),
        )
    return result


# --- Rule 4: answer-to-answer similarity ---------------------------------------

def answer_is_substantial(text: str) -> bool:
    return len(text) > MIN_ANSWER_LENGTH_FOR_SIMILARITY


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 when either vector has zero norm."""
    if len(a) != len(b):
        raise ValueError(f"Vectors must have the same dimensions ({len(a)} != {len(b)})")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def answer_similarity_candidates(
    answer_vector: Sequence[float],
    prior_vectors: Sequence[tuple[AnsweredPair, Sequence[float]]],
    threshold: float = ANSWER_SIMILARITY_THRESHOLD,
) -> list[Candidate]:
    """Prior answers semantically close to the current answer."""
    return [
        Candidate(pair, ANSWER_EMBEDDING_WEIGHT, CandidateSource.ANSWER_EMBEDDING)
        for pair, vector in prior_vectors
        if cosine_similarity(answer_vector, vector) > threshold
    ]


# --- Merge --------------------------------------------------------------------

def merge_candidates(
    *groups: Sequence[Candidate], cap: int = MAX_CANDIDATES,
) -> list[Candidate]:
    """De-duplicate by question id, rank by weight, cap (explicit links always kept)."""
    merged: dict[str, Candidate] = {}
    for group in groups:
        for candidate in group:
            merged.setdefault(candidate.question_id, candidate)

    ranked = sorted(merged.values(), key=_rank_key)
    explicit = [c for c in ranked if c.source == CandidateSource.EXPLICIT_LINK]
    others = [c for c in ranked if c.source != CandidateSource.EXPLICIT_LINK]
    kept = explicit + others[:max(0, cap - len(explicit))]
    return sorted(kept, key=_rank_key)


def _rank_key(candidate: Candidate) -> tuple[float, int]:
    return (-candidate.weight, _SOURCE_RANK[candidate.source])


def included_ids(*groups: Sequence[Candidate]) -> set[str]:
    return {c.question_id for group in groups for c in group}
