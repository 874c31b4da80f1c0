"""Candidate Generator — gathers prior answers worth judging against a new answer.

Invariants:
    - Signals run most-trusted first: explicit links, tag overlap, question
      embedding neighbours, answer-to-answer similarity
    - Question-embedding search runs only when fewer than 5 candidates were found
    - Each embedding step fails on its own: a failed step or an unembeddable prior
      answer drops only its own candidates; never raises
    - Ranking and capping are delegated to core/candidates.py (pure)

Design Decisions:
    - Prior-answer vectors are cached by answer id (LRU, bounded by max_cached_vectors):
      a superseded answer gets a new id, so a cached vector never describes stale text
    - embedder/index are optional: a deployment without embeddings still detects
      contradictions through links and tags
"""

import logging
from collections import OrderedDict
from collections.abc import Sequence

from goodfaith.core.candidates import (
    QUESTION_NEIGHBOURS, AnsweredPair, Candidate,
    answer_is_substantial, answer_similarity_candidates,
    explicit_link_candidates, included_ids, merge_candidates,
    needs_embedding_search, prior_pairs, question_neighbour_candidates,
    tag_overlap_candidates,
)
from goodfaith.core.domain_types import MAX_CANDIDATES, MAX_TAG_CANDIDATES
from goodfaith.core.errors import ErrorContext, OracleUnavailableError
from goodfaith.core.graph_model import Question
from goodfaith.core.repository_protocols import EmbeddingOracle, VectorIndex
from goodfaith.services.oracle_gateway import embed_with_timeout

logger = logging.getLogger(__name__)


class CandidateGenerator:
    """Ranks prior (question, answer) pairs for contradiction checks."""

    def __init__(
        self,
        embedder: EmbeddingOracle | None = None,
        index: VectorIndex | None = None,
        max_candidates: int = MAX_CANDIDATES,
        max_tag_candidates: int = MAX_TAG_CANDIDATES,
        timeout_seconds: float = 60.0,
        max_cached_vectors: int = 2048,
    ):
        self.embedder = embedder
        self.index = index
        self.max_candidates = max_candidates
        self.max_tag_candidates = max_tag_candidates
        self.timeout_seconds = timeout_seconds
        self.max_cached_vectors = max_cached_vectors
        self._answer_vectors: OrderedDict[str, list[float]] = OrderedDict()

    async def generate(
        self,
        current: Question,
        answer_text: str,
        pairs: Sequence[AnsweredPair],
        user_id: str | None = None,
    ) -> list[Candidate]:
        priors = prior_pairs(current, pairs)
        if not priors:
            return []

        explicit = explicit_link_candidates(current, priors)
        tagged = tag_overlap_candidates(
            current, priors,
            exclude=included_ids(explicit),
            limit=self.max_tag_candidates,
        )
        groups: list[list[Candidate]] = [explicit, tagged]

        embedder = self.embedder
        if embedder is not None:
            ctx = ErrorContext(user_id=user_id, question_id=current.id)
            groups.append(await self._question_neighbours(
                embedder, current, priors, groups, ctx,
            ))
            groups.append(await self._similar_answers(
                embedder, answer_text, priors, groups, ctx,
            ))

        ranked = merge_candidates(*groups, cap=self.max_candidates)
        logger.debug(
            "Candidates generated",
            extra={"user_id": user_id, "question_id": current.id,
                   "candidates": [c.question_id for c in ranked]},
        )
        return ranked

    async def _question_neighbours(
        self,
        embedder: EmbeddingOracle,
        current: Question,
        priors: Sequence[AnsweredPair],
        groups: list[list[Candidate]],
        ctx: ErrorContext,
    ) -> list[Candidate]:
        found = sum(len(g) for g in groups)
        if self.index is None or not len(self.index) or not needs_embedding_search(found):
            return []
        try:
            vector = await self._embed(embedder, current.text, ctx)
            neighbours = [key for key, _ in self.index.nearest_neighbors(
                vector, QUESTION_NEIGHBOURS,
            )]
        except (OracleUnavailableError, ValueError) as e:
            _log_skipped("Question neighbour search", e, ctx)
            return []
        return question_neighbour_candidates(
            current, neighbours, priors, exclude=included_ids(*groups),
        )

    async def _similar_answers(
        self,
        embedder: EmbeddingOracle,
        answer_text: str,
        priors: Sequence[AnsweredPair],
        groups: list[list[Candidate]],
        ctx: ErrorContext,
    ) -> list[Candidate]:
        if not answer_is_substantial(answer_text):
            return []
        seen = included_ids(*groups)
        remaining = [p for p in priors if p.question_id not in seen]
        if not remaining:
            return []
        try:
            answer_vector = await self._embed(embedder, answer_text, ctx)
        except OracleUnavailableError as e:
            _log_skipped("Answer similarity", e, ctx)
            return []

        prior_vectors = []
        for pair in remaining:
            try:
                prior_vectors.append((pair, await self._answer_vector(embedder, pair, ctx)))
            except OracleUnavailableError as e:
                _log_skipped(f"Prior answer {pair.answer.id}", e, ctx)
        try:
            return answer_similarity_candidates(answer_vector, prior_vectors)
        except ValueError as e:
            _log_skipped("Answer similarity", e, ctx)
            return []

    async def _answer_vector(
        self, embedder: EmbeddingOracle, pair: AnsweredPair, ctx: ErrorContext,
    ) -> list[float]:
        cached = self._answer_vectors.get(pair.answer.id)
        if cached is not None:
            self._answer_vectors.move_to_end(pair.answer.id)
            return cached
        vector = await self._embed(embedder, pair.answer.text, ctx)
        self._answer_vectors[pair.answer.id] = vector
        while len(self._answer_vectors) > self.max_cached_vectors:
            self._answer_vectors.popitem(last=False)
        return vector

    async def _embed(
        self, embedder: EmbeddingOracle, text: str, ctx: ErrorContext,
    ) -> list[float]:
        return await embed_with_timeout(
            embedder, text, timeout_seconds=self.timeout_seconds, context=ctx,
        )


def _log_skipped(step: str, error: Exception, ctx: ErrorContext) -> None:
    message = error.message if isinstance(error, OracleUnavailableError) else str(error)
    logger.warning(
        f"{step} skipped: {message}",
        extra={"user_id": ctx.user_id, "question_id": ctx.question_id},
    )
