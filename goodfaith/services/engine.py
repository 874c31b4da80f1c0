"""Moral Reasoning Engine — the facade hosts call; composes every service for one user session.

Invariants:
    - Every call that saves the session runs under the per-user lock (ConcurrencyError
      on overlap); read-only calls never take it
    - The session snapshot is saved once, after all graph writes of the call succeed
    - Answer and contradiction changes always clear the cached analysis (via
      core/session_mutations.py)
    - Questions generated for another user are reported as not found

Design Decisions:
    - Constructor injection of every collaborator: tests assemble the engine from
      deterministic fakes, build_engine() (goodfaith/main.py) from real clients
    - An unchanged re-submission still runs detection so pairs skipped by an
      earlier oracle failure get a second chance; no new Answer node is written
"""

import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from goodfaith.core.candidates import AnsweredPair, session_pairs
from goodfaith.core.errors import ErrorContext, ResourceNotFoundError
from goodfaith.core.graph_model import (
    Answer, Contradiction, MoralSession, Question, SessionAnalysis, utc_now,
)
from goodfaith.core.session_mutations import record_answer
from goodfaith.core.session_mutations import resolve_contradiction as apply_resolution
from goodfaith.core.session_stats import compute_session_stats
from goodfaith.infrastructure.session_locks import SessionLockRegistry
from goodfaith.services.answer_graph import AnswerGraph
from goodfaith.services.candidate_generator import CandidateGenerator
from goodfaith.services.contradiction_judge import ContradictionJudge, SkippedPair
from goodfaith.services.feedback import Feedback, FeedbackWriter
from goodfaith.services.knowledge_base import KnowledgeBase
from goodfaith.services.question_source import QuestionSource
from goodfaith.services.session_analysis import SessionAnalyzer
from goodfaith.services.session_repository import SessionRepository
from goodfaith.services.stage_progression import StageEvaluation, StageProgression

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """What happened when an answer was submitted."""
    answer: Answer
    changed: bool
    candidates: list[str] = field(default_factory=list)
    new_contradictions: list[Contradiction] = field(default_factory=list)
    existing_contradictions: list[Contradiction] = field(default_factory=list)
    skipped: list[SkippedPair] = field(default_factory=list)


@dataclass
class ResolutionResult:
    contradiction: Contradiction
    overwritten_answer: Answer | None


class MoralReasoningEngine:
    """One entry point per user-facing operation."""

    def __init__(
        self,
        knowledge: KnowledgeBase,
        sessions: SessionRepository,
        answer_graph: AnswerGraph,
        candidates: CandidateGenerator,
        judge: ContradictionJudge,
        analyzer: SessionAnalyzer,
        progression: StageProgression,
        question_source: QuestionSource,
        feedback: FeedbackWriter,
        locks: SessionLockRegistry | None = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], datetime] = utc_now,
        closers: Sequence[Callable[[], Awaitable[None]]] = (),
    ):
        self.knowledge = knowledge
        self.sessions = sessions
        self.answer_graph = answer_graph
        self.candidates = candidates
        self.judge = judge
        self.analyzer = analyzer
        self.progression = progression
        self.question_source = question_source
        self.feedback = feedback
        self.locks = locks or SessionLockRegistry()
        self.id_factory = id_factory
        self.clock = clock
        self._closers = list(closers)

    # ─── Questions & answers ────────────────────────────────────────

    async def next_question(self, user_id: str) -> Question:
        async with self.locks.hold(user_id, "next_question"):
            session = await self.sessions.get_or_create(user_id)
            return await self.question_source.next_question(session)

    async def submit_answer(self, user_id: str, question_id: str, text: str) -> SubmissionResult:
        async with self.locks.hold(user_id, "submit_answer"):
            question = self._visible_question(user_id, question_id)
            session = await self.sessions.get_or_create(user_id)
            now = self.clock()
            answer, changed = record_answer(
                session, self.id_factory(), question.id, text, now,
            )
            if changed:
                await self.answer_graph.add_answer(user_id, answer)

            current = AnsweredPair(question, answer)
            ranked = await self.candidates.generate(
                question, answer.text,
                session_pairs(session, self.knowledge.questions),
                user_id=user_id,
            )
            batch = await self.judge.detect(session, current, ranked, now=now)
            for contradiction in batch.detected:
                prior = session.answer_for(contradiction.question_ids[0])
                if prior is not None:
                    await self.answer_graph.add_contradiction(
                        user_id, contradiction, answer.id, prior.id,
                    )

            await self.sessions.save(session)
            logger.info(
                "Answer recorded",
                extra={"user_id": user_id, "question_id": question.id,
                       "candidates": len(ranked)},
            )
            return SubmissionResult(
                answer=answer,
                changed=changed,
                candidates=[c.question_id for c in ranked],
                new_contradictions=batch.detected,
                existing_contradictions=batch.existing,
                skipped=batch.skipped,
            )

    async def resolve_contradiction(
        self,
        user_id: str,
        contradiction_id: str,
        explanation: str,
        overwritten_question_id: str,
        new_answer_text: str | None = None,
    ) -> ResolutionResult:
        async with self.locks.hold(user_id, "resolve_contradiction"):
            session = await self.sessions.get(user_id)
            resolved, overwritten = apply_resolution(
                session,
                contradiction_id,
                explanation,
                overwritten_question_id,
                new_answer_text,
                self.id_factory(),
                self.clock(),
            )
            if overwritten is not None:
                await self.answer_graph.add_answer(
                    user_id, overwritten, reason=explanation,
                )
            await self.sessions.save(session)
            logger.info(
                "Contradiction resolved",
                extra={"user_id": user_id, "contradiction_id": contradiction_id,
                       "question_id": overwritten_question_id},
            )
            return ResolutionResult(resolved, overwritten)

    # ─── Analysis & feedback ────────────────────────────────────────

    async def analyze(self, user_id: str, refresh: bool = False) -> SessionAnalysis:
        async with self.locks.hold(user_id, "analyze"):
            session = await self.sessions.get(user_id)
            return await self._cached_analysis(session, refresh)

    async def generate_feedback(self, user_id: str) -> Feedback:
        async with self.locks.hold(user_id, "generate_feedback"):
            session = await self.sessions.get(user_id)
            analysis = await self._cached_analysis(session, refresh=False)
            return await self.feedback.write(
                session, analysis, self.knowledge.frameworks, self.knowledge.stages,
            )

    async def _cached_analysis(self, session: MoralSession, refresh: bool) -> SessionAnalysis:
        if session.analysis is not None and not refresh:
            return session.analysis
        session.analysis = await self.analyzer.analyze(
            session,
            session_pairs(session, self.knowledge.questions),
            self.knowledge.frameworks,
        )
        await self.sessions.save(session)
        return session.analysis

    # ─── Stages ─────────────────────────────────────────────────────

    async def evaluate_stage(self, user_id: str) -> StageEvaluation:
        session = await self.sessions.get(user_id)
        return await self.progression.evaluate(
            session, self.knowledge.stages, self.knowledge.questions,
        )

    async def advance_stage(self, user_id: str) -> StageEvaluation:
        async with self.locks.hold(user_id, "advance_stage"):
            session = await self.sessions.get(user_id)
            evaluation = await self.progression.advance(
                session, self.knowledge.stages, self.knowledge.questions,
            )
            await self.sessions.save(session)
            return evaluation

    # ─── Reads ──────────────────────────────────────────────────────

    async def statistics(self, user_id: str) -> dict:
        session = await self.sessions.get(user_id)
        return compute_session_stats(
            session, self.knowledge.stages, self.knowledge.questions,
        )

    async def get_session(self, user_id: str) -> MoralSession:
        return await self.sessions.get(user_id)

    async def close(self) -> None:
        for close in self._closers:
            await close()

    def _visible_question(self, user_id: str, question_id: str) -> Question:
        question = self.knowledge.question(question_id)
        if question is None or question.generated_for_user not in (None, user_id):
            raise ResourceNotFoundError(
                "Question", question_id,
                context=ErrorContext(user_id=user_id, question_id=question_id),
            )
        return question
