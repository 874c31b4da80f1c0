"""Question Source — picks the next question for a session, generating one when a stage runs dry.

Invariants:
    - Seed questions the user has not answered are served first, in random order
    - A terminal session keeps drawing from the last stage
    - Generated questions belong to the current stage, carry the tags
      ["generated", <stage slug>] and are private to the user they were made for
    - PRECEDES edges link the most recent answers to the generated question
    - Generation failure (oracle error or empty output) raises OracleUnavailableError

Design Decisions:
    - random.Random is injectable so tests can pin the selection
"""

import logging
import random
import uuid
from collections.abc import Callable, Mapping

from goodfaith.core.candidates import session_pairs
from goodfaith.core.domain_types import MoralStage, QuestionOrigin
from goodfaith.core.errors import ErrorContext, OracleUnavailableError, ResourceNotFoundError
from goodfaith.core.graph_model import MoralSession, Question, Stage, validate_entity
from goodfaith.core.oracle_parsing import parse_generated_question
from goodfaith.core.repository_protocols import InferenceOracle
from goodfaith.services.knowledge_base import KnowledgeBase
from goodfaith.services.oracle_gateway import generate_with_timeout
from goodfaith.services.prompts import build_question_prompt

logger = logging.getLogger(__name__)


def stage_slug(number: int) -> str:
    """'universal-principles' for stage 6; 'stage-N' outside Kohlberg's six."""
    try:
        return MoralStage(number).name.lower().replace("_", "-")
    except ValueError:
        return f"stage-{number}"


def serving_stage(session: MoralSession, stage_count: int) -> int:
    if session.terminal:
        return stage_count
    return min(session.current_stage, stage_count)


class QuestionSource:
    """Serves unanswered stage questions and synthesises new ones on demand."""

    def __init__(
        self,
        knowledge: KnowledgeBase,
        oracle: InferenceOracle | None,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 200,
        timeout_seconds: float = 60.0,
        context_answers: int = 5,
        rng: random.Random | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.knowledge = knowledge
        self.oracle = oracle
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.context_answers = context_answers
        self.rng = rng or random.Random()
        self.id_factory = id_factory or (lambda: f"gen-{uuid.uuid4()}")

    async def next_question(self, session: MoralSession) -> Question:
        stage_number = serving_stage(session, self.knowledge.stage_count)
        stage = self.knowledge.stage(stage_number)
        if stage is None:
            raise ResourceNotFoundError(
                "Stage", str(stage_number), context=ErrorContext(user_id=session.user_id),
            )

        answered = set(session.answered_question_ids)
        unanswered = [
            q for q in self.knowledge.questions_for_stage(stage.number, session.user_id)
            if q.id not in answered
        ]
        if unanswered:
            return self.rng.choice(unanswered)
        return await self.generate(session, stage)

    async def generate(self, session: MoralSession, stage: Stage) -> Question:
        ctx = ErrorContext(user_id=session.user_id)
        if self.oracle is None:
            raise OracleUnavailableError(
                "no inference oracle configured", "inference", "not_configured", context=ctx,
            )
        recent = self._recent_pairs(session, self.knowledge.questions)
        text = await generate_with_timeout(
            self.oracle,
            model=self.model,
            prompt=build_question_prompt(stage, recent),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout_seconds=self.timeout_seconds,
            context=ctx,
        )
        question_text = parse_generated_question(text)
        if question_text is None:
            raise OracleUnavailableError(
                "generated question was empty", "inference", "parse_error", context=ctx,
            )

        question = validate_entity(Question, {
            "id": self.id_factory(),
            "text": question_text,
            "stage": stage.number,
            "tags": ["generated", stage_slug(stage.number)],
            "origin": QuestionOrigin.GENERATED,
            "generated_for_user": session.user_id,
        })
        await self.knowledge.add_generated_question(
            question, [p.answer.id for p in recent],
        )
        logger.info(
            "Question generated",
            extra={"user_id": session.user_id, "question_id": question.id,
                   "stage": stage.number},
        )
        return question

    def _recent_pairs(self, session: MoralSession, questions: Mapping[str, Question]):
        pairs = session_pairs(session, questions)
        if self.context_answers <= 0:
            return []
        return pairs[-self.context_answers:]
