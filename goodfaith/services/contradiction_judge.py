"""Contradiction Judge — oracle verdicts per candidate pair, recorded idempotently on the session.

Invariants:
    - Oracle runs at low temperature (<= 0.3, enforced by Settings)
    - Pairs already linked by a contradiction (resolved or not) are never re-judged
    - An oracle failure skips that pair only; the batch continues
    - A new Contradiction is stored only when the verdict is positive
    - The stored explanation is the oracle's text verbatim

Design Decisions:
    - Verdict extraction is pure (core/contradiction_rules.py); this module only
      orchestrates IO and session mutation
    - The prior pair is "Question 1" in the prompt and first in question_ids, matching
      the order in which the user answered them
"""

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from goodfaith.core.candidates import AnsweredPair, Candidate
from goodfaith.core.contradiction_rules import JudgeVerdict, judge_analysis
from goodfaith.core.errors import ErrorContext, OracleUnavailableError
from goodfaith.core.graph_model import (
    Contradiction, MoralSession, utc_now, validate_entity,
)
from goodfaith.core.repository_protocols import InferenceOracle
from goodfaith.core.session_mutations import (
    add_contradiction, find_contradiction_for_pair,
)
from goodfaith.services.oracle_gateway import generate_with_timeout
from goodfaith.services.prompts import build_judge_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedPair:
    """A candidate the judge could not evaluate."""
    question_id: str
    reason: str


@dataclass
class JudgeBatchResult:
    """Outcome of judging every candidate for one new answer."""
    detected: list[Contradiction] = field(default_factory=list)
    existing: list[Contradiction] = field(default_factory=list)
    cleared: list[str] = field(default_factory=list)
    skipped: list[SkippedPair] = field(default_factory=list)


class ContradictionJudge:
    """Asks the InferenceOracle about candidate pairs and records contradictions."""

    def __init__(
        self,
        oracle: InferenceOracle,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 500,
        timeout_seconds: float = 60.0,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.oracle = oracle
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.id_factory = id_factory

    async def judge(
        self, current: AnsweredPair, prior: AnsweredPair, context: ErrorContext | None = None,
    ) -> JudgeVerdict:
        """Single-pair verdict. Raises OracleUnavailableError on oracle failure."""
        analysis = await generate_with_timeout(
            self.oracle,
            model=self.model,
            prompt=build_judge_prompt(current, prior),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout_seconds=self.timeout_seconds,
            context=context,
        )
        return judge_analysis(analysis)

    async def detect(
        self,
        session: MoralSession,
        current: AnsweredPair,
        candidates: Sequence[Candidate],
        now: datetime | None = None,
    ) -> JudgeBatchResult:
        result = JudgeBatchResult()
        for candidate in candidates:
            prior = candidate.pair
            linked = find_contradiction_for_pair(
                session, prior.question_id, current.question_id,
            )
            if linked is not None:
                result.existing.append(linked)
                continue

            ctx = ErrorContext(user_id=session.user_id, question_id=current.question_id)
            try:
                verdict = await self.judge(current, prior, ctx)
            except OracleUnavailableError as e:
                logger.warning(
                    f"Judge skipped pair ({e.reason}): {e.message}",
                    extra={"user_id": session.user_id, "question_id": prior.question_id,
                           "error_code": e.code},
                )
                result.skipped.append(SkippedPair(prior.question_id, e.reason))
                continue

            if not verdict.is_contradiction:
                result.cleared.append(prior.question_id)
                continue

            contradiction = validate_entity(Contradiction, {
                "id": self.id_factory(),
                "question_ids": (prior.question_id, current.question_id),
                "answers": (prior.answer.text, current.answer.text),
                "explanation": verdict.explanation,
                "confidence": verdict.confidence,
                "method": verdict.method,
                "detected_at": now or utc_now(),
            })
            if add_contradiction(session, contradiction):
                result.detected.append(contradiction)
                logger.info(
                    "Contradiction detected",
                    extra={"user_id": session.user_id,
                           "contradiction_id": contradiction.id,
                           "question_id": current.question_id},
                )
        return result
