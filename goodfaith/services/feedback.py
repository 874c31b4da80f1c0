"""Feedback — short supportive narrative about a session's moral framework.

Invariants:
    - Uses the cached analysis when present; otherwise the caller supplies a fresh one
    - The top framework is the highest percentage, ties broken by framework order
    - Oracle failure or empty output returns FALLBACK_FEEDBACK, never raises
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from goodfaith.core.errors import ErrorContext, OracleUnavailableError
from goodfaith.core.graph_model import Framework, MoralSession, SessionAnalysis, Stage
from goodfaith.core.repository_protocols import InferenceOracle
from goodfaith.services.oracle_gateway import generate_with_timeout
from goodfaith.services.prompts import build_feedback_prompt

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = (
    "Unable to generate personalized feedback at this time. "
    "Your results have been saved and you can check back later."
)


@dataclass(frozen=True)
class Feedback:
    text: str
    degraded: bool
    top_framework: str | None
    highest_stage: int


def top_framework(
    analysis: SessionAnalysis, frameworks: Sequence[Framework],
) -> tuple[Framework | None, int]:
    best: Framework | None = None
    best_pct = -1
    for framework in frameworks:
        pct = analysis.framework_alignment.get(framework.id, 0)
        if pct > best_pct:
            best, best_pct = framework, pct
    return best, max(best_pct, 0)


def highest_stage(session: MoralSession) -> int:
    return max([*session.completed_stages, session.current_stage])


class FeedbackWriter:

    def __init__(
        self,
        oracle: InferenceOracle | None,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 600,
        timeout_seconds: float = 60.0,
    ):
        self.oracle = oracle
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def write(
        self,
        session: MoralSession,
        analysis: SessionAnalysis,
        frameworks: Sequence[Framework],
        stages: Sequence[Stage],
    ) -> Feedback:
        framework, pct = top_framework(analysis, frameworks)
        reached = highest_stage(session)
        stage = next((s for s in stages if s.number == reached), None)

        def fallback() -> Feedback:
            return Feedback(
                FALLBACK_FEEDBACK, True, framework.id if framework else None, reached,
            )

        if self.oracle is None or framework is None:
            return fallback()

        prompt = build_feedback_prompt(
            framework_name=framework.name,
            framework_pct=pct,
            key_principles=analysis.key_principles,
            score=analysis.consistency_score,
            stage_number=reached,
            stage_name=stage.name if stage else f"Stage {reached}",
            total_contradictions=len(session.contradictions),
            resolved_contradictions=session.resolved_count,
        )
        try:
            text = await generate_with_timeout(
                self.oracle,
                model=self.model,
                prompt=prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout_seconds=self.timeout_seconds,
                context=ErrorContext(user_id=session.user_id),
            )
        except OracleUnavailableError as e:
            logger.warning(
                f"Feedback generation failed ({e.reason}), returning fallback",
                extra={"user_id": session.user_id, "error_code": e.code},
            )
            return fallback()

        text = text.strip()
        if not text:
            logger.warning(
                "Feedback generation returned empty text, returning fallback",
                extra={"user_id": session.user_id},
            )
            return fallback()
        return Feedback(text, False, framework.id, reached)
