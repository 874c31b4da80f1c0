"""Stage Progression — on-demand transition guard with an advisory oracle check.

Invariants:
    - Structural checks (answer threshold, unresolved contradictions) fail closed
    - The oracle check runs only for stage > 1, only after structural checks pass
    - A negative oracle verdict blocks; an oracle failure or unclear verdict does not
    - advance() mutates the session only when evaluate() allows it

Design Decisions:
    - evaluate() returns a StageEvaluation instead of raising: hosts show the reason
      either way; advance() raises StageAdvanceBlockedError so callers cannot
      ignore a refusal
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from goodfaith.core.candidates import session_pairs
from goodfaith.core.enforce_stages import (
    answered_in_stage, apply_advance, stage_by_number, validate_structural_gate,
)
from goodfaith.core.errors import ErrorContext, OracleUnavailableError, StageAdvanceBlockedError
from goodfaith.core.graph_model import MoralSession, Question, Stage
from goodfaith.core.oracle_parsing import parse_stage_verdict
from goodfaith.core.repository_protocols import InferenceOracle
from goodfaith.services.oracle_gateway import generate_with_timeout
from goodfaith.services.prompts import build_stage_check_prompt

logger = logging.getLogger(__name__)

ADVISORY_PASSED = "passed"
ADVISORY_FAILED = "failed"
ADVISORY_SKIPPED = "skipped"
ADVISORY_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class StageEvaluation:
    """Outcome of evaluating the transition guard for the current stage."""
    can_advance: bool
    reason: str
    current_stage: int
    error_code: str | None = None
    answered: int = 0
    required: int = 0
    advisory: str = ADVISORY_SKIPPED
    blocking_contradictions: list[str] = field(default_factory=list)


def _strip_prefix(message: str) -> str:
    return message.removeprefix("ERROR: ")


class StageProgression:
    """Evaluates and applies stage advancement for one session at a time."""

    def __init__(
        self,
        oracle: InferenceOracle | None,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 300,
        timeout_seconds: float = 60.0,
    ):
        self.oracle = oracle
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def evaluate(
        self,
        session: MoralSession,
        stages: Sequence[Stage],
        questions: Mapping[str, Question],
    ) -> StageEvaluation:
        stage = stage_by_number(stages, session.current_stage)
        answered_ids = (
            answered_in_stage(session, questions, stage.number) if stage else []
        )
        required = stage.required_answers if stage else 0

        error = validate_structural_gate(session, stages, questions)
        if error:
            return StageEvaluation(
                can_advance=False,
                reason=_strip_prefix(error["message"]),
                current_stage=session.current_stage,
                error_code=error["error_code"],
                answered=len(answered_ids),
                required=required,
                blocking_contradictions=list(error.get("contradiction_ids", [])),
            )
        if stage is None:
            raise ValueError(f"Stage {session.current_stage} passed the gate but is not defined")

        advisory = ADVISORY_SKIPPED
        oracle = self.oracle
        if stage.number > 1 and oracle is not None:
            advisory = await self._advisory_check(
                oracle, session, stage, answered_ids, questions,
            )
            if advisory == ADVISORY_FAILED:
                return StageEvaluation(
                    can_advance=False,
                    reason=(
                        f"Your answers do not yet show the reasoning of stage "
                        f"{stage.number} ({stage.name})."
                    ),
                    current_stage=session.current_stage,
                    error_code="STAGE_REASONING_NOT_DEMONSTRATED",
                    answered=len(answered_ids),
                    required=required,
                    advisory=advisory,
                )

        is_last = stage.number >= max(s.number for s in stages)
        reason = (
            "Ready to complete the final stage" if is_last
            else f"Ready to advance to stage {stage.number + 1}"
        )
        return StageEvaluation(
            can_advance=True,
            reason=reason,
            current_stage=session.current_stage,
            answered=len(answered_ids),
            required=required,
            advisory=advisory,
        )

    async def advance(
        self,
        session: MoralSession,
        stages: Sequence[Stage],
        questions: Mapping[str, Question],
    ) -> StageEvaluation:
        """Advance when allowed; raises StageAdvanceBlockedError otherwise."""
        evaluation = await self.evaluate(session, stages, questions)
        if not evaluation.can_advance:
            raise StageAdvanceBlockedError(
                evaluation.reason,
                evaluation.error_code or "STAGE_BLOCKED",
                context=ErrorContext(user_id=session.user_id),
            )
        apply_advance(session, max(s.number for s in stages))
        logger.info(
            "Stage completed",
            extra={"user_id": session.user_id, "stage": evaluation.current_stage},
        )
        return evaluation

    async def _advisory_check(
        self,
        oracle: InferenceOracle,
        session: MoralSession,
        stage: Stage,
        answered_ids: Sequence[str],
        questions: Mapping[str, Question],
    ) -> str:
        wanted = set(answered_ids)
        pairs = [p for p in session_pairs(session, questions) if p.question_id in wanted]
        try:
            text = await generate_with_timeout(
                oracle,
                model=self.model,
                prompt=build_stage_check_prompt(stage, pairs),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout_seconds=self.timeout_seconds,
                context=ErrorContext(user_id=session.user_id),
            )
        except OracleUnavailableError as e:
            logger.warning(
                f"Stage advisory check unavailable ({e.reason}), not blocking",
                extra={"user_id": session.user_id, "stage": stage.number,
                       "error_code": e.code},
            )
            return ADVISORY_UNAVAILABLE

        verdict = parse_stage_verdict(text)
        if verdict is None:
            logger.warning(
                "Stage advisory verdict unclear, not blocking",
                extra={"user_id": session.user_id, "stage": stage.number},
            )
            return ADVISORY_UNAVAILABLE
        return ADVISORY_PASSED if verdict else ADVISORY_FAILED
