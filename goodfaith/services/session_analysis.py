"""Session Analysis — consistency score and framework alignment, oracle-enhanced when possible.

Invariants:
    - The heuristic analysis is always computed first and is always a valid result
    - The oracle is consulted only with >= 3 answers
    - Oracle score is blended with the heuristic (half-up mean); oracle alignment
      replaces the heuristic distribution wholesale
    - Any oracle failure, timeout, or unparseable/out-of-range field falls back to the
      heuristic for that field and marks the result degraded — never raises

Design Decisions:
    - One oracle call yields both the distribution and the score: the analysis
      prompt asks for both, so a partial parse can still improve one of them
    - source reports which path produced the result: heuristic, oracle
      (distribution only), blended (score blended)
"""

import logging
from collections.abc import Sequence

from goodfaith.core.candidates import AnsweredPair
from goodfaith.core.consistency import blend_scores, heuristic_score
from goodfaith.core.domain_types import MIN_ANSWERS_FOR_ORACLE_ANALYSIS, AnalysisSource
from goodfaith.core.errors import ErrorContext, OracleUnavailableError
from goodfaith.core.framework_alignment import conform_oracle_alignment, heuristic_alignment
from goodfaith.core.graph_model import Framework, MoralSession, SessionAnalysis, utc_now
from goodfaith.core.oracle_parsing import OracleFrameworkAnalysis, parse_framework_analysis
from goodfaith.core.repository_protocols import InferenceOracle
from goodfaith.services.oracle_gateway import generate_with_timeout
from goodfaith.services.prompts import build_analysis_prompt

logger = logging.getLogger(__name__)


class SessionAnalyzer:
    """Computes SessionAnalysis for a session's answered pairs."""

    def __init__(
        self,
        oracle: InferenceOracle | None,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout_seconds: float = 60.0,
    ):
        self.oracle = oracle
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def analyze(
        self,
        session: MoralSession,
        pairs: Sequence[AnsweredPair],
        frameworks: Sequence[Framework],
    ) -> SessionAnalysis:
        heuristic = heuristic_alignment(frameworks, pairs)
        base_score = heuristic_score(session.unresolved_count, session.resolved_count)
        result = SessionAnalysis(
            framework_alignment=heuristic.framework_alignment,
            key_principles=heuristic.key_principles,
            consistency_score=base_score,
            source=AnalysisSource.HEURISTIC,
            degraded=False,
            analyzed_at=utc_now(),
        )
        oracle = self.oracle
        if oracle is None or len(pairs) < MIN_ANSWERS_FOR_ORACLE_ANALYSIS:
            return result

        parsed = await self._oracle_analysis(oracle, session, pairs, frameworks)
        if parsed is None:
            result.degraded = True
            return result

        alignment = None
        if parsed.framework_alignment is not None:
            alignment = conform_oracle_alignment(frameworks, parsed.framework_alignment)
        if alignment is not None:
            result.framework_alignment = alignment
            result.key_principles = parsed.key_principles or heuristic.key_principles
            result.source = AnalysisSource.ORACLE
        if parsed.consistency_score is not None:
            result.consistency_score = blend_scores(base_score, parsed.consistency_score)
            result.source = AnalysisSource.BLENDED
        result.meta_principles = parsed.meta_principles
        result.subtle_patterns = parsed.subtle_patterns
        result.degraded = alignment is None or parsed.consistency_score is None

        if result.degraded:
            logger.warning(
                "Oracle analysis partially unusable, heuristic fallback applied",
                extra={"user_id": session.user_id},
            )
        return result

    async def _oracle_analysis(
        self,
        oracle: InferenceOracle,
        session: MoralSession,
        pairs: Sequence[AnsweredPair],
        frameworks: Sequence[Framework],
    ) -> OracleFrameworkAnalysis | None:
        prompt = build_analysis_prompt(
            pairs, frameworks,
            total_contradictions=len(session.contradictions),
            resolved_contradictions=session.resolved_count,
        )
        try:
            text = await generate_with_timeout(
                oracle,
                model=self.model,
                prompt=prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout_seconds=self.timeout_seconds,
                context=ErrorContext(user_id=session.user_id),
            )
        except OracleUnavailableError as e:
            logger.warning(
                f"Oracle analysis unavailable ({e.reason}), using heuristic",
                extra={"user_id": session.user_id, "error_code": e.code},
            )
            return None

        parsed = parse_framework_analysis(text)
        if parsed is None:
            logger.warning(
                "Oracle analysis returned no JSON object, using heuristic",
                extra={"user_id": session.user_id},
            )
        return parsed
