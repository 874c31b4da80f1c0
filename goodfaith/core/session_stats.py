"""Session Stats — pure computation of session summary statistics from MoralSession.

Invariants:
    - All inputs come from the session and reference data (no IO, no store)
    - Returns a flat dict (serializable as JSON)
    - Never raises — answers to unknown questions count toward totals only

Design Decisions:
    - Pure function, not a method on MoralSession: the session is state, stats are presentation
    - highest_stage is the max of completed stages and the current stage
    - A contradiction counts toward every stage one of its questions belongs to
"""

from collections.abc import Mapping, Sequence

from goodfaith.core.domain_types import StageStatus
from goodfaith.core.graph_model import MoralSession, Question, Stage


def _stage_status(session: MoralSession, stage: Stage, answered: int) -> StageStatus:
    if stage.number in session.completed_stages:
        return StageStatus.COMPLETED
    if stage.number == session.current_stage or answered > 0:
        return StageStatus.IN_PROGRESS
    return StageStatus.NOT_STARTED


def compute_stage_progress(
    session: MoralSession,
    stages: Sequence[Stage],
    questions: Mapping[str, Question],
) -> list[dict]:
    progress = []
    for stage in sorted(stages, key=lambda s: s.number):
        in_stage = {
            qid for qid in session.answered_question_ids
            if qid in questions and questions[qid].stage == stage.number
        }
        touching = [
            c for c in session.contradictions
            if any(
                qid in questions and questions[qid].stage == stage.number
                for qid in c.question_ids
            )
        ]
        progress.append({
            "stage": stage.number,
            "name": stage.name,
            "status": _stage_status(session, stage, len(in_stage)).value,
            "answered": len(in_stage),
            "required": stage.required_answers,
            "contradictions_found": len(touching),
            "contradictions_resolved": sum(1 for c in touching if c.resolved),
        })
    return progress


def compute_session_stats(
    session: MoralSession,
    stages: Sequence[Stage],
    questions: Mapping[str, Question],
) -> dict:
    """Compute summary statistics from MoralSession. Pure, no IO."""
    return {
        "user_id": session.user_id,
        "total_questions": len(session.answers),
        "modified_answers": sum(1 for a in session.answers if a.modified),
        "total_contradictions": len(session.contradictions),
        "resolved_contradictions": session.resolved_count,
        "unresolved_contradictions": session.unresolved_count,
        "current_stage": session.current_stage,
        "highest_stage": max([*session.completed_stages, session.current_stage]),
        "completed_stages": sorted(session.completed_stages),
        "is_terminal": session.terminal,
        "stage_progress": compute_stage_progress(session, stages, questions),
    }
