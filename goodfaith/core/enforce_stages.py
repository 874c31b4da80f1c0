"""Stage Transition Enforcement — structural guards for advancing between moral stages.

Invariants:
    - All functions are PURE: no IO, no async, no oracle, no side effects (except apply_advance)
    - Return error dict on violation, None on success
    - Structural checks fail closed: missing stage data blocks advancement
    - Transitions are evaluated on demand, never automatically after an answer
    - apply_advance is idempotent on completed_stages and never moves past the last stage

Design Decisions:
    - Return dicts (not exceptions): callers surface the reason verbatim, keeping the
      blocked path identical in shape to the success path
    - The advisory oracle check lives in services/stage_progression.py — it is IO and
      fails open, unlike everything in this module
"""

from collections.abc import Mapping, Sequence

from goodfaith.core.graph_model import MoralSession, Question, Stage


def stage_by_number(stages: Sequence[Stage], number: int) -> Stage | None:
    for stage in stages:
        if stage.number == number:
            return stage
    return None


def answered_in_stage(
    session: MoralSession, questions: Mapping[str, Question], stage_number: int,
) -> list[str]:
    """Question ids the user answered whose question belongs to `stage_number`."""
    return [
        qid for qid in session.answered_question_ids
        if qid in questions and questions[qid].stage == stage_number
    ]


def unresolved_touching(session: MoralSession, question_ids: Sequence[str]) -> list[str]:
    ids = set(question_ids)
    return [
        c.id for c in session.contradictions
        if not c.resolved and ids.intersection(c.question_ids)
    ]


# --- Guards -------------------------------------------------------------------

def check_not_terminal(session: MoralSession) -> dict | None:
    if session.terminal:
        return _error(
            "STAGES_COMPLETE",
            "All stages are complete. There is no further stage to advance to.",
        )
    return None


def check_stage_defined(stage: Stage | None, number: int) -> dict | None:
    if stage is None:
        return _error("STAGE_UNKNOWN", f"Stage {number} is not defined.")
    return None


def check_answer_threshold(
    stage: Stage, answered_ids: Sequence[str],
) -> dict | None:
    """Rule 1: at least `required_answers` questions answered in the current stage."""
    answered = len(answered_ids)
    if answered < stage.required_answers:
        return _error(
            "STAGE_INCOMPLETE",
            f"Need to answer at least {stage.required_answers} questions in stage "
            f"{stage.number} (currently answered {answered}).",
            answered=answered,
            required=stage.required_answers,
        )
    return None


def check_unresolved_contradictions(
    session: MoralSession, answered_ids: Sequence[str],
) -> dict | None:
    """Rule 2: no unresolved contradiction touches the stage's answered questions."""
    blocking = unresolved_touching(session, answered_ids)
    if blocking:
        return _error(
            "UNRESOLVED_CONTRADICTIONS",
            f"Need to resolve {len(blocking)} contradiction(s) in current stage "
            f"before advancing.",
            contradiction_ids=blocking,
        )
    return None


def validate_structural_gate(
    session: MoralSession,
    stages: Sequence[Stage],
    questions: Mapping[str, Question],
) -> dict | None:
    """Chain the mandatory checks. Returns first error or None."""
    error = check_not_terminal(session)
    if error:
        return error
    stage = stage_by_number(stages, session.current_stage)
    error = check_stage_defined(stage, session.current_stage)
    if error or stage is None:
        return error
    answered = answered_in_stage(session, questions, stage.number)
    return (
        check_answer_threshold(stage, answered)
        or check_unresolved_contradictions(session, answered)
    )


# --- Transition ---------------------------------------------------------------

def apply_advance(session: MoralSession, stage_count: int) -> None:
    """Complete the current stage; move on, or mark terminal after the last one."""
    if session.current_stage not in session.completed_stages:
        session.completed_stages.append(session.current_stage)
    if session.current_stage < stage_count:
        session.current_stage += 1
    else:
        session.terminal = True


# --- Helper -------------------------------------------------------------------

def _error(code: str, message: str, **details: object) -> dict:
    """Construct a standard error dict."""
    return {
        "status": "error",
        "error_code": code,
        "message": f"ERROR: {message}",
        **details,
    }
