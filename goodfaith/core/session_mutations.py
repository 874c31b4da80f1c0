"""Session Mutations — the only functions that change a MoralSession's answers and contradictions.

Invariants:
    - Pure state mutation: no IO, no async; ids and timestamps are passed in by the shell
    - Re-answering a question supersedes the stored answer and keeps the previous version
    - At most one Contradiction per unordered question-id pair per session
    - A contradiction's resolution is set exactly once; the other answer is never touched
    - Any change to answers or contradictions drops the cached analysis

Design Decisions:
    - Resolving does not re-open or re-check other contradictions involving the
      overwritten answer: the session keeps their history as detected
    - Contradictions are replaced with a re-validated copy on resolution so model
      invariants (resolved <-> resolution) are checked on every transition
"""

from datetime import datetime

from goodfaith.core.errors import (
    ContradictionAlreadyResolvedError, EntityValidationError,
    ErrorContext, ResourceNotFoundError,
)
from goodfaith.core.graph_model import (
    Answer, Contradiction, ContradictionResolution, MoralSession,
    PreviousVersion, validate_entity,
)


def touch(session: MoralSession, now: datetime) -> None:
    session.last_active_at = now


def _supersede(answer: Answer, new_id: str, new_text: str, now: datetime) -> None:
    answer.previous_version = PreviousVersion(
        answer_id=answer.id, text=answer.text, timestamp=answer.timestamp,
    )
    answer.id = new_id
    answer.text = new_text
    answer.timestamp = now
    answer.modified = True


def record_answer(
    session: MoralSession, answer_id: str, question_id: str, text: str, now: datetime,
) -> tuple[Answer, bool]:
    """Store an answer. Returns (answer, changed) — unchanged re-submissions are no-ops."""
    new = validate_entity(Answer, {
        "id": answer_id, "question_id": question_id, "text": text, "timestamp": now,
    })
    existing = session.answer_for(question_id)
    if existing is None:
        session.answers.append(new)
        session.analysis = None
        touch(session, now)
        return new, True

    touch(session, now)
    if existing.text == new.text:
        return existing, False
    _supersede(existing, answer_id, new.text, now)
    session.analysis = None
    return existing, True


def find_contradiction_for_pair(
    session: MoralSession, question_a: str, question_b: str,
) -> Contradiction | None:
    pair = frozenset((question_a, question_b))
    for c in session.contradictions:
        if c.pair_key == pair:
            return c
    return None


def add_contradiction(session: MoralSession, contradiction: Contradiction) -> bool:
    """Append unless the unordered pair is already linked. Returns True if added."""
    if find_contradiction_for_pair(session, *contradiction.question_ids) is not None:
        return False
    session.contradictions.append(contradiction)
    session.analysis = None
    return True


def resolve_contradiction(
    session: MoralSession,
    contradiction_id: str,
    explanation: str,
    overwritten_question_id: str,
    new_answer_text: str | None,
    new_answer_id: str,
    now: datetime,
) -> tuple[Contradiction, Answer | None]:
    """Resolve once; overwrite the chosen answer when new text is given.

    Returns the resolved contradiction and the overwritten answer (None when no
    new text was supplied or the question was never answered).
    """
    ctx = ErrorContext(user_id=session.user_id, contradiction_id=contradiction_id)
    index = next(
        (i for i, c in enumerate(session.contradictions) if c.id == contradiction_id),
        None,
    )
    if index is None:
        raise ResourceNotFoundError("Contradiction", contradiction_id, context=ctx)
    current = session.contradictions[index]
    if current.resolved:
        raise ContradictionAlreadyResolvedError(contradiction_id, context=ctx)
    if overwritten_question_id not in current.question_ids:
        raise EntityValidationError(
            f"Question '{overwritten_question_id}' is not part of contradiction "
            f"'{contradiction_id}'",
            field="overwritten_question_id", context=ctx,
        )

    new_text = new_answer_text.strip() if new_answer_text else None
    resolution = validate_entity(ContradictionResolution, {
        "explanation": explanation,
        "overwritten_question_id": overwritten_question_id,
        "new_answer_text": new_text or None,
        "timestamp": now,
    })
    resolved = validate_entity(Contradiction, {
        **current.model_dump(),
        "resolved": True,
        "resolution": resolution.model_dump(),
    })
    session.contradictions[index] = resolved

    overwritten: Answer | None = None
    if new_text:
        overwritten = session.answer_for(overwritten_question_id)
        if overwritten is not None:
            _supersede(overwritten, new_answer_id, new_text, now)

    session.analysis = None
    touch(session, now)
    return resolved, overwritten
