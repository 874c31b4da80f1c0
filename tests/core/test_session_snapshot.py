"""Tests for session_to_snapshot / session_from_snapshot — pure, no IO."""

import json

import pytest

from goodfaith.core.domain_types import AnalysisSource
from goodfaith.core.errors import EntityValidationError
from goodfaith.core.graph_model import Contradiction, MoralSession, SessionAnalysis, utc_now
from goodfaith.core.session_mutations import (
    add_contradiction, record_answer, resolve_contradiction,
)
from goodfaith.core.session_snapshot import (
    SNAPSHOT_VERSION, session_from_snapshot, session_to_snapshot,
)


def _make_session() -> MoralSession:
    session = MoralSession(user_id="u-1", current_stage=2, completed_stages=[1])
    now = utc_now()
    record_answer(session, "a-1", "q-1-1", "No", now)
    record_answer(session, "a-2", "q-1-2", "Yes", now)
    add_contradiction(session, Contradiction(
        id="c-1", question_ids=("q-1-1", "q-1-2"), answers=("No", "Yes"),
        explanation="Conclusion: YES", confidence=1.0,
    ))
    resolve_contradiction(session, "c-1", "Context matters", "q-1-1", "Sometimes", "a-3", now)
    session.analysis = SessionAnalysis(
        framework_alignment={"careEthics": 100}, consistency_score=100,
        source=AnalysisSource.BLENDED,
    )
    return session


def test_snapshot_is_json_safe():
    snapshot = session_to_snapshot(_make_session())
    json.dumps(snapshot)
    assert snapshot["snapshot_version"] == SNAPSHOT_VERSION
    assert snapshot["analysis"]["source"] == "blended"


def test_snapshot_preserves_session():
    session = _make_session()
    restored = session_from_snapshot(session_to_snapshot(session))
    assert restored == session
    assert restored.answer_for("q-1-1").previous_version.answer_id == "a-1"
    assert restored.contradictions[0].resolution.explanation == "Context matters"


def test_missing_keys_use_defaults():
    restored = session_from_snapshot({"user_id": "u-2"})
    assert restored.current_stage == 1
    assert restored.answers == []
    assert not restored.terminal


def test_unknown_keys_ignored_and_stages_deduped():
    restored = session_from_snapshot({
        "user_id": "u-3", "legacy_field": 1, "completed_stages": [2, 1, 2],
    })
    assert restored.completed_stages == [1, 2]


def test_invalid_snapshot_raises():
    with pytest.raises(EntityValidationError):
        session_from_snapshot({"user_id": "u-4", "current_stage": 0})
