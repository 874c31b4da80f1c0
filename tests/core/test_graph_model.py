"""Graph Model — tests for entity invariants and store-boundary decoding.

Tests cover:
    - Question/Answer text validation and tag de-duplication
    - Contradiction invariants (distinct questions, resolved <-> resolution)
    - decode_node picks the model by label
    - decode_relationship validates per relationship type
    - validate_entity wraps pydantic errors in EntityValidationError
"""

from datetime import datetime, timezone

import pytest

from goodfaith.core.domain_types import JudgeMethod, NodeLabel
from goodfaith.core.errors import EntityValidationError
from goodfaith.core.graph_model import (
    AlignsWithEdge, Answer, Contradiction, ContradictsEdge, Framework, MoralSession,
    PrecedesEdge, Question, Stage, StoredNode, StoredRelationship,
    decode_node, decode_relationship, node_properties, validate_entity,
)


def _make_contradiction(**overrides) -> dict:
    data = {
        "id": "c-1",
        "question_ids": ("q-1-1", "q-1-2"),
        "answers": ("Yes", "No"),
        "explanation": "Conclusion: YES",
        "confidence": 1.0,
    }
    data.update(overrides)
    return data


# ─── Entities ────────────────────────────────────────────────────

def test_question_strips_text_and_dedupes_tags():
    q = Question(id="q", text="  Is it fair?  ", stage=1, tags=["a", " a", "b", ""])
    assert q.text == "Is it fair?"
    assert q.tags == ["a", "b"]


def test_question_rejects_whitespace_text():
    with pytest.raises(EntityValidationError) as exc:
        validate_entity(Question, {"id": "q", "text": "   ", "stage": 1})
    assert exc.value.field == "text"


def test_question_cannot_relate_to_itself():
    with pytest.raises(EntityValidationError):
        validate_entity(Question, {
            "id": "q", "text": "t", "stage": 1, "related_question_ids": ["q"],
        })


def test_stage_node_id():
    assert Stage(number=4, name="Social Order").node_id == "stage-4"


def test_answer_rejects_blank_text():
    with pytest.raises(EntityValidationError):
        validate_entity(Answer, {"id": "a", "question_id": "q", "text": "\n\t"})


def test_contradiction_requires_distinct_questions():
    with pytest.raises(EntityValidationError):
        validate_entity(Contradiction, _make_contradiction(question_ids=("q", "q")))


def test_contradiction_confidence_bounded():
    with pytest.raises(EntityValidationError):
        validate_entity(Contradiction, _make_contradiction(confidence=1.5))


def test_contradiction_resolved_flag_must_match_resolution():
    with pytest.raises(EntityValidationError):
        validate_entity(Contradiction, _make_contradiction(resolved=True))


def test_contradiction_pair_key_is_unordered():
    a = Contradiction(**_make_contradiction())
    b = Contradiction(**_make_contradiction(question_ids=("q-1-2", "q-1-1")))
    assert a.pair_key == b.pair_key
    assert a.involves("q-1-2")
    assert not a.involves("q-2-1")


def test_session_counts():
    resolved = _make_contradiction(
        id="c-2", question_ids=("q-2-1", "q-2-2"), resolved=True,
        resolution={"explanation": "changed my mind", "overwritten_question_id": "q-2-1"},
    )
    session = MoralSession(
        user_id="u",
        contradictions=[Contradiction(**_make_contradiction()), Contradiction(**resolved)],
    )
    assert session.unresolved_count == 1
    assert session.resolved_count == 1
    assert session.contradiction_by_id("c-2") is not None
    assert session.contradiction_by_id("missing") is None


# ─── Store boundary ─────────────────────────────────────────────

def test_decode_node_by_label():
    framework = Framework(id="utilitarian", name="Utilitarianism", principles=["Utility"])
    node = StoredNode(
        id="utilitarian",
        labels=(NodeLabel.FRAMEWORK.value,),
        properties=node_properties(framework),
    )
    assert decode_node(node) == framework


def test_decode_node_ignores_extra_properties():
    node = StoredNode(
        id="stage-2", labels=("Stage",),
        properties={"id": "stage-2", "number": 2, "name": "Instrumental Exchange"},
    )
    stage = decode_node(node)
    assert isinstance(stage, Stage)
    assert stage.number == 2


def test_decode_node_unknown_label_raises():
    with pytest.raises(EntityValidationError) as exc:
        decode_node(StoredNode(id="x", labels=("Mystery",), properties={}))
    assert exc.value.field == "labels"


def test_decode_relationship_returns_typed_edge():
    rel = StoredRelationship(
        id="r", from_id="q-1-1", to_id="deontological", type="ALIGNS_WITH",
        properties={"strength": 0.5},
    )
    edge = decode_relationship(rel)
    assert isinstance(edge, AlignsWithEdge)
    assert edge.strength == 0.5


def test_decode_relationship_rejects_out_of_range_weight():
    rel = StoredRelationship(
        id="r", from_id="a-1", to_id="gen-1", type="PRECEDES", properties={"weight": 2.0},
    )
    with pytest.raises(EntityValidationError):
        decode_relationship(rel)


def test_decode_relationship_unknown_type_raises():
    rel = StoredRelationship(id="r", from_id="a", to_id="b", type="LIKES", properties={})
    with pytest.raises(EntityValidationError):
        decode_relationship(rel)


def test_edge_properties_exclude_endpoints_and_type():
    edge = ContradictsEdge(
        from_id="a-2", to_id="a-1", contradiction_id="c-1", user_id="u",
        explanation="Conclusion: YES", confidence=0.9,
    )
    props = edge.properties()
    assert "from_id" not in props and "to_id" not in props and "type" not in props
    assert props["contradiction_id"] == "c-1"
    assert props["resolved"] is False


def test_precedes_edge_serialises_influence_type():
    edge = PrecedesEdge(from_id="a-1", to_id="gen-1", weight=1.0)
    assert edge.properties()["influence_type"] == "direct"


def test_node_properties_are_json_safe():
    answer = Answer(
        id="a", question_id="q", text="Yes",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    props = node_properties(answer)
    assert props["timestamp"].startswith("2024-01-01")


def test_contradiction_method_defaults_to_explicit():
    assert Contradiction(**_make_contradiction()).method == JudgeMethod.EXPLICIT
