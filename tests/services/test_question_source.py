"""Question Source — tests for serving seed questions and generating new ones.

Tests cover:
    - Unanswered seed questions of the current stage are served first
    - Terminal sessions keep drawing from the last stage
    - An exhausted stage triggers generation: private, tagged, linked by PRECEDES
    - No oracle, oracle outage or empty output raises OracleUnavailableError
"""

import random

import pytest

from goodfaith.core.domain_types import QuestionOrigin
from goodfaith.core.errors import OracleUnavailableError
from goodfaith.core.graph_model import MoralSession, utc_now
from goodfaith.core.session_mutations import record_answer
from goodfaith.services.answer_graph import AnswerGraph
from goodfaith.services.knowledge_base import KnowledgeBase
from goodfaith.services.question_source import QuestionSource, serving_stage, stage_slug

from tests.services.fakes import FakeOracle, unavailable


@pytest.fixture
async def knowledge(graph_store):
    kb = KnowledgeBase(graph_store)
    await kb.ensure_seeded()
    return kb


async def _answer_all(session: MoralSession, graph: AnswerGraph, qids: list[str]) -> None:
    for n, qid in enumerate(qids):
        answer, _ = record_answer(session, f"a-{n}", qid, f"Answer {n}", utc_now())
        await graph.add_answer(session.user_id, answer)


def test_stage_slug():
    assert stage_slug(1) == "punishment-obedience"
    assert stage_slug(6) == "universal-principles"
    assert stage_slug(7) == "stage-7"


def test_serving_stage_for_terminal_session():
    session = MoralSession(user_id="u-1", current_stage=6, terminal=True)
    assert serving_stage(session, 6) == 6
    assert serving_stage(MoralSession(user_id="u-1", current_stage=3), 6) == 3


async def test_serves_unanswered_seed_question(knowledge):
    session = MoralSession(user_id="u-1")
    record_answer(session, "a-1", "q-1-1", "No", utc_now())
    source = QuestionSource(knowledge, None, "m", rng=random.Random(7))

    question = await source.next_question(session)

    assert question.stage == 1
    assert question.id in {"q-1-2", "q-1-3"}
    assert question.origin == QuestionOrigin.SEED


async def test_exhausted_stage_generates_question(knowledge, graph_store):
    session = MoralSession(user_id="u-1")
    await _answer_all(session, AnswerGraph(graph_store), ["q-1-1", "q-1-2", "q-1-3"])
    oracle = FakeOracle('Question: "Would you break a rule to help a friend?"')
    source = QuestionSource(
        knowledge, oracle, "light-model", context_answers=2, id_factory=lambda: "gen-1",
    )

    question = await source.next_question(session)

    assert question.id == "gen-1"
    assert question.text == "Would you break a rule to help a friend?"
    assert question.tags == ["generated", "punishment-obedience"]
    assert question.generated_for_user == "u-1"
    assert knowledge.question("gen-1") == question
    assert oracle.calls[0]["model"] == "light-model"
    assert "Answer 2" in oracle.calls[0]["prompt"]
    assert "Answer 0" not in oracle.calls[0]["prompt"]

    precedes = await graph_store.traverse("gen-1", "PRECEDES", "incoming")
    assert {rel.from_id for rel, _ in precedes} == {"a-1", "a-2"}


async def test_generated_question_served_back_to_owner_only(knowledge, graph_store):
    session = MoralSession(user_id="u-1")
    await _answer_all(session, AnswerGraph(graph_store), ["q-1-1", "q-1-2", "q-1-3"])
    source = QuestionSource(
        knowledge, FakeOracle("Is obedience owed to unfair rules?"), "m",
        id_factory=lambda: "gen-1",
    )
    generated = await source.generate(session, knowledge.stage(1))

    assert await source.next_question(session) == generated
    assert generated not in knowledge.questions_for_stage(1, "u-2")


async def test_terminal_session_draws_from_last_stage(knowledge):
    session = MoralSession(user_id="u-1", current_stage=6, terminal=True)
    question = await QuestionSource(knowledge, None, "m").next_question(session)
    assert question.stage == 6


async def test_generation_without_oracle_raises(knowledge):
    session = MoralSession(user_id="u-1")
    with pytest.raises(OracleUnavailableError) as exc:
        await QuestionSource(knowledge, None, "m").generate(session, knowledge.stage(1))
    assert exc.value.reason == "not_configured"


@pytest.mark.parametrize("reply, reason", [
    (unavailable("timeout"), "timeout"),
    ("   \n  ", "parse_error"),
])
async def test_generation_failure_raises(knowledge, reply, reason):
    session = MoralSession(user_id="u-1")
    source = QuestionSource(knowledge, FakeOracle(reply), "m")
    with pytest.raises(OracleUnavailableError) as exc:
        await source.generate(session, knowledge.stage(1))
    assert exc.value.reason == reason
    assert len(knowledge.questions) == 18
