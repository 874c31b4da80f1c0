"""Moral Reasoning Engine — end-to-end tests over SQLite graph store and fake oracles.

Tests cover:
    - next_question creates the session and serves a stage-1 seed question
    - submit_answer: contradiction detected, CONTRADICTS edge written, snapshot saved
    - Unchanged re-submission writes no new Answer node
    - resolve_contradiction: overwrite writes MODIFIES with the explanation as reason
    - Questions generated for another user are not found
    - Overlapping mutating calls raise ConcurrencyError
    - Advancement unblocks as soon as the last open contradiction is resolved
    - analyze caches until the next mutation; advance_stage; statistics; feedback
"""

import itertools

import pytest

from goodfaith.core.domain_types import QuestionOrigin
from goodfaith.core.errors import (
    ConcurrencyError, ContradictionAlreadyResolvedError, ResourceNotFoundError,
    StageAdvanceBlockedError,
)
from goodfaith.core.graph_model import Question
from goodfaith.services.answer_graph import AnswerGraph
from goodfaith.services.candidate_generator import CandidateGenerator
from goodfaith.services.contradiction_judge import ContradictionJudge
from goodfaith.services.engine import MoralReasoningEngine
from goodfaith.services.feedback import FeedbackWriter
from goodfaith.services.knowledge_base import KnowledgeBase
from goodfaith.services.question_source import QuestionSource
from goodfaith.services.session_analysis import SessionAnalyzer
from goodfaith.services.session_repository import SessionRepository
from goodfaith.services.stage_progression import StageProgression

from tests.services.fakes import FakeOracle, InMemorySessionStore

STEAL = "q-1-1"   # honesty / punishment / authority
RULES = "q-1-2"   # rules / authority / obedience, explicitly related to q-1-1
OBEY = "q-1-3"


async def _make_engine(graph_store, judge_reply: str = "Conclusion: YES", feedback_reply: str = ""):
    knowledge = KnowledgeBase(graph_store)
    await knowledge.ensure_seeded()
    store = InMemorySessionStore()
    answer_ids = (f"a-{n}" for n in itertools.count(1))
    contradiction_ids = (f"c-{n}" for n in itertools.count(1))
    judge_oracle = FakeOracle(judge_reply)
    engine = MoralReasoningEngine(
        knowledge=knowledge,
        sessions=SessionRepository(store),
        answer_graph=AnswerGraph(graph_store),
        candidates=CandidateGenerator(),
        judge=ContradictionJudge(
            judge_oracle, "judge-model", id_factory=lambda: next(contradiction_ids),
        ),
        analyzer=SessionAnalyzer(None, "analysis-model"),
        progression=StageProgression(None, "stage-model"),
        question_source=QuestionSource(knowledge, None, "light-model"),
        feedback=FeedbackWriter(FakeOracle(feedback_reply), "light-model"),
        id_factory=lambda: next(answer_ids),
    )
    return engine, store, judge_oracle


async def test_next_question_creates_session(graph_store):
    engine, store, _ = await _make_engine(graph_store)
    question = await engine.next_question("alice")
    assert question.stage == 1
    assert "alice" in store.snapshots


async def test_submit_detects_contradiction_and_links_answers(graph_store):
    engine, store, judge = await _make_engine(graph_store)

    first = await engine.submit_answer("alice", STEAL, "No, stealing is always wrong")
    assert first.candidates == []
    assert judge.calls == []

    second = await engine.submit_answer("alice", RULES, "Yes, if it prevents starvation")
    assert second.candidates == [STEAL]
    [contradiction] = second.new_contradictions
    assert contradiction.question_ids == (STEAL, RULES)
    assert not contradiction.resolved

    edges = await graph_store.traverse("a-2", "CONTRADICTS")
    assert [(rel.to_id, rel.properties["contradiction_id"]) for rel, _ in edges] == [("a-1", "c-1")]
    assert edges[0][0].properties["user_id"] == "alice"

    saved = await engine.get_session("alice")
    assert saved.unresolved_count == 1
    assert store.snapshots["alice"]["contradictions"][0]["id"] == "c-1"


async def test_resubmission_is_idempotent(graph_store):
    engine, _, judge = await _make_engine(graph_store)
    await engine.submit_answer("alice", STEAL, "No")
    await engine.submit_answer("alice", RULES, "Yes")
    calls = len(judge.calls)

    again = await engine.submit_answer("alice", RULES, "  Yes ")

    assert not again.changed
    assert again.new_contradictions == []
    assert [c.id for c in again.existing_contradictions] == ["c-1"]
    assert len(judge.calls) == calls
    assert len(await graph_store.find_nodes("Answer")) == 2


async def test_revised_answer_writes_modifies_edge(graph_store):
    engine, _, _ = await _make_engine(graph_store, judge_reply="Conclusion: NO")
    await engine.submit_answer("alice", STEAL, "No")
    revised = await engine.submit_answer("alice", STEAL, "Only to feed my family")

    assert revised.changed
    assert revised.answer.id == "a-2"
    [(rel, node)] = await graph_store.traverse("a-2", "MODIFIES")
    assert node.id == "a-1"
    assert rel.properties["reason"] == "answer revised"


async def test_resolve_with_overwrite(graph_store):
    engine, _, _ = await _make_engine(graph_store)
    await engine.submit_answer("alice", STEAL, "No")
    result = await engine.submit_answer("alice", RULES, "Yes")
    cid = result.new_contradictions[0].id

    resolution = await engine.resolve_contradiction(
        "alice", cid, "I was thinking of hunger, not greed", STEAL,
        new_answer_text="Only when someone would starve",
    )

    assert resolution.contradiction.resolved
    assert resolution.overwritten_answer.text == "Only when someone would starve"
    new_id = resolution.overwritten_answer.id
    [(rel, node)] = await graph_store.traverse(new_id, "MODIFIES")
    assert node.id == "a-1"
    assert rel.properties["reason"] == "I was thinking of hunger, not greed"

    session = await engine.get_session("alice")
    assert session.unresolved_count == 0
    assert session.answer_for(STEAL).previous_version.text == "No"

    with pytest.raises(ContradictionAlreadyResolvedError):
        await engine.resolve_contradiction("alice", cid, "again", STEAL)


async def test_resolve_unknown_contradiction(graph_store):
    engine, _, _ = await _make_engine(graph_store)
    await engine.submit_answer("alice", STEAL, "No")
    with pytest.raises(ResourceNotFoundError):
        await engine.resolve_contradiction("alice", "c-missing", "why", STEAL)


async def test_other_users_generated_question_not_found(graph_store):
    engine, _, _ = await _make_engine(graph_store)
    await engine.knowledge.add_generated_question(Question(
        id="gen-bob", text="Would you report a friend?", stage=1,
        tags=["generated", "punishment-obedience"],
        origin=QuestionOrigin.GENERATED, generated_for_user="bob",
    ))

    with pytest.raises(ResourceNotFoundError):
        await engine.submit_answer("alice", "gen-bob", "No")
    with pytest.raises(ResourceNotFoundError):
        await engine.submit_answer("alice", "q-unknown", "No")
    result = await engine.submit_answer("bob", "gen-bob", "No")
    assert result.changed


async def test_overlapping_mutation_rejected(graph_store):
    engine, store, _ = await _make_engine(graph_store)
    async with engine.locks.hold("alice", "submit_answer"):
        with pytest.raises(ConcurrencyError):
            await engine.submit_answer("alice", STEAL, "No")
    assert store.saves == 0
    await engine.submit_answer("alice", STEAL, "No")
    assert store.saves == 2


async def test_analysis_cached_until_next_answer(graph_store):
    engine, _, _ = await _make_engine(graph_store, judge_reply="Conclusion: NO")
    await engine.submit_answer("alice", STEAL, "No")

    first = await engine.analyze("alice")
    assert (await engine.get_session("alice")).analysis == first
    assert await engine.analyze("alice") == first

    await engine.submit_answer("alice", RULES, "Yes")
    assert (await engine.get_session("alice")).analysis is None


async def test_advance_stage_and_statistics(graph_store):
    engine, _, _ = await _make_engine(graph_store, judge_reply="Conclusion: NO")
    await engine.submit_answer("alice", STEAL, "No")
    with pytest.raises(StageAdvanceBlockedError):
        await engine.advance_stage("alice")

    await engine.submit_answer("alice", RULES, "Yes")
    await engine.submit_answer("alice", OBEY, "Usually")
    assert (await engine.evaluate_stage("alice")).can_advance
    await engine.advance_stage("alice")

    stats = await engine.statistics("alice")
    assert stats["current_stage"] == 2
    assert stats["completed_stages"] == [1]
    assert stats["total_questions"] == 3
    assert stats["stage_progress"][0]["status"] == "completed"


async def test_feedback_uses_oracle_text(graph_store):
    engine, _, _ = await _make_engine(
        graph_store, judge_reply="Conclusion: NO", feedback_reply="You hold firm to rules.",
    )
    await engine.submit_answer("alice", STEAL, "No")
    feedback = await engine.generate_feedback("alice")
    assert feedback.text == "You hold firm to rules."
    assert not feedback.degraded


async def test_reads_on_unknown_user_raise(graph_store):
    engine, _, _ = await _make_engine(graph_store)
    with pytest.raises(ResourceNotFoundError):
        await engine.statistics("nobody")
    with pytest.raises(ResourceNotFoundError):
        await engine.analyze("nobody")


async def test_resolving_last_contradiction_unblocks_advance(graph_store):
    engine, _, _ = await _make_engine(graph_store)
    await engine.submit_answer("alice", STEAL, "No, stealing is always wrong")
    await engine.submit_answer("alice", RULES, "Yes, if it prevents starvation")
    await engine.submit_answer("alice", OBEY, "Usually")
    session = await engine.get_session("alice")
    *earlier, last = [c for c in session.contradictions if not c.resolved]

    blocked = await engine.evaluate_stage("alice")
    assert not blocked.can_advance
    assert blocked.error_code == "UNRESOLVED_CONTRADICTIONS"
    assert last.id in blocked.blocking_contradictions

    for contradiction in earlier:
        await engine.resolve_contradiction(
            "alice", contradiction.id, "Different circumstances", contradiction.question_ids[0],
        )
    assert not (await engine.evaluate_stage("alice")).can_advance

    overwritten, kept = last.question_ids
    kept_before = session.answer_for(kept)
    await engine.resolve_contradiction(
        "alice", last.id, "I meant only in emergencies", overwritten,
        new_answer_text="Only in an emergency",
    )

    evaluation = await engine.evaluate_stage("alice")
    assert evaluation.can_advance
    assert evaluation.blocking_contradictions == []
    after = await engine.get_session("alice")
    assert after.answer_for(kept).id == kept_before.id
    assert after.answer_for(kept).text == kept_before.text
    assert after.answer_for(overwritten).text == "Only in an emergency"
