"""Session Analysis — tests for heuristic, oracle and blended analysis paths.

Tests cover:
    - Fewer than 3 answers: heuristic only, no oracle call, not degraded
    - Oracle alignment + score: BLENDED with half-up mean
    - Oracle failure or non-JSON reply: heuristic result marked degraded
    - Partial oracle reply: usable field kept, result degraded
"""

import json

from goodfaith.core.candidates import session_pairs
from goodfaith.core.domain_types import AnalysisSource
from goodfaith.core.graph_model import Contradiction, MoralSession, utc_now
from goodfaith.core.seed_data import seed_frameworks, seed_questions
from goodfaith.core.session_mutations import record_answer
from goodfaith.services.session_analysis import SessionAnalyzer

from tests.services.fakes import FakeOracle, unavailable

FRAMEWORKS = seed_frameworks()
QUESTIONS = {q.id: q for q in seed_questions()}


def _make_session(count: int, unresolved: int = 0) -> MoralSession:
    session = MoralSession(user_id="u-1")
    for n, qid in enumerate(["q-1-1", "q-1-2", "q-1-3", "q-2-1"][:count]):
        record_answer(session, f"a-{n}", qid, f"Answer {n}", utc_now())
    for n in range(unresolved):
        session.contradictions.append(Contradiction(
            id=f"c-{n}", question_ids=("q-1-1", f"q-1-{n + 2}"),
            answers=("x", "y"), explanation="Conclusion: YES", confidence=1.0,
        ))
    return session


def _oracle_reply(**overrides) -> str:
    body = {
        "frameworkAlignment": {
            "deontological": 50, "utilitarian": 30, "virtueEthics": 20,
            "careEthics": 0, "contractarianism": 0,
        },
        "keyPrinciples": ["duty", "rules"],
        "consistencyScore": 75,
        "metaPrinciples": ["Rules protect the vulnerable"],
        "subtlePatterns": ["Defers to authority under pressure"],
    }
    body.update(overrides)
    return "Here is the analysis:\n" + json.dumps(body)


async def _analyze(analyzer: SessionAnalyzer, session: MoralSession):
    return await analyzer.analyze(session, session_pairs(session, QUESTIONS), FRAMEWORKS)


async def test_few_answers_use_heuristic_without_oracle():
    oracle = FakeOracle(_oracle_reply())
    analysis = await _analyze(SessionAnalyzer(oracle, "m"), _make_session(2))

    assert oracle.calls == []
    assert analysis.source == AnalysisSource.HEURISTIC
    assert not analysis.degraded
    assert analysis.consistency_score == 100
    assert sum(analysis.framework_alignment.values()) == 100
    assert set(analysis.framework_alignment) == {f.id for f in FRAMEWORKS}


async def test_oracle_reply_is_blended():
    session = _make_session(3, unresolved=1)
    analysis = await _analyze(SessionAnalyzer(FakeOracle(_oracle_reply()), "m"), session)

    assert analysis.source == AnalysisSource.BLENDED
    assert not analysis.degraded
    # heuristic 90, oracle 75 -> 82.5 rounds half up
    assert analysis.consistency_score == 83
    assert analysis.framework_alignment == {
        "deontological": 50, "utilitarian": 30, "virtueEthics": 20,
        "careEthics": 0, "contractarianism": 0,
    }
    assert analysis.key_principles == ["duty", "rules"]
    assert analysis.meta_principles == ["Rules protect the vulnerable"]


async def test_oracle_prompt_lists_framework_ids():
    oracle = FakeOracle(_oracle_reply())
    await _analyze(SessionAnalyzer(oracle, "m", temperature=0.2, max_tokens=900), _make_session(3))
    call = oracle.calls[0]
    assert "contractarianism (Social Contract Theory)" in call["prompt"]
    assert (call["temperature"], call["max_tokens"]) == (0.2, 900)


async def test_oracle_failure_marks_degraded():
    session = _make_session(3)
    analysis = await _analyze(SessionAnalyzer(FakeOracle(unavailable("timeout")), "m"), session)
    assert analysis.degraded
    assert analysis.source == AnalysisSource.HEURISTIC
    assert analysis.consistency_score == 100


async def test_non_json_reply_marks_degraded():
    analysis = await _analyze(
        SessionAnalyzer(FakeOracle("I cannot produce JSON today."), "m"), _make_session(4),
    )
    assert analysis.degraded
    assert analysis.source == AnalysisSource.HEURISTIC


async def test_out_of_range_score_keeps_heuristic_score():
    analysis = await _analyze(
        SessionAnalyzer(FakeOracle(_oracle_reply(consistencyScore=140)), "m"),
        _make_session(3),
    )
    assert analysis.source == AnalysisSource.ORACLE
    assert analysis.consistency_score == 100
    assert analysis.framework_alignment["deontological"] == 50
    assert analysis.degraded


async def test_unknown_framework_ids_keep_heuristic_alignment():
    session = _make_session(3)
    heuristic = await _analyze(SessionAnalyzer(None, "m"), session)
    analysis = await _analyze(
        SessionAnalyzer(FakeOracle(_oracle_reply(frameworkAlignment={"stoicism": 100})), "m"),
        session,
    )
    assert analysis.framework_alignment == heuristic.framework_alignment
    assert analysis.source == AnalysisSource.BLENDED
    assert analysis.degraded
