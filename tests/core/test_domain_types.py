"""Domain Types — verifies enum values and engine constants.

Tests:
    - Enums serialize to their string values (snapshots stay flat JSON)
    - MoralStage has exactly Kohlberg's 6 stages, in order
    - CandidateSource order is the trust order used for tie-breaking
"""

import json

from goodfaith.core.domain_types import (
    MAX_CANDIDATES, MAX_TAG_CANDIDATES,
    AnalysisSource, CandidateSource, MoralStage, NodeLabel,
)


def test_six_stages_in_order():
    assert [s.value for s in MoralStage] == [1, 2, 3, 4, 5, 6]


def test_enums_serialize_as_strings():
    payload = {"label": NodeLabel.QUESTION, "source": AnalysisSource.BLENDED}
    assert json.dumps(payload) == '{"label": "Question", "source": "blended"}'


def test_candidate_source_trust_order():
    assert list(CandidateSource) == [
        CandidateSource.EXPLICIT_LINK,
        CandidateSource.TAG_OVERLAP,
        CandidateSource.QUESTION_EMBEDDING,
        CandidateSource.ANSWER_EMBEDDING,
    ]


def test_candidate_caps():
    assert MAX_CANDIDATES == 5
    assert MAX_TAG_CANDIDATES == 3
