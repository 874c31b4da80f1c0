"""Domain Types — shared vocabularies and engine constants.

Invariants:
    - Graph node labels and Kohlberg stages are encoded as Enums, no raw string matching
    - Relationship types are carried by the typed edge models in core/graph_model.py
    - Candidate sources are declared most-trusted first; merge tie-breaking relies on the order

Design Decisions:
    - str identifiers everywhere: the graph store treats every id as opaque
    - str Enums: serialize to JSON without custom encoders (snapshots are flat documents)
"""

from enum import Enum


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_REQUIRED_ANSWERS = 3
MIN_ANSWERS_FOR_ORACLE_ANALYSIS = 3
MAX_CANDIDATES = 5
MAX_TAG_CANDIDATES = 3


# ─── Enums ───────────────────────────────────────────────────────

class NodeLabel(str, Enum):
    """Node labels stored in the graph."""
    QUESTION = "Question"
    ANSWER = "Answer"
    FRAMEWORK = "Framework"
    STAGE = "Stage"


class MoralStage(int, Enum):
    """Kohlberg's six stages, in canonical order."""
    PUNISHMENT_OBEDIENCE = 1
    INSTRUMENTAL_EXCHANGE = 2
    INTERPERSONAL_CONFORMITY = 3
    SOCIAL_ORDER = 4
    SOCIAL_CONTRACT = 5
    UNIVERSAL_PRINCIPLES = 6


class QuestionOrigin(str, Enum):
    """Where a question came from."""
    SEED = "seed"
    GENERATED = "generated"


class CandidateSource(str, Enum):
    """Signal that surfaced a candidate pair — ordered most-trusted first."""
    EXPLICIT_LINK = "explicit_link"
    TAG_OVERLAP = "tag_overlap"
    QUESTION_EMBEDDING = "question_embedding"
    ANSWER_EMBEDDING = "answer_embedding"


class JudgeMethod(str, Enum):
    """How the contradiction verdict was reached."""
    EXPLICIT = "explicit"
    LEXICAL = "lexical"


class AnalysisSource(str, Enum):
    """Which path produced a framework/consistency analysis."""
    HEURISTIC = "heuristic"
    ORACLE = "oracle"
    BLENDED = "blended"


class StageStatus(str, Enum):
    """Per-stage progress status for statistics."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class InfluenceType(str, Enum):
    """PRECEDES edge influence kinds."""
    DIRECT = "direct"
    INDIRECT = "indirect"
