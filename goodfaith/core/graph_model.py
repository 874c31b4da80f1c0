"""Graph Model — typed nodes and relationships for the moral-reasoning knowledge graph.

Invariants:
    - Question, Framework, Stage are immutable reference data (frozen models)
    - A Contradiction links two DISTINCT question ids; confidence is within [0, 1]
    - resolved is True exactly when a resolution record is present
    - Every relationship has non-empty endpoints; CONTRADICTS/ALIGNS_WITH/PRECEDES
      weights are within [0, 1]; BELONGS_TO always names its target stage
    - Untyped store records are decoded here, at the boundary — nothing past
      this module handles raw property maps

Design Decisions:
    - Pydantic models over dataclasses: field-level validation at construction,
      JSON-safe dumps for snapshots
    - Relationships form a discriminated union on `type` so decoding is a single
      TypeAdapter call
    - Pydantic's ValidationError is translated to EntityValidationError so callers
      catch one domain type
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, TypeVar, Union

from pydantic import (
    BaseModel, ConfigDict, Field, TypeAdapter, ValidationError,
    field_validator, model_validator,
)

from goodfaith.core.domain_types import (
    DEFAULT_REQUIRED_ANSWERS, AnalysisSource, InfluenceType, JudgeMethod,
    NodeLabel, QuestionOrigin,
)
from goodfaith.core.errors import EntityValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ─── Reference data ──────────────────────────────────────────────

class Question(BaseModel):
    """A staged moral question. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    stage: int = Field(ge=1)
    tags: list[str] = Field(default_factory=list)
    related_question_ids: list[str] = Field(default_factory=list)
    origin: QuestionOrigin = QuestionOrigin.SEED
    generated_for_user: str | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("question text cannot be empty or whitespace")
        return v

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @model_validator(mode="after")
    def no_self_link(self):
        if self.id in self.related_question_ids:
            raise ValueError("a question cannot be related to itself")
        return self


class Framework(BaseModel):
    """A named moral theory answers are scored against."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    principles: list[str] = Field(default_factory=list)
    key_thinkers: list[str] = Field(default_factory=list)


class Stage(BaseModel):
    """One of the ordered moral-development stages."""
    model_config = ConfigDict(frozen=True)

    number: int = Field(ge=1)
    name: str = Field(min_length=1)
    description: str = ""
    reasoning: str = ""
    required_answers: int = Field(default=DEFAULT_REQUIRED_ANSWERS, ge=1)
    example_prompts: list[str] = Field(default_factory=list)

    @property
    def node_id(self) -> str:
        return f"stage-{self.number}"


# ─── Session-owned data ──────────────────────────────────────────

class PreviousVersion(BaseModel):
    """Audit trail entry for a superseded answer."""
    model_config = ConfigDict(frozen=True)

    answer_id: str
    text: str
    timestamp: datetime


class Answer(BaseModel):
    """A user's answer to one question. Superseded, never deleted."""
    id: str = Field(min_length=1)
    question_id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)
    modified: bool = False
    previous_version: PreviousVersion | None = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("answer text cannot be empty or whitespace")
        return v


class ContradictionResolution(BaseModel):
    """How the user resolved a contradiction."""
    model_config = ConfigDict(frozen=True)

    explanation: str = Field(min_length=1)
    overwritten_question_id: str = Field(min_length=1)
    new_answer_text: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class Contradiction(BaseModel):
    """A flagged pair of answers judged to express incompatible commitments."""
    id: str = Field(min_length=1)
    question_ids: tuple[str, str]
    answers: tuple[str, str]
    explanation: str
    confidence: float = Field(ge=0.0, le=1.0)
    method: JudgeMethod = JudgeMethod.EXPLICIT
    detected_at: datetime = Field(default_factory=utc_now)
    resolved: bool = False
    resolution: ContradictionResolution | None = None

    @model_validator(mode="after")
    def check_invariants(self):
        if self.question_ids[0] == self.question_ids[1]:
            raise ValueError("contradiction must link two distinct questions")
        if self.resolved != (self.resolution is not None):
            raise ValueError("resolved flag and resolution record must agree")
        if (
            self.resolution is not None
            and self.resolution.overwritten_question_id not in self.question_ids
        ):
            raise ValueError("overwritten question must belong to the contradiction")
        return self

    @property
    def pair_key(self) -> frozenset[str]:
        return frozenset(self.question_ids)

    def involves(self, question_id: str) -> bool:
        return question_id in self.question_ids


class SessionAnalysis(BaseModel):
    """Cached framework/consistency analysis."""
    framework_alignment: dict[str, int]
    key_principles: list[str] = Field(default_factory=list)
    consistency_score: int = Field(ge=0, le=100)
    meta_principles: list[str] = Field(default_factory=list)
    subtle_patterns: list[str] = Field(default_factory=list)
    source: AnalysisSource = AnalysisSource.HEURISTIC
    degraded: bool = False
    analyzed_at: datetime = Field(default_factory=utc_now)


class MoralSession(BaseModel):
    """Aggregate root — one per user, owns answers and contradictions."""
    user_id: str = Field(min_length=1)
    answers: list[Answer] = Field(default_factory=list)
    contradictions: list[Contradiction] = Field(default_factory=list)
    current_stage: int = Field(default=1, ge=1)
    completed_stages: list[int] = Field(default_factory=list)
    terminal: bool = False
    started_at: datetime = Field(default_factory=utc_now)
    last_active_at: datetime = Field(default_factory=utc_now)
    analysis: SessionAnalysis | None = None

    def answer_for(self, question_id: str) -> Answer | None:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def contradiction_by_id(self, contradiction_id: str) -> Contradiction | None:
        for c in self.contradictions:
            if c.id == contradiction_id:
                return c
        return None

    @property
    def answered_question_ids(self) -> list[str]:
        return [a.question_id for a in self.answers]

    @property
    def unresolved_count(self) -> int:
        return sum(1 for c in self.contradictions if not c.resolved)

    @property
    def resolved_count(self) -> int:
        return sum(1 for c in self.contradictions if c.resolved)


# ─── Relationships ───────────────────────────────────────────────

class _Edge(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_id: str = Field(min_length=1)
    to_id: str = Field(min_length=1)

    def properties(self) -> dict:
        """Edge properties as stored (endpoints and type excluded)."""
        return self.model_dump(mode="json", exclude={"type", "from_id", "to_id"})


class ContradictsEdge(_Edge):
    """Answer -> Answer: the two answers were judged contradictory."""
    type: Literal["CONTRADICTS"] = "CONTRADICTS"
    contradiction_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    explanation: str
    confidence: float = Field(ge=0.0, le=1.0)
    resolved: bool = False


class BelongsToEdge(_Edge):
    """Question -> Stage."""
    type: Literal["BELONGS_TO"] = "BELONGS_TO"
    stage_number: int = Field(ge=1)
    order: int | None = Field(default=None, ge=0)


class AlignsWithEdge(_Edge):
    """Question -> Framework, weighted by tag/principle overlap."""
    type: Literal["ALIGNS_WITH"] = "ALIGNS_WITH"
    strength: float = Field(ge=0.0, le=1.0)
    reasoning: str | None = None


class FollowsEdge(_Edge):
    """Stage -> next Stage."""
    type: Literal["FOLLOWS"] = "FOLLOWS"
    order: int = Field(ge=1)


class PrecedesEdge(_Edge):
    """Answer -> generated Question it influenced."""
    type: Literal["PRECEDES"] = "PRECEDES"
    influence_type: InfluenceType = InfluenceType.DIRECT
    weight: float = Field(ge=0.0, le=1.0)


class ModifiesEdge(_Edge):
    """New Answer -> superseded Answer."""
    type: Literal["MODIFIES"] = "MODIFIES"
    reason: str = Field(min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)


Relationship = Annotated[
    Union[
        ContradictsEdge, BelongsToEdge, AlignsWithEdge,
        FollowsEdge, PrecedesEdge, ModifiesEdge,
    ],
    Field(discriminator="type"),
]
_RELATIONSHIP_ADAPTER: TypeAdapter = TypeAdapter(Relationship)


# ─── Store boundary ──────────────────────────────────────────────

@dataclass(frozen=True)
class StoredNode:
    """Raw node as returned by a GraphStore."""
    id: str
    labels: tuple[str, ...]
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredRelationship:
    """Raw relationship as returned by a GraphStore."""
    id: str
    from_id: str
    to_id: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)


class AnswerNode(BaseModel):
    """Answer as persisted in the graph (carries its owner)."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    question_id: str = Field(min_length=1)
    text: str
    timestamp: datetime
    modified: bool = False
    previous_version: str | None = None


GraphEntity = Union[Question, Framework, Stage, AnswerNode]

_NODE_MODELS: dict[str, type[BaseModel]] = {
    NodeLabel.QUESTION.value: Question,
    NodeLabel.FRAMEWORK.value: Framework,
    NodeLabel.STAGE.value: Stage,
    NodeLabel.ANSWER.value: AnswerNode,
}

M = TypeVar("M", bound=BaseModel)


def validate_entity(model_cls: type[M], data: dict[str, Any]) -> M:
    """Construct a model, translating pydantic errors to EntityValidationError."""
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or model_cls.__name__
        raise EntityValidationError(
            f"Invalid {model_cls.__name__}: {location}: {first['msg']}",
            field=location,
        ) from e


def decode_node(node: StoredNode) -> GraphEntity:
    """Decode a raw store node into its tagged variant by label."""
    for label in node.labels:
        model_cls = _NODE_MODELS.get(label)
        if model_cls is not None:
            return validate_entity(model_cls, node.properties)  # type: ignore[return-value]
    raise EntityValidationError(
        f"Node '{node.id}' has no known label: {list(node.labels)}", field="labels",
    )


def decode_relationship(rel: StoredRelationship) -> Relationship:
    """Decode a raw store relationship into its tagged variant by type."""
    data = {**rel.properties, "type": rel.type, "from_id": rel.from_id, "to_id": rel.to_id}
    try:
        return _RELATIONSHIP_ADAPTER.validate_python(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "relationship"
        raise EntityValidationError(
            f"Invalid {rel.type} relationship: {location}: {first['msg']}",
            field=location,
        ) from e


def node_properties(entity: BaseModel) -> dict[str, Any]:
    """JSON-safe property map for persisting an entity as a node."""
    return entity.model_dump(mode="json")
