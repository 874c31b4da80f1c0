"""Knowledge Base — reference questions, frameworks and stages held in the graph store.

Invariants:
    - Seeding runs only against a store with no Stage nodes (idempotent across restarts)
    - Every seeded question BELONGS_TO its stage; stages are chained by FOLLOWS
    - ALIGNS_WITH strength = share of a question's tags overlapping a framework principle;
      zero-strength links are not written
    - Reference data is read-only after load(), except for generated questions
    - Embedding indexing is best-effort: failures are logged, never raised
    - Generated questions are visible only to the user they were generated for

Design Decisions:
    - In-memory copies of reference data after load(): every engine call needs the
      whole question map, and the store is only re-read on restart
"""

import logging
from collections.abc import Sequence

from goodfaith.core.domain_types import (
    DEFAULT_REQUIRED_ANSWERS, InfluenceType, NodeLabel, QuestionOrigin,
)
from goodfaith.core.errors import OracleUnavailableError
from goodfaith.core.framework_alignment import tag_matches_principle
from goodfaith.core.graph_model import (
    AlignsWithEdge, BelongsToEdge, Framework, FollowsEdge, PrecedesEdge, Question,
    Stage, decode_node, node_properties,
)
from goodfaith.core.repository_protocols import EmbeddingOracle, GraphStore, VectorIndex
from goodfaith.core.seed_data import seed_frameworks, seed_questions, seed_stages
from goodfaith.services.oracle_gateway import embed_with_timeout

logger = logging.getLogger(__name__)


def alignment_strength(question: Question, framework: Framework) -> float:
    if not question.tags:
        return 0.0
    hits = sum(
        1 for tag in question.tags
        if any(tag_matches_principle(tag, p) for p in framework.principles)
    )
    return round(hits / len(question.tags), 4)


def stage_node_properties(stage: Stage) -> dict:
    return {"id": stage.node_id, **node_properties(stage)}


class KnowledgeBase:
    """Owns reference data: seeding, loading, lookup and question indexing."""

    def __init__(
        self,
        store: GraphStore,
        embedder: EmbeddingOracle | None = None,
        index: VectorIndex | None = None,
        timeout_seconds: float = 60.0,
        required_answers: int = DEFAULT_REQUIRED_ANSWERS,
    ):
        self.store = store
        self.required_answers = required_answers
        self.embedder = embedder
        self.index = index
        self.timeout_seconds = timeout_seconds
        self.questions: dict[str, Question] = {}
        self.frameworks: list[Framework] = []
        self.stages: list[Stage] = []

    # --- Lifecycle -------------------------------------------------------------

    async def ensure_seeded(self) -> bool:
        """Seed an empty store, then load. Returns True if seeding happened."""
        seeded = False
        if not await self.store.find_nodes(NodeLabel.STAGE.value):
            await self._seed(
                seed_stages(self.required_answers), seed_questions(), seed_frameworks(),
            )
            seeded = True
        await self.load()
        await self.index_questions(list(self.questions.values()))
        return seeded

    async def load(self) -> None:
        stages = [decode_node(n) for n in await self.store.find_nodes(NodeLabel.STAGE.value)]
        frameworks = [
            decode_node(n) for n in await self.store.find_nodes(NodeLabel.FRAMEWORK.value)
        ]
        questions = [
            decode_node(n) for n in await self.store.find_nodes(NodeLabel.QUESTION.value)
        ]
        self.stages = sorted(
            (s for s in stages if isinstance(s, Stage)), key=lambda s: s.number,
        )
        self.frameworks = [f for f in frameworks if isinstance(f, Framework)]
        self.questions = {q.id: q for q in questions if isinstance(q, Question)}
        logger.info(
            f"Knowledge base loaded: {len(self.stages)} stages, "
            f"{len(self.frameworks)} frameworks, {len(self.questions)} questions",
        )

    async def _seed(
        self,
        stages: Sequence[Stage],
        questions: Sequence[Question],
        frameworks: Sequence[Framework],
    ) -> None:
        for stage in stages:
            await self.store.create_node([NodeLabel.STAGE.value], stage_node_properties(stage))
        ordered = sorted(stages, key=lambda s: s.number)
        for order, (current, nxt) in enumerate(zip(ordered, ordered[1:]), start=1):
            await self._link(FollowsEdge(
                from_id=current.node_id, to_id=nxt.node_id, order=order,
            ))

        for framework in frameworks:
            await self.store.create_node(
                [NodeLabel.FRAMEWORK.value], node_properties(framework),
            )

        per_stage: dict[int, int] = {}
        for question in questions:
            await self.store.create_node([NodeLabel.QUESTION.value], node_properties(question))
            order = per_stage.get(question.stage, 0)
            per_stage[question.stage] = order + 1
            await self._link(BelongsToEdge(
                from_id=question.id, to_id=f"stage-{question.stage}",
                stage_number=question.stage, order=order,
            ))
            for framework in frameworks:
                strength = alignment_strength(question, framework)
                if strength > 0:
                    await self._link(AlignsWithEdge(
                        from_id=question.id, to_id=framework.id, strength=strength,
                        reasoning=f"tags {', '.join(question.tags)} overlap "
                                  f"{framework.name} principles",
                    ))
        logger.info(
            f"Knowledge base seeded: {len(stages)} stages, {len(frameworks)} frameworks, "
            f"{len(questions)} questions",
        )

    async def _link(self, edge) -> None:
        await self.store.create_relationship(
            edge.from_id, edge.to_id, edge.type, edge.properties(),
        )

    # --- Lookup ----------------------------------------------------------------

    @property
    def stage_count(self) -> int:
        return max((s.number for s in self.stages), default=0)

    def stage(self, number: int) -> Stage | None:
        for stage in self.stages:
            if stage.number == number:
                return stage
        return None

    def question(self, question_id: str) -> Question | None:
        return self.questions.get(question_id)

    def questions_for_stage(self, stage: int, user_id: str) -> list[Question]:
        return [
            q for q in self.questions.values()
            if q.stage == stage
            and (q.origin == QuestionOrigin.SEED or q.generated_for_user == user_id)
        ]

    # --- Mutation --------------------------------------------------------------

    async def add_generated_question(
        self, question: Question, preceding_answer_ids: Sequence[str] = (),
    ) -> Question:
        """Persist a generated question, link it to its stage and its source answers."""
        await self.store.create_node([NodeLabel.QUESTION.value], node_properties(question))
        await self._link(BelongsToEdge(
            from_id=question.id, to_id=f"stage-{question.stage}",
            stage_number=question.stage,
        ))
        total = len(preceding_answer_ids)
        for position, answer_id in enumerate(preceding_answer_ids, start=1):
            # Most recent answer last: direct influence, full weight.
            await self._link(PrecedesEdge(
                from_id=answer_id, to_id=question.id,
                influence_type=(
                    InfluenceType.DIRECT if position == total else InfluenceType.INDIRECT
                ),
                weight=round(position / total, 4),
            ))
        self.questions[question.id] = question
        await self.index_questions([question])
        return question

    async def index_questions(self, questions: Sequence[Question]) -> int:
        """Embed and index questions not yet indexed. Returns the number added."""
        if self.embedder is None or self.index is None:
            return 0
        added = 0
        for question in questions:
            if question.id in self.index:
                continue
            try:
                vector = await embed_with_timeout(
                    self.embedder, question.text, timeout_seconds=self.timeout_seconds,
                )
                self.index.add(question.id, vector)
                added += 1
            except OracleUnavailableError as e:
                logger.warning(
                    f"Embedding oracle unavailable, question indexing stopped: {e.message}",
                    extra={"question_id": question.id, "error_code": e.code},
                )
                break
            except ValueError as e:
                logger.warning(
                    f"Question embedding skipped: {e}",
                    extra={"question_id": question.id},
                )
        return added
