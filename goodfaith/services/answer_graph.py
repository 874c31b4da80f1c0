"""Answer Graph — writes a session's answers and contradictions into the knowledge graph.

Invariants:
    - Every stored answer version is its own Answer node (superseded nodes are kept)
    - MODIFIES points from the new answer node to the one it replaced
    - CONTRADICTS links the two answer nodes current at detection time
    - Edge properties are produced by the typed edge models (validated before write)
"""

from goodfaith.core.domain_types import NodeLabel
from goodfaith.core.graph_model import (
    Answer, AnswerNode, Contradiction, ContradictsEdge, ModifiesEdge, node_properties,
)
from goodfaith.core.repository_protocols import GraphStore


class AnswerGraph:
    """Graph writes for session-owned data."""

    def __init__(self, store: GraphStore):
        self.store = store

    async def add_answer(
        self, user_id: str, answer: Answer, reason: str = "answer revised",
    ) -> None:
        """Write the answer node; a superseding answer also gets MODIFIES to its predecessor."""
        node = AnswerNode(
            id=answer.id,
            user_id=user_id,
            question_id=answer.question_id,
            text=answer.text,
            timestamp=answer.timestamp,
            modified=answer.modified,
            previous_version=(
                answer.previous_version.answer_id if answer.previous_version else None
            ),
        )
        await self.store.create_node([NodeLabel.ANSWER.value], node_properties(node))
        if answer.previous_version is not None:
            edge = ModifiesEdge(
                from_id=answer.id,
                to_id=answer.previous_version.answer_id,
                reason=reason,
                timestamp=answer.timestamp,
            )
            await self.store.create_relationship(
                edge.from_id, edge.to_id, edge.type, edge.properties(),
            )

    async def add_contradiction(
        self,
        user_id: str,
        contradiction: Contradiction,
        from_answer_id: str,
        to_answer_id: str,
    ) -> None:
        edge = ContradictsEdge(
            from_id=from_answer_id,
            to_id=to_answer_id,
            contradiction_id=contradiction.id,
            user_id=user_id,
            explanation=contradiction.explanation,
            confidence=contradiction.confidence,
            resolved=contradiction.resolved,
        )
        await self.store.create_relationship(
            edge.from_id, edge.to_id, edge.type, edge.properties(),
        )
