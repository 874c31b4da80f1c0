"""SQL Graph Store — GraphStore protocol implemented on SQLAlchemy async.

Invariants:
    - Node id is properties["id"] when present, else a fresh uuid4
    - Relationships are validated against the typed edge models before insert
    - Both endpoints must exist before a relationship is created
    - Every call runs in its own session and commits before returning
    - SQLAlchemy failures surface as GraphStoreError (via DatabaseSessionManager)

Design Decisions:
    - Property filters run in Python after the label filter: JSON path operators
      differ between SQLite and Postgres, and node counts per label are small
    - Returns StoredNode/StoredRelationship, never ORM rows: callers cannot
      lazy-load outside a session
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select

from goodfaith.core.errors import GraphStoreError, ResourceNotFoundError
from goodfaith.core.graph_model import (
    StoredNode, StoredRelationship, decode_relationship,
)
from goodfaith.core.repository_protocols import Direction
from goodfaith.infrastructure.database import DatabaseSessionManager
from goodfaith.models.graph_node import GraphNode, label_key
from goodfaith.models.graph_relationship import GraphRelationship

logger = logging.getLogger(__name__)


def _to_node(row: GraphNode) -> StoredNode:
    return StoredNode(id=row.id, labels=tuple(row.labels), properties=dict(row.properties))


def _to_relationship(row: GraphRelationship) -> StoredRelationship:
    return StoredRelationship(
        id=row.id, from_id=row.from_id, to_id=row.to_id,
        type=row.rel_type, properties=dict(row.properties),
    )


def _matches(properties: dict, property_filter: dict | None) -> bool:
    if not property_filter:
        return True
    return all(properties.get(k) == v for k, v in property_filter.items())


class SqlGraphStore:
    """Graph persistence over the graph_nodes / graph_relationships tables."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    async def create_node(self, labels: list[str], properties: dict) -> StoredNode:
        if not labels:
            raise GraphStoreError("a node needs at least one label", "create_node")
        node_id = str(properties.get("id") or uuid.uuid4())
        async with self.db.session() as session:
            if await session.get(GraphNode, node_id) is not None:
                raise GraphStoreError(f"node '{node_id}' already exists", "create_node")
            row = GraphNode(
                id=node_id,
                labels=list(labels),
                label_key=label_key(list(labels)),
                properties=dict(properties),
            )
            session.add(row)
            await session.commit()
            return _to_node(row)

    async def find_nodes(
        self, label: str, property_filter: dict | None = None,
    ) -> list[StoredNode]:
        async with self.db.session() as session:
            result = await session.execute(
                select(GraphNode)
                .where(GraphNode.label_key.like(f"%|{label}|%"))
                .order_by(GraphNode.created_at, GraphNode.id)
            )
            rows = result.scalars().all()
        return [_to_node(r) for r in rows if _matches(r.properties, property_filter)]

    async def find_node_by_id(self, node_id: str) -> StoredNode | None:
        async with self.db.session() as session:
            row = await session.get(GraphNode, node_id)
            return _to_node(row) if row is not None else None

    async def update_node(self, node_id: str, properties: dict) -> StoredNode:
        """Merge `properties` into the node's property map."""
        async with self.db.session() as session:
            row = await session.get(GraphNode, node_id)
            if row is None:
                raise ResourceNotFoundError("Node", node_id)
            row.properties = {**row.properties, **properties}
            row.updated_at = datetime.now(timezone.utc)
            await session.commit()
            return _to_node(row)

    async def create_relationship(
        self, from_id: str, to_id: str, rel_type: str, properties: dict | None = None,
    ) -> StoredRelationship:
        candidate = StoredRelationship(
            id=str(uuid.uuid4()), from_id=from_id, to_id=to_id,
            type=rel_type, properties=dict(properties or {}),
        )
        decode_relationship(candidate)

        async with self.db.session() as session:
            for endpoint in (from_id, to_id):
                if await session.get(GraphNode, endpoint) is None:
                    raise ResourceNotFoundError("Node", endpoint)
            row = GraphRelationship(
                id=candidate.id, from_id=from_id, to_id=to_id,
                rel_type=rel_type, properties=candidate.properties,
            )
            session.add(row)
            await session.commit()
        logger.debug(f"Created {rel_type} {from_id} -> {to_id}")
        return candidate

    async def traverse(
        self, start_id: str, rel_type: str | None = None, direction: Direction = "outgoing",
    ) -> list[tuple[StoredRelationship, StoredNode]]:
        """One hop from start_id: (relationship, node at the other end) pairs."""
        if direction == "outgoing":
            condition = GraphRelationship.from_id == start_id
        elif direction == "incoming":
            condition = GraphRelationship.to_id == start_id
        else:
            condition = or_(
                GraphRelationship.from_id == start_id,
                GraphRelationship.to_id == start_id,
            )
        stmt = select(GraphRelationship).where(condition)
        if rel_type is not None:
            stmt = stmt.where(GraphRelationship.rel_type == rel_type)
        stmt = stmt.order_by(GraphRelationship.created_at, GraphRelationship.id)

        async with self.db.session() as session:
            rels = (await session.execute(stmt)).scalars().all()
            other_ids = {r.to_id if r.from_id == start_id else r.from_id for r in rels}
            nodes: dict[str, GraphNode] = {}
            if other_ids:
                found = await session.execute(
                    select(GraphNode).where(GraphNode.id.in_(other_ids))
                )
                nodes = {n.id: n for n in found.scalars().all()}

        hops = []
        for rel in rels:
            other = rel.to_id if rel.from_id == start_id else rel.from_id
            if other in nodes:
                hops.append((_to_relationship(rel), _to_node(nodes[other])))
        return hops
