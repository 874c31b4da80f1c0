"""GraphRelationship ORM — typed, directed edges between graph nodes.

Invariants:
    - Connects two GraphNodes (from_id -> to_id); deleting a node deletes its edges
    - rel_type is the `type` of one of the typed edge models (validated in core, not in SQL)

Design Decisions:
    - No unique constraint on (from, to, type): MODIFIES chains and repeated
      PRECEDES links between the same nodes are legitimate
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from goodfaith.db.base import Base


class GraphRelationship(Base):
    """Directed typed edge with a JSON property map."""
    __tablename__ = "graph_relationships"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    from_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("graph_nodes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    to_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("graph_nodes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    rel_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    properties: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
