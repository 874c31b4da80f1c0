"""GraphNode ORM — one row per node in the moral-reasoning knowledge graph.

Invariants:
    - id is an opaque string (question ids, "stage-N" ids and uuid4 answer ids share one space)
    - labels is a non-empty JSON list; label_key mirrors it as "|A|B|" for portable filtering
    - properties is the node's JSON property map, decoded only by core/graph_model.py

Design Decisions:
    - JSON columns over a property table: nodes are read whole, never queried by
      arbitrary property in SQL
    - String primary key (not UUID type): the same schema runs on SQLite and Postgres
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from goodfaith.db.base import Base


def label_key(labels: list[str]) -> str:
    return "|" + "|".join(labels) + "|"


class GraphNode(Base):
    """A labelled node with a JSON property map."""
    __tablename__ = "graph_nodes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    labels: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    label_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    properties: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
