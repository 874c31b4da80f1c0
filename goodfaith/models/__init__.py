"""ORM Models — SQLAlchemy declarative models for the graph and session tables.

Invariants:
    - All models inherit from Base (db/base.py)
    - Graph nodes and relationships are schemaless (JSON labels/properties);
      typing happens in core/graph_model.py

Design Decisions:
    - One file per table for locality
    - All models imported here so Base.metadata.create_all sees every table
"""

from goodfaith.models.graph_node import GraphNode  # noqa: F401
from goodfaith.models.graph_relationship import GraphRelationship  # noqa: F401
from goodfaith.models.moral_session import MoralSessionRecord  # noqa: F401
