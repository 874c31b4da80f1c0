"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection
    - Store identifiers are opaque strings

Design Decisions:
    - Protocol over ABC: structural subtyping, deterministic test doubles need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions that USE these protocols are never async themselves —
      the shell orchestrates the async calls around the pure logic
    - GraphStore speaks StoredNode/StoredRelationship; decoding into typed variants
      happens in core/graph_model.py
"""

from typing import Literal, Protocol

from goodfaith.core.graph_model import StoredNode, StoredRelationship

Direction = Literal["outgoing", "incoming", "both"]


class GraphStore(Protocol):
    """Contract for the durable graph — implemented by shell."""
    async def create_node(self, labels: list[str], properties: dict) -> StoredNode: ...
    async def find_nodes(
        self, label: str, property_filter: dict | None = None,
    ) -> list[StoredNode]: ...
    async def find_node_by_id(self, node_id: str) -> StoredNode | None: ...
    async def update_node(self, node_id: str, properties: dict) -> StoredNode: ...
    async def create_relationship(
        self, from_id: str, to_id: str, rel_type: str, properties: dict | None = None,
    ) -> StoredRelationship: ...
    async def traverse(
        self, start_id: str, rel_type: str | None = None, direction: Direction = "outgoing",
    ) -> list[tuple[StoredRelationship, StoredNode]]: ...


class SessionStore(Protocol):
    """Contract for per-user session snapshot persistence — implemented by shell."""
    async def load(self, user_id: str) -> dict | None: ...
    async def save(self, user_id: str, snapshot: dict) -> None: ...


class InferenceOracle(Protocol):
    """Contract for free-text generation — implemented by shell."""
    async def generate(
        self, model: str, prompt: str, temperature: float, max_tokens: int,
    ) -> str: ...


class EmbeddingOracle(Protocol):
    """Contract for fixed-length text embeddings — implemented by shell."""
    async def embed(self, text: str) -> list[float]: ...


class VectorIndex(Protocol):
    """Nearest-neighbour index over embeddings; distances are L2 over normalised vectors."""
    def add(self, key: str, vector: list[float]) -> None: ...
    def nearest_neighbors(self, vector: list[float], k: int) -> list[tuple[str, float]]: ...
    def __len__(self) -> int: ...
    def __contains__(self, key: object) -> bool: ...
