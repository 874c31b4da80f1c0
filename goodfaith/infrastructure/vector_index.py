"""Flat Vector Index — exact nearest-neighbour search over L2-normalised embeddings (numpy).

Invariants:
    - Vectors are L2-normalised on insert and on query
    - Distances are squared L2 (flat-L2 convention): within [0, 4] for unit vectors,
      so similarity = 1 - distance lies in [-3, 1]
    - Dimension is fixed by the first vector unless given up front; mismatches raise ValueError
    - Re-adding a key replaces its vector

Design Decisions:
    - Brute-force matrix product: the question bank is small, exact search is cheap
    - In-memory only: the index is rebuilt from the graph at startup
"""

import numpy as np


class FlatVectorIndex:
    """In-memory exact k-NN over normalised float32 vectors."""

    def __init__(self, dimension: int | None = None):
        self.dimension = dimension
        self._keys: list[str] = []
        self._positions: dict[str, int] = {}
        self._matrix = np.zeros((0, dimension or 0), dtype=np.float32)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def _normalise(self, vector: list[float]) -> np.ndarray:
        arr = np.asarray(vector, dtype=np.float32)
        if arr.ndim != 1 or arr.size == 0:
            raise ValueError("vector must be a non-empty 1-D sequence")
        if self.dimension is not None and arr.size != self.dimension:
            raise ValueError(
                f"vector dimension {arr.size} does not match index dimension {self.dimension}"
            )
        norm = float(np.linalg.norm(arr))
        return arr / norm if norm > 0 else arr

    def add(self, key: str, vector: list[float]) -> None:
        arr = self._normalise(vector)
        if self.dimension is None:
            self.dimension = int(arr.size)
            self._matrix = np.zeros((0, self.dimension), dtype=np.float32)
        if key in self._positions:
            self._matrix[self._positions[key]] = arr
            return
        self._positions[key] = len(self._keys)
        self._keys.append(key)
        self._matrix = np.vstack([self._matrix, arr[np.newaxis, :]])

    def nearest_neighbors(self, vector: list[float], k: int) -> list[tuple[str, float]]:
        """Up to k (key, distance) pairs, closest first."""
        if k <= 0 or not self._keys:
            return []
        query = self._normalise(vector)
        distances = np.sum((self._matrix - query) ** 2, axis=1)
        order = np.argsort(distances, kind="stable")[:k]
        return [(self._keys[i], float(distances[i])) for i in order]
