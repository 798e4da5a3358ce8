"""In-process cosine similarity index over memory embeddings."""

import threading
from collections.abc import Iterable, Sequence
from uuid import UUID

import numpy as np

from memorai.core.base import ValidationErrorDetails
from memorai.core.errors import ValidationError
from memorai.core.logging import get_logger
from memorai.domain.models import Memory

logger = get_logger(__name__)

_INITIAL_CAPACITY = 64


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 when either has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


class SimilarityIndex:
    """Brute-force cosine index kept in a growable numpy matrix.

    Rows carry the vector, its norm and an insertion sequence number used to
    break score ties in favour of the most recently inserted entry. Writers
    take a lock; readers copy the candidate rows under the same lock and do
    the scoring outside it.
    """

    def __init__(self, dimensions: int):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions
        self._lock = threading.Lock()
        self._reset(_INITIAL_CAPACITY)

    def _reset(self, capacity: int) -> None:
        self._ids: list[UUID] = []
        self._rows: dict[UUID, int] = {}
        self._vectors = np.zeros((capacity, self.dimensions), dtype=np.float64)
        self._norms = np.zeros(capacity, dtype=np.float64)
        self._seqs = np.zeros(capacity, dtype=np.int64)
        self._next_seq = 0

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._rows

    def _as_vector(self, vector: Sequence[float] | np.ndarray, operation: str) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float64)
        if array.ndim != 1 or array.shape[0] != self.dimensions:
            raise ValidationError(
                message=f"Vector has shape {array.shape}, expected ({self.dimensions},)",
                details=ValidationErrorDetails(
                    source="similarity_index",
                    operation=operation,
                    field="vector",
                    actual_value=list(array.shape),
                    constraint=f"len == {self.dimensions}",
                ),
            )
        return array

    def _grow(self) -> None:
        capacity = max(_INITIAL_CAPACITY, 2 * self._vectors.shape[0])
        self._vectors = np.resize(self._vectors, (capacity, self.dimensions))
        self._norms = np.resize(self._norms, capacity)
        self._seqs = np.resize(self._seqs, capacity)

    def _put_locked(self, memory_id: UUID, vector: np.ndarray) -> None:
        row = self._rows.get(memory_id)
        if row is None:
            if len(self._ids) == self._vectors.shape[0]:
                self._grow()
            row = len(self._ids)
            self._ids.append(memory_id)
            self._rows[memory_id] = row
            self._seqs[row] = self._next_seq
            self._next_seq += 1
        self._vectors[row] = vector
        self._norms[row] = np.linalg.norm(vector)

    def upsert(self, memory_id: UUID, vector: Sequence[float] | np.ndarray) -> None:
        """Insert or replace the vector for ``memory_id``.

        Replacing keeps the entry's original insertion sequence.
        """
        array = self._as_vector(vector, "upsert")
        with self._lock:
            self._put_locked(memory_id, array)

    def remove(self, memory_id: UUID) -> bool:
        """Drop ``memory_id``; False if it was not indexed."""
        with self._lock:
            row = self._rows.pop(memory_id, None)
            if row is None:
                return False
            last = len(self._ids) - 1
            if row != last:
                moved = self._ids[last]
                self._ids[row] = moved
                self._rows[moved] = row
                self._vectors[row] = self._vectors[last]
                self._norms[row] = self._norms[last]
                self._seqs[row] = self._seqs[last]
            self._ids.pop()
            return True

    def rebuild(self, memories: Iterable[Memory]) -> int:
        """Replace the whole index; insertion order follows ``memories``."""
        items = [(m.id, self._as_vector(m.embedding, "rebuild")) for m in memories]
        with self._lock:
            self._reset(max(_INITIAL_CAPACITY, len(items)))
            for memory_id, vector in items:
                self._put_locked(memory_id, vector)
            size = len(self._ids)
        logger.info(f"Similarity index rebuilt with {size} vectors")
        return size

    def top_k(
        self,
        query: Sequence[float] | np.ndarray,
        k: int,
        candidate_ids: Iterable[UUID] | None = None,
    ) -> list[tuple[UUID, float]]:
        """The ``k`` best (id, cosine score) pairs, best first.

        Equal scores are ordered most recently inserted first. When
        ``candidate_ids`` is given, only those ids that are indexed are scored.
        """
        if k <= 0:
            return []
        q = self._as_vector(query, "top_k")

        with self._lock:
            if candidate_ids is None:
                rows = np.arange(len(self._ids), dtype=np.intp)
            else:
                wanted = {self._rows[c] for c in candidate_ids if c in self._rows}
                rows = np.fromiter(sorted(wanted), dtype=np.intp, count=len(wanted))
            ids = [self._ids[r] for r in rows]
            # fancy indexing copies
            vectors = self._vectors[rows]
            norms = self._norms[rows]
            seqs = self._seqs[rows]

        if not ids:
            return []

        dots = vectors @ q
        denom = norms * np.linalg.norm(q)
        scores = np.divide(dots, denom, out=np.zeros_like(dots), where=denom > 0)
        np.clip(scores, -1.0, 1.0, out=scores)

        n = len(ids)
        k = min(k, n)
        if k < n:
            # keep every row tied with the k-th score so the tie-break is exact
            kth = scores[np.argpartition(-scores, k - 1)[k - 1]]
            chosen = np.flatnonzero(scores >= kth)
        else:
            chosen = np.arange(n)
        order = chosen[np.lexsort((-seqs[chosen], -scores[chosen]))][:k]
        return [(ids[i], float(scores[i])) for i in order]
