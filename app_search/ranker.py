# ranker.py
"""Scores a query vector against a CatalogIndex and returns the top k."""
from dataclasses import dataclass

import numpy as np

from app_search.catalog import Item
from app_search.errors import DegenerateVectorError, DimensionMismatchError
from app_search.indexer import CatalogIndex


@dataclass(frozen=True)
class ScoredResult:
    item: Item
    score: float

    def to_dict(self) -> dict:
        return {**self.item.to_dict(), "score": self.score}


def cosine_similarity(vec1, vec2) -> float:
    """
    Compute cosine similarity between two vectors.
    """
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)
    if v1.shape != v2.shape:
        raise DimensionMismatchError(v1.shape, v2.shape)

    norm_v1 = np.linalg.norm(v1)
    norm_v2 = np.linalg.norm(v2)
    if norm_v1 == 0 or norm_v2 == 0:
        raise DegenerateVectorError(
            "One of the vectors is zero-length; cannot compute cosine similarity."
        )
    return float(np.dot(v1, v2) / (norm_v1 * norm_v2))


def _scores(query: np.ndarray, matrix: np.ndarray, normalized: bool) -> np.ndarray:
    if normalized:
        # rows and query are unit length, so the dot product is the cosine
        return matrix.astype(np.float64) @ query
    q_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix.astype(np.float64), axis=1)
    if q_norm == 0 or np.any(row_norms == 0):
        raise DegenerateVectorError("zero-length vector in cosine similarity")
    return (matrix.astype(np.float64) @ query) / (row_norms * q_norm)


def rank(
    query,
    index: CatalogIndex,
    k: int,
    normalized: bool | None = None,
) -> list[ScoredResult]:
    """
    Top `k` items of `index` by descending similarity to `query`.

    Equal scores keep catalog order. `k <= 0` gives an empty list. The dot
    product shortcut relies on both sides being L2-normalised; pass
    `normalized=False` (or use an index built without normalisation) to
    get the full cosine formula instead.
    """
    if k <= 0 or index.size() == 0:
        return []

    q = np.asarray(query, dtype=np.float64)
    if q.ndim != 1 or q.shape[0] != index.dim:
        raise DimensionMismatchError(index.dim, q.shape)
    if not np.all(np.isfinite(q)):
        raise DegenerateVectorError("query vector has non-finite values")

    if normalized is None:
        normalized = index.normalized
    sims = np.clip(_scores(q, index.matrix, normalized), -1.0, 1.0)

    # stable sort on the negated scores: ties stay in ascending catalog position
    best = np.argsort(-sims, kind="stable")[:k]
    return [ScoredResult(index.item_at(int(i)), float(sims[i])) for i in best]
