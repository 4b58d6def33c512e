# indexer.py
"""
Catalog items paired with their embedding matrix.

A CatalogIndex is an immutable snapshot: row i of the matrix is the vector
of item i. A changed catalog means building a new index, never editing one.
"""
from typing import Callable, Sequence
import logging

import numpy as np
from tqdm.auto import tqdm

from app_search.catalog import Item, item_text
from app_search.errors import DegenerateVectorError, IndexOutOfRangeError

logger = logging.getLogger(__name__)


class CatalogIndex:
    """Parallel item tuple + read-only (N, D) float32 matrix."""

    def __init__(self, items: Sequence[Item], matrix: np.ndarray, normalized: bool = True):
        matrix = np.array(matrix, dtype=np.float32, copy=True)
        if matrix.ndim != 2:
            raise ValueError(f"expected a 2-D matrix, got shape {matrix.shape}")
        if matrix.shape[0] != len(items):
            raise ValueError(f"{len(items)} items but {matrix.shape[0]} vectors")
        matrix.setflags(write=False)
        self._items = tuple(items)
        self._matrix = matrix
        self.normalized = normalized

    @classmethod
    def empty(cls) -> "CatalogIndex":
        return cls((), np.empty((0, 0), dtype=np.float32))

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def dim(self) -> int | None:
        """Vector dimensionality, None while the index is empty."""
        return self._matrix.shape[1] if self._items else None

    @property
    def matrix(self) -> np.ndarray:
        return self._matrix

    def items(self) -> tuple[Item, ...]:
        return self._items

    def _check(self, i: int):
        if not 0 <= i < len(self._items):
            raise IndexOutOfRangeError(i, len(self._items))

    def item_at(self, i: int) -> Item:
        self._check(i)
        return self._items[i]

    def vector_at(self, i: int) -> np.ndarray:
        self._check(i)
        return self._matrix[i]


def build(
    items: Sequence[Item],
    embed: Callable[[str], np.ndarray],
    show_progress: bool = False,
) -> CatalogIndex:
    """
    Embed every item and return a complete index.

    Items without an id are skipped before embedding; items whose text pools
    to a zero vector are left out of the index. Any other error from `embed`
    (EmbeddingProviderError in practice) aborts the build and nothing is
    returned, so a half-built index is never visible.
    """
    kept: list[Item] = []
    vecs: list[np.ndarray] = []
    skipped = 0
    for item in tqdm(items, desc="Embedding catalog", unit="item", disable=not show_progress):
        if not item.id.strip():
            skipped += 1
            continue
        try:
            vec = np.asarray(embed(item_text(item)), dtype=np.float32)
        except DegenerateVectorError:
            logger.warning("[Indexer] item %r has no usable embedding, excluded", item.id)
            skipped += 1
            continue
        if vecs and vec.shape != vecs[0].shape:
            raise ValueError(
                f"item {item.id!r} embedded to shape {vec.shape}, expected {vecs[0].shape}"
            )
        kept.append(item)
        vecs.append(vec)

    if not vecs:
        logger.info("[Indexer] built empty index (%d items excluded)", skipped)
        return CatalogIndex.empty()

    index = CatalogIndex(kept, np.vstack(vecs))
    logger.info("[Indexer] built %d items (dim=%d, %d excluded)", index.size(), index.dim, skipped)
    return index
