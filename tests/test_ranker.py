import numpy as np
import pytest

from app_search.catalog import Item
from app_search.errors import DegenerateVectorError, DimensionMismatchError
from app_search.indexer import CatalogIndex
from app_search.pooling import l2_normalize
from app_search.ranker import cosine_similarity, rank


def _index(vectors, normalized=True) -> CatalogIndex:
    items = [Item(id=str(i)) for i in range(len(vectors))]
    if normalized:
        vectors = [l2_normalize(v) for v in vectors]
    return CatalogIndex(items, np.array(vectors, dtype=np.float32), normalized=normalized)


@pytest.fixture
def index() -> CatalogIndex:
    return _index([[1, 0, 0], [0, 1, 0], [1, 1, 0], [0, 0, 1], [-1, 0, 0]])


def test_results_are_sorted_by_descending_score(index):
    results = rank(l2_normalize([1, 0.2, 0]), index, 5)
    assert [r.item.id for r in results] == ["0", "2", "1", "3", "4"]
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert all(-1.0 <= s <= 1.0 for s in scores)
    assert results[-1].score == pytest.approx(-0.98058, abs=1e-4)


def test_ties_keep_catalog_order():
    index = _index([[0, 1], [1, 0], [0, 1], [1, 0], [0, 1]])
    results = rank(l2_normalize([1, 0]), index, 5)
    assert [r.item.id for r in results] == ["1", "3", "0", "2", "4"]


def test_rank_is_deterministic(index):
    q = l2_normalize([0.3, 0.3, 0.9])
    first = rank(q, index, 5)
    second = rank(q, index, 5)
    assert first == second
    assert [r.score for r in first] == [r.score for r in second]


@pytest.mark.parametrize("k,expected", [(0, 0), (-3, 0), (1, 1), (3, 3), (5, 5), (50, 5)])
def test_top_k_truncation(index, k, expected):
    assert len(rank(l2_normalize([1, 1, 1]), index, k)) == expected


def test_zero_k_on_mismatched_query_is_still_empty(index):
    assert rank([1.0, 0.0], index, 0) == []


@pytest.mark.parametrize("query", [[1.0, 0.0], [1.0, 0.0, 0.0, 0.0], [[1.0, 0.0, 0.0]]])
def test_dimension_mismatch(index, query):
    with pytest.raises(DimensionMismatchError):
        rank(query, index, 3)


def test_non_finite_query_is_rejected(index):
    with pytest.raises(DegenerateVectorError):
        rank([np.nan, 0.0, 0.0], index, 3)


def test_empty_index_returns_nothing():
    assert rank([1.0, 0.0], CatalogIndex.empty(), 9) == []


def test_full_cosine_on_unnormalized_index():
    raw = [[10, 0], [0, 3], [4, 4]]
    index = _index(raw, normalized=False)
    results = rank([0.0, 2.0], index, 3)
    assert [r.item.id for r in results] == ["1", "2", "0"]
    assert results[0].score == pytest.approx(1.0)
    assert results[1].score == pytest.approx(cosine_similarity([4, 4], [0, 2]))


def test_normalized_flag_overrides_index(index):
    q = [0.0, 0.0, 0.5]
    assert rank(q, index, 1, normalized=False)[0].score == pytest.approx(1.0)
    assert rank(q, index, 1)[0].score == pytest.approx(0.5)


def test_rank_does_not_touch_the_index(index):
    before = index.matrix.copy()
    rank(l2_normalize([1, 2, 3]), index, 2)
    np.testing.assert_array_equal(index.matrix, before)


def test_cosine_similarity_zero_vector():
    with pytest.raises(DegenerateVectorError):
        cosine_similarity([0, 0], [1, 0])
