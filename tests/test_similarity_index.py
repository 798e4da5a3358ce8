"""Tests for the in-process similarity index."""

import math
from datetime import timedelta
from uuid import uuid4

import pytest

from memorai.core.errors import ValidationError
from memorai.domain.models import Memory, utc_now
from memorai.services.similarity_index import SimilarityIndex, cosine_similarity


class TestCosineSimilarity:
    def test_identical_vectors_score_one(self):
        assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)

    def test_opposite_vectors_score_minus_one(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors_score_zero(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == pytest.approx(0.0)

    def test_zero_norm_scores_zero_not_nan(self):
        score = cosine_similarity([0.0, 0.0], [1.0, 1.0])
        assert score == 0.0
        assert not math.isnan(score)


class TestUpsertAndRemove:
    def test_len_and_contains(self):
        index = SimilarityIndex(3)
        a, b = uuid4(), uuid4()
        index.upsert(a, [1, 0, 0])
        index.upsert(b, [0, 1, 0])

        assert len(index) == 2
        assert a in index
        assert uuid4() not in index

    def test_upsert_replaces_vector(self):
        index = SimilarityIndex(2)
        a = uuid4()
        index.upsert(a, [1, 0])
        index.upsert(a, [0, 1])

        assert len(index) == 1
        [(memory_id, score)] = index.top_k([0, 1], 1)
        assert memory_id == a
        assert score == pytest.approx(1.0)

    def test_remove_reports_whether_present(self):
        index = SimilarityIndex(2)
        a, b, c = uuid4(), uuid4(), uuid4()
        for memory_id in (a, b, c):
            index.upsert(memory_id, [1, 1])

        assert index.remove(a) is True
        assert index.remove(a) is False
        assert len(index) == 2
        assert {memory_id for memory_id, _ in index.top_k([1, 1], 10)} == {b, c}

    def test_grows_past_initial_capacity(self):
        index = SimilarityIndex(2)
        ids = [uuid4() for _ in range(200)]
        for i, memory_id in enumerate(ids):
            index.upsert(memory_id, [1.0, float(i)])

        assert len(index) == 200
        assert all(memory_id in index for memory_id in ids)

    def test_dimension_mismatch_rejected(self):
        index = SimilarityIndex(3)
        with pytest.raises(ValidationError):
            index.upsert(uuid4(), [1.0, 2.0])


class TestTopK:
    def test_returns_min_of_k_and_size_sorted(self):
        index = SimilarityIndex(2)
        for i in range(5):
            index.upsert(uuid4(), [1.0, float(i)])

        results = index.top_k([1.0, 0.0], 3)
        assert len(results) == 3
        scores = [score for _, score in results]
        assert scores == sorted(scores, reverse=True)

        assert len(index.top_k([1.0, 0.0], 50)) == 5

    def test_best_match_first(self):
        index = SimilarityIndex(3)
        near, far = uuid4(), uuid4()
        index.upsert(far, [0, 0, 1])
        index.upsert(near, [1, 0.1, 0])

        assert index.top_k([1, 0, 0], 2)[0][0] == near

    def test_non_positive_k_is_empty(self):
        index = SimilarityIndex(2)
        index.upsert(uuid4(), [1, 0])

        assert index.top_k([1, 0], 0) == []
        assert index.top_k([1, 0], -3) == []

    def test_empty_index(self):
        assert SimilarityIndex(2).top_k([1, 0], 5) == []

    def test_zero_query_scores_every_candidate_zero(self):
        index = SimilarityIndex(2)
        for vector in ([1, 0], [0, 1], [3, 4]):
            index.upsert(uuid4(), vector)

        results = index.top_k([0, 0], 10)
        assert len(results) == 3
        assert all(score == 0.0 for _, score in results)

    def test_ties_prefer_most_recent_insert(self):
        index = SimilarityIndex(2)
        first, second, third = uuid4(), uuid4(), uuid4()
        for memory_id in (first, second, third):
            index.upsert(memory_id, [1, 1])

        assert [memory_id for memory_id, _ in index.top_k([1, 1], 3)] == [third, second, first]
        # the boundary tie is resolved the same way when k cuts through it
        assert [memory_id for memory_id, _ in index.top_k([1, 1], 2)] == [third, second]

    def test_candidate_ids_restrict_search(self):
        index = SimilarityIndex(2)
        best, allowed, unknown = uuid4(), uuid4(), uuid4()
        index.upsert(best, [1, 0])
        index.upsert(allowed, [1, 1])

        results = index.top_k([1, 0], 5, candidate_ids=[allowed, unknown])
        assert [memory_id for memory_id, _ in results] == [allowed]

    def test_query_dimension_mismatch_rejected(self):
        index = SimilarityIndex(2)
        with pytest.raises(ValidationError):
            index.top_k([1, 0, 0], 1)


class TestRebuild:
    def test_rebuild_replaces_contents_in_given_order(self):
        index = SimilarityIndex(2)
        stale = uuid4()
        index.upsert(stale, [1, 0])

        now = utc_now()
        older = Memory(text="older", embedding=[1, 1], created_at=now - timedelta(days=1))
        newer = Memory(text="newer", embedding=[1, 1], created_at=now)

        assert index.rebuild([older, newer]) == 2
        assert stale not in index
        # rebuild order is insertion order, so the newer memory wins the tie
        assert [memory_id for memory_id, _ in index.top_k([1, 1], 2)] == [newer.id, older.id]
