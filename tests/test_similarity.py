import math

import numpy as np
import pytest

from agent_recall.core.errors import DimensionMismatchError
from agent_recall.domain.models import SearchScope
from agent_recall.services.similarity import SimilaritySearchEngine, cosine_similarity
from tests.conftest import make_chunk


class BrokenIndex:
    def __init__(self, available: bool = True):
        self._available = available
        self.queries = 0

    async def available(self) -> bool:
        return self._available

    async def query(self, vector, session_ids, top_k, threshold):
        self.queries += 1
        raise RuntimeError("index offline")


def test_cosine_bounds_on_random_pairs():
    rng = np.random.default_rng(7)
    for _ in range(200):
        a, b = rng.normal(size=8).tolist(), rng.normal(size=8).tolist()
        assert -1.0 <= cosine_similarity(a, b) <= 1.0


def test_cosine_of_vector_with_itself_is_one():
    vector = [0.3, -1.2, 4.5, 0.01]
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_cosine_of_opposites_is_minus_one():
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)


def test_zero_vector_scores_zero():
    score = cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0])
    assert score == 0.0
    assert not math.isnan(score)


def test_cosine_rejects_mismatched_lengths():
    with pytest.raises(DimensionMismatchError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


@pytest.mark.asyncio
async def test_empty_query_vector_returns_nothing(search, store):
    await store.add(make_chunk("s1", "anything", [1.0, 0.0, 0.0]))
    assert await search.find_similar([], SearchScope.for_sessions("s1"), top_k=5, threshold=0.0) == []


@pytest.mark.asyncio
async def test_agent_without_sessions_returns_nothing(search, directory):
    assert await search.find_similar([1.0, 0.0, 0.0], SearchScope.for_agent("ghost"), top_k=5, threshold=0.0) == []


async def _seed(store):
    chunks = [
        make_chunk("s1", "exact", [1.0, 0.0, 0.0], minutes_ago=30),
        make_chunk("s1", "close", [1.0, 1.0, 0.0], minutes_ago=20),
        make_chunk("s2", "exact newer", [2.0, 0.0, 0.0], minutes_ago=10),
        make_chunk("s2", "orthogonal", [0.0, 0.0, 1.0], minutes_ago=5),
        make_chunk("s2", "opposite", [-1.0, 0.0, 0.0], minutes_ago=1),
        make_chunk("s3", "other agent", [1.0, 0.0, 0.0], minutes_ago=0),
        make_chunk("s1", "no vector", None, minutes_ago=0),
    ]
    for chunk in chunks:
        await store.add(chunk)
    return chunks


@pytest.mark.asyncio
async def test_scan_orders_by_score_then_recency(store, directory):
    directory.sessions["agent"] = ["s1", "s2"]
    await _seed(store)
    engine = SimilaritySearchEngine(store, directory, index=None)

    results = await engine.find_similar([1.0, 0.0, 0.0], SearchScope.for_agent("agent"), top_k=5, threshold=0.5)

    assert [r.chunk.chunk for r in results] == ["exact newer", "exact", "close"]
    assert results[0].score == pytest.approx(1.0)
    assert results[2].score == pytest.approx(1 / math.sqrt(2))


@pytest.mark.asyncio
async def test_threshold_and_top_k(store, directory):
    directory.sessions["agent"] = ["s1", "s2"]
    await _seed(store)
    engine = SimilaritySearchEngine(store, directory, index=None)

    everything = await engine.find_similar([1.0, 0.0, 0.0], SearchScope.for_agent("agent"), top_k=10, threshold=-1.0)
    top_two = await engine.find_similar([1.0, 0.0, 0.0], SearchScope.for_agent("agent"), top_k=2, threshold=-1.0)

    assert [r.chunk.chunk for r in everything][-1] == "opposite"
    assert len(everything) == 5
    assert [r.chunk.chunk for r in top_two] == ["exact newer", "exact"]


@pytest.mark.asyncio
async def test_fast_path_matches_fallback(store, directory, index):
    directory.sessions["agent"] = ["s1", "s2"]
    await _seed(store)
    scope = SearchScope.for_agent("agent")
    fast = SimilaritySearchEngine(store, directory, index=index)
    slow = SimilaritySearchEngine(store, directory, index=None)

    for query in ([1.0, 0.0, 0.0], [0.5, 0.5, 0.1], [0.0, 0.2, 1.0]):
        fast_results = await fast.find_similar(query, scope, top_k=4, threshold=-1.0)
        slow_results = await slow.find_similar(query, scope, top_k=4, threshold=-1.0)
        assert [r.chunk.id for r in fast_results] == [r.chunk.id for r in slow_results]
        assert [r.score for r in fast_results] == pytest.approx([r.score for r in slow_results])


@pytest.mark.asyncio
async def test_failing_index_falls_back_to_scan(store, directory):
    directory.sessions["agent"] = ["s1", "s2"]
    await _seed(store)
    broken = BrokenIndex()
    engine = SimilaritySearchEngine(store, directory, index=broken)

    results = await engine.find_similar([1.0, 0.0, 0.0], SearchScope.for_agent("agent"), top_k=1, threshold=0.5)

    assert broken.queries == 1
    assert [r.chunk.chunk for r in results] == ["exact newer"]


@pytest.mark.asyncio
async def test_unavailable_index_is_not_queried(store, directory):
    await _seed(store)
    broken = BrokenIndex(available=False)
    engine = SimilaritySearchEngine(store, directory, index=broken)

    results = await engine.find_similar([1.0, 0.0, 0.0], SearchScope.for_sessions("s3"), top_k=5, threshold=0.5)

    assert broken.queries == 0
    assert [r.chunk.chunk for r in results] == ["other agent"]


@pytest.mark.asyncio
async def test_mismatched_stored_vector_is_skipped(store, directory):
    await store.add(make_chunk("s1", "legacy", [1.0, 0.0], minutes_ago=1))
    await store.add(make_chunk("s1", "current", [1.0, 0.0, 0.0], minutes_ago=2))
    engine = SimilaritySearchEngine(store, directory, index=None)

    results = await engine.find_similar([1.0, 0.0, 0.0], SearchScope.for_sessions("s1"), top_k=5, threshold=0.0)

    assert [r.chunk.chunk for r in results] == ["current"]


def test_scope_requires_exactly_one_target():
    with pytest.raises(ValueError):
        SearchScope()
    with pytest.raises(ValueError):
        SearchScope(session_ids=("s1",), agent_id="a1")


@pytest.mark.asyncio
async def test_fast_path_keeps_scope_when_other_sessions_are_closer(store, directory, index):
    directory.sessions["agent"] = ["s1"]
    for i in range(60):
        await store.add(make_chunk("crowd", f"crowd {i}", [1.0, 0.0, 0.0]))
    await store.add(make_chunk("s1", "in scope", [0.8, 0.6, 0.0]))
    scope = SearchScope.for_agent("agent")

    fast = await SimilaritySearchEngine(store, directory, index=index).find_similar(
        [1.0, 0.0, 0.0], scope, top_k=3, threshold=0.5
    )
    slow = await SimilaritySearchEngine(store, directory, index=None).find_similar(
        [1.0, 0.0, 0.0], scope, top_k=3, threshold=0.5
    )

    assert [r.chunk.chunk for r in fast] == ["in scope"]
    assert [r.chunk.id for r in fast] == [r.chunk.id for r in slow]


@pytest.mark.asyncio
async def test_tied_scores_break_on_recency_in_both_paths(store, directory, index):
    rng = np.random.default_rng(11)
    base = rng.normal(size=1536)
    for i, scale in enumerate((1.0, 3.0, 7.0, 0.1, 13.0)):
        await store.add(make_chunk("s1", f"c{i}", (base * scale).tolist(), minutes_ago=i + 1))
    query = (base + rng.normal(scale=0.01, size=1536)).tolist()
    scope = SearchScope.for_sessions("s1")

    fast = await SimilaritySearchEngine(store, directory, index=index).find_similar(query, scope, 5, -1.0)
    slow = await SimilaritySearchEngine(store, directory, index=None).find_similar(query, scope, 5, -1.0)

    assert [r.chunk.chunk for r in fast] == ["c0", "c1", "c2", "c3", "c4"]
    assert [r.chunk.id for r in fast] == [r.chunk.id for r in slow]


@pytest.mark.asyncio
async def test_scan_limit_only_considers_newest_chunks(store, directory, index):
    await store.add(make_chunk("s1", "old match", [1.0, 0.0, 0.0], minutes_ago=30))
    await store.add(make_chunk("s1", "newer", [0.7, 0.7, 0.0], minutes_ago=2))
    await store.add(make_chunk("s1", "newest", [0.0, 1.0, 0.0], minutes_ago=1))
    scope = SearchScope.for_sessions("s1")

    capped = SimilaritySearchEngine(store, directory, index=None, fallback_scan_limit=2)
    indexed = SimilaritySearchEngine(store, directory, index=index, fallback_scan_limit=2)

    capped_results = await capped.find_similar([1.0, 0.0, 0.0], scope, top_k=1, threshold=0.5)
    indexed_results = await indexed.find_similar([1.0, 0.0, 0.0], scope, top_k=1, threshold=0.5)

    assert [r.chunk.chunk for r in capped_results] == ["newer"]
    assert [r.chunk.chunk for r in indexed_results] == ["old match"]
