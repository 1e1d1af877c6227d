"""Neo4j-backed store and index against a scripted driver (no database)."""

import pytest

from agent_recall.infrastructure.neo4j import Neo4jVectorIndex
from agent_recall.infrastructure.neo4j.queries import VectorIndexQueries
from agent_recall.infrastructure.repositories import Neo4jMemoryStore
from tests.conftest import DIMENSIONS, make_chunk


class FakeResult:
    def __init__(self, records):
        self._records = list(records)

    async def single(self):
        return self._records[0] if self._records else None

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for record in self._records:
            yield record


class FakeSession:
    def __init__(self, driver):
        self.driver = driver

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def run(self, query, **params):
        self.driver.runs.append((query, params))
        responder = self.driver.responses.pop(0)
        return FakeResult(responder(params) if callable(responder) else responder)


class FakeDriver:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.runs: list[tuple[str, dict]] = []

    def session(self):
        return FakeSession(self)


@pytest.mark.asyncio
async def test_save_writes_chunk_under_session(embedder, directory):
    driver = FakeDriver(lambda params: [{"m": params["properties"]}])
    store = Neo4jMemoryStore(driver, embedder, directory, dimensions=DIMENSIONS)

    chunk = await store.save("s1", "user: hi")

    query, params = driver.runs[0]
    assert "MERGE (s:ChatSession {id: $session_id})" in query
    assert "[:HAS_MEMORY]" in query
    assert params["session_id"] == "s1"
    assert params["properties"]["vector"] == [1.0, 0.0, 0.0]
    assert params["properties"]["id"] == str(chunk.id)


@pytest.mark.asyncio
async def test_load_for_agent_dedupes_records(embedder, directory):
    directory.sessions["agent"] = ["s1", "s2"]
    newer = make_chunk("s2", "newer", [1.0, 0.0, 0.0], minutes_ago=1)
    older = make_chunk("s1", "older", None, minutes_ago=5)
    rows = [{"m": c.to_neo4j_properties()} for c in (newer, newer, older)]
    driver = FakeDriver(rows)
    store = Neo4jMemoryStore(driver, embedder, directory, dimensions=DIMENSIONS)

    chunks = await store.load_for_agent("agent", limit=10)

    query, params = driver.runs[0]
    assert params == {"session_ids": ["s1", "s2"], "limit": 10}
    assert "LIMIT $limit" in query
    assert chunks == [newer, older]


@pytest.mark.asyncio
async def test_vector_index_converts_scores(embedder, directory):
    chunk = make_chunk("s1", "tea", [1.0, 0.0, 0.0])
    driver = FakeDriver(
        [{"state": "ONLINE", "options": {}}],
        [{"m": chunk.to_neo4j_properties(), "similarity": 0.8}],
    )
    index = Neo4jVectorIndex(driver, "memory_chunk_vectors")

    assert await index.available()
    results = await index.query([1.0, 0.0, 0.0], ["s1"], top_k=5, threshold=0.5)

    query, params = driver.runs[1]
    assert "(2 * score) - 1" in query
    assert params["k"] == 50
    assert len(driver.runs) == 2
    assert results[0].chunk == chunk
    assert results[0].score == pytest.approx(0.8)


@pytest.mark.asyncio
async def test_missing_index_is_unavailable():
    index = Neo4jVectorIndex(FakeDriver([]), "memory_chunk_vectors")
    assert not await index.available()


def test_index_name_must_be_an_identifier():
    with pytest.raises(ValueError):
        VectorIndexQueries.create_vector_index("bad name; DROP", 1536)


@pytest.mark.asyncio
async def test_vector_index_widens_until_scope_is_reached():
    crowd = [make_chunk("other-agent", f"other {i}", [1.0, 0.0, 0.0]) for i in range(50)]
    mine = make_chunk("s1", "mine", [0.9, 0.1, 0.0])
    crowd_rows = [{"m": chunk.to_neo4j_properties(), "similarity": 0.99} for chunk in crowd]
    driver = FakeDriver(
        crowd_rows,
        crowd_rows + [{"m": mine.to_neo4j_properties(), "similarity": 0.9}],
    )
    index = Neo4jVectorIndex(driver, "memory_chunk_vectors")

    results = await index.query([1.0, 0.0, 0.0], ["s1"], top_k=1, threshold=0.5)

    assert [params["k"] for _, params in driver.runs] == [50, 200]
    assert [r.chunk for r in results] == [mine]


@pytest.mark.asyncio
async def test_vector_index_stops_once_candidates_fall_below_threshold():
    rows = [
        {
            "m": make_chunk("other-agent", f"other {i}", [1.0, 0.0, 0.0]).to_neo4j_properties(),
            "similarity": 0.9 - i / 50,
        }
        for i in range(50)
    ]
    driver = FakeDriver(rows)
    index = Neo4jVectorIndex(driver, "memory_chunk_vectors")

    results = await index.query([1.0, 0.0, 0.0], ["s1"], top_k=3, threshold=0.5)

    assert results == []
    assert len(driver.runs) == 1
