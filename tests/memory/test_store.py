"""
Tests for the semantic store and the embedders.

This module tests:
- SearchResponse ordering
- InMemorySemanticStore scoping, ranking, limits and deletion
- TokenHashEmbedder determinism
- OpenAICompatibleEmbedder HTTP handling with a mocked aiohttp session
"""

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from ariaeye.config import EmbedderConfig
from ariaeye.exceptions import StoreError, StoreTransientError
from ariaeye.memory.embeddings import OpenAICompatibleEmbedder, TokenHashEmbedder
from ariaeye.memory.records import MemoryRecord, format_element_content
from ariaeye.memory.store import InMemorySemanticStore, SearchResponse, SearchResult, cosine_similarity


# =============================================================================
# Helpers
# =============================================================================

def element_record(action, name, role, ref):
    return MemoryRecord(content=format_element_content(action, name, role, ref))


def mock_session(status=200, json_data=None, text=""):
    """aiohttp session whose post() yields a response with the given status and body."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data or {})
    response.text = AsyncMock(return_value=text)

    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.post.return_value.__aenter__ = AsyncMock(return_value=response)
    session.post.return_value.__aexit__ = AsyncMock(return_value=False)
    return session


# =============================================================================
# SearchResponse Tests
# =============================================================================

class TestSearchResponse:
    """Tests for SearchResponse and SearchResult."""

    def test_results_sorted_descending(self):
        """Test results are ordered best first."""
        response = SearchResponse(results=[
            SearchResult(content="a", score=0.2),
            SearchResult(content="b", score=0.9),
            SearchResult(content="c", score=0.5),
        ])

        assert [r.content for r in response.results] == ["b", "c", "a"]
        assert response.top.content == "b"

    def test_empty_top(self):
        """Test an empty response has no top result."""
        assert SearchResponse().top is None

    def test_to_record(self):
        """Test a result converts back to a record."""
        record = SearchResult(content="x", score=1.0, id="m1").to_record()

        assert record == MemoryRecord(content="x", id="m1")

    def test_cosine_similarity(self):
        """Test cosine similarity edge cases."""
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 0.0])


# =============================================================================
# InMemorySemanticStore Tests
# =============================================================================

class TestInMemorySemanticStore:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_add_assigns_ids(self):
        """Test stored records get ids."""
        store = InMemorySemanticStore()

        stored = await store.add([MemoryRecord(content="a")], scope_id="s")

        assert stored[0].id
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_search_ranks_closest_first(self):
        """Test the best lexical match ranks first."""
        store = InMemorySemanticStore()
        await store.add([
            element_record("click", "Sign in", "button", "e1"),
            element_record("type", "Search", "textbox", "e2"),
            element_record("click", "Checkout", "link", "e3"),
        ], scope_id="s")

        response = await store.search("click the sign in button", scope_id="s")

        assert '"ref":"e1"' in response.top.content
        scores = [r.score for r in response.results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_search_is_scoped(self):
        """Test search never returns records from another scope."""
        store = InMemorySemanticStore()
        await store.add([MemoryRecord(content="click Go button")], scope_id="a")

        response = await store.search("click Go button", scope_id="b")

        assert response.results == []

    @pytest.mark.asyncio
    async def test_search_limit(self):
        """Test the limit caps the number of results."""
        store = InMemorySemanticStore()
        await store.add([MemoryRecord(content=f"click item {i}") for i in range(5)], scope_id="s")

        response = await store.search("click item", scope_id="s", limit=2)

        assert len(response.results) == 2

    @pytest.mark.asyncio
    async def test_delete_and_delete_all(self):
        """Test deleting single records and whole scopes."""
        store = InMemorySemanticStore()
        stored = await store.add([MemoryRecord(content="a"), MemoryRecord(content="b")], scope_id="s")
        await store.add([MemoryRecord(content="c")], scope_id="t")

        await store.delete(stored[0].id)
        assert [r.content for r in await store.get_all("s")] == ["b"]

        await store.delete_all("s")
        assert await store.get_all("s") == []
        assert len(store) == 1

        await store.reset()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_add_empty(self):
        """Test adding nothing is a no-op."""
        assert await InMemorySemanticStore().add([], scope_id="s") == []


# =============================================================================
# TokenHashEmbedder Tests
# =============================================================================

class TestTokenHashEmbedder:
    """Tests for the offline embedder."""

    @pytest.mark.asyncio
    async def test_deterministic_unit_vectors(self):
        """Test equal texts embed equally and vectors are normalized."""
        embedder = TokenHashEmbedder(dimensions=64)

        first, second = await embedder.embed(["click Go", "click Go"])

        assert first == second
        assert len(first) == 64
        assert sum(v * v for v in first) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_attributes_ignored(self):
        """Test the Attributes payload does not affect the vector."""
        embedder = TokenHashEmbedder()
        a = format_element_content("click", "Go", "button", "e1")
        b = format_element_content("click", "Go", "button", "e99")

        assert await embedder.embed_one(a) == await embedder.embed_one(b)

    def test_dimensions_validated(self):
        """Test non-positive dimensions are rejected."""
        with pytest.raises(ValueError):
            TokenHashEmbedder(dimensions=0)


# =============================================================================
# OpenAICompatibleEmbedder Tests
# =============================================================================

class TestOpenAICompatibleEmbedder:
    """Tests for the HTTP embedder."""

    @pytest.mark.asyncio
    async def test_embed_orders_by_index(self):
        """Test vectors are returned in input order."""
        session = mock_session(json_data={"data": [
            {"index": 1, "embedding": [0.0, 1.0]},
            {"index": 0, "embedding": [1.0, 0.0]},
        ]})
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(model="m", api_key="k"), session=session)

        vectors = await embedder.embed(["a", "b"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        args, kwargs = session.post.call_args
        assert args[0] == "http://localhost:11434/v1/embeddings"
        assert kwargs["json"] == {"model": "m", "input": ["a", "b"]}
        assert kwargs["headers"]["Authorization"] == "Bearer k"

    @pytest.mark.asyncio
    async def test_empty_input(self):
        """Test no request is made for no texts."""
        session = mock_session()
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(), session=session)

        assert await embedder.embed([]) == []
        session.post.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 503])
    async def test_transient_status(self, status):
        """Test rate limits and server errors are transient."""
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(), session=mock_session(status=status, text="busy"))

        with pytest.raises(StoreTransientError) as exc_info:
            await embedder.embed(["a"])

        assert exc_info.value.context["status_code"] == status

    @pytest.mark.asyncio
    async def test_client_error_status(self):
        """Test other failures are permanent store errors."""
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(), session=mock_session(status=400, text="bad model"))

        with pytest.raises(StoreError) as exc_info:
            await embedder.embed(["a"])

        assert not isinstance(exc_info.value, StoreTransientError)
        assert "bad model" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self):
        """Test unreachable endpoints are transient."""
        session = mock_session()
        session.post.side_effect = aiohttp.ClientConnectionError("refused")
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(), session=session)

        with pytest.raises(StoreTransientError):
            await embedder.embed(["a"])

    @pytest.mark.asyncio
    async def test_vector_count_mismatch(self):
        """Test a short response is rejected."""
        session = mock_session(json_data={"data": [{"index": 0, "embedding": [1.0]}]})
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(), session=session)

        with pytest.raises(StoreError):
            await embedder.embed(["a", "b"])

    @pytest.mark.asyncio
    async def test_close_leaves_shared_session_open(self):
        """Test a caller-provided session is not closed."""
        session = mock_session()
        embedder = OpenAICompatibleEmbedder(EmbedderConfig(), session=session)

        await embedder.close()

        session.close.assert_not_awaited()
