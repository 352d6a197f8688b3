"""
Semantic store contract and an in-process implementation.

The store ranks short element descriptions against a free-text query. Any
backend honoring ``BaseSemanticStore`` (a vector database, a hosted memory
service) can replace ``InMemorySemanticStore``.
"""

import asyncio
import logging
import math
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .embeddings import BaseEmbedder, TokenHashEmbedder
from .records import MemoryRecord

logger = logging.getLogger(__name__)


class SearchResult(BaseModel):
    """One ranked hit."""

    content: str
    score: float
    id: Optional[str] = None
    role: str = "user"

    def to_record(self) -> MemoryRecord:
        return MemoryRecord(content=self.content, role=self.role, id=self.id)


class SearchResponse(BaseModel):
    """Results ranked by descending score."""

    results: List[SearchResult] = Field(default_factory=list)

    @model_validator(mode="after")
    def sort_results(self) -> "SearchResponse":
        """Keep results ordered best first whatever order the backend produced."""
        self.results = sorted(self.results, key=lambda r: r.score, reverse=True)
        return self

    @property
    def top(self) -> Optional[SearchResult]:
        return self.results[0] if self.results else None


class BaseSemanticStore(ABC):
    """Contract of the external semantic search store."""

    @abstractmethod
    async def search(self, query: str, scope_id: str, limit: int = 100) -> SearchResponse:
        pass

    @abstractmethod
    async def add(self, records: List[MemoryRecord], scope_id: str, infer: bool = False) -> List[MemoryRecord]:
        """Store records verbatim (``infer=False``) and return them with their ids."""

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        pass

    @abstractmethod
    async def get_all(self, scope_id: str) -> List[MemoryRecord]:
        pass

    @abstractmethod
    async def reset(self) -> None:
        pass

    async def delete_all(self, scope_id: str) -> None:
        records = await self.get_all(scope_id)
        await asyncio.gather(*(self.delete(record.id) for record in records if record.id))


@dataclass
class _StoredEntry:
    record: MemoryRecord
    scope_id: str
    vector: List[float]


def cosine_similarity(a: List[float], b: List[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if not norm_a or not norm_b:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemorySemanticStore(BaseSemanticStore):
    """
    Cosine-similarity ranking over embedded records, partitioned by scope.

    Args:
        embedder: Embedder for records and queries. Defaults to ``TokenHashEmbedder``.
    """

    def __init__(self, embedder: Optional[BaseEmbedder] = None):
        self.embedder = embedder if embedder is not None else TokenHashEmbedder()
        self._entries: Dict[str, _StoredEntry] = {}

    async def search(self, query: str, scope_id: str, limit: int = 100) -> SearchResponse:
        scoped = [entry for entry in self._entries.values() if entry.scope_id == scope_id]
        if not scoped:
            return SearchResponse()
        query_vector = await self.embedder.embed_one(query)
        scored = [
            SearchResult(
                content=entry.record.content,
                score=cosine_similarity(query_vector, entry.vector),
                id=entry.record.id,
                role=entry.record.role,
            )
            for entry in scoped
        ]
        response = SearchResponse(results=scored)
        response.results = response.results[:limit]
        return response

    async def add(self, records: List[MemoryRecord], scope_id: str, infer: bool = False) -> List[MemoryRecord]:
        if not records:
            return []
        if infer:
            logger.debug("InMemorySemanticStore stores records verbatim; infer=True is ignored")
        vectors = await self.embedder.embed([record.content for record in records])
        stored: List[MemoryRecord] = []
        for record, vector in zip(records, vectors):
            saved = MemoryRecord(content=record.content, role=record.role, id=record.id or str(uuid.uuid4()))
            self._entries[saved.id] = _StoredEntry(record=saved, scope_id=scope_id, vector=vector)
            stored.append(saved)
        return stored

    async def delete(self, record_id: str) -> None:
        self._entries.pop(record_id, None)

    async def get_all(self, scope_id: str) -> List[MemoryRecord]:
        return [entry.record for entry in self._entries.values() if entry.scope_id == scope_id]

    async def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
