"""
Semantic memory: element description records, embedders, the store contract
and the add/delete synchronizer.
"""

from .embeddings import BaseEmbedder, OpenAICompatibleEmbedder, TokenHashEmbedder
from .records import MemoryRecord, extract_memory_records, flatten_tree, format_element_content, parse_prompt, parse_ref
from .store import BaseSemanticStore, InMemorySemanticStore, SearchResponse, SearchResult
from .sync import MemorySynchronizer, SyncPlan

__all__ = [
    "BaseEmbedder",
    "BaseSemanticStore",
    "InMemorySemanticStore",
    "MemoryRecord",
    "MemorySynchronizer",
    "OpenAICompatibleEmbedder",
    "SearchResponse",
    "SearchResult",
    "SyncPlan",
    "TokenHashEmbedder",
    "extract_memory_records",
    "flatten_tree",
    "format_element_content",
    "parse_prompt",
    "parse_ref",
]
