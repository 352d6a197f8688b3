"""
Text embedders used by the in-memory semantic store.

``OpenAICompatibleEmbedder`` talks to any ``/v1/embeddings`` endpoint
(Ollama by default) over aiohttp. ``TokenHashEmbedder`` is an offline
feature-hashing embedder: deterministic, dependency free and good enough
for lexical matching of element descriptions in tests and air-gapped runs.
"""

import hashlib
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import aiohttp

from ..config import EmbedderConfig
from ..exceptions import StoreError, StoreTransientError

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class BaseEmbedder(ABC):
    """Turns texts into fixed-length vectors."""

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        pass

    async def embed_one(self, text: str) -> List[float]:
        vectors = await self.embed([text])
        return vectors[0]

    async def close(self) -> None:
        """Release network resources, if any."""


class TokenHashEmbedder(BaseEmbedder):
    """
    Bag-of-words feature hashing into a fixed number of buckets.

    Args:
        dimensions: Vector length.
        ignore_attributes: Embed only the text before the ``Attributes:`` payload,
                           so references and flags do not dominate similarity.
    """

    def __init__(self, dimensions: int = 512, ignore_attributes: bool = True):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self.dimensions = dimensions
        self.ignore_attributes = ignore_attributes

    def _tokens(self, text: str) -> List[str]:
        if self.ignore_attributes and "Attributes:" in text:
            text = text.split("Attributes:", 1)[0]
        return _TOKEN_RE.findall(text.lower())

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.dimensions
        for token in self._tokens(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimensions
            vector[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        if norm:
            vector = [v / norm for v in vector]
        return vector

    async def embed(self, texts: List[str]) -> List[List[float]]:
        return [self._vector(text) for text in texts]


class OpenAICompatibleEmbedder(BaseEmbedder):
    """
    Embeddings from an OpenAI-compatible HTTP endpoint.

    Args:
        config: Endpoint, model and timeout. Defaults to ``EmbedderConfig.from_env()``.
        session: Optional shared aiohttp session; one is created lazily otherwise.
    """

    def __init__(self, config: Optional[EmbedderConfig] = None, session: Optional[aiohttp.ClientSession] = None):
        self.config = config or EmbedderConfig.from_env()
        self._session = session
        self._owns_session = session is None

    def _headers(self):
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        payload = {"model": self.config.model, "input": texts}
        session = await self._get_session()
        try:
            async with session.post(
                self.config.embeddings_url,
                json=payload,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_s),
            ) as response:
                if response.status == 429 or response.status >= 500:
                    body = await response.text()
                    raise StoreTransientError(
                        f"Embedding request failed: HTTP {response.status}: {body[:200]}",
                        operation="embed",
                        status_code=response.status,
                    )
                if response.status != 200:
                    body = await response.text()
                    raise StoreError(
                        f"Embedding request rejected: HTTP {response.status}: {body[:200]}",
                        context={"status_code": response.status, "model": self.config.model},
                    )
                data = await response.json()
        except aiohttp.ClientError as e:
            raise StoreTransientError(f"Embedding endpoint unreachable: {e}", operation="embed") from e
        except TimeoutError as e:
            raise StoreTransientError(
                f"Embedding request timed out after {self.config.timeout_s}s", operation="embed"
            ) from e

        items = sorted(data.get("data", []), key=lambda item: item.get("index", 0))
        vectors = [item["embedding"] for item in items]
        if len(vectors) != len(texts):
            raise StoreError(
                f"Embedding endpoint returned {len(vectors)} vectors for {len(texts)} inputs",
                context={"model": self.config.model},
            )
        logger.debug(f"Embedded {len(texts)} texts with {self.config.model}")
        return vectors

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
