"""Embedding model implementations."""

import hashlib
import logging
import math
from typing import Optional

from groundrag.errors import EmbeddingFailure
from groundrag.utils.config import EMBEDDING_DIMENSION

from .base import BaseEmbedding

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Collapse newlines to spaces before embedding."""
    return text.replace("\r\n", " ").replace("\n", " ")


def unit_normalize(vector: list[float]) -> list[float]:
    """Scale a vector to unit length (zero vectors are returned unchanged)."""
    norm = math.sqrt(sum(x * x for x in vector))
    if norm == 0:
        return list(vector)
    return [x / norm for x in vector]


class FakeEmbedding(BaseEmbedding):
    """Deterministic embedding for tests.

    Texts listed in ``vectors`` map to those exact vectors; anything else is
    hashed into a unit-normalized vector.
    """

    def __init__(
        self,
        dimension: int = EMBEDDING_DIMENSION,
        seed: int = 42,
        vectors: Optional[dict[str, list[float]]] = None,
    ):
        self._dimension = dimension
        self.seed = seed
        self.vectors = dict(vectors or {})
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _hash_text(self, text: str) -> list[float]:
        values: list[float] = []
        counter = 0
        while len(values) < self._dimension:
            digest = hashlib.sha256(f"{self.seed}:{counter}:{text}".encode()).digest()
            values.extend(byte / 127.5 - 1.0 for byte in digest)
            counter += 1
        return unit_normalize(values[: self._dimension])

    def _embed(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        return self._hash_text(text)

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(normalize_text(text)) for text in texts]

    async def embed_query(self, text: str) -> list[float]:
        text = normalize_text(text)
        self.calls.append(text)
        return self._embed(text)


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI embedding model.

    Uses the embeddings API (text-embedding-ada-002 by default). Any error
    from the service, or a vector of the wrong size, raises
    ``EmbeddingFailure``; the caller never receives a partial vector.
    """

    MODEL_DIMENSIONS = {
        "text-embedding-ada-002": 1536,
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
    }

    def __init__(
        self,
        model: str = "text-embedding-ada-002",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        batch_size: int = 100,
        client=None,
    ):
        """Initialize the OpenAI embedding model.

        Args:
            model: Embedding model name
            api_key: OpenAI API key (optional, uses env var if not provided)
            base_url: Optional base URL for API
            batch_size: Batch size for embedding passages
            client: Pre-built ``AsyncOpenAI`` client to share a connection pool
        """
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.batch_size = batch_size
        self._client = client

    @property
    def dimension(self) -> int:
        return self.MODEL_DIMENSIONS.get(self.model, EMBEDDING_DIMENSION)

    def _get_client(self):
        """Get or create the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                raise ImportError(
                    "OpenAI embedding requires the 'openai' package. "
                    "Install it with: pip install openai"
                )

            kwargs = {}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    def _check_vector(self, vector: list[float]) -> list[float]:
        if len(vector) != self.dimension:
            raise EmbeddingFailure(
                data={
                    "model": self.model,
                    "expected_dimension": self.dimension,
                    "dimension": len(vector),
                }
            )
        return vector

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed passages in batches."""
        client = self._get_client()
        all_embeddings = []

        for i in range(0, len(texts), self.batch_size):
            batch = [normalize_text(text) for text in texts[i : i + self.batch_size]]
            try:
                response = await client.embeddings.create(model=self.model, input=batch)
            except Exception as e:
                raise EmbeddingFailure(
                    "Failed to create embeddings for passages",
                    data={"model": self.model, "error": str(e)},
                ) from e

            all_embeddings.extend(self._check_vector(item.embedding) for item in response.data)

        return all_embeddings

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query."""
        client = self._get_client()

        try:
            response = await client.embeddings.create(
                model=self.model,
                input=normalize_text(text),
            )
        except Exception as e:
            raise EmbeddingFailure(data={"model": self.model, "error": str(e)}) from e

        if not response.data:
            raise EmbeddingFailure(data={"model": self.model, "error": "empty response"})

        return self._check_vector(response.data[0].embedding)
