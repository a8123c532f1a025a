"""Base classes and abstract interfaces for retrieval components."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .document import (
        Document,
        ModerationResult,
        Passage,
        PassageId,
        SearchFilter,
        SimilarityCandidate,
    )


class BaseEmbedding(ABC):
    """Abstract base class for embedding models.

    Embedding models convert text into dense, unit-normalized vectors.
    """

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a list of passages.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors
        """
        pass

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query.

        Args:
            text: Query text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingFailure: If the service fails or returns a bad vector
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors."""
        pass


class BaseVectorStore(ABC):
    """Abstract base class for passage stores.

    Stores persist passages with their embeddings and answer nearest-neighbor
    and keyword queries. Retrieval only reads; writes belong to ingestion.
    """

    @abstractmethod
    async def add(self, passages: list["Passage"]) -> list["PassageId"]:
        """Add passages (with embeddings) to the store.

        Returns:
            List of added passage IDs
        """
        pass

    @abstractmethod
    async def search(
        self,
        query_embedding: list[float],
        filter: "SearchFilter",
    ) -> list["SimilarityCandidate"]:
        """Find passages similar to the query vector.

        Only passages with ``len(content) >= filter.min_content_length`` are
        eligible, and only similarities strictly above
        ``filter.similarity_threshold`` are kept.

        Args:
            query_embedding: Query embedding vector
            filter: Length, threshold and count limits

        Returns:
            At most ``filter.max_results`` candidates, most similar first
        """
        pass

    @abstractmethod
    async def search_keywords(
        self,
        keywords: list[str],
        min_content_length: int,
        limit: int = 10,
    ) -> list["Passage"]:
        """Find passages containing any keyword.

        Matching is a case-insensitive substring test against the content or
        the section title.

        Returns:
            At most ``limit`` passages in store order
        """
        pass

    @abstractmethod
    async def delete_document(self, document_id: "PassageId") -> int:
        """Delete a document and all of its passages.

        Returns:
            Number of passages removed
        """
        pass

    @abstractmethod
    async def get(self, id: "PassageId") -> Optional["Passage"]:
        """Get a passage by its ID."""
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the number of passages in the store."""
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Remove every passage from the store."""
        pass

    def add_document(self, document: "Document") -> None:
        """Keep a document reference alongside its passages."""
        pass


class BaseIntentClassifier(ABC):
    """Detects query intents that call for keyword augmentation."""

    @abstractmethod
    def classify(self, query: str) -> set[str]:
        """Return the intent tags matched by the query."""
        pass

    @abstractmethod
    def keywords_for(self, tags: set[str]) -> list[str]:
        """Return the keywords to search for the given tags."""
        pass


class BaseTokenizer(ABC):
    """Counts tokens the way the generation model does."""

    @abstractmethod
    def count(self, text: str) -> int:
        pass


class BaseModerator(ABC):
    """Content moderation pre-check run before retrieval results are used."""

    @abstractmethod
    async def check(self, text: str) -> "ModerationResult":
        pass
