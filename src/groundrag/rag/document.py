"""Document, passage and retrieval result data structures."""

from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

PassageId = Union[int, str]


class Document(BaseModel):
    """A document whose passages are indexed for retrieval.

    Attributes:
        id: Unique identifier for the document
        name: Display name, also used for document-name boosting
        description: Optional free-text description
        created_at: Creation time
        metadata: Additional metadata about the document
    """

    id: PassageId
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Document(id={self.id!r}, name={self.name!r})"


class Passage(BaseModel):
    """The smallest retrievable unit of document text.

    Passages are created once at ingestion and never mutated; re-ingesting a
    document deletes and recreates its passages.

    Attributes:
        id: Stable identifier
        document_id: ID of the owning document
        document_name: Name of the owning document
        section_title: Optional heading of the passage
        content: Raw passage text
        embedding: Unit-normalized embedding vector
        token_count: Size of ``content`` under the generation tokenizer
        metadata: Additional metadata
    """

    id: PassageId
    document_id: PassageId
    document_name: str = ""
    section_title: Optional[str] = None
    content: str = Field(min_length=1)
    embedding: Optional[list[float]] = None
    token_count: Optional[int] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def __repr__(self) -> str:
        content_preview = self.content[:30] + "..." if len(self.content) > 30 else self.content
        return f"Passage(id={self.id!r}, doc={self.document_name!r}, content={content_preview!r})"


class SimilarityCandidate(BaseModel):
    """A passage paired with its relevance to a query.

    Vector candidates carry ``1 - cosine distance``. Keyword candidates
    bypass vector scoring and carry a fixed synthetic similarity.
    """

    passage: Passage
    similarity: float
    source: Literal["vector", "keyword"] = "vector"

    @property
    def passage_id(self) -> PassageId:
        return self.passage.id

    def __repr__(self) -> str:
        return (
            f"SimilarityCandidate(id={self.passage.id!r}, "
            f"similarity={self.similarity:.4f}, source={self.source})"
        )


class SearchFilter(BaseModel):
    """Limits applied by a vector store search."""

    min_content_length: int = 50
    similarity_threshold: float = Field(default=0.78, ge=0.0, le=1.0)
    max_results: int = 10


class RankedContext(BaseModel):
    """Packed grounding context and the passages that produced it.

    ``used_passages`` is exactly the prefix of the ranked candidates that
    went into ``context_text``.
    """

    context_text: str = ""
    used_passages: list[SimilarityCandidate] = Field(default_factory=list)
    token_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.used_passages

    def sources(self) -> list[dict[str, Any]]:
        """Provenance list for the passages used in the context."""
        return [
            {
                "id": candidate.passage.id,
                "document_name": candidate.passage.document_name,
                "section_title": candidate.passage.section_title,
                "similarity": round(candidate.similarity, 2),
            }
            for candidate in self.used_passages
        ]


class ModerationResult(BaseModel):
    """Outcome of the content moderation pre-check."""

    flagged: bool = False
    categories: dict[str, bool] = Field(default_factory=dict)
