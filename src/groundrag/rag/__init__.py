"""Retrieval core: embedding, vector search, keyword augmentation, ranking and packing.

Example:
    ```python
    from groundrag.rag import (
        MemoryVectorStore,
        OpenAIEmbedding,
        RetrievalPipeline,
        TiktokenTokenizer,
    )
    from groundrag.utils import get_profile

    pipeline = RetrievalPipeline.from_profile(
        get_profile("product"),
        embedding=OpenAIEmbedding(),
        store=MemoryVectorStore(),
        tokenizer=TiktokenTokenizer(),
    )
    context = await pipeline.retrieve("Which products support replication?")
    ```
"""

# Data structures
from .document import (
    Document,
    ModerationResult,
    Passage,
    PassageId,
    RankedContext,
    SearchFilter,
    SimilarityCandidate,
)

# Base classes
from .base import (
    BaseEmbedding,
    BaseIntentClassifier,
    BaseModerator,
    BaseTokenizer,
    BaseVectorStore,
)

from .embeddings import FakeEmbedding, OpenAIEmbedding, normalize_text, unit_normalize
from .vectorstore import (
    ChromaVectorStore,
    MemoryVectorStore,
    cosine_distance,
    cosine_similarity,
)
from .keywords import KeywordAugmenter, RegexIntentClassifier
from .reranker import DocumentNameBooster, Ranker
from .tokenizer import TiktokenTokenizer, WhitespaceTokenizer
from .packer import ContextPacker
from .moderation import NoopModerator, OpenAIModerator
from .pipeline import RetrievalPipeline
from .ingest import PassageIngestor
from .generation import AnswerGenerator, format_sources, is_introductory

__all__ = [
    # Data structures
    "Document",
    "ModerationResult",
    "Passage",
    "PassageId",
    "RankedContext",
    "SearchFilter",
    "SimilarityCandidate",
    # Base classes
    "BaseEmbedding",
    "BaseIntentClassifier",
    "BaseModerator",
    "BaseTokenizer",
    "BaseVectorStore",
    # Embeddings
    "FakeEmbedding",
    "OpenAIEmbedding",
    "normalize_text",
    "unit_normalize",
    # Vector stores
    "ChromaVectorStore",
    "MemoryVectorStore",
    "cosine_distance",
    "cosine_similarity",
    # Keyword augmentation
    "KeywordAugmenter",
    "RegexIntentClassifier",
    # Ranking
    "DocumentNameBooster",
    "Ranker",
    # Packing
    "TiktokenTokenizer",
    "WhitespaceTokenizer",
    "ContextPacker",
    # Moderation
    "NoopModerator",
    "OpenAIModerator",
    # Pipeline
    "RetrievalPipeline",
    "PassageIngestor",
    "AnswerGenerator",
    "format_sources",
    "is_introductory",
]
