"""
groundrag - Retrieval and ranking core for document-grounded answers.
"""

from groundrag.errors import (
    ApplicationError,
    ConfigurationError,
    EmbeddingFailure,
    FlaggedContentError,
    GroundragError,
    StoreUnavailableError,
    UserError,
)
from groundrag.rag import (
    AnswerGenerator,
    ContextPacker,
    Document,
    KeywordAugmenter,
    Passage,
    RankedContext,
    Ranker,
    RetrievalPipeline,
    SimilarityCandidate,
)
from groundrag.utils.config import (
    EMBEDDING_DIMENSION,
    GroundragConfig,
    RetrievalProfile,
    get_profile,
    load_config,
)

__version__ = "0.1.0"
__all__ = [
    # Errors
    "ApplicationError",
    "ConfigurationError",
    "EmbeddingFailure",
    "FlaggedContentError",
    "GroundragError",
    "StoreUnavailableError",
    "UserError",
    # Retrieval
    "AnswerGenerator",
    "ContextPacker",
    "Document",
    "KeywordAugmenter",
    "Passage",
    "RankedContext",
    "Ranker",
    "RetrievalPipeline",
    "SimilarityCandidate",
    # Config
    "EMBEDDING_DIMENSION",
    "GroundragConfig",
    "RetrievalProfile",
    "get_profile",
    "load_config",
]
