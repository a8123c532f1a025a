"""Retrieval pipeline: query in, packed grounding context out."""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from groundrag.errors import (
    ApplicationError,
    EmbeddingFailure,
    FlaggedContentError,
    GroundragError,
    StoreUnavailableError,
    UserError,
)
from groundrag.utils.config import RetrievalProfile
from groundrag.utils.logging import configure_logging

from .base import BaseEmbedding, BaseIntentClassifier, BaseModerator, BaseTokenizer, BaseVectorStore
from .document import RankedContext, SearchFilter, SimilarityCandidate
from .keywords import KeywordAugmenter
from .packer import ContextPacker
from .reranker import Ranker

if TYPE_CHECKING:
    from groundrag.utils.config import GroundragConfig

logger = logging.getLogger(__name__)


class RetrievalPipeline:
    """Composes embedding, vector search, keyword augmentation, ranking and packing.

    Each call to ``retrieve`` is independent: the only state shared between
    concurrent calls is the read-only store and the clients injected here.

    Example:
        ```python
        pipeline = RetrievalPipeline.from_profile(
            get_profile("legal"),
            embedding=OpenAIEmbedding(),
            store=ChromaVectorStore(persist_directory="./chroma"),
            tokenizer=TiktokenTokenizer(),
            moderator=OpenAIModerator(),
        )

        context = await pipeline.retrieve("Must the customer notify us about an extra node?")
        context.context_text
        context.sources()
        ```
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        store: BaseVectorStore,
        packer: ContextPacker,
        ranker: Optional[Ranker] = None,
        augmenter: Optional[KeywordAugmenter] = None,
        moderator: Optional[BaseModerator] = None,
        search_filter: Optional[SearchFilter] = None,
        keyword_timeout: Optional[float] = None,
    ):
        """Initialize the retrieval pipeline.

        Args:
            embedding: Query embedding model
            store: Passage store to search
            packer: Context packer holding the token budget
            ranker: Candidate merger (default: plain similarity order)
            augmenter: Keyword augmenter (default: no augmentation)
            moderator: Moderation pre-check run alongside the embedding
            search_filter: Vector search limits
            keyword_timeout: Seconds before the keyword step is skipped
        """
        self.search_filter = search_filter or SearchFilter()

        store_dimension = getattr(store, "dimension", None)
        if store_dimension is not None and store_dimension != embedding.dimension:
            raise ApplicationError(
                "Embedding dimension does not match the passage store",
                data={"embedding": embedding.dimension, "store": store_dimension},
            )

        self.embedding = embedding
        self.store = store
        self.packer = packer
        self.ranker = ranker or Ranker(max_results=self.search_filter.max_results)
        self.augmenter = augmenter
        self.moderator = moderator
        self.keyword_timeout = keyword_timeout

    @classmethod
    def from_profile(
        cls,
        profile: RetrievalProfile,
        embedding: BaseEmbedding,
        store: BaseVectorStore,
        tokenizer: BaseTokenizer,
        moderator: Optional[BaseModerator] = None,
        classifier: Optional[BaseIntentClassifier] = None,
    ) -> "RetrievalPipeline":
        """Build a pipeline tuned by a domain profile."""
        return cls(
            embedding=embedding,
            store=store,
            packer=ContextPacker.from_profile(tokenizer, profile),
            ranker=Ranker.from_profile(profile),
            augmenter=KeywordAugmenter.from_profile(store, profile, classifier),
            moderator=moderator,
            search_filter=SearchFilter(
                min_content_length=profile.min_content_length,
                similarity_threshold=profile.similarity_threshold,
                max_results=profile.max_results,
            ),
            keyword_timeout=profile.keyword_timeout,
        )

    @classmethod
    def from_config(
        cls,
        config: "GroundragConfig",
        profile_name: str,
        store: Optional[BaseVectorStore] = None,
    ) -> "RetrievalPipeline":
        """Composition root for the OpenAI + ChromaDB deployment.

        One OpenAI client is shared by the embedding and moderation calls.
        """
        from openai import AsyncOpenAI

        from .embeddings import OpenAIEmbedding
        from .moderation import OpenAIModerator
        from .tokenizer import TiktokenTokenizer
        from .vectorstore import ChromaVectorStore

        configure_logging(config.log_level)
        client = AsyncOpenAI(api_key=config.require_api_key(), base_url=config.openai_base_url)

        if store is None:
            store = ChromaVectorStore(
                collection_name=config.collection_name,
                persist_directory=config.chroma_path,
                dimension=config.embedding_dimension,
            )

        return cls.from_profile(
            config.get_profile(profile_name),
            embedding=OpenAIEmbedding(model=config.embedding_model, client=client),
            store=store,
            tokenizer=TiktokenTokenizer(model=config.generation_model),
            moderator=OpenAIModerator(client=client) if config.moderation_enabled else None,
        )

    async def retrieve(self, query: str) -> RankedContext:
        """Retrieve and pack grounding context for a query.

        Args:
            query: Natural-language query

        Returns:
            Packed context and the passages used (empty when nothing matched)

        Raises:
            UserError: Empty query
            FlaggedContentError: Moderation flagged the query
            EmbeddingFailure: The query could not be embedded
            StoreUnavailableError: The passage store could not be searched
        """
        context, _ = await self.retrieve_with_intents(query)
        return context

    async def retrieve_with_intents(self, query: str) -> tuple[RankedContext, set[str]]:
        """Like ``retrieve`` but also returns the query's intent tags."""
        sanitized = (query or "").strip()

        try:
            if not sanitized:
                raise UserError("Missing query in request data", category="invalid_query")

            query_embedding = await self._embed_and_moderate(sanitized)

            tags = self.augmenter.classifier.classify(sanitized) if self.augmenter else set()

            vector_candidates, keyword_candidates = await asyncio.gather(
                self._vector_search(query_embedding),
                self._keyword_search(sanitized, tags),
                return_exceptions=True,
            )
            # Both searches have settled; vector failures take precedence
            for result in (vector_candidates, keyword_candidates):
                if isinstance(result, BaseException):
                    raise result

            ranked = self.ranker.merge(vector_candidates, keyword_candidates, sanitized)
            context = self.packer.pack(ranked)

        except UserError as e:
            logger.info(f"Rejected query ({e.category}): {e.message}")
            raise
        except ApplicationError as e:
            logger.error(f"{e.message}: {e.data}")
            raise

        if context.is_empty:
            logger.info("No passages passed the similarity threshold; context is empty")
        else:
            logger.debug(
                f"Packed {len(context.used_passages)} of {len(ranked)} ranked passages "
                f"({context.token_count} tokens)"
            )

        return context, tags

    async def _embed_and_moderate(self, query: str) -> list[float]:
        """Embed the query while the moderation check runs.

        Moderation is inspected first, so a flagged query is rejected even
        when the embedding succeeded.
        """
        if self.moderator is None:
            return await self._embed(query)

        embedding_result, moderation = await asyncio.gather(
            self._embed(query),
            self.moderator.check(query),
            return_exceptions=True,
        )

        if isinstance(moderation, BaseException):
            if isinstance(moderation, GroundragError) or not isinstance(moderation, Exception):
                raise moderation
            raise ApplicationError("Moderation check failed", data={"error": str(moderation)}) from moderation

        if moderation.flagged:
            raise FlaggedContentError(moderation.categories)

        if isinstance(embedding_result, BaseException):
            raise embedding_result

        return embedding_result

    async def _embed(self, query: str) -> list[float]:
        try:
            vector = await self.embedding.embed_query(query)
        except GroundragError:
            raise
        except Exception as e:
            raise EmbeddingFailure(data={"error": str(e)}) from e

        if not vector:
            raise EmbeddingFailure(data={"error": "empty vector"})
        return vector

    async def _vector_search(self, query_embedding: list[float]) -> list[SimilarityCandidate]:
        try:
            candidates = await self.store.search(query_embedding, self.search_filter)
        except GroundragError:
            raise
        except Exception as e:
            raise StoreUnavailableError(data={"error": str(e)}) from e

        logger.debug(f"Vector search returned {len(candidates)} candidates")
        return candidates

    async def _keyword_search(self, query: str, tags: set[str]) -> list[SimilarityCandidate]:
        if self.augmenter is None or not tags:
            return []

        search = self.augmenter.search(
            query,
            min_content_length=self.search_filter.min_content_length,
            tags=tags,
        )

        try:
            if self.keyword_timeout is None:
                return await search
            return await asyncio.wait_for(search, timeout=self.keyword_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Keyword augmentation timed out after {self.keyword_timeout}s; "
                "continuing with vector results only"
            )
            return []
        except GroundragError:
            raise
        except Exception as e:
            raise StoreUnavailableError(data={"error": str(e)}) from e
