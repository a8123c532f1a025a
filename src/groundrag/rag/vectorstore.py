"""Vector store implementations."""

import asyncio
import logging
import math
from typing import Any, Callable, Optional

from groundrag.errors import StoreUnavailableError
from groundrag.utils.config import EMBEDDING_DIMENSION

from .base import BaseVectorStore
from .document import Document, Passage, PassageId, SearchFilter, SimilarityCandidate

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Calculate cosine similarity between two vectors."""
    if len(a) != len(b):
        raise ValueError("Vectors must have the same dimension")

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    # Rounding can push unit vectors a hair past the bounds
    return max(-1.0, min(1.0, dot_product / (norm_a * norm_b)))


def cosine_distance(a: list[float], b: list[float]) -> float:
    """Cosine distance, ``1 - cosine_similarity``."""
    return 1.0 - cosine_similarity(a, b)


def matches_keywords(passage: Passage, keywords: list[str]) -> bool:
    """Case-insensitive substring match against content or section title."""
    content = passage.content.lower()
    title = (passage.section_title or "").lower()
    return any(kw in content or kw in title for kw in keywords)


def _check_dimension(vector: list[float], dimension: int, what: str) -> None:
    if len(vector) != dimension:
        raise ValueError(f"{what} has dimension {len(vector)}, expected {dimension}")


class MemoryVectorStore(BaseVectorStore):
    """In-memory passage store for testing and small corpora.

    Performs exact brute-force search. Passages keep insertion order, which
    is also the order keyword matches are returned in.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.dimension = dimension
        self._passages: dict[PassageId, Passage] = {}
        self._documents: dict[PassageId, Document] = {}

    async def add(self, passages: list[Passage]) -> list[PassageId]:
        """Add passages with embeddings to the store."""
        ids = []
        for passage in passages:
            if passage.embedding is None:
                raise ValueError(f"Passage {passage.id!r} has no embedding")
            _check_dimension(passage.embedding, self.dimension, f"Passage {passage.id!r} embedding")

            document = self._documents.get(passage.document_id)
            if document and not passage.document_name:
                passage = passage.model_copy(update={"document_name": document.name})

            self._passages[passage.id] = passage
            ids.append(passage.id)

        logger.debug(f"Added {len(ids)} passages to memory store")
        return ids

    async def search(
        self,
        query_embedding: list[float],
        filter: SearchFilter,
    ) -> list[SimilarityCandidate]:
        """Exact cosine search over every eligible passage."""
        _check_dimension(query_embedding, self.dimension, "Query embedding")

        scored = []
        for passage in self._passages.values():
            if len(passage.content) < filter.min_content_length:
                continue

            similarity = 1.0 - cosine_distance(query_embedding, passage.embedding)
            if similarity > filter.similarity_threshold:
                scored.append((passage, similarity))

        # Stable sort keeps insertion order for equal scores
        scored.sort(key=lambda x: x[1], reverse=True)

        return [
            SimilarityCandidate(passage=passage, similarity=similarity)
            for passage, similarity in scored[: filter.max_results]
        ]

    async def search_keywords(
        self,
        keywords: list[str],
        min_content_length: int,
        limit: int = 10,
    ) -> list[Passage]:
        """Substring search over content and section titles."""
        lowered = [kw.lower() for kw in keywords if kw]
        if not lowered or limit <= 0:
            return []

        matches = []
        for passage in self._passages.values():
            if len(passage.content) < min_content_length:
                continue
            if matches_keywords(passage, lowered):
                matches.append(passage)
                if len(matches) >= limit:
                    break
        return matches

    async def delete_document(self, document_id: PassageId) -> int:
        """Delete a document and cascade to its passages."""
        doomed = [pid for pid, p in self._passages.items() if p.document_id == document_id]
        for pid in doomed:
            del self._passages[pid]
        self._documents.pop(document_id, None)
        return len(doomed)

    async def get(self, id: PassageId) -> Optional[Passage]:
        """Get a passage by its ID."""
        return self._passages.get(id)

    async def count(self) -> int:
        """Return the number of passages."""
        return len(self._passages)

    async def clear(self) -> bool:
        """Clear all passages and documents."""
        self._passages.clear()
        self._documents.clear()
        return True

    def add_document(self, document: Document) -> None:
        """Add a document for reference."""
        self._documents[document.id] = document


class ChromaVectorStore(BaseVectorStore):
    """ChromaDB passage store.

    Passages live in a collection indexed with HNSW in cosine space, so
    searches are approximate: a small share of the true nearest neighbors
    may be missing from results. Requires the 'vector' extra.
    """

    SCAN_PAGE_SIZE = 500

    def __init__(
        self,
        collection_name: str = "passages",
        persist_directory: Optional[str] = None,
        dimension: int = EMBEDDING_DIMENSION,
        client=None,
        hnsw_m: int = 16,
    ):
        """Initialize the ChromaDB passage store.

        Args:
            collection_name: Name of the ChromaDB collection
            persist_directory: Directory for persistent storage (None for in-memory)
            dimension: Embedding dimension every vector must have
            client: Pre-built chromadb client (owned by the caller)
            hnsw_m: HNSW graph degree
        """
        self.collection_name = collection_name
        self.persist_directory = persist_directory
        self.dimension = dimension
        self.hnsw_m = hnsw_m
        self._client = client
        self._collection = None
        self._documents: dict[PassageId, Document] = {}

    def _get_client(self):
        """Get or create the ChromaDB client."""
        if self._client is None:
            try:
                import chromadb
            except ImportError:
                raise ImportError(
                    "ChromaDB vector store requires 'chromadb'. "
                    "Install it with: pip install chromadb"
                )

            if self.persist_directory:
                self._client = chromadb.PersistentClient(path=self.persist_directory)
            else:
                self._client = chromadb.EphemeralClient()
        return self._client

    def _get_collection(self):
        """Get or create the collection."""
        if self._collection is None:
            client = self._get_client()
            self._collection = client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine", "hnsw:M": self.hnsw_m},
            )
        return self._collection

    async def _run(self, operation: str, func: Callable[[], Any]) -> Any:
        """Run a blocking chromadb call in a thread."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except ImportError:
            raise
        except Exception as e:
            raise StoreUnavailableError(
                f"ChromaDB {operation} failed",
                data={"collection": self.collection_name, "error": str(e)},
            ) from e

    @staticmethod
    def _to_metadata(passage: Passage) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            key: value
            for key, value in passage.metadata.items()
            if isinstance(value, (str, int, float, bool))
        }
        metadata.update({
            "id_is_int": isinstance(passage.id, int),
            "document_id": str(passage.document_id),
            "document_id_is_int": isinstance(passage.document_id, int),
            "document_name": passage.document_name,
            "section_title": passage.section_title or "",
            "content_length": len(passage.content),
            "token_count": passage.token_count if passage.token_count is not None else -1,
        })
        return metadata

    @staticmethod
    def _to_passage(
        chroma_id: str,
        content: str,
        metadata: Optional[dict[str, Any]],
        embedding: Optional[list[float]] = None,
    ) -> Passage:
        metadata = dict(metadata or {})
        id_is_int = metadata.pop("id_is_int", False)
        document_id = metadata.pop("document_id", "")
        if metadata.pop("document_id_is_int", False):
            document_id = int(document_id)
        token_count = metadata.pop("token_count", -1)
        metadata.pop("content_length", None)

        return Passage(
            id=int(chroma_id) if id_is_int else chroma_id,
            document_id=document_id,
            document_name=metadata.pop("document_name", ""),
            section_title=metadata.pop("section_title", "") or None,
            content=content,
            embedding=[float(x) for x in embedding] if embedding is not None else None,
            token_count=token_count if token_count >= 0 else None,
            metadata=metadata,
        )

    async def add(self, passages: list[Passage]) -> list[PassageId]:
        """Add passages with embeddings to ChromaDB."""
        if not passages:
            return []

        ids = []
        documents = []
        metadatas = []
        embeddings = []

        for passage in passages:
            if passage.embedding is None:
                raise ValueError(f"Passage {passage.id!r} has no embedding")
            _check_dimension(passage.embedding, self.dimension, f"Passage {passage.id!r} embedding")

            document = self._documents.get(passage.document_id)
            if document and not passage.document_name:
                passage = passage.model_copy(update={"document_name": document.name})

            ids.append(str(passage.id))
            documents.append(passage.content)
            metadatas.append(self._to_metadata(passage))
            embeddings.append(passage.embedding)

        collection = self._get_collection()
        await self._run(
            "add",
            lambda: collection.add(
                ids=ids,
                documents=documents,
                embeddings=embeddings,
                metadatas=metadatas,
            ),
        )

        logger.debug(f"Added {len(ids)} passages to ChromaDB collection '{self.collection_name}'")
        return [passage.id for passage in passages]

    async def search(
        self,
        query_embedding: list[float],
        filter: SearchFilter,
    ) -> list[SimilarityCandidate]:
        """Approximate nearest-neighbor search through the HNSW index."""
        _check_dimension(query_embedding, self.dimension, "Query embedding")
        if filter.max_results <= 0:
            return []

        collection = self._get_collection()
        results = await self._run(
            "query",
            lambda: collection.query(
                query_embeddings=[query_embedding],
                n_results=filter.max_results,
                where={"content_length": {"$gte": filter.min_content_length}},
                include=["documents", "metadatas", "distances"],
            ),
        )

        candidates = []
        if results and results["ids"] and results["ids"][0]:
            for i, chroma_id in enumerate(results["ids"][0]):
                similarity = min(1.0, 1.0 - results["distances"][0][i])
                if similarity <= filter.similarity_threshold:
                    continue

                passage = self._to_passage(
                    chroma_id,
                    results["documents"][0][i],
                    results["metadatas"][0][i] if results["metadatas"] else None,
                )
                candidates.append(SimilarityCandidate(passage=passage, similarity=similarity))

        # Chroma returns ascending distance already; re-sort to guarantee it
        candidates.sort(key=lambda c: c.similarity, reverse=True)
        return candidates

    async def search_keywords(
        self,
        keywords: list[str],
        min_content_length: int,
        limit: int = 10,
    ) -> list[Passage]:
        """Case-insensitive substring scan over stored passages.

        Chroma's ``$contains`` document filter is case-sensitive, so pages of
        eligible passages are scanned and matched here.
        """
        lowered = [kw.lower() for kw in keywords if kw]
        if not lowered or limit <= 0:
            return []

        collection = self._get_collection()
        matches: list[Passage] = []
        offset = 0

        while len(matches) < limit:
            page = await self._run(
                "get",
                lambda offset=offset: collection.get(
                    where={"content_length": {"$gte": min_content_length}},
                    include=["documents", "metadatas"],
                    limit=self.SCAN_PAGE_SIZE,
                    offset=offset,
                ),
            )
            page_ids = page["ids"] if page else []
            if not page_ids:
                break

            for i, chroma_id in enumerate(page_ids):
                passage = self._to_passage(
                    chroma_id,
                    page["documents"][i],
                    page["metadatas"][i] if page["metadatas"] else None,
                )
                if matches_keywords(passage, lowered):
                    matches.append(passage)
                    if len(matches) >= limit:
                        break

            offset += len(page_ids)

        return matches

    async def delete_document(self, document_id: PassageId) -> int:
        """Delete every passage of a document."""
        collection = self._get_collection()
        where = {"document_id": str(document_id)}

        existing = await self._run("get", lambda: collection.get(where=where, include=["metadatas"]))
        doomed = existing["ids"] if existing else []
        if doomed:
            await self._run("delete", lambda: collection.delete(ids=doomed))

        self._documents.pop(document_id, None)
        return len(doomed)

    async def get(self, id: PassageId) -> Optional[Passage]:
        """Get a passage by its ID."""
        collection = self._get_collection()
        results = await self._run(
            "get",
            lambda: collection.get(
                ids=[str(id)],
                include=["documents", "metadatas", "embeddings"],
            ),
        )

        if results and results["ids"]:
            embeddings = results.get("embeddings")
            return self._to_passage(
                results["ids"][0],
                results["documents"][0],
                results["metadatas"][0] if results["metadatas"] else None,
                embeddings[0] if embeddings is not None and len(embeddings) else None,
            )

        return None

    async def count(self) -> int:
        """Return the number of passages in the collection."""
        collection = self._get_collection()
        return await self._run("count", collection.count)

    async def clear(self) -> bool:
        """Drop and recreate the collection."""
        client = self._get_client()
        await self._run("delete_collection", lambda: client.delete_collection(self.collection_name))

        self._collection = None
        self._documents.clear()
        return True

    def add_document(self, document: Document) -> None:
        """Add a document for reference."""
        self._documents[document.id] = document
