"""Passage ingestion boundary.

Chunking and file parsing happen upstream; this module only turns
already-split sections into stored passages.
"""

import logging
from typing import Optional

from .base import BaseEmbedding, BaseTokenizer, BaseVectorStore
from .document import Document, Passage, PassageId

logger = logging.getLogger(__name__)


class PassageIngestor:
    """Embeds document sections and stores them as passages.

    Re-ingesting a document replaces all of its passages; existing passages
    are never updated in place.
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        store: BaseVectorStore,
        tokenizer: BaseTokenizer,
        min_content_length: int = 50,
    ):
        self.embedding = embedding
        self.store = store
        self.tokenizer = tokenizer
        self.min_content_length = min_content_length

    async def ingest(
        self,
        document: Document,
        sections: list[tuple[Optional[str], str]],
    ) -> list[PassageId]:
        """Store a document's sections as passages.

        Args:
            document: Owning document
            sections: ``(section_title, content)`` pairs in document order

        Returns:
            IDs of the stored passages
        """
        kept = []
        for index, (title, content) in enumerate(sections):
            content = content.strip()
            if len(content) < self.min_content_length:
                logger.debug(f"Skipping short section {index} of document {document.id!r}")
                continue
            kept.append((index, title, content))

        # Existing passages stay in place until the replacements are embedded
        embeddings = []
        if kept:
            embeddings = await self.embedding.embed_documents([content for _, _, content in kept])

        passages = [
            Passage(
                id=f"{document.id}_section_{index}",
                document_id=document.id,
                document_name=document.name,
                section_title=title,
                content=content,
                embedding=embedding,
                token_count=self.tokenizer.count(content),
            )
            for (index, title, content), embedding in zip(kept, embeddings)
        ]

        removed = await self.store.delete_document(document.id)
        if removed:
            logger.info(f"Replacing {removed} passages of document {document.id!r}")

        self.store.add_document(document)
        if not passages:
            return []

        ids = await self.store.add(passages)
        logger.info(f"Ingested document {document.id!r}: {len(ids)} passages")
        return ids
