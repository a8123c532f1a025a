"""Shared helpers for retrieval tests."""

import math
from typing import Any, AsyncIterator, Optional

from groundrag.providers.base import LLMProvider
from groundrag.rag import BaseModerator, ModerationResult, Passage

DIMENSION = 4
QUERY_VECTOR = [1.0, 0.0, 0.0, 0.0]

FILLER = "This passage is long enough to clear the minimum content length filter."


def vector_at(similarity: float) -> list[float]:
    """Unit vector whose cosine similarity to QUERY_VECTOR is ``similarity``."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity * similarity)), 0.0, 0.0]


def make_passage(
    id: Any,
    similarity: float = 0.9,
    content: Optional[str] = None,
    document_id: Any = "doc-1",
    document_name: str = "Product Guide",
    section_title: Optional[str] = "Overview",
    **kwargs,
) -> Passage:
    return Passage(
        id=id,
        document_id=document_id,
        document_name=document_name,
        section_title=section_title,
        content=content if content is not None else f"{FILLER} ({id})",
        embedding=vector_at(similarity),
        **kwargs,
    )


class FlaggingModerator(BaseModerator):
    """Flags every query."""

    def __init__(self):
        self.calls: list[str] = []

    async def check(self, text: str) -> ModerationResult:
        self.calls.append(text)
        return ModerationResult(flagged=True, categories={"harassment": True})


class FakeProvider(LLMProvider):
    """Streams fixed chunks and records every request."""

    def __init__(self, chunks: tuple[str, ...] = ("Hello", " world")):
        self.chunks = chunks
        self.requests: list[dict[str, Any]] = []

    async def stream(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.0,
        max_tokens: int = 512,
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        self.requests.append({
            "messages": messages,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        for chunk in self.chunks:
            yield chunk
