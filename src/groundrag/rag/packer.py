"""Packing ranked passages into a token-bounded context."""

import logging
from typing import TYPE_CHECKING, Optional

from groundrag.utils.config import DOCUMENT_BLOCK_TEMPLATE

from .base import BaseTokenizer
from .document import RankedContext, SimilarityCandidate

if TYPE_CHECKING:
    from groundrag.utils.config import RetrievalProfile

logger = logging.getLogger(__name__)


class ContextPacker:
    """Greedily packs ranked passages into a token budget.

    Passages are taken in rank order until the running token count would
    reach the budget; that passage and everything after it is left out
    whole, never cut mid-content.

    Example:
        ```python
        packer = ContextPacker(TiktokenTokenizer(), token_budget=2000)
        context = packer.pack(ranked)
        context.context_text   # prompt-ready blocks
        context.sources()      # exactly what fed the prompt
        ```
    """

    def __init__(
        self,
        tokenizer: BaseTokenizer,
        token_budget: int = 1500,
        block_template: str = DOCUMENT_BLOCK_TEMPLATE,
        delimiter: str = "\n\n---\n\n",
        default_document_name: str = "Document",
        default_section_title: str = "Section",
    ):
        """Initialize the packer.

        Args:
            tokenizer: Tokenizer of the generation model
            token_budget: Default token cap
            block_template: Format with ``document_name``, ``similarity_percent``,
                ``section_title`` and ``content`` fields
            delimiter: Appended after every block
            default_document_name: Used when a passage has no document name
            default_section_title: Used when a passage has no section title
        """
        self.tokenizer = tokenizer
        self.token_budget = token_budget
        self.block_template = block_template
        self.delimiter = delimiter
        self.default_document_name = default_document_name
        self.default_section_title = default_section_title

    @classmethod
    def from_profile(cls, tokenizer: BaseTokenizer, profile: "RetrievalProfile") -> "ContextPacker":
        return cls(
            tokenizer,
            token_budget=profile.token_budget,
            block_template=profile.block_template,
            delimiter=profile.block_delimiter,
        )

    def format_block(self, candidate: SimilarityCandidate) -> str:
        passage = candidate.passage
        return self.block_template.format(
            document_name=passage.document_name or self.default_document_name,
            similarity_percent=round(candidate.similarity * 100),
            section_title=passage.section_title or self.default_section_title,
            content=passage.content.strip(),
        )

    def pack(
        self,
        candidates: list[SimilarityCandidate],
        token_budget: Optional[int] = None,
    ) -> RankedContext:
        """Pack candidates into context text.

        Args:
            candidates: Ranked candidates, best first
            token_budget: Token cap (defaults to the packer's budget)

        Returns:
            Context text and the included prefix of ``candidates``
        """
        budget = self.token_budget if token_budget is None else token_budget

        blocks: list[str] = []
        token_count = 0
        used = 0

        for candidate in candidates:
            tokens = self.tokenizer.count(candidate.passage.content)
            if token_count + tokens >= budget:
                break

            token_count += tokens
            blocks.append(self.format_block(candidate) + self.delimiter)
            used += 1

        if used < len(candidates):
            logger.debug(f"Token budget {budget} reached: packed {used} of {len(candidates)} passages")

        return RankedContext(
            context_text="".join(blocks),
            used_passages=candidates[:used],
            token_count=token_count,
        )
