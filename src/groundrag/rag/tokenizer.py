"""Token counting for context budgets."""

import logging
from typing import Optional

from .base import BaseTokenizer

logger = logging.getLogger(__name__)


class TiktokenTokenizer(BaseTokenizer):
    """Counts tokens with the generation model's tiktoken encoding."""

    def __init__(self, model: str = "gpt-3.5-turbo", encoding_name: Optional[str] = None):
        """Initialize the tokenizer.

        Args:
            model: Generation model whose encoding is used
            encoding_name: Explicit encoding (overrides ``model``)
        """
        self.model = model
        self.encoding_name = encoding_name
        self._encoding = None

    def _get_encoding(self):
        """Get or load the encoding."""
        if self._encoding is None:
            try:
                import tiktoken
            except ImportError:
                raise ImportError(
                    "Token counting requires 'tiktoken'. "
                    "Install it with: pip install tiktoken"
                )

            if self.encoding_name:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
            else:
                try:
                    self._encoding = tiktoken.encoding_for_model(self.model)
                except KeyError:
                    logger.warning(f"No tiktoken encoding for {self.model}, using cl100k_base")
                    self._encoding = tiktoken.get_encoding("cl100k_base")
        return self._encoding

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self._get_encoding().encode(text))


class WhitespaceTokenizer(BaseTokenizer):
    """Word-count tokenizer for tests and offline use."""

    def count(self, text: str) -> int:
        return len(text.split())
