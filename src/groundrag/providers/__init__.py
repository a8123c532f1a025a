"""
LLM providers for answer generation.
"""

from groundrag.providers.base import LLMProvider
from groundrag.providers.openai import OpenAIProvider

__all__ = [
    "LLMProvider",
    "OpenAIProvider",
]
