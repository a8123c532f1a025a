"""Keyword augmentation for recall-critical phrases.

Nearest-neighbor search can miss a passage that contains an exact phrase
(for example "must promptly notify") when the surrounding boilerplate
dilutes its embedding. When a query looks like a licensing, reporting or
communication request, passages containing curated phrases are fetched by
exact substring match and slotted into the ranked list with a fixed score.
"""

import logging
import re
from typing import TYPE_CHECKING, Iterable, Optional

from .base import BaseIntentClassifier, BaseVectorStore
from .document import SimilarityCandidate

if TYPE_CHECKING:
    from groundrag.utils.config import IntentRule, RetrievalProfile

logger = logging.getLogger(__name__)


class RegexIntentClassifier(BaseIntentClassifier):
    """Classifies queries with ordered, case-insensitive regex rules."""

    def __init__(self, rules: Iterable["IntentRule"]):
        self.rules = list(rules)
        self._patterns = [
            (rule, re.compile(rule.pattern, re.IGNORECASE)) for rule in self.rules
        ]

    def classify(self, query: str) -> set[str]:
        return {rule.tag for rule, pattern in self._patterns if pattern.search(query)}

    def keywords_for(self, tags: set[str]) -> list[str]:
        """Keywords of the matched rules, in rule order, without repeats."""
        keywords: list[str] = []
        seen: set[str] = set()
        for rule in self.rules:
            if rule.tag not in tags:
                continue
            for keyword in rule.keywords:
                if keyword not in seen:
                    seen.add(keyword)
                    keywords.append(keyword)
        return keywords


class KeywordAugmenter:
    """Exact-phrase search used as a recall safety net.

    Matches bypass vector scoring, so each gets ``synthetic_similarity``:
    above the acceptance threshold, below a genuine high-confidence match.
    """

    def __init__(
        self,
        store: BaseVectorStore,
        classifier: BaseIntentClassifier,
        synthetic_similarity: float = 0.85,
        max_results: int = 10,
    ):
        """Initialize the keyword augmenter.

        Args:
            store: Passage store to search
            classifier: Decides whether a query triggers augmentation
            synthetic_similarity: Score assigned to every keyword match
            max_results: Cap on keyword matches per query
        """
        self.store = store
        self.classifier = classifier
        self.synthetic_similarity = synthetic_similarity
        self.max_results = max_results

    @classmethod
    def from_profile(
        cls,
        store: BaseVectorStore,
        profile: "RetrievalProfile",
        classifier: Optional[BaseIntentClassifier] = None,
    ) -> Optional["KeywordAugmenter"]:
        """Build an augmenter for a profile, or None if it has no intent rules."""
        if classifier is None:
            if not profile.intent_rules:
                return None
            classifier = RegexIntentClassifier(profile.intent_rules)

        return cls(
            store,
            classifier,
            synthetic_similarity=profile.keyword_similarity,
            max_results=profile.keyword_max_results,
        )

    async def search_keywords(
        self,
        keywords: list[str],
        min_content_length: int,
    ) -> list[SimilarityCandidate]:
        """Look up passages containing any of the keywords."""
        if not keywords:
            return []

        passages = await self.store.search_keywords(
            keywords,
            min_content_length=min_content_length,
            limit=self.max_results,
        )
        return [
            SimilarityCandidate(
                passage=passage,
                similarity=self.synthetic_similarity,
                source="keyword",
            )
            for passage in passages
        ]

    async def search(
        self,
        query: str,
        min_content_length: int,
        tags: Optional[set[str]] = None,
    ) -> list[SimilarityCandidate]:
        """Run keyword augmentation if the query triggers it.

        Args:
            query: Query text
            min_content_length: Passages shorter than this are ignored
            tags: Pre-computed intent tags (classified here when omitted)

        Returns:
            Keyword candidates in store discovery order, or ``[]``
        """
        if tags is None:
            tags = self.classifier.classify(query)
        if not tags:
            return []

        keywords = self.classifier.keywords_for(tags)
        candidates = await self.search_keywords(keywords, min_content_length)

        logger.debug(
            f"Keyword augmentation for intents {sorted(tags)}: "
            f"{len(keywords)} keywords, {len(candidates)} matches"
        )
        return candidates
