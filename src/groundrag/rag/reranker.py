"""Ranking of vector and keyword candidates."""

import logging
import re
from typing import TYPE_CHECKING, Iterable, Optional

from .document import PassageId, SimilarityCandidate

if TYPE_CHECKING:
    from groundrag.utils.config import BoostTier, DocumentAliasRule, RetrievalProfile

logger = logging.getLogger(__name__)


class DocumentNameBooster:
    """Boosts candidates whose document name matches a type named in the query.

    A query mentioning "BSL" should favor passages from a document called
    "Business Source License" over an equally similar passage from another
    document. Longer aliases are more specific and earn a larger factor.
    """

    def __init__(
        self,
        rules: Iterable["DocumentAliasRule"],
        tiers: Iterable["BoostTier"] = (),
        default_boost: float = 1.15,
        max_similarity: float = 1.0,
    ):
        """Initialize the booster.

        Args:
            rules: Query patterns and the document-name aliases they select
            tiers: (min_length, factor) pairs checked in order
            default_boost: Factor when no tier applies
            max_similarity: Upper clamp for boosted scores
        """
        self.rules = list(rules)
        self.tiers = list(tiers)
        self.default_boost = default_boost
        self.max_similarity = max_similarity
        self._patterns = [
            (re.compile(rf"(?<!\w){rule.pattern}(?!\w)", re.IGNORECASE), rule.aliases)
            for rule in self.rules
        ]

    def aliases_for(self, query: str) -> list[str]:
        """Aliases of every rule the query mentions, in rule order."""
        aliases: list[str] = []
        for pattern, rule_aliases in self._patterns:
            if pattern.search(query):
                aliases.extend(alias.lower() for alias in rule_aliases)
        return aliases

    def boost_factor(self, alias: str) -> float:
        for tier in self.tiers:
            if len(alias) > tier.min_length:
                return tier.factor
        return self.default_boost

    def boost(
        self,
        candidates: list[SimilarityCandidate],
        query: str,
    ) -> list[SimilarityCandidate]:
        """Apply at most one boost per candidate and re-sort.

        Candidates are returned unchanged when the query names no document
        type.
        """
        aliases = self.aliases_for(query)
        if not aliases:
            return list(candidates)

        boosted = []
        for candidate in candidates:
            name = candidate.passage.document_name.lower()
            for alias in aliases:
                if alias in name:
                    similarity = min(
                        self.max_similarity,
                        candidate.similarity * self.boost_factor(alias),
                    )
                    candidate = candidate.model_copy(update={"similarity": similarity})
                    break
            boosted.append(candidate)

        boosted.sort(key=lambda c: c.similarity, reverse=True)
        return boosted


class Ranker:
    """Merges vector and keyword candidates into one ranked list.

    Keyword-sourced passages come first, in the order they were found. When
    a passage was found by both searches the vector candidate is kept since
    it carries a genuine similarity. The remaining vector candidates follow
    by (boosted) similarity. The output never repeats a passage id.
    """

    def __init__(
        self,
        max_results: int = 10,
        overflow_allowance: int = 5,
        booster: Optional[DocumentNameBooster] = None,
    ):
        """Initialize the ranker.

        Args:
            max_results: Vector result cap the output is sized from
            overflow_allowance: Extra slots so keyword rescues can surface
            booster: Optional document-name booster
        """
        self.max_results = max_results
        self.overflow_allowance = overflow_allowance
        self.booster = booster

    @classmethod
    def from_profile(cls, profile: "RetrievalProfile") -> "Ranker":
        booster = None
        if profile.document_aliases:
            booster = DocumentNameBooster(
                profile.document_aliases,
                tiers=profile.boost_tiers,
                default_boost=profile.default_boost,
                max_similarity=profile.max_similarity,
            )
        return cls(
            max_results=profile.max_results,
            overflow_allowance=profile.overflow_allowance,
            booster=booster,
        )

    @property
    def limit(self) -> int:
        return self.max_results + self.overflow_allowance

    def merge(
        self,
        vector_candidates: list[SimilarityCandidate],
        keyword_candidates: list[SimilarityCandidate],
        query: str,
    ) -> list[SimilarityCandidate]:
        """Boost, deduplicate, order and truncate the candidates."""
        if self.booster:
            vector_candidates = self.booster.boost(vector_candidates, query)
        else:
            vector_candidates = sorted(vector_candidates, key=lambda c: c.similarity, reverse=True)

        by_id: dict[PassageId, SimilarityCandidate] = {}
        for candidate in vector_candidates:
            by_id.setdefault(candidate.passage_id, candidate)

        merged: list[SimilarityCandidate] = []
        seen: set[PassageId] = set()

        for candidate in keyword_candidates:
            if candidate.passage_id in seen:
                continue
            seen.add(candidate.passage_id)
            merged.append(by_id.get(candidate.passage_id, candidate))

        for candidate in vector_candidates:
            if candidate.passage_id in seen:
                continue
            seen.add(candidate.passage_id)
            merged.append(candidate)

        logger.debug(
            f"Merged {len(vector_candidates)} vector and {len(keyword_candidates)} "
            f"keyword candidates into {len(merged)}"
        )
        return merged[: self.limit]
